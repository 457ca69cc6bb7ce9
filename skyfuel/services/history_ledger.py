"""
SkyFuel Battery Ledger - History Ledger Service
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-14): append() validates the tagged payload before insert;
                      live per-battery queries via the change feed
v1.0.0 (2026-10-07): Initial append-only battery history

The ledger never updates or deletes a single entry. Entries disappear only
through the ON DELETE CASCADE of their battery. append() is only called by
the battery store, inside the store's transaction.
"""

import logging
from typing import List, Optional
from datetime import datetime

from ..database import get_db, execute_all, execute_insert
from ..models.battery import validate_model
from ..models.history import HistoryEntry
from .change_feed import ChangeFeed, LiveQuery

logger = logging.getLogger(__name__)

_SELECT_HISTORY = "SELECT * FROM battery_history"
_ORDER = "ORDER BY timestamp ASC, id ASC"


class HistoryLedger:
    """Append-only per-battery event log"""

    def __init__(self, db_path: Optional[str] = None, feed: Optional[ChangeFeed] = None):
        self.db_path = db_path
        self.feed = feed or ChangeFeed()

    async def append(self, db, battery_id: int, payload: dict, notes: str = "",
                     timestamp: Optional[datetime] = None) -> HistoryEntry:
        """
        Validate and insert one entry on the caller's connection.

        Args:
            db: connection with an open transaction
            battery_id: owning battery
            payload: event payload dict, discriminated by "event_type"
            notes: free text (required for NOTE_ADDED and MAINTENANCE)
            timestamp: defaults to now

        Returns:
            The persisted HistoryEntry
        """
        draft = validate_model(HistoryEntry, {
            "id": 0,
            "battery_id": battery_id,
            "timestamp": timestamp or datetime.now(),
            "payload": payload,
            "notes": notes or "",
        })
        data = draft.payload

        entry_id = await execute_insert(db, """
            INSERT INTO battery_history (
                battery_id, timestamp, event_type,
                previous_status, new_status, voltage, cycle_number, notes
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            battery_id,
            draft.timestamp.isoformat(timespec="microseconds"),
            data.event_type,
            _enum_value(getattr(data, "previous_status", None)),
            _enum_value(getattr(data, "new_status", None)),
            getattr(data, "voltage", None),
            getattr(data, "cycle_number", None),
            draft.notes,
        ))
        logger.debug(f"Ledger: battery {battery_id} += {data.event_type} (entry {entry_id})")
        return draft.model_copy(update={"id": entry_id})

    async def list_by_battery(self, battery_id: int) -> List[HistoryEntry]:
        """All entries for one battery, oldest first"""
        async with get_db(self.db_path) as db:
            rows = await execute_all(
                db, f"{_SELECT_HISTORY} WHERE battery_id = ? {_ORDER}", (battery_id,)
            )
        return [HistoryEntry.from_row(row) for row in rows]

    async def list_all(self) -> List[HistoryEntry]:
        async with get_db(self.db_path) as db:
            rows = await execute_all(db, f"{_SELECT_HISTORY} {_ORDER}")
        return [HistoryEntry.from_row(row) for row in rows]

    async def count(self, battery_id: int) -> int:
        async with get_db(self.db_path) as db:
            cursor = await db.execute(
                "SELECT COUNT(*) FROM battery_history WHERE battery_id = ?", (battery_id,)
            )
            row = await cursor.fetchone()
        return row[0]

    def query_by_battery(self, battery_id: int) -> LiveQuery[List[HistoryEntry]]:
        """Live ledger of one battery, re-emitted on every write touching it"""
        return LiveQuery(
            self.feed,
            lambda: self.list_by_battery(battery_id),
            lambda change: change.touches_battery(battery_id),
            name=f"history:{battery_id}",
        )


def _enum_value(value):
    return value.value if value is not None else None
