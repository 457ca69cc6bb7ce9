"""
SkyFuel Battery Ledger - Battery Store Service
Version: 1.2.1

Changelog:
v1.2.1 (2026-10-20): Per-id locks are reference counted and released with
                      their last user
v1.2.0 (2026-10-15): complete_cycle and update_details (cycle count correction);
                      batch() shared by the data exchange reconciler
v1.1.0 (2026-10-12): Per-battery asyncio.Lock + BEGIN IMMEDIATE so entity
                      update and ledger append commit as one unit
v1.0.0 (2026-10-07): Initial battery CRUD with creation ledger entry

Every mutation that changes observable state appends exactly one ledger
entry in the same transaction, then publishes a Change after commit.
Mutations on the same battery id are serialized in-process; different ids
only contend on the SQLite writer lock.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Union
from datetime import date, datetime
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from ..database import get_db, transaction, execute_one, execute_all, execute_insert, execute_update
from ..errors import NotFoundError, ValidationError
from ..models.battery import (
    Battery, BatteryFields, BatteryStatus, BatteryType, BatteryUpdate, validate_model,
)
from ..models.history import HistoryEntry, VoltageReading
from .change_feed import Change, ChangeFeed, LiveQuery
from .history_ledger import HistoryLedger

logger = logging.getLogger(__name__)

CREATION_NOTE = "Battery added to inventory"

_SELECT_BATTERIES = "SELECT * FROM batteries"
_ORDER = "ORDER BY brand, model, id"


def _parse_enum(enum_cls, value, field_name: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"{field_name}: '{value}' is not one of {allowed}")


def _require_text(value: str, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} must not be blank")
    return value


class StoreBatch:
    """
    Write operations sharing one connection and one transaction.

    Obtained from BatteryStore.batch(); the change it accumulates is
    published once, after the transaction commits.
    """

    def __init__(self, store: "BatteryStore", db):
        self.store = store
        self.db = db
        self._battery_ids = set()
        self._fleet = False
        self._bulk = False

    @property
    def change(self) -> Optional[Change]:
        if not (self._battery_ids or self._fleet or self._bulk):
            return None
        return Change(frozenset(self._battery_ids), fleet=self._fleet or self._bulk, bulk=self._bulk)

    def _touch(self, battery_id: int, fleet: bool = True):
        self._battery_ids.add(battery_id)
        self._fleet = self._fleet or fleet

    async def get(self, battery_id: int) -> Optional[Battery]:
        row = await execute_one(self.db, f"{_SELECT_BATTERIES} WHERE id = ?", (battery_id,))
        return Battery.model_validate(row) if row else None

    async def get_by_serial(self, serial_number: str) -> Optional[Battery]:
        row = await execute_one(
            self.db,
            f"{_SELECT_BATTERIES} WHERE serial_number = ? ORDER BY id LIMIT 1",
            (serial_number,)
        )
        return Battery.model_validate(row) if row else None

    async def create(self, fields: BatteryFields,
                     status: BatteryStatus = BatteryStatus.CHARGED,
                     cycle_count: int = 0) -> int:
        """Insert a validated battery plus its creation marker"""
        if cycle_count < 0:
            raise ValidationError("cycle_count must be >= 0")
        battery_id = await execute_insert(self.db, """
            INSERT INTO batteries (
                brand, model, serial_number, battery_type, cells, capacity,
                purchase_date, status, cycle_count, notes
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            fields.brand, fields.model, fields.serial_number,
            fields.battery_type.value, fields.cells, fields.capacity,
            fields.purchase_date.isoformat(), status.value, cycle_count,
            fields.notes,
        ))
        await self.store.ledger.append(
            self.db, battery_id,
            {"event_type": "STATUS_CHANGE", "new_status": status.value},
            notes=CREATION_NOTE,
        )
        self._touch(battery_id)
        return battery_id

    async def set_status(self, battery: Battery, new_status: BatteryStatus,
                         notes: str = "") -> HistoryEntry:
        await execute_update(
            self.db,
            "UPDATE batteries SET status = ?, updated_at = ? WHERE id = ?",
            (new_status.value, datetime.now().isoformat(), battery.id)
        )
        entry = await self.store.ledger.append(self.db, battery.id, {
            "event_type": "STATUS_CHANGE",
            "previous_status": battery.status.value,
            "new_status": new_status.value,
        }, notes=notes)
        self._touch(battery.id)
        return entry

    async def append(self, battery_id: int, payload: dict, notes: str = "") -> HistoryEntry:
        """Ledger-only append; battery row untouched"""
        entry = await self.store.ledger.append(self.db, battery_id, payload, notes=notes)
        self._touch(battery_id, fleet=False)
        return entry

    async def increment_cycles(self, battery: Battery, notes: str = "") -> HistoryEntry:
        cycle_number = battery.cycle_count + 1
        await execute_update(
            self.db,
            "UPDATE batteries SET cycle_count = ?, updated_at = ? WHERE id = ?",
            (cycle_number, datetime.now().isoformat(), battery.id)
        )
        entry = await self.store.ledger.append(
            self.db, battery.id,
            {"event_type": "CYCLE_COMPLETED", "cycle_number": cycle_number},
            notes=notes,
        )
        self._touch(battery.id)
        return entry

    async def write_details(self, battery: Battery, updated: Battery,
                            changed: List[str]) -> HistoryEntry:
        await execute_update(self.db, """
            UPDATE batteries SET
                brand = ?, model = ?, serial_number = ?, battery_type = ?,
                cells = ?, capacity = ?, purchase_date = ?, cycle_count = ?,
                notes = ?, updated_at = ?
            WHERE id = ?
        """, (
            updated.brand, updated.model, updated.serial_number,
            updated.battery_type.value, updated.cells, updated.capacity,
            updated.purchase_date.isoformat(), updated.cycle_count,
            updated.notes, datetime.now().isoformat(), battery.id,
        ))
        entry = await self.store.ledger.append(
            self.db, battery.id,
            {"event_type": "NOTE_ADDED"},
            notes=f"Details updated: {', '.join(changed)}",
        )
        self._touch(battery.id)
        return entry

    async def delete(self, battery_id: int) -> bool:
        """Delete one battery; its ledger goes with it (ON DELETE CASCADE)"""
        deleted = await execute_update(self.db, "DELETE FROM batteries WHERE id = ?", (battery_id,))
        if deleted:
            self._touch(battery_id)
        return bool(deleted)

    async def delete_all(self) -> int:
        deleted = await execute_update(self.db, "DELETE FROM batteries")
        self._bulk = True
        return deleted

    def mark_bulk(self):
        """Report the whole fleet as changed when this batch commits"""
        self._bulk = True


@dataclass
class _IdLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class BatteryStore:
    """Owns battery records and drives the history ledger"""

    def __init__(self, db_path: Optional[str] = None, feed: Optional[ChangeFeed] = None,
                 ledger: Optional[HistoryLedger] = None):
        self.db_path = db_path
        self.feed = feed or ChangeFeed()
        self.ledger = ledger or HistoryLedger(db_path, self.feed)
        self._locks: Dict[int, _IdLock] = {}

    @asynccontextmanager
    async def _locked(self, battery_id: int):
        """Serialize mutations on one id; the entry is dropped with its last user"""
        entry = self._locks.get(battery_id)
        if entry is None:
            entry = self._locks[battery_id] = _IdLock()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[battery_id]

    @asynccontextmanager
    async def batch(self):
        """Open one transaction; publish its change after commit"""
        async with get_db(self.db_path) as db:
            batch = StoreBatch(self, db)
            async with transaction(db):
                yield batch
        change = batch.change
        if change is not None:
            self.feed.publish(change)

    # ================================================================
    # MUTATIONS
    # ================================================================

    async def create(self, brand: str, model: str, serial_number: str,
                     battery_type: Union[BatteryType, str], cells: int, capacity: int,
                     purchase_date: date, notes: str = "") -> int:
        """Validate and insert a new battery. Returns the new battery id."""
        fields = validate_model(BatteryFields, {
            "brand": brand,
            "model": model,
            "serial_number": serial_number,
            "battery_type": battery_type,
            "cells": cells,
            "capacity": capacity,
            "purchase_date": purchase_date,
            "notes": notes or "",
        })
        async with self.batch() as batch:
            battery_id = await batch.create(fields)
        logger.info(f"Battery {battery_id} created: {brand} {model} ({serial_number})")
        return battery_id

    async def update_status(self, battery_id: int, new_status: Union[BatteryStatus, str],
                            notes: str = "") -> Optional[HistoryEntry]:
        """
        Record a status assertion. Always appends STATUS_CHANGE, even when
        the status is unchanged. A missing battery is a silent no-op.
        """
        new_status = _parse_enum(BatteryStatus, new_status, "status")
        async with self._locked(battery_id):
            async with self.batch() as batch:
                battery = await batch.get(battery_id)
                if battery is None:
                    logger.debug(f"update_status: battery {battery_id} not found, ignoring")
                    return None
                entry = await batch.set_status(battery, new_status, notes or "")
        logger.info(f"Battery {battery_id}: {battery.status.value} -> {new_status.value}")
        return entry

    async def record_voltage(self, battery_id: int, voltage: float,
                             notes: str = "") -> HistoryEntry:
        payload = validate_model(VoltageReading, {"voltage": voltage})
        entry = await self._append_existing(
            battery_id, payload.model_dump(mode="json"), notes or "", "record_voltage"
        )
        logger.info(f"Battery {battery_id}: voltage {payload.voltage:.2f}V recorded")
        return entry

    async def add_note(self, battery_id: int, note: str) -> HistoryEntry:
        _require_text(note, "note")
        return await self._append_existing(
            battery_id, {"event_type": "NOTE_ADDED"}, note, "add_note"
        )

    async def record_maintenance(self, battery_id: int, description: str) -> HistoryEntry:
        _require_text(description, "description")
        entry = await self._append_existing(
            battery_id, {"event_type": "MAINTENANCE"}, description, "record_maintenance"
        )
        logger.info(f"Battery {battery_id}: maintenance recorded")
        return entry

    async def _append_existing(self, battery_id: int, payload: dict, notes: str,
                               operation: str) -> HistoryEntry:
        async with self._locked(battery_id):
            async with self.batch() as batch:
                if await batch.get(battery_id) is None:
                    logger.warning(f"{operation}: battery {battery_id} not found")
                    raise NotFoundError("Battery", battery_id)
                return await batch.append(battery_id, payload, notes)

    async def complete_cycle(self, battery_id: int, notes: str = "") -> HistoryEntry:
        """Increment cycle_count and append CYCLE_COMPLETED with the new count"""
        async with self._locked(battery_id):
            async with self.batch() as batch:
                battery = await batch.get(battery_id)
                if battery is None:
                    logger.warning(f"complete_cycle: battery {battery_id} not found")
                    raise NotFoundError("Battery", battery_id)
                entry = await batch.increment_cycles(battery, notes or "")
        logger.info(f"Battery {battery_id}: cycle #{battery.cycle_count + 1} completed")
        return entry

    async def update_details(self, battery_id: int, **changes) -> Optional[Battery]:
        """
        Edit identity/physical fields or correct cycle_count.

        The merged record is re-validated before writing. Appends one
        NOTE_ADDED entry naming the changed fields; nothing is written when
        no field actually changes. A missing battery is a silent no-op.
        """
        update = validate_model(BatteryUpdate, changes)
        requested = update.model_dump(exclude_none=True)

        async with self._locked(battery_id):
            async with self.batch() as batch:
                battery = await batch.get(battery_id)
                if battery is None:
                    logger.debug(f"update_details: battery {battery_id} not found, ignoring")
                    return None
                updated = validate_model(Battery, {**battery.model_dump(), **requested})
                changed = [name for name in requested
                           if getattr(updated, name) != getattr(battery, name)]
                if not changed:
                    return battery
                await batch.write_details(battery, updated, changed)
        logger.info(f"Battery {battery_id}: details updated ({', '.join(changed)})")
        return updated

    async def delete(self, battery: Union[Battery, int]) -> bool:
        """Delete a battery and its ledger. Absent batteries are ignored."""
        battery_id = battery.id if isinstance(battery, Battery) else battery
        async with self._locked(battery_id):
            async with self.batch() as batch:
                deleted = await batch.delete(battery_id)
        if deleted:
            logger.info(f"Battery {battery_id} deleted")
        else:
            logger.debug(f"delete: battery {battery_id} already absent")
        return deleted

    # ================================================================
    # READS
    # ================================================================

    async def get_by_id(self, battery_id: int) -> Optional[Battery]:
        async with get_db(self.db_path) as db:
            row = await execute_one(db, f"{_SELECT_BATTERIES} WHERE id = ?", (battery_id,))
        return Battery.model_validate(row) if row else None

    async def get_by_serial(self, serial_number: str) -> Optional[Battery]:
        async with get_db(self.db_path) as db:
            row = await execute_one(
                db,
                f"{_SELECT_BATTERIES} WHERE serial_number = ? ORDER BY id LIMIT 1",
                (serial_number,)
            )
        return Battery.model_validate(row) if row else None

    async def snapshot(self, status: Optional[BatteryStatus] = None) -> List[Battery]:
        """Current batteries, ordered by brand, model, id"""
        query = _SELECT_BATTERIES
        params = []
        if status is not None:
            query += " WHERE status = ?"
            params.append(status.value)
        query += f" {_ORDER}"
        async with get_db(self.db_path) as db:
            rows = await execute_all(db, query, params)
        return [Battery.model_validate(row) for row in rows]

    async def matching(self, query: str, status: Optional[BatteryStatus] = None) -> List[Battery]:
        """Case-insensitive substring match on brand, model or serial number"""
        needle = (query or "").strip().casefold()
        batteries = await self.snapshot(status)
        if not needle:
            return batteries
        return [
            battery for battery in batteries
            if needle in battery.brand.casefold()
            or needle in battery.model.casefold()
            or needle in battery.serial_number.casefold()
        ]

    async def history(self, battery_id: int) -> List[HistoryEntry]:
        return await self.ledger.list_by_battery(battery_id)

    async def all_history(self) -> List[HistoryEntry]:
        return await self.ledger.list_all()

    # ================================================================
    # LIVE QUERIES
    # ================================================================

    def get_all(self) -> LiveQuery[List[Battery]]:
        return LiveQuery(self.feed, self.snapshot, _fleet_changed, name="batteries:all")

    def search(self, query: str,
               status: Optional[Union[BatteryStatus, str]] = None) -> LiveQuery[List[Battery]]:
        """Live search, optionally narrowed to one status"""
        if status is not None:
            status = _parse_enum(BatteryStatus, status, "status")
        return LiveQuery(
            self.feed, lambda: self.matching(query, status), _fleet_changed,
            name=f"batteries:search:{query}:{status.value if status else 'all'}",
        )

    def filter_by_status(self, status: Optional[Union[BatteryStatus, str]]) -> LiveQuery[List[Battery]]:
        if status is not None:
            status = _parse_enum(BatteryStatus, status, "status")
        return LiveQuery(
            self.feed, lambda: self.snapshot(status), _fleet_changed,
            name=f"batteries:status:{status.value if status else 'all'}",
        )

    def query_history(self, battery_id: int) -> LiveQuery[List[HistoryEntry]]:
        return self.ledger.query_by_battery(battery_id)


def _fleet_changed(change: Change) -> bool:
    return change.fleet
