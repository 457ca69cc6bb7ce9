"""
SkyFuel Battery Ledger - Database Models
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-14): battery_history is append-only (UPDATE trigger);
                      CHECK constraints mirror the Battery invariants
v1.0.0 (2026-10-06): Initial schema - batteries, battery_history
"""

from .battery import Battery, BatteryFields, BatteryStatus, BatteryType, BatteryUpdate
from .history import (
    EventImpact, EventType, HistoryEntry,
    StatusChange, CycleCompleted, VoltageReading, NoteAdded, Maintenance,
)
from .statistics import BatteryStatistics, BatteryAlert, AlertType, AlertPriority
from .exchange import BatteryRecord, HistoryRecord, ExportFormat, ExportResult, ImportResult

import logging

logger = logging.getLogger(__name__)


async def init_db(db_path=None):
    """Initialize SQLite database with the ledger schema"""
    from ..database import get_db, get_db_path
    logger.info(f"Initializing database: {get_db_path(db_path)}")

    async with get_db(db_path) as db:
        # ================================================================
        # BATTERIES (current state, source of truth for status)
        # ================================================================
        await db.execute("""
            CREATE TABLE IF NOT EXISTS batteries (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                brand TEXT NOT NULL,
                model TEXT NOT NULL,
                serial_number TEXT NOT NULL,
                battery_type TEXT NOT NULL,
                cells INTEGER NOT NULL CHECK (cells > 0),
                capacity INTEGER NOT NULL CHECK (capacity > 0),
                purchase_date DATE NOT NULL,
                status TEXT NOT NULL DEFAULT 'CHARGED',
                cycle_count INTEGER NOT NULL DEFAULT 0 CHECK (cycle_count >= 0),
                notes TEXT NOT NULL DEFAULT '',
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_batteries_serial ON batteries(serial_number)"
        )
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_batteries_status ON batteries(status)"
        )

        # ================================================================
        # BATTERY HISTORY (append-only ledger, cascades with its battery)
        # ================================================================
        await db.execute("""
            CREATE TABLE IF NOT EXISTS battery_history (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                battery_id INTEGER NOT NULL
                    REFERENCES batteries(id) ON DELETE CASCADE,
                timestamp TIMESTAMP NOT NULL,
                event_type TEXT NOT NULL,
                previous_status TEXT,
                new_status TEXT,
                voltage REAL CHECK (voltage IS NULL OR voltage > 0),
                cycle_number INTEGER,
                notes TEXT NOT NULL DEFAULT ''
            )
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_history_battery_time
            ON battery_history(battery_id, timestamp, id)
        """)
        await db.execute("""
            CREATE TRIGGER IF NOT EXISTS battery_history_append_only
            BEFORE UPDATE ON battery_history
            BEGIN
                SELECT RAISE(ABORT, 'battery_history is append-only');
            END
        """)

    logger.info("Database schema ready")


__all__ = [
    "Battery", "BatteryFields", "BatteryStatus", "BatteryType", "BatteryUpdate",
    "EventImpact", "EventType", "HistoryEntry",
    "StatusChange", "CycleCompleted", "VoltageReading", "NoteAdded", "Maintenance",
    "BatteryStatistics", "BatteryAlert", "AlertType", "AlertPriority",
    "BatteryRecord", "HistoryRecord", "ExportFormat", "ExportResult", "ImportResult",
    "init_db",
]
