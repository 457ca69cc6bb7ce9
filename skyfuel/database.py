"""
SkyFuel Battery Ledger - Database Connection Manager
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-12): Explicit BEGIN IMMEDIATE transactions for atomic
                      battery + ledger writes; configurable busy timeout
v1.0.0 (2026-10-06): Initial database connection manager with async helpers

Provides centralized async SQLite connection management for the store.
Uses aiosqlite with WAL journal mode and foreign key enforcement.
Connections run in autocommit mode; multi-statement writes go through
transaction(), which holds the SQLite writer lock from the first statement.
"""

import os
import logging
import aiosqlite
from typing import Optional
from contextlib import asynccontextmanager

from .config import settings
from .errors import StoreError

logger = logging.getLogger(__name__)


def get_db_path(db_path: Optional[str] = None) -> str:
    """Resolve database path, create data directory if needed"""
    path = db_path or os.environ.get("SKYFUEL_DB", settings.SQLITE_DB_PATH)
    path = str(path)
    if path != ":memory:":
        os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    return path


@asynccontextmanager
async def get_db(db_path: Optional[str] = None):
    """
    Async context manager yielding an aiosqlite connection with WAL + FK.
    Backing-store failures inside the block surface as StoreError.
    """
    path = get_db_path(db_path)
    try:
        db = await aiosqlite.connect(
            path,
            timeout=settings.SQLITE_BUSY_TIMEOUT,
            isolation_level=None,
        )
    except aiosqlite.Error as e:
        logger.error(f"Failed to open database {path}: {e}")
        raise StoreError(f"Failed to open database: {e}") from e

    db.row_factory = aiosqlite.Row
    try:
        await db.execute("PRAGMA journal_mode=WAL")
        await db.execute("PRAGMA foreign_keys=ON")
        yield db
    except aiosqlite.Error as e:
        logger.error(f"Database error on {path}: {e}")
        raise StoreError(f"Database error: {e}") from e
    finally:
        await db.close()


@asynccontextmanager
async def transaction(db):
    """BEGIN IMMEDIATE ... COMMIT, rolled back if the block raises"""
    await db.execute("BEGIN IMMEDIATE")
    try:
        yield db
    except BaseException:
        await db.execute("ROLLBACK")
        raise
    else:
        await db.execute("COMMIT")


async def execute_one(db, sql: str, params=()) -> dict | None:
    """Execute query and return first row as dict, or None"""
    cursor = await db.execute(sql, params)
    row = await cursor.fetchone()
    return dict(row) if row else None


async def execute_all(db, sql: str, params=()) -> list[dict]:
    """Execute query and return all rows as list of dicts"""
    cursor = await db.execute(sql, params)
    rows = await cursor.fetchall()
    return [dict(row) for row in rows]


async def execute_insert(db, sql: str, params=()) -> int:
    """Execute INSERT and return lastrowid (caller owns the transaction)"""
    cursor = await db.execute(sql, params)
    return cursor.lastrowid


async def execute_update(db, sql: str, params=()) -> int:
    """Execute UPDATE/DELETE and return rowcount (caller owns the transaction)"""
    cursor = await db.execute(sql, params)
    return cursor.rowcount
