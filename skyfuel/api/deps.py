"""
SkyFuel Battery Ledger - API Dependencies
Version: 1.0.0

Changelog:
v1.0.0 (2026-10-11): Store and exchange providers (overridable in tests)
"""

from fastapi import Depends
from fastapi.requests import HTTPConnection

from ..services.battery_store import BatteryStore
from ..services.data_exchange import DataExchange


def get_store(connection: HTTPConnection) -> BatteryStore:
    """Store created by the application lifespan"""
    return connection.app.state.store


def get_exchange(store: BatteryStore = Depends(get_store)) -> DataExchange:
    return DataExchange(store)
