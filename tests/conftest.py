"""Pytest configuration and fixtures for SkyFuel tests.

Every test gets its own SQLite file under tmp_path.
"""

from datetime import date
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from skyfuel.api.deps import get_store
from skyfuel.main import app
from skyfuel.models import init_db
from skyfuel.services.battery_store import BatteryStore


DJI_MAVIC = {
    "brand": "DJI",
    "model": "Mavic 3",
    "serial_number": "SN001",
    "battery_type": "LIPO",
    "cells": 4,
    "capacity": 5000,
    "purchase_date": date(2024, 3, 12),
}


# ── Store Setup ──────────────────────────────────────────────────

@pytest.fixture
def dji_fields() -> dict:
    return dict(DJI_MAVIC)


@pytest.fixture
def db_path(tmp_path) -> str:
    return str(tmp_path / "skyfuel_test.db")


@pytest_asyncio.fixture
async def store(db_path) -> BatteryStore:
    """Empty store on a fresh database."""
    await init_db(db_path)
    return BatteryStore(db_path)


@pytest_asyncio.fixture
async def dji_id(store: BatteryStore) -> int:
    """DJI Mavic 3 SN001, freshly created."""
    return await store.create(**DJI_MAVIC)


@pytest_asyncio.fixture
async def client(store: BatteryStore) -> AsyncGenerator[AsyncClient, None]:
    """API client bound to the test store."""
    app.dependency_overrides[get_store] = lambda: store

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "api: API endpoint tests")
