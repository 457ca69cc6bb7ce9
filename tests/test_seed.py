"""Tests for the demo seed data."""

import pytest

from skyfuel.models.battery import BatteryStatus
from skyfuel.seed import SEED_BATTERIES, seed_if_empty
from skyfuel.services.battery_store import BatteryStore


@pytest.mark.unit
@pytest.mark.asyncio
class TestSeed:

    async def test_seeds_empty_store(self, store: BatteryStore):
        assert await seed_if_empty(store) == len(SEED_BATTERIES)

        batteries = await store.snapshot()
        assert len(batteries) == len(SEED_BATTERIES)

        tattu = await store.get_by_serial("TT-6S-0042")
        assert tattu.status == BatteryStatus.STORAGE
        assert tattu.cycle_count == 2
        assert len(await store.history(tattu.id)) == 5

    async def test_skips_populated_store(self, store: BatteryStore, dji_id):
        assert await seed_if_empty(store) == 0
        assert [b.id for b in await store.snapshot()] == [dji_id]
