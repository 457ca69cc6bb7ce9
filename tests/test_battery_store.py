"""Tests for the battery store and its ledger coupling."""

import asyncio
from datetime import date

import pytest

from skyfuel.database import get_db
from skyfuel.errors import NotFoundError, StoreError, ValidationError
from skyfuel.models.battery import BatteryStatus, BatteryType
from skyfuel.models.history import EventType
from skyfuel.services.battery_store import BatteryStore, CREATION_NOTE


@pytest.mark.unit
@pytest.mark.asyncio
class TestCreate:

    async def test_create_then_get_returns_inputs(self, store: BatteryStore, dji_fields):
        battery_id = await store.create(**dji_fields, notes="spare")
        battery = await store.get_by_id(battery_id)

        assert battery.id == battery_id
        assert battery.brand == "DJI"
        assert battery.model == "Mavic 3"
        assert battery.serial_number == "SN001"
        assert battery.battery_type == BatteryType.LIPO
        assert battery.cells == 4
        assert battery.capacity == 5000
        assert battery.purchase_date == date(2024, 3, 12)
        assert battery.notes == "spare"
        assert battery.status == BatteryStatus.CHARGED
        assert battery.cycle_count == 0

    async def test_create_appends_creation_marker(self, store: BatteryStore, dji_id):
        history = await store.history(dji_id)

        assert len(history) == 1
        entry = history[0]
        assert entry.is_creation
        assert entry.event_type == EventType.STATUS_CHANGE
        assert entry.payload.previous_status is None
        assert entry.payload.new_status == BatteryStatus.CHARGED
        assert entry.notes == CREATION_NOTE
        assert entry.description() == "Battery added"

    async def test_future_purchase_date_is_allowed(self, store: BatteryStore, dji_fields):
        dji_fields["purchase_date"] = date(2099, 1, 1)
        battery_id = await store.create(**dji_fields)
        assert (await store.get_by_id(battery_id)).purchase_date == date(2099, 1, 1)

    @pytest.mark.parametrize("field,value", [
        ("brand", ""),
        ("brand", "   "),
        ("model", ""),
        ("serial_number", "\t"),
        ("cells", 0),
        ("cells", -2),
        ("capacity", 0),
        ("battery_type", "LEAD_ACID"),
    ])
    async def test_invalid_input_rejected_before_write(self, store: BatteryStore, dji_fields,
                                                       field, value):
        dji_fields[field] = value
        with pytest.raises(ValidationError) as exc_info:
            await store.create(**dji_fields)

        assert field in exc_info.value.message
        assert await store.snapshot() == []
        assert await store.all_history() == []

    async def test_duplicate_serial_is_not_rejected(self, store: BatteryStore, dji_fields, dji_id):
        second = await store.create(**dji_fields)
        assert second != dji_id
        assert (await store.get_by_serial("SN001")).id == dji_id


@pytest.mark.unit
@pytest.mark.asyncio
class TestMutations:

    async def test_update_status_same_status_still_appends(self, store: BatteryStore, dji_id):
        await store.update_status(dji_id, BatteryStatus.CHARGED)
        await store.update_status(dji_id, "CHARGED", "topped up")

        history = await store.history(dji_id)
        assert len(history) == 3
        assert history[-1].payload.previous_status == BatteryStatus.CHARGED
        assert history[-1].payload.new_status == BatteryStatus.CHARGED
        assert history[-1].notes == "topped up"

    async def test_every_transition_is_legal(self, store: BatteryStore, dji_id):
        for target in [BatteryStatus.OUT_OF_SERVICE, BatteryStatus.CHARGED,
                       BatteryStatus.STORAGE, BatteryStatus.DISCHARGED,
                       BatteryStatus.OUT_OF_SERVICE, BatteryStatus.STORAGE]:
            await store.update_status(dji_id, target)
            assert (await store.get_by_id(dji_id)).status == target

    async def test_update_status_missing_id_is_silent(self, store: BatteryStore):
        assert await store.update_status(404, BatteryStatus.DISCHARGED) is None
        assert await store.all_history() == []

    async def test_update_status_unknown_value(self, store: BatteryStore, dji_id):
        with pytest.raises(ValidationError):
            await store.update_status(dji_id, "EXPLODED")
        assert await store.ledger.count(dji_id) == 1

    async def test_each_operation_adds_exactly_one_entry(self, store: BatteryStore, dji_id):
        operations = [
            lambda: store.update_status(dji_id, BatteryStatus.DISCHARGED),
            lambda: store.record_voltage(dji_id, 14.8),
            lambda: store.add_note(dji_id, "prop nick on landing"),
            lambda: store.record_maintenance(dji_id, "cleaned contacts"),
            lambda: store.complete_cycle(dji_id),
        ]
        for operation in operations:
            before = await store.ledger.count(dji_id)
            await operation()
            assert await store.ledger.count(dji_id) == before + 1

    @pytest.mark.parametrize("voltage", [0, -1, 0.0])
    async def test_non_positive_voltage_rejected(self, store: BatteryStore, dji_id, voltage):
        with pytest.raises(ValidationError):
            await store.record_voltage(dji_id, voltage, "bad probe")
        assert await store.ledger.count(dji_id) == 1

    async def test_blank_note_and_maintenance_rejected(self, store: BatteryStore, dji_id):
        with pytest.raises(ValidationError):
            await store.add_note(dji_id, "  ")
        with pytest.raises(ValidationError):
            await store.record_maintenance(dji_id, "")
        assert await store.ledger.count(dji_id) == 1

    async def test_ledger_writes_on_missing_battery_raise(self, store: BatteryStore):
        with pytest.raises(NotFoundError):
            await store.record_voltage(99, 12.0)
        with pytest.raises(NotFoundError):
            await store.add_note(99, "hello")
        with pytest.raises(NotFoundError):
            await store.record_maintenance(99, "balance")
        with pytest.raises(NotFoundError):
            await store.complete_cycle(99)
        assert await store.all_history() == []

    async def test_complete_cycle_increments_count(self, store: BatteryStore, dji_id):
        await store.complete_cycle(dji_id)
        entry = await store.complete_cycle(dji_id, "long flight")

        battery = await store.get_by_id(dji_id)
        assert battery.cycle_count == 2
        assert entry.payload.cycle_number == 2
        assert entry.description() == "Cycle #2 completed"

    async def test_update_details_corrects_cycle_count(self, store: BatteryStore, dji_id):
        await store.complete_cycle(dji_id)
        updated = await store.update_details(dji_id, cycle_count=0, notes="counter reset")

        assert updated.cycle_count == 0
        assert (await store.get_by_id(dji_id)).notes == "counter reset"
        last = (await store.history(dji_id))[-1]
        assert last.event_type == EventType.NOTE_ADDED
        assert last.notes == "Details updated: notes, cycle_count"

    async def test_update_details_rejects_invalid_values(self, store: BatteryStore, dji_id):
        with pytest.raises(ValidationError):
            await store.update_details(dji_id, cells=0)
        with pytest.raises(ValidationError):
            await store.update_details(dji_id, cycle_count=-1)
        with pytest.raises(ValidationError):
            await store.update_details(dji_id, status="STORAGE")
        assert (await store.get_by_id(dji_id)).cells == 4
        assert await store.ledger.count(dji_id) == 1

    async def test_update_details_without_change_writes_nothing(self, store: BatteryStore, dji_id):
        await store.update_details(dji_id, brand="DJI")
        assert await store.ledger.count(dji_id) == 1

    async def test_update_details_missing_id_is_silent(self, store: BatteryStore):
        assert await store.update_details(5, brand="Tattu") is None


@pytest.mark.unit
@pytest.mark.asyncio
class TestDelete:

    async def test_delete_cascades_ledger(self, store: BatteryStore, dji_id):
        await store.record_voltage(dji_id, 15.1)
        battery = await store.get_by_id(dji_id)

        assert await store.delete(battery) is True
        assert await store.get_by_id(dji_id) is None
        assert await store.history(dji_id) == []
        assert await store.all_history() == []

    async def test_delete_absent_battery_does_not_raise(self, store: BatteryStore, dji_id):
        await store.delete(dji_id)
        assert await store.delete(dji_id) is False
        assert await store.delete(12345) is False


@pytest.mark.unit
@pytest.mark.asyncio
class TestScenarios:

    async def test_dji_flight_scenario(self, store: BatteryStore, dji_fields):
        battery_id = await store.create(**dji_fields)
        await store.update_status(battery_id, BatteryStatus.DISCHARGED, "after flight")
        await store.record_voltage(battery_id, 15.2, "cell check")

        history = await store.history(battery_id)
        assert [e.event_type for e in history] == [
            EventType.STATUS_CHANGE, EventType.STATUS_CHANGE, EventType.VOLTAGE_READING,
        ]
        assert history[0].is_creation
        assert history[1].description() == "Status changed from CHARGED to DISCHARGED"
        assert history[1].notes == "after flight"
        assert history[2].description() == "Voltage reading: 15.20V"
        assert history[2].notes == "cell check"
        assert [e.timestamp for e in history] == sorted(e.timestamp for e in history)
        assert (await store.get_by_id(battery_id)).status == BatteryStatus.DISCHARGED

    async def test_concurrent_updates_on_one_battery_stay_in_sync(self, store: BatteryStore, dji_id):
        targets = [BatteryStatus.DISCHARGED, BatteryStatus.CHARGED, BatteryStatus.STORAGE] * 4
        await asyncio.gather(*(store.update_status(dji_id, t) for t in targets))

        history = await store.history(dji_id)
        assert len(history) == 1 + len(targets)
        # Each entry's previous status is the one the entry before it set
        for earlier, later in zip(history, history[1:]):
            assert later.payload.previous_status == earlier.payload.new_status
        assert (await store.get_by_id(dji_id)).status == history[-1].payload.new_status

    async def test_concurrent_writes_on_different_batteries(self, store: BatteryStore, dji_fields):
        ids = []
        for n in range(4):
            dji_fields["serial_number"] = f"SN10{n}"
            ids.append(await store.create(**dji_fields))

        await asyncio.gather(*(store.complete_cycle(battery_id) for battery_id in ids))

        for battery_id in ids:
            assert (await store.get_by_id(battery_id)).cycle_count == 1
            assert await store.ledger.count(battery_id) == 2

    async def test_id_locks_released_after_use(self, store: BatteryStore, dji_id):
        await asyncio.gather(*(store.update_status(9000 + n, BatteryStatus.STORAGE)
                               for n in range(200)))
        with pytest.raises(NotFoundError):
            await store.record_voltage(12345, 14.8)
        await asyncio.gather(*(store.complete_cycle(dji_id) for _ in range(5)))
        assert store._locks == {}

        await store.delete(dji_id)
        assert store._locks == {}
        assert await store.ledger.count(dji_id) == 0


@pytest.mark.unit
@pytest.mark.asyncio
class TestQueries:

    async def _fleet(self, store: BatteryStore, dji_fields):
        await store.create(**dji_fields)
        await store.create(**{**dji_fields, "brand": "Tattu", "model": "R-Line",
                              "serial_number": "TT-42"})
        samsung = await store.create(**{**dji_fields, "brand": "Samsung", "model": "35E",
                                        "serial_number": "sam-mavic-1",
                                        "battery_type": "LI_ION"})
        await store.update_status(samsung, BatteryStatus.STORAGE)

    async def test_snapshot_ordered_by_brand_model_id(self, store: BatteryStore, dji_fields):
        await self._fleet(store, dji_fields)
        brands = [b.brand for b in await store.snapshot()]
        assert brands == ["DJI", "Samsung", "Tattu"]

    async def test_search_is_case_insensitive_substring(self, store: BatteryStore, dji_fields):
        await self._fleet(store, dji_fields)

        async with store.search("MAVIC") as query:
            found = await query.current()
        assert {b.serial_number for b in found} == {"SN001", "sam-mavic-1"}

        async with store.search("tt-4") as query:
            assert [b.brand for b in await query.current()] == ["Tattu"]

        async with store.search("  ") as query:
            assert len(await query.current()) == 3

    async def test_search_narrowed_by_status(self, store: BatteryStore, dji_fields):
        await self._fleet(store, dji_fields)

        async with store.search("mavic", BatteryStatus.STORAGE) as query:
            assert [b.serial_number for b in await query.current()] == ["sam-mavic-1"]
        async with store.search("mavic", "CHARGED") as query:
            assert [b.serial_number for b in await query.current()] == ["SN001"]
        with pytest.raises(ValidationError):
            store.search("mavic", "FULL")
        assert store.feed.subscriber_count == 0

    async def test_filter_by_status(self, store: BatteryStore, dji_fields):
        await self._fleet(store, dji_fields)

        async with store.filter_by_status(BatteryStatus.STORAGE) as query:
            assert [b.brand for b in await query.current()] == ["Samsung"]
        async with store.filter_by_status(None) as query:
            assert len(await query.current()) == 3
        with pytest.raises(ValidationError):
            store.filter_by_status("FULL")

    async def test_get_all_emits_snapshot_then_updates(self, store: BatteryStore, dji_fields):
        query = store.get_all()
        assert await asyncio.wait_for(query.__anext__(), 1) == []

        battery_id = await store.create(**dji_fields)
        batteries = await asyncio.wait_for(query.__anext__(), 1)
        assert [b.id for b in batteries] == [battery_id]

        await store.update_status(battery_id, BatteryStatus.STORAGE)
        batteries = await asyncio.wait_for(query.__anext__(), 1)
        assert batteries[0].status == BatteryStatus.STORAGE

        query.close()
        with pytest.raises(StopAsyncIteration):
            await query.__anext__()
        assert store.feed.subscriber_count == 0

    async def test_history_query_follows_ledger_writes(self, store: BatteryStore, dji_id):
        fleet = store.get_all()
        history = store.query_history(dji_id)
        await fleet.__anext__()
        assert len(await history.__anext__()) == 1

        await store.record_voltage(dji_id, 16.1)
        assert len(await asyncio.wait_for(history.__anext__(), 1)) == 2

        # Ledger-only writes leave fleet queries quiet
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(fleet.__anext__(), 0.1)

        fleet.close()
        history.close()


@pytest.mark.unit
@pytest.mark.asyncio
class TestLedgerIntegrity:

    async def test_history_rows_cannot_be_updated(self, store: BatteryStore, dji_id, db_path):
        with pytest.raises(StoreError):
            async with get_db(db_path) as db:
                await db.execute("UPDATE battery_history SET notes = 'rewritten'")

        assert (await store.history(dji_id))[0].notes == CREATION_NOTE
