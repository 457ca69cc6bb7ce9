"""Tests for history entries and the ledger service."""

from datetime import datetime

import pytest

from skyfuel.errors import ValidationError
from skyfuel.models.battery import BatteryStatus, validate_model
from skyfuel.models.history import EventImpact, EventType, HistoryEntry
from skyfuel.services.battery_store import BatteryStore


def _entry(payload: dict, notes: str = "") -> HistoryEntry:
    return validate_model(HistoryEntry, {
        "id": 1,
        "battery_id": 1,
        "timestamp": datetime(2026, 10, 1, 12, 0),
        "payload": payload,
        "notes": notes,
    })


def _status(previous, new) -> HistoryEntry:
    return _entry({"event_type": "STATUS_CHANGE", "previous_status": previous, "new_status": new})


@pytest.mark.unit
class TestDescription:

    def test_status_change(self):
        assert _status("CHARGED", "DISCHARGED").description() == \
            "Status changed from CHARGED to DISCHARGED"

    def test_creation_marker(self):
        assert _status(None, "CHARGED").description() == "Battery added"

    def test_cycle(self):
        assert _entry({"event_type": "CYCLE_COMPLETED", "cycle_number": 23}).description() == \
            "Cycle #23 completed"

    def test_voltage_has_two_decimals(self):
        assert _entry({"event_type": "VOLTAGE_READING", "voltage": 15.2}).description() == \
            "Voltage reading: 15.20V"

    def test_note_and_maintenance(self):
        assert _entry({"event_type": "NOTE_ADDED"}, "x").description() == "Note added"
        assert _entry({"event_type": "MAINTENANCE"}, "x").description() == "Maintenance performed"


@pytest.mark.unit
class TestImpact:

    @pytest.mark.parametrize("new_status,impact", [
        ("CHARGED", EventImpact.POSITIVE),
        ("STORAGE", EventImpact.POSITIVE),
        ("OUT_OF_SERVICE", EventImpact.NEGATIVE),
        ("DISCHARGED", EventImpact.NEUTRAL),
    ])
    def test_status_change_by_target(self, new_status, impact):
        assert _status("DISCHARGED", new_status).impact() == impact

    def test_creation_is_neutral(self):
        assert _status(None, "CHARGED").impact() == EventImpact.NEUTRAL

    def test_cycle_is_negative(self):
        assert _entry({"event_type": "CYCLE_COMPLETED", "cycle_number": 1}).impact() == \
            EventImpact.NEGATIVE

    def test_other_events_are_neutral(self):
        assert _entry({"event_type": "VOLTAGE_READING", "voltage": 4.2}).impact() == EventImpact.NEUTRAL
        assert _entry({"event_type": "NOTE_ADDED"}, "n").impact() == EventImpact.NEUTRAL
        assert _entry({"event_type": "MAINTENANCE"}, "m").impact() == EventImpact.NEUTRAL


@pytest.mark.unit
class TestPayloadRules:

    @pytest.mark.parametrize("payload,notes", [
        ({"event_type": "VOLTAGE_READING"}, ""),
        ({"event_type": "VOLTAGE_READING", "voltage": 0}, ""),
        ({"event_type": "CYCLE_COMPLETED"}, ""),
        ({"event_type": "STATUS_CHANGE", "previous_status": "CHARGED"}, ""),
        ({"event_type": "STATUS_CHANGE", "new_status": "FULL"}, ""),
        ({"event_type": "NOTE_ADDED"}, "   "),
        ({"event_type": "MAINTENANCE"}, ""),
        ({"event_type": "RECALLED"}, "x"),
    ])
    def test_illegal_payloads_rejected(self, payload, notes):
        with pytest.raises(ValidationError):
            _entry(payload, notes)

    def test_event_type_property(self):
        entry = _entry({"event_type": "VOLTAGE_READING", "voltage": 3.7})
        assert entry.event_type is EventType.VOLTAGE_READING

    def test_from_row_rebuilds_payload(self):
        entry = HistoryEntry.from_row({
            "id": 9, "battery_id": 2, "timestamp": "2026-10-01T08:30:00.000001",
            "event_type": "STATUS_CHANGE", "previous_status": "STORAGE",
            "new_status": "CHARGED", "voltage": None, "cycle_number": None, "notes": None,
        })
        assert entry.payload.previous_status == BatteryStatus.STORAGE
        assert entry.payload.new_status == BatteryStatus.CHARGED
        assert entry.notes == ""
        assert entry.timestamp == datetime(2026, 10, 1, 8, 30, 0, 1)


@pytest.mark.unit
@pytest.mark.asyncio
class TestLedgerService:

    async def test_entries_are_oldest_first_per_battery(self, store: BatteryStore, dji_fields):
        first = await store.create(**dji_fields)
        second = await store.create(**{**dji_fields, "serial_number": "SN002"})
        await store.record_voltage(first, 15.0)
        await store.add_note(second, "spare")
        await store.record_voltage(first, 14.1)

        voltages = [e.payload.voltage for e in await store.ledger.list_by_battery(first)
                    if e.event_type == EventType.VOLTAGE_READING]
        assert voltages == [15.0, 14.1]
        assert await store.ledger.count(second) == 2

        everything = await store.ledger.list_all()
        assert len(everything) == 5
        assert [e.id for e in everything] == sorted(e.id for e in everything)

    async def test_unknown_battery_has_empty_ledger(self, store: BatteryStore):
        assert await store.ledger.list_by_battery(77) == []

    async def test_live_query_on_deleted_battery_empties(self, store: BatteryStore, dji_id):
        query = store.ledger.query_by_battery(dji_id)
        assert len(await query.__anext__()) == 1

        await store.delete(dji_id)
        assert await query.__anext__() == []
        query.close()
