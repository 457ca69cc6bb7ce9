"""
SkyFuel Battery Ledger - Battery API Endpoints
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-16): Cycles, detail edits, token/label and per-battery alerts
v1.0.0 (2026-10-11): Initial battery CRUD, status/voltage/notes/maintenance
"""

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel
from typing import Optional
from datetime import date
import logging

from ..models.battery import BatteryFields, BatteryStatus, validate_model
from ..models.history import HistoryEntry
from ..services import alerts, identity_codec, label_sheet
from ..services.battery_store import BatteryStore
from .deps import get_store

router = APIRouter(prefix="/batteries", tags=["batteries"])
logger = logging.getLogger(__name__)


class StatusUpdate(BaseModel):
    status: str
    notes: str = ""


class VoltageIn(BaseModel):
    voltage: float
    notes: str = ""


class NoteIn(BaseModel):
    note: str


class MaintenanceIn(BaseModel):
    description: str


class CycleIn(BaseModel):
    notes: str = ""


def entry_out(entry: HistoryEntry) -> dict:
    """History entry plus its rendered description and impact"""
    data = entry.model_dump(mode="json")
    data["event_type"] = entry.event_type.value
    data["description"] = entry.description()
    data["impact"] = entry.impact().value
    return data


async def _require(store: BatteryStore, battery_id: int):
    battery = await store.get_by_id(battery_id)
    if battery is None:
        raise HTTPException(status_code=404, detail=f"Battery {battery_id} not found")
    return battery


@router.get("/")
async def list_batteries(q: Optional[str] = None, status: Optional[BatteryStatus] = None,
                         store: BatteryStore = Depends(get_store)):
    """List batteries, optionally searched and/or filtered by status"""
    if q:
        batteries = await store.matching(q, status)
    else:
        batteries = await store.snapshot(status)
    return [battery.model_dump(mode="json") for battery in batteries]


@router.post("/", status_code=201)
async def create_battery(data: dict, store: BatteryStore = Depends(get_store)):
    """Validation failures use the domain error shape, like PATCH"""
    fields = validate_model(BatteryFields, data)
    battery_id = await store.create(**fields.model_dump())
    battery = await store.get_by_id(battery_id)
    return battery.model_dump(mode="json")


@router.get("/{battery_id}")
async def get_battery(battery_id: int, store: BatteryStore = Depends(get_store)):
    battery = await _require(store, battery_id)
    return battery.model_dump(mode="json")


@router.patch("/{battery_id}")
async def update_battery(battery_id: int, changes: dict, store: BatteryStore = Depends(get_store)):
    """Edit details or correct the cycle count"""
    battery = await store.update_details(battery_id, **changes)
    if battery is None:
        raise HTTPException(status_code=404, detail=f"Battery {battery_id} not found")
    return battery.model_dump(mode="json")


@router.delete("/{battery_id}", status_code=204)
async def delete_battery(battery_id: int, store: BatteryStore = Depends(get_store)):
    """Idempotent: deleting an absent battery still succeeds"""
    await store.delete(battery_id)
    return Response(status_code=204)


@router.post("/{battery_id}/status")
async def update_status(battery_id: int, data: StatusUpdate,
                        store: BatteryStore = Depends(get_store)):
    entry = await store.update_status(battery_id, data.status, data.notes)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"Battery {battery_id} not found")
    return entry_out(entry)


@router.post("/{battery_id}/voltage")
async def record_voltage(battery_id: int, data: VoltageIn,
                         store: BatteryStore = Depends(get_store)):
    entry = await store.record_voltage(battery_id, data.voltage, data.notes)
    return entry_out(entry)


@router.post("/{battery_id}/notes")
async def add_note(battery_id: int, data: NoteIn, store: BatteryStore = Depends(get_store)):
    entry = await store.add_note(battery_id, data.note)
    return entry_out(entry)


@router.post("/{battery_id}/maintenance")
async def record_maintenance(battery_id: int, data: MaintenanceIn,
                             store: BatteryStore = Depends(get_store)):
    entry = await store.record_maintenance(battery_id, data.description)
    return entry_out(entry)


@router.post("/{battery_id}/cycles")
async def complete_cycle(battery_id: int, data: Optional[CycleIn] = None,
                         store: BatteryStore = Depends(get_store)):
    entry = await store.complete_cycle(battery_id, data.notes if data else "")
    return entry_out(entry)


@router.get("/{battery_id}/history")
async def get_history(battery_id: int, store: BatteryStore = Depends(get_store)):
    """Ledger of one battery, oldest first. Empty for unknown ids."""
    return [entry_out(entry) for entry in await store.history(battery_id)]


@router.get("/{battery_id}/token")
async def get_token(battery_id: int, store: BatteryStore = Depends(get_store)):
    battery = await _require(store, battery_id)
    return {
        "token": identity_codec.encode_battery(battery),
        "short_id": identity_codec.short_id(battery.id),
    }


@router.get("/{battery_id}/label")
async def get_label(battery_id: int, store: BatteryStore = Depends(get_store)):
    """Single-label PDF"""
    battery = await _require(store, battery_id)
    pdf = label_sheet.render_label_sheet([battery])
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition":
                 f'attachment; filename="label_{identity_codec.short_id(battery.id)}.pdf"'},
    )


@router.get("/{battery_id}/alerts")
async def get_battery_alerts(battery_id: int, store: BatteryStore = Depends(get_store)):
    battery = await _require(store, battery_id)
    today = date.today()
    history = await store.history(battery_id)
    return {
        "health_percentage": alerts.health_percentage(battery, today),
        "alerts": [a.model_dump(mode="json") for a in
                   alerts.check_battery_alerts(battery, history, today)],
    }
