"""
SkyFuel Battery Ledger - Fleet API Endpoints
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-17): Fleet report PDF, dismissed alerts filter
v1.0.0 (2026-10-12): Statistics, alerts, label sheet and QR scan lookup
"""

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel
from typing import List, Optional
from datetime import date
from collections import defaultdict
import logging

from ..config import settings
from ..errors import ValidationError
from ..models.statistics import AlertType
from ..services import alerts, fleet_report, identity_codec, label_sheet
from ..services.battery_store import BatteryStore
from ..services.statistics import compute_statistics
from .deps import get_store

router = APIRouter(tags=["fleet"])
logger = logging.getLogger(__name__)


class ScanIn(BaseModel):
    token: str


def _parse_dismissed(values: List[str]):
    """'12:NEEDS_CHARGING' -> (12, AlertType.NEEDS_CHARGING)"""
    dismissed = set()
    for value in values:
        battery_id, _, alert_type = value.partition(":")
        try:
            dismissed.add((int(battery_id), AlertType(alert_type)))
        except ValueError:
            raise ValidationError(f"dismissed: invalid entry '{value}' (expected <id>:<ALERT_TYPE>)")
    return frozenset(dismissed)


async def _fleet_alerts(store: BatteryStore, today: date, dismissed=frozenset()):
    batteries = await store.snapshot()
    history_by_battery = defaultdict(list)
    for entry in await store.all_history():
        history_by_battery[entry.battery_id].append(entry)
    return alerts.check_all_alerts(batteries, history_by_battery, today, dismissed)


@router.get("/statistics")
async def get_statistics(max_cycles: int = settings.DEFAULT_MAX_CYCLES,
                         include_history: bool = False,
                         store: BatteryStore = Depends(get_store)):
    batteries = await store.snapshot()
    history = await store.all_history() if include_history else None
    stats = compute_statistics(batteries, max_cycles, history)
    result = stats.model_dump(mode="json")
    result["percentages"] = {
        "charged": stats.charged_percentage(),
        "discharged": stats.discharged_percentage(),
        "storage": stats.storage_percentage(),
        "out_of_service": stats.out_of_service_percentage(),
    }
    return result


@router.get("/alerts")
async def get_alerts(dismissed: List[str] = Query(default=[]),
                     store: BatteryStore = Depends(get_store)):
    """Active alerts, most urgent first"""
    fleet_alerts = await _fleet_alerts(store, date.today(), _parse_dismissed(dismissed))
    return [alert.model_dump(mode="json") for alert in fleet_alerts]


@router.get("/labels")
async def get_label_sheet(status: Optional[str] = None,
                          store: BatteryStore = Depends(get_store)):
    """QR label sheet for the whole fleet (or one status)"""
    async with store.filter_by_status(status) as query:
        batteries = await query.current()
    pdf = label_sheet.render_label_sheet(batteries)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": 'attachment; filename="skyfuel_labels.pdf"'},
    )


@router.get("/reports/fleet")
async def get_fleet_report(max_cycles: int = settings.DEFAULT_MAX_CYCLES,
                           store: BatteryStore = Depends(get_store)):
    today = date.today()
    stats = compute_statistics(await store.snapshot(), max_cycles)
    pdf = fleet_report.render_fleet_report(stats, await _fleet_alerts(store, today), today)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition":
                 f'attachment; filename="skyfuel_fleet_{today:%Y%m%d}.pdf"'},
    )


@router.post("/scan")
async def scan(data: ScanIn, store: BatteryStore = Depends(get_store)):
    """Decode a scanned label token and look the battery up"""
    identity = identity_codec.decode(data.token)
    battery = await identity_codec.resolve(store, data.token)
    return {
        "identity": identity.model_dump(),
        "short_id": identity_codec.short_id(identity.battery_id),
        "battery": battery.model_dump(mode="json") if battery else None,
    }
