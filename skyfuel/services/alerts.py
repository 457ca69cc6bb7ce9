"""
SkyFuel Battery Ledger - Battery Alerts
Version: 1.0.0

Changelog:
v1.0.0 (2026-10-15): Charging, health, maintenance and cycle count alerts.
                      Dismissal is caller state, passed in explicitly.

Every function takes `today` so results are reproducible. Discharge and
maintenance dates come from the battery's ledger.
"""

import logging
from datetime import date
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from ..config import settings
from ..models.battery import Battery, BatteryStatus, BatteryType
from ..models.history import HistoryEntry, Maintenance, StatusChange
from ..models.statistics import AlertPriority, AlertType, BatteryAlert

logger = logging.getLogger(__name__)

# Health lost per completed cycle, and per year of age
CYCLE_WEAR = {
    BatteryType.LIPO: 0.25,
    BatteryType.LI_ION: 0.15,
    BatteryType.NIMH: 0.1,
    BatteryType.LIFE: 0.05,
    BatteryType.OTHER: 0.2,
}
AGE_WEAR = {
    BatteryType.LIPO: 10,
    BatteryType.LI_ION: 7,
    BatteryType.NIMH: 5,
    BatteryType.LIFE: 4,
    BatteryType.OTHER: 8,
}
DEFAULT_MAX_RECOMMENDED = 400


def recommended_max_cycles(battery_type: BatteryType) -> int:
    return settings.RECOMMENDED_MAX_CYCLES.get(battery_type.value, DEFAULT_MAX_RECOMMENDED)


def health_percentage(battery: Battery, today: date) -> int:
    """Estimated health 0-100 from cycle count and age"""
    age_years = (today - battery.purchase_date).days / 365.0
    wear = battery.cycle_count * CYCLE_WEAR[battery.battery_type]
    wear += age_years * AGE_WEAR[battery.battery_type]
    return max(0, min(100, 100 - int(wear)))


def _last_discharge_date(history: Sequence[HistoryEntry]) -> Optional[date]:
    for entry in reversed(history):
        payload = entry.payload
        if (isinstance(payload, StatusChange) and payload.previous_status is not None
                and payload.new_status == BatteryStatus.DISCHARGED):
            return entry.timestamp.date()
    return None


def _last_maintenance_date(history: Sequence[HistoryEntry]) -> Optional[date]:
    for entry in reversed(history):
        if isinstance(entry.payload, Maintenance):
            return entry.timestamp.date()
    return None


def _alert(battery: Battery, alert_type: AlertType, priority: AlertPriority,
           title: str, message: str) -> BatteryAlert:
    return BatteryAlert(
        battery_id=battery.id,
        battery_name=battery.display_name,
        type=alert_type,
        priority=priority,
        title=title,
        message=message,
    )


def _needs_charging(battery: Battery, history, today: date) -> Optional[BatteryAlert]:
    if battery.status != BatteryStatus.DISCHARGED:
        return None
    discharged_on = _last_discharge_date(history)
    if discharged_on is None:
        return None
    days = (today - discharged_on).days
    if days < settings.DISCHARGE_DAYS_WARNING:
        return None
    priority = AlertPriority.HIGH if days > settings.DISCHARGE_DAYS_HIGH else AlertPriority.MEDIUM
    return _alert(
        battery, AlertType.NEEDS_CHARGING, priority, "Battery needs charging",
        f"{battery.display_name} has been discharged for {days} days. "
        f"Recharge it to avoid degradation."
    )


def _low_health(battery: Battery, today: date) -> Optional[BatteryAlert]:
    health = health_percentage(battery, today)
    if health > settings.HEALTH_WARNING_THRESHOLD:
        return None
    if health < 10:
        priority = AlertPriority.CRITICAL
    elif health < 15:
        priority = AlertPriority.HIGH
    else:
        priority = AlertPriority.MEDIUM
    return _alert(
        battery, AlertType.LOW_HEALTH, priority, "Low battery health",
        f"{battery.display_name} is down to {health}% health. Consider replacing it."
    )


def _maintenance_due(battery: Battery, history, today: date) -> Optional[BatteryAlert]:
    last_check = _last_maintenance_date(history) or battery.purchase_date
    days = (today - last_check).days
    interval = settings.MAINTENANCE_INTERVAL_CYCLES
    if days >= settings.MAINTENANCE_INTERVAL_DAYS:
        reason = f"last check {days} days ago"
    elif battery.cycle_count > 0 and battery.cycle_count % interval == 0:
        reason = f"{battery.cycle_count} cycle milestone reached"
    else:
        return None
    return _alert(
        battery, AlertType.MAINTENANCE_DUE, AlertPriority.LOW, "Maintenance recommended",
        f"{battery.display_name} needs maintenance: {reason}"
    )


def _high_cycle_count(battery: Battery) -> Optional[BatteryAlert]:
    max_recommended = recommended_max_cycles(battery.battery_type)
    if battery.cycle_count < int(max_recommended * 0.8):
        return None
    percentage = int(battery.cycle_count / max_recommended * 100)
    if percentage > 120:
        priority = AlertPriority.HIGH
    elif percentage > 100:
        priority = AlertPriority.MEDIUM
    else:
        priority = AlertPriority.LOW
    return _alert(
        battery, AlertType.HIGH_CYCLE_COUNT, priority, "High cycle count",
        f"{battery.display_name} has {battery.cycle_count} cycles "
        f"(recommended max: {max_recommended}). Watch its performance."
    )


def check_battery_alerts(battery: Battery, history: Iterable[HistoryEntry],
                         today: date) -> List[BatteryAlert]:
    """All alerts that currently apply to one battery"""
    history = list(history)
    candidates = [
        _needs_charging(battery, history, today),
        _low_health(battery, today),
        _maintenance_due(battery, history, today),
        _high_cycle_count(battery),
    ]
    return [alert for alert in candidates if alert is not None]


def check_all_alerts(batteries: Iterable[Battery],
                     history_by_battery: Dict[int, Sequence[HistoryEntry]],
                     today: date,
                     dismissed: FrozenSet[Tuple[int, AlertType]] = frozenset()) -> List[BatteryAlert]:
    """Fleet alerts, most urgent first, minus the dismissed ones"""
    alerts = []
    for battery in batteries:
        for alert in check_battery_alerts(battery, history_by_battery.get(battery.id, ()), today):
            if (alert.battery_id, alert.type) not in dismissed:
                alerts.append(alert)
    alerts.sort(key=lambda alert: alert.priority, reverse=True)
    logger.debug(f"{len(alerts)} active alerts ({len(dismissed)} dismissed)")
    return alerts
