"""
SkyFuel Battery Ledger - Fleet Statistics
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-15): Per-type means, ledger-derived event counts and mean voltage
v1.0.0 (2026-10-08): Initial status counts, health buckets, oldest/most used

Pure functions over a snapshot. Nothing here reads the clock or the database.
"""

from collections import Counter, defaultdict
from typing import Dict, Iterable, List, Optional, Sequence

from ..errors import ValidationError
from ..models.battery import Battery, BatteryStatus
from ..models.history import HistoryEntry, VoltageReading
from ..models.statistics import BatteryStatistics

HEALTHY_RATIO = 0.5
CRITICAL_RATIO = 0.8


def _mean(values: Sequence[int]) -> float:
    return sum(values) / len(values) if values else 0.0


def _grouped_means(batteries: Iterable[Battery], key) -> Dict:
    groups = defaultdict(list)
    for battery in batteries:
        groups[key(battery)].append(battery.cycle_count)
    return {group: _mean(cycles) for group, cycles in groups.items()}


def health_bucket(cycle_count: int, max_cycles: int) -> str:
    """'healthy', 'warning' or 'critical' for one cycle count"""
    if cycle_count < HEALTHY_RATIO * max_cycles:
        return "healthy"
    if cycle_count < CRITICAL_RATIO * max_cycles:
        return "warning"
    return "critical"


def compute_statistics(batteries: Sequence[Battery], max_cycles: int = 200,
                       history: Optional[Iterable[HistoryEntry]] = None) -> BatteryStatistics:
    """
    Aggregate fleet metrics.

    Args:
        batteries: snapshot of the fleet
        max_cycles: health bucket threshold, must be > 0
        history: optional ledger entries for event counts and mean voltage

    Returns:
        BatteryStatistics
    """
    if max_cycles <= 0:
        raise ValidationError(f"max_cycles must be > 0, got {max_cycles}")

    batteries = list(batteries)
    status_counts = Counter(battery.status for battery in batteries)
    buckets = Counter(health_bucket(battery.cycle_count, max_cycles) for battery in batteries)

    oldest = None
    most_used = None
    if batteries:
        oldest = min(batteries, key=lambda b: (b.purchase_date, b.id))
        most_used = min(batteries, key=lambda b: (-b.cycle_count, b.id))

    stats = BatteryStatistics(
        total_count=len(batteries),
        charged_count=status_counts[BatteryStatus.CHARGED],
        discharged_count=status_counts[BatteryStatus.DISCHARGED],
        storage_count=status_counts[BatteryStatus.STORAGE],
        out_of_service_count=status_counts[BatteryStatus.OUT_OF_SERVICE],
        average_cycle_count=_mean([battery.cycle_count for battery in batteries]),
        cycles_by_brand=_grouped_means(batteries, lambda b: b.brand),
        cycles_by_type=_grouped_means(batteries, lambda b: b.battery_type),
        max_cycles=max_cycles,
        healthy_count=buckets["healthy"],
        warning_count=buckets["warning"],
        critical_count=buckets["critical"],
        oldest_battery=oldest,
        most_used_battery=most_used,
    )

    if history is not None:
        entries: List[HistoryEntry] = list(history)
        voltages = [entry.payload.voltage for entry in entries
                    if isinstance(entry.payload, VoltageReading)]
        stats.event_counts = dict(Counter(entry.event_type.value for entry in entries))
        stats.average_voltage = _mean(voltages) if voltages else None

    return stats
