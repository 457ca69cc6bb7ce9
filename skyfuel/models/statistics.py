"""
SkyFuel Battery Ledger - Statistics and Alert Models
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-15): Health buckets, per-brand/per-type cycle means, ledger
                      derived event counts; BatteryAlert models
v1.0.0 (2026-10-06): Initial fleet statistics model
"""

from pydantic import BaseModel, Field
from enum import Enum
from typing import Dict, Optional

from .battery import Battery, BatteryType


class BatteryStatistics(BaseModel):
    """Fleet-wide metrics over one snapshot of batteries"""
    total_count: int = 0
    charged_count: int = 0
    discharged_count: int = 0
    storage_count: int = 0
    out_of_service_count: int = 0
    average_cycle_count: float = 0.0

    cycles_by_brand: Dict[str, float] = Field(default_factory=dict)
    cycles_by_type: Dict[BatteryType, float] = Field(default_factory=dict)

    # Health buckets relative to max_cycles
    max_cycles: int = 200
    healthy_count: int = 0
    warning_count: int = 0
    critical_count: int = 0

    oldest_battery: Optional[Battery] = None
    most_used_battery: Optional[Battery] = None

    # Only filled when ledgers are supplied
    event_counts: Dict[str, int] = Field(default_factory=dict)
    average_voltage: Optional[float] = None

    def _percentage(self, count: int) -> float:
        if self.total_count == 0:
            return 0.0
        return count / self.total_count * 100

    def charged_percentage(self) -> float:
        return self._percentage(self.charged_count)

    def discharged_percentage(self) -> float:
        return self._percentage(self.discharged_count)

    def storage_percentage(self) -> float:
        return self._percentage(self.storage_count)

    def out_of_service_percentage(self) -> float:
        return self._percentage(self.out_of_service_count)


class AlertType(str, Enum):
    """Alert kinds raised for a battery"""
    NEEDS_CHARGING = "NEEDS_CHARGING"      # discharged for too long
    LOW_HEALTH = "LOW_HEALTH"
    MAINTENANCE_DUE = "MAINTENANCE_DUE"
    HIGH_CYCLE_COUNT = "HIGH_CYCLE_COUNT"


class AlertPriority(int, Enum):
    """Ordered so that sorting descending puts urgent alerts first"""
    LOW = 0
    MEDIUM = 1
    HIGH = 2
    CRITICAL = 3


class BatteryAlert(BaseModel):
    battery_id: int
    battery_name: str
    type: AlertType
    priority: AlertPriority
    title: str
    message: str
