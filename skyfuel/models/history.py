"""
SkyFuel Battery Ledger - History Entry Models
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-14): Payload is now a tagged union on event_type; illegal
                      combinations (voltage reading without voltage, etc.)
                      fail validation
v1.0.0 (2026-10-06): Initial history models
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from enum import Enum
from typing import Annotated, Literal, Optional, Union
from datetime import datetime

from .battery import BatteryStatus


class EventType(str, Enum):
    """Kind of fact recorded in a battery's ledger"""
    STATUS_CHANGE = "STATUS_CHANGE"
    CYCLE_COMPLETED = "CYCLE_COMPLETED"
    VOLTAGE_READING = "VOLTAGE_READING"
    NOTE_ADDED = "NOTE_ADDED"
    MAINTENANCE = "MAINTENANCE"


class EventImpact(str, Enum):
    """Effect of an event on the battery's health"""
    POSITIVE = "POSITIVE"
    NEUTRAL = "NEUTRAL"
    NEGATIVE = "NEGATIVE"


class StatusChange(BaseModel):
    """previous_status is None only for the creation marker"""
    model_config = ConfigDict(frozen=True)

    event_type: Literal["STATUS_CHANGE"] = "STATUS_CHANGE"
    previous_status: Optional[BatteryStatus] = None
    new_status: BatteryStatus


class CycleCompleted(BaseModel):
    model_config = ConfigDict(frozen=True)

    event_type: Literal["CYCLE_COMPLETED"] = "CYCLE_COMPLETED"
    cycle_number: int = Field(..., gt=0)


class VoltageReading(BaseModel):
    model_config = ConfigDict(frozen=True)

    event_type: Literal["VOLTAGE_READING"] = "VOLTAGE_READING"
    voltage: float = Field(..., gt=0, description="Measured pack voltage in volts")


class NoteAdded(BaseModel):
    model_config = ConfigDict(frozen=True)

    event_type: Literal["NOTE_ADDED"] = "NOTE_ADDED"


class Maintenance(BaseModel):
    model_config = ConfigDict(frozen=True)

    event_type: Literal["MAINTENANCE"] = "MAINTENANCE"


EventPayload = Annotated[
    Union[StatusChange, CycleCompleted, VoltageReading, NoteAdded, Maintenance],
    Field(discriminator="event_type"),
]

_NOTES_REQUIRED = (EventType.NOTE_ADDED, EventType.MAINTENANCE)


class HistoryEntry(BaseModel):
    """One immutable fact about one battery"""
    model_config = ConfigDict(frozen=True)

    id: int
    battery_id: int
    timestamp: datetime
    payload: EventPayload
    notes: str = ""

    @model_validator(mode="after")
    def _notes_present(self):
        if self.payload.event_type in _NOTES_REQUIRED and not self.notes.strip():
            raise ValueError(f"{self.payload.event_type} requires non-blank notes")
        return self

    @property
    def event_type(self) -> EventType:
        return EventType(self.payload.event_type)

    @property
    def is_creation(self) -> bool:
        return isinstance(self.payload, StatusChange) and self.payload.previous_status is None

    def description(self) -> str:
        """Human-readable rendering of the event"""
        payload = self.payload
        if isinstance(payload, StatusChange):
            if payload.previous_status is None:
                return "Battery added"
            return (f"Status changed from {payload.previous_status.value} "
                    f"to {payload.new_status.value}")
        if isinstance(payload, CycleCompleted):
            return f"Cycle #{payload.cycle_number} completed"
        if isinstance(payload, VoltageReading):
            return f"Voltage reading: {payload.voltage:.2f}V"
        if isinstance(payload, NoteAdded):
            return "Note added"
        return "Maintenance performed"

    def impact(self) -> EventImpact:
        """Classify the event as good, neutral or bad for the battery"""
        payload = self.payload
        if isinstance(payload, StatusChange):
            if payload.previous_status is None:
                return EventImpact.NEUTRAL
            if payload.new_status in (BatteryStatus.CHARGED, BatteryStatus.STORAGE):
                return EventImpact.POSITIVE
            if payload.new_status == BatteryStatus.OUT_OF_SERVICE:
                return EventImpact.NEGATIVE
            return EventImpact.NEUTRAL
        if isinstance(payload, CycleCompleted):
            return EventImpact.NEGATIVE
        return EventImpact.NEUTRAL

    @classmethod
    def from_row(cls, row: dict) -> "HistoryEntry":
        """Build an entry from a battery_history row"""
        payload = {"event_type": row["event_type"]}
        for column in ("previous_status", "new_status", "voltage", "cycle_number"):
            if row.get(column) is not None:
                payload[column] = row[column]
        return cls(
            id=row["id"],
            battery_id=row["battery_id"],
            timestamp=row["timestamp"],
            payload=payload,
            notes=row.get("notes") or "",
        )
