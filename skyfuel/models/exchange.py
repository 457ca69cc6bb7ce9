"""
SkyFuel Battery Ledger - Data Exchange Models
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-16): Wire records with camelCase aliases; embedded history
                      records are checked against the ledger payload rules
v1.0.0 (2026-10-10): Export/import formats and result models
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from enum import Enum
from typing import List, Optional
from datetime import date, datetime

from .battery import Battery, BatteryFields, BatteryStatus, BatteryType, validate_model
from .history import EventType, HistoryEntry

# Flat battery columns, in export order
BATTERY_COLUMNS = [
    "id", "brand", "model", "serialNumber", "type", "cells", "capacity",
    "purchaseDate", "status", "cycleCount", "notes",
]


class ExportFormat(str, Enum):
    JSON = "json"
    CSV = "csv"

    @property
    def extension(self) -> str:
        return self.value


class HistoryRecord(BaseModel):
    """One ledger entry as it appears in a JSON export"""
    model_config = ConfigDict(populate_by_name=True)

    timestamp: datetime
    event_type: EventType = Field(..., alias="eventType")
    previous_status: Optional[BatteryStatus] = Field(None, alias="previousStatus")
    new_status: Optional[BatteryStatus] = Field(None, alias="newStatus")
    voltage: Optional[float] = None
    cycle_number: Optional[int] = Field(None, alias="cycleNumber")
    notes: str = ""

    @field_validator("notes", mode="before")
    @classmethod
    def _null_notes(cls, value):
        return "" if value is None else value

    @classmethod
    def from_entry(cls, entry: HistoryEntry) -> "HistoryRecord":
        payload = entry.payload
        return cls(
            timestamp=entry.timestamp,
            event_type=entry.event_type,
            previous_status=getattr(payload, "previous_status", None),
            new_status=getattr(payload, "new_status", None),
            voltage=getattr(payload, "voltage", None),
            cycle_number=getattr(payload, "cycle_number", None),
            notes=entry.notes,
        )

    def to_entry(self, battery_id: int = 0) -> HistoryEntry:
        """Check the record against the ledger's payload rules"""
        payload = {"event_type": self.event_type.value}
        for name in ("previous_status", "new_status", "voltage", "cycle_number"):
            value = getattr(self, name)
            if value is not None:
                payload[name] = value
        return validate_model(HistoryEntry, {
            "id": 0,
            "battery_id": battery_id,
            "timestamp": self.timestamp,
            "payload": payload,
            "notes": self.notes,
        })


class BatteryRecord(BaseModel):
    """One battery as it appears in an export file"""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = None
    brand: str
    model: str
    serial_number: str = Field(..., alias="serialNumber")
    battery_type: BatteryType = Field(..., alias="type")
    cells: int
    capacity: int
    purchase_date: date = Field(..., alias="purchaseDate")
    status: BatteryStatus = BatteryStatus.CHARGED
    cycle_count: int = Field(0, ge=0, alias="cycleCount")
    notes: str = ""
    history: Optional[List[HistoryRecord]] = None

    @field_validator("notes", mode="before")
    @classmethod
    def _null_notes(cls, value):
        return "" if value is None else value

    @classmethod
    def from_battery(cls, battery: Battery,
                     history: Optional[List[HistoryEntry]] = None) -> "BatteryRecord":
        return cls(
            id=battery.id,
            brand=battery.brand,
            model=battery.model,
            serial_number=battery.serial_number,
            battery_type=battery.battery_type,
            cells=battery.cells,
            capacity=battery.capacity,
            purchase_date=battery.purchase_date,
            status=battery.status,
            cycle_count=battery.cycle_count,
            notes=battery.notes,
            history=None if history is None else [HistoryRecord.from_entry(e) for e in history],
        )

    def to_fields(self) -> BatteryFields:
        return validate_model(BatteryFields, {
            "brand": self.brand,
            "model": self.model,
            "serial_number": self.serial_number,
            "battery_type": self.battery_type,
            "cells": self.cells,
            "capacity": self.capacity,
            "purchase_date": self.purchase_date,
            "notes": self.notes,
        })

    def flat(self) -> dict:
        """CSV row keyed by BATTERY_COLUMNS"""
        data = self.model_dump(mode="json", by_alias=True, exclude={"history"})
        return {column: data[column] for column in BATTERY_COLUMNS}


class ExportResult(BaseModel):
    content: str
    file_name: str
    battery_count: int = Field(..., ge=0)


class ImportResult(BaseModel):
    """Outcome of a reconciled import; every record is imported or skipped"""
    imported_count: int = Field(..., ge=0)
    skipped_count: int = Field(..., ge=0)
    total_in_file: int = Field(..., ge=0)

    @model_validator(mode="after")
    def _counts_add_up(self):
        if self.imported_count + self.skipped_count != self.total_in_file:
            raise ValueError("imported_count + skipped_count must equal total_in_file")
        return self
