"""
SkyFuel Battery Ledger - Battery Models
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-14): BatteryUpdate for detail edits and cycle count correction
v1.0.0 (2026-10-06): Initial battery models
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from enum import Enum
from typing import Optional
from datetime import date

from ..errors import ValidationError


class BatteryType(str, Enum):
    """Battery chemistry"""
    LIPO = "LIPO"
    LI_ION = "LI_ION"
    NIMH = "NIMH"
    LIFE = "LIFE"
    OTHER = "OTHER"


class BatteryStatus(str, Enum):
    """Lifecycle status. Every status can be reached from every other."""
    CHARGED = "CHARGED"
    DISCHARGED = "DISCHARGED"
    STORAGE = "STORAGE"
    OUT_OF_SERVICE = "OUT_OF_SERVICE"


class BatteryFields(BaseModel):
    """Identity and physical attributes supplied by the caller"""
    brand: str = Field(..., description="Manufacturer")
    model: str = Field(..., description="Model name")
    serial_number: str = Field(..., description="Serial number (soft-unique)")
    battery_type: BatteryType = Field(..., description="Chemistry")
    cells: int = Field(..., gt=0, description="Number of cells")
    capacity: int = Field(..., gt=0, description="Capacity in mAh")
    purchase_date: date = Field(..., description="Purchase date")
    notes: str = Field(default="", description="Free text notes")

    @field_validator("brand", "model", "serial_number")
    @classmethod
    def _not_blank(cls, value: str, info) -> str:
        if not value.strip():
            raise ValueError(f"{info.field_name} must not be blank")
        return value


class Battery(BatteryFields):
    """Persisted battery record with its current lifecycle state"""
    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=1, description="Store-assigned battery ID")
    status: BatteryStatus = Field(default=BatteryStatus.CHARGED)
    cycle_count: int = Field(default=0, ge=0, description="Completed charge cycles")

    @property
    def display_name(self) -> str:
        return f"{self.brand} {self.model}"


class BatteryUpdate(BaseModel):
    """Partial edit of a battery's details. Status is changed via update_status."""
    model_config = ConfigDict(extra="forbid")

    brand: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None
    battery_type: Optional[BatteryType] = None
    cells: Optional[int] = None
    capacity: Optional[int] = None
    purchase_date: Optional[date] = None
    notes: Optional[str] = None
    cycle_count: Optional[int] = None


def validate_model(model_cls, data: dict):
    """Validate data into model_cls, raising the ledger's ValidationError"""
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as e:
        messages = []
        for err in e.errors():
            location = ".".join(str(part) for part in err["loc"])
            messages.append(f"{location}: {err['msg']}" if location else err["msg"])
        raise ValidationError("; ".join(messages), errors=messages) from e
