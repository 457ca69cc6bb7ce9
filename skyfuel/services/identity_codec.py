"""
SkyFuel Battery Ledger - Identity Codec
Version: 1.0.0

Changelog:
v1.0.0 (2026-10-09): Versioned pipe-delimited identity token for QR labels

Token layout (one text line):

    v1|<battery_id>|<serial_number>|<brand>|<model>

The delimiter is reserved: encode() rejects any field containing it, so
decode() never has to unescape anything.
"""

import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict

from ..errors import CodecError
from ..models.battery import Battery

logger = logging.getLogger(__name__)

TOKEN_VERSION = "v1"
DELIMITER = "|"
FIELD_COUNT = 5
_FORBIDDEN = (DELIMITER, "\r", "\n")


class BatteryIdentity(BaseModel):
    """What a label token carries"""
    model_config = ConfigDict(frozen=True)

    battery_id: int
    serial_number: str
    brand: str
    model: str


def _check_field(name: str, value: str) -> str:
    if not isinstance(value, str) or value == "":
        raise CodecError(f"{name} must be a non-empty string", CodecError.MISSING_FIELD)
    for char in _FORBIDDEN:
        if char in value:
            raise CodecError(f"{name} contains reserved character {char!r}", CodecError.INVALID_FIELD)
    return value


def encode(battery_id: int, serial_number: str, brand: str, model: str) -> str:
    """Build the identity token for a battery label"""
    if isinstance(battery_id, bool) or not isinstance(battery_id, int) or battery_id <= 0:
        raise CodecError(f"battery id must be a positive integer, got {battery_id!r}",
                         CodecError.INVALID_ID)
    fields = [
        TOKEN_VERSION,
        str(battery_id),
        _check_field("serial_number", serial_number),
        _check_field("brand", brand),
        _check_field("model", model),
    ]
    return DELIMITER.join(fields)


def encode_battery(battery: Battery) -> str:
    return encode(battery.id, battery.serial_number, battery.brand, battery.model)


def decode(token: str) -> BatteryIdentity:
    """
    Parse a scanned token.

    Raises:
        CodecError: unsupported_version, malformed, missing_field or invalid_id
    """
    if not isinstance(token, str):
        raise CodecError("token must be text", CodecError.MALFORMED)
    line = token.rstrip("\r\n")

    parts = line.split(DELIMITER)
    if parts[0] != TOKEN_VERSION:
        raise CodecError(f"unsupported token version {parts[0]!r}", CodecError.UNSUPPORTED_VERSION)
    if len(parts) != FIELD_COUNT or "\r" in line or "\n" in line:
        raise CodecError(f"expected {FIELD_COUNT} fields, got {len(parts)}", CodecError.MALFORMED)

    _, raw_id, serial_number, brand, model = parts
    for name, value in (("battery_id", raw_id), ("serial_number", serial_number),
                        ("brand", brand), ("model", model)):
        if value == "":
            raise CodecError(f"{name} is empty", CodecError.MISSING_FIELD)

    if not raw_id.isascii() or not raw_id.isdigit() or int(raw_id) <= 0:
        raise CodecError(f"invalid battery id {raw_id!r}", CodecError.INVALID_ID)

    return BatteryIdentity(
        battery_id=int(raw_id),
        serial_number=serial_number,
        brand=brand,
        model=model,
    )


def short_id(battery_id: int) -> str:
    """Human-readable label text, e.g. SF-007"""
    return f"SF-{battery_id % 1000:03d}"


async def resolve(store, token: str) -> Optional[Battery]:
    """Decode a scanned token and look the battery up; None if it is gone"""
    identity = decode(token)
    battery = await store.get_by_id(identity.battery_id)
    if battery is None:
        logger.info(f"Scanned battery {identity.battery_id} no longer exists")
        return None
    if battery.serial_number != identity.serial_number:
        logger.warning(
            f"Scanned serial {identity.serial_number} does not match battery "
            f"{battery.id} ({battery.serial_number})"
        )
    return battery
