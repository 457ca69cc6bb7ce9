"""
SkyFuel Battery Ledger - Error Taxonomy
Version: 1.0.0

Changelog:
v1.0.0 (2026-10-08): Initial error classes with HTTP status and error codes
"""

from typing import List, Optional


class SkyFuelError(Exception):
    """Base exception for ledger errors."""

    def __init__(self, message: str, status_code: int = 500,
                 error_code: str = "INTERNAL_ERROR"):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(self.message)


class ValidationError(SkyFuelError):
    """Caller-supplied data violates an entity invariant."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.errors = errors or [message]
        super().__init__(message, status_code=422, error_code="VALIDATION_ERROR")


class NotFoundError(SkyFuelError):
    """Operation referenced a battery id that does not exist."""

    def __init__(self, resource: str, identifier):
        self.identifier = identifier
        super().__init__(
            f"{resource} not found: {identifier}",
            status_code=404,
            error_code="RESOURCE_NOT_FOUND",
        )


class CodecError(SkyFuelError):
    """Malformed or unsupported-version identity token."""

    UNSUPPORTED_VERSION = "unsupported_version"
    MALFORMED = "malformed"
    MISSING_FIELD = "missing_field"
    INVALID_ID = "invalid_id"
    INVALID_FIELD = "invalid_field"

    def __init__(self, message: str, reason: str):
        self.reason = reason
        super().__init__(message, status_code=400, error_code="CODEC_ERROR")


class DataImportError(SkyFuelError):
    """Import content cannot be parsed or is structurally invalid."""

    def __init__(self, message: str):
        super().__init__(message, status_code=400, error_code="IMPORT_ERROR")


class StoreError(SkyFuelError):
    """Backing-store I/O failure."""

    def __init__(self, message: str):
        super().__init__(message, status_code=503, error_code="STORE_FAILURE")
