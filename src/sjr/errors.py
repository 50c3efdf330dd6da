"""Exception taxonomy for journey recording, storage and transfer."""

from __future__ import annotations

from typing import Any


class JourneyRecorderError(Exception):
    """Base class for all recorder errors."""


class ValidationError(JourneyRecorderError, ValueError):
    """A field failed validation while constructing a model."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(f"Invalid {field}: {message}")

    @classmethod
    def from_pydantic(cls, exc: Any) -> "ValidationError":
        errors = exc.errors()
        first = errors[0] if errors else {}
        loc = [str(part) for part in first.get("loc", ())]
        field = ".".join(loc) if loc else "record"
        return cls(field, str(first.get("msg", exc)))


class PositionError(JourneyRecorderError):
    """The position source could not produce a fix."""


class LocationPermissionError(PositionError):
    """Location access was denied; the user has to grant it before recording."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(
            message
            or "Location permission denied. Please enable location access in your device settings."
        )


class PositionUnavailableError(PositionError):
    """No fix could be determined."""


class PositionTimeoutError(PositionError):
    """The position request timed out."""


class StorageError(JourneyRecorderError):
    """The persistence medium failed."""


class TransferFormatError(JourneyRecorderError):
    """An import payload does not match the transfer format."""


class RecorderStateError(JourneyRecorderError):
    """An operation was requested in a state that does not allow it."""
