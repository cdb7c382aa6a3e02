"""
Error taxonomy for the shift auto-close service.

Only CollaboratorError is allowed to escape a sweep; RecordCloseError is
absorbed per shift by the sweep itself.
"""

from typing import Optional


class AutoCloseError(Exception):
    """Base class for every error raised by this service."""


class ParseError(AutoCloseError, ValueError):
    """A time string could not be parsed into a UTC instant."""

    def __init__(self, value: str, reason: Optional[str] = None):
        self.value = value
        message = f"Could not parse datetime: {value!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class InvalidTimezoneError(AutoCloseError, ValueError):
    """Unrecognized IANA name or fixed offset."""

    def __init__(self, tz: str):
        self.tz = tz
        super().__init__(f"Invalid timezone: {tz!r}")


class RecordCloseError(AutoCloseError):
    """Persisting the close of a single shift failed."""

    def __init__(self, shift_id, message: str):
        self.shift_id = shift_id
        super().__init__(f"Shift {shift_id}: {message}")


class CollaboratorError(AutoCloseError):
    """Dealerships or settings could not be read; fails the whole sweep."""
