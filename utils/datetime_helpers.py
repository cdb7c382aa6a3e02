from datetime import datetime, timezone
from typing import Optional

from core.exceptions import ParseError


def format_utc_datetime(dt: Optional[datetime]) -> Optional[str]:
    """
    Format a datetime object to an ISO 8601 string with 'Z' suffix.

    Naive datetimes are assumed to already be UTC (that is how SQLite hands
    them back); aware datetimes are converted to UTC first.

    Args:
        dt: A datetime object or None

    Returns:
        An ISO 8601 formatted string with 'Z' suffix, or None if the input is None.
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)

    return dt.isoformat().replace("+00:00", "Z")


def parse_utc_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO 8601 string (with 'Z' or an offset) into an aware UTC datetime.

    Empty input yields None. A string without an offset is read as UTC.

    Raises:
        ParseError: the string is not ISO 8601.
    """
    if value is None or value == "":
        return None

    if not isinstance(value, str):
        raise ParseError(repr(value), "expected a string")

    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError as e:
        raise ParseError(value, str(e)) from e

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
