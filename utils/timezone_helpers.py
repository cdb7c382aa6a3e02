"""
UTC time boundaries for the shift auto-close service.

Every instant that leaves this module is an aware datetime in UTC. Dealership
timezones are only used to find a local calendar day, which is immediately
re-expressed in UTC.
"""

import calendar
import re
from dataclasses import dataclass
from datetime import date, datetime
from datetime import time as datetime_time
from datetime import timedelta, timezone, tzinfo
from typing import Callable, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from core.exceptions import InvalidTimezoneError, ParseError
from utils.datetime_helpers import format_utc_datetime, parse_utc_datetime

Clock = Callable[[], datetime]

DEFAULT_TIMEZONE = "UTC"

_CALENDAR_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_FIXED_OFFSET_RE = re.compile(r"^([+-])(\d{2}):?(\d{2})$")


def system_clock() -> datetime:
    return datetime.now(timezone.utc)


# --- Date boundary input ---------------------------------------------------


@dataclass(frozen=True)
class Absent:
    """No input: boundaries are taken from the current UTC instant."""


@dataclass(frozen=True)
class CalendarDate:
    """A bare YYYY-MM-DD date, anchored directly in UTC."""

    value: date


@dataclass(frozen=True)
class ZonedInstant:
    """An instant carrying its own zone; converted to UTC before flooring."""

    instant: datetime


DateBoundaryInput = Union[Absent, CalendarDate, ZonedInstant]


def to_boundary_input(value) -> DateBoundaryInput:
    """
    Classify a raw value as Absent, CalendarDate or ZonedInstant.

    Accepts None, a date, a datetime, an already-classified input, or a
    string (either YYYY-MM-DD or ISO 8601 with an offset).
    """
    if value is None:
        return Absent()
    if isinstance(value, (Absent, CalendarDate, ZonedInstant)):
        return value
    # datetime is a subclass of date, so it has to be checked first
    if isinstance(value, datetime):
        return ZonedInstant(ensure_timezone_aware(value))
    if isinstance(value, date):
        return CalendarDate(value)
    if isinstance(value, str):
        if value == "":
            return Absent()
        if _CALENDAR_DATE_RE.match(value):
            try:
                return CalendarDate(date.fromisoformat(value))
            except ValueError as e:
                raise ParseError(value, str(e)) from e
        return ZonedInstant(parse_utc_datetime(value))
    raise ParseError(repr(value), f"unsupported type {type(value).__name__}")


# --- Timezone helpers ------------------------------------------------------


def resolve_timezone(tz: str) -> tzinfo:
    """
    Resolve an IANA name ('Asia/Tashkent') or fixed offset ('+05:00') to a tzinfo.

    Raises:
        InvalidTimezoneError: unknown zone or malformed offset.
    """
    if not isinstance(tz, str) or not tz.strip():
        raise InvalidTimezoneError(str(tz))

    name = tz.strip()
    offset = _FIXED_OFFSET_RE.match(name)
    if offset:
        sign, hours, minutes = offset.groups()
        delta = timedelta(hours=int(hours), minutes=int(minutes))
        if delta >= timedelta(hours=24):
            raise InvalidTimezoneError(tz)
        return timezone(-delta if sign == "-" else delta)

    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidTimezoneError(tz) from e


def validate_timezone(tz: str) -> bool:
    """True if tz is a known IANA timezone or a fixed offset."""
    try:
        resolve_timezone(tz)
        return True
    except InvalidTimezoneError:
        return False


def ensure_timezone_aware(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def from_utc_to_local(utc_dt: datetime, tz: str) -> datetime:
    """Convert a UTC datetime to wall-clock time in tz."""
    return ensure_timezone_aware(utc_dt).astimezone(resolve_timezone(tz))


def local_start_of_day(local_date: date, tz: str) -> datetime:
    """00:00:00 of local_date in tz, returned in UTC."""
    local_start = datetime.combine(
        local_date, datetime_time.min, tzinfo=resolve_timezone(tz)
    )
    return local_start.astimezone(timezone.utc)


def local_end_of_day(local_date: date, tz: str) -> datetime:
    """23:59:59.999999 of local_date in tz, returned in UTC."""
    local_end = datetime.combine(
        local_date, datetime_time.max, tzinfo=resolve_timezone(tz)
    )
    return local_end.astimezone(timezone.utc)


# --- Time boundary ---------------------------------------------------------


@dataclass(frozen=True)
class DayBoundaries:
    start: datetime
    end: datetime


class TimeBoundary:
    """
    UTC-canonical clock and calendar arithmetic.

    The clock is injected so sweeps and tests can pin "now". All methods are
    free of I/O apart from reading the clock.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or system_clock

    def now_utc(self) -> datetime:
        return ensure_timezone_aware(self._clock())

    def today_utc(self) -> date:
        return self.now_utc().date()

    @staticmethod
    def parse_to_utc(value: Optional[str]) -> Optional[datetime]:
        return parse_utc_datetime(value)

    @staticmethod
    def to_iso_utc_string(value: Optional[datetime]) -> Optional[str]:
        return format_utc_datetime(value)

    def _utc_date(self, value) -> date:
        boundary_input = to_boundary_input(value)
        if isinstance(boundary_input, CalendarDate):
            return boundary_input.value
        if isinstance(boundary_input, ZonedInstant):
            return boundary_input.instant.astimezone(timezone.utc).date()
        return self.today_utc()

    def start_of_day_utc(self, value=None) -> datetime:
        """
        Start of a UTC day.

        A YYYY-MM-DD string is that calendar day in UTC; a zoned string or
        datetime is converted to UTC first; no value means today.
        """
        return datetime.combine(
            self._utc_date(value), datetime_time.min, tzinfo=timezone.utc
        )

    def end_of_day_utc(self, value=None) -> datetime:
        """Inclusive end (23:59:59.999999) of a UTC day; same input rules as start."""
        return datetime.combine(
            self._utc_date(value), datetime_time.max, tzinfo=timezone.utc
        )

    def start_of_week_utc(self) -> datetime:
        today = self.today_utc()
        monday = today - timedelta(days=today.weekday())
        return datetime.combine(monday, datetime_time.min, tzinfo=timezone.utc)

    def end_of_week_utc(self) -> datetime:
        today = self.today_utc()
        sunday = today + timedelta(days=6 - today.weekday())
        return datetime.combine(sunday, datetime_time.max, tzinfo=timezone.utc)

    def start_of_month_utc(self) -> datetime:
        first = self.today_utc().replace(day=1)
        return datetime.combine(first, datetime_time.min, tzinfo=timezone.utc)

    def end_of_month_utc(self) -> datetime:
        today = self.today_utc()
        last_day = calendar.monthrange(today.year, today.month)[1]
        return datetime.combine(
            today.replace(day=last_day), datetime_time.max, tzinfo=timezone.utc
        )

    def day_boundaries_for_timezone(self, tz: str) -> DayBoundaries:
        """
        Today's boundaries for a dealership timezone, expressed in UTC.

        "Today" is the wall-clock date in tz, so a dealership ahead of UTC can
        already be on the next calendar day.
        """
        local_date = from_utc_to_local(self.now_utc(), tz).date()
        return DayBoundaries(
            start=local_start_of_day(local_date, tz),
            end=local_end_of_day(local_date, tz),
        )

    def is_deadline_passed(self, deadline: Optional[datetime]) -> bool:
        if deadline is None:
            return False
        return ensure_timezone_aware(deadline) < self.now_utc()
