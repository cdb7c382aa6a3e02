"""Builders and in-memory fakes shared by the test modules."""

from datetime import datetime, timezone

from models.dealership import Dealership
from models.setting import Setting, SettingType
from models.shift import Shift, ShiftStatus
from services.settings_service import AUTO_CLOSE_SHIFTS


def utc(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00")).astimezone(timezone.utc)


def fixed_clock(value: str):
    instant = utc(value)
    return lambda: instant


def add_dealership(session, dealership_id, tz="UTC", auto_close=None):
    session.add(Dealership(id=dealership_id, name=dealership_id, timezone=tz))
    if auto_close is not None:
        session.add(
            Setting(
                key=AUTO_CLOSE_SHIFTS,
                dealership_id=dealership_id,
                type=SettingType.BOOLEAN,
                value="1" if auto_close else "0",
            )
        )
    session.commit()


def add_shift(session, dealership_id, scheduled_end, **kwargs):
    shift = Shift(
        user_id=kwargs.pop("user_id", "user-1"),
        dealership_id=dealership_id,
        status=kwargs.pop("status", ShiftStatus.OPEN),
        scheduled_end=utc(scheduled_end),
        **kwargs,
    )
    session.add(shift)
    session.commit()
    session.refresh(shift)
    return shift


def make_shift(shift_id, dealership_id, scheduled_end, **kwargs):
    return Shift(
        id=shift_id,
        user_id=kwargs.pop("user_id", f"user-{shift_id}"),
        dealership_id=dealership_id,
        status=kwargs.pop("status", ShiftStatus.OPEN),
        scheduled_end=utc(scheduled_end),
        **kwargs,
    )


class FakeSettingsRepository:
    def __init__(self, values=None, error=None):
        # {(key, dealership_id): value}
        self.values = dict(values or {})
        self.error = error
        self.lookups = []

    def get_setting(self, key, dealership_id):
        self.lookups.append((key, dealership_id))
        if self.error is not None:
            raise self.error
        return self.values.get((key, dealership_id))


def enabled_for(*dealership_ids):
    return FakeSettingsRepository(
        {(AUTO_CLOSE_SHIFTS, dealership_id): True for dealership_id in dealership_ids}
    )


class FakeShiftRepository:
    """In-memory ShiftRepository with the same conditional-close rule as SQL."""

    def __init__(self, shifts=None, dealership_ids=None):
        self.shifts = list(shifts or [])
        self._dealership_ids = dealership_ids
        self.fail_ids = {}
        self.list_error = None
        self.close_calls = []

    def list_dealership_ids(self):
        if self.list_error is not None:
            raise self.list_error
        if self._dealership_ids is not None:
            return list(self._dealership_ids)
        return sorted({shift.dealership_id for shift in self.shifts})

    def find_overdue_open_shifts(self, dealership_id, now):
        return [
            shift
            for shift in self.shifts
            if shift.dealership_id == dealership_id
            and ShiftStatus(shift.status).is_active()
            and shift.shift_end is None
            and shift.scheduled_end <= now
        ]

    def close_shift(self, shift, status, closed_at, note=None):
        self.close_calls.append(shift.id)
        if shift.id in self.fail_ids:
            raise self.fail_ids[shift.id]
        if shift.shift_end is not None or not ShiftStatus(shift.status).is_active():
            return False
        shift.status = status
        shift.shift_end = closed_at
        shift.closing_note = note
        return True
