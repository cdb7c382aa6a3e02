from datetime import datetime
from typing import List, Optional

from models.shift import Shift, ShiftStatus
from services.shift_repository import ShiftRepository
from utils.timezone_helpers import DEFAULT_TIMEZONE, TimeBoundary

AUTO_CLOSE_NOTE = "Closed automatically after scheduled end"


class ShiftService:

    def __init__(self, repository: ShiftRepository, time_boundary: TimeBoundary):
        self.repository = repository
        self.time_boundary = time_boundary

    def close_shift_without_photo(
        self,
        shift: Shift,
        status: ShiftStatus = ShiftStatus.CLOSED,
        closed_at: Optional[datetime] = None,
        note: Optional[str] = AUTO_CLOSE_NOTE,
    ) -> bool:
        """
        Close a shift without a closing photo.

        Returns True if this call closed it, False if it was already closed
        (the stored shift_end is never overwritten).
        """
        if status.is_active():
            raise ValueError(f"Cannot close a shift into active status {status.value!r}")

        if shift.shift_end is not None or not ShiftStatus(shift.status).is_active():
            return False

        closed_at = closed_at or self.time_boundary.now_utc()
        return self.repository.close_shift(shift, status, closed_at, note)

    def get_todays_shifts(self, dealership_id: str, tz: Optional[str] = None) -> List[Shift]:
        """
        Shifts scheduled to end during the dealership's current local day.

        Needs the SQL repository for the dealership lookup and range query.

        Raises:
            InvalidTimezoneError: tz is not a known zone.
        """
        if tz is None:
            dealership = self.repository.get_dealership(dealership_id)
            tz = dealership.timezone if dealership else DEFAULT_TIMEZONE

        boundaries = self.time_boundary.day_boundaries_for_timezone(tz)
        return self.repository.find_shifts_between(
            dealership_id, boundaries.start, boundaries.end
        )
