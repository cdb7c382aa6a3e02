from datetime import datetime
from typing import List, Optional, Protocol, Sequence

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from core.exceptions import CollaboratorError, RecordCloseError
from models.dealership import Dealership
from models.shift import Shift, ShiftStatus


class ShiftRepository(Protocol):
    def list_dealership_ids(self) -> Sequence[str]: ...

    def find_overdue_open_shifts(self, dealership_id: str, now: datetime) -> Sequence[Shift]: ...

    def close_shift(
        self,
        shift: Shift,
        status: ShiftStatus,
        closed_at: datetime,
        note: Optional[str] = None,
    ) -> bool:
        """
        Close the shift only if it is still open at write time.

        Returns False when another writer got there first. Raises
        RecordCloseError when the write itself fails.
        """
        ...


class SqlShiftRepository:
    def __init__(self, session: Session):
        self.session = session

    def get_dealership(self, dealership_id: str) -> Optional[Dealership]:
        return self.session.get(Dealership, dealership_id)

    def list_dealership_ids(self) -> List[str]:
        try:
            return list(self.session.exec(select(Dealership.id).order_by(Dealership.id)).all())
        except SQLAlchemyError as e:
            raise CollaboratorError(f"Could not list dealerships: {e}") from e

    def find_overdue_open_shifts(self, dealership_id: str, now: datetime) -> List[Shift]:
        # scheduled_end <= now: a shift ending exactly now is already overdue
        statement = (
            select(Shift)
            .where(Shift.dealership_id == dealership_id)
            .where(Shift.status.in_(ShiftStatus.active_statuses()))
            .where(Shift.shift_end.is_(None))
            .where(Shift.scheduled_end <= now)
            .order_by(Shift.scheduled_end, Shift.id)
        )
        try:
            return list(self.session.exec(statement).all())
        except SQLAlchemyError as e:
            raise CollaboratorError(
                f"Could not query open shifts for dealership {dealership_id}: {e}"
            ) from e

    def find_shifts_between(
        self, dealership_id: str, start: datetime, end: datetime
    ) -> List[Shift]:
        """Shifts whose scheduled end falls inside [start, end]."""
        statement = (
            select(Shift)
            .where(Shift.dealership_id == dealership_id)
            .where(Shift.scheduled_end >= start)
            .where(Shift.scheduled_end <= end)
            .order_by(Shift.scheduled_end, Shift.id)
        )
        return list(self.session.exec(statement).all())

    def close_shift(
        self,
        shift: Shift,
        status: ShiftStatus,
        closed_at: datetime,
        note: Optional[str] = None,
    ) -> bool:
        statement = (
            update(Shift)
            .where(Shift.id == shift.id)
            .where(Shift.shift_end.is_(None))
            .where(Shift.status.in_(ShiftStatus.active_statuses()))
            .values(
                status=status,
                shift_end=closed_at,
                updated_at=closed_at,
                closing_note=note,
            )
            .execution_options(synchronize_session=False)
        )
        shift_id = shift.id
        try:
            result = self.session.execute(statement)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise RecordCloseError(shift_id, str(e)) from e

        return result.rowcount == 1
