from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import field_serializer
from sqlalchemy import Column
from sqlmodel import Field, Index, SQLModel

from db.types import UTCDateTime
from utils.datetime_helpers import format_utc_datetime


class ShiftStatus(str, Enum):
    OPEN = "open"
    LATE = "late"  # started late, still in progress
    CLOSED = "closed"
    REPLACED = "replaced"

    @classmethod
    def active_statuses(cls) -> List["ShiftStatus"]:
        return [cls.OPEN, cls.LATE]

    def is_active(self) -> bool:
        return self in self.active_statuses()

    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    ShiftStatus.OPEN: "Open",
    ShiftStatus.LATE: "Open (late)",
    ShiftStatus.CLOSED: "Closed",
    ShiftStatus.REPLACED: "Replaced",
}


# Defines a Table "shifts"; shift_end stays NULL while the shift is in progress
class Shift(SQLModel, table=True):
    __tablename__ = "shifts"

    __table_args__ = (
        # The auto-close query filters on exactly these columns
        Index("ix_shifts_dealership_id_status", "dealership_id", "status"),
        Index("ix_shifts_scheduled_end", "scheduled_end"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    dealership_id: str = Field(index=True, foreign_key="dealerships.id")
    status: ShiftStatus = Field(default=ShiftStatus.OPEN)

    scheduled_end: datetime = Field(sa_column=Column(UTCDateTime(), nullable=False))
    shift_end: Optional[datetime] = Field(
        default=None, sa_column=Column(UTCDateTime(), nullable=True)
    )

    closing_note: Optional[str] = Field(default=None)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(UTCDateTime(), nullable=False),
    )
    updated_at: Optional[datetime] = Field(
        default=None, sa_column=Column(UTCDateTime(), nullable=True)
    )

    @field_serializer(
        "scheduled_end",
        "shift_end",
        "created_at",
        "updated_at",
    )
    def serialize_datetimes(self, dt: Optional[datetime]) -> Optional[str]:
        """Ensure datetimes are formatted as UTC with Z suffix"""
        return format_utc_datetime(dt)
