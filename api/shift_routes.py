from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_serializer
from sqlmodel import Session

from core.exceptions import InvalidTimezoneError
from db.session import get_session
from models.shift import ShiftStatus
from services.shift_repository import SqlShiftRepository
from services.shift_service import ShiftService
from utils.datetime_helpers import format_utc_datetime
from utils.timezone_helpers import TimeBoundary

router = APIRouter()

# --- Pydantic Models for Response ---

class ShiftResponse(BaseModel):
    id: int
    user_id: str
    dealership_id: str
    status: ShiftStatus
    status_label: str
    scheduled_end: datetime
    shift_end: Optional[datetime] = None

    @field_serializer("scheduled_end", "shift_end")
    def serialize_datetimes(self, dt: Optional[datetime]) -> Optional[str]:
        return format_utc_datetime(dt)

# --- API Endpoints ---

@router.get("/today/{dealership_id}", response_model=List[ShiftResponse])
def get_todays_shifts(
    dealership_id: str,
    tz: Optional[str] = None,
    session: Session = Depends(get_session),
):
    """
    Shifts scheduled to end during the dealership's current local day.

    `tz` overrides the dealership's stored timezone (IANA name or "+05:00").
    """
    service = ShiftService(SqlShiftRepository(session), TimeBoundary())

    try:
        shifts = service.get_todays_shifts(dealership_id, tz)
    except InvalidTimezoneError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return [
        ShiftResponse(
            id=shift.id,
            user_id=shift.user_id,
            dealership_id=shift.dealership_id,
            status=shift.status,
            status_label=ShiftStatus(shift.status).label(),
            scheduled_end=shift.scheduled_end,
            shift_end=shift.shift_end,
        )
        for shift in shifts
    ]
