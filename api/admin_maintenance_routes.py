import asyncio
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Request, status
from pydantic import BaseModel, field_serializer
from sqlalchemy.exc import SQLAlchemyError

from core.exceptions import CollaboratorError
from services.auto_close import SweepReport
from services.scheduling import ScheduledJobRunner
from utils.datetime_helpers import format_utc_datetime


router = APIRouter()


class AutoCloseRunResponse(BaseModel):
    status: str  # "ok" or "skipped" when another sweep holds the lock
    closed_count: int = 0
    failed_count: int = 0
    skipped_count: int = 0
    ran_at: Optional[datetime] = None

    @field_serializer("ran_at")
    def serialize_ran_at(self, dt: Optional[datetime]) -> Optional[str]:
        return format_utc_datetime(dt)


def get_auto_close_runner(request: Request) -> ScheduledJobRunner:
    return request.app.state.auto_close_runner


@router.post("/run-auto-close", response_model=AutoCloseRunResponse)
async def run_auto_close_single_execution(request: Request):
    """
    One-shot execution of the shift auto-close sweep.

    Shares the scheduler's lock, so a trigger during a running sweep is
    dropped and reported as "skipped". Runs off the event loop because retries
    sleep between attempts.
    """
    runner = get_auto_close_runner(request)

    try:
        report: SweepReport | None = await asyncio.to_thread(runner.trigger)
    except (CollaboratorError, SQLAlchemyError) as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Auto-close sweep failed: {e}",
        )

    if report is None:
        return AutoCloseRunResponse(status="skipped")

    return AutoCloseRunResponse(
        status="ok",
        closed_count=report.closed_count,
        failed_count=report.failed_count,
        skipped_count=report.skipped_count,
        ran_at=report.started_at,
    )
