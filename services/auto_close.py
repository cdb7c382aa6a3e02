"""
Auto-close of shifts whose scheduled end has passed.

One sweep walks every dealership that opted in through the
``auto_close_shifts`` setting and closes its overdue open shifts one by one.
A shift that fails to close is logged and left open; it is still overdue on
the next sweep, so it gets retried then. Only failures to read dealerships,
settings or shift lists abort the sweep.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlmodel import Session

from models.shift import Shift, ShiftStatus
from services.settings_service import (
    AUTO_CLOSE_SHIFTS,
    SqlSettingsRepository,
    TenantSettingsGate,
)
from services.shift_repository import ShiftRepository, SqlShiftRepository
from services.shift_service import ShiftService
from utils.timezone_helpers import Clock, TimeBoundary

logger = logging.getLogger(__name__)


class CloseOutcome(str, Enum):
    CLOSED = "closed"
    SKIPPED = "skipped"  # already closed by a concurrent writer
    FAILED = "failed"


@dataclass(frozen=True)
class ShiftCloseResult:
    shift_id: Optional[int]
    dealership_id: str
    outcome: CloseOutcome
    error: Optional[str] = None


@dataclass
class SweepReport:
    started_at: datetime
    results: List[ShiftCloseResult] = field(default_factory=list)
    dealerships_checked: int = 0
    dealerships_enabled: int = 0

    def _count(self, outcome: CloseOutcome) -> int:
        return sum(1 for result in self.results if result.outcome == outcome)

    @property
    def closed_count(self) -> int:
        return self._count(CloseOutcome.CLOSED)

    @property
    def skipped_count(self) -> int:
        return self._count(CloseOutcome.SKIPPED)

    @property
    def failed_count(self) -> int:
        return self._count(CloseOutcome.FAILED)

    @property
    def failures(self) -> List[ShiftCloseResult]:
        return [r for r in self.results if r.outcome == CloseOutcome.FAILED]


class AutoCloseSweep:

    def __init__(
        self,
        repository: ShiftRepository,
        settings_gate: TenantSettingsGate,
        time_boundary: TimeBoundary,
        shift_service: Optional[ShiftService] = None,
    ):
        self.repository = repository
        self.settings_gate = settings_gate
        self.time_boundary = time_boundary
        self.shift_service = shift_service or ShiftService(repository, time_boundary)

    def run(self) -> SweepReport:
        """
        Run a single reconciliation pass over all dealerships.

        Every shift closed in this pass gets shift_end set to the sweep's start
        time, not to its scheduled end.

        Raises:
            CollaboratorError: dealerships, settings or shift lists are unreadable.
        """
        now = self.time_boundary.now_utc()
        report = SweepReport(started_at=now)
        logger.info(
            "AutoCloseShiftsJob started",
            extra={"time_utc": self.time_boundary.to_iso_utc_string(now)},
        )

        for dealership_id in self.repository.list_dealership_ids():
            report.dealerships_checked += 1

            if not self.settings_gate.is_enabled(AUTO_CLOSE_SHIFTS, dealership_id, False):
                continue
            report.dealerships_enabled += 1

            for shift in self.repository.find_overdue_open_shifts(dealership_id, now):
                report.results.append(self._close_one(shift, dealership_id, now))

        logger.info(
            "AutoCloseShiftsJob completed",
            extra={
                "closed_count": report.closed_count,
                "failed_count": report.failed_count,
                "skipped_count": report.skipped_count,
            },
        )
        return report

    def _close_one(self, shift: Shift, dealership_id: str, now: datetime) -> ShiftCloseResult:
        # Read before the write: a failed commit expires the ORM instance
        shift_id = shift.id
        user_id = shift.user_id
        scheduled_end = shift.scheduled_end

        try:
            closed = self.shift_service.close_shift_without_photo(
                shift, ShiftStatus.CLOSED, closed_at=now
            )
        except Exception as e:
            logger.error(
                "Failed to auto-close shift",
                extra={"shift_id": shift_id, "error": str(e)},
            )
            return ShiftCloseResult(shift_id, dealership_id, CloseOutcome.FAILED, str(e))

        if not closed:
            logger.info(
                "Shift already closed, skipping",
                extra={"shift_id": shift_id, "dealership_id": dealership_id},
            )
            return ShiftCloseResult(shift_id, dealership_id, CloseOutcome.SKIPPED)

        logger.info(
            "Auto-closed shift",
            extra={
                "shift_id": shift_id,
                "user_id": user_id,
                "dealership_id": dealership_id,
                "scheduled_end": self.time_boundary.to_iso_utc_string(scheduled_end),
            },
        )
        return ShiftCloseResult(shift_id, dealership_id, CloseOutcome.CLOSED)


def build_sweep(session: Session, clock: Optional[Clock] = None) -> AutoCloseSweep:
    """Wire a sweep against the SQL repositories sharing one session."""
    return AutoCloseSweep(
        repository=SqlShiftRepository(session),
        settings_gate=TenantSettingsGate(SqlSettingsRepository(session)),
        time_boundary=TimeBoundary(clock),
    )


def run_auto_close_once(engine=None, clock: Optional[Clock] = None) -> SweepReport:
    """Blocking DB work for a single sweep (run off the event loop)."""
    if engine is None:
        # Lazy import: db.session requires database settings at import time
        from db.session import engine

    # Closed shifts keep their loaded values for logging after each commit
    with Session(engine, expire_on_commit=False) as session:
        return build_sweep(session, clock).run()

