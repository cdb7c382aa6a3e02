"""
Scheduling contract for periodic jobs such as the shift auto-close sweep.

APScheduler fires the job every interval and never lets two scheduled runs
overlap. ScheduledJobRunner wraps the job for every caller (the scheduler, the
maintenance endpoint and the cron script): it drops triggers that arrive while
another run holds the uniqueness lock, and retries the whole job a bounded
number of times with a fixed delay.
"""

import logging
import os
import threading
import time
from dataclasses import dataclass
from typing import Callable, Generic, Optional, Tuple, Type, TypeVar

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError

from core.exceptions import CollaboratorError

load_dotenv()

logger = logging.getLogger(__name__)

T = TypeVar("T")

AUTO_CLOSE_QUEUE = "shift_auto_close"


@dataclass(frozen=True)
class SchedulingContract:
    queue: str
    interval_seconds: float = 300.0
    max_attempts: int = 3
    backoff_seconds: float = 60.0
    unique_for_seconds: float = 300.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        if self.backoff_seconds < 0 or self.unique_for_seconds < 0:
            raise ValueError("backoff_seconds and unique_for_seconds cannot be negative")

    @classmethod
    def auto_close_from_env(cls) -> "SchedulingContract":
        """Auto-close contract: every 5 minutes, 3 tries, 60s apart, 300s lock."""
        return cls(
            queue=os.getenv("AUTO_CLOSE_QUEUE", AUTO_CLOSE_QUEUE),
            interval_seconds=float(os.getenv("AUTO_CLOSE_INTERVAL_SECONDS", "300")),
            max_attempts=int(os.getenv("AUTO_CLOSE_MAX_ATTEMPTS", "3")),
            backoff_seconds=float(os.getenv("AUTO_CLOSE_BACKOFF_SECONDS", "60")),
            unique_for_seconds=float(os.getenv("AUTO_CLOSE_UNIQUE_FOR_SECONDS", "300")),
        )


def scheduler_enabled() -> bool:
    return os.getenv("AUTO_CLOSE_SCHEDULER_ENABLED", "False").lower() in ("true", "1", "t")


class ScheduledJobRunner(Generic[T]):

    def __init__(
        self,
        contract: SchedulingContract,
        job: Callable[[], T],
        retry_on: Tuple[Type[BaseException], ...] = (CollaboratorError, SQLAlchemyError),
        sleep: Callable[[float], None] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.contract = contract
        self.job = job
        self.retry_on = retry_on
        self._sleep = sleep
        self._monotonic = monotonic
        self._lock = threading.Lock()
        self._locked_until: Optional[float] = None

    @property
    def is_locked(self) -> bool:
        with self._lock:
            return self._locked_until is not None and self._monotonic() < self._locked_until

    def _acquire(self) -> Optional[float]:
        """Take the lock; the returned deadline identifies this run, None if held."""
        with self._lock:
            now = self._monotonic()
            if self._locked_until is not None and now < self._locked_until:
                return None
            self._locked_until = now + self.contract.unique_for_seconds
            return self._locked_until

    def _release(self, token: float) -> None:
        with self._lock:
            # A run that outlived its window no longer owns the lock
            if self._locked_until == token:
                self._locked_until = None

    def trigger(self) -> Optional[T]:
        """
        Run the job once, honouring the contract.

        Returns None when dropped because another run holds the lock. After
        the last failed attempt the error is logged and re-raised.
        """
        token = self._acquire()
        if token is None:
            logger.warning(
                "Job already running, trigger dropped",
                extra={"queue": self.contract.queue},
            )
            return None

        try:
            return self._run_with_retries()
        finally:
            self._release(token)

    def _run_with_retries(self) -> T:
        attempt = 1
        while True:
            try:
                return self.job()
            except self.retry_on as e:
                if attempt >= self.contract.max_attempts:
                    logger.error(
                        "Job failed, giving up",
                        extra={
                            "queue": self.contract.queue,
                            "attempts": attempt,
                            "error": str(e),
                        },
                    )
                    raise
                logger.warning(
                    "Job failed, retrying",
                    extra={
                        "queue": self.contract.queue,
                        "attempt": attempt,
                        "backoff_seconds": self.contract.backoff_seconds,
                        "error": str(e),
                    },
                )
                attempt += 1
                self._sleep(self.contract.backoff_seconds)


def build_scheduler(runner: ScheduledJobRunner) -> BackgroundScheduler:
    """
    Background scheduler firing runner.trigger every contract interval.

    Missed ticks are coalesced into one run and a tick that finds the
    previous run still going is skipped. The caller starts and shuts it down.
    """
    contract = runner.contract
    scheduler = BackgroundScheduler(daemon=True, timezone="UTC")
    scheduler.add_job(
        func=runner.trigger,
        trigger=IntervalTrigger(seconds=contract.interval_seconds, timezone="UTC"),
        id=contract.queue,
        name=f"Periodic job ({contract.queue})",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=max(1, int(contract.interval_seconds)),
    )
    logger.info(
        "Scheduler configured",
        extra={"queue": contract.queue, "interval_seconds": contract.interval_seconds},
    )
    return scheduler
