"""
Order lifecycle scheduler
Runs the status transition and reminder checks for the cron triggers and
for manual "run now" requests. All scheduler state lives on the instance.
"""

import asyncio
import logging
import threading
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session, sessionmaker

from ..config import (
    DAILY_CHECK_HOUR,
    DAILY_CHECK_MINUTE,
    HOURLY_REMINDER_MINUTE,
    REMINDER_DEDUP_ENABLED,
    SYSTEM_ACTOR_ID,
)
from ..database import SessionLocal
from ..domain.orders.schemas import CheckResult, StatusCheckSummary
from ..domain.orders.time_windows import utc_now
from ..exceptions import JobAlreadyRunningError, StatusCheckError
from .order_reminders import run_all_reminder_checks, run_check, send_hourly_reminders
from .status_automation import auto_start_orders, expire_stale_orders
from .system_actor import resolve_system_actor_id

logger = logging.getLogger(__name__)

DAILY_STATUS_CHECK = "daily_status_check"
HOURLY_REMINDERS = "hourly_reminders"


class JobGuard:
    """Single-flight flag for one job within this process"""

    def __init__(self, name: str):
        self.name = name
        self._lock = threading.Lock()

    @property
    def is_active(self) -> bool:
        return self._lock.locked()

    def try_acquire(self) -> bool:
        return self._lock.acquire(blocking=False)

    def release(self) -> None:
        self._lock.release()


class OrderLifecycleScheduler:
    """
    Coordinates the daily status check and the hourly reminder run.

    Each job has its own guard: a run that arrives while the same job is in
    progress is skipped. The daily and hourly jobs may overlap each other.
    """

    def __init__(
        self,
        session_factory: sessionmaker = SessionLocal,
        system_actor_id: Optional[int] = SYSTEM_ACTOR_ID,
        reminder_dedup: bool = REMINDER_DEDUP_ENABLED,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.session_factory = session_factory
        self.configured_actor_id = system_actor_id
        self.reminder_dedup = reminder_dedup
        self.clock = clock

        self.daily_guard = JobGuard(DAILY_STATUS_CHECK)
        self.hourly_guard = JobGuard(HOURLY_REMINDERS)

        self._system_actor_id: Optional[int] = None
        self._actor_resolved = False
        self._scheduled_jobs: list[str] = []

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def resolve_system_actor(self) -> Optional[int]:
        """Resolve the note author on first use and keep it for this instance"""
        if not self._actor_resolved:
            db = self.session_factory()
            try:
                self._system_actor_id = resolve_system_actor_id(db, self.configured_actor_id)
            finally:
                db.close()
            self._actor_resolved = True
        return self._system_actor_id

    def register_schedules(self, job_names: list[str]) -> None:
        self._scheduled_jobs = list(job_names)
        logger.info(f"✅ Order lifecycle jobs scheduled: {', '.join(self._scheduled_jobs)}")
        logger.info(f"📅 {self.next_run_description()}")

    def stop(self) -> None:
        self._scheduled_jobs = []
        logger.info("🛑 Order lifecycle jobs stopped")

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    async def run_daily_status_check(self, now: Optional[datetime] = None) -> Optional[dict]:
        """
        Auto-start, auto-expire, then all reminder checks

        Returns:
            dict: run summary, or None if the check was already running

        Raises:
            StatusCheckError: one or more checks recorded failures
        """
        if not self.daily_guard.try_acquire():
            logger.warning("⏳ Order status check already running, skipping...")
            return None

        logger.info("🔄 Daily order status check triggered")
        summary = await self._run_guarded(self.daily_guard, self._daily_checks, now or self.clock())
        return self._finish(DAILY_STATUS_CHECK, summary)

    async def send_hourly_reminders(self, now: Optional[datetime] = None) -> Optional[dict]:
        """Hourly reminder check on its own cadence"""
        if not self.hourly_guard.try_acquire():
            logger.warning("⏳ Hourly reminder check already running, skipping...")
            return None

        logger.info("🔔 Hourly reminder check triggered")
        summary = await self._run_guarded(self.hourly_guard, self._hourly_checks, now or self.clock())
        return self._finish(HOURLY_REMINDERS, summary)

    async def trigger_daily_status_check_manually(self, now: Optional[datetime] = None) -> dict:
        """Manual run; unlike the cron trigger, a busy guard is an error"""
        logger.info("🔧 Manual trigger: Starting order status check...")
        summary = await self.run_daily_status_check(now)
        if summary is None:
            raise JobAlreadyRunningError(DAILY_STATUS_CHECK)
        return summary

    async def trigger_hourly_reminders_manually(self, now: Optional[datetime] = None) -> dict:
        summary = await self.send_hourly_reminders(now)
        if summary is None:
            raise JobAlreadyRunningError(HOURLY_REMINDERS)
        return summary

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def next_run_description(self) -> str:
        return (
            f"Daily at {DAILY_CHECK_HOUR:02d}:{DAILY_CHECK_MINUTE:02d} UTC; "
            f"every hour at minute {HOURLY_REMINDER_MINUTE} UTC"
        )

    def get_status(self) -> dict:
        return {
            "is_running": bool(self._scheduled_jobs),
            "task_count": len(self._scheduled_jobs),
            "next_run_description": self.next_run_description(),
            "currently_processing": {
                DAILY_STATUS_CHECK: self.daily_guard.is_active,
                HOURLY_REMINDERS: self.hourly_guard.is_active,
            },
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _run_guarded(
        self, guard: JobGuard, body: Callable[[datetime], StatusCheckSummary], now: datetime
    ) -> StatusCheckSummary:
        """
        Run a job body in a worker thread and release its guard when the thread ends

        Cancelling the awaiting coroutine (arq job_timeout) does not stop the
        thread, so the guard stays held until the batch really finishes.
        """
        task = asyncio.ensure_future(asyncio.to_thread(body, now))

        def on_done(finished: asyncio.Future) -> None:
            guard.release()
            if not finished.cancelled() and finished.exception() is not None:
                logger.error(f"❌ {guard.name} batch crashed: {finished.exception()}")

        task.add_done_callback(on_done)
        return await asyncio.shield(task)

    def _daily_checks(self, now: datetime) -> StatusCheckSummary:
        actor_id = self.resolve_system_actor()

        def checks(db: Session) -> dict[str, CheckResult]:
            results = {
                "auto_start": run_check(db, "auto_start", lambda: auto_start_orders(db, actor_id, now)),
                "auto_expire": run_check(db, "auto_expire", lambda: expire_stale_orders(db, actor_id, now)),
            }
            results.update(run_all_reminder_checks(db, now, self.reminder_dedup))
            return results

        return self._run_checks(checks)

    def _hourly_checks(self, now: datetime) -> StatusCheckSummary:
        dedup = self.reminder_dedup

        def checks(db: Session) -> dict[str, CheckResult]:
            return {
                "hourly_reminders": run_check(
                    db, "hourly_reminders", lambda: send_hourly_reminders(db, now, dedup)
                )
            }

        return self._run_checks(checks)

    def _run_checks(self, checks: Callable[[Session], dict[str, CheckResult]]) -> StatusCheckSummary:
        """Run a batch of checks on one session; timestamps come from the scheduler clock"""
        started_at = self.clock()

        db = self.session_factory()
        try:
            results = checks(db)
        finally:
            db.close()

        total_updated = sum(
            results[name].succeeded for name in ("auto_start", "auto_expire") if name in results
        )
        return StatusCheckSummary(
            started_at=started_at.isoformat(),
            finished_at=self.clock().isoformat(),
            total_updated=total_updated,
            checks=results,
        )

    def _finish(self, job_name: str, summary: StatusCheckSummary) -> dict:
        data = summary.model_dump()
        if any(not check.ok for check in summary.checks.values()):
            logger.error(f"❌ {job_name} finished with failures: {data['checks']}")
            raise StatusCheckError(data)

        logger.info(f"📊 {job_name} complete: {summary.total_updated} orders updated")
        return data
