from unittest.mock import AsyncMock, MagicMock

import pytest

from orderflow import worker
from orderflow.exceptions import StatusCheckError
from orderflow.services.order_lifecycle import OrderLifecycleScheduler


def test_cron_jobs_run_daily_and_hourly_in_utc():
    daily, hourly = worker.WorkerSettings.cron_jobs

    assert daily.name == "cron:daily_status_check_task"
    assert daily.hour == 0
    assert daily.minute == 30
    assert hourly.name == "cron:hourly_reminder_task"
    assert hourly.hour is None
    assert hourly.minute == 15


async def test_startup_registers_schedules(monkeypatch, session_factory, admin):
    monkeypatch.setattr(
        worker,
        "OrderLifecycleScheduler",
        lambda: OrderLifecycleScheduler(session_factory=session_factory, system_actor_id=None),
    )
    ctx = {}

    await worker.startup(ctx)

    scheduler = ctx["scheduler"]
    assert scheduler.get_status()["task_count"] == 2
    assert scheduler.resolve_system_actor() == admin.id

    await worker.shutdown(ctx)
    assert scheduler.get_status()["is_running"] is False


async def test_daily_task_delegates_to_scheduler():
    scheduler = MagicMock()
    scheduler.run_daily_status_check = AsyncMock(return_value={"total_updated": 3})

    result = await worker.daily_status_check_task({"scheduler": scheduler})

    assert result == {"total_updated": 3}
    scheduler.run_daily_status_check.assert_awaited_once()


async def test_hourly_task_reraises_batch_failures():
    scheduler = MagicMock()
    scheduler.send_hourly_reminders = AsyncMock(side_effect=StatusCheckError({"checks": {}}))

    with pytest.raises(StatusCheckError):
        await worker.hourly_reminder_task({"scheduler": scheduler})
