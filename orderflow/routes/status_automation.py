"""
API endpoints for order status automation
Manual "run now" triggers and scheduler introspection
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from ..domain.orders.schemas import SchedulerStatus, StatusCheckSummary
from ..exceptions import JobAlreadyRunningError, StatusCheckError
from ..services.order_lifecycle import OrderLifecycleScheduler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/order-status", tags=["Order Status"])


def get_scheduler(request: Request) -> OrderLifecycleScheduler:
    """Dependency injection for the process-wide scheduler"""
    return request.app.state.scheduler


@router.get("/status", response_model=SchedulerStatus)
async def get_scheduler_status(scheduler: OrderLifecycleScheduler = Depends(get_scheduler)):
    """Read-only scheduler state for operational dashboards"""
    return SchedulerStatus(**scheduler.get_status())


@router.post("/run", response_model=StatusCheckSummary)
async def run_status_check(scheduler: OrderLifecycleScheduler = Depends(get_scheduler)):
    """
    Manually trigger the daily order status check
    (In production this runs from the worker's cron schedule)
    """
    try:
        return await scheduler.trigger_daily_status_check_manually()
    except JobAlreadyRunningError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except StatusCheckError as e:
        raise HTTPException(status_code=500, detail={"message": str(e), "summary": e.summary}) from e


@router.post("/reminders/hourly/run", response_model=StatusCheckSummary)
async def run_hourly_reminders(scheduler: OrderLifecycleScheduler = Depends(get_scheduler)):
    """Manually trigger the hourly reminder check"""
    try:
        return await scheduler.trigger_hourly_reminders_manually()
    except JobAlreadyRunningError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except StatusCheckError as e:
        raise HTTPException(status_code=500, detail={"message": str(e), "summary": e.summary}) from e
