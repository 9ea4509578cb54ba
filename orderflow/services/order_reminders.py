"""
Order reminder checks
Sends reminders to assigned employees about upcoming and overdue orders.
None of these checks change order status.
"""

import logging
import threading
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ..config import REMINDER_DEDUP_ENABLED
from ..domain.notifications.repository import NotificationRepository
from ..domain.orders.repository import OrderRepository
from ..domain.orders.schemas import CheckResult, ReminderContext
from ..domain.orders.time_windows import (
    days_elapsed,
    hourly_criteria,
    overdue_criteria,
    start_of_day,
    tomorrow_criteria,
    utc_now,
)
from ..models import Order
from .notification_service import notify, order_context

logger = logging.getLogger(__name__)

TOMORROW_REMINDER = "TOMORROW_REMINDER"
HOURLY_REMINDER = "HOURLY_REMINDER"
OVERDUE_REMINDER = "OVERDUE_REMINDER"

# Daily and hourly jobs can both run the hourly check in this process;
# the sent-check and the insert must not interleave between them
_delivery_lock = threading.Lock()


def build_reminder_key(reminder_type: str, order_id: int, anchor: datetime) -> str:
    return f"{reminder_type}:{order_id}:{anchor.isoformat()}"


def run_check(db: Session, name: str, check: Callable[[], CheckResult]) -> CheckResult:
    """Run one check; an unexpected error becomes a failed result instead of aborting the run"""
    try:
        return check()
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Check {name} failed: {e}")
        failed = CheckResult(name=name)
        failed.record_failure(e)
        return failed


def _fan_out(
    db: Session,
    result: CheckResult,
    context: ReminderContext,
    reminder_type: str,
    message: str,
    reminder_key: str,
    dedup: bool,
) -> None:
    for user_id in context.recipient_user_ids:
        with _delivery_lock:
            if dedup and NotificationRepository.reminder_already_sent(db, reminder_key, user_id):
                result.skipped += 1
                logger.debug(f"⏭️ {reminder_type} already sent to user {user_id} for order {context.order_id}")
                continue

            delivered = notify(db, user_id, context, reminder_type, message, reminder_key=reminder_key)

        if delivered:
            result.succeeded += 1
        else:
            result.delivery_failures += 1


def _run_reminder_check(
    db: Session,
    name: str,
    reminder_type: str,
    criteria: tuple,
    build: Callable[[Order], tuple[ReminderContext, str, datetime]],
    dedup: bool,
) -> CheckResult:
    result = CheckResult(name=name)

    orders = OrderRepository.find_orders(db, *criteria)
    result.matched = len(orders)

    if not orders:
        logger.debug(f"ℹ️ No orders need a {reminder_type}")
        return result

    # Snapshot first: per-notification commits expire loaded orders
    batch = []
    for order in orders:
        context, message, anchor = build(order)
        batch.append((context, message, build_reminder_key(reminder_type, context.order_id, anchor)))

    for context, message, reminder_key in batch:
        _fan_out(db, result, context, reminder_type, message, reminder_key, dedup)

    logger.info(
        f"🔔 {reminder_type}: {result.matched} orders, {result.succeeded} sent, "
        f"{result.skipped} already sent, {result.delivery_failures} failed"
    )
    return result


def send_tomorrow_reminders(
    db: Session, now: Optional[datetime] = None, dedup: bool = REMINDER_DEDUP_ENABLED
) -> CheckResult:
    """Remind assigned employees about ACTIVE orders scheduled for tomorrow"""
    now = now or utc_now()

    def build(order: Order):
        context = order_context(order, order.scheduled_date)
        message = (
            f"Reminder: Order #{context.order_number} for {context.customer_name} "
            "is scheduled to start tomorrow."
        )
        return context, message, order.scheduled_date

    return _run_reminder_check(
        db, "tomorrow_reminders", TOMORROW_REMINDER, tomorrow_criteria(now), build, dedup
    )


def send_hourly_reminders(
    db: Session, now: Optional[datetime] = None, dedup: bool = REMINDER_DEDUP_ENABLED
) -> CheckResult:
    """Remind assigned employees about ACTIVE orders starting in the next hour"""
    now = now or utc_now()

    def build(order: Order):
        context = order_context(order, order.start_time)
        message = (
            f"Urgent: Order #{context.order_number} for {context.customer_name} "
            "starts in 1 hour. Please prepare to begin work."
        )
        return context, message, order.start_time

    return _run_reminder_check(
        db, "hourly_reminders", HOURLY_REMINDER, hourly_criteria(now), build, dedup
    )


def send_overdue_reminders(
    db: Session, now: Optional[datetime] = None, dedup: bool = REMINDER_DEDUP_ENABLED
) -> CheckResult:
    """Remind assigned employees about IN_PROGRESS orders running 3+ days"""
    now = now or utc_now()

    def build(order: Order):
        context = order_context(order, order.start_time)
        days_overdue = days_elapsed(now, order.start_time)
        message = (
            f"Overdue: Order #{context.order_number} for {context.customer_name} has been "
            f"in progress for {days_overdue} days. Please update status or mark as complete."
        )
        # At most one overdue reminder per order per day
        return context, message, start_of_day(now)

    return _run_reminder_check(
        db, "overdue_reminders", OVERDUE_REMINDER, overdue_criteria(now), build, dedup
    )


def run_all_reminder_checks(
    db: Session, now: Optional[datetime] = None, dedup: bool = REMINDER_DEDUP_ENABLED
) -> dict[str, CheckResult]:
    """
    Tomorrow, hourly and overdue reminders in that order

    A check that raises is recorded as failed and the next check still runs.
    """
    now = now or utc_now()
    return {
        "tomorrow_reminders": run_check(
            db, "tomorrow_reminders", lambda: send_tomorrow_reminders(db, now, dedup)
        ),
        "hourly_reminders": run_check(
            db, "hourly_reminders", lambda: send_hourly_reminders(db, now, dedup)
        ),
        "overdue_reminders": run_check(
            db, "overdue_reminders", lambda: send_overdue_reminders(db, now, dedup)
        ),
    }
