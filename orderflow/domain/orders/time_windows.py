"""
Time boundaries and order predicates for the lifecycle checks.

All datetimes are naive UTC, matching how the order columns are stored.
"""

from datetime import datetime, timedelta, timezone

from sqlalchemy import and_, or_

from ...config import ACTIVE_EXPIRY_DAYS, OPEN_EXPIRY_DAYS, OVERDUE_REMINDER_DAYS
from ...models import Order, OrderStatus

ONE_DAY = timedelta(days=1)


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def tomorrow_window(now: datetime) -> tuple[datetime, datetime]:
    """[tomorrow 00:00, day after tomorrow 00:00)"""
    tomorrow = start_of_day(now) + ONE_DAY
    return tomorrow, tomorrow + ONE_DAY


def hourly_window(now: datetime) -> tuple[datetime, datetime]:
    """[now + 1h, now + 2h)"""
    return now + timedelta(hours=1), now + timedelta(hours=2)


def days_elapsed(now: datetime, since: datetime) -> int:
    """Whole days between two moments, rounded down"""
    return (now - since) // ONE_DAY


def _not_archived():
    return Order.is_archived.is_(False)


def auto_start_criteria(now: datetime) -> tuple:
    return (
        Order.status == OrderStatus.ACTIVE.value,
        Order.scheduled_date.isnot(None),
        Order.scheduled_date <= now,
        _not_archived(),
    )


def expiry_criteria(now: datetime) -> tuple:
    open_cutoff = now - timedelta(days=OPEN_EXPIRY_DAYS)
    active_cutoff = now - timedelta(days=ACTIVE_EXPIRY_DAYS)
    return (
        or_(
            and_(Order.status == OrderStatus.OPEN.value, Order.scheduled_date <= open_cutoff),
            and_(Order.status == OrderStatus.ACTIVE.value, Order.scheduled_date <= active_cutoff),
        ),
        Order.scheduled_date.isnot(None),
        _not_archived(),
    )


def tomorrow_criteria(now: datetime) -> tuple:
    window_start, window_end = tomorrow_window(now)
    return (
        Order.status == OrderStatus.ACTIVE.value,
        Order.scheduled_date >= window_start,
        Order.scheduled_date < window_end,
        _not_archived(),
    )


def hourly_criteria(now: datetime) -> tuple:
    window_start, window_end = hourly_window(now)
    return (
        Order.status == OrderStatus.ACTIVE.value,
        Order.start_time >= window_start,
        Order.start_time < window_end,
        _not_archived(),
    )


def overdue_criteria(now: datetime) -> tuple:
    return (
        Order.status == OrderStatus.IN_PROGRESS.value,
        Order.start_time <= now - timedelta(days=OVERDUE_REMINDER_DAYS),
        _not_archived(),
    )
