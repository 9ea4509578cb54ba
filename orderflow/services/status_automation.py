"""
Automated order status transitions
Handles ACTIVE → IN_PROGRESS when the scheduled date arrives
Handles OPEN/ACTIVE → EXPIRED when an order sat too long without progress
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..config import ACTIVE_EXPIRY_DAYS, OPEN_EXPIRY_DAYS
from ..domain.orders.repository import OrderRepository
from ..domain.orders.schemas import CheckResult
from ..domain.orders.time_windows import auto_start_criteria, days_elapsed, expiry_criteria, utc_now
from ..models import NoteCategory, Order, OrderStatus
from .notification_service import ORDER_STATUS_CATEGORY, notify, order_context

logger = logging.getLogger(__name__)

AUTO_START_MARKER = "AUTO_START"
ORDER_STARTED = "ORDER_STARTED"

# Transitions a person may trigger; automatic ones are applied below
VALID_TRANSITIONS = {
    OrderStatus.DRAFT: [OrderStatus.OPEN, OrderStatus.CANCELLED],
    OrderStatus.OPEN: [OrderStatus.ACTIVE, OrderStatus.CANCELLED, OrderStatus.EXPIRED],
    OrderStatus.ACTIVE: [OrderStatus.IN_PROGRESS, OrderStatus.CANCELLED, OrderStatus.EXPIRED],
    OrderStatus.IN_PROGRESS: [OrderStatus.IN_REVIEW, OrderStatus.CANCELLED],
    OrderStatus.IN_REVIEW: [OrderStatus.COMPLETED, OrderStatus.IN_PROGRESS],
    OrderStatus.COMPLETED: [],  # Terminal state
    OrderStatus.CANCELLED: [],  # Terminal state
    OrderStatus.EXPIRED: [],  # Terminal state
}


def is_valid_transition(current_status: str, new_status: str) -> bool:
    """
    Validate an order status transition against the lifecycle

    Same status is treated as a no-op and allowed.
    """
    if current_status == new_status:
        return True

    try:
        allowed = VALID_TRANSITIONS[OrderStatus(current_status)]
        return OrderStatus(new_status) in allowed
    except ValueError:
        return False


def _start_order(db: Session, order: Order, system_actor_id: Optional[int], now: datetime) -> None:
    OrderRepository.update_order(
        db, order, status=OrderStatus.IN_PROGRESS.value, start_time=now
    )

    if system_actor_id is None:
        return

    OrderRepository.create_order_note(
        db,
        order_id=order.id,
        author_id=system_actor_id,
        content=(
            f"Order automatically started on scheduled date at {now:%Y-%m-%d %H:%M} UTC. "
            "Assigned employees should begin work immediately."
        ),
        category=NoteCategory.GENERAL_UPDATE.value,
        is_internal=False,
        triggers_status=OrderStatus.IN_PROGRESS.value,
    )
    # Internal tracking note, searchable by its marker
    OrderRepository.create_order_note(
        db,
        order_id=order.id,
        author_id=system_actor_id,
        content=f"{AUTO_START_MARKER}: Order automatically transitioned to IN_PROGRESS on scheduled date",
        category=NoteCategory.GENERAL_UPDATE.value,
        is_internal=True,
    )


def _expire_order(db: Session, order: Order, system_actor_id: Optional[int], now: datetime) -> int:
    days_overdue = days_elapsed(now, order.scheduled_date)

    OrderRepository.update_order(db, order, status=OrderStatus.EXPIRED.value)

    if system_actor_id is not None:
        OrderRepository.create_order_note(
            db,
            order_id=order.id,
            author_id=system_actor_id,
            content=(
                f"Order automatically expired after {days_overdue} days past scheduled date "
                "with no progress."
            ),
            category=NoteCategory.GENERAL_UPDATE.value,
            is_internal=False,
            triggers_status=OrderStatus.EXPIRED.value,
        )

    return days_overdue


def auto_start_orders(
    db: Session, system_actor_id: Optional[int], now: Optional[datetime] = None
) -> CheckResult:
    """
    Move ACTIVE orders whose scheduled date has arrived to IN_PROGRESS

    Each order is committed on its own. A failing order is rolled back and
    recorded; the remaining orders are still processed.

    Returns:
        CheckResult: matched/succeeded counts and per-order failures
    """
    now = now or utc_now()
    result = CheckResult(name="auto_start")

    orders = OrderRepository.find_orders(db, *auto_start_criteria(now))
    result.matched = len(orders)

    if not orders:
        logger.debug("ℹ️ No orders ready to auto-start")
        return result

    logger.info(f"🚀 Auto-starting {len(orders)} orders")

    for order in orders:
        order_id = order.id
        context = order_context(order, order.scheduled_date)
        try:
            _start_order(db, order, system_actor_id, now)
            db.commit()
            result.succeeded += 1
            logger.info(f"✅ Order {order_id} transitioned: ACTIVE → IN_PROGRESS")
        except Exception as e:
            db.rollback()
            result.record_failure(e, order_id=order_id)
            logger.error(f"❌ Failed to auto-start order {order_id}: {e}")
            continue

        # Tell the assigned crew outside the transaction; failures stay isolated
        message = (
            f"Order #{context.order_number} for {context.customer_name} has started. "
            "Please begin work immediately."
        )
        for user_id in context.recipient_user_ids:
            if notify(
                db,
                user_id,
                context,
                ORDER_STARTED,
                message,
                title=f"Order Started: #{context.order_number}",
                category=ORDER_STATUS_CATEGORY,
            ):
                result.notified += 1
            else:
                result.delivery_failures += 1

    return result


def expire_stale_orders(
    db: Session, system_actor_id: Optional[int], now: Optional[datetime] = None
) -> CheckResult:
    """
    Expire orders that never progressed

    OPEN orders 7+ days past their scheduled date → EXPIRED
    ACTIVE orders 14+ days past their scheduled date → EXPIRED

    Returns:
        CheckResult: matched/succeeded counts and per-order failures
    """
    now = now or utc_now()
    result = CheckResult(name="auto_expire")

    orders = OrderRepository.find_orders(db, *expiry_criteria(now))
    result.matched = len(orders)

    if not orders:
        logger.debug(
            f"ℹ️ No stale orders (OPEN > {OPEN_EXPIRY_DAYS}d, ACTIVE > {ACTIVE_EXPIRY_DAYS}d)"
        )
        return result

    logger.info(f"⏰ Expiring {len(orders)} stale orders")

    for order in orders:
        order_id = order.id
        previous_status = order.status
        try:
            days_overdue = _expire_order(db, order, system_actor_id, now)
            db.commit()
            result.succeeded += 1
            logger.info(
                f"✅ Order {order_id} transitioned: {previous_status} → EXPIRED ({days_overdue} days overdue)"
            )
        except Exception as e:
            db.rollback()
            result.record_failure(e, order_id=order_id)
            logger.error(f"❌ Failed to expire order {order_id}: {e}")

    return result
