"""
Order reminder notification fan-out
Creates one notification and one pending recipient row per target user.
Delivery over in-app/email channels is handled by the notification worker.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..domain.notifications.repository import DEFAULT_CHANNELS, NotificationRepository
from ..domain.orders.schemas import ReminderContext
from ..models import Order

logger = logging.getLogger(__name__)

ORDER_REMINDER_CATEGORY = "order_reminder"
ORDER_STATUS_CATEGORY = "order_status"


def order_context(order: Order, reference_time: datetime) -> ReminderContext:
    """Capture what a notification needs before per-row commits expire the order"""
    return ReminderContext(
        order_id=order.id,
        order_number=order.order_number,
        customer_name=order.customer.company_name if order.customer else "Unknown customer",
        reference_time=reference_time,
        recipient_user_ids=[
            assignment.employee.user_id
            for assignment in order.employee_assignments
            if assignment.employee is not None
        ],
    )


def build_reminder_payload(context: ReminderContext, reminder_type: str) -> dict:
    return {
        "orderId": context.order_id,
        "orderNumber": context.order_number,
        "customerName": context.customer_name,
        "scheduledDate": context.reference_time.isoformat(),
        "reminderType": reminder_type,
    }


def notify(
    db: Session,
    user_id: int,
    context: ReminderContext,
    reminder_type: str,
    message: str,
    reminder_key: Optional[str] = None,
    title: Optional[str] = None,
    category: str = ORDER_REMINDER_CATEGORY,
) -> bool:
    """
    Create an order notification for a single user

    Failures are logged and swallowed so one bad recipient never blocks
    the rest of the batch.

    Args:
        db: Database session
        user_id: Recipient user ID
        context: Order details for the payload and title
        reminder_type: TOMORROW_REMINDER, HOURLY_REMINDER, OVERDUE_REMINDER,
            or ORDER_STARTED for the auto-start notice
        message: Rendered notification text
        reminder_key: Optional de-duplication key for this reminder window
        title: Defaults to "Order Reminder: #<order number>"
        category: Notification category

    Returns:
        bool: True if both rows were created
    """
    try:
        notification = NotificationRepository.create_notification(
            db,
            title=title or f"Order Reminder: #{context.order_number}",
            body=message,
            category=category,
            data=build_reminder_payload(context, reminder_type),
            reminder_key=reminder_key,
            created_by=None,
        )
        NotificationRepository.create_recipient(
            db, notification_id=notification.id, user_id=user_id, channels=DEFAULT_CHANNELS
        )
        logger.debug(f"📨 {reminder_type} queued for user {user_id} (order {context.order_number})")
        return True
    except Exception as e:
        logger.error(f"❌ Failed to create notification for user {user_id}: {e}")
        db.rollback()
        return False
