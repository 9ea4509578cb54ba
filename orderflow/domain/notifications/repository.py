"""Notification repository - Database operations for reminder fan-out"""

from sqlalchemy.orm import Session

from ...models import Notification, NotificationRecipient, NotificationStatus

DEFAULT_CHANNELS = ["in_app", "email"]


class NotificationRepository:
    """Repository for notification database operations"""

    @staticmethod
    def create_notification(db: Session, **notification_data) -> Notification:
        """Create and commit a notification"""
        notification = Notification(**notification_data)
        db.add(notification)
        db.commit()
        db.refresh(notification)
        return notification

    @staticmethod
    def create_recipient(
        db: Session, notification_id: int, user_id: int, channels: list[str] = None
    ) -> NotificationRecipient:
        """Create and commit a pending delivery for one user"""
        recipient = NotificationRecipient(
            notification_id=notification_id,
            user_id=user_id,
            channels=list(channels or DEFAULT_CHANNELS),
            status=NotificationStatus.PENDING.value,
        )
        db.add(recipient)
        db.commit()
        db.refresh(recipient)
        return recipient

    @staticmethod
    def reminder_already_sent(db: Session, reminder_key: str, user_id: int) -> bool:
        """Check whether this user already has a delivery for the reminder key"""
        return (
            db.query(NotificationRecipient.id)
            .join(Notification, Notification.id == NotificationRecipient.notification_id)
            .filter(
                Notification.reminder_key == reminder_key,
                NotificationRecipient.user_id == user_id,
            )
            .first()
            is not None
        )
