from datetime import timedelta
from unittest.mock import patch

from orderflow.domain.notifications.repository import NotificationRepository
from orderflow.models import Notification, NotificationRecipient, OrderStatus
from orderflow.services import order_reminders
from orderflow.services.order_reminders import (
    HOURLY_REMINDER,
    OVERDUE_REMINDER,
    TOMORROW_REMINDER,
    run_all_reminder_checks,
    send_hourly_reminders,
    send_overdue_reminders,
    send_tomorrow_reminders,
)


def _recipient_user_ids(db):
    return sorted(user_id for (user_id,) in db.query(NotificationRecipient.user_id).all())


class TestTomorrowReminders:
    def test_window_includes_midnight_and_excludes_next_day(self, db, now, make_order):
        tomorrow = now.replace(hour=0) + timedelta(days=1)
        included = make_order(scheduled_date=tomorrow, assignments=1)
        make_order(scheduled_date=tomorrow + timedelta(days=1), assignments=1)

        result = send_tomorrow_reminders(db, now)

        assert result.matched == 1
        assert result.succeeded == 1
        notification = db.query(Notification).one()
        assert notification.data["orderId"] == included.id
        assert notification.data["reminderType"] == TOMORROW_REMINDER

    def test_notification_content(self, db, now, make_order):
        order = make_order(scheduled_date=now + timedelta(days=1, hours=9), assignments=1)

        send_tomorrow_reminders(db, now)

        notification = db.query(Notification).one()
        recipient = db.query(NotificationRecipient).one()
        assert notification.title == f"Order Reminder: #{order.order_number}"
        assert notification.category == "order_reminder"
        assert notification.body == (
            f"Reminder: Order #{order.order_number} for Acme Facilities "
            "is scheduled to start tomorrow."
        )
        assert notification.data == {
            "orderId": order.id,
            "orderNumber": order.order_number,
            "customerName": "Acme Facilities",
            "scheduledDate": order.scheduled_date.isoformat(),
            "reminderType": TOMORROW_REMINDER,
        }
        assert recipient.channels == ["in_app", "email"]
        assert recipient.status == "PENDING"

    def test_one_reminder_per_assignment_and_no_status_change(self, db, now, make_order):
        order = make_order(scheduled_date=now + timedelta(days=1), assignments=3)

        result = send_tomorrow_reminders(db, now)

        assert result.succeeded == 3
        assert db.query(NotificationRecipient).count() == 3
        assert order.status == OrderStatus.ACTIVE.value

    def test_skips_archived_and_non_active(self, db, now, make_order):
        make_order(scheduled_date=now + timedelta(days=1), is_archived=True, assignments=1)
        make_order(status=OrderStatus.OPEN, scheduled_date=now + timedelta(days=1), assignments=1)

        result = send_tomorrow_reminders(db, now)

        assert result.matched == 0
        assert db.query(Notification).count() == 0


class TestHourlyReminders:
    def test_window_is_half_open(self, db, now, make_order):
        make_order(start_time=now + timedelta(hours=1), assignments=1)
        make_order(start_time=now + timedelta(hours=1, minutes=59), assignments=1)
        make_order(start_time=now + timedelta(hours=2), assignments=1)
        make_order(start_time=now + timedelta(minutes=59), assignments=1)

        result = send_hourly_reminders(db, now)

        assert result.matched == 2
        notification = db.query(Notification).first()
        assert notification.data["reminderType"] == HOURLY_REMINDER
        assert "starts in 1 hour" in notification.body


class TestOverdueReminders:
    def test_in_progress_for_three_days_or_more(self, db, now, make_order):
        order = make_order(
            status=OrderStatus.IN_PROGRESS, start_time=now - timedelta(days=4, hours=5), assignments=1
        )
        make_order(
            status=OrderStatus.IN_PROGRESS, start_time=now - timedelta(days=2, hours=23), assignments=1
        )

        result = send_overdue_reminders(db, now)

        assert result.matched == 1
        notification = db.query(Notification).one()
        assert notification.data["reminderType"] == OVERDUE_REMINDER
        assert notification.data["scheduledDate"] == order.start_time.isoformat()
        assert "has been in progress for 4 days" in notification.body


class TestFanOutIsolation:
    def test_failed_recipient_does_not_block_others(self, db, now, make_order):
        first = make_order(scheduled_date=now + timedelta(days=1), assignments=3)
        second = make_order(scheduled_date=now + timedelta(days=1, hours=2), assignments=1)
        expected_users = [a.employee.user_id for a in first.employee_assignments]
        later_user = second.employee_assignments[0].employee.user_id

        create_recipient = NotificationRepository.create_recipient
        calls = []

        def flaky_recipient(session, notification_id, user_id, channels=None):
            calls.append(user_id)
            if len(calls) == 2:
                raise RuntimeError("recipient insert failed")
            return create_recipient(
                session, notification_id=notification_id, user_id=user_id, channels=channels
            )

        with patch.object(NotificationRepository, "create_recipient", side_effect=flaky_recipient):
            result = send_tomorrow_reminders(db, now)

        assert result.succeeded == 3
        assert result.delivery_failures == 1
        assert result.ok
        failed_user = calls[1]
        assert failed_user in expected_users
        assert len(calls) == 4
        assert _recipient_user_ids(db) == sorted(
            set(expected_users + [later_user]) - {failed_user}
        )


class TestReminderDeduplication:
    def test_rerun_in_same_window_is_skipped(self, db, now, make_order):
        make_order(scheduled_date=now + timedelta(days=1), assignments=2)

        first = send_tomorrow_reminders(db, now)
        second = send_tomorrow_reminders(db, now + timedelta(hours=6))

        assert first.succeeded == 2
        assert second.succeeded == 0
        assert second.skipped == 2
        assert db.query(NotificationRecipient).count() == 2

    def test_without_dedup_rerun_duplicates(self, db, now, make_order):
        # Window checks alone cannot tell a rerun from a first run
        make_order(scheduled_date=now + timedelta(days=1), assignments=2)

        send_tomorrow_reminders(db, now, dedup=False)
        send_tomorrow_reminders(db, now + timedelta(hours=6), dedup=False)

        assert db.query(NotificationRecipient).count() == 4

    def test_overdue_reminder_repeats_on_the_next_day(self, db, now, make_order):
        make_order(status=OrderStatus.IN_PROGRESS, start_time=now - timedelta(days=5), assignments=1)

        send_overdue_reminders(db, now)
        same_day = send_overdue_reminders(db, now + timedelta(hours=12))
        next_day = send_overdue_reminders(db, now + timedelta(days=1))

        assert same_day.skipped == 1
        assert next_day.succeeded == 1
        assert db.query(NotificationRecipient).count() == 2

    def test_missed_window_is_not_caught_up(self, db, now, make_order):
        make_order(start_time=now + timedelta(minutes=30), assignments=1)

        result = send_hourly_reminders(db, now)

        assert result.matched == 0

    def test_sent_check_and_insert_run_under_the_delivery_lock(self, db, now, make_order):
        make_order(start_time=now + timedelta(hours=1, minutes=15), assignments=2)
        lock_held = []

        def record_lock(*args, **kwargs):
            lock_held.append(order_reminders._delivery_lock.locked())
            return True

        with patch("orderflow.services.order_reminders.notify", side_effect=record_lock):
            result = send_hourly_reminders(db, now)

        assert result.succeeded == 2
        assert lock_held == [True, True]
        assert not order_reminders._delivery_lock.locked()


class TestRunAllReminderChecks:
    def test_runs_tomorrow_hourly_then_overdue(self, db, now, make_order):
        make_order(scheduled_date=now + timedelta(days=1), assignments=1)

        results = run_all_reminder_checks(db, now)

        assert list(results) == ["tomorrow_reminders", "hourly_reminders", "overdue_reminders"]
        assert results["tomorrow_reminders"].succeeded == 1
        assert all(result.ok for result in results.values())

    def test_failing_check_is_recorded_and_the_rest_still_run(self, db, now, make_order):
        make_order(status=OrderStatus.IN_PROGRESS, start_time=now - timedelta(days=4), assignments=1)

        with patch(
            "orderflow.services.order_reminders.send_hourly_reminders",
            side_effect=RuntimeError("lost connection"),
        ):
            results = run_all_reminder_checks(db, now)

        assert not results["hourly_reminders"].ok
        assert "lost connection" in results["hourly_reminders"].failed[0].error
        assert results["overdue_reminders"].succeeded == 1
        assert db.query(NotificationRecipient).count() == 1
