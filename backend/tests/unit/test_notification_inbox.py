"""Unit tests for the in-app notification inbox.

Tests cover:
- Listing scoped to the caller, newest first, with unread filter and limit
- Unread count independent of the listing filters
- Marking read/unread, scoped to the owner
- Read notifications no longer trigger reminder emails
"""

from datetime import timedelta
from uuid import uuid4

import pytest

from dispatchlog.config import Settings
from dispatchlog.models import Notification
from dispatchlog.models.base import utcnow
from dispatchlog.notifications.inbox import count_unread, list_notifications, mark_notification
from dispatchlog.notifications.memory import InMemoryEmailSender
from dispatchlog.notifications.reminders import run_notification_sweep
from dispatchlog.tasks.errors import NotFoundError
from dispatchlog.tasks.factory import create_tasks


@pytest.fixture
def task(db_session, creator, employee, task_request, actor):
    return create_tasks(db_session, task_request([str(employee.id)]), actor(creator))[0]


@pytest.fixture
def add_notification(db_session, task):
    def _add(user, minutes_ago, read=False):
        row = Notification(
            user_id=user.id,
            task_id=task.id,
            type="TASK_ASSIGNED",
            message=f"New task assigned: {task.record_number}",
            read=read,
            created_at=utcnow() - timedelta(minutes=minutes_ago),
        )
        db_session.add(row)
        db_session.commit()
        return row

    return _add


class TestListNotifications:

    def test_only_own_rows_newest_first(self, db_session, employee, employee2, actor, add_notification):
        older = add_notification(employee, minutes_ago=30)
        newer = add_notification(employee, minutes_ago=5)
        add_notification(employee2, minutes_ago=1)

        rows, unread = list_notifications(db_session, actor(employee))

        assert [row.id for row in rows] == [newer.id, older.id]
        assert unread == 2

    def test_unread_only_and_limit(self, db_session, employee, actor, add_notification):
        add_notification(employee, minutes_ago=30)
        add_notification(employee, minutes_ago=20, read=True)
        latest_unread = add_notification(employee, minutes_ago=10)

        rows, unread = list_notifications(db_session, actor(employee), unread_only=True, limit=1)

        assert [row.id for row in rows] == [latest_unread.id]
        assert unread == 2

    def test_task_summary_loaded(self, db_session, employee, actor, add_notification, task):
        add_notification(employee, minutes_ago=1)

        rows, _ = list_notifications(db_session, actor(employee))

        assert rows[0].task.record_number == task.record_number


class TestMarkNotification:

    def test_mark_read_and_unread(self, db_session, employee, actor, add_notification):
        row = add_notification(employee, minutes_ago=1)

        updated = mark_notification(db_session, actor(employee), row.id, True)
        assert updated.read is True
        assert count_unread(db_session, employee.id) == 0

        mark_notification(db_session, actor(employee), row.id, False)
        assert count_unread(db_session, employee.id) == 1

    def test_other_users_notification_not_found(self, db_session, employee, employee2, actor, add_notification):
        row = add_notification(employee, minutes_ago=1)

        with pytest.raises(NotFoundError):
            mark_notification(db_session, actor(employee2), row.id, True)

        db_session.refresh(row)
        assert row.read is False

    def test_unknown_notification(self, db_session, employee, actor):
        with pytest.raises(NotFoundError):
            mark_notification(db_session, actor(employee), uuid4(), True)

    def test_read_notification_gets_no_reminder(self, db_session, employee, actor, add_notification):
        row = add_notification(employee, minutes_ago=3 * 24 * 60)
        mark_notification(db_session, actor(employee), row.id, True)
        settings = Settings(REMINDER_AFTER_HOURS=24, DEADLINE_REMINDER_DAYS=0)
        sender = InMemoryEmailSender()

        result = run_notification_sweep(db_session, sender, settings=settings)

        assert result.reminder_emails_sent == 0
        assert sender.sent == []
