"""Periodic notification sweep.

Runs three passes:
1. Purge notifications older than NOTIFICATION_RETENTION_DAYS
2. Email a reminder for unread notifications older than REMINDER_AFTER_HOURS
   whose task is still open, at most once per calendar day (UTC)
3. Email the internal holder of an open task due within
   DEADLINE_REMINDER_DAYS, at most once per calendar day (UTC)

The sweep is idempotent within a day: running it twice sends nothing new.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..models.base import as_utc, utcnow
from ..models.notification import Notification
from ..models.task import Task, TaskStatus
from ..observability.metrics import reminders_sent_total
from . import templates
from .dispatcher import deliver_best_effort
from .ports import EmailMessage, EmailSenderPort

logger = logging.getLogger(__name__)

_SETTLED_STATUSES = [TaskStatus.COMPLETED.value, TaskStatus.CLOSED.value]


@dataclass
class SweepResult:
    deleted_notifications: int = 0
    reminder_emails_sent: int = 0
    deadline_reminders_sent: int = 0
    failures: int = 0


def _creator_name(task: Task) -> str:
    return task.created_by.name if task.created_by is not None else "System"


def _start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def purge_old_notifications(db: Session, cutoff: datetime) -> int:
    deleted = (
        db.query(Notification)
        .filter(Notification.created_at < cutoff)
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted


def _send_unread_reminder(
    db: Session,
    sender: EmailSenderPort,
    notification: Notification,
    settings: Settings,
    now: datetime,
) -> None:
    task = notification.task
    days_old = (now - as_utc(notification.created_at)).days
    lead = (
        f"REMINDER: You have an unread notification from {days_old} day(s) ago. "
        f"{notification.message}"
    )
    subject, html = templates.task_assigned_email(
        task, _creator_name(task), settings.APP_BASE_URL, now, lead_message=lead
    )
    sender.send(EmailMessage(to=notification.user.email, subject=subject, html=html))

    notification.last_reminder_sent = now
    db.commit()


def _send_deadline_reminder(
    db: Session,
    sender: EmailSenderPort,
    task: Task,
    settings: Settings,
    now: datetime,
) -> None:
    lead = (
        f"DEADLINE REMINDER: This task is {templates.urgency_note(task.assigned_completion_date, now).lower()}. "
        "Please complete it soon."
    )
    subject, html = templates.task_assigned_email(
        task, _creator_name(task), settings.APP_BASE_URL, now, lead_message=lead
    )
    sender.send(EmailMessage(to=task.assigned_to.email, subject=subject, html=html))

    task.last_deadline_reminder = now
    db.commit()


def run_notification_sweep(
    db: Session,
    sender: EmailSenderPort,
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> SweepResult:
    """Purge old notifications and send due reminders.

    Args:
        db: Database session (committed per reminder)
        sender: Email transport
        now: Reference time (defaults to current UTC time)
        settings: Overrides for the retention and reminder windows

    Returns:
        SweepResult with counts per pass
    """
    settings = settings or get_settings()
    now = as_utc(now) if now is not None else utcnow()
    today_start = _start_of_day(now)
    result = SweepResult()

    result.deleted_notifications = purge_old_notifications(
        db, now - timedelta(days=settings.NOTIFICATION_RETENTION_DAYS)
    )
    logger.info(f"Deleted {result.deleted_notifications} old notifications")

    unread = (
        db.query(Notification)
        .join(Task, Notification.task_id == Task.id)
        .filter(
            Notification.read.is_(False),
            Notification.created_at < now - timedelta(hours=settings.REMINDER_AFTER_HOURS),
            Task.status.notin_(_SETTLED_STATUSES),
            or_(
                Notification.last_reminder_sent.is_(None),
                Notification.last_reminder_sent < today_start,
            ),
        )
        .order_by(Notification.created_at)
        .all()
    )

    for notification in unread:
        sent = deliver_best_effort(
            db, "reminder", notification.task, notification.user.email,
            _send_unread_reminder, db, sender, notification, settings, now,
        )
        if sent:
            result.reminder_emails_sent += 1
            reminders_sent_total.inc()
        else:
            result.failures += 1

    due_soon = (
        db.query(Task)
        .filter(
            Task.status.notin_(_SETTLED_STATUSES),
            Task.assigned_to_id.isnot(None),
            Task.assigned_completion_date >= now,
            Task.assigned_completion_date <= now + timedelta(days=settings.DEADLINE_REMINDER_DAYS),
            or_(
                Task.last_deadline_reminder.is_(None),
                Task.last_deadline_reminder < today_start,
            ),
        )
        .order_by(Task.assigned_completion_date)
        .all()
    )

    for task in due_soon:
        sent = deliver_best_effort(
            db, "deadline", task, task.assigned_to.email,
            _send_deadline_reminder, db, sender, task, settings, now,
        )
        if sent:
            result.deadline_reminders_sent += 1
            reminders_sent_total.inc()
        else:
            result.failures += 1

    logger.info(
        f"Notification sweep finished: {result.reminder_emails_sent} reminders, "
        f"{result.deadline_reminders_sent} deadline reminders, {result.failures} failures"
    )
    return result
