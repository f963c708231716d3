"""Notification dispatcher.

Turns committed task events into in-app Notification rows and outbound email.
Every ``notify_*`` method handles exactly one recipient and raises
ExternalSideEffectError on failure; callers run each one through
``deliver_best_effort`` after their own commit so a failed notification never
affects task state or the remaining recipients.
"""

import logging
from functools import lru_cache
from typing import Callable, List, Optional

from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth.roles import ActorContext, leadership_roles
from ..config import Settings, get_settings
from ..database import get_db
from ..models.base import utcnow
from ..models.notification import Notification, NotificationType
from ..models.task import Task
from ..models.user import User
from ..observability.metrics import notification_failures_total
from ..tasks.errors import ExternalSideEffectError
from . import templates
from .email import SmtpEmailSender
from .memory import InMemoryEmailSender
from .ports import EmailMessage, EmailSenderPort

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Sends task notifications through an EmailSenderPort and the database.

    In-app rows are committed one at a time so a failure only rolls back the
    row being written.
    """

    def __init__(
        self,
        db: Session,
        email_sender: EmailSenderPort,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.email_sender = email_sender
        self.settings = settings or get_settings()

    @property
    def base_url(self) -> str:
        return self.settings.APP_BASE_URL

    def _send_email(self, to: str, subject: str, html: str) -> None:
        self.email_sender.send(EmailMessage(to=to, subject=subject, html=html))

    def _in_app(self, user_id, task: Task, notification_type: NotificationType, message: str) -> None:
        try:
            self.db.add(Notification(
                user_id=user_id,
                task_id=task.id,
                type=notification_type.value,
                message=message,
            ))
            self.db.commit()
        except SQLAlchemyError as e:
            raise ExternalSideEffectError(f"Could not store notification: {e}") from e

    def _creator_name(self, task: Task) -> str:
        return task.created_by.name if task.created_by is not None else "System"

    def notify_assigned(self, task: Task) -> None:
        """Tell the task's current holder that the task is theirs.

        Internal holders get an email and an in-app row; an external email
        holder gets the email only; an external name cannot be contacted.
        """
        subject, html = templates.task_assigned_email(
            task, self._creator_name(task), self.base_url, utcnow()
        )
        if task.assigned_to is not None:
            self._send_email(task.assigned_to.email, subject, html)
            self._in_app(
                task.assigned_to_id, task, NotificationType.TASK_ASSIGNED,
                f"New task assigned: {task.record_number}",
            )
        elif task.external_assignee_email:
            self._send_email(task.external_assignee_email, subject, html)

    def notify_forwarded(self, task: Task, actor: ActorContext, message: Optional[str] = None) -> None:
        """Tell the new holder that the task was forwarded to them."""
        subject, html = templates.task_forwarded_email(
            task, actor.name or actor.email, actor.email, message, self.base_url, utcnow()
        )
        if task.assigned_to is not None:
            self._send_email(task.assigned_to.email, subject, html)
            self._in_app(
                task.assigned_to_id, task, NotificationType.TASK_FORWARDED,
                f"Task forwarded to you: {task.record_number}",
            )
        elif task.external_assignee_email:
            self._send_email(task.external_assignee_email, subject, html)

    def notify_rejected(self, task: Task, actor: ActorContext, reason: str) -> None:
        """Tell the reassigned holder why their submission was rejected."""
        if task.assigned_to is None:
            return
        subject, html = templates.task_rejected_email(
            task, actor.name or actor.email, actor.email, reason, self.base_url
        )
        self._send_email(task.assigned_to.email, subject, html)
        self._in_app(
            task.assigned_to_id, task, NotificationType.TASK_UPDATED,
            f"Task rejected: {task.record_number}. Reason: {reason}",
        )

    def notify_notice(self, task: Task, actor: ActorContext, user_id=None, email: Optional[str] = None) -> None:
        """Deliver a notice to one recipient.

        Everyone with an address gets the email; only internal recipients
        (``user_id`` set) get an in-app row.
        """
        if email:
            subject, html = templates.notice_email(task, actor.name or actor.email, self.base_url)
            self._send_email(email, subject, html)
        if user_id is not None:
            self._in_app(user_id, task, NotificationType.TASK_ASSIGNED, f"New notice: {task.record_number}")

    def leadership_recipients(self) -> List[User]:
        return (
            self.db.query(User)
            .filter(
                User.role.in_([role.value for role in leadership_roles()]),
                User.status == "ACTIVE",
            )
            .order_by(User.name)
            .all()
        )

    def notify_submitted(self, task: Task, leader: User) -> None:
        """In-app row telling one leader that work awaits acknowledgment."""
        self._in_app(
            leader.id, task, NotificationType.TASK_UPDATED,
            f"Task completed and awaiting acknowledgment: {task.record_number}",
        )


def deliver_best_effort(
    db: Session,
    event: str,
    task: Task,
    recipient: str,
    send: Callable[..., None],
    *args,
    **kwargs,
) -> bool:
    """Run one notification and swallow ExternalSideEffectError.

    On failure the pending notification row is rolled back, the failure is
    logged with task and recipient correlation and counted. Returns True when
    the notification went out.
    """
    task_id = task.id
    record_number = task.record_number
    try:
        send(*args, **kwargs)
        return True
    except ExternalSideEffectError as e:
        db.rollback()
        notification_failures_total.labels(event=event).inc()
        logger.error(
            f"Notification '{event}' failed: {e.message}",
            extra={
                "task_id": task_id,
                "record_number": record_number,
                "recipient": recipient,
            }
        )
        return False


@lru_cache()
def get_email_sender() -> EmailSenderPort:
    """Email transport selected by EMAIL_BACKEND (cached for the process)."""
    settings = get_settings()
    if settings.EMAIL_BACKEND == "memory":
        return InMemoryEmailSender()
    if settings.EMAIL_BACKEND == "smtp":
        return SmtpEmailSender.from_settings(settings)
    raise ValueError(f"Unknown EMAIL_BACKEND: {settings.EMAIL_BACKEND}")


def get_dispatcher(db: Session = Depends(get_db)) -> NotificationDispatcher:
    """FastAPI dependency building a dispatcher on the request session."""
    return NotificationDispatcher(db, get_email_sender())
