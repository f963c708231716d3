"""In-app notification inbox.

Every query is scoped to the acting user: a notification id that belongs to
someone else behaves exactly like one that does not exist. Marking a row read
also stops the reminder sweep from emailing about it.
"""

from typing import List, Tuple
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from ..auth.roles import ActorContext
from ..models.notification import Notification
from ..tasks.errors import NotFoundError


def count_unread(db: Session, user_id: UUID) -> int:
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.read.is_(False))
        .count()
    )


def list_notifications(
    db: Session,
    actor: ActorContext,
    unread_only: bool = False,
    limit: int = 50,
) -> Tuple[List[Notification], int]:
    """Newest notifications for the actor plus their total unread count.

    The unread count ignores ``limit`` and ``unread_only``.
    """
    query = (
        db.query(Notification)
        .options(joinedload(Notification.task))
        .filter(Notification.user_id == actor.user_id)
    )
    if unread_only:
        query = query.filter(Notification.read.is_(False))

    rows = query.order_by(Notification.created_at.desc()).limit(limit).all()
    return rows, count_unread(db, actor.user_id)


def mark_notification(
    db: Session,
    actor: ActorContext,
    notification_id: UUID,
    read: bool,
) -> Notification:
    """Set the read flag on one of the actor's notifications.

    Raises:
        NotFoundError: No such notification for this user
    """
    notification = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == actor.user_id)
        .first()
    )
    if notification is None:
        raise NotFoundError(f"Notification {notification_id} not found")

    notification.read = read
    db.commit()
    db.refresh(notification)
    return notification
