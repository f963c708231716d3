"""Notification model - in-app messages written by the notification dispatcher."""

import uuid
from enum import Enum

from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, Index, Uuid
from sqlalchemy.orm import relationship

from .base import Base, utcnow


class NotificationType(str, Enum):
    TASK_ASSIGNED = "TASK_ASSIGNED"
    TASK_FORWARDED = "TASK_FORWARDED"
    TASK_CLOSED = "TASK_CLOSED"
    TASK_UPDATED = "TASK_UPDATED"


class Notification(Base):
    """In-app notification for one user about one task.

    ``last_reminder_sent`` is stamped by the reminder sweep so a user gets at
    most one reminder email per notification per day.
    """

    __tablename__ = "notification"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    task_id = Column(Uuid, ForeignKey("task.id", ondelete="CASCADE"), nullable=True)
    type = Column(String(32), nullable=False)
    message = Column(Text, nullable=False)
    read = Column(Boolean, nullable=False, default=False)
    last_reminder_sent = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    user = relationship("User")
    task = relationship("Task")

    __table_args__ = (
        Index("idx_notification_user_read", "user_id", "read"),
    )

    def __repr__(self):
        return f"<Notification(id={self.id}, user_id={self.user_id}, type={self.type})>"
