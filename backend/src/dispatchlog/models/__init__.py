"""SQLAlchemy models for the dispatch backend"""

from .base import Base
from .reference import Priority, Complexity, AssignedPersonnel, Workcenter
from .user import User
from .receive import Receive, ReceiveStatus
from .sequence_counter import SequenceCounter
from .task import (
    Task,
    TaskStatus,
    TaskActionType,
    TaskAssignment,
    TaskAttachment,
    TaskAction,
    TaskHistory,
)
from .notification import Notification, NotificationType

__all__ = [
    "Base",
    "Priority",
    "Complexity",
    "AssignedPersonnel",
    "Workcenter",
    "User",
    "Receive",
    "ReceiveStatus",
    "SequenceCounter",
    "Task",
    "TaskStatus",
    "TaskActionType",
    "TaskAssignment",
    "TaskAttachment",
    "TaskAction",
    "TaskHistory",
    "Notification",
    "NotificationType",
]
