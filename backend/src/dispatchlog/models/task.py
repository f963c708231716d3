"""Task models: the dispatched work item and its audit trail.

A Task is created by the task factory (one per recipient, or one shared row
for a notice) and afterwards only mutated by the action processor or an
out-of-band edit. TaskAction and TaskHistory rows are append-only.
"""

import uuid
from enum import Enum

from sqlalchemy import (
    Column, String, Text, Boolean, BigInteger, DateTime, ForeignKey, Index, CheckConstraint,
    UniqueConstraint, Uuid
)
from sqlalchemy.orm import relationship

from .base import Base, PortableJSONB, utcnow


class TaskStatus(str, Enum):
    """Task lifecycle status.

    Values:
        ACTIVE: Freshly dispatched (or reverted) and waiting on the holder
        IN_PROGRESS: Sent back by leadership after a rejected submission
        COMPLETED: Holder submitted the work; awaiting acknowledgment
        CLOSED: Finished; terminal for lifecycle actions
    """
    ACTIVE = "ACTIVE"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CLOSED = "CLOSED"


class TaskActionType(str, Enum):
    """Kinds of TaskAction rows."""
    CREATED = "CREATED"
    FORWARDED = "FORWARDED"
    SUBMITTED = "SUBMITTED"
    CLOSED = "CLOSED"
    REVERTED = "REVERTED"
    EDITED = "EDITED"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    REJECTED = "REJECTED"


class Task(Base):
    """Dispatched unit of work.

    Holder fields:
        assigned_to_id: internal holder (exclusive with the external fields on
            standard tasks; on notices it is the first internal recipient and
            is display-only)
        external_assignee_name / external_assignee_email: comma-joined lists
            of external recipients
    """

    __tablename__ = "task"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    record_number = Column(Text, nullable=False, unique=True)
    issuance_date = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    issuance_message = Column(Text, nullable=True)
    description_of_work = Column(Text, nullable=False)

    status = Column(String(20), nullable=False, default=TaskStatus.ACTIVE.value)
    is_notice = Column(Boolean, nullable=False, default=False)
    notice_group_id = Column(Text, nullable=True)

    assigned_to_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    external_assignee_name = Column(Text, nullable=True)
    external_assignee_email = Column(Text, nullable=True)

    priority_id = Column(Uuid, ForeignKey("priority.id"), nullable=False)
    complexity_id = Column(Uuid, ForeignKey("complexity.id"), nullable=False)
    assigned_personnel_id = Column(Uuid, ForeignKey("assigned_personnel.id"), nullable=True)
    workcenter_id = Column(Uuid, ForeignKey("workcenter.id"), nullable=True)
    assigned_completion_date = Column(DateTime(timezone=True), nullable=False)

    created_by_id = Column(Uuid, ForeignKey("user.id"), nullable=False)
    acknowledged_by_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    acknowledged_at = Column(DateTime(timezone=True), nullable=True)
    last_deadline_reminder = Column(DateTime(timezone=True), nullable=True)
    receive_id = Column(Uuid, ForeignKey("receive.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    assigned_to = relationship("User", foreign_keys=[assigned_to_id])
    created_by = relationship("User", foreign_keys=[created_by_id])
    acknowledged_by = relationship("User", foreign_keys=[acknowledged_by_id])
    priority = relationship("Priority")
    complexity = relationship("Complexity")
    assigned_personnel = relationship("AssignedPersonnel")
    workcenter = relationship("Workcenter")
    receive = relationship("Receive")
    assignments = relationship("TaskAssignment", back_populates="task", cascade="all, delete-orphan")
    attachments = relationship("TaskAttachment", back_populates="task", cascade="all, delete-orphan")
    actions = relationship(
        "TaskAction",
        back_populates="task",
        order_by="TaskAction.sequence",
        cascade="all, delete-orphan",
    )
    history = relationship(
        "TaskHistory",
        back_populates="task",
        order_by="TaskHistory.sequence",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_task_status", "status"),
        Index("idx_task_assigned_to", "assigned_to_id"),
        Index("idx_task_notice_group", "notice_group_id"),
        CheckConstraint(
            "acknowledged_by_id IS NULL OR status = 'COMPLETED'",
            name="ck_task_acknowledged_completed"
        ),
    )

    def __repr__(self):
        return f"<Task(id={self.id}, record_number={self.record_number}, status={self.status})>"


class TaskAssignment(Base):
    """Roster link giving an internal user equal standing on a notice."""

    __tablename__ = "task_assignment"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    task_id = Column(Uuid, ForeignKey("task.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    task = relationship("Task", back_populates="assignments")
    user = relationship("User")

    __table_args__ = (
        UniqueConstraint("task_id", "user_id", name="uq_task_assignment_task_user"),
    )


class TaskAttachment(Base):
    """Metadata for a file that was already written to object storage."""

    __tablename__ = "task_attachment"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    task_id = Column(Uuid, ForeignKey("task.id", ondelete="CASCADE"), nullable=False)
    filename = Column(Text, nullable=False)
    storage_key = Column(Text, nullable=False)
    file_size = Column(BigInteger, nullable=True)
    mime_type = Column(Text, nullable=True)
    uploaded_by_id = Column(Uuid, ForeignKey("user.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    task = relationship("Task", back_populates="attachments")


class TaskAction(Base):
    """Immutable lifecycle event.

    Exactly one row is written per committed transition. Entries are
    append-only and should never be updated or deleted. ``sequence`` is the
    row's position in the task's trail, so ordering does not depend on
    timestamp resolution.
    """

    __tablename__ = "task_action"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    sequence = Column(BigInteger, nullable=False)
    task_id = Column(Uuid, ForeignKey("task.id", ondelete="CASCADE"), nullable=False)
    action_type = Column(String(20), nullable=False)
    performed_by_id = Column(Uuid, ForeignKey("user.id"), nullable=False)
    forwarded_to_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    forwarded_to_email = Column(Text, nullable=True)
    reference_number = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    task = relationship("Task", back_populates="actions")
    performed_by = relationship("User", foreign_keys=[performed_by_id])
    forwarded_to = relationship("User", foreign_keys=[forwarded_to_id])

    __table_args__ = (
        UniqueConstraint("task_id", "sequence", name="uq_task_action_task_sequence"),
        Index("idx_task_action_task_type", "task_id", "action_type", "sequence"),
    )


class TaskHistory(Base):
    """Immutable field-level diff recorded alongside an action."""

    __tablename__ = "task_history"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    sequence = Column(BigInteger, nullable=False)
    task_id = Column(Uuid, ForeignKey("task.id", ondelete="CASCADE"), nullable=False)
    action = Column(Text, nullable=False)
    old_value = Column(PortableJSONB, nullable=True)
    new_value = Column(PortableJSONB, nullable=True)
    changed_by_id = Column(Uuid, ForeignKey("user.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    task = relationship("Task", back_populates="history")
    changed_by = relationship("User")

    __table_args__ = (
        UniqueConstraint("task_id", "sequence", name="uq_task_history_task_sequence"),
    )
