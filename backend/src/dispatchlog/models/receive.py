"""Receive model - incoming correspondence that tasks are dispatched from."""

import uuid
from enum import Enum

from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Uuid

from .base import Base, utcnow


class ReceiveStatus(str, Enum):
    """Receive lifecycle.

    Values:
        OPEN: Logged, no task dispatched yet
        ASSIGNED: At least one task was dispatched from it
        CLOSED: Filed; no further tasks may be linked
    """
    OPEN = "OPEN"
    ASSIGNED = "ASSIGNED"
    CLOSED = "CLOSED"


class Receive(Base):
    __tablename__ = "receive"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    record_number = Column(Text, nullable=False, unique=True)
    subject = Column(Text, nullable=False)
    sender = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=ReceiveStatus.OPEN.value)
    created_by_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Receive(id={self.id}, record_number={self.record_number}, status={self.status})>"
