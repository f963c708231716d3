"""Staff user model."""

import re
import uuid

from sqlalchemy import Column, Text, Boolean, DateTime, ForeignKey, CheckConstraint, Uuid
from sqlalchemy.orm import relationship, validates

from .base import Base, utcnow


class User(Base):
    """Staff member who creates, holds, forwards or signs off tasks.

    The role places the user in the hierarchy; the boolean capability flags
    grant individual powers on top of it (approving completions, reverting
    completions, creating tasks, logging receives). ``include_in_all_staff`` opts the user into
    the all-staff broadcast alias.
    """
    __tablename__ = "user"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(Text, nullable=False, unique=True)
    name = Column(Text, nullable=False)
    role = Column(Text, nullable=False, default="EMPLOYEE")
    status = Column(Text, nullable=False, default="ACTIVE")
    designation = Column(Text, nullable=True)
    staff_id = Column(Text, nullable=True)
    workcenter_id = Column(Uuid, ForeignKey("workcenter.id", ondelete="SET NULL"), nullable=True)

    # Capability flags
    can_create_tasks = Column(Boolean, nullable=False, default=False)
    can_approve_completions = Column(Boolean, nullable=False, default=False)
    can_revert_completions = Column(Boolean, nullable=False, default=False)
    can_manage_receives = Column(Boolean, nullable=False, default=False)
    include_in_all_staff = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    workcenter = relationship("Workcenter")

    __table_args__ = (
        CheckConstraint(
            "role IN ('SUPERADMIN', 'DIRECTOR', 'DY_DIRECTOR', 'MANAGER', 'INCHARGE', 'EMPLOYEE')",
            name='ck_user_role'
        ),
        CheckConstraint(
            "status IN ('ACTIVE', 'DISABLED')",
            name='ck_user_status'
        ),
    )

    @validates('email')
    def validate_email(self, key, value):
        """Emails are stored lowercased so recipient lookups are case-insensitive."""
        if not re.match(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$', value):
            raise ValueError("Invalid email format")
        return value.lower()

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
