"""Receive log operations.

Receives draw their record numbers from their own counter, so receive and
task numbering advance independently. Only SUPERADMIN and users with the
manage-receives capability may log or list receives.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ..auth.roles import ActorContext
from ..models.receive import Receive, ReceiveStatus
from ..tasks.errors import NotFoundError, TaskPermissionError
from ..tasks.sequences import SequenceName, next_record_number
from .schemas import ReceiveCreateRequest

logger = logging.getLogger(__name__)


def _require_manager(actor: ActorContext) -> None:
    if not actor.manages_receives:
        raise TaskPermissionError("You do not have permission to manage receives")


def create_receive(db: Session, request: ReceiveCreateRequest, actor: ActorContext) -> Receive:
    _require_manager(actor)

    try:
        receive = Receive(
            record_number=next_record_number(db, SequenceName.RECEIVE),
            subject=request.subject,
            sender=request.sender,
            status=ReceiveStatus.OPEN.value,
            created_by_id=actor.user_id,
        )
        db.add(receive)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(receive)
    logger.info(
        "Receive logged",
        extra={"record_number": receive.record_number, "actor_id": actor.user_id},
    )
    return receive


def list_receives(
    db: Session,
    actor: ActorContext,
    status: Optional[ReceiveStatus] = None,
) -> List[Receive]:
    """Newest first, optionally filtered by status."""
    _require_manager(actor)

    query = db.query(Receive)
    if status is not None:
        query = query.filter(Receive.status == ReceiveStatus(status).value)
    return query.order_by(Receive.created_at.desc()).all()


def set_receive_status(
    db: Session,
    receive_id: UUID,
    status: ReceiveStatus,
    actor: ActorContext,
) -> Receive:
    """Move a receive between OPEN, ASSIGNED and CLOSED.

    A CLOSED receive can no longer be linked to new tasks.
    """
    _require_manager(actor)

    receive = db.get(Receive, receive_id)
    if receive is None:
        raise NotFoundError(f"Receive {receive_id} not found")

    receive.status = ReceiveStatus(status).value
    db.commit()
    db.refresh(receive)
    return receive
