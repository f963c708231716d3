"""Notification inbox API Router."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth.dependencies import CurrentActor
from ..database import get_db
from .inbox import list_notifications, mark_notification
from .schemas import NotificationListResponse, NotificationReadUpdate, NotificationResponse

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get(
    "",
    response_model=NotificationListResponse,
    summary="List my notifications",
    description="Newest first. ``unread_count`` always covers every unread row.",
)
def list_notifications_endpoint(
    actor: CurrentActor,
    unread_only: bool = Query(False, description="Only unread notifications"),
    limit: int = Query(50, ge=1, le=200, description="Maximum rows returned"),
    db: Session = Depends(get_db),
):
    rows, unread_count = list_notifications(db, actor, unread_only=unread_only, limit=limit)
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(row) for row in rows],
        unread_count=unread_count,
    )


@router.patch(
    "/{notification_id}",
    response_model=NotificationResponse,
    summary="Mark a notification read or unread",
)
def mark_notification_endpoint(
    notification_id: UUID,
    request: NotificationReadUpdate,
    actor: CurrentActor,
    db: Session = Depends(get_db),
):
    notification = mark_notification(db, actor, notification_id, request.read)
    return NotificationResponse.model_validate(notification)
