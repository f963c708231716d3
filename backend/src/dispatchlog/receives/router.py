"""Receive log API Router."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth.dependencies import CurrentActor
from ..database import get_db
from ..models.receive import ReceiveStatus
from .schemas import (
    ReceiveCreateRequest,
    ReceiveListResponse,
    ReceiveResponse,
    ReceiveStatusUpdate,
)
from .service import create_receive, list_receives, set_receive_status

router = APIRouter(prefix="/receives", tags=["receives"])


@router.post(
    "",
    response_model=ReceiveResponse,
    status_code=201,
    summary="Log a receive",
    description="""
    Record incoming correspondence under the next receive number.

    **Permissions:** SUPERADMIN or users with the manage-receives capability
    """,
)
def create_receive_endpoint(
    request: ReceiveCreateRequest,
    actor: CurrentActor,
    db: Session = Depends(get_db),
):
    return ReceiveResponse.model_validate(create_receive(db, request, actor))


@router.get("", response_model=ReceiveListResponse, summary="List receives")
def list_receives_endpoint(
    actor: CurrentActor,
    status: Optional[ReceiveStatus] = Query(None, description="Filter by status"),
    db: Session = Depends(get_db),
):
    receives = list_receives(db, actor, status)
    return ReceiveListResponse(receives=[ReceiveResponse.model_validate(r) for r in receives])


@router.patch("/{receive_id}", response_model=ReceiveResponse, summary="Change receive status")
def update_receive_endpoint(
    receive_id: UUID,
    request: ReceiveStatusUpdate,
    actor: CurrentActor,
    db: Session = Depends(get_db),
):
    return ReceiveResponse.model_validate(set_receive_status(db, receive_id, request.status, actor))
