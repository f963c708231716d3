"""Pydantic schemas for the receive log."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.receive import ReceiveStatus


class ReceiveCreateRequest(BaseModel):
    model_config = ConfigDict(extra='forbid')

    subject: str = Field(..., min_length=1)
    sender: str = Field(..., min_length=1, description="Who the correspondence came from")

    @field_validator('subject', 'sender')
    @classmethod
    def strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field cannot be blank")
        return v


class ReceiveStatusUpdate(BaseModel):
    model_config = ConfigDict(extra='forbid')

    status: ReceiveStatus


class ReceiveResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    record_number: str
    subject: str
    sender: Optional[str] = None
    status: ReceiveStatus
    created_by_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime


class ReceiveListResponse(BaseModel):
    receives: List[ReceiveResponse]
