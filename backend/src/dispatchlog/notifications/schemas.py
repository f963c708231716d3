"""Pydantic schemas for the notification inbox."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from ..models.task import TaskStatus


class NotificationTaskSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    record_number: str
    status: TaskStatus
    description_of_work: str
    assigned_completion_date: datetime


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    type: str
    message: str
    read: bool
    task_id: Optional[UUID] = None
    task: Optional[NotificationTaskSummary] = None
    created_at: datetime


class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
    unread_count: int


class NotificationReadUpdate(BaseModel):
    model_config = ConfigDict(extra='forbid')

    read: bool
