"""Pydantic schemas for task endpoints and services.

Lifecycle actions are a closed union discriminated by ``action_type``; each
variant declares exactly the fields it accepts. Unknown fields are rejected.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from uuid import UUID

from pydantic import (
    BaseModel, ConfigDict, EmailStr, Field, TypeAdapter, ValidationError,
    field_validator, model_validator,
)

from ..models.task import TaskStatus
from .errors import TaskValidationError


class AttachmentRef(BaseModel):
    """Reference to a file already written to object storage."""
    model_config = ConfigDict(extra='forbid')

    filename: str = Field(..., min_length=1, max_length=255)
    storage_key: str = Field(..., min_length=1, description="Object storage key")
    file_size: Optional[int] = Field(None, ge=0)
    mime_type: Optional[str] = None


class TaskCreateRequest(BaseModel):
    """Request schema for creating tasks or a notice.

    ``assignees`` holds raw recipient tokens: internal user ids,
    ``external-email:<addr>``, ``external-name:<label>`` or the all-staff alias.
    """
    model_config = ConfigDict(extra='forbid')

    assignees: List[str] = Field(..., min_length=1, description="Raw recipient tokens")
    issuance_message: Optional[str] = None
    description_of_work: str = Field(..., min_length=1)
    priority_id: UUID
    complexity_id: UUID
    assigned_personnel_id: Optional[UUID] = None
    workcenter_id: Optional[UUID] = None
    assigned_completion_date: Optional[datetime] = None
    is_notice: bool = False
    receive_id: Optional[UUID] = None
    attachment: Optional[AttachmentRef] = None

    @field_validator('description_of_work')
    @classmethod
    def validate_description(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Description of work cannot be blank")
        return v


class TaskUpdateRequest(BaseModel):
    """Out-of-band edit. Only fields present in the payload are applied.

    Sending ``assigned_personnel_id: null`` clears the field; omitting it
    leaves it unchanged.
    """
    model_config = ConfigDict(extra='forbid')

    record_number: Optional[str] = Field(None, min_length=1)
    issuance_message: Optional[str] = None
    description_of_work: Optional[str] = Field(None, min_length=1)
    priority_id: Optional[UUID] = None
    complexity_id: Optional[UUID] = None
    assigned_personnel_id: Optional[UUID] = None
    workcenter_id: Optional[UUID] = None
    status: Optional[TaskStatus] = None
    assigned_completion_date: Optional[datetime] = None
    assigned_to_id: Optional[UUID] = None


class _ActionBase(BaseModel):
    model_config = ConfigDict(extra='forbid')

    reference_number: Optional[str] = None
    description: Optional[str] = None
    attachment: Optional[AttachmentRef] = None


class SubmitAction(_ActionBase):
    action_type: Literal["SUBMITTED"] = "SUBMITTED"


class ForwardAction(_ActionBase):
    """Forward to exactly one target.

    The target is an internal user, an external email address, or an
    external free-text name.
    """
    action_type: Literal["FORWARDED"] = "FORWARDED"
    forwarded_to_id: Optional[UUID] = None
    forwarded_to_email: Optional[EmailStr] = None
    forwarded_to_name: Optional[str] = None

    @field_validator('forwarded_to_email')
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v

    @field_validator('forwarded_to_name')
    @classmethod
    def normalize_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip().upper()
        if not v:
            raise ValueError("Forward target name cannot be blank")
        return v

    @model_validator(mode='after')
    def exactly_one_target(self) -> "ForwardAction":
        targets = [self.forwarded_to_id, self.forwarded_to_email, self.forwarded_to_name]
        if sum(target is not None for target in targets) != 1:
            raise ValueError(
                "Exactly one of forwarded_to_id, forwarded_to_email or forwarded_to_name is required"
            )
        return self


class CloseAction(_ActionBase):
    action_type: Literal["CLOSED"] = "CLOSED"


class RevertAction(_ActionBase):
    action_type: Literal["REVERTED"] = "REVERTED"


class AcknowledgeAction(_ActionBase):
    action_type: Literal["ACKNOWLEDGED"] = "ACKNOWLEDGED"


class RejectAction(_ActionBase):
    action_type: Literal["REJECTED"] = "REJECTED"
    reason: str

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Rejection reason is required")
        return v


TaskActionRequest = Annotated[
    Union[SubmitAction, ForwardAction, CloseAction, RevertAction, AcknowledgeAction, RejectAction],
    Field(discriminator='action_type'),
]

_action_adapter = TypeAdapter(TaskActionRequest)


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        message = error["msg"]
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts)


def parse_action(payload: Dict[str, Any]) -> TaskActionRequest:
    """Convert an untyped action payload into its typed variant.

    Raises:
        TaskValidationError: If action_type is unknown or fields are invalid
    """
    try:
        return _action_adapter.validate_python(payload)
    except ValidationError as e:
        raise TaskValidationError(_format_validation_error(e)) from e


class TaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    record_number: str
    issuance_date: datetime
    issuance_message: Optional[str] = None
    description_of_work: str
    status: TaskStatus
    is_notice: bool
    notice_group_id: Optional[str] = None
    assigned_to_id: Optional[UUID] = None
    external_assignee_name: Optional[str] = None
    external_assignee_email: Optional[str] = None
    priority_id: UUID
    complexity_id: UUID
    assigned_personnel_id: Optional[UUID] = None
    workcenter_id: Optional[UUID] = None
    assigned_completion_date: datetime
    created_by_id: UUID
    acknowledged_by_id: Optional[UUID] = None
    acknowledged_at: Optional[datetime] = None
    receive_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime


class TaskActionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    sequence: int
    action_type: str
    performed_by_id: UUID
    forwarded_to_id: Optional[UUID] = None
    forwarded_to_email: Optional[str] = None
    reference_number: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime


class TaskHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    sequence: int
    action: str
    old_value: Optional[Dict[str, Any]] = None
    new_value: Optional[Dict[str, Any]] = None
    changed_by_id: UUID
    created_at: datetime


class TaskAttachmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    filename: str
    storage_key: str
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    uploaded_by_id: UUID
    created_at: datetime


class TaskDetailResponse(TaskResponse):
    actions: List[TaskActionResponse] = Field(default_factory=list)
    history: List[TaskHistoryResponse] = Field(default_factory=list)
    attachments: List[TaskAttachmentResponse] = Field(default_factory=list)


class TaskCreateResponse(BaseModel):
    """``task`` is the first created row; ``tasks`` lists all of them."""
    task: TaskResponse
    tasks: List[TaskResponse]


class ActionResultResponse(BaseModel):
    success: bool = True
    task: TaskResponse


class TaskListItem(TaskResponse):
    """List row: the task plus its notice roster."""
    assignee_ids: List[UUID] = Field(default_factory=list)

    @classmethod
    def from_task(cls, task) -> "TaskListItem":
        item = cls.model_validate(task)
        item.assignee_ids = [assignment.user_id for assignment in task.assignments]
        return item


class TaskListResponse(BaseModel):
    items: List[TaskListItem]
    total: int
    page: int
    per_page: int
    total_pages: int
