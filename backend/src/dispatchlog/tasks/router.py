"""Tasks API Router - list, create, detail, edit and lifecycle action endpoints.

Task errors raised by the services propagate to the application's TaskError
handler, which maps them to 400/403/404 with ``{"error", "message"}`` bodies.
"""

from datetime import date
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from ..auth.dependencies import CurrentActor
from ..database import get_db
from ..models.task import Task, TaskStatus
from ..notifications.dispatcher import NotificationDispatcher, get_dispatcher
from .actions import apply_action
from .editing import edit_task
from .errors import NotFoundError
from .factory import create_tasks
from .queries import TaskFilters, TaskSort, list_tasks
from .schemas import (
    ActionResultResponse,
    TaskCreateRequest,
    TaskCreateResponse,
    TaskDetailResponse,
    TaskListItem,
    TaskListResponse,
    TaskResponse,
    TaskUpdateRequest,
    parse_action,
)

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get(
    "",
    response_model=TaskListResponse,
    summary="List tasks",
    description="""
    List tasks with filtering, sorting and pagination.

    **Filters:** status, priority_id, assigned_to (``me``, ``unassigned`` or a
    user id; ``me`` also matches notices shared with the caller), record_number,
    description, assignee and creator (name or email substring), due and
    created date ranges (inclusive days)

    **Sorting:** created (newest first), deadline, priority, status

    **Visibility:** SUPERADMIN and DIRECTOR see all tasks; other users see
    tasks they created, hold, share or acted on
    """,
)
def list_tasks_endpoint(
    actor: CurrentActor,
    status: Optional[TaskStatus] = Query(None, description="Filter by status"),
    priority_id: Optional[UUID] = Query(None, description="Filter by priority"),
    assigned_to: Optional[str] = Query(None, description="me, unassigned or a user id"),
    record_number: Optional[str] = Query(None),
    description: Optional[str] = Query(None, description="Substring of the description of work"),
    assignee: Optional[str] = Query(None, description="Holder or roster member name/email"),
    creator: Optional[str] = Query(None, description="Creator name/email"),
    due_from: Optional[date] = Query(None),
    due_to: Optional[date] = Query(None),
    created_from: Optional[date] = Query(None),
    created_to: Optional[date] = Query(None),
    sort: TaskSort = Query(TaskSort.CREATED),
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    per_page: int = Query(20, ge=1, le=200, description="Results per page"),
    db: Session = Depends(get_db),
):
    filters = TaskFilters(
        status=status,
        priority_id=priority_id,
        assigned_to=assigned_to,
        record_number=record_number,
        description=description,
        assignee=assignee,
        creator=creator,
        due_from=due_from,
        due_to=due_to,
        created_from=created_from,
        created_to=created_to,
    )
    tasks, total = list_tasks(db, actor, filters, sort=sort, page=page, per_page=per_page)

    return TaskListResponse(
        items=[TaskListItem.from_task(task) for task in tasks],
        total=total,
        page=page,
        per_page=per_page,
        total_pages=(total + per_page - 1) // per_page,
    )


@router.post(
    "",
    response_model=TaskCreateResponse,
    status_code=201,
    summary="Create tasks or a notice",
    description="""
    Dispatch a task to one or more recipients.

    A standard task creates one row per resolved recipient. A notice
    (``is_notice: true``) creates a single CLOSED row shared by all recipients.

    **Permissions:** SUPERADMIN or users with the create-tasks capability
    """,
)
def create_task_endpoint(
    request: TaskCreateRequest,
    actor: CurrentActor,
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    tasks = create_tasks(db, request, actor, dispatcher)
    items = [TaskResponse.model_validate(task) for task in tasks]
    return TaskCreateResponse(task=items[0], tasks=items)


@router.get(
    "/{task_id}",
    response_model=TaskDetailResponse,
    summary="Get task detail",
    description="Task with its action trail, history and attachments.",
)
def get_task_endpoint(
    task_id: UUID,
    actor: CurrentActor,
    db: Session = Depends(get_db),
):
    task = db.query(Task).filter(Task.id == task_id).first()
    if task is None:
        raise NotFoundError(f"Task {task_id} not found")
    return TaskDetailResponse.model_validate(task)


@router.patch(
    "/{task_id}",
    response_model=TaskResponse,
    summary="Edit task",
    description="""
    Out-of-band correction of task fields, holder or status.

    **Permissions:** SUPERADMIN or DIRECTOR
    """,
)
def edit_task_endpoint(
    task_id: UUID,
    request: TaskUpdateRequest,
    actor: CurrentActor,
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    task = edit_task(db, task_id, request, actor, dispatcher)
    return TaskResponse.model_validate(task)


@router.post(
    "/{task_id}/actions",
    response_model=ActionResultResponse,
    summary="Apply lifecycle action",
    description="""
    Apply one of SUBMITTED, FORWARDED, CLOSED, REVERTED, ACKNOWLEDGED or
    REJECTED. The body is discriminated by ``action_type``.
    """,
)
def apply_action_endpoint(
    task_id: UUID,
    actor: CurrentActor,
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    action = parse_action(payload)
    task = apply_action(db, task_id, action, actor, dispatcher)
    return ActionResultResponse(success=True, task=TaskResponse.model_validate(task))
