"""Task listing: filters, visibility, sorting and pagination.

SUPERADMIN and DIRECTOR see every task. Everyone else sees only tasks they
created, currently hold, share through a notice roster, or performed or
received an action on.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import Query, Session

from ..auth.roles import ActorContext
from ..models.reference import Priority
from ..models.task import Task, TaskAction, TaskAssignment, TaskStatus
from ..models.user import User
from .errors import TaskValidationError

ASSIGNED_TO_ME = "me"
ASSIGNED_TO_NOBODY = "unassigned"


class TaskSort(str, Enum):
    CREATED = "created"
    DEADLINE = "deadline"
    PRIORITY = "priority"
    STATUS = "status"


@dataclass
class TaskFilters:
    """Optional list filters; text filters are case-insensitive substrings.

    Date bounds are whole days: ``due_to`` includes tasks due at any time on
    that day.
    """
    status: Optional[TaskStatus] = None
    priority_id: Optional[UUID] = None
    assigned_to: Optional[str] = None
    record_number: Optional[str] = None
    description: Optional[str] = None
    assignee: Optional[str] = None
    creator: Optional[str] = None
    due_from: Optional[date] = None
    due_to: Optional[date] = None
    created_from: Optional[date] = None
    created_to: Optional[date] = None


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _contains(column, term: str):
    return column.ilike(f"%{term}%")


def _user_matches(term: str):
    return or_(_contains(User.name, term), _contains(User.email, term))


def visible_to(query: Query, actor: ActorContext) -> Query:
    if actor.can_view_all:
        return query
    return query.filter(or_(
        Task.created_by_id == actor.user_id,
        Task.assigned_to_id == actor.user_id,
        Task.assignments.any(TaskAssignment.user_id == actor.user_id),
        Task.actions.any(or_(
            TaskAction.performed_by_id == actor.user_id,
            TaskAction.forwarded_to_id == actor.user_id,
        )),
    ))


def _assigned_to_clause(value: str, actor: ActorContext):
    if value == ASSIGNED_TO_ME:
        return or_(
            Task.assigned_to_id == actor.user_id,
            Task.assignments.any(TaskAssignment.user_id == actor.user_id),
        )
    if value == ASSIGNED_TO_NOBODY:
        return Task.assigned_to_id.is_(None)
    try:
        return Task.assigned_to_id == UUID(value)
    except ValueError:
        raise TaskValidationError(
            f"assigned_to must be '{ASSIGNED_TO_ME}', '{ASSIGNED_TO_NOBODY}' or a user id"
        )


def apply_filters(query: Query, filters: TaskFilters, actor: ActorContext) -> Query:
    if filters.status is not None:
        query = query.filter(Task.status == TaskStatus(filters.status).value)
    if filters.priority_id is not None:
        query = query.filter(Task.priority_id == filters.priority_id)
    if filters.assigned_to:
        query = query.filter(_assigned_to_clause(filters.assigned_to, actor))

    record_number = (filters.record_number or "").strip()
    if record_number:
        query = query.filter(_contains(Task.record_number, record_number))

    description = (filters.description or "").strip()
    if description:
        query = query.filter(_contains(Task.description_of_work, description))

    assignee = (filters.assignee or "").strip()
    if assignee:
        matching_users = select(User.id).where(_user_matches(assignee))
        query = query.filter(or_(
            Task.assigned_to_id.in_(matching_users),
            Task.assignments.any(TaskAssignment.user_id.in_(matching_users)),
        ))

    creator = (filters.creator or "").strip()
    if creator:
        query = query.filter(Task.created_by_id.in_(select(User.id).where(_user_matches(creator))))

    if filters.due_from is not None:
        query = query.filter(Task.assigned_completion_date >= _day_start(filters.due_from))
    if filters.due_to is not None:
        query = query.filter(Task.assigned_completion_date < _day_start(filters.due_to + timedelta(days=1)))
    if filters.created_from is not None:
        query = query.filter(Task.created_at >= _day_start(filters.created_from))
    if filters.created_to is not None:
        query = query.filter(Task.created_at < _day_start(filters.created_to + timedelta(days=1)))

    return query


def _apply_sort(query: Query, sort: TaskSort) -> Query:
    sort = TaskSort(sort)
    if sort == TaskSort.DEADLINE:
        return query.order_by(Task.assigned_completion_date.asc(), Task.created_at.desc())
    if sort == TaskSort.PRIORITY:
        # Higher ``order`` means more urgent
        return (
            query.join(Priority, Task.priority_id == Priority.id)
            .order_by(Priority.order.desc(), Task.created_at.desc())
        )
    if sort == TaskSort.STATUS:
        return query.order_by(Task.status.asc(), Task.created_at.desc())
    return query.order_by(Task.created_at.desc())


def list_tasks(
    db: Session,
    actor: ActorContext,
    filters: Optional[TaskFilters] = None,
    sort: TaskSort = TaskSort.CREATED,
    page: int = 1,
    per_page: int = 20,
) -> Tuple[List[Task], int]:
    """Return one page of tasks visible to ``actor`` and the total match count.

    Raises:
        TaskValidationError: Malformed ``assigned_to`` filter
    """
    query = visible_to(db.query(Task), actor)
    query = apply_filters(query, filters or TaskFilters(), actor)

    total = query.count()
    tasks = _apply_sort(query, sort).offset((page - 1) * per_page).limit(per_page).all()
    return tasks, total
