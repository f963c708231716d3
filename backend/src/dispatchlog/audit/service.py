"""Audit trail service for task lifecycle events.

This service provides the only write path for TaskAction and TaskHistory
rows. Entries are append-only: nothing here updates or deletes them.

Each committed transition writes:
- exactly one TaskAction (CREATED, FORWARDED, SUBMITTED, ...)
- at most one TaskHistory holding the fields that actually changed

Both tables carry a per-task ``sequence`` so the trail can be replayed in
order regardless of timestamp resolution. Sequences are computed while the
caller holds the task row lock, which makes max+1 safe.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models.base import as_utc
from ..models.task import TaskAction, TaskActionType, TaskHistory


def _json_safe(value: Any) -> Any:
    """Convert a column value into something PortableJSONB can store."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return as_utc(value).isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    return value


def diff_fields(
    old: Dict[str, Any],
    new: Dict[str, Any],
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Return (old_changed, new_changed) restricted to keys whose value differs.

    Values are compared after JSON conversion, so a UUID and its string form
    count as equal.

    Example:
        >>> diff_fields({"status": "ACTIVE", "x": 1}, {"status": "COMPLETED", "x": 1})
        ({'status': 'ACTIVE'}, {'status': 'COMPLETED'})
    """
    old_changed: Dict[str, Any] = {}
    new_changed: Dict[str, Any] = {}

    for key in new:
        before = _json_safe(old.get(key))
        after = _json_safe(new[key])
        if before != after:
            old_changed[key] = before
            new_changed[key] = after

    return old_changed, new_changed


def _next_sequence(db: Session, model, task_id: UUID) -> int:
    current = (
        db.query(func.coalesce(func.max(model.sequence), 0))
        .filter(model.task_id == task_id)
        .scalar()
    )
    return int(current) + 1


def record_action(
    db: Session,
    task_id: UUID,
    action_type: TaskActionType,
    performed_by_id: UUID,
    forwarded_to_id: Optional[UUID] = None,
    forwarded_to_email: Optional[str] = None,
    reference_number: Optional[str] = None,
    description: Optional[str] = None,
) -> TaskAction:
    """Append a TaskAction row.

    Args:
        db: Database session (caller commits)
        task_id: Task the action belongs to (row must already be flushed)
        action_type: Lifecycle event
        performed_by_id: Acting user
        forwarded_to_id: Internal forward target (FORWARDED only)
        forwarded_to_email: External forward target (FORWARDED only)
        reference_number: Free-text reference supplied with the action
        description: Free-text remarks; the rejection reason for REJECTED

    Returns:
        TaskAction: The flushed row
    """
    action = TaskAction(
        task_id=task_id,
        sequence=_next_sequence(db, TaskAction, task_id),
        action_type=TaskActionType(action_type).value,
        performed_by_id=performed_by_id,
        forwarded_to_id=forwarded_to_id,
        forwarded_to_email=forwarded_to_email,
        reference_number=reference_number,
        description=description,
    )

    db.add(action)
    db.flush()  # Sequence of the next entry depends on this one being visible

    return action


def record_history(
    db: Session,
    task_id: UUID,
    action: str,
    changed_by_id: UUID,
    old: Optional[Dict[str, Any]],
    new: Dict[str, Any],
) -> Optional[TaskHistory]:
    """Append a TaskHistory row with only the changed fields.

    When ``old`` is None the entry is a creation snapshot and ``new`` is stored
    as given. Otherwise the two dicts are diffed and nothing is written when no
    field changed.

    Returns:
        TaskHistory or None if nothing changed
    """
    if old is None:
        old_value = None
        new_value = {key: _json_safe(value) for key, value in new.items()}
    else:
        old_value, new_value = diff_fields(old, new)
        if not new_value:
            return None

    entry = TaskHistory(
        task_id=task_id,
        sequence=_next_sequence(db, TaskHistory, task_id),
        action=action,
        old_value=old_value,
        new_value=new_value,
        changed_by_id=changed_by_id,
    )

    db.add(entry)
    db.flush()

    return entry


def list_actions(db: Session, task_id: UUID) -> List[TaskAction]:
    return (
        db.query(TaskAction)
        .filter(TaskAction.task_id == task_id)
        .order_by(TaskAction.sequence)
        .all()
    )


def list_history(db: Session, task_id: UUID) -> List[TaskHistory]:
    return (
        db.query(TaskHistory)
        .filter(TaskHistory.task_id == task_id)
        .order_by(TaskHistory.sequence)
        .all()
    )


def last_action_by_type(
    db: Session,
    task_id: UUID,
    action_type: TaskActionType,
) -> Optional[TaskAction]:
    """Most recent action of the given type, or None."""
    return (
        db.query(TaskAction)
        .filter(
            TaskAction.task_id == task_id,
            TaskAction.action_type == TaskActionType(action_type).value,
        )
        .order_by(TaskAction.sequence.desc())
        .first()
    )
