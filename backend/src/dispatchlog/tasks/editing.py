"""Out-of-band task edits by leadership.

Edits bypass the action state machine: SUPERADMIN and DIRECTOR may correct
content fields, move the holder, or set any status (the only way out of
CLOSED). A task that is COMPLETED and awaiting acknowledgment cannot be
edited.
"""

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ..audit.service import diff_fields, record_action, record_history
from ..auth.roles import ActorContext
from ..models.reference import AssignedPersonnel, Complexity, Priority, Workcenter
from ..models.task import Task, TaskActionType, TaskStatus
from ..models.user import User
from ..notifications.dispatcher import NotificationDispatcher, deliver_best_effort
from .actions import lock_task
from .errors import NotFoundError, TaskPermissionError, TaskValidationError
from .schemas import TaskUpdateRequest

logger = logging.getLogger(__name__)

HISTORY_TASK_EDITED = "TASK_EDITED"

_REFERENCES = {
    "priority_id": (Priority, "Priority"),
    "complexity_id": (Complexity, "Complexity"),
    "assigned_personnel_id": (AssignedPersonnel, "Assigned personnel"),
    "workcenter_id": (Workcenter, "Workcenter"),
    "assigned_to_id": (User, "User"),
}

# Columns that must keep a value once the task exists
_NOT_CLEARABLE = (
    "record_number",
    "description_of_work",
    "priority_id",
    "complexity_id",
    "status",
    "assigned_completion_date",
    "assigned_to_id",
)


def _validated_changes(db: Session, task: Task, request: TaskUpdateRequest) -> Dict[str, Any]:
    changes = request.model_dump(exclude_unset=True)

    for field in _NOT_CLEARABLE:
        if field in changes and changes[field] is None:
            raise TaskValidationError(f"{field} cannot be cleared")

    for field, (model, label) in _REFERENCES.items():
        row_id = changes.get(field)
        if row_id is not None and db.query(model).filter(model.id == row_id).first() is None:
            raise NotFoundError(f"{label} {row_id} not found")

    if "record_number" in changes and changes["record_number"] != task.record_number:
        clash = (
            db.query(Task.id)
            .filter(Task.record_number == changes["record_number"], Task.id != task.id)
            .first()
        )
        if clash is not None:
            raise TaskValidationError(f"Record number {changes['record_number']} is already in use")

    if "status" in changes:
        changes["status"] = TaskStatus(changes["status"]).value
        if changes["status"] != TaskStatus.COMPLETED.value:
            changes["acknowledged_by_id"] = None
            changes["acknowledged_at"] = None

    if "assigned_to_id" in changes:
        changes["external_assignee_name"] = None
        changes["external_assignee_email"] = None

    return changes


def edit_task(
    db: Session,
    task_id: UUID,
    request: TaskUpdateRequest,
    actor: ActorContext,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> Task:
    """Apply an out-of-band edit.

    Writes one EDITED action and one TASK_EDITED history entry holding the
    changed fields. An edit that changes nothing writes nothing.

    Raises:
        NotFoundError: Task or referenced row missing
        TaskPermissionError: Actor is not SUPERADMIN or DIRECTOR
        TaskValidationError: Task awaiting acknowledgment, duplicate record
            number, or a required field cleared
    """
    try:
        task = lock_task(db, task_id)

        if not actor.can_edit:
            raise TaskPermissionError("You do not have permission to edit tasks")
        if task.status == TaskStatus.COMPLETED.value and task.acknowledged_by_id is None:
            raise TaskValidationError("Cannot edit task that is completed and awaiting acknowledgment")

        changes = _validated_changes(db, task, request)
        old = {field: getattr(task, field) for field in changes}
        _, changed = diff_fields(old, changes)

        if not changed:
            db.rollback()
            return task

        holder_changed = "assigned_to_id" in changed

        record_history(db, task.id, HISTORY_TASK_EDITED, actor.user_id, old, changes)
        for field in changed:
            setattr(task, field, changes[field])
        db.flush()
        record_action(db, task.id, TaskActionType.EDITED, actor.user_id)

        db.commit()

    except Exception:
        db.rollback()
        raise

    logger.info(
        f"Task edited: {task.record_number}",
        extra={"task_id": task.id, "record_number": task.record_number, "actor_id": actor.user_id}
    )

    if dispatcher is not None and holder_changed:
        deliver_best_effort(
            db, "assigned", task, task.assigned_to.email,
            dispatcher.notify_assigned, task,
        )

    return task
