"""Action processor for task lifecycle transitions.

Applies one typed action to one task:

1. Re-read the task under a row lock (SELECT ... FOR UPDATE)
2. Check role permissions, then state and ownership preconditions
3. Compute the field changes
4. Write the history diff, the task update, an optional attachment and
   exactly one TaskAction, then commit once
5. Send notifications best-effort after the commit

Validation, permission and not-found errors are raised before any write and
roll the session back, which also releases the row lock.
"""

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ..audit.service import last_action_by_type, record_action, record_history
from ..auth.roles import ActorContext
from ..models.base import utcnow
from ..models.task import Task, TaskActionType, TaskAttachment, TaskStatus
from ..models.user import User
from ..notifications.dispatcher import NotificationDispatcher, deliver_best_effort
from ..observability.metrics import task_actions_total
from .errors import NotFoundError, TaskError, TaskPermissionError, TaskValidationError
from .schemas import ForwardAction, RejectAction, TaskActionRequest
from .status import resulting_status, validate_action_status

logger = logging.getLogger(__name__)


def lock_task(db: Session, task_id: UUID) -> Task:
    """Load a task with a row lock, refreshing any stale identity-map copy.

    Raises:
        NotFoundError: If the task does not exist
    """
    task = (
        db.query(Task)
        .filter(Task.id == task_id)
        .populate_existing()
        .with_for_update()
        .first()
    )
    if task is None:
        raise NotFoundError(f"Task {task_id} not found")
    return task


def _check_permission(action_type: TaskActionType, actor: ActorContext) -> None:
    if action_type == TaskActionType.CLOSED:
        if not actor.can_close:
            raise TaskPermissionError("You do not have permission to close tasks")
    elif action_type == TaskActionType.REVERTED:
        if not actor.can_revert:
            raise TaskPermissionError("You do not have permission to revert tasks")
    elif action_type == TaskActionType.ACKNOWLEDGED:
        if not actor.can_acknowledge:
            raise TaskPermissionError("You do not have permission to acknowledge tasks")
    elif action_type == TaskActionType.REJECTED:
        if not actor.can_acknowledge:
            raise TaskPermissionError("You do not have permission to reject tasks")


def _check_state(task: Task, action_type: TaskActionType, actor: ActorContext) -> None:
    validate_action_status(task.status, action_type)

    # Only the current internal holder may submit
    if action_type == TaskActionType.SUBMITTED and task.assigned_to_id != actor.user_id:
        raise TaskValidationError("You can only submit work for tasks assigned to you")

    awaiting_acknowledgment = (
        task.status == TaskStatus.COMPLETED.value and task.acknowledged_by_id is None
    )
    if action_type == TaskActionType.FORWARDED and awaiting_acknowledgment:
        raise TaskValidationError("Cannot forward task that is completed and awaiting acknowledgment")
    if action_type == TaskActionType.ACKNOWLEDGED and task.acknowledged_by_id is not None:
        raise TaskValidationError("Task has already been acknowledged")


_CLEAR_ACKNOWLEDGMENT = {"acknowledged_by_id": None, "acknowledged_at": None}


def _forward_changes(db: Session, action: ForwardAction) -> Dict[str, Any]:
    if action.forwarded_to_id is not None:
        target = db.query(User).filter(User.id == action.forwarded_to_id).first()
        if target is None:
            raise NotFoundError("Forwarded user not found")
        return {
            "assigned_to_id": target.id,
            "external_assignee_name": None,
            "external_assignee_email": None,
        }
    if action.forwarded_to_email is not None:
        return {
            "assigned_to_id": None,
            "external_assignee_name": None,
            "external_assignee_email": action.forwarded_to_email,
        }
    return {
        "assigned_to_id": None,
        "external_assignee_name": action.forwarded_to_name,
        "external_assignee_email": None,
    }


def _reject_changes(db: Session, task: Task) -> Dict[str, Any]:
    """Send the task back to whoever submitted it last.

    Falls back to the current internal holder. When neither exists the
    external holder is left in place.
    """
    changes: Dict[str, Any] = dict(_CLEAR_ACKNOWLEDGMENT)
    last_submission = last_action_by_type(db, task.id, TaskActionType.SUBMITTED)
    reassign_to = last_submission.performed_by_id if last_submission else task.assigned_to_id

    if reassign_to is not None:
        changes.update({
            "assigned_to_id": reassign_to,
            "external_assignee_name": None,
            "external_assignee_email": None,
        })
    return changes


def _compute_changes(
    db: Session,
    task: Task,
    action: TaskActionRequest,
    action_type: TaskActionType,
    actor: ActorContext,
) -> Dict[str, Any]:
    changes: Dict[str, Any] = {}

    if action_type == TaskActionType.FORWARDED:
        changes.update(_forward_changes(db, action))
    elif action_type in (TaskActionType.CLOSED, TaskActionType.REVERTED):
        changes.update(_CLEAR_ACKNOWLEDGMENT)
    elif action_type == TaskActionType.ACKNOWLEDGED:
        changes.update({"acknowledged_by_id": actor.user_id, "acknowledged_at": utcnow()})
    elif action_type == TaskActionType.REJECTED:
        changes.update(_reject_changes(db, task))

    new_status = resulting_status(task.status, action_type)
    if new_status.value != task.status:
        changes["status"] = new_status.value

    return changes


def _forwarded_to_email(db: Session, action: ForwardAction) -> Optional[str]:
    if action.forwarded_to_id is not None:
        target = db.query(User).filter(User.id == action.forwarded_to_id).first()
        return target.email if target is not None else None
    return action.forwarded_to_email


def apply_action(
    db: Session,
    task_id: UUID,
    action: TaskActionRequest,
    actor: ActorContext,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> Task:
    """Apply a lifecycle action to a task.

    Args:
        db: Database session (committed here)
        task_id: Task to act on
        action: One of the typed action variants
        actor: Acting user
        dispatcher: Notification dispatcher; None skips notifications

    Returns:
        The updated Task

    Raises:
        NotFoundError: Task or forward target missing
        TaskPermissionError: Actor lacks the role or capability
        TaskValidationError: Action not allowed in the task's current state, or
            SUBMITTED by someone other than the current holder
    """
    action_type = TaskActionType(action.action_type)

    try:
        task = lock_task(db, task_id)
        _check_permission(action_type, actor)
        _check_state(task, action_type, actor)

        changes = _compute_changes(db, task, action, action_type, actor)
        old = {field: getattr(task, field) for field in changes}

        record_history(db, task.id, f"TASK_{action_type.value}", actor.user_id, old, changes)

        for field, value in changes.items():
            setattr(task, field, value)

        if action.attachment is not None:
            db.add(TaskAttachment(
                task_id=task.id,
                filename=action.attachment.filename,
                storage_key=action.attachment.storage_key,
                file_size=action.attachment.file_size,
                mime_type=action.attachment.mime_type,
                uploaded_by_id=actor.user_id,
            ))

        db.flush()
        forward = action if isinstance(action, ForwardAction) else None
        record_action(
            db,
            task.id,
            action_type,
            actor.user_id,
            forwarded_to_id=forward.forwarded_to_id if forward else None,
            forwarded_to_email=_forwarded_to_email(db, forward) if forward else None,
            reference_number=action.reference_number,
            description=action.reason if isinstance(action, RejectAction) else action.description,
        )

        db.commit()

    except TaskError as e:
        db.rollback()
        task_actions_total.labels(action_type=action_type.value, outcome=e.category).inc()
        raise
    except Exception:
        db.rollback()
        raise

    task_actions_total.labels(action_type=action_type.value, outcome="committed").inc()
    logger.info(
        f"Task action performed: {action_type.value}",
        extra={
            "task_id": task.id,
            "record_number": task.record_number,
            "action_type": action_type.value,
            "actor_id": actor.user_id,
        }
    )

    if dispatcher is not None:
        _notify(db, dispatcher, task, action, action_type, actor)

    return task


def _notify(
    db: Session,
    dispatcher: NotificationDispatcher,
    task: Task,
    action: TaskActionRequest,
    action_type: TaskActionType,
    actor: ActorContext,
) -> None:
    if action_type == TaskActionType.FORWARDED:
        recipient = task.assigned_to.email if task.assigned_to else task.external_assignee_email
        if recipient:
            deliver_best_effort(
                db, "forwarded", task, recipient,
                dispatcher.notify_forwarded, task, actor, action.description,
            )
    elif action_type == TaskActionType.REJECTED:
        if task.assigned_to is not None:
            deliver_best_effort(
                db, "rejected", task, task.assigned_to.email,
                dispatcher.notify_rejected, task, actor, action.reason,
            )
    elif action_type == TaskActionType.SUBMITTED:
        for leader in dispatcher.leadership_recipients():
            deliver_best_effort(
                db, "submitted", task, leader.email,
                dispatcher.notify_submitted, task, leader,
            )
