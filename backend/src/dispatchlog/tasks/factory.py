"""Task factory: turns a create request into task rows.

Standard tasks fan out to one row per resolved recipient, each with its own
record number. A notice is a single CLOSED row shared by every recipient
through TaskAssignment links.

All preconditions are checked before the first write. Rows, audit entries
and the linked receive update commit together; notifications are sent after
the commit and can never undo it.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..audit.service import record_action, record_history
from ..auth.roles import ActorContext
from ..models.base import utcnow
from ..models.receive import Receive, ReceiveStatus
from ..models.reference import AssignedPersonnel, Complexity, Priority, Workcenter
from ..models.task import Task, TaskActionType, TaskAssignment, TaskAttachment, TaskStatus
from ..notifications.dispatcher import NotificationDispatcher, deliver_best_effort
from ..observability.metrics import tasks_created_total
from .assignees import AssigneeKind, ResolvedAssignee, resolve_assignees
from .errors import NotFoundError, TaskPermissionError, TaskValidationError
from .schemas import AttachmentRef, TaskCreateRequest
from .sequences import SequenceName, next_record_number

logger = logging.getLogger(__name__)

HISTORY_TASK_CREATED = "TASK_CREATED"


def _require(db: Session, model, row_id, label: str):
    row = db.query(model).filter(model.id == row_id).first()
    if row is None:
        raise NotFoundError(f"{label} {row_id} not found")
    return row


def _load_receive(db: Session, receive_id) -> Optional[Receive]:
    if receive_id is None:
        return None
    receive = _require(db, Receive, receive_id, "Linked receive")
    if receive.status == ReceiveStatus.CLOSED.value:
        raise TaskValidationError("This receive has already been closed")
    return receive


def _attach(db: Session, task: Task, attachment: Optional[AttachmentRef], uploaded_by_id) -> None:
    if attachment is None:
        return
    db.add(TaskAttachment(
        task_id=task.id,
        filename=attachment.filename,
        storage_key=attachment.storage_key,
        file_size=attachment.file_size,
        mime_type=attachment.mime_type,
        uploaded_by_id=uploaded_by_id,
    ))


def _creation_snapshot(task: Task) -> Dict[str, Any]:
    return {
        "record_number": task.record_number,
        "status": task.status,
        "is_notice": task.is_notice,
        "assigned_to_id": task.assigned_to_id,
        "external_assignee_name": task.external_assignee_name,
        "external_assignee_email": task.external_assignee_email,
    }


def _audit_creation(db: Session, task: Task, actor: ActorContext) -> None:
    record_action(db, task.id, TaskActionType.CREATED, actor.user_id)
    record_history(db, task.id, HISTORY_TASK_CREATED, actor.user_id, None, _creation_snapshot(task))


def _base_fields(request: TaskCreateRequest, actor: ActorContext, receive: Optional[Receive]) -> Dict[str, Any]:
    return {
        "issuance_message": request.issuance_message or None,
        "description_of_work": request.description_of_work,
        "priority_id": request.priority_id,
        "complexity_id": request.complexity_id,
        "created_by_id": actor.user_id,
        "receive_id": receive.id if receive is not None else None,
    }


def _create_standard(
    db: Session,
    request: TaskCreateRequest,
    actor: ActorContext,
    assignees: List[ResolvedAssignee],
    receive: Optional[Receive],
) -> List[Task]:
    tasks = []
    for assignee in assignees:
        task = Task(
            record_number=next_record_number(db, SequenceName.TASK),
            status=TaskStatus.ACTIVE.value,
            is_notice=False,
            assigned_to_id=assignee.user_id if assignee.kind == AssigneeKind.INTERNAL else None,
            external_assignee_name=(
                assignee.display_name if assignee.kind == AssigneeKind.EXTERNAL_NAME else None
            ),
            external_assignee_email=(
                assignee.email if assignee.kind == AssigneeKind.EXTERNAL_EMAIL else None
            ),
            assigned_personnel_id=request.assigned_personnel_id,
            workcenter_id=request.workcenter_id,
            assigned_completion_date=request.assigned_completion_date,
            **_base_fields(request, actor, receive),
        )
        db.add(task)
        db.flush()

        _attach(db, task, request.attachment, actor.user_id)
        _audit_creation(db, task, actor)
        tasks.append(task)

    return tasks


def _create_notice(
    db: Session,
    request: TaskCreateRequest,
    actor: ActorContext,
    assignees: List[ResolvedAssignee],
    receive: Optional[Receive],
) -> Task:
    internal = [a for a in assignees if a.kind == AssigneeKind.INTERNAL]
    emails = [a.email for a in assignees if a.kind == AssigneeKind.EXTERNAL_EMAIL]
    names = [a.display_name for a in assignees if a.kind == AssigneeKind.EXTERNAL_NAME]

    task = Task(
        record_number=next_record_number(db, SequenceName.TASK),
        status=TaskStatus.CLOSED.value,
        is_notice=True,
        notice_group_id=f"notice-{uuid.uuid4().hex}",
        assigned_to_id=internal[0].user_id if internal else None,
        external_assignee_name=", ".join(names) or None,
        external_assignee_email=", ".join(emails) or None,
        assigned_personnel_id=None,
        workcenter_id=None,
        assigned_completion_date=request.assigned_completion_date or utcnow(),
        **_base_fields(request, actor, receive),
    )
    db.add(task)
    db.flush()

    for assignee in internal:
        db.add(TaskAssignment(task_id=task.id, user_id=assignee.user_id))

    _attach(db, task, request.attachment, actor.user_id)
    _audit_creation(db, task, actor)
    return task


def create_tasks(
    db: Session,
    request: TaskCreateRequest,
    actor: ActorContext,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> List[Task]:
    """Create standard tasks or a notice from a validated request.

    Args:
        db: Database session (committed here)
        request: Create payload
        actor: Creating user
        dispatcher: Notification dispatcher; None skips notifications

    Returns:
        Created Task rows in recipient order (one row for a notice)

    Raises:
        TaskPermissionError: Actor may not create tasks
        NotFoundError: Reference row or linked receive missing
        TaskValidationError: Missing completion date, closed receive, or no
            recipient survives resolution
    """
    if not actor.can_create:
        raise TaskPermissionError("You do not have permission to create tasks")

    _require(db, Priority, request.priority_id, "Priority")
    _require(db, Complexity, request.complexity_id, "Complexity")
    if not request.is_notice:
        if request.assigned_personnel_id is not None:
            _require(db, AssignedPersonnel, request.assigned_personnel_id, "Assigned personnel")
        if request.workcenter_id is not None:
            _require(db, Workcenter, request.workcenter_id, "Workcenter")
        if request.assigned_completion_date is None:
            raise TaskValidationError("Completion date is required for tasks")

    receive = _load_receive(db, request.receive_id)
    assignees = resolve_assignees(db, request.assignees)

    try:
        if request.is_notice:
            tasks = [_create_notice(db, request, actor, assignees, receive)]
        else:
            tasks = _create_standard(db, request, actor, assignees, receive)

        if receive is not None:
            receive.status = ReceiveStatus.ASSIGNED.value

        db.commit()
    except Exception:
        db.rollback()
        raise

    kind = "notice" if request.is_notice else "standard"
    tasks_created_total.labels(kind=kind).inc(len(tasks))
    for task in tasks:
        logger.info(
            f"Task created: {task.record_number}",
            extra={"task_id": task.id, "record_number": task.record_number, "actor_id": actor.user_id}
        )

    if dispatcher is not None:
        if request.is_notice:
            _notify_notice(db, dispatcher, tasks[0], actor, assignees)
        else:
            for task, assignee in zip(tasks, assignees):
                deliver_best_effort(
                    db, "assigned", task, assignee.email or assignee.display_name,
                    dispatcher.notify_assigned, task,
                )

    return tasks


def _notify_notice(
    db: Session,
    dispatcher: NotificationDispatcher,
    task: Task,
    actor: ActorContext,
    assignees: List[ResolvedAssignee],
) -> None:
    for assignee in assignees:
        if assignee.kind == AssigneeKind.EXTERNAL_NAME:
            continue
        deliver_best_effort(
            db, "notice", task, assignee.email or assignee.display_name,
            dispatcher.notify_notice, task, actor,
            user_id=assignee.user_id, email=assignee.email,
        )
