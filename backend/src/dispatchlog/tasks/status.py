"""Task status state machine.

Transitions are driven by lifecycle actions rather than by requesting a
target status directly.

State Flow:
    ACTIVE --SUBMITTED--> COMPLETED --REJECTED--> IN_PROGRESS --SUBMITTED--> COMPLETED
    ACTIVE|IN_PROGRESS|COMPLETED --CLOSED--> CLOSED
    ACTIVE|IN_PROGRESS|COMPLETED --REVERTED--> ACTIVE
    COMPLETED --ACKNOWLEDGED--> COMPLETED (acknowledger set)
    FORWARDED keeps the status and only moves the holder

Terminal State: CLOSED (only an out-of-band edit can leave it)
"""

from typing import Dict, List, Optional

from ..models.task import TaskActionType, TaskStatus
from .errors import TaskValidationError

_OPEN_STATUSES = [TaskStatus.ACTIVE, TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED]

# Statuses each action may be applied from
ALLOWED_SOURCE_STATUSES: Dict[TaskActionType, List[TaskStatus]] = {
    TaskActionType.SUBMITTED: _OPEN_STATUSES,
    TaskActionType.FORWARDED: _OPEN_STATUSES,
    TaskActionType.CLOSED: _OPEN_STATUSES,
    TaskActionType.REVERTED: _OPEN_STATUSES,
    TaskActionType.ACKNOWLEDGED: [TaskStatus.COMPLETED],
    TaskActionType.REJECTED: [TaskStatus.COMPLETED],
}

# Status after the action commits; None keeps the current status
TARGET_STATUS: Dict[TaskActionType, Optional[TaskStatus]] = {
    TaskActionType.SUBMITTED: TaskStatus.COMPLETED,
    TaskActionType.FORWARDED: None,
    TaskActionType.CLOSED: TaskStatus.CLOSED,
    TaskActionType.REVERTED: TaskStatus.ACTIVE,
    TaskActionType.ACKNOWLEDGED: None,
    TaskActionType.REJECTED: TaskStatus.IN_PROGRESS,
}


def validate_action_status(current_status: TaskStatus, action_type: TaskActionType) -> None:
    """Check that ``action_type`` may be applied to a task in ``current_status``.

    Raises:
        TaskValidationError: If the task is CLOSED or the action needs a
            different status
    """
    current_status = TaskStatus(current_status)
    action_type = TaskActionType(action_type)

    if current_status == TaskStatus.CLOSED:
        raise TaskValidationError("Task is closed and cannot be modified")

    allowed = ALLOWED_SOURCE_STATUSES.get(action_type, [])
    if current_status not in allowed:
        raise TaskValidationError(
            f"Cannot apply {action_type.value} to a task in status {current_status.value}. "
            f"Allowed statuses: {[s.value for s in allowed]}"
        )


def resulting_status(current_status: TaskStatus, action_type: TaskActionType) -> TaskStatus:
    target = TARGET_STATUS[TaskActionType(action_type)]
    return target if target is not None else TaskStatus(current_status)
