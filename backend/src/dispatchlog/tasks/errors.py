"""Error types raised by the task services.

Each error carries a stable ``category`` string; the HTTP layer maps the
category to a status code and the ``{"error": category, "message": ...}``
response body.
"""


class TaskError(Exception):
    """Base class for task engine errors."""

    category = "task_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TaskValidationError(TaskError):
    """Malformed input or an action not allowed in the task's current state."""

    category = "validation_error"


class TaskPermissionError(TaskError):
    """Actor lacks the role or capability the operation requires."""

    category = "permission_denied"


class NotFoundError(TaskError):
    """Task, user or reference row does not exist."""

    category = "not_found"


class ExternalSideEffectError(TaskError):
    """Email or in-app notification could not be delivered.

    Raised by the notification layer and always caught by the caller; the
    committed task state is never affected.
    """

    category = "side_effect_failed"


HTTP_STATUS_BY_CATEGORY = {
    TaskValidationError.category: 400,
    TaskPermissionError.category: 403,
    NotFoundError.category: 404,
}
