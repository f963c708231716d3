"""Append-only audit trail for tasks."""

from .service import (
    diff_fields,
    record_action,
    record_history,
    list_actions,
    list_history,
    last_action_by_type,
)

__all__ = [
    "diff_fields",
    "record_action",
    "record_history",
    "list_actions",
    "list_history",
    "last_action_by_type",
]
