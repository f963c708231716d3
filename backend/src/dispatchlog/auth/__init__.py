"""Authentication and permission evaluation."""

from .roles import (
    UserRole,
    Capability,
    ActorContext,
    has_permission,
    is_leadership,
    can_close_task,
    can_edit_task,
    can_revert_task,
    can_acknowledge_task,
    can_create_tasks,
    can_view_all_tasks,
    can_manage_receives,
)

__all__ = [
    "UserRole",
    "Capability",
    "ActorContext",
    "has_permission",
    "is_leadership",
    "can_close_task",
    "can_edit_task",
    "can_revert_task",
    "can_acknowledge_task",
    "can_create_tasks",
    "can_view_all_tasks",
    "can_manage_receives",
]
