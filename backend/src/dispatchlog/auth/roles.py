"""User roles, capabilities and task permission predicates.

Role Hierarchy (descending rank):
- SUPERADMIN: Everything, including every capability implicitly
- DIRECTOR: Leadership; closes and edits tasks
- DY_DIRECTOR: Leadership; notified of submissions
- MANAGER, INCHARGE, EMPLOYEE: Staff

Capabilities are granted per user on top of the role:
- CREATE_TASKS: dispatch new tasks and notices
- APPROVE_COMPLETIONS: acknowledge or reject submitted work
- REVERT_COMPLETIONS: send a task back to ACTIVE
- MANAGE_RECEIVES: log and list incoming correspondence

Permission Matrix:
┌──────────────────────┬────────────┬──────────┬─────────────┬───────┐
│ Action               │ SUPERADMIN │ DIRECTOR │ DY_DIRECTOR │ Staff │
├──────────────────────┼────────────┼──────────┼─────────────┼───────┤
│ Close task           │     ✓      │    ✓     │             │       │
│ Edit task            │     ✓      │    ✓     │             │       │
│ Revert task          │     ✓      │   flag   │    flag     │ flag  │
│ Acknowledge / reject │     ✓      │   flag   │    flag     │ flag  │
│ Create tasks         │     ✓      │   flag   │    flag     │ flag  │
│ View all tasks       │     ✓      │    ✓     │             │       │
│ Manage receives      │     ✓      │   flag   │    flag     │ flag  │
└──────────────────────┴────────────┴──────────┴─────────────┴───────┘

All predicates are pure functions of role plus capability flags. The action
processor builds one ActorContext per request and evaluates every check
through it.
"""

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, List
from uuid import UUID


class UserRole(str, Enum):
    """User roles.

    Values are stored as TEXT in the database and must match exactly.
    """
    SUPERADMIN = "SUPERADMIN"
    DIRECTOR = "DIRECTOR"
    DY_DIRECTOR = "DY_DIRECTOR"
    MANAGER = "MANAGER"
    INCHARGE = "INCHARGE"
    EMPLOYEE = "EMPLOYEE"


class Capability(str, Enum):
    CREATE_TASKS = "CREATE_TASKS"
    APPROVE_COMPLETIONS = "APPROVE_COMPLETIONS"
    REVERT_COMPLETIONS = "REVERT_COMPLETIONS"
    MANAGE_RECEIVES = "MANAGE_RECEIVES"


ROLE_HIERARCHY = {
    UserRole.SUPERADMIN: 6,
    UserRole.DIRECTOR: 5,
    UserRole.DY_DIRECTOR: 4,
    UserRole.MANAGER: 3,
    UserRole.INCHARGE: 2,
    UserRole.EMPLOYEE: 1,
}


def has_permission(user_role: UserRole, required_role: UserRole) -> bool:
    """Check whether a role ranks at or above the required role.

    Examples:
        >>> has_permission(UserRole.DIRECTOR, UserRole.DY_DIRECTOR)
        True
        >>> has_permission(UserRole.MANAGER, UserRole.DY_DIRECTOR)
        False
    """
    return ROLE_HIERARCHY[UserRole(user_role)] >= ROLE_HIERARCHY[UserRole(required_role)]


def is_leadership(user_role: UserRole) -> bool:
    """Leadership tier (DY_DIRECTOR and above) signs off completed work."""
    return has_permission(user_role, UserRole.DY_DIRECTOR)


def leadership_roles() -> List[UserRole]:
    """Roles notified when work is submitted for acknowledgment."""
    return [role for role in UserRole if is_leadership(role)]


def can_close_task(user_role: UserRole) -> bool:
    return UserRole(user_role) in (UserRole.SUPERADMIN, UserRole.DIRECTOR)


def can_edit_task(user_role: UserRole) -> bool:
    return UserRole(user_role) in (UserRole.SUPERADMIN, UserRole.DIRECTOR)


def can_view_all_tasks(user_role: UserRole) -> bool:
    """Everyone else only sees tasks they created, hold, share or acted on."""
    return UserRole(user_role) in (UserRole.SUPERADMIN, UserRole.DIRECTOR)


def can_revert_task(user_role: UserRole, has_revert_permission: bool = False) -> bool:
    if UserRole(user_role) == UserRole.SUPERADMIN:
        return True
    return has_revert_permission


def can_acknowledge_task(user_role: UserRole, has_approval_permission: bool = False) -> bool:
    if UserRole(user_role) == UserRole.SUPERADMIN:
        return True
    return has_approval_permission


def can_create_tasks(user_role: UserRole, has_create_permission: bool = False) -> bool:
    if UserRole(user_role) == UserRole.SUPERADMIN:
        return True
    return has_create_permission


def can_manage_receives(user_role: UserRole, has_receive_permission: bool = False) -> bool:
    if UserRole(user_role) == UserRole.SUPERADMIN:
        return True
    return has_receive_permission


@dataclass(frozen=True)
class ActorContext:
    """Identity of the user performing an operation.

    Built once from the user row; the capability flags are read here and
    nowhere else.
    """
    user_id: UUID
    role: UserRole
    capabilities: FrozenSet[Capability]
    name: str = ""
    email: str = ""

    @classmethod
    def from_user(cls, user) -> "ActorContext":
        capabilities = set()
        if user.can_create_tasks:
            capabilities.add(Capability.CREATE_TASKS)
        if user.can_approve_completions:
            capabilities.add(Capability.APPROVE_COMPLETIONS)
        if user.can_revert_completions:
            capabilities.add(Capability.REVERT_COMPLETIONS)
        if user.can_manage_receives:
            capabilities.add(Capability.MANAGE_RECEIVES)
        return cls(
            user_id=user.id,
            role=UserRole(user.role),
            capabilities=frozenset(capabilities),
            name=user.name,
            email=user.email,
        )

    def has(self, capability: Capability) -> bool:
        return capability in self.capabilities

    @property
    def can_close(self) -> bool:
        return can_close_task(self.role)

    @property
    def can_edit(self) -> bool:
        return can_edit_task(self.role)

    @property
    def can_view_all(self) -> bool:
        return can_view_all_tasks(self.role)

    @property
    def can_revert(self) -> bool:
        return can_revert_task(self.role, self.has(Capability.REVERT_COMPLETIONS))

    @property
    def can_acknowledge(self) -> bool:
        return can_acknowledge_task(self.role, self.has(Capability.APPROVE_COMPLETIONS))

    @property
    def can_create(self) -> bool:
        return can_create_tasks(self.role, self.has(Capability.CREATE_TASKS))

    @property
    def manages_receives(self) -> bool:
        return can_manage_receives(self.role, self.has(Capability.MANAGE_RECEIVES))
