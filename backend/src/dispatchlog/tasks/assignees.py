"""Assignee token parsing and resolution.

Raw recipient tokens arrive from the client as strings. They are parsed once
into a tagged variant and resolved afterwards:

    "<uuid>"                  -> InternalToken
    "external-email:<addr>"   -> ExternalEmailToken
    "external-name:<label>"   -> ExternalNameToken
    "external-<value>"        -> legacy form; email if it contains "@", else name
    "allstaff" (or alias)     -> BroadcastToken, expanded to opted-in users

Resolution drops unknown internal users silently, normalizes external
values (emails lower-case, names upper-case) and de-duplicates by
(kind, value) keeping first-seen order.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy.orm import Session

from ..config import get_settings
from ..models.user import User
from .errors import TaskValidationError

EXTERNAL_EMAIL_PREFIX = "external-email:"
EXTERNAL_NAME_PREFIX = "external-name:"
LEGACY_EXTERNAL_PREFIX = "external-"


@dataclass(frozen=True)
class InternalToken:
    user_id: str


@dataclass(frozen=True)
class ExternalEmailToken:
    email: str


@dataclass(frozen=True)
class ExternalNameToken:
    label: str


@dataclass(frozen=True)
class BroadcastToken:
    pass


AssigneeToken = Union[InternalToken, ExternalEmailToken, ExternalNameToken, BroadcastToken]


class AssigneeKind(str, Enum):
    INTERNAL = "internal"
    EXTERNAL_EMAIL = "external-email"
    EXTERNAL_NAME = "external-name"


@dataclass(frozen=True)
class ResolvedAssignee:
    """One concrete recipient after resolution.

    ``user_id`` is set for internal users only. ``email`` is set for internal
    users (their account address) and external emails.
    """
    kind: AssigneeKind
    display_name: str
    user_id: Optional[UUID] = None
    email: Optional[str] = None

    @property
    def key(self) -> Tuple[str, str]:
        if self.kind == AssigneeKind.INTERNAL:
            return (self.kind.value, str(self.user_id))
        if self.kind == AssigneeKind.EXTERNAL_EMAIL:
            return (self.kind.value, self.email)
        return (self.kind.value, self.display_name)


def parse_assignee_token(
    raw: str,
    broadcast_aliases: Optional[Iterable[str]] = None,
) -> Optional[AssigneeToken]:
    """Parse a raw recipient string.

    Returns None for blank tokens and for tagged tokens with an empty value.
    """
    token = (raw or "").strip()
    if not token:
        return None

    if broadcast_aliases is None:
        broadcast_aliases = get_settings().ALL_STAFF_ALIASES
    if token.lower() in {alias.lower() for alias in broadcast_aliases}:
        return BroadcastToken()

    if token.startswith(EXTERNAL_EMAIL_PREFIX):
        value = token[len(EXTERNAL_EMAIL_PREFIX):].strip()
        return ExternalEmailToken(value) if value else None

    if token.startswith(EXTERNAL_NAME_PREFIX):
        value = token[len(EXTERNAL_NAME_PREFIX):].strip()
        return ExternalNameToken(value) if value else None

    if token.startswith(LEGACY_EXTERNAL_PREFIX):
        value = token[len(LEGACY_EXTERNAL_PREFIX):].strip()
        if not value:
            return None
        if "@" in value:
            return ExternalEmailToken(value)
        return ExternalNameToken(value)

    return InternalToken(token)


def _internal(user: User) -> ResolvedAssignee:
    return ResolvedAssignee(
        kind=AssigneeKind.INTERNAL,
        display_name=user.name or user.email,
        user_id=user.id,
        email=user.email,
    )


def _load_user(db: Session, raw_id: str) -> Optional[User]:
    try:
        user_id = UUID(raw_id)
    except ValueError:
        return None
    return db.query(User).filter(User.id == user_id).first()


def resolve_tokens(db: Session, tokens: Iterable[AssigneeToken]) -> List[ResolvedAssignee]:
    """Resolve already-parsed tokens into concrete recipients.

    Raises:
        TaskValidationError: If no recipient survives resolution
    """
    resolved: Dict[Tuple[str, str], ResolvedAssignee] = {}
    broadcast_users: Optional[List[User]] = None

    def add(assignee: ResolvedAssignee) -> None:
        resolved.setdefault(assignee.key, assignee)

    for token in tokens:
        if isinstance(token, BroadcastToken):
            # Expanded once per call even if the alias appears repeatedly
            if broadcast_users is None:
                broadcast_users = (
                    db.query(User)
                    .filter(User.include_in_all_staff.is_(True))
                    .order_by(User.name)
                    .all()
                )
            for user in broadcast_users:
                add(_internal(user))
        elif isinstance(token, ExternalEmailToken):
            email = token.email.lower()
            add(ResolvedAssignee(kind=AssigneeKind.EXTERNAL_EMAIL, display_name=email, email=email))
        elif isinstance(token, ExternalNameToken):
            label = token.label.upper()
            add(ResolvedAssignee(kind=AssigneeKind.EXTERNAL_NAME, display_name=label))
        elif isinstance(token, InternalToken):
            user = _load_user(db, token.user_id)
            if user is not None:
                add(_internal(user))

    if not resolved:
        raise TaskValidationError("At least one assignee is required")

    return list(resolved.values())


def resolve_assignees(
    db: Session,
    raw_tokens: Iterable[str],
    broadcast_aliases: Optional[Iterable[str]] = None,
) -> List[ResolvedAssignee]:
    """Parse and resolve raw recipient strings in one step."""
    if broadcast_aliases is not None:
        broadcast_aliases = list(broadcast_aliases)
    parsed = []
    for raw in raw_tokens:
        token = parse_assignee_token(raw, broadcast_aliases)
        if token is not None:
            parsed.append(token)
    return resolve_tokens(db, parsed)
