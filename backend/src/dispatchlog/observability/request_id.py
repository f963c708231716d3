"""Request correlation id.

The id lives in a ContextVar so log records emitted anywhere during a request
(including notification failures after commit) carry it. A client-supplied
``X-Request-ID`` is reused when it is a short token of safe characters;
anything else is replaced by a fresh UUID so it cannot pollute log lines.
"""

import re
import uuid
from contextvars import ContextVar
from typing import Optional

_SAFE_REQUEST_ID = re.compile(r"[A-Za-z0-9._-]{1,64}")

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def generate_request_id() -> str:
    return str(uuid.uuid4())


def resolve_request_id(incoming: Optional[str]) -> str:
    """Reuse a well-formed incoming id, otherwise generate one.

    Examples:
        >>> resolve_request_id("req-123")
        'req-123'
        >>> len(resolve_request_id("bad id\\n")) == 36
        True
    """
    if incoming and _SAFE_REQUEST_ID.fullmatch(incoming):
        return incoming
    return generate_request_id()


def get_request_id() -> str:
    return request_id_var.get() or "no-request-id"


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)
