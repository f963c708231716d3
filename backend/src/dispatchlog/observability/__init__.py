"""Observability: structured logging, Prometheus metrics, request correlation.

Health checks live in ``observability.health`` and are imported by the router
only, since they depend on the notification transports.
"""

from .logging_config import configure_logging, get_logger
from .metrics import (
    http_request_duration_seconds,
    notification_failures_total,
    reminders_sent_total,
    task_actions_total,
    tasks_created_total,
)
from .middleware import RequestIDMiddleware
from .request_id import get_request_id, resolve_request_id, set_request_id

__all__ = [
    "configure_logging",
    "get_logger",
    "http_request_duration_seconds",
    "notification_failures_total",
    "reminders_sent_total",
    "task_actions_total",
    "tasks_created_total",
    "RequestIDMiddleware",
    "get_request_id",
    "resolve_request_id",
    "set_request_id",
]
