"""Component health checks.

The database is required: if it is down the service is UNHEALTHY. Outbound
email is a best-effort side effect, so an unreachable SMTP relay only makes
the service DEGRADED. Tasks still commit and the failures are counted.
"""

import socket
import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..notifications.email import SmtpEmailSender
from ..notifications.ports import EmailSenderPort
from .logging_config import get_logger

logger = get_logger(__name__)

SMTP_PROBE_TIMEOUT_SECONDS = 2.0


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


@dataclass
class ComponentHealth:
    status: HealthStatus
    message: Optional[str] = None
    latency_ms: Optional[float] = None


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


def check_database_health(db: Session) -> ComponentHealth:
    start = time.perf_counter()
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        return ComponentHealth(status=HealthStatus.UNHEALTHY, message=f"Database error: {e}")

    return ComponentHealth(
        status=HealthStatus.HEALTHY,
        message="Database connection OK",
        latency_ms=_elapsed_ms(start),
    )


def check_email_health(sender: EmailSenderPort) -> ComponentHealth:
    """Probe the SMTP relay with a TCP connect; other transports are local.

    No SMTP conversation takes place, so the check never sends mail.
    """
    if not isinstance(sender, SmtpEmailSender):
        return ComponentHealth(
            status=HealthStatus.HEALTHY,
            message=f"{type(sender).__name__} (no network transport)",
        )

    start = time.perf_counter()
    try:
        with socket.create_connection((sender.host, sender.port), timeout=SMTP_PROBE_TIMEOUT_SECONDS):
            pass
    except OSError as e:
        logger.warning(
            f"SMTP relay {sender.host}:{sender.port} unreachable: {e}",
            extra={"channel": "email"},
        )
        return ComponentHealth(
            status=HealthStatus.DEGRADED,
            message=f"SMTP relay unreachable: {e}",
        )

    return ComponentHealth(
        status=HealthStatus.HEALTHY,
        message=f"SMTP relay {sender.host}:{sender.port} reachable",
        latency_ms=_elapsed_ms(start),
    )


def get_overall_health(components: Dict[str, ComponentHealth]) -> HealthStatus:
    statuses = [c.status for c in components.values()]
    if HealthStatus.UNHEALTHY in statuses:
        return HealthStatus.UNHEALTHY
    if HealthStatus.DEGRADED in statuses:
        return HealthStatus.DEGRADED
    return HealthStatus.HEALTHY
