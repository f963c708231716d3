"""Observability API endpoints: Prometheus metrics, health and readiness."""

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from ..database import get_db
from ..notifications.dispatcher import get_email_sender
from .health import (
    HealthStatus,
    check_database_health,
    check_email_health,
    get_overall_health,
)

router = APIRouter(tags=["Observability"])


@router.get("/metrics", include_in_schema=False)
def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.get(
    "/health",
    summary="Health check endpoint",
    description="Database and outbound email status. 503 only when the database is down.",
)
def health_check(db: Session = Depends(get_db)):
    components = {
        "database": check_database_health(db),
        "email": check_email_health(get_email_sender()),
    }
    overall_status = get_overall_health(components)

    return JSONResponse(
        content={
            "status": overall_status.value,
            "components": {
                name: {
                    "status": comp.status.value,
                    "message": comp.message,
                    "latency_ms": comp.latency_ms,
                }
                for name, comp in components.items()
            },
        },
        status_code=503 if overall_status == HealthStatus.UNHEALTHY else 200,
    )


@router.get(
    "/ready",
    summary="Readiness check",
    description="Ready when the database answers; email problems never block readiness.",
)
def readiness_check(db: Session = Depends(get_db)):
    database = check_database_health(db)
    ready = database.status == HealthStatus.HEALTHY
    return JSONResponse(
        content={"ready": ready, "database": database.status.value},
        status_code=200 if ready else 503,
    )
