"""Dispatch Log API.

Mounts the task, notification inbox and receive log routers under
``/api/v1`` next to the observability endpoints, and turns task engine errors
into ``{"error": category, "message": ...}`` responses. Request correlation
and latency are handled by middleware.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .config import get_settings
from .observability.logging_config import configure_logging
from .observability.middleware import RequestIDMiddleware
from .notifications.router import router as notifications_router
from .observability.router import router as observability_router
from .receives.router import router as receives_router
from .tasks.errors import HTTP_STATUS_BY_CATEGORY, TaskError
from .tasks.router import router as tasks_router

API_VERSION = "0.1.0"

settings = get_settings()
configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

logger = logging.getLogger(__name__)

_docs_enabled = settings.ENVIRONMENT != "production"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        f"Dispatch Log API {API_VERSION} starting "
        f"(environment={settings.ENVIRONMENT}, email_backend={settings.EMAIL_BACKEND})"
    )
    yield
    logger.info("Dispatch Log API stopped")


app = FastAPI(
    title="Dispatch Log API",
    description="Receive & Dispatch log: task lifecycle and routing",
    version=API_VERSION,
    docs_url="/docs" if _docs_enabled else None,
    redoc_url="/redoc" if _docs_enabled else None,
    openapi_url="/openapi.json" if _docs_enabled else None,
    lifespan=lifespan,
)

app.add_middleware(RequestIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.CORS_ORIGINS.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


@app.exception_handler(TaskError)
async def task_error_handler(request: Request, exc: TaskError) -> JSONResponse:
    """Validation, permission and not-found errors from the task services."""
    status_code = HTTP_STATUS_BY_CATEGORY.get(exc.category, status.HTTP_500_INTERNAL_SERVER_ERROR)
    logger.info(f"{request.method} {request.url.path} rejected: {exc.category}: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.category, "message": exc.message},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies, reported per field.

    Same 400 status as every other ``validation_error``. pydantic's ``ctx``
    objects are dropped since they are not always JSON-serializable.
    """
    details = [
        {"loc": list(error["loc"]), "msg": error["msg"], "type": error["type"]}
        for error in exc.errors()
    ]
    logger.warning(f"Request validation failed on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "validation_error",
            "message": "Request validation failed",
            "details": details,
        },
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    # Full error goes to the log only
    logger.error(f"Database error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "database_error",
            "message": "A database error occurred. Please try again later.",
        },
    )


app.include_router(observability_router)
app.include_router(tasks_router, prefix="/api/v1")
app.include_router(notifications_router, prefix="/api/v1")
app.include_router(receives_router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
async def root() -> dict[str, Any]:
    return {
        "name": "Dispatch Log API",
        "version": API_VERSION,
        "status": "running",
        "docs": "/docs" if _docs_enabled else None,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "dispatchlog.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
        log_level=settings.LOG_LEVEL.lower(),
    )
