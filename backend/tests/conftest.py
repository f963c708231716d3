"""Pytest configuration and shared fixtures for dispatch backend tests.

This module provides:
- In-memory SQLite engine and per-test session with fresh tables
- Users for every role, plus capability-flagged staff
- Reference rows (priority, complexity, personnel, workcenter) and a receive
- In-memory email sender and notification dispatcher
- FastAPI TestClient with the database and dispatcher overridden
"""

import os

# Configuration must be in place before any dispatchlog module reads settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["EMAIL_BACKEND"] = "memory"

if "JWT_SECRET" not in os.environ:
    os.environ["JWT_SECRET"] = "test-secret-key-for-dispatch-tests"

if "LOG_JSON" not in os.environ:
    os.environ["LOG_JSON"] = "false"

from datetime import timedelta
from typing import Callable, Dict, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from dispatchlog.auth.jwt import create_access_token
from dispatchlog.auth.roles import ActorContext
from dispatchlog.database import get_db
from dispatchlog.models import (
    AssignedPersonnel,
    Base,
    Complexity,
    Priority,
    Receive,
    ReceiveStatus,
    User,
    Workcenter,
)
from dispatchlog.models.base import utcnow
from dispatchlog.notifications.dispatcher import NotificationDispatcher, get_dispatcher
from dispatchlog.notifications.memory import InMemoryEmailSender
from dispatchlog.tasks.schemas import TaskCreateRequest


# Single shared in-memory database for the whole session
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=test_engine,
)


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database session for each test.

    Creates all tables before the test and drops them after.
    """
    Base.metadata.create_all(bind=test_engine)

    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def make_user(db_session: Session) -> Callable[..., User]:
    """Factory for users; keyword arguments override column defaults."""

    def _make(email: str, name: str, role: str = "EMPLOYEE", **fields) -> User:
        user = User(email=email, name=name, role=role, status="ACTIVE", **fields)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def superadmin(make_user) -> User:
    return make_user("root@test.com", "Root Admin", role="SUPERADMIN")


@pytest.fixture
def director(make_user) -> User:
    return make_user("director@test.com", "Dana Director", role="DIRECTOR")


@pytest.fixture
def dy_director(make_user) -> User:
    return make_user("deputy@test.com", "Devi Deputy", role="DY_DIRECTOR")


@pytest.fixture
def creator(make_user) -> User:
    """INCHARGE with the create-tasks capability."""
    return make_user("creator@test.com", "Chris Creator", role="INCHARGE", can_create_tasks=True)


@pytest.fixture
def approver(make_user) -> User:
    """MANAGER who may acknowledge, reject and revert."""
    return make_user(
        "approver@test.com",
        "Alex Approver",
        role="MANAGER",
        can_approve_completions=True,
        can_revert_completions=True,
    )


@pytest.fixture
def employee(make_user) -> User:
    return make_user("employee@test.com", "Eli Employee")


@pytest.fixture
def employee2(make_user) -> User:
    return make_user("second@test.com", "Sam Second")


@pytest.fixture
def actor() -> Callable[[User], ActorContext]:
    return ActorContext.from_user


@pytest.fixture
def priority(db_session: Session) -> Priority:
    row = Priority(name="High", order=1)
    db_session.add(row)
    db_session.commit()
    return row


@pytest.fixture
def complexity(db_session: Session) -> Complexity:
    row = Complexity(name="Moderate", order=2)
    db_session.add(row)
    db_session.commit()
    return row


@pytest.fixture
def personnel(db_session: Session) -> AssignedPersonnel:
    row = AssignedPersonnel(name="Engineering", order=1)
    db_session.add(row)
    db_session.commit()
    return row


@pytest.fixture
def workcenter(db_session: Session) -> Workcenter:
    row = Workcenter(name="Hangar 2")
    db_session.add(row)
    db_session.commit()
    return row


@pytest.fixture
def receive(db_session: Session) -> Receive:
    row = Receive(record_number="R-1", subject="Inspection request", status=ReceiveStatus.OPEN.value)
    db_session.add(row)
    db_session.commit()
    return row


@pytest.fixture
def task_request(priority: Priority, complexity: Complexity) -> Callable[..., TaskCreateRequest]:
    """Build a TaskCreateRequest with valid references and a due date in a week."""

    def _build(assignees, **overrides) -> TaskCreateRequest:
        fields = {
            "assignees": list(assignees),
            "description_of_work": "Inspect landing gear",
            "priority_id": priority.id,
            "complexity_id": complexity.id,
            "assigned_completion_date": utcnow() + timedelta(days=7),
        }
        fields.update(overrides)
        return TaskCreateRequest(**fields)

    return _build


@pytest.fixture
def email_sender() -> InMemoryEmailSender:
    return InMemoryEmailSender()


@pytest.fixture
def dispatcher(db_session: Session, email_sender: InMemoryEmailSender) -> NotificationDispatcher:
    return NotificationDispatcher(db_session, email_sender)


@pytest.fixture
def auth_headers() -> Callable[[User], Dict[str, str]]:
    """Authorization header for a user."""

    def _headers(user: User) -> Dict[str, str]:
        token = create_access_token(user_id=user.id, role=user.role, email=user.email)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture(scope="function")
def client(db_session: Session, dispatcher: NotificationDispatcher) -> Generator[TestClient, None, None]:
    """Unauthenticated TestClient bound to the test database.

    Combine with ``auth_headers(user)`` for authenticated calls.
    """
    from dispatchlog.main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher

    yield TestClient(app)

    app.dependency_overrides.clear()
