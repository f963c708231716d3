"""Engine and session factory for the dispatch database.

Request handlers get a session through ``get_db``; background jobs (the
notification sweep) open their own from ``SessionLocal``. Sessions never
autoflush: record numbers are drawn from an explicit upsert before the task
row is added, and an early flush would hit the NOT NULL constraint.
"""

from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from .config import get_settings

DATABASE_URL = get_settings().DATABASE_URL

_engine_kwargs = {"pool_pre_ping": True}

# SQLite (tests, local runs) has no connection pool to size
if not DATABASE_URL.startswith("sqlite"):
    _engine_kwargs.update(pool_size=5, max_overflow=10)

engine = create_engine(DATABASE_URL, **_engine_kwargs)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding one session per request.

    Task services commit themselves; the session is only closed here.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
