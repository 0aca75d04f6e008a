# backend/tests/conftest.py
"""
Pytest configuration for the booking engine.

Every test gets a fresh in-memory SQLite database. Fan-out tests that need
several sessions on real threads use a file-backed database instead.
"""

import os

# Must be set before booking_engine is imported
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"

from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from booking_engine import models  # noqa: F401  (registers tables)
from booking_engine.database import Base

# Monday 2024-01-08 12:00 in Tokyo
FIXED_NOW = datetime(2024, 1, 8, 3, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def file_session_factory(tmp_path):
    """Session factory over a file database, safe to use from worker threads."""
    file_engine = create_engine(
        f"sqlite:///{tmp_path / 'fanout.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=file_engine)
    yield sessionmaker(
        bind=file_engine, autocommit=False, autoflush=False, expire_on_commit=False
    )
    file_engine.dispose()


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def clock(fixed_now):
    return lambda: fixed_now
