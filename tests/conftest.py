"""
Test configuration and fixtures for FlareTrack.

- Function-scoped database engine (in-memory SQLite unless TEST_DATABASE_URL is set)
- Session fixture bound to that engine
- TestClient with database dependency override
- Authenticated client fixtures
"""

import os
import secrets
from typing import Generator
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from flaretrack.database import Base, get_db
from flaretrack.main import app
from flaretrack.models import User, Session as UserSession


# =============================================================================
# Database Fixtures
# =============================================================================


def get_test_database_url() -> str:
    """
    Get the test database URL.

    TEST_DATABASE_URL points the suite at PostgreSQL; otherwise an in-memory
    SQLite database is created per test.
    """
    return os.environ.get("TEST_DATABASE_URL", "sqlite://")


def _enable_sqlite_savepoints(engine) -> None:
    """
    Let pysqlite handle SAVEPOINT properly.

    pysqlite manages transactions itself and breaks nested transactions;
    disable that and emit BEGIN ourselves.
    """

    @event.listens_for(engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")


@pytest.fixture
def test_engine():
    """
    Create a fresh database engine for each test.

    Tables are created at the start and dropped at the end.
    """
    database_url = get_test_database_url()

    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        _enable_sqlite_savepoints(engine)
    else:
        engine = create_engine(database_url)

    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(test_engine) -> Generator[Session, None, None]:
    """Provide a database session for one test."""
    TestingSessionLocal = sessionmaker(bind=test_engine, autoflush=False)
    session = TestingSessionLocal()

    yield session

    session.rollback()
    session.close()


# =============================================================================
# TestClient Fixtures
# =============================================================================


@pytest.fixture
def client(db: Session) -> Generator[TestClient, None, None]:
    """
    TestClient with database dependency override.

    The database session is injected into the app's get_db dependency.
    """

    def override_get_db():
        try:
            yield db
        finally:
            pass  # Don't close - managed by db fixture

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# Authentication Fixtures
# =============================================================================


@pytest.fixture
def test_user(db: Session) -> User:
    """Create a test user."""
    user = User(email="testuser@example.com")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def test_session(db: Session, test_user: User) -> UserSession:
    """Create a session token for the test user."""
    session = UserSession(
        user_id=test_user.id,
        token=secrets.token_urlsafe(32),
        expires_at=datetime.now(timezone.utc) + timedelta(days=7),
    )
    db.add(session)
    db.commit()
    return session


@pytest.fixture
def auth_client(
    db: Session, test_session: UserSession
) -> Generator[TestClient, None, None]:
    """Authenticated TestClient for the test user (session cookie)."""
    from flaretrack.config import settings

    def override_get_db():
        try:
            yield db
        finally:
            pass  # Don't close - managed by db fixture

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        test_client.cookies.set(settings.session_cookie_name, test_session.token)
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(test_session: UserSession) -> dict:
    """Bearer token headers for the test user."""
    return {"Authorization": f"Bearer {test_session.token}"}


# =============================================================================
# pytest markers
# =============================================================================


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
