"""
Pytest fixtures for the test suite.

Data-layer tests use an in-memory SQLite engine and a session that rolls back
after each test, so tests do not affect each other. API tests get their own
in-memory engine (StaticPool, shared across the TestClient thread) and a
`get_db` override.
"""
from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from taskhub.db.session import enable_sqlite_foreign_keys
from taskhub.models import GlobalRole, User


TEST_DB_URL = "sqlite:///:memory:"
SECURITY_CONFIG_PATH = Path(__file__).resolve().parents[1] / "config" / "security_config.yaml"


@pytest.fixture
def engine():
    """Create a fresh in-memory SQLite engine for each test."""
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        echo=False,
    )
    enable_sqlite_foreign_keys(engine)
    return engine


@pytest.fixture
def tables(engine):
    """Create all ORM tables on the test engine."""
    from taskhub.db.base import Base
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def db_session(tables):
    """
    Provide a Session bound to the test DB; roll back after each test.

    Code under test may call `commit()`; the outer transaction still wins, so
    the next test gets a clean state.
    """
    connection = tables.connect()
    transaction = connection.begin()
    TestSession = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        class_=Session,
    )
    session = TestSession()
    yield session
    session.close()
    transaction.rollback()
    connection.close()


def _make_user(db: Session, name: str, *, global_role: GlobalRole = GlobalRole.MEMBER, is_active: bool = True) -> User:
    user = User(
        name=name,
        email=f"{name.lower().replace(' ', '.')}@example.com",
        global_role=global_role,
        is_active=is_active,
    )
    db.add(user)
    db.flush()
    return user


@pytest.fixture
def make_user():
    """Factory: `make_user(db, "Ana", global_role=GlobalRole.ADMIN)`."""
    return _make_user


@pytest.fixture
def api_sessionmaker():
    from taskhub.db.base import Base

    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False, class_=Session)
    engine.dispose()


@pytest.fixture
def app(api_sessionmaker):
    from taskhub.db.session import get_db
    from taskhub.main import create_app, install_security_config
    from taskhub.security.config import load_security_config

    application = create_app()
    install_security_config(application, load_security_config(SECURITY_CONFIG_PATH))

    def _get_test_db():
        db = api_sessionmaker()
        try:
            yield db
        finally:
            db.close()

    application.dependency_overrides[get_db] = _get_test_db
    return application


@pytest.fixture
def client(app):
    # No context manager: the lifespan (file DB + seed) is not needed here.
    return TestClient(app)


@pytest.fixture
def auth_headers():
    from taskhub.security.auth import issue_access_token
    from taskhub.settings import get_settings

    def _headers(user_id: int) -> dict[str, str]:
        return {"Authorization": f"Bearer {issue_access_token(user_id, get_settings())}"}

    return _headers
