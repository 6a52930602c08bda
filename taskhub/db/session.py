from __future__ import annotations

from collections.abc import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from taskhub.settings import get_settings


_settings = get_settings()

engine = create_engine(
    _settings.resolved_db_url(),
    connect_args={"check_same_thread": False} if _settings.resolved_db_url().startswith("sqlite") else {},
)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, class_=Session)


def enable_sqlite_foreign_keys(target: Engine) -> None:
    """
    SQLite ships with foreign key enforcement off; membership and task cascades depend on it.
    """

    if target.dialect.name != "sqlite":
        return

    @event.listens_for(target, "connect")
    def _set_sqlite_pragma(dbapi_connection, _connection_record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


enable_sqlite_foreign_keys(engine)


def get_db() -> Generator[Session, None, None]:
    """
    Main DB dependency.

    One session per request. The security dependencies and the route handler share it
    (FastAPI caches the dependency), so a task loaded during authorization is already in
    the identity map when the handler touches it.
    """

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
