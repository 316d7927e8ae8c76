"""
Database initialization and session management.
"""

from collections.abc import Generator, Iterator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from salon_ledger.core.config import settings


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create an engine.

    pysqlite's own transaction handling breaks SAVEPOINT, which the account
    registry and commission ledger rely on to survive unique-key races; the
    two listeners hand BEGIN back to SQLAlchemy.
    """
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, echo=echo)

    kwargs: dict = {"echo": echo, "connect_args": {"check_same_thread": False}}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    engine = create_engine(database_url, **kwargs)

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


engine = create_db_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Dependency - Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """Commit the session's work on success, roll all of it back on error."""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def init_db(bind: Engine | None = None) -> None:
    """Initialize database - create all tables."""
    from sqlmodel import SQLModel

    import salon_ledger.infrastructure.database.models  # noqa: F401

    target = bind or engine
    if target.url.get_backend_name() == "sqlite" and target.url.database:
        Path(target.url.database).parent.mkdir(parents=True, exist_ok=True)
    SQLModel.metadata.create_all(bind=target)


if __name__ == "__main__":
    init_db()
    print("Database initialized successfully!")
