"""Database session management for Whereabouts.

This module provides SQLAlchemy engine and session management:
- engine: The SQLAlchemy engine connected to the database
- SessionLocal: Session factory for creating database sessions
- get_db(): FastAPI dependency for request-scoped sessions
- get_db_session(): Context manager for non-request code

Each request works inside its own session; service objects commit at
the end of every mutating operation, which is the transaction boundary.
"""
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from whereabouts.config import DATABASE_URL

log = logging.getLogger(__name__)

if DATABASE_URL.startswith("sqlite"):
    from sqlalchemy.pool import StaticPool

    engine_kwargs = {
        "echo": False,
        "pool_pre_ping": True,
        "poolclass": StaticPool,
        "connect_args": {"check_same_thread": False},
    }
    log.info("Whereabouts using SQLite database (local development mode)")
else:
    engine_kwargs = {
        "echo": False,
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 1800,
    }
    log.info("Whereabouts using PostgreSQL database (production mode)")

engine = create_engine(DATABASE_URL, **engine_kwargs)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


@event.listens_for(engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Configure SQLite PRAGMAs for local development."""
    if DATABASE_URL.startswith("sqlite"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.close()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency for database sessions.

    Usage:
        @router.get("/endpoint")
        def endpoint(db: Session = Depends(get_db)):
            ...

    The session is closed when the request completes; anything not
    committed by the service layer is rolled back.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Context manager for database sessions in non-request code.

    The session is committed on success and rolled back on exception.
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_database() -> None:
    """Create all tables. Idempotent; called from the application lifespan."""
    from whereabouts.db.models import Base

    log.info("Initializing Whereabouts database")

    if DATABASE_URL.startswith("sqlite:///"):
        db_path = DATABASE_URL.replace("sqlite:///", "")
        if db_path and db_path != ":memory:":
            db_dir = Path(db_path).parent
            db_dir.mkdir(parents=True, exist_ok=True)

    Base.metadata.create_all(bind=engine)
    log.info("Whereabouts tables created successfully")
