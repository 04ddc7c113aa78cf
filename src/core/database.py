"""Database connection and session management.

This module handles the code store database connection using SQLAlchemy.
"""

from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from config import DATABASE_URL, STORE_TIMEOUT_SECONDS
from models.base import Base
# Import models to ensure they are registered with Base.metadata
import models  # noqa: F401


def build_engine(url: str, timeout: float = STORE_TIMEOUT_SECONDS) -> Engine:
    """Create an engine for the code store.

    SQLite connections get a busy timeout so concurrent claims wait on the
    write lock instead of failing at once. The same timeout bounds the wait
    for a free pooled connection.

    Args:
        url: SQLAlchemy database URL.
        timeout: Seconds to wait on a locked database or an exhausted pool.

    Returns:
        Configured Engine.
    """
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": timeout}
        if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
            # In-memory databases use a singleton pool without a wait limit
            return create_engine(url, connect_args=connect_args)
        return create_engine(url, connect_args=connect_args, pool_timeout=timeout)
    return create_engine(url, pool_pre_ping=True, pool_timeout=timeout)


if DATABASE_URL.startswith("sqlite:///") and DATABASE_URL != "sqlite:///:memory:":
    # Ensure the database directory exists
    Path(DATABASE_URL[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)

engine = build_engine(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Engine = engine) -> None:
    Base.metadata.create_all(bind=bind)


# Initialize DB (create tables if not exist)
init_db()


def get_db():
    """Dependency for getting a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
