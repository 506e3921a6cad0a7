"""Database connection management and initialization."""

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from src.config import DEFAULT_DB_PATH
from src.storage.models import Base

# Module-level engine
_engine: Engine | None = None


def create_db_engine(db_path: Path) -> Engine:
    """Create a SQLAlchemy engine for a SQLite file.

    Args:
        db_path: Path to the database file. Parent directories are created.

    Returns:
        SQLAlchemy Engine instance.
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return create_engine(
        f"sqlite:///{db_path}",
        echo=False,
        connect_args={"check_same_thread": False},
    )


def get_engine(db_path: Path | None = None) -> Engine:
    """Get or create the shared SQLAlchemy engine.

    Args:
        db_path: Optional path to the database file. Defaults to data/secret_santa.db.

    Returns:
        SQLAlchemy Engine instance.
    """
    global _engine

    if _engine is None:
        _engine = create_db_engine(db_path or DEFAULT_DB_PATH)

    return _engine


@contextmanager
def session_scope(engine: Engine | None = None) -> Iterator[Session]:
    """Provide a transactional session.

    Commits on success, rolls back and re-raises on error.

    Yields:
        SQLAlchemy Session instance.
    """
    factory = sessionmaker(bind=engine or get_engine())
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(engine: Engine | None = None) -> None:
    """Initialize the database by creating all tables."""
    Base.metadata.create_all(engine or get_engine())
