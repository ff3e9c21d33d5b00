"""Database session management with connection pooling"""

from contextlib import contextmanager
from typing import Callable, Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from house_risk.config import settings

# Connection pool: max 20 connections, recycle after 1 hour to avoid stale connections
engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,  # Verify connections before using
    pool_size=10,
    max_overflow=10,
    pool_recycle=3600,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

SessionFactory = Callable[[], Session]


@contextmanager
def session_scope(session_factory: SessionFactory = SessionLocal) -> Iterator[Session]:
    """One unit of work: commit on success, roll back everything on any error"""
    db = session_factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def read_scope(session_factory: SessionFactory = SessionLocal) -> Iterator[Session]:
    """Read-only session; loaded objects stay usable after close"""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()
