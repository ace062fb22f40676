"""
database.py — SQLAlchemy engine and session scope
==================================================
One engine per process, built from ``settings.database_url``. SQLite
connections are shared across the request thread pool, so the
same-thread check is switched off for them.

Store and catalog code opens a unit of work with ``db_session()``: it
commits when the block exits cleanly and rolls back on any exception,
which is how a failed submission leaves no partial write behind.
"""
from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase, Session

from .config import settings


class Base(DeclarativeBase):
    pass


engine = create_engine(
    settings.database_url,
    echo=settings.log_sql,
    future=True,
    connect_args={"check_same_thread": False} if "sqlite" in settings.database_url else {},
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@contextmanager
def db_session():
    """Yield a session; commit on success, roll back and re-raise on error."""
    session: Session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
