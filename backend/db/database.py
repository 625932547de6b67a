"""
Database configuration and connection handling.

Supports PostgreSQL, SQLite and an in-memory fallback mode.
Set USE_DATABASE=false to run without database (bookings live in process memory).
"""

import logging
from contextlib import contextmanager
from typing import Generator, Iterator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from config import config
from .models import Base

logger = logging.getLogger(__name__)

USE_DATABASE = config.USE_DATABASE
DATABASE_URL = config.DATABASE_URL

# Global engine instance
engine: Optional[Engine] = None
SessionLocal = None


def init_engine(url: Optional[str] = None) -> Optional[Engine]:
    """Initialize database engine if database is enabled."""
    global engine, SessionLocal

    if not USE_DATABASE and url is None:
        logger.info("Database is disabled (USE_DATABASE=false)")
        return None

    database_url = url or DATABASE_URL
    try:
        engine_kwargs = {"echo": config.SQLALCHEMY_ECHO, "pool_pre_ping": True}
        if database_url.startswith("sqlite"):
            # FastAPI runs sync endpoints in a thread pool.
            engine_kwargs["connect_args"] = {"check_same_thread": False}
        else:
            engine_kwargs["pool_size"] = 5
            engine_kwargs["max_overflow"] = 10
            engine_kwargs["pool_recycle"] = 3600

        new_engine = create_engine(database_url, **engine_kwargs)

        with new_engine.connect() as conn:
            conn.execute(text("SELECT 1"))

        engine = new_engine
        SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

        logger.info(f"Database connected: {database_url.split('@')[-1]}")
        return engine

    except Exception as e:
        logger.error(f"Failed to connect to database: {e}")
        logger.warning("Running in fallback mode (in-memory bookings, nothing persisted)")
        engine = None
        SessionLocal = None
        return None


def is_database_available() -> bool:
    """Check if database is available for use."""
    if engine is None or SessionLocal is None:
        return False
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning(f"Database ping failed: {e}")
        return False


def get_db() -> Generator[Optional[Session], None, None]:
    """
    Dependency for FastAPI to get database session.

    Yields None if database is disabled or unavailable.
    Usage: db: Session = Depends(get_db)
    """
    if SessionLocal is None:
        yield None
        return

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session for scripts: commit on success, rollback on error."""
    if SessionLocal is None:
        raise RuntimeError("Database is not configured")
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def create_tables():
    """Create all tables (for initial setup)."""
    if engine is not None:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created")


def drop_tables():
    """Drop all tables (use with caution!)."""
    if engine is not None:
        Base.metadata.drop_all(bind=engine)
        logger.info("Database tables dropped")


# Initialize engine on module import
init_engine()
