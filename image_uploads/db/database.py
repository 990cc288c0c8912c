"""Database configuration and session management."""

import logging
from functools import lru_cache
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from image_uploads.models import Base
from config import get_settings

logger = logging.getLogger(__name__)


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine for the given URL.

    The parent directory of a file-backed SQLite database is created first.
    """
    if database_url.startswith("sqlite:///") and database_url != "sqlite:///:memory:":
        # Extract a path from sqlite URL (sqlite:///path/to/db.sqlite3)
        db_path = database_url.replace("sqlite:///", "")
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            echo=echo,
        )

    return create_engine(
        database_url,
        echo=echo,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_recycle=3600
    )


@lru_cache
def get_engine() -> Engine:
    """Get the engine for the configured database."""
    settings = get_settings()
    return create_db_engine(settings.database_url, echo=settings.database_echo)


@lru_cache
def get_session_factory() -> sessionmaker:
    """Get the session factory bound to the configured engine."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=get_engine()
    )


def init_db(engine: Engine | None = None) -> None:
    """Initialize a database by creating all tables.

    This is called on application startup when the database blob store is
    configured.
    """
    engine = engine or get_engine()
    logger.info(f"Creating database tables at {engine.url}")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created successfully")


def drop_db(engine: Engine | None = None) -> None:
    """Drop all database tables.

    WARNING: This will delete all data!
    This should only be used for testing or development.
    """
    engine = engine or get_engine()
    logger.warning(f"Dropping all database tables at {engine.url}")
    Base.metadata.drop_all(bind=engine)
    logger.warning("All database tables dropped")
