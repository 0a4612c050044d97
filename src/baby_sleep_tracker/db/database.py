"""Engine, session factory and declarative base for the SQL Entry Store."""

import os
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from ..utils.logging_config import get_logger

logger = get_logger('database')

# Several caregivers' devices may write through one SQLite file
SQLITE_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA busy_timeout=5000",
    "PRAGMA foreign_keys=ON",
)


def _is_sqlite_url(url: str) -> bool:
    """Check if database URL is for SQLite."""
    return url.startswith("sqlite:")


def _apply_sqlite_pragmas(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    try:
        for pragma in SQLITE_PRAGMAS:
            cursor.execute(pragma)
    finally:
        cursor.close()


def get_database_url() -> str:
    """Database URL: explicit test override first, then configuration."""
    override = os.getenv("TEST_DATABASE_URL")
    if override:
        return override

    from ..config import get_database_url as configured_url

    return configured_url()


def create_database_engine(
    database_url: Optional[str] = None, echo: Optional[bool] = None
) -> Engine:
    """
    Create the engine for the configured store.

    SQLite connections get the pragmas above and may be shared across the
    server's worker threads; other backends get ``pool_pre_ping`` from the
    database configuration.
    """
    from ..config import get_config

    db_config = get_config().database
    if database_url is None:
        database_url = get_database_url()
    if echo is None:
        echo = db_config.echo

    if _is_sqlite_url(database_url):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            echo=echo,
        )
        event.listen(engine, "connect", _apply_sqlite_pragmas)
    else:
        engine = create_engine(database_url, echo=echo, pool_pre_ping=db_config.pool_pre_ping)

    logger.debug(f"Created {engine.dialect.name} engine (echo={echo})")
    return engine


engine = create_database_engine()

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for models
Base = declarative_base()


def get_db():
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
