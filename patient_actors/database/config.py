"""
Database configuration and process-wide session management.

One engine and one session factory are created per process by
init_database() and reused by every request handler through get_db().
close_database() disposes them at shutdown. Calling init_database() again
with the same URL is a no-op, so hot reload and repeated test imports do
not open a second pool.
"""
import logging
import os
import threading
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .base import Base

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///./patient_actors.db"


class DatabaseConfig:
    """Engine + session factory for a single database URL"""

    def __init__(self, database_url: Optional[str] = None, echo: Optional[bool] = None):
        self.database_url = database_url or os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
        if echo is None:
            echo = os.getenv("DB_ECHO", "false").lower() == "true"
        self.echo = echo
        self.engine = self._create_engine()
        self.SessionLocal = sessionmaker(
            bind=self.engine, autocommit=False, autoflush=False
        )

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def _create_engine(self) -> Engine:
        if self.is_sqlite:
            kwargs = {"connect_args": {"check_same_thread": False}}
            # In-memory databases must share one connection across threads
            if ":memory:" in self.database_url or self.database_url == "sqlite://":
                kwargs["poolclass"] = StaticPool
            engine = create_engine(self.database_url, echo=self.echo, **kwargs)

            @event.listens_for(engine, "connect")
            def _enable_foreign_keys(dbapi_connection, _record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

            return engine

        pool_size = int(os.getenv("DB_POOL_SIZE", "10"))
        return create_engine(
            self.database_url,
            echo=self.echo,
            pool_size=pool_size,
            pool_pre_ping=True,
        )

    def create_tables(self) -> None:
        # Import models so every table is registered on Base.metadata
        from . import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        self.engine.dispose()


_db_config: Optional[DatabaseConfig] = None
_lock = threading.Lock()


def init_database(
    database_url: Optional[str] = None,
    create_tables: bool = True,
    echo: Optional[bool] = None,
) -> DatabaseConfig:
    """
    Initialize the process-wide database configuration.

    Args:
        database_url: Database URL (defaults to DATABASE_URL env var)
        create_tables: Create missing tables after connecting
        echo: Log SQL statements

    Returns:
        Active DatabaseConfig
    """
    global _db_config
    url = database_url or os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)

    with _lock:
        if _db_config is not None and _db_config.database_url == url:
            return _db_config

        if _db_config is not None:
            logger.info("Re-initializing database with a different URL, disposing old engine")
            _db_config.dispose()

        _db_config = DatabaseConfig(url, echo=echo)
        if create_tables:
            _db_config.create_tables()

        logger.info("Database initialized", extra={"dialect": _db_config.engine.dialect.name})
        return _db_config


def get_db_config() -> DatabaseConfig:
    """Active configuration, initializing lazily from the environment"""
    if _db_config is None:
        return init_database()
    return _db_config


def close_database() -> None:
    """Dispose the process-wide engine (application shutdown)"""
    global _db_config
    with _lock:
        if _db_config is not None:
            _db_config.dispose()
            _db_config = None
            logger.info("Database connections closed")


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency: one session per request"""
    db = get_db_config().SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Context manager for scripts and background code"""
    db = get_db_config().SessionLocal()
    try:
        yield db
    finally:
        db.close()
