"""Database configuration and session management."""

import os
import logging
from typing import Any, Dict

from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from ai_gateway.config import settings

logger = logging.getLogger(__name__)


def _engine_options(database_url: str) -> Dict[str, Any]:
    """Connection options for the configured database.

    SQLite connections are shared with the threadpool FastAPI runs sync
    dependencies in. An in-memory SQLite database only exists on one
    connection, so it is pinned with StaticPool.
    """
    if not database_url.startswith("sqlite"):
        return {}

    options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        options["poolclass"] = StaticPool
    return options


# Create data directory for the default SQLite location
if settings.database_url.startswith("sqlite:///./data/"):
    os.makedirs("data", exist_ok=True)

engine = create_engine(settings.database_url, **_engine_options(settings.database_url))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Get database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create the AI configuration and interaction tables if they don't exist.

    Safe to call on every startup.
    """
    # Models must be imported so they are registered with Base
    from ai_gateway.models import AIConfiguration, AIInteraction  # noqa: F401

    existing_tables = set(inspect(engine).get_table_names())
    Base.metadata.create_all(bind=engine)
    created_tables = set(inspect(engine).get_table_names()) - existing_tables

    if created_tables:
        logger.info(f"Database initialized, created tables: {sorted(created_tables)}")
    else:
        logger.info("Database already initialized")
