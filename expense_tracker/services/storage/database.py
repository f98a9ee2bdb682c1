"""
Database setup for the SQL storage backend.

Defines the declarative Base, the engine factory and the session factory.
SQLite works out of the box; any SQLAlchemy URL can be configured through
DATABASE_URL.
"""

from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from expense_tracker.config import get_settings

# Declarative base class for ORM models
Base = declarative_base()


def build_engine(url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """
    Create an engine for the configured (or given) database URL.

    In-memory SQLite gets a StaticPool so every session sees the same
    database.
    """
    settings = get_settings().database
    url = url or settings.url
    echo = settings.echo if echo is None else echo

    kwargs = {}
    if url.startswith("sqlite"):
        # FastAPI serves requests from several threads
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool

    return create_engine(url, echo=echo, **kwargs)


def build_session_factory(engine: Engine) -> sessionmaker:
    """Session factory used by SqlStorage for every unit of work."""
    return sessionmaker(
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


def init_db(engine: Engine) -> None:
    """Create tables that don't exist yet."""
    # Importing the models registers them on Base.metadata
    from expense_tracker.services.storage import orm  # noqa: F401

    Base.metadata.create_all(bind=engine)
