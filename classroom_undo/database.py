"""
Database wiring for the domain tables and the action history ledger.

Both the soft-delete tables and the ``action_history`` table share one
declarative ``Base`` so a single ``init_db`` call creates the whole schema.
"""

from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import get_config

Base = declarative_base()


def create_db_engine(database_url: Optional[str] = None) -> Engine:
    """
    Create an engine with backend-specific pool settings.

    Args:
        database_url: SQLAlchemy URL, defaults to the configured one

    Returns:
        SQLAlchemy engine
    """
    url = database_url or get_config().database_url

    if url in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection, otherwise every session gets an empty database
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if url.startswith("sqlite"):
        # SQLite doesn't support pool_size and max_overflow
        return create_engine(url, pool_pre_ping=True)

    return create_engine(url, pool_pre_ping=True, pool_size=10, max_overflow=20)


def init_db(engine: Engine) -> None:
    """Create every table the toolkit owns."""
    # Register the mapped classes on Base.metadata
    from .soft_delete import tables  # noqa: F401
    from .undo import storage  # noqa: F401

    Base.metadata.create_all(bind=engine)


def create_session_factory(
    database_url: Optional[str] = None, create_tables: bool = True
) -> sessionmaker:  # type: ignore[type-arg]
    """
    Build a session factory bound to a fresh engine.

    Args:
        database_url: SQLAlchemy URL, defaults to the configured one
        create_tables: Whether to create missing tables

    Returns:
        Session factory
    """
    engine = create_db_engine(database_url)
    if create_tables:
        init_db(engine)

    return sessionmaker(autoflush=False, expire_on_commit=False, bind=engine)
