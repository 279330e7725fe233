"""Async SQLAlchemy engine and session factory for the document store.

Learn: SQLAlchemy 2.0 async mode — create_async_engine for connection
pooling, async_sessionmaker for per-operation sessions. Nothing here is a
module-level global: DocumentStoreBackend builds its own engine from the
configured URL and disposes of it on shutdown.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an engine. Pool sizing only applies to server databases."""
    kwargs = {"echo": echo}
    if not database_url.startswith("sqlite"):
        kwargs.update(pool_size=5, max_overflow=10, pool_pre_ping=True)
    return create_async_engine(database_url, **kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
