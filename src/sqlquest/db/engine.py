"""Async engine factory for the server backends.

SQLite is served by aiosqlite connections directly (see
`sqlquest.backends.sqlite`), so only PostgreSQL, SQL Server and MySQL go
through SQLAlchemy's pooled AsyncEngine.
"""

from __future__ import annotations

from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from sqlquest.db.dialect import DialectHelper


def create_async_engine_for_url(
    dialect: DialectHelper,
    url: URL,
    *,
    pool_size: int = 5,
    max_overflow: int = 0,
    **extra_kwargs: object,
) -> AsyncEngine:
    """Create an async SQLAlchemy engine with dialect-appropriate configuration.

    Args:
        dialect: DialectHelper for the target backend
        url: Fully built async URL (driver included)
        pool_size: Connections kept open in the pool
        max_overflow: Extra connections allowed beyond pool_size
        **extra_kwargs: Additional kwargs passed to create_async_engine,
                       these override the dialect defaults

    Returns:
        Configured AsyncEngine instance

    Example:
        dialect = DialectHelper(BackendKind.MYSQL)
        engine = create_async_engine_for_url(
            dialect,
            dialect.build_url(params, password),
            pool_size=10,
        )
    """
    engine_kwargs = dialect.get_engine_kwargs(pool_size=pool_size, max_overflow=max_overflow)
    engine_kwargs.update(extra_kwargs)
    return create_async_engine(url, **engine_kwargs)
