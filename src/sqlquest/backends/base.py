"""Shared driver for the pooled server backends (PostgreSQL, SQL Server, MySQL).

Statements are passed through verbatim. SQLAlchemy's `text()` construct would
otherwise read `:name` sequences inside literals as bind parameters, so those
are escaped before execution.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from sqlalchemy import TextClause, text
from sqlalchemy.engine import Result
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, AsyncResult

from sqlquest.config.loader import resolve_env_var
from sqlquest.db.dialect import DialectHelper
from sqlquest.db.engine import create_async_engine_for_url
from sqlquest.interfaces import BackendDriver, RowSource
from sqlquest.models.config import ConnectionParams, ConnectorConfig
from sqlquest.models.enums import BackendKind

logger = logging.getLogger(__name__)

# Mirrors sqlalchemy.sql.elements.TextClause bind-parameter detection
_BIND_LIKE = re.compile(r"(?<![:\w\$\\]):([\w\$]+)(?![:\w\$])", re.UNICODE)
# The text compiler drops one backslash in front of any of these
_ESCAPED_COLON = re.compile(r"\\(:[\w\$]*)(?![:\w\$])", re.UNICODE)


def literal_text(sql: str) -> TextClause:
    """Wrap caller SQL in text() so that it executes exactly as written."""
    sql = _ESCAPED_COLON.sub(r"\\\\\1", sql)
    return text(_BIND_LIKE.sub(r"\\:\1", sql))


def resolve_password(params: ConnectionParams) -> str | None:
    """Return the configured password, reading `password_env` when set.

    Raises:
        ConfigError: If `password_env` names an unset variable
    """
    if params.password is not None:
        return params.password.get_secret_value()
    if params.password_env:
        return resolve_env_var(params.password_env)
    return None


class _EngineRowSource(RowSource):
    """Row source over a connection checked out for one stream."""

    def __init__(self, conn: AsyncConnection, result: AsyncResult | Result[Any]) -> None:
        self._conn = conn
        self._result = result
        self._closed = False

    async def fetch(self, size: int) -> list[dict[str, Any]]:
        if self._closed:
            return []
        if isinstance(self._result, AsyncResult):
            rows = await self._result.mappings().fetchmany(size)
        else:
            rows = self._result.mappings().fetchmany(size)
        return [dict(row) for row in rows]

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            if isinstance(self._result, AsyncResult):
                await self._result.close()
            else:
                self._result.close()
        finally:
            # Ends the implicit read transaction and returns the connection
            await self._conn.close()


class EngineBackend(BackendDriver):
    """BackendDriver over a pooled SQLAlchemy AsyncEngine.

    Ambient statements check a connection out per call and commit on
    success. Transactions hold one checked-out connection until release.
    """

    kind: BackendKind

    def __init__(self) -> None:
        self._dialect = DialectHelper(self.kind)
        self._engine: AsyncEngine | None = None

    @property
    def backend(self) -> BackendKind:
        return self.kind

    @property
    def dialect(self) -> DialectHelper:
        return self._dialect

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def checked_out(self) -> int:
        if self._engine is None:
            return 0
        checkedout = getattr(self._engine.pool, "checkedout", None)
        return int(checkedout()) if callable(checkedout) else 0

    def engine_options(self) -> dict[str, Any]:
        """Backend-specific create_async_engine kwargs."""
        return {}

    def prepare_query(self, query: dict[str, str]) -> dict[str, str]:
        """Adjust URL query parameters before the URL is built."""
        return query

    def _require_engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError(f"{self.kind} backend is not open")
        return self._engine

    async def open(self, params: ConnectionParams, config: ConnectorConfig) -> None:
        password = resolve_password(params)
        prepared = params.model_copy(update={"options": self.prepare_query(dict(params.options))})
        url = self._dialect.build_url(prepared, password)
        engine = create_async_engine_for_url(
            self._dialect,
            url,
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            echo=config.echo,
            **self.engine_options(),
        )
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception:
            await engine.dispose()
            raise
        self._engine = engine

    async def close(self) -> None:
        engine, self._engine = self._engine, None
        if engine is not None:
            await engine.dispose()

    async def query(self, sql: str) -> list[dict[str, Any]]:
        engine = self._require_engine()
        async with engine.begin() as conn:
            result = await conn.execute(literal_text(sql))
            if not result.returns_rows:
                return []
            return [dict(row) for row in result.mappings().all()]

    async def execute(self, sql: str) -> int:
        engine = self._require_engine()
        async with engine.begin() as conn:
            result = await conn.execute(literal_text(sql))
            return result.rowcount

    async def open_stream(self, sql: str, window: int) -> RowSource:
        engine = self._require_engine()
        conn = await engine.connect()
        try:
            if engine.dialect.supports_server_side_cursors:
                result: AsyncResult | Result[Any] = await conn.stream(
                    literal_text(sql), execution_options={"yield_per": window}
                )
            else:
                result = await conn.execute(literal_text(sql))
        except Exception:
            await conn.close()
            raise
        return _EngineRowSource(conn, result)

    async def begin(self) -> AsyncConnection:
        engine = self._require_engine()
        conn = await engine.connect()
        try:
            await conn.begin()
        except Exception:
            await conn.close()
            raise
        return conn

    async def act(self, native: AsyncConnection, sql: str) -> int:
        result = await native.execute(literal_text(sql))
        return result.rowcount

    async def commit(self, native: AsyncConnection) -> None:
        await native.commit()

    async def rollback(self, native: AsyncConnection) -> None:
        await native.rollback()

    async def release(self, native: AsyncConnection) -> None:
        await native.close()
