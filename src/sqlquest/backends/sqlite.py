"""SQLite driver on aiosqlite.

One autocommit connection serves ambient statements. Each transaction gets
its own dedicated connection with explicit BEGIN / COMMIT / ROLLBACK, since
SQLite scopes transactions to a connection. An in-memory database is backed
by a private temporary file, removed at close, so those extra connections see
the same data under ordinary file locking and its busy timeout.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path
from typing import Any

import aiosqlite

from sqlquest.db.dialect import DialectHelper
from sqlquest.interfaces import BackendDriver, RowSource
from sqlquest.models.config import ConnectionParams, ConnectorConfig
from sqlquest.models.enums import BackendKind

logger = logging.getLogger(__name__)

_MEMORY_DB = ":memory:"


def _row_to_dict(row: aiosqlite.Row) -> dict[str, Any]:
    return {key: row[key] for key in row.keys()}


class _StatementRowSource(RowSource):
    """Steps one compiled statement a row at a time until it is exhausted."""

    def __init__(self, cursor: aiosqlite.Cursor) -> None:
        self._cursor = cursor
        self._closed = False

    async def fetch(self, size: int) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        while not self._closed and len(rows) < size:
            row = await self._cursor.fetchone()
            if row is None:
                await self.close()
                break
            rows.append(_row_to_dict(row))
        return rows

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._cursor.close()


class SqliteBackend(BackendDriver):
    def __init__(self) -> None:
        self._dialect = DialectHelper(BackendKind.SQLITE)
        self._conn: aiosqlite.Connection | None = None
        self._database: str | None = None
        self._uri = False
        self._timeout = 5.0
        self._scratch_dir: Path | None = None
        self._transactions: set[aiosqlite.Connection] = set()

    @property
    def backend(self) -> BackendKind:
        return BackendKind.SQLITE

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @property
    def checked_out(self) -> int:
        return len(self._transactions)

    async def _connect(self) -> aiosqlite.Connection:
        if self._database is None:
            raise RuntimeError("sqlite backend is not open")
        conn = await aiosqlite.connect(
            self._database,
            isolation_level=None,
            uri=self._uri,
            timeout=self._timeout,
        )
        conn.row_factory = aiosqlite.Row
        return conn

    def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("sqlite backend is not open")
        return self._conn

    async def open(self, params: ConnectionParams, config: ConnectorConfig) -> None:
        path = self._dialect.sqlite_path(params)
        if path == _MEMORY_DB:
            self._scratch_dir = Path(tempfile.mkdtemp(prefix="sqlquest-"))
            self._database = str(self._scratch_dir / "memory.db")
            self._uri = False
        else:
            self._database = path
            self._uri = path.startswith("file:")
        if "timeout" in params.options:
            self._timeout = float(params.options["timeout"])

        try:
            conn = await self._connect()
        except Exception:
            self._remove_scratch_dir()
            raise
        try:
            async with conn.execute("SELECT 1") as cursor:
                await cursor.fetchone()
        except Exception:
            await conn.close()
            self._remove_scratch_dir()
            raise
        self._conn = conn

    async def close(self) -> None:
        leaked = list(self._transactions)
        self._transactions.clear()
        if leaked:
            logger.warning("Closing %d unreleased sqlite transaction connection(s)", len(leaked))
        for conn in leaked:
            try:
                await conn.close()
            except Exception as e:
                logger.warning("Failed to close sqlite transaction connection: %s", e)
        conn, self._conn = self._conn, None
        try:
            if conn is not None:
                await conn.close()
        finally:
            self._remove_scratch_dir()

    def _remove_scratch_dir(self) -> None:
        scratch, self._scratch_dir = self._scratch_dir, None
        if scratch is not None:
            shutil.rmtree(scratch, ignore_errors=True)

    async def query(self, sql: str) -> list[dict[str, Any]]:
        async with self._require_conn().execute(sql) as cursor:
            rows = await cursor.fetchall()
        return [_row_to_dict(row) for row in rows]

    async def execute(self, sql: str) -> int:
        async with self._require_conn().execute(sql) as cursor:
            return cursor.rowcount

    async def open_stream(self, sql: str, window: int) -> RowSource:
        cursor = await self._require_conn().execute(sql)
        return _StatementRowSource(cursor)

    async def begin(self) -> aiosqlite.Connection:
        self._require_conn()
        conn = await self._connect()
        try:
            await conn.execute("BEGIN")
        except Exception:
            await conn.close()
            raise
        self._transactions.add(conn)
        return conn

    async def act(self, native: aiosqlite.Connection, sql: str) -> int:
        async with native.execute(sql) as cursor:
            return cursor.rowcount

    async def commit(self, native: aiosqlite.Connection) -> None:
        await native.execute("COMMIT")

    async def rollback(self, native: aiosqlite.Connection) -> None:
        await native.execute("ROLLBACK")

    async def release(self, native: aiosqlite.Connection) -> None:
        self._transactions.discard(native)
        await native.close()
