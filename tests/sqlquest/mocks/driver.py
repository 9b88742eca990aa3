"""Mock backend driver for testing."""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, field
from typing import Any

from sqlquest.interfaces import BackendDriver, RowSource
from sqlquest.models.config import ConnectionParams, ConnectorConfig
from sqlquest.models.enums import BackendKind


class MockRowSource(RowSource):
    """In-memory row source that records how it was drained."""

    def __init__(self, rows: list[dict[str, Any]], fail_on_fetch: int | None = None) -> None:
        self._rows = list(rows)
        self._position = 0
        self.fail_on_fetch = fail_on_fetch
        self.fetch_sizes: list[int] = []
        self.closed = False
        self.close_count = 0

    @property
    def remaining(self) -> int:
        return len(self._rows) - self._position

    @property
    def produced(self) -> int:
        return self._position

    async def fetch(self, size: int) -> list[dict[str, Any]]:
        self.fetch_sizes.append(size)
        if self.fail_on_fetch is not None and len(self.fetch_sizes) >= self.fail_on_fetch:
            raise RuntimeError("Simulated cursor failure")
        if self.closed:
            return []
        batch = self._rows[self._position : self._position + size]
        self._position += len(batch)
        return [dict(row) for row in batch]

    async def close(self) -> None:
        self.close_count += 1
        self.closed = True


@dataclass
class MockTransaction:
    """Native handle produced by MockBackendDriver.begin()."""

    tx_id: int
    statements: list[str] = field(default_factory=list)
    committed: bool = False
    rolled_back: bool = False
    released: bool = False


class MockBackendDriver(BackendDriver):
    """Mock implementation of BackendDriver for testing.

    Records every statement for assertions. Supports configurable failure
    injection per operation and per SQL fragment.
    """

    def __init__(
        self,
        backend: BackendKind = BackendKind.SQLITE,
        *,
        rows: list[dict[str, Any]] | None = None,
        rowcount: int = 1,
        stream_rows: list[dict[str, Any]] | None = None,
        fail_on: set[str] | None = None,
        fail_sql_containing: str | None = None,
        delay_s: float = 0.0,
    ) -> None:
        """Initialize mock driver.

        Args:
            backend: BackendKind reported by the driver
            rows: Rows returned by every query()
            rowcount: Row count returned by execute()/act()
            stream_rows: Rows served by open_stream()
            fail_on: Operation names ("open", "query", "execute", "open_stream",
                "begin", "act", "commit", "rollback", "release", "close") that raise
            fail_sql_containing: execute()/act() raise when the SQL contains this text
            delay_s: Artificial delay before each operation
        """
        self._backend = backend
        self.rows = rows or []
        self.rowcount = rowcount
        self.stream_rows = stream_rows or []
        self.fail_on = set(fail_on or ())
        self.fail_sql_containing = fail_sql_containing
        self.delay_s = delay_s

        self.opened_with: ConnectionParams | None = None
        self.statements: list[str] = []
        self.transactions: list[MockTransaction] = []
        self.sources: list[MockRowSource] = []
        self.open_count = 0
        self.close_count = 0
        self._open = False
        self._checked_out = 0
        self._tx_ids = itertools.count(1)

    @property
    def backend(self) -> BackendKind:
        return self._backend

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def checked_out(self) -> int:
        return self._checked_out

    async def _step(self, operation: str, sql: str | None = None) -> None:
        if self.delay_s > 0:
            await asyncio.sleep(self.delay_s)
        if operation in self.fail_on:
            raise RuntimeError(f"Simulated {operation} failure")
        if sql is not None and self.fail_sql_containing and self.fail_sql_containing in sql:
            raise RuntimeError(f"Simulated statement failure: {sql}")

    async def open(self, params: ConnectionParams, config: ConnectorConfig) -> None:
        self.open_count += 1
        await self._step("open")
        self.opened_with = params
        self._open = True

    async def close(self) -> None:
        self.close_count += 1
        self._open = False
        await self._step("close")

    async def query(self, sql: str) -> list[dict[str, Any]]:
        self.statements.append(sql)
        await self._step("query", sql)
        return [dict(row) for row in self.rows]

    async def execute(self, sql: str) -> int:
        self.statements.append(sql)
        await self._step("execute", sql)
        return self.rowcount

    async def open_stream(self, sql: str, window: int) -> RowSource:
        self.statements.append(sql)
        await self._step("open_stream", sql)
        source = MockRowSource(self.stream_rows)
        self.sources.append(source)
        return source

    async def begin(self) -> MockTransaction:
        await self._step("begin")
        self._checked_out += 1
        tx = MockTransaction(tx_id=next(self._tx_ids))
        self.transactions.append(tx)
        return tx

    async def act(self, native: MockTransaction, sql: str) -> int:
        native.statements.append(sql)
        await self._step("act", sql)
        return self.rowcount

    async def commit(self, native: MockTransaction) -> None:
        await self._step("commit")
        native.committed = True

    async def rollback(self, native: MockTransaction) -> None:
        await self._step("rollback")
        native.rolled_back = True

    async def release(self, native: MockTransaction) -> None:
        native.released = True
        self._checked_out -= 1
        await self._step("release")
