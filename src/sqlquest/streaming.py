"""Lazy, bounded record streams over backend cursors."""

from __future__ import annotations

import json
import logging
from collections import deque
from types import TracebackType
from typing import Any

from sqlquest.errors import QueryError
from sqlquest.interfaces import RowSource

logger = logging.getLogger(__name__)

PREFETCH_WINDOW = 100


def serialize_record(record: dict[str, Any]) -> str:
    """Render one record as a self-contained JSON line."""
    return json.dumps(record, default=str) + "\n"


class RecordStream:
    """Forward-only async iterator over a query result.

    Rows are pulled from the backend one window at a time, and only once the
    previous window has been fully consumed, so at most `window` unconsumed
    rows are held in memory. With `object_mode=False` each item is a JSON
    line instead of a dict.

    A backend error is raised once (as QueryError); afterwards the stream is
    exhausted. The underlying cursor is closed on exhaustion, on error, and on
    `aclose()`.

    Usage:
        stream = await connector.stream_query("SELECT * FROM big_table")
        async with stream:
            async for record in stream:
                ...
    """

    def __init__(
        self,
        source: RowSource,
        *,
        object_mode: bool = True,
        window: int = PREFETCH_WINDOW,
        db_id: str = "-",
        request_id: str | None = None,
    ) -> None:
        if window < 1:
            raise ValueError("window must be positive")
        self._source: RowSource | None = source
        self._object_mode = object_mode
        self._window = window
        self._db_id = db_id
        self._request_id = request_id
        self._buffer: deque[dict[str, Any]] = deque()
        self._exhausted = False
        self._delivered = 0

    @property
    def object_mode(self) -> bool:
        return self._object_mode

    @property
    def window(self) -> int:
        return self._window

    @property
    def pending(self) -> int:
        """Rows fetched from the backend but not yet consumed."""
        return len(self._buffer)

    @property
    def delivered(self) -> int:
        return self._delivered

    @property
    def exhausted(self) -> bool:
        return self._exhausted and not self._buffer

    def __aiter__(self) -> RecordStream:
        return self

    async def __anext__(self) -> dict[str, Any] | str:
        if not self._buffer and not self._exhausted:
            await self._fill()
        if not self._buffer:
            raise StopAsyncIteration
        record = self._buffer.popleft()
        self._delivered += 1
        if self._object_mode:
            return record
        return serialize_record(record)

    async def _fill(self) -> None:
        source = self._source
        if source is None:
            self._exhausted = True
            return
        try:
            rows = await source.fetch(self._window)
        except Exception as e:
            self._exhausted = True
            await self._close_source()
            error = QueryError(self._db_id, self._request_id, e)
            logger.error(
                "Stream failed after %d record(s): %s",
                self._delivered,
                e,
                exc_info=True,
                extra={"request_id": self._request_id, "db_id": self._db_id},
            )
            raise error from e
        if not rows:
            self._exhausted = True
            await self._close_source()
            return
        self._buffer.extend(rows)

    async def _close_source(self) -> None:
        source, self._source = self._source, None
        if source is None:
            return
        try:
            await source.close()
        except Exception as e:
            logger.warning(
                "Failed to close stream cursor: %s",
                e,
                extra={"request_id": self._request_id, "db_id": self._db_id},
            )

    async def aclose(self) -> None:
        """Abandon the stream and finalize its cursor."""
        self._exhausted = True
        self._buffer.clear()
        await self._close_source()

    async def __aenter__(self) -> RecordStream:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
