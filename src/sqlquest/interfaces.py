"""Interface definitions for sqlquest backend drivers and collaborators."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from sqlquest.connector import Connector
    from sqlquest.models.config import ConnectionParams, ConnectorConfig
    from sqlquest.models.enums import BackendKind
    from sqlquest.permissions import PermissionContext, ReadFilter


class RowSource(ABC):
    """Forward-only cursor over a result set, drained in windows."""

    @abstractmethod
    async def fetch(self, size: int) -> list[dict[str, Any]]:
        """Return up to `size` rows; an empty list means the cursor is exhausted."""
        raise NotImplementedError

    @abstractmethod
    async def close(self) -> None:
        """Finalize the cursor and release whatever connection it holds.

        Must be safe to call more than once.
        """
        raise NotImplementedError


class BackendDriver(ABC):
    """Native call shapes for one BackendKind.

    Drivers raise on failure; the Connector logs and converts errors into
    the sentinel results its callers see.
    """

    @property
    @abstractmethod
    def backend(self) -> BackendKind:
        raise NotImplementedError

    @property
    @abstractmethod
    def is_open(self) -> bool:
        raise NotImplementedError

    @property
    @abstractmethod
    def checked_out(self) -> int:
        """Connections currently held outside the ambient path."""
        raise NotImplementedError

    @abstractmethod
    async def open(self, params: ConnectionParams, config: ConnectorConfig) -> None:
        """Establish the native handle and verify it with a trivial query."""
        raise NotImplementedError

    @abstractmethod
    async def close(self) -> None:
        raise NotImplementedError

    @abstractmethod
    async def query(self, sql: str) -> list[dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    async def execute(self, sql: str) -> int:
        """Run one statement and return the driver-reported affected row count."""
        raise NotImplementedError

    @abstractmethod
    async def open_stream(self, sql: str, window: int) -> RowSource:
        raise NotImplementedError

    @abstractmethod
    async def begin(self) -> Any:
        """Check out an exclusive connection and start a transaction on it.

        Returns the native handle to pass to act/commit/rollback/release.
        """
        raise NotImplementedError

    @abstractmethod
    async def act(self, native: Any, sql: str) -> int:
        raise NotImplementedError

    @abstractmethod
    async def commit(self, native: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    async def rollback(self, native: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    async def release(self, native: Any) -> None:
        """Return the transaction's connection to the pool or close it."""
        raise NotImplementedError


class PermissionChecker(ABC):
    """Access-control collaborator consulted by the CRUD generators."""

    @abstractmethod
    async def has_write_permission(
        self,
        connector: Connector,
        user_id: str | None,
        object_type: str,
        key: Any,
    ) -> bool:
        """Return True if the user may write the object identified by key."""
        raise NotImplementedError

    @abstractmethod
    def read_filter(
        self,
        connector: Connector,
        context: PermissionContext,
        object_type: str,
        table_name: str,
        key_column: str,
    ) -> ReadFilter | None:
        """Return a join and predicate restricting reads, or None for no filter."""
        raise NotImplementedError
