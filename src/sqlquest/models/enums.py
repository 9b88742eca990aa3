"""Centralized enums for type safety and IDE support."""

from enum import StrEnum
from typing import Any


class BackendKind(StrEnum):
    """Supported relational backends.

    Values double as SQLAlchemy dialect names, so they can be compared with
    `engine.dialect.name` directly.
    """

    POSTGRESQL = "postgresql"
    MSSQL = "mssql"
    MYSQL = "mysql"
    SQLITE = "sqlite"

    @classmethod
    def from_string(cls, value: str) -> "BackendKind":
        """Parse a backend name, accepting common driver aliases.

        Raises:
            ValueError: If value names no supported backend
        """
        key = value.strip().lower()
        resolved = _BACKEND_ALIASES.get(key, key)
        try:
            return cls(resolved)
        except ValueError:
            raise ValueError(f"Unsupported backend: {value}") from None

    @property
    def is_server(self) -> bool:
        return self is not BackendKind.SQLITE


_BACKEND_ALIASES: dict[str, str] = {
    "pg": "postgresql",
    "postgres": "postgresql",
    "sqlserver": "mssql",
    "tedious": "mssql",
    "mysql2": "mysql",
    "maria": "mysql",
    "mariadb": "mysql",
    "sqlite3": "sqlite",
}


def parse_backend(value: Any) -> Any:
    """Pydantic before-validator hook for BackendKind fields."""
    if isinstance(value, BackendKind):
        return value
    if isinstance(value, str):
        return BackendKind.from_string(value)
    return value


class ConnectorState(StrEnum):
    """Connector lifecycle gate."""

    CLOSED = "closed"
    OPEN = "open"


class TransactionState(StrEnum):
    """Transaction handle lifecycle.

    NOT_STARTED -> ACTIVE -> COMMITTED | ROLLED_BACK (terminal)
    """

    NOT_STARTED = "not_started"
    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"

    @property
    def is_terminal(self) -> bool:
        return self in (TransactionState.COMMITTED, TransactionState.ROLLED_BACK)


class InternalType(StrEnum):
    """Backend-independent column type vocabulary."""

    BOOLEAN = "boolean"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    DECIMAL = "decimal"
    VARCHAR = "varchar"
    TEXT = "text"

    @property
    def is_integer(self) -> bool:
        return self in (
            InternalType.INT8,
            InternalType.INT16,
            InternalType.INT32,
            InternalType.INT64,
        )

    @property
    def is_float(self) -> bool:
        return self in (InternalType.FLOAT32, InternalType.FLOAT64)

    @property
    def is_string(self) -> bool:
        return self in (InternalType.VARCHAR, InternalType.TEXT)
