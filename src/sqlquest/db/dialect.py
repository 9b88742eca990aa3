"""Dialect-specific connection details.

This module encapsulates the connection-level differences between the four
supported backends in a single place, so the connector and drivers never need
scattered `if backend == ...` checks.

The DialectHelper class provides methods for:
- Identifier enclosure characters (`"..."`, `[...]`, `` `...` ``)
- DSN normalization (adding the appropriate async driver)
- URL construction from discrete connection parameters
- Engine configuration (pool settings per dialect)
- Retryable error detection (SQLSTATE, server error numbers, SQLite messages)
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import DBAPIError, OperationalError

from sqlquest.models.config import ConnectionParams
from sqlquest.models.enums import BackendKind

logger = logging.getLogger(__name__)

# SQLSTATE codes that indicate transient/retryable errors (PostgreSQL, ODBC)
_RETRYABLE_SQLSTATES = frozenset(
    {
        "08000",  # connection_exception
        "08001",  # unable to establish connection
        "08003",  # connection does not exist
        "08004",  # server rejected connection
        "08006",  # connection failure
        "08007",  # transaction resolution unknown
        "08S01",  # ODBC communication link failure
        "40001",  # serialization failure / deadlock victim
        "40P01",  # deadlock detected
        "53300",  # too many connections
        "57P01",  # admin shutdown
        "57P02",  # crash shutdown
        "57P03",  # cannot connect now
        "HYT00",  # ODBC timeout expired
    }
)

# MySQL / SQL Server native error numbers that indicate transient errors
_RETRYABLE_MYSQL_ERRNOS = frozenset({1040, 1205, 1213, 2003, 2006, 2013})
_RETRYABLE_MSSQL_ERRNOS = frozenset({1205, 40197, 40501, 40613})

# SQLite error messages that indicate transient/retryable errors
_RETRYABLE_SQLITE_MESSAGES = frozenset(
    {
        "database is locked",
        "database is busy",
    }
)

_ENCLOSURES: dict[BackendKind, tuple[str, str]] = {
    BackendKind.POSTGRESQL: ('"', '"'),
    BackendKind.MSSQL: ("[", "]"),
    BackendKind.MYSQL: ("`", "`"),
    BackendKind.SQLITE: ('"', '"'),
}

_ASYNC_DRIVERNAMES: dict[BackendKind, str] = {
    BackendKind.POSTGRESQL: "postgresql+asyncpg",
    BackendKind.MSSQL: "mssql+aioodbc",
    BackendKind.MYSQL: "mysql+aiomysql",
    BackendKind.SQLITE: "sqlite+aiosqlite",
}

_DEFAULT_PORTS: dict[BackendKind, int] = {
    BackendKind.POSTGRESQL: 5432,
    BackendKind.MSSQL: 1433,
    BackendKind.MYSQL: 3306,
}

DEFAULT_MSSQL_ODBC_DRIVER = "ODBC Driver 18 for SQL Server"


class DialectHelper:
    """Encapsulates backend-specific connection behavior.

    Build one from a configured backend or detect it from a DSN:
        dialect = DialectHelper(BackendKind.MYSQL)
        dialect = DialectHelper.from_dsn("mysql://app@db/inventory")
    """

    def __init__(self, backend: BackendKind | str) -> None:
        """Initialize with backend kind.

        Args:
            backend: BackendKind or a name accepted by BackendKind.from_string

        Raises:
            ValueError: If backend is not supported
        """
        if not isinstance(backend, BackendKind):
            backend = BackendKind.from_string(backend)
        self._backend = backend

    @classmethod
    def from_dsn(cls, dsn: str) -> DialectHelper:
        """Create DialectHelper by detecting the backend from a DSN.

        Raises:
            ValueError: If DSN dialect cannot be detected
        """
        return cls(detect_dialect_from_dsn(dsn))

    @property
    def backend(self) -> BackendKind:
        return self._backend

    @property
    def dialect_name(self) -> str:
        return str(self._backend)

    @property
    def enclosure(self) -> tuple[str, str]:
        """Opening and closing identifier quote characters."""
        return _ENCLOSURES[self._backend]

    def enclose(self, name: str) -> str:
        """Wrap an identifier in the backend's enclosure pair.

        A closing quote inside the name is doubled so it stays part of the
        identifier.
        """
        opening, closing = _ENCLOSURES[self._backend]
        escaped = name.replace(closing, closing * 2)
        return f"{opening}{escaped}{closing}"

    # -------------------------------------------------------------------------
    # Error Classification
    # -------------------------------------------------------------------------

    def is_retryable_error(self, exc: BaseException) -> bool:
        """Determine if an exception represents a transient, retryable error.

        Nothing in sqlquest retries; the classification is attached to error
        logs so callers can decide.
        """
        if isinstance(exc, OperationalError):
            return True
        if isinstance(exc, DBAPIError) and exc.connection_invalidated:
            return True

        match self._backend:
            case BackendKind.SQLITE:
                return self._is_retryable_sqlite_error(exc)
            case BackendKind.MYSQL:
                return _extract_errno(exc) in _RETRYABLE_MYSQL_ERRNOS
            case BackendKind.MSSQL:
                if _extract_errno(exc) in _RETRYABLE_MSSQL_ERRNOS:
                    return True
                return _extract_sqlstate(exc) in _RETRYABLE_SQLSTATES
            case _:
                return _extract_sqlstate(exc) in _RETRYABLE_SQLSTATES

    def _is_retryable_sqlite_error(self, exc: BaseException) -> bool:
        """Check SQLite-specific error messages along the exception chain."""
        current: BaseException | None = exc
        while current is not None:
            msg = str(current).lower()
            for retryable_msg in _RETRYABLE_SQLITE_MESSAGES:
                if retryable_msg in msg:
                    return True
            current = current.__cause__
        return False

    # -------------------------------------------------------------------------
    # Engine Configuration
    # -------------------------------------------------------------------------

    def get_engine_kwargs(self, *, pool_size: int = 5, max_overflow: int = 0) -> dict[str, Any]:
        """Get dialect-appropriate engine configuration.

        Returns:
            Dictionary of kwargs for create_async_engine()
        """
        engine_kwargs: dict[str, Any] = {
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "pool_pre_ping": True,
        }
        if self._backend is BackendKind.MYSQL:
            # Server closes idle connections after wait_timeout (8h default)
            engine_kwargs["pool_recycle"] = 3600
        return engine_kwargs

    # -------------------------------------------------------------------------
    # DSN / URL Construction
    # -------------------------------------------------------------------------

    def normalize_dsn(self, dsn: str) -> str:
        """Normalize DSN to include the backend's async driver."""
        url = make_url(dsn)
        if url.drivername == _ASYNC_DRIVERNAMES[self._backend]:
            return dsn
        return url.set(drivername=_ASYNC_DRIVERNAMES[self._backend]).render_as_string(
            hide_password=False
        )

    def build_url(self, params: ConnectionParams, password: str | None) -> URL:
        """Build an async SQLAlchemy URL for a server backend.

        Raises:
            ValueError: If called for SQLite, which is opened by file path
        """
        if self._backend is BackendKind.SQLITE:
            raise ValueError("SQLite connections are opened by path, not URL")

        if params.dsn:
            url = make_url(self.normalize_dsn(params.dsn))
            if password is not None and url.password is None:
                url = url.set(password=password)
            return url

        query = dict(params.options)
        if self._backend is BackendKind.MSSQL:
            query.setdefault("driver", params.driver or DEFAULT_MSSQL_ODBC_DRIVER)
        return URL.create(
            _ASYNC_DRIVERNAMES[self._backend],
            username=params.user,
            password=password,
            host=params.host,
            port=params.port or _DEFAULT_PORTS[self._backend],
            database=params.database,
            query=query,
        )

    def sqlite_path(self, params: ConnectionParams) -> str:
        """Return the SQLite database path from a DSN or `database` field."""
        if params.dsn:
            database = make_url(params.dsn).database
            return database or ":memory:"
        return params.database or ":memory:"

    def describe_target(self, params: ConnectionParams | None) -> str:
        """Return a credential-free `database@host:port` identity string."""
        if params is None:
            return f"{self._backend}:<unconfigured>"
        if self._backend is BackendKind.SQLITE:
            return f"sqlite:{self.sqlite_path(params)}"
        if params.dsn:
            url = make_url(params.dsn)
            return f"{self._backend}:{url.database}@{url.host}:{url.port or _DEFAULT_PORTS[self._backend]}"
        port = params.port or _DEFAULT_PORTS[self._backend]
        return f"{self._backend}:{params.database}@{params.host}:{port}"


def detect_dialect_from_dsn(dsn: str) -> BackendKind:
    """Detect the backend from a DSN string.

    Raises:
        ValueError: If dialect cannot be detected from DSN
    """
    scheme, sep, _ = dsn.partition("://")
    if not sep:
        raise ValueError(f"Cannot detect dialect from DSN: {dsn}")
    base = scheme.split("+", 1)[0]
    try:
        return BackendKind.from_string(base)
    except ValueError:
        raise ValueError(f"Cannot detect dialect from DSN: {dsn}") from None


def _extract_sqlstate(exc: BaseException) -> str | None:
    """Extract a SQLSTATE code from an exception."""
    for candidate in (exc, getattr(exc, "orig", None), getattr(exc, "__cause__", None)):
        if candidate is None:
            continue
        # Try different attribute names used by different drivers
        sqlstate = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if sqlstate:
            return str(sqlstate)
        args = getattr(candidate, "args", ())
        # pyodbc errors carry the SQLSTATE as the first argument
        if args and isinstance(args[0], str) and len(args[0]) == 5:
            return args[0]
    return None


def _extract_errno(exc: BaseException) -> int | None:
    """Extract a native server error number (MySQL, SQL Server)."""
    for candidate in (exc, getattr(exc, "orig", None), getattr(exc, "__cause__", None)):
        if candidate is None:
            continue
        args = getattr(candidate, "args", ())
        if args and isinstance(args[0], int) and not isinstance(args[0], bool):
            return args[0]
        number = getattr(candidate, "number", None)
        if isinstance(number, int):
            return number
    return None
