"""Backend drivers, one per BackendKind."""

from sqlquest.backends.base import EngineBackend, literal_text
from sqlquest.backends.mssql import MssqlBackend
from sqlquest.backends.mysql import MysqlBackend
from sqlquest.backends.postgres import PostgresBackend
from sqlquest.backends.sqlite import SqliteBackend
from sqlquest.errors import BackendUnsupportedError
from sqlquest.interfaces import BackendDriver
from sqlquest.models.enums import BackendKind


def create_backend(kind: BackendKind) -> BackendDriver:
    """Return a fresh driver for the backend kind.

    Raises:
        BackendUnsupportedError: If kind has no driver
    """
    match kind:
        case BackendKind.POSTGRESQL:
            return PostgresBackend()
        case BackendKind.MSSQL:
            return MssqlBackend()
        case BackendKind.MYSQL:
            return MysqlBackend()
        case BackendKind.SQLITE:
            return SqliteBackend()
        case _:
            raise BackendUnsupportedError(str(kind))


__all__ = [
    "EngineBackend",
    "MssqlBackend",
    "MysqlBackend",
    "PostgresBackend",
    "SqliteBackend",
    "create_backend",
    "literal_text",
]
