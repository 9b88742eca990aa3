"""Backend-agnostic async SQL access layer."""

__version__ = "0.1.0"

# Export commonly used types
from sqlquest.connector import Connector
from sqlquest.errors import SqlErrorCode, SqlQuestError
from sqlquest.models.config import ConnectionParams, ConnectorConfig
from sqlquest.models.enums import BackendKind, InternalType, TransactionState
from sqlquest.models.schema import ColumnSpec, TableSchema, load_table_schema
from sqlquest.permissions import PermissionContext
from sqlquest.streaming import RecordStream
from sqlquest.transactions import TransactionHandle

__all__ = [
    "BackendKind",
    "ColumnSpec",
    "ConnectionParams",
    "Connector",
    "ConnectorConfig",
    "InternalType",
    "PermissionContext",
    "RecordStream",
    "SqlErrorCode",
    "SqlQuestError",
    "TableSchema",
    "TransactionHandle",
    "TransactionState",
    "__version__",
    "load_table_schema",
]
