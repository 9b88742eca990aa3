"""sqlquest data models."""

from sqlquest.models.config import ConnectionParams, ConnectorConfig
from sqlquest.models.enums import BackendKind, ConnectorState, InternalType, TransactionState
from sqlquest.models.schema import ColumnSpec, TableSchema, load_table_schema

__all__ = [
    "BackendKind",
    "ColumnSpec",
    "ConnectionParams",
    "ConnectorConfig",
    "ConnectorState",
    "InternalType",
    "TableSchema",
    "TransactionState",
    "load_table_schema",
]
