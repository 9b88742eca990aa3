"""Helpers shared by the schema-driven generators."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, TypeAlias

from sqlquest.errors import CrudError, InsertFailedError, PermissionDeniedError
from sqlquest.models.schema import ColumnSpec, TableSchema
from sqlquest.permissions import PermissionContext

if TYPE_CHECKING:
    from sqlquest.connector import Connector
    from sqlquest.transactions import TransactionHandle

logger = logging.getLogger(__name__)

CrudResult: TypeAlias = tuple[CrudError | None, int]


def is_row_sequence(rows: Any) -> bool:
    """True for list-like payloads; strings, bytes and mappings do not count."""
    return isinstance(rows, Sequence) and not isinstance(rows, (str, bytes, bytearray))


def literal(connector: Connector, column: ColumnSpec, value: Any) -> str:
    return connector.sanitize(value, column.internal_type, column.decimal_places)


def key_conditions(
    connector: Connector, schema: TableSchema, key_values: Sequence[Any]
) -> list[str]:
    """`col=value` terms pairing key_values with primary key columns in order."""
    conditions = []
    for key, value in zip(schema.primary_key, key_values):
        column = schema.properties[key]
        conditions.append(
            f"{connector.column_ref(column.source_column_name)}={literal(connector, column, value)}"
        )
    return conditions


async def check_write_permission(
    connector: Connector,
    schema: TableSchema,
    permissions: PermissionContext | None,
    key: Any,
    operation: str,
) -> PermissionDeniedError | None:
    """Ask the permission collaborator before a write.

    Only consulted when both a context is supplied and the schema declares a
    permission object type.
    """
    object_type = schema.permission_object_type
    if permissions is None or not object_type:
        return None
    allowed = await permissions.checker.has_write_permission(
        connector, permissions.user_id, object_type, key
    )
    if allowed:
        return None
    logger.warning(
        "Write permission denied: table=%s object_type=%s key=%s user=%s",
        schema.table_name,
        object_type,
        key,
        permissions.user_id,
        extra={"db_id": connector.db_id, "operation": operation},
    )
    return PermissionDeniedError(schema.table_name, operation, permissions.user_id)


def insert_prefix(connector: Connector, schema: TableSchema) -> str:
    columns = ",".join(
        connector.column_ref(column.source_column_name) for column in schema.properties.values()
    )
    return f"INSERT INTO {connector.table_ref(schema.table_name)}({columns}) VALUES ("


def insert_values(connector: Connector, schema: TableSchema, row: Mapping[str, Any]) -> str:
    values = []
    for key, column in schema.properties.items():
        if column.internal_type is None:
            values.append("NULL")
        else:
            values.append(literal(connector, column, row.get(key)))
    return ",".join(values)


async def run_write(
    connector: Connector,
    sql: str,
    request_id: str | None,
    transaction: TransactionHandle | None,
) -> int:
    """Execute on the ambient path, or inside transaction when one is given."""
    if transaction is None:
        return await connector.execute(sql, request_id)
    return await connector.trans_execute(transaction, sql, request_id)


async def insert_rows(
    connector: Connector,
    schema: TableSchema,
    rows: Sequence[Any],
    request_id: str | None,
    transaction: TransactionHandle | None = None,
) -> CrudResult:
    """Insert rows one statement at a time, awaiting each.

    Stops at the first failed row. Outside a transaction the rows inserted
    before it stay committed; their count is carried on the returned
    InsertFailedError.
    """
    prefix = insert_prefix(connector, schema)
    inserted = 0
    for index, row in enumerate(rows):
        count = -1
        if isinstance(row, Mapping):
            count = await run_write(
                connector,
                prefix + insert_values(connector, schema, row) + ")",
                request_id,
                transaction,
            )
        if count < 0:
            logger.warning(
                "Insert into %s failed at row %d after %d row(s)",
                schema.table_name,
                index,
                inserted,
                extra={"db_id": connector.db_id, "request_id": request_id},
            )
            error = InsertFailedError(schema.table_name, inserted, index)
            return error, error.code
        inserted += count
    return None, inserted
