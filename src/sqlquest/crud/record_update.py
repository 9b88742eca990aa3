"""Single-row UPDATE generation."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from sqlquest.crud.common import CrudResult, check_write_permission, literal, run_write
from sqlquest.errors import (
    CrudError,
    KeyParameterMissingError,
    SchemaMissingPrimaryKeyError,
    UnknownSqlError,
    UpdateFailedError,
)
from sqlquest.models.schema import TableSchema
from sqlquest.permissions import PermissionContext

if TYPE_CHECKING:
    from sqlquest.connector import Connector
    from sqlquest.transactions import TransactionHandle

logger = logging.getLogger(__name__)

_OPERATION = "record_update"


def record_update_sql(
    connector: Connector,
    schema: TableSchema,
    row: Mapping[str, Any],
    primary_key_value: Any,
) -> str | None:
    """Build the UPDATE, or None when the row has no updatable columns.

    SET covers every typed, non-key column whose key is present in row, so
    0, False and "" are written too. Key columns only ever appear in WHERE.
    """
    assignments = [
        f"{connector.column_ref(column.source_column_name)}={literal(connector, column, row[key])}"
        for key, column in schema.properties.items()
        if key in row and key not in schema.primary_key and column.internal_type is not None
    ]
    if not assignments:
        return None

    first_key = schema.properties[schema.primary_key[0]]
    conditions = [
        f"{connector.column_ref(first_key.source_column_name)}="
        f"{literal(connector, first_key, primary_key_value)}"
    ]
    for key in schema.primary_key[1:]:
        if key in row:
            column = schema.properties[key]
            conditions.append(
                f"{connector.column_ref(column.source_column_name)}={literal(connector, column, row[key])}"
            )

    return (
        f"UPDATE {connector.table_ref(schema.table_name)} SET {','.join(assignments)}"
        f" WHERE {' AND '.join(conditions)}"
    )


async def record_update(
    row: Mapping[str, Any],
    schema: TableSchema,
    primary_key_value: Any,
    connector: Connector,
    permissions: PermissionContext | None = None,
    request_id: str | None = None,
    transaction: TransactionHandle | None = None,
) -> CrudResult:
    """Update one row identified by primary_key_value.

    Returns:
        (None, rows updated) on success, else (error, negative SqlErrorCode)
    """
    if not schema.primary_key:
        error: CrudError = SchemaMissingPrimaryKeyError(schema.table_name, _OPERATION)
        return error, error.code

    first_key = schema.primary_key[0]
    if primary_key_value is None or not isinstance(row, Mapping) or row.get(first_key) is None:
        error = KeyParameterMissingError(schema.table_name, _OPERATION, first_key)
        return error, error.code

    try:
        denied = await check_write_permission(
            connector, schema, permissions, primary_key_value, _OPERATION
        )
        if denied is not None:
            return denied, denied.code

        sql = record_update_sql(connector, schema, row, primary_key_value)
        if sql is None:
            error = UpdateFailedError(schema.table_name, "row has no updatable columns")
            return error, error.code

        updated = await run_write(connector, sql, request_id, transaction)
        if updated < 0:
            error = UpdateFailedError(schema.table_name, "statement failed")
            return error, error.code
        return None, updated
    except Exception as e:
        error = UnknownSqlError(schema.table_name, _OPERATION, e)
        logger.error("%s", error, exc_info=True, extra={"db_id": connector.db_id})
        return error, error.code
