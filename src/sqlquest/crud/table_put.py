"""Replace a keyed detail record set: DELETE then INSERT."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from sqlquest.crud.common import (
    CrudResult,
    check_write_permission,
    insert_rows,
    is_row_sequence,
    key_conditions,
    run_write,
)
from sqlquest.errors import (
    ArrayExpectedError,
    CrudError,
    DeleteFailedError,
    KeyParameterMissingError,
    SchemaMissingPrimaryKeyError,
    UnknownSqlError,
)
from sqlquest.models.schema import TableSchema
from sqlquest.permissions import PermissionContext

if TYPE_CHECKING:
    from sqlquest.connector import Connector
    from sqlquest.transactions import TransactionHandle

logger = logging.getLogger(__name__)

_OPERATION = "table_put"


def delete_by_key_sql(
    connector: Connector, schema: TableSchema, key_values: Sequence[Any]
) -> str:
    conditions = key_conditions(connector, schema, key_values)
    return f"DELETE FROM {connector.table_ref(schema.table_name)} WHERE {' AND '.join(conditions)}"


async def table_put(
    rows: Sequence[dict[str, Any]],
    key_values: Sequence[Any],
    schema: TableSchema,
    connector: Connector,
    permissions: PermissionContext | None = None,
    request_id: str | None = None,
    transaction: TransactionHandle | None = None,
) -> CrudResult:
    """Delete every row matching key_values, then insert rows.

    key_values match the primary key columns positionally, so a prefix of a
    composite key selects a whole detail set. The delete and each insert are
    separate statements; pass `transaction` to make the replace atomic.

    Returns:
        (None, rows inserted) on success, else (error, negative SqlErrorCode)
    """
    error: CrudError
    if not schema.primary_key:
        error = SchemaMissingPrimaryKeyError(schema.table_name, _OPERATION)
        return error, error.code
    if not key_values:
        error = KeyParameterMissingError(schema.table_name, _OPERATION, schema.primary_key[0])
        return error, error.code

    try:
        denied = await check_write_permission(
            connector, schema, permissions, key_values[0], _OPERATION
        )
        if denied is not None:
            return denied, denied.code

        # Reject the payload before anything is deleted.
        if not is_row_sequence(rows):
            error = ArrayExpectedError(schema.table_name, _OPERATION, type(rows).__name__)
            return error, error.code

        sql = delete_by_key_sql(connector, schema, key_values)
        if await run_write(connector, sql, request_id, transaction) < 0:
            logger.warning(
                "DELETE FROM %s failed, skipping inserts",
                schema.table_name,
                extra={"db_id": connector.db_id, "request_id": request_id},
            )
            error = DeleteFailedError(schema.table_name)
            return error, error.code

        return await insert_rows(connector, schema, rows, request_id, transaction)
    except Exception as e:
        error = UnknownSqlError(schema.table_name, _OPERATION, e)
        logger.error("%s", error, exc_info=True, extra={"db_id": connector.db_id})
        return error, error.code
