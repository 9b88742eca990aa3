"""Row-at-a-time INSERT of a detail record set."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from sqlquest.crud.common import CrudResult, check_write_permission, insert_rows, is_row_sequence
from sqlquest.errors import ArrayExpectedError, CrudError, UnknownSqlError
from sqlquest.models.schema import TableSchema
from sqlquest.permissions import PermissionContext

if TYPE_CHECKING:
    from sqlquest.connector import Connector
    from sqlquest.transactions import TransactionHandle

logger = logging.getLogger(__name__)

_OPERATION = "records_insert"


async def records_insert(
    rows: Sequence[dict[str, Any]],
    schema: TableSchema,
    connector: Connector,
    key_values: Sequence[Any] | None = None,
    permissions: PermissionContext | None = None,
    request_id: str | None = None,
    transaction: TransactionHandle | None = None,
) -> CrudResult:
    """Insert each row with its own statement.

    Every schema column is written; columns without a declared type get
    NULL. Each insert commits on its own, so a failure part way leaves the
    earlier rows in place unless `transaction` is given, in which case every
    insert runs on that handle and the caller decides commit or rollback.

    Returns:
        (None, rows inserted) on success, else (error, negative SqlErrorCode)
    """
    error: CrudError
    try:
        key = key_values[0] if key_values else None
        denied = await check_write_permission(connector, schema, permissions, key, _OPERATION)
        if denied is not None:
            return denied, denied.code

        if not is_row_sequence(rows):
            logger.warning(
                "records_insert expects a sequence of rows for %s, got %s",
                schema.table_name,
                type(rows).__name__,
                extra={"db_id": connector.db_id, "request_id": request_id},
            )
            error = ArrayExpectedError(schema.table_name, _OPERATION, type(rows).__name__)
            return error, error.code

        return await insert_rows(connector, schema, rows, request_id, transaction)
    except Exception as e:
        error = UnknownSqlError(schema.table_name, _OPERATION, e)
        logger.error("%s", error, exc_info=True, extra={"db_id": connector.db_id})
        return error, error.code
