"""Schema-driven SQL generators.

Writers return `(error | None, result)` and never raise; on failure result is
a negative SqlErrorCode.
"""

from sqlquest.crud.count_rows import count_rows
from sqlquest.crud.create_table import create_table, create_table_sql, create_tables
from sqlquest.crud.record_update import record_update, record_update_sql
from sqlquest.crud.records_insert import records_insert
from sqlquest.crud.table_get import table_get, table_get_sql
from sqlquest.crud.table_put import delete_by_key_sql, table_put

__all__ = [
    "count_rows",
    "create_table",
    "create_table_sql",
    "create_tables",
    "delete_by_key_sql",
    "record_update",
    "record_update_sql",
    "records_insert",
    "table_get",
    "table_get_sql",
    "table_put",
]
