"""Row counts by a single search key."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlquest.db.sanitize import NULL

if TYPE_CHECKING:
    from sqlquest.connector import Connector


async def count_rows(
    connector: Connector,
    table_name: str,
    key_column: str,
    key_value: Any,
    key_is_numeric: bool = False,
    request_id: str | None = None,
) -> int:
    """Count rows where key_column equals key_value.

    Non-string values, and any value when key_is_numeric is set, are matched
    as numbers; a value that does not parse as a number returns -1.

    Returns:
        Matching row count, or -1 on error
    """
    if key_is_numeric or not isinstance(key_value, str):
        try:
            number = float(key_value) if isinstance(key_value, str) else key_value
        except ValueError:
            return -1
        condition = connector.sql_double(number)
        if condition == NULL:
            return -1
    else:
        condition = connector.sql_string(key_value)

    sql = (
        f"SELECT COUNT(*) AS row_count FROM {connector.table_ref(table_name)}"
        f" WHERE {connector.column_ref(key_column)}={condition}"
    )
    rows = await connector.query(sql, request_id)
    if not rows:
        return -1
    return int(rows[0]["row_count"])
