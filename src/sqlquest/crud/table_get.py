"""Keyed SELECT generation."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from sqlquest.crud.common import key_conditions, literal
from sqlquest.models.schema import TableSchema
from sqlquest.permissions import PermissionContext

if TYPE_CHECKING:
    from sqlquest.connector import Connector

logger = logging.getLogger(__name__)


def table_get_sql(
    connector: Connector,
    schema: TableSchema,
    key_values: Sequence[Any],
    permissions: PermissionContext | None = None,
) -> str:
    """Build the SELECT for table_get.

    A single-column key matches any of key_values (`IN`). A composite key
    matches key_values positionally as a key prefix; when the prefix is
    shorter than the key, rows are ordered by the next key column.
    """
    table = connector.table_ref(schema.table_name)
    key_column = schema.properties[schema.primary_key[0]]

    join = ""
    conditions: list[str] = []
    if permissions is not None and schema.permission_object_type:
        read_filter = permissions.checker.read_filter(
            connector,
            permissions,
            schema.permission_object_type,
            table,
            key_column.source_column_name,
        )
        if read_filter is not None:
            join = read_filter.join
            conditions.append(f"({read_filter.predicate})")

    # Qualify columns once a join can introduce ambiguous names.
    qualifier = f"{table}." if join else ""

    selected = ",".join(
        f"{qualifier}{connector.column_ref(column.source_column_name)} AS {connector.enclose(key)}"
        for key, column in schema.properties.items()
    )

    if len(schema.primary_key) == 1:
        values = ",".join(literal(connector, key_column, value) for value in key_values)
        conditions.append(
            f"{qualifier}{connector.column_ref(key_column.source_column_name)} IN ({values})"
        )
    else:
        conditions.extend(
            qualifier + term for term in key_conditions(connector, schema, key_values)
        )

    order_by = ""
    if len(key_values) < len(schema.primary_key):
        next_key = schema.properties[schema.primary_key[len(key_values)]]
        order_by = f" ORDER BY {qualifier}{connector.column_ref(next_key.source_column_name)}"

    return f"SELECT {selected} FROM {table}{join} WHERE {' AND '.join(conditions)}{order_by}"


async def table_get(
    key_values: Sequence[Any],
    schema: TableSchema,
    connector: Connector,
    permissions: PermissionContext | None = None,
    request_id: str | None = None,
) -> list[dict[str, Any]]:
    """Fetch rows by primary key, keyed by property name.

    Graceful degradation: returns [] when no keys are given, the schema has
    no primary key, or the query fails.
    """
    if not key_values or not schema.primary_key:
        return []
    try:
        sql = table_get_sql(connector, schema, key_values, permissions)
    except Exception as e:
        logger.error(
            "Failed to build SELECT for %s: %s",
            schema.table_name,
            e,
            exc_info=True,
            extra={"db_id": connector.db_id, "request_id": request_id},
        )
        return []
    return await connector.query(sql, request_id)
