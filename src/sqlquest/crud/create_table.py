"""CREATE TABLE generation from a TableSchema."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Sequence
from typing import TYPE_CHECKING

from sqlquest.models.enums import InternalType
from sqlquest.models.schema import ColumnSpec, TableSchema

if TYPE_CHECKING:
    from sqlquest.connector import Connector

logger = logging.getLogger(__name__)

DECIMAL_PRECISION = 18
DEFAULT_DECIMAL_SCALE = 5


def column_definition(
    connector: Connector, column: ColumnSpec, *, in_primary_key: bool = False
) -> str | None:
    """Render `name type[(len)|(p,s)][ NOT NULL]`, or None for untyped columns."""
    if column.internal_type is None:
        return None
    native = connector.native_types.get(column.internal_type)
    if native is None:
        return None

    match column.internal_type:
        case InternalType.VARCHAR:
            if column.max_length:
                declared = f"{native}({column.max_length})"
            else:
                declared = connector.unbounded_varchar_type
        case InternalType.DECIMAL:
            scale = column.decimal_places
            if scale is None or not 1 <= scale <= 8:
                scale = DEFAULT_DECIMAL_SCALE
            declared = f"{native}({DECIMAL_PRECISION},{scale})"
        case _:
            declared = native

    # Key columns must be NOT NULL on every backend that enforces it (SQL Server).
    if not column.nullable or in_primary_key:
        declared += " NOT NULL"
    return f"{connector.column_ref(column.source_column_name)} {declared}"


def create_table_sql(connector: Connector, schema: TableSchema, owner: str | None = None) -> str:
    definitions = []
    for key, column in schema.properties.items():
        definition = column_definition(connector, column, in_primary_key=key in schema.primary_key)
        if definition is not None:
            definitions.append(definition)

    if schema.primary_key:
        key_columns = ",".join(
            connector.column_ref(name) for name in schema.key_column_names()
        )
        constraint = f"pk_{schema.table_name}"
        if connector.config.lower_case_names:
            constraint = constraint.lower()
        definitions.append(f"CONSTRAINT {constraint} PRIMARY KEY({key_columns})")

    return f"CREATE TABLE {connector.table_ref(schema.table_name, owner)}({','.join(definitions)})"


async def create_table(
    schema: TableSchema,
    connector: Connector,
    owner: str | None = None,
    request_id: str | None = None,
) -> int:
    """Create the table described by schema.

    Returns:
        Connector.execute result: 0 on success for DDL, -1 on failure
    """
    return await connector.execute(create_table_sql(connector, schema, owner), request_id)


async def create_tables(
    schemas: Sequence[TableSchema],
    connector: Connector,
    owner: str | None = None,
    max_concurrency: int | None = None,
    request_id: str | None = None,
) -> list[int]:
    """Create many tables with bounded concurrency.

    Results are returned in input order. Defaults to max(cpu count, 4)
    statements in flight.
    """
    limit = max_concurrency or max(os.cpu_count() or 1, 4)
    semaphore = asyncio.Semaphore(limit)

    async def _create(schema: TableSchema) -> int:
        async with semaphore:
            return await create_table(schema, connector, owner, request_id)

    results = await asyncio.gather(*(_create(schema) for schema in schemas))
    failed = [schema.table_name for schema, result in zip(schemas, results) if result < 0]
    if failed:
        logger.warning(
            "Failed to create %d of %d table(s): %s",
            len(failed),
            len(schemas),
            ", ".join(failed),
            extra={"db_id": connector.db_id, "request_id": request_id},
        )
    return list(results)
