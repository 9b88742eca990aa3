"""Integration tests against live PostgreSQL / SQL Server / MySQL.

Skipped unless TEST_PG_DSN, TEST_MSSQL_DSN or TEST_MYSQL_DSN is set.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator

import pytest

from sqlquest.connector import Connector
from sqlquest.crud import create_table, record_update, records_insert, table_get, table_put
from sqlquest.models.schema import TableSchema


@pytest.fixture
async def scratch_schema(server_connector: Connector) -> AsyncGenerator[TableSchema, None]:
    """Create a uniquely named table and drop it afterwards."""
    name = f"sq_{uuid.uuid4().hex[:10]}"
    schema = TableSchema.model_validate(
        {
            "sqlTableName": name,
            "sqlPrimaryKey": ["orderId", "lineNo"],
            "properties": {
                "orderId": {"sqlColumnName": "orderid", "sqlDataType": "varchar", "maxLength": 20},
                "lineNo": {"sqlColumnName": "lineno", "sqlDataType": "int32"},
                "item": {"sqlColumnName": "item", "sqlDataType": "varchar", "maxLength": 100},
                "price": {"sqlColumnName": "price", "sqlDataType": "decimal", "decimals": 2},
            },
        }
    )
    assert await create_table(schema, server_connector) == 0
    yield schema
    await server_connector.execute(f"DROP TABLE {name}")


async def test_literals_round_trip(server_connector: Connector) -> None:
    """Escaped strings read back unchanged on every server backend."""
    # Given: Strings that exercise each escape profile
    samples = ["O'Brien", "back\\slash", "tab\there", ":bind_like", "café"]

    for text in samples:
        # When: Selecting the encoded literal
        rows = await server_connector.query(f"SELECT {server_connector.sql_string(text)} AS v")

        # Then: The value is unchanged
        assert [row["v"] for row in rows] == [text]


async def test_crud_cycle(server_connector: Connector, scratch_schema: TableSchema) -> None:
    """Insert, update, read and replace rows through the generators."""
    # Given: Two lines for one order
    error, inserted = await records_insert(
        [
            {"orderId": "O1", "lineNo": 1, "item": "tea", "price": 2.5},
            {"orderId": "O1", "lineNo": 2, "item": "it's cake", "price": 4},
        ],
        scratch_schema,
        server_connector,
    )
    assert error is None
    assert inserted == 2

    # When: Updating one line and reading the set
    error, updated = await record_update(
        {"orderId": "O1", "lineNo": 2, "price": 4.75}, scratch_schema, "O1", server_connector
    )
    assert error is None
    assert updated == 1
    rows = await table_get(["O1"], scratch_schema, server_connector)

    # Then: Rows come back in key order with the update applied
    assert [row["lineNo"] for row in rows] == [1, 2]
    assert [row["item"] for row in rows] == ["tea", "it's cake"]
    assert float(rows[1]["price"]) == 4.75

    # And: table_put replaces the set atomically inside a transaction
    async with server_connector.transaction() as handle:
        error, count = await table_put(
            [{"orderId": "O1", "lineNo": 1, "item": "coffee", "price": 3}],
            ["O1"],
            scratch_schema,
            server_connector,
            transaction=handle,
        )
    assert error is None
    assert count == 1
    assert [row["item"] for row in await table_get(["O1"], scratch_schema, server_connector)] == ["coffee"]


async def test_stream_and_transactions_release_connections(
    server_connector: Connector, scratch_schema: TableSchema
) -> None:
    """Streams and transactions give their pooled connections back."""
    # Given: A handful of rows
    await records_insert(
        [{"orderId": "O9", "lineNo": i, "item": f"x{i}", "price": i} for i in range(1, 6)],
        scratch_schema,
        server_connector,
    )

    # When: Streaming them and running a rolled back transaction
    stream = await server_connector.stream_query(
        f"SELECT lineno FROM {scratch_schema.table_name} ORDER BY lineno"
    )
    assert stream is not None
    async with stream:
        values = [record["lineno"] async for record in stream]
    handle = await server_connector.trans_begin()
    assert handle is not None
    await server_connector.trans_rollback(handle)

    # Then: Every row arrived and nothing is still checked out
    assert values == [1, 2, 3, 4, 5]
    assert server_connector.checked_out_connections == 0
