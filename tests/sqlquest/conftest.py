"""Shared pytest fixtures for sqlquest tests.

Connector tests run against mock drivers by default. A real SQLite database
(file-backed, per test) is always available; PostgreSQL, SQL Server and MySQL
fixtures are skipped unless a DSN is provided through the environment.
"""

from __future__ import annotations

import os
import sys
from collections.abc import AsyncGenerator
from pathlib import Path

# Add src to sys.path for imports
src_path = Path(__file__).parent.parent.parent / "src"
if str(src_path.resolve()) not in sys.path:
    sys.path.insert(0, str(src_path.resolve()))

import pytest

from sqlquest.connector import Connector
from sqlquest.models.config import ConnectionParams, ConnectorConfig
from sqlquest.models.enums import BackendKind
from sqlquest.models.schema import TableSchema
from sqlquest.permissions import PermissionContext
from tests.sqlquest.mocks import MockBackendDriver, MockPermissionChecker, make_config

# =============================================================================
# Server Backend Configuration
# =============================================================================

_SERVER_DSN_ENV = {
    BackendKind.POSTGRESQL: "TEST_PG_DSN",
    BackendKind.MSSQL: "TEST_MSSQL_DSN",
    BackendKind.MYSQL: "TEST_MYSQL_DSN",
}


def _get_server_dsn(backend: BackendKind) -> str | None:
    """Get a server DSN from environment, or None if unavailable."""
    return os.environ.get(_SERVER_DSN_ENV[backend]) or None


# =============================================================================
# Connector Fixtures
# =============================================================================


@pytest.fixture
def mock_driver() -> MockBackendDriver:
    """Return a MockBackendDriver reporting the SQLite backend."""
    return MockBackendDriver(BackendKind.SQLITE)


@pytest.fixture
async def mock_connector(mock_driver: MockBackendDriver) -> AsyncGenerator[Connector, None]:
    """Open a Connector backed by the mock driver."""
    connector = Connector(make_config(BackendKind.SQLITE), driver=mock_driver)
    opened = await connector.open()
    assert opened, "mock connector should open"
    yield connector
    await connector.close()


@pytest.fixture
async def sqlite_connector(tmp_path: Path) -> AsyncGenerator[Connector, None]:
    """Open a Connector on a fresh SQLite file."""
    config = ConnectorConfig(
        backend=BackendKind.SQLITE,
        connection=ConnectionParams(database=str(tmp_path / "quest.db")),
    )
    connector = Connector(config)
    opened = await connector.open()
    assert opened, "sqlite connector should open"
    yield connector
    await connector.close()


@pytest.fixture(params=[BackendKind.POSTGRESQL, BackendKind.MSSQL, BackendKind.MYSQL])
def server_backend(request: pytest.FixtureRequest) -> BackendKind:
    """Parametrize tests over the server backends that have a DSN configured."""
    backend: BackendKind = request.param
    if _get_server_dsn(backend) is None:
        pytest.skip(f"{_SERVER_DSN_ENV[backend]} not set, skipping {backend} tests")
    return backend


@pytest.fixture
async def server_connector(server_backend: BackendKind) -> AsyncGenerator[Connector, None]:
    """Open a Connector against a live server backend."""
    config = ConnectorConfig(
        backend=server_backend,
        connection=ConnectionParams(dsn=_get_server_dsn(server_backend)),
    )
    connector = Connector(config)
    opened = await connector.open()
    assert opened, f"{server_backend} connector should open"
    yield connector
    await connector.close()


# =============================================================================
# Schema / Permission Fixtures
# =============================================================================


@pytest.fixture
def drinks_schema() -> TableSchema:
    """Return a small single-key schema in its JSON document form."""
    return TableSchema.model_validate(
        {
            "sqlTableName": "drinks",
            "sqlPrimaryKey": ["drinkId"],
            "properties": {
                "drinkId": {"sqlColumnName": "drinkid", "sqlDataType": "varchar", "maxLength": 10},
                "price": {"sqlColumnName": "price", "sqlDataType": "decimal", "decimals": 2},
            },
        }
    )


@pytest.fixture
def order_lines_schema() -> TableSchema:
    """Return a composite-key detail schema with a permission object type."""
    return TableSchema.model_validate(
        {
            "sqlTableName": "orderlines",
            "sqlPrimaryKey": ["orderId", "lineNo"],
            "metaObjectType": "order",
            "properties": {
                "orderId": {"sqlColumnName": "orderid", "sqlDataType": "varchar", "maxLength": 20},
                "lineNo": {"sqlColumnName": "lineno", "sqlDataType": "int32"},
                "item": {"sqlColumnName": "item", "sqlDataType": "text"},
                "qty": {"sqlColumnName": "qty", "sqlDataType": "float64"},
                "note": {"sqlColumnName": "note"},
            },
        }
    )


@pytest.fixture
def allow_all() -> PermissionContext:
    """Return a permission context whose checker grants every write."""
    return PermissionContext(checker=MockPermissionChecker(), user_id="alice")


@pytest.fixture
def deny_all() -> PermissionContext:
    """Return a permission context whose checker denies every write."""
    return PermissionContext(checker=MockPermissionChecker(allow_write=False), user_id="mallory")
