"""PostgreSQL driver (asyncpg through SQLAlchemy)."""

from __future__ import annotations

from typing import Any

from sqlquest.backends.base import EngineBackend
from sqlquest.models.enums import BackendKind


class PostgresBackend(EngineBackend):
    kind = BackendKind.POSTGRESQL

    def engine_options(self) -> dict[str, Any]:
        return {"connect_args": {"server_settings": {"application_name": "sqlquest"}}}
