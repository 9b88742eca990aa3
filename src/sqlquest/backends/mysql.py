"""MySQL / MariaDB driver (aiomysql through SQLAlchemy)."""

from __future__ import annotations

from sqlquest.backends.base import EngineBackend
from sqlquest.models.enums import BackendKind


class MysqlBackend(EngineBackend):
    kind = BackendKind.MYSQL

    def prepare_query(self, query: dict[str, str]) -> dict[str, str]:
        query.setdefault("charset", "utf8mb4")
        return query
