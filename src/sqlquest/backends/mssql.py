"""SQL Server driver (aioodbc through SQLAlchemy).

Requires an ODBC driver for SQL Server on the host; the driver name comes from
`connection.driver` or defaults to "ODBC Driver 18 for SQL Server".
"""

from __future__ import annotations

from typing import Any

from sqlquest.backends.base import EngineBackend
from sqlquest.models.enums import BackendKind


class MssqlBackend(EngineBackend):
    kind = BackendKind.MSSQL

    def engine_options(self) -> dict[str, Any]:
        # The server aborts the transaction itself on some errors (deadlock victim)
        return {"ignore_no_transaction_on_rollback": True}
