"""Connector: one logical database target behind a single async contract."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from typing import Any

from sqlquest.backends import create_backend
from sqlquest.db.dialect import DialectHelper
from sqlquest.db.sanitize import (
    sanitize,
    sql_boolean,
    sql_double,
    sql_fixed,
    sql_integer,
    sql_string,
)
from sqlquest.db.types import NATIVE_TYPES, UNBOUNDED_VARCHAR, lookup_internal_type
from sqlquest.errors import (
    BackendUnsupportedError,
    ConfigMissingError,
    ConnectError,
    ExecuteError,
    QueryError,
    SqlQuestError,
    StreamSetupError,
    TransactionActError,
    TransactionBeginError,
    TransactionCommitError,
    TransactionRollbackError,
)
from sqlquest.interfaces import BackendDriver
from sqlquest.models.config import ConnectorConfig
from sqlquest.models.enums import BackendKind, ConnectorState, InternalType, TransactionState
from sqlquest.streaming import PREFETCH_WINDOW, RecordStream
from sqlquest.transactions import TransactionHandle

logger = logging.getLogger(__name__)

_SQL_LOG_LIMIT = 500


def _clip_sql(sql: str) -> str:
    if len(sql) <= _SQL_LOG_LIMIT:
        return sql
    return sql[:_SQL_LOG_LIMIT] + "..."


class Connector:
    """Backend-agnostic SQL access for one database target.

    Lifecycle errors are logged and reported as booleans; statement errors
    are logged with backend identity and request id and reported as sentinel
    results (`[]`, `-1`, `None`, `False`). Nothing raises past these methods.

    The connection parameters in `config` are consumed by the first
    successful `open()`; the connector keeps only a copy without them.
    """

    def __init__(self, config: ConnectorConfig, *, driver: BackendDriver | None = None) -> None:
        if driver is not None and driver.backend is not config.backend:
            raise ValueError(
                f"Driver backend {driver.backend} does not match configured backend {config.backend}"
            )
        self._config = config
        self._backend = config.backend
        self._dialect = DialectHelper(config.backend)
        self._driver = driver
        self._state = ConnectorState.CLOSED
        self._db_id = self._dialect.describe_target(config.connection)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def backend(self) -> BackendKind:
        return self._backend

    @property
    def dialect(self) -> DialectHelper:
        return self._dialect

    @property
    def config(self) -> ConnectorConfig:
        return self._config

    @property
    def state(self) -> ConnectorState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is ConnectorState.OPEN

    @property
    def db_id(self) -> str:
        """Credential-free identity of the target, used in logs."""
        return self._db_id

    @property
    def checked_out_connections(self) -> int:
        """Connections held by open transactions or streams."""
        if self._driver is None:
            return 0
        return self._driver.checked_out

    @property
    def native_types(self) -> Mapping[InternalType, str]:
        return NATIVE_TYPES[self._backend]

    @property
    def unbounded_varchar_type(self) -> str:
        return UNBOUNDED_VARCHAR[self._backend]

    def internal_type_for(self, native_name: str) -> InternalType | str:
        return lookup_internal_type(self._backend, native_name)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def open(self) -> bool:
        """Open the backend handle.

        Returns:
            True if the connector is open, False otherwise
        """
        if self._state is ConnectorState.OPEN:
            logger.warning("Connector already open: %s", self._db_id, extra=self._log_extra("open"))
            return True

        params = self._config.connection
        if params is None:
            self._log_error(ConfigMissingError(self._db_id))
            return False

        driver = self._driver
        if driver is None:
            try:
                driver = create_backend(self._backend)
            except BackendUnsupportedError as e:
                self._log_error(e)
                return False

        try:
            await driver.open(params, self._config)
        except Exception as e:
            self._log_error(ConnectError(self._db_id, e))
            return False

        self._driver = driver
        self._config = self._config.model_copy(update={"connection": None})
        self._state = ConnectorState.OPEN
        logger.info("Connector opened: %s", self._db_id, extra=self._log_extra("open"))
        return True

    async def close(self) -> None:
        """Release the backend handle. Never raises."""
        if self._state is ConnectorState.CLOSED:
            return
        self._state = ConnectorState.CLOSED
        if self._driver is None:
            return
        try:
            await self._driver.close()
        except Exception as e:
            logger.error(
                "Failed to close %s: %s",
                self._db_id,
                e,
                exc_info=True,
                extra=self._log_extra("close"),
            )
            return
        logger.info("Connector closed: %s", self._db_id, extra=self._log_extra("close"))

    # -------------------------------------------------------------------------
    # Ambient statements
    # -------------------------------------------------------------------------

    async def query(self, sql: str, request_id: str | None = None) -> list[dict[str, Any]]:
        """Run a row-returning statement.

        Graceful degradation: returns [] when closed or on error.
        """
        driver = self._ready_driver("query", request_id)
        if driver is None:
            return []
        try:
            return await driver.query(sql)
        except Exception as e:
            self._log_error(QueryError(self._db_id, request_id, e), sql)
            return []

    async def execute(self, sql: str, request_id: str | None = None) -> int:
        """Run a statement and return the affected row count, or -1 on failure.

        Statements whose row count the driver cannot report (DDL) return 0.
        """
        driver = self._ready_driver("execute", request_id)
        if driver is None:
            return -1
        try:
            rowcount = await driver.execute(sql)
        except Exception as e:
            self._log_error(ExecuteError(self._db_id, request_id, e), sql)
            return -1
        return max(rowcount, 0)

    async def stream_query(
        self,
        sql: str,
        object_mode: bool = True,
        request_id: str | None = None,
    ) -> RecordStream | None:
        """Open a bounded lazy stream over a query result.

        Returns None (after logging a StreamSetupError) if no cursor could be
        opened.
        """
        driver = self._ready_driver("stream_query", request_id)
        if driver is None:
            self._log_error(StreamSetupError(self._db_id, request_id, None), sql)
            return None
        try:
            source = await driver.open_stream(sql, PREFETCH_WINDOW)
        except Exception as e:
            self._log_error(StreamSetupError(self._db_id, request_id, e), sql)
            return None
        return RecordStream(
            source,
            object_mode=object_mode,
            window=PREFETCH_WINDOW,
            db_id=self._db_id,
            request_id=request_id,
        )

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def trans_begin(self, request_id: str | None = None) -> TransactionHandle | None:
        """Check out an exclusive connection and begin a transaction on it.

        Exactly one of trans_commit / trans_rollback must follow a successful
        begin, otherwise the connection stays checked out.
        """
        driver = self._ready_driver("trans_begin", request_id)
        if driver is None:
            self._log_error(TransactionBeginError(self._db_id, request_id, None))
            return None
        try:
            native = await driver.begin()
        except Exception as e:
            self._log_error(TransactionBeginError(self._db_id, request_id, e))
            return None
        handle = TransactionHandle(
            backend=self._backend,
            owner_id=id(self),
            native=native,
            request_id=request_id,
            state=TransactionState.ACTIVE,
        )
        logger.debug(
            "Transaction %d begun on %s",
            handle.handle_id,
            self._db_id,
            extra=self._log_extra("trans_begin", request_id),
        )
        return handle

    async def trans_act(
        self,
        handle: TransactionHandle,
        sql: str,
        request_id: str | None = None,
    ) -> TransactionActError | None:
        """Run one statement inside the transaction.

        Returns None on success or the error. The handle stays active after a
        failure; the caller still owns the rollback.
        """
        error, _ = await self._act(handle, sql, request_id)
        return error

    async def trans_execute(
        self,
        handle: TransactionHandle,
        sql: str,
        request_id: str | None = None,
    ) -> int:
        """Like trans_act, but report the affected row count (-1 on failure)."""
        error, rowcount = await self._act(handle, sql, request_id)
        if error is not None:
            return -1
        return max(rowcount, 0)

    async def _act(
        self, handle: TransactionHandle, sql: str, request_id: str | None
    ) -> tuple[TransactionActError | None, int]:
        request_id = request_id or handle.request_id
        reason = self._handle_problem(handle)
        if reason is None and not self.is_open:
            reason = "connector is closed"
        if reason is not None:
            error = TransactionActError(self._db_id, request_id, None, reason)
            self._log_error(error, sql)
            return error, -1
        try:
            rowcount = await self._require_driver().act(handle.native, sql)
        except Exception as e:
            error = TransactionActError(self._db_id, request_id, e)
            self._log_error(error, sql)
            return error, -1
        handle.statements += 1
        return None, rowcount

    async def trans_commit(self, handle: TransactionHandle, request_id: str | None = None) -> bool:
        """Commit and release the handle's connection, whatever the outcome."""
        request_id = request_id or handle.request_id
        reason = self._handle_problem(handle)
        if reason is not None:
            self._log_rejected_handle(TransactionCommitError(self._db_id, request_id, None), reason)
            return False

        driver = self._require_driver()
        committed = False
        try:
            await driver.commit(handle.native)
            committed = True
        except Exception as e:
            self._log_error(TransactionCommitError(self._db_id, request_id, e))
        finally:
            handle.state = TransactionState.COMMITTED if committed else TransactionState.ROLLED_BACK
            await self._release(driver, handle, request_id)
        return committed

    async def trans_rollback(
        self, handle: TransactionHandle, request_id: str | None = None
    ) -> bool:
        """Roll back and release the handle's connection, whatever the outcome."""
        request_id = request_id or handle.request_id
        reason = self._handle_problem(handle)
        if reason is not None:
            self._log_rejected_handle(
                TransactionRollbackError(self._db_id, request_id, None), reason
            )
            return False

        driver = self._require_driver()
        rolled_back = False
        try:
            await driver.rollback(handle.native)
            rolled_back = True
        except Exception as e:
            self._log_error(TransactionRollbackError(self._db_id, request_id, e))
        finally:
            # Releasing the connection discards the transaction either way
            handle.state = TransactionState.ROLLED_BACK
            await self._release(driver, handle, request_id)
        return rolled_back

    @asynccontextmanager
    async def transaction(self, request_id: str | None = None) -> AsyncIterator[TransactionHandle]:
        """Begin a transaction; commit on normal exit, roll back on exception.

        Raises:
            TransactionBeginError: If no transaction could be started
            TransactionCommitError: If the final commit failed
        """
        handle = await self.trans_begin(request_id)
        if handle is None:
            raise TransactionBeginError(self._db_id, request_id, None)
        try:
            yield handle
        except BaseException:
            if handle.is_active:
                await self.trans_rollback(handle, request_id)
            raise
        if handle.is_active and not await self.trans_commit(handle, request_id):
            raise TransactionCommitError(self._db_id, request_id, None)

    def _handle_problem(self, handle: TransactionHandle) -> str | None:
        if handle.owner_id != id(self):
            return "handle belongs to another connector"
        if handle.backend is not self._backend:
            return f"handle was created for {handle.backend}"
        if not handle.is_active:
            return f"handle is {handle.state}"
        if self._driver is None:
            return "connector has no backend handle"
        return None

    async def _release(
        self, driver: BackendDriver, handle: TransactionHandle, request_id: str | None
    ) -> None:
        native, handle.native = handle.native, None
        try:
            await driver.release(native)
        except Exception as e:
            logger.error(
                "Failed to release transaction %d connection: %s",
                handle.handle_id,
                e,
                exc_info=True,
                extra=self._log_extra("trans_release", request_id),
            )

    def _log_rejected_handle(self, error: SqlQuestError, reason: str) -> None:
        logger.error(
            "%s: %s",
            error,
            reason,
            extra=self._log_extra(error.operation, error.request_id),
        )

    # -------------------------------------------------------------------------
    # Literal encoding and identifiers
    # -------------------------------------------------------------------------

    def sql_string(self, value: Any, null_if_blank: bool = False) -> str:
        return sql_string(value, self._backend, null_if_blank)

    def sql_double(self, value: Any) -> str:
        return sql_double(value)

    def sql_fixed(self, value: Any, decimals: int) -> str:
        return sql_fixed(value, decimals)

    def sql_integer(self, value: Any) -> str:
        return sql_integer(value)

    def sql_boolean(self, value: Any) -> str:
        return sql_boolean(value, self._backend)

    def sanitize(
        self,
        value: Any,
        internal_type: InternalType | str | None,
        decimals: int | None = None,
    ) -> str:
        return sanitize(value, internal_type, self._backend, decimals)

    def enclose(self, name: Any) -> Any:
        """Wrap an identifier in the backend's enclosure characters.

        Returned unchanged when `no_brackets` is configured or name is not a
        string.
        """
        if self._config.no_brackets or not isinstance(name, str):
            return name
        return self._dialect.enclose(name)

    def column_ref(self, name: str) -> str:
        """Identifier for a column, lower-cased if configured, then enclosed."""
        if self._config.lower_case_names:
            name = name.lower()
        return self.enclose(name)

    def table_ref(self, name: str, owner: str | None = None) -> str:
        """Table name with owner (or configured prefix) prepended verbatim."""
        prefix = self._config.table_name_prefix if owner is None else owner
        if self._config.lower_case_names:
            name = name.lower()
        return f"{prefix}{name}"

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _require_driver(self) -> BackendDriver:
        if self._driver is None:
            raise RuntimeError(f"Connector {self._db_id} has no backend driver")
        return self._driver

    def _ready_driver(self, operation: str, request_id: str | None) -> BackendDriver | None:
        if self._state is ConnectorState.OPEN and self._driver is not None:
            return self._driver
        logger.warning(
            "Connector not open, skipping %s on %s",
            operation,
            self._db_id,
            extra=self._log_extra(operation, request_id),
        )
        return None

    def _log_extra(self, operation: str, request_id: str | None = None) -> dict[str, Any]:
        return {
            "request_id": request_id,
            "backend": str(self._backend),
            "db_id": self._db_id,
            "operation": operation,
        }

    def _log_error(self, error: SqlQuestError, sql: str | None = None) -> None:
        extra = self._log_extra(error.operation, error.request_id)
        if error.cause is not None:
            extra["retryable"] = self._dialect.is_retryable_error(error.cause)
        if sql is not None:
            extra["sql"] = _clip_sql(sql)
        if error.cause is None:
            logger.error("%s", error, extra=extra)
            return
        logger.error("%s: %s", error, error.cause, exc_info=error.cause, extra=extra)
