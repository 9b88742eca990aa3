"""Error hierarchy for sqlquest connector and CRUD operations."""

from __future__ import annotations

from enum import IntEnum


class SqlErrorCode(IntEnum):
    """Negative result codes returned alongside CRUD errors."""

    NO_PERMISSION = -1
    INSERT_FAILED = -2
    UPDATE_FAILED = -3
    DELETE_FAILED = -4
    ARRAY_EXPECTED = -5
    KEY_PARAMETER_MISSING = -6
    UNKNOWN = -99


class SqlQuestError(Exception):
    """Base exception for all sqlquest errors.

    Compatible with error-as-value pattern: instances can be returned as values
    instead of raised. Preserves stack traces via exception chaining.
    """

    code: SqlErrorCode = SqlErrorCode.UNKNOWN

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        request_id: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.request_id = request_id
        self.cause = cause
        self.__cause__ = cause  # Python's exception chaining


class ConfigMissingError(SqlQuestError):
    """Connection parameters were never supplied or were already consumed."""

    def __init__(self, db_id: str) -> None:
        super().__init__(
            f"Connection parameters missing for {db_id}", operation="open"
        )
        self.db_id = db_id


class BackendUnsupportedError(SqlQuestError):
    """Configured backend has no driver."""

    def __init__(self, backend: str) -> None:
        super().__init__(f"Unsupported backend: {backend}", operation="open")
        self.backend = backend


class ConnectError(SqlQuestError):
    """Opening the backend handle failed."""

    def __init__(self, db_id: str, cause: Exception) -> None:
        super().__init__(f"Connect failed for {db_id}", operation="open", cause=cause)
        self.db_id = db_id


class QueryError(SqlQuestError):
    """A row-returning statement failed."""

    def __init__(self, db_id: str, request_id: str | None, cause: Exception) -> None:
        super().__init__(
            f"Query failed on {db_id}",
            operation="query",
            request_id=request_id,
            cause=cause,
        )
        self.db_id = db_id


class ExecuteError(SqlQuestError):
    """A non-row-returning statement failed."""

    def __init__(self, db_id: str, request_id: str | None, cause: Exception) -> None:
        super().__init__(
            f"Execute failed on {db_id}",
            operation="execute",
            request_id=request_id,
            cause=cause,
        )
        self.db_id = db_id


class StreamSetupError(SqlQuestError):
    """No backend cursor could be opened for a stream."""

    def __init__(self, db_id: str, request_id: str | None, cause: Exception | None) -> None:
        super().__init__(
            f"Stream setup failed on {db_id}",
            operation="stream_query",
            request_id=request_id,
            cause=cause,
        )
        self.db_id = db_id


class TransactionError(SqlQuestError):
    """Base for transaction state machine failures."""

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        db_id: str,
        request_id: str | None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, operation=operation, request_id=request_id, cause=cause)
        self.db_id = db_id


class TransactionBeginError(TransactionError):
    """Begin failed; no handle was produced."""

    def __init__(self, db_id: str, request_id: str | None, cause: Exception | None) -> None:
        super().__init__(
            f"Transaction begin failed on {db_id}",
            operation="trans_begin",
            db_id=db_id,
            request_id=request_id,
            cause=cause,
        )


class TransactionActError(TransactionError):
    """A statement inside a transaction failed; the handle stays active."""

    def __init__(
        self,
        db_id: str,
        request_id: str | None,
        cause: Exception | None,
        reason: str | None = None,
    ) -> None:
        message = f"Transaction statement failed on {db_id}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message,
            operation="trans_act",
            db_id=db_id,
            request_id=request_id,
            cause=cause,
        )


class TransactionCommitError(TransactionError):
    """Commit failed; the handle has been released."""

    def __init__(self, db_id: str, request_id: str | None, cause: Exception | None) -> None:
        super().__init__(
            f"Transaction commit failed on {db_id}",
            operation="trans_commit",
            db_id=db_id,
            request_id=request_id,
            cause=cause,
        )


class TransactionRollbackError(TransactionError):
    """Rollback failed; the handle has been released."""

    def __init__(self, db_id: str, request_id: str | None, cause: Exception | None) -> None:
        super().__init__(
            f"Transaction rollback failed on {db_id}",
            operation="trans_rollback",
            db_id=db_id,
            request_id=request_id,
            cause=cause,
        )


class CrudError(SqlQuestError):
    """Base for schema-driven generator failures."""

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        table_name: str,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, operation=operation, cause=cause)
        self.table_name = table_name


class PermissionDeniedError(CrudError):
    code = SqlErrorCode.NO_PERMISSION

    def __init__(self, table_name: str, operation: str, user_id: str | None) -> None:
        super().__init__(
            f"Write permission denied on {table_name} for user {user_id}",
            operation=operation,
            table_name=table_name,
        )
        self.user_id = user_id


class KeyParameterMissingError(CrudError):
    code = SqlErrorCode.KEY_PARAMETER_MISSING

    def __init__(self, table_name: str, operation: str, key_column: str | None) -> None:
        super().__init__(
            f"Key value missing for {table_name}.{key_column}",
            operation=operation,
            table_name=table_name,
        )
        self.key_column = key_column


class SchemaMissingPrimaryKeyError(KeyParameterMissingError):
    """Schema declares no primary key columns."""

    def __init__(self, table_name: str, operation: str) -> None:
        super().__init__(table_name, operation, None)
        self.args = (f"Schema for {table_name} has no primary key",)


class ArrayExpectedError(CrudError):
    code = SqlErrorCode.ARRAY_EXPECTED

    def __init__(self, table_name: str, operation: str, got: str) -> None:
        super().__init__(
            f"Expected a sequence of rows for {table_name}, got {got}",
            operation=operation,
            table_name=table_name,
        )


class InsertFailedError(CrudError):
    code = SqlErrorCode.INSERT_FAILED

    def __init__(self, table_name: str, rows_affected: int, row_index: int) -> None:
        super().__init__(
            f"Insert into {table_name} failed at row {row_index}",
            operation="records_insert",
            table_name=table_name,
        )
        self.rows_affected = rows_affected
        self.row_index = row_index


class UpdateFailedError(CrudError):
    code = SqlErrorCode.UPDATE_FAILED

    def __init__(self, table_name: str, reason: str) -> None:
        super().__init__(
            f"Update of {table_name} failed: {reason}",
            operation="record_update",
            table_name=table_name,
        )


class DeleteFailedError(CrudError):
    code = SqlErrorCode.DELETE_FAILED

    def __init__(self, table_name: str) -> None:
        super().__init__(
            f"Delete from {table_name} failed",
            operation="table_put",
            table_name=table_name,
        )


class UnknownSqlError(CrudError):
    """Unexpected exception escaped a generator."""

    def __init__(self, table_name: str, operation: str, cause: Exception) -> None:
        super().__init__(
            f"{operation} on {table_name} failed unexpectedly: {cause}",
            operation=operation,
            table_name=table_name,
            cause=cause,
        )
