"""Configuration models for a sqlquest Connector."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator

from sqlquest.models.enums import BackendKind, parse_backend


class ConnectionParams(BaseModel):
    """Backend-native connection parameter bundle.

    Either `dsn` or the discrete fields may be given. `database` is the
    database name for server backends and the file path for SQLite.
    """

    model_config = {"extra": "forbid"}

    dsn: str | None = None
    host: str | None = None
    port: int | None = Field(default=None, ge=1, le=65535)
    user: str | None = None
    password: SecretStr | None = None
    password_env: str | None = None
    database: str | None = None
    driver: str | None = None
    options: dict[str, str] = Field(default_factory=dict)

    @field_validator("options", mode="before")
    @classmethod
    def _stringify_options(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(k): str(v) for k, v in value.items()}
        return value


class ConnectorConfig(BaseModel):
    """Connector configuration.

    `connection` is consumed by `Connector.open()` and dropped afterwards so
    credentials are not retained for the life of the process.
    """

    backend: BackendKind
    connection: ConnectionParams | None = None
    lower_case_names: bool = False
    no_brackets: bool = False
    table_name_prefix: str = ""
    user_count_timer: int | None = Field(default=None, ge=0)
    pool_size: int = Field(default=5, ge=1)
    max_overflow: int = Field(default=0, ge=0)
    echo: bool = False

    @field_validator("backend", mode="before")
    @classmethod
    def _normalize_backend(cls, value: Any) -> Any:
        return parse_backend(value)

    @model_validator(mode="after")
    def _validate_connection(self) -> ConnectorConfig:
        params = self.connection
        if params is None or params.dsn:
            return self
        match self.backend:
            case BackendKind.SQLITE:
                if not params.database:
                    raise ValueError(
                        "connection.database (file path or ':memory:') is required "
                        "when backend=sqlite"
                    )
            case _:
                if not params.host:
                    raise ValueError(
                        f"connection.host or connection.dsn is required when backend={self.backend}"
                    )
        return self
