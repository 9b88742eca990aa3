"""YAML loading for ConnectorConfig.

Two key styles are accepted. The native one mirrors ConnectorConfig field
names. The legacy one (`dbType`, `config`, `lowerCaseNames`, `noBrackets`,
`sqltableprefix`, `userCountTimer`) is rewritten onto the native names before
validation, and so are the common legacy connection keys (`server`,
`filename`, `connectionString`).
"""

from __future__ import annotations

import logging
import os
import stat
from enum import StrEnum
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from sqlquest.errors import SqlQuestError
from sqlquest.models.config import ConnectorConfig

logger = logging.getLogger(__name__)

# Group/other permission bits that should be clear on secret-bearing files
_GROUP_OTHER_BITS = stat.S_IRWXG | stat.S_IRWXO

_LEGACY_TOP_LEVEL_KEYS = {
    "dbType": "backend",
    "config": "connection",
    "lowerCaseNames": "lower_case_names",
    "noBrackets": "no_brackets",
    "sqltableprefix": "table_name_prefix",
    "userCountTimer": "user_count_timer",
}

_LEGACY_CONNECTION_KEYS = {
    "server": "host",
    "username": "user",
    "filename": "database",
    "connectionString": "dsn",
}


class ConfigErrorCode(StrEnum):
    """Stable codes for configuration failures."""

    FILE_NOT_FOUND = "file_not_found"
    YAML_INVALID = "yaml_invalid"
    EMPTY_FILE = "empty_file"
    NOT_A_MAPPING = "not_a_mapping"
    SECTION_MISSING = "section_missing"
    VALIDATION_FAILED = "validation_failed"
    ENV_VAR_MISSING = "env_var_missing"


class ConfigError(SqlQuestError):
    """A connector configuration could not be loaded."""

    def __init__(
        self,
        message: str,
        *,
        code: ConfigErrorCode,
        path: Path | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, operation="load_config", cause=cause)
        self.code = code
        self.path = path


def load_config(path: Path, section: str | None = None) -> ConnectorConfig:
    """Load a ConnectorConfig from a YAML file.

    Args:
        path: YAML file to read
        section: Top-level key holding the connector settings, for files that
            configure more than the database

    Raises:
        ConfigError: With a ConfigErrorCode describing what went wrong
    """
    document = _load_document(path)
    if section is not None:
        nested = document.get(section)
        if not isinstance(nested, dict):
            raise ConfigError(
                f"{path} has no '{section}' mapping",
                code=ConfigErrorCode.SECTION_MISSING,
                path=path,
            )
        document = nested

    settings = normalize_legacy_keys(document)
    if _has_inline_secret(settings):
        _warn_if_readable_by_others(path)
    return _validate(settings, path)


def load_config_from_dict(data: dict[str, Any]) -> ConnectorConfig:
    """Validate an in-memory settings mapping (either key style).

    Raises:
        ConfigError: If validation fails
    """
    return _validate(normalize_legacy_keys(data), None)


def normalize_legacy_keys(data: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of data with legacy key names mapped onto native ones.

    A native key wins when both spellings are present.
    """
    settings = _rename(data, _LEGACY_TOP_LEVEL_KEYS)
    connection = settings.get("connection")
    if isinstance(connection, dict):
        settings["connection"] = _rename(connection, _LEGACY_CONNECTION_KEYS)
    return settings


def _rename(data: dict[str, Any], renames: dict[str, str]) -> dict[str, Any]:
    renamed: dict[str, Any] = {}
    for key, value in data.items():
        target = renames.get(key, key)
        if target != key and target in data:
            continue
        renamed[target] = value
    return renamed


def _load_document(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigError(
            f"No config file at {path}",
            code=ConfigErrorCode.FILE_NOT_FOUND,
            path=path,
            cause=e,
        ) from e

    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"{path} is not valid YAML: {e}",
            code=ConfigErrorCode.YAML_INVALID,
            path=path,
            cause=e,
        ) from e

    match document:
        case None:
            raise ConfigError(f"{path} is empty", code=ConfigErrorCode.EMPTY_FILE, path=path)
        case dict():
            return document
        case _:
            raise ConfigError(
                f"{path} must hold a mapping, found {type(document).__name__}",
                code=ConfigErrorCode.NOT_A_MAPPING,
                path=path,
            )


def _validate(settings: dict[str, Any], path: Path | None) -> ConnectorConfig:
    try:
        return ConnectorConfig.model_validate(settings)
    except ValidationError as e:
        raise ConfigError(
            format_validation_error(e, path),
            code=ConfigErrorCode.VALIDATION_FAILED,
            path=path,
            cause=e,
        ) from e


def format_validation_error(e: ValidationError, path: Path | None = None) -> str:
    """Render pydantic errors as one `field.path: message` line each."""
    source = f" in {path}" if path else ""
    lines = [f"Invalid connector config{source}:"]
    for err in e.errors():
        field = ".".join(str(part) for part in err["loc"]) or "<root>"
        lines.append(f"  {field}: {err['msg']}")
    return "\n".join(lines)


def resolve_env_var(env_var_name: str, required: bool = True) -> str | None:
    """Read an environment variable named by the config.

    Returns:
        The value, or None when it is unset and not required

    Raises:
        ConfigError: If required and unset
    """
    value = os.environ.get(env_var_name)
    if value is None and required:
        raise ConfigError(
            f"Environment variable {env_var_name} is not set",
            code=ConfigErrorCode.ENV_VAR_MISSING,
        )
    return value


def _has_inline_secret(settings: dict[str, Any]) -> bool:
    """True if the connection block holds a password, directly or in its DSN."""
    connection = settings.get("connection")
    if not isinstance(connection, dict):
        return False
    if connection.get("password"):
        return True
    dsn = connection.get("dsn")
    if not isinstance(dsn, str) or "://" not in dsn:
        return False
    credentials, at, _ = dsn.split("://", 1)[1].partition("@")
    return bool(at) and ":" in credentials


def _warn_if_readable_by_others(path: Path) -> None:
    if os.name != "posix":
        return
    try:
        mode = stat.S_IMODE(path.stat().st_mode)
    except OSError:
        return
    if mode & _GROUP_OTHER_BITS:
        logger.warning(
            "Config file holding a database password is too permissive: path=%s mode=%04o expected=0600",
            path,
            mode,
        )
