"""Configuration loading."""

from sqlquest.config.loader import (
    ConfigError,
    ConfigErrorCode,
    format_validation_error,
    load_config,
    load_config_from_dict,
    normalize_legacy_keys,
    resolve_env_var,
)

__all__ = [
    "ConfigError",
    "ConfigErrorCode",
    "format_validation_error",
    "load_config",
    "load_config_from_dict",
    "normalize_legacy_keys",
    "resolve_env_var",
]
