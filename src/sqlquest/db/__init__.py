"""Literal encoding, type tables and dialect helpers.

Usage:
    from sqlquest.db import DialectHelper, sanitize

    dialect = DialectHelper.from_dsn("mysql://app@db/inventory")
    literal = sanitize("O'Brien", "varchar", dialect.backend)
"""

from sqlquest.db.dialect import DialectHelper, detect_dialect_from_dsn
from sqlquest.db.engine import create_async_engine_for_url
from sqlquest.db.sanitize import (
    sanitize,
    sql_boolean,
    sql_double,
    sql_fixed,
    sql_integer,
    sql_string,
)
from sqlquest.db.types import NATIVE_TYPES, UNBOUNDED_VARCHAR, lookup_internal_type, native_type

__all__ = [
    "DialectHelper",
    "NATIVE_TYPES",
    "UNBOUNDED_VARCHAR",
    "create_async_engine_for_url",
    "detect_dialect_from_dsn",
    "lookup_internal_type",
    "native_type",
    "sanitize",
    "sql_boolean",
    "sql_double",
    "sql_fixed",
    "sql_integer",
    "sql_string",
]
