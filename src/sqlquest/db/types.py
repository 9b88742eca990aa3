"""Internal type tag to native column type tables.

Tables are read-only mappings indexed by BackendKind. The reverse lookup is
approximate: several native names collapse onto one internal tag.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from sqlquest.models.enums import BackendKind, InternalType

_T = InternalType

NATIVE_TYPES: Mapping[BackendKind, Mapping[InternalType, str]] = MappingProxyType(
    {
        BackendKind.POSTGRESQL: MappingProxyType(
            {
                _T.BOOLEAN: "boolean",
                # PostgreSQL has no one-byte integer type
                _T.INT8: "smallint",
                _T.INT16: "smallint",
                _T.INT32: "int",
                _T.INT64: "bigint",
                _T.FLOAT32: "real",
                _T.FLOAT64: "float",
                _T.DECIMAL: "decimal",
                _T.VARCHAR: "varchar",
                _T.TEXT: "text",
            }
        ),
        BackendKind.MSSQL: MappingProxyType(
            {
                _T.BOOLEAN: "bit",
                _T.INT8: "tinyint",
                _T.INT16: "smallint",
                _T.INT32: "int",
                _T.INT64: "bigint",
                _T.FLOAT32: "real",
                _T.FLOAT64: "float",
                _T.DECIMAL: "decimal",
                _T.VARCHAR: "nvarchar",
                _T.TEXT: "ntext",
            }
        ),
        BackendKind.MYSQL: MappingProxyType(
            {
                _T.BOOLEAN: "bit",
                _T.INT8: "tinyint",
                _T.INT16: "smallint",
                _T.INT32: "int",
                _T.INT64: "bigint",
                _T.FLOAT32: "float",
                _T.FLOAT64: "double",
                _T.DECIMAL: "decimal",
                _T.VARCHAR: "varchar",
                _T.TEXT: "mediumtext",
            }
        ),
        BackendKind.SQLITE: MappingProxyType(
            {
                _T.BOOLEAN: "boolean",
                _T.INT8: "integer",
                _T.INT16: "integer",
                _T.INT32: "integer",
                _T.INT64: "integer",
                _T.FLOAT32: "float",
                _T.FLOAT64: "double",
                _T.DECIMAL: "decimal",
                _T.VARCHAR: "varchar",
                _T.TEXT: "text",
            }
        ),
    }
)

# Column type used for varchar columns that declare no max length.
UNBOUNDED_VARCHAR: Mapping[BackendKind, str] = MappingProxyType(
    {
        BackendKind.POSTGRESQL: "varchar",
        BackendKind.MSSQL: "nvarchar(max)",
        BackendKind.MYSQL: "mediumtext",
        BackendKind.SQLITE: "varchar",
    }
)

_COMMON_REVERSE: dict[str, InternalType] = {
    "boolean": _T.BOOLEAN,
    "bool": _T.BOOLEAN,
    "bit": _T.BOOLEAN,
    "tinyint": _T.INT8,
    "smallint": _T.INT16,
    "int": _T.INT32,
    "integer": _T.INT32,
    "bigint": _T.INT64,
    "real": _T.FLOAT32,
    "float": _T.FLOAT64,
    "double": _T.FLOAT64,
    "decimal": _T.DECIMAL,
    "numeric": _T.DECIMAL,
    "varchar": _T.VARCHAR,
    "text": _T.TEXT,
}

_REVERSE_TYPES: Mapping[BackendKind, Mapping[str, InternalType]] = MappingProxyType(
    {
        BackendKind.POSTGRESQL: MappingProxyType(
            {
                **_COMMON_REVERSE,
                "int2": _T.INT16,
                "int4": _T.INT32,
                "int8": _T.INT64,
                "float4": _T.FLOAT32,
                "float8": _T.FLOAT64,
                "double precision": _T.FLOAT64,
                "character varying": _T.VARCHAR,
                "bpchar": _T.TEXT,
                "character": _T.TEXT,
            }
        ),
        BackendKind.MSSQL: MappingProxyType(
            {
                **_COMMON_REVERSE,
                "nvarchar": _T.VARCHAR,
                "ntext": _T.TEXT,
            }
        ),
        BackendKind.MYSQL: MappingProxyType(
            {
                **_COMMON_REVERSE,
                "float": _T.FLOAT32,
                "mediumtext": _T.TEXT,
                "longtext": _T.TEXT,
            }
        ),
        BackendKind.SQLITE: MappingProxyType(
            {
                **_COMMON_REVERSE,
                # SQLite reports declared types; "integer" is the rowid alias type
                "integer": _T.INT64,
                "float": _T.FLOAT32,
            }
        ),
    }
)


def native_type(backend: BackendKind, internal_type: InternalType | str) -> str:
    """Return the native column type for an internal type tag.

    Raises:
        ValueError: If internal_type is not a known tag
    """
    return NATIVE_TYPES[backend][InternalType(internal_type)]


def lookup_internal_type(backend: BackendKind, native_name: str) -> InternalType | str:
    """Map a reflected native column type back to an internal type tag.

    Unknown names are returned unchanged (lower-cased) so callers can surface
    them instead of silently dropping the column.
    """
    key = native_name.strip().lower()
    return _REVERSE_TYPES[backend].get(key, key)
