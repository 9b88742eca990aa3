"""Backend-aware SQL literal encoding.

Every function here turns an application value into SQL literal text that is
safe to splice into a statement for the given backend. Nothing is validated:
callers are expected to have checked the value's domain already.

Escape profiles per backend:
- postgresql: backslash-escapes quote, backslash and control characters inside
  an `E'...'` string (prefix only added when something was escaped).
- mysql: backslash-escapes quote, backslash, NUL, backspace, tab and 0x1A.
- mssql / sqlite: no backslash escapes exist, so the quote is doubled and NUL
  is spliced in by concatenation.
"""

from __future__ import annotations

import math
from decimal import Decimal
from typing import Any

from sqlquest.models.enums import BackendKind, InternalType

NULL = "NULL"
DEFAULT_DECIMALS = 5
SIGNIFICANT_DIGITS = 5

_CONTROL_CHARS = [chr(code) for code in range(0x20)]

_ESCAPE_TABLES: dict[BackendKind, dict[int, str]] = {
    BackendKind.POSTGRESQL: {
        **{ord(ch): "\\" + ch for ch in _CONTROL_CHARS},
        ord("'"): "\\'",
        ord("\\"): "\\\\",
    },
    BackendKind.MYSQL: {
        ord("'"): "\\'",
        ord("\\"): "\\\\",
        0x00: "\\0",
        0x08: "\\b",
        0x09: "\\t",
        0x1A: "\\Z",
    },
    BackendKind.MSSQL: {
        ord("'"): "''",
        0x00: "'+CHAR(0)+'",
    },
    BackendKind.SQLITE: {
        ord("'"): "''",
        0x00: "'||char(0)||'",
    },
}


def escape_text(text: str, backend: BackendKind) -> str:
    """Escape and single-quote a string for the backend's literal syntax."""
    escaped = text.translate(_ESCAPE_TABLES[backend])
    if backend is BackendKind.POSTGRESQL and escaped != text:
        return f"E'{escaped}'"
    return f"'{escaped}'"


def _finite_number(value: Any) -> int | float | Decimal | None:
    """Return value when it is a finite real number (bool excluded)."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    return None


def _avoid_exponent(rendered: str, number: float | Decimal) -> str:
    if "e" not in rendered.lower():
        return rendered
    if abs(number) < 1:
        return format(number, ".9f")
    return format(number, ".0f")


def sql_string(value: Any, backend: BackendKind, null_if_blank: bool = False) -> str:
    """Render value as a quoted string literal.

    Numbers keep 5 significant digits without exponent notation; booleans
    render as '1' / '0'; unsupported or non-finite values render as NULL.
    """
    if value is None:
        return NULL
    if isinstance(value, str):
        if null_if_blank and value == "":
            return NULL
        return escape_text(value, backend)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return sql_string(bytes(value).decode("utf-8", errors="replace"), backend, null_if_blank)
    if isinstance(value, bool):
        return "'1'" if value else "'0'"
    number = _finite_number(value)
    if number is None:
        return NULL
    if isinstance(number, int):
        return f"'{number}'"
    rendered = format(number, f".{SIGNIFICANT_DIGITS}g")
    return f"'{_avoid_exponent(rendered, number)}'"


def sql_double(value: Any) -> str:
    """Render a floating point literal without exponent notation."""
    number = _finite_number(value)
    if number is None:
        return NULL
    if isinstance(number, int):
        return str(number)
    if isinstance(number, Decimal):
        return format(number, "f")
    return _avoid_exponent(repr(number), number)


def sql_fixed(value: Any, decimals: int) -> str:
    """Render value with exactly `decimals` digits after the point."""
    number = _finite_number(value)
    if number is None:
        return NULL
    places = max(int(decimals), 0)
    if isinstance(number, int):
        number = Decimal(number)
    return format(number, f".{places}f")


def sql_integer(value: Any) -> str:
    number = _finite_number(value)
    if number is None:
        return NULL
    if isinstance(number, int):
        return str(number)
    return format(number, ".0f")


def sql_boolean(value: Any, backend: BackendKind | None = None) -> str:
    """Render truthiness as 1 / 0.

    PostgreSQL boolean columns reject integer literals but accept the
    quoted '1' / '0' forms, so those are used there.
    """
    digit = "1" if value else "0"
    if backend is BackendKind.POSTGRESQL:
        return f"'{digit}'"
    return digit


def sanitize(
    value: Any,
    internal_type: InternalType | str | None,
    backend: BackendKind,
    decimals: int | None = None,
) -> str:
    """Dispatch to the literal encoder for an internal type.

    None values and unknown types render as NULL. Decimal columns use
    `decimals` when it is within 0-9, otherwise 5 places.
    """
    if internal_type is None or value is None:
        return NULL
    try:
        kind = InternalType(internal_type)
    except ValueError:
        return NULL

    match kind:
        case InternalType.BOOLEAN:
            return sql_boolean(value, backend)
        case InternalType.INT8 | InternalType.INT16 | InternalType.INT32 | InternalType.INT64:
            return sql_integer(value)
        case InternalType.FLOAT32 | InternalType.FLOAT64:
            return sql_double(value)
        case InternalType.DECIMAL:
            if decimals is not None and 0 <= decimals <= 9:
                return sql_fixed(value, decimals)
            return sql_fixed(value, DEFAULT_DECIMALS)
        case InternalType.VARCHAR | InternalType.TEXT:
            return sql_string(value, backend)
    return NULL
