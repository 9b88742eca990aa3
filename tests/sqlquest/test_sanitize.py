"""Tests for backend-aware SQL literal encoding."""

from __future__ import annotations

from decimal import Decimal

import pytest

from sqlquest.connector import Connector
from sqlquest.db.sanitize import (
    NULL,
    escape_text,
    sanitize,
    sql_boolean,
    sql_double,
    sql_fixed,
    sql_integer,
    sql_string,
)
from sqlquest.models.enums import BackendKind, InternalType


class TestEscapeText:
    """Tests for per-backend string escaping."""

    def test_postgres_uses_escape_string_only_when_needed(self) -> None:
        """Plain text stays a standard literal; escaped text gets the E prefix."""
        # Given: One plain and one quote-bearing string
        # When: Escaping both for PostgreSQL
        plain = escape_text("plain", BackendKind.POSTGRESQL)
        quoted = escape_text("O'Brien", BackendKind.POSTGRESQL)

        # Then: Only the escaped one is an E'' literal
        assert plain == "'plain'"
        assert quoted == "E'O\\'Brien'"

    def test_postgres_escapes_backslash_and_control_characters(self) -> None:
        """Backslashes and control characters are backslash-escaped."""
        # Given: Text with a backslash and a newline
        # When: Escaping for PostgreSQL
        result = escape_text("a\\b\nc", BackendKind.POSTGRESQL)

        # Then: Each is preceded by a backslash
        assert result == "E'a\\\\b\\\nc'"

    def test_mysql_escape_profile(self) -> None:
        """MySQL escapes quote, backslash, NUL, backspace, tab and 0x1A."""
        # Given: One of each special character
        text = "'\\\x00\x08\t\x1a"

        # When: Escaping for MySQL
        result = escape_text(text, BackendKind.MYSQL)

        # Then: The documented escape sequences are used
        assert result == "'\\'\\\\\\0\\b\\t\\Z'"

    def test_mssql_doubles_quotes_and_splices_nul(self) -> None:
        """SQL Server has no backslash escapes, so quotes double and NUL concatenates."""
        # Given: Text with a quote and an embedded NUL
        # When: Escaping for SQL Server
        result = escape_text("O'B\x00x", BackendKind.MSSQL)

        # Then: Quote doubled, NUL spliced via CHAR(0)
        assert result == "'O''B'+CHAR(0)+'x'"

    def test_sqlite_doubles_quotes_and_splices_nul(self) -> None:
        """SQLite doubles quotes and concatenates char(0) for NUL."""
        # Given: Text with a quote, a backslash and an embedded NUL
        # When: Escaping for SQLite
        result = escape_text("it's\\\x00", BackendKind.SQLITE)

        # Then: Backslash is literal, quote doubled, NUL concatenated
        assert result == "'it''s\\'||char(0)||''"

    def test_escaping_is_single_pass(self) -> None:
        """An escape sequence produced for one character is never re-escaped."""
        # Given: A quote followed by a backslash
        # When: Escaping for MySQL
        result = escape_text("'\\", BackendKind.MYSQL)

        # Then: Exactly one escape per input character
        assert result == "'\\'\\\\'"


class TestSqlString:
    """Tests for sql_string."""

    @pytest.mark.parametrize("backend", list(BackendKind))
    def test_none_renders_null(self, backend: BackendKind) -> None:
        """None is NULL on every backend."""
        assert sql_string(None, backend) == NULL

    def test_blank_is_null_only_when_requested(self) -> None:
        """Empty strings become NULL only with null_if_blank."""
        # Given: An empty string
        # When / Then: Default keeps it, null_if_blank drops it
        assert sql_string("", BackendKind.SQLITE) == "''"
        assert sql_string("", BackendKind.SQLITE, null_if_blank=True) == NULL

    def test_bytes_are_decoded(self) -> None:
        """UTF-8 bytes render as their text."""
        assert sql_string(b"caf\xc3\xa9", BackendKind.MSSQL) == "'café'"

    def test_invalid_utf8_bytes_are_replaced(self) -> None:
        """Undecodable byte sequences become U+FFFD instead of raising."""
        assert sql_string(b"\xff\xfeabc", BackendKind.SQLITE) == "'\ufffd\ufffdabc'"

    def test_booleans_render_as_quoted_digits(self) -> None:
        """Booleans render as '1' and '0'."""
        assert sql_string(True, BackendKind.MYSQL) == "'1'"
        assert sql_string(False, BackendKind.MYSQL) == "'0'"

    def test_integers_render_exactly(self) -> None:
        """Integers keep every digit."""
        assert sql_string(12345678901, BackendKind.POSTGRESQL) == "'12345678901'"

    def test_floats_keep_five_significant_digits(self) -> None:
        """Floats are rounded to five significant digits."""
        assert sql_string(1.23456789, BackendKind.SQLITE) == "'1.2346'"

    def test_small_float_avoids_exponent(self) -> None:
        """Values below 1 that would use an exponent render with 9 decimals."""
        assert sql_string(1e-7, BackendKind.SQLITE) == "'0.000000100'"

    def test_large_float_avoids_exponent(self) -> None:
        """Large values that would use an exponent render as whole numbers."""
        assert sql_string(123456789.0, BackendKind.SQLITE) == "'123456789'"

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), Decimal("NaN"), object()])
    def test_unsupported_values_render_null(self, value: object) -> None:
        """Non-finite numbers and unknown types render as NULL."""
        assert sql_string(value, BackendKind.SQLITE) == NULL


class TestNumericEncoders:
    """Tests for sql_double, sql_fixed, sql_integer and sql_boolean."""

    def test_sql_double_renders_shortest_repr(self) -> None:
        """Doubles use the shortest round-tripping form."""
        assert sql_double(1.5) == "1.5"
        assert sql_double(0.1) == "0.1"

    def test_sql_double_avoids_exponent(self) -> None:
        """Exponent forms are expanded."""
        assert sql_double(1e-7) == "0.000000100"
        assert sql_double(1e20) == "100000000000000000000"

    def test_sql_double_passes_decimals_and_ints(self) -> None:
        """Decimals keep their scale and ints stay integral."""
        assert sql_double(Decimal("1.10")) == "1.10"
        assert sql_double(3) == "3"

    @pytest.mark.parametrize("value", ["1.5", None, True, float("-inf")])
    def test_sql_double_rejects_non_numbers(self, value: object) -> None:
        """Strings, None, booleans and infinities render as NULL."""
        assert sql_double(value) == NULL

    def test_sql_fixed_pads_and_rounds(self) -> None:
        """Fixed-point output has exactly the requested number of places."""
        assert sql_fixed(1.99, 2) == "1.99"
        assert sql_fixed(2, 3) == "2.000"
        assert sql_fixed(Decimal("2.345"), 1) == "2.3"

    def test_sql_fixed_clamps_negative_places(self) -> None:
        """Negative place counts are treated as zero."""
        assert sql_fixed(7.4, -2) == "7"

    def test_sql_integer_rounds_floats(self) -> None:
        """Fractional input is rounded to an integer literal."""
        assert sql_integer(7) == "7"
        assert sql_integer(7.6) == "8"
        assert sql_integer("7") == NULL

    def test_sql_boolean_uses_truthiness(self) -> None:
        """Any truthy value is 1, anything falsy is 0."""
        assert sql_boolean(True) == "1"
        assert sql_boolean("yes") == "1"
        assert sql_boolean(0) == "0"
        assert sql_boolean(None) == "0"

    def test_sql_boolean_is_quoted_for_postgres(self) -> None:
        """PostgreSQL gets quoted digits that its boolean type accepts."""
        assert sql_boolean(True, BackendKind.POSTGRESQL) == "'1'"
        assert sql_boolean(False, BackendKind.POSTGRESQL) == "'0'"


class TestSanitize:
    """Tests for type-tag dispatch."""

    def test_dispatches_by_internal_type(self) -> None:
        """Each internal type routes to its encoder."""
        # Given: One value per type family
        # When / Then: Each renders with the matching encoder
        assert sanitize("D01", InternalType.VARCHAR, BackendKind.SQLITE) == "'D01'"
        assert sanitize("x", "text", BackendKind.SQLITE) == "'x'"
        assert sanitize(5.4, InternalType.INT32, BackendKind.SQLITE) == "5"
        assert sanitize(0.25, InternalType.FLOAT32, BackendKind.SQLITE) == "0.25"
        assert sanitize(True, InternalType.BOOLEAN, BackendKind.MSSQL) == "1"

    def test_decimal_uses_declared_places_within_range(self) -> None:
        """Decimal places 0-9 are honored, anything else falls back to 5."""
        assert sanitize(1.99, InternalType.DECIMAL, BackendKind.SQLITE, 2) == "1.99"
        assert sanitize(1.99, InternalType.DECIMAL, BackendKind.SQLITE, 0) == "2"
        assert sanitize(1.99, InternalType.DECIMAL, BackendKind.SQLITE) == "1.99000"
        assert sanitize(1.99, InternalType.DECIMAL, BackendKind.SQLITE, 12) == "1.99000"

    def test_unknown_type_or_missing_value_is_null(self) -> None:
        """Unknown tags, missing tags and None values all render NULL."""
        assert sanitize("x", "geometry", BackendKind.SQLITE) == NULL
        assert sanitize("x", None, BackendKind.SQLITE) == NULL
        assert sanitize(None, InternalType.VARCHAR, BackendKind.SQLITE) == NULL


class TestLiteralRoundTrip:
    """Literals read back as the original value on a live database."""

    @pytest.mark.parametrize(
        "text",
        [
            "O'Brien",
            "back\\slash",
            "tab\there\nnewline",
            "''quoted''",
            "emoji \U0001f37a",
            ":not_a_bind",
        ],
    )
    async def test_sqlite_string_round_trip(self, sqlite_connector: Connector, text: str) -> None:
        """Selecting an encoded string returns it unchanged."""
        # Given: A string encoded for SQLite
        literal = sqlite_connector.sql_string(text)

        # When: Selecting it back
        rows = await sqlite_connector.query(f"SELECT {literal} AS v")

        # Then: The value is identical
        assert rows == [{"v": text}]

    async def test_sqlite_nul_round_trip(self, sqlite_connector: Connector) -> None:
        """An embedded NUL survives encoding."""
        # Given: A string containing NUL
        literal = sqlite_connector.sql_string("a\x00b")

        # When: Asking SQLite for its length
        rows = await sqlite_connector.query(f"SELECT length(CAST({literal} AS BLOB)) AS n")

        # Then: All three characters are present
        assert rows == [{"n": 3}]
