"""Tests for the JSON and TOML parsers."""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from typedserde.errors import ParseError
from typedserde.formats.json import JSONLexer, JSONParser
from typedserde.formats.toml import TOMLLexer, TOMLParser
from typedserde.parser import Parser
from typedserde.values import (
    Array,
    Boolean,
    Float,
    Integer,
    Null,
    String,
    Table,
    Timestamp,
    Value,
)


def parse_json(text: str) -> Value:
    return JSONParser(JSONLexer(text)).parse()


def parse_toml(text: str) -> Table:
    return TOMLParser(TOMLLexer(text)).parse()


class TestJSONParser:
    """Test JSON parsing into value trees."""

    def test_scalars(self) -> None:
        """Test each scalar literal."""
        assert parse_json('"hi"') == String("hi")
        assert parse_json("42") == Integer(42)
        assert parse_json("-0.5") == Float(-0.5)
        assert parse_json("true") == Boolean(True)
        assert parse_json("false") == Boolean(False)
        assert parse_json("null") == Null()

    def test_numeric_kind(self) -> None:
        """Test that a decimal point or exponent makes a Float."""
        assert parse_json("3") == Integer(3)
        assert parse_json("3.0") == Float(3.0)
        assert parse_json("3e2") == Float(300.0)

    def test_object(self) -> None:
        """Test an object with nested members."""
        result = parse_json('{"a": 1, "b": [true, null], "c": {"d": "x"}}')
        assert result == Table(
            {
                "a": Integer(1),
                "b": Array((Boolean(True), Null())),
                "c": Table({"d": String("x")}),
            },
        )

    def test_empty_collections(self) -> None:
        """Test that {} and [] are valid and empty."""
        assert parse_json("{}") == Table()
        assert parse_json("[]") == Array()
        assert parse_json("[[], {}]") == Array((Array(), Table()))

    def test_duplicate_keys_last_wins(self) -> None:
        """Test that a repeated key keeps the last value."""
        assert parse_json('{"a": 1, "a": 2}') == Table({"a": Integer(2)})

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "{invalid json}",
            '{"a" 1}',
            '{"a": 1',
            '{"a": 1,}',
            "[1 2]",
            "[1,]",
            '"unterminated',
            '{"a": 1} extra',
            "{1: 2}",
            "]",
        ],
    )
    def test_malformed_input(self, text: str) -> None:
        """Test that malformed documents raise ParseError."""
        with pytest.raises(ParseError):
            parse_json(text)

    def test_error_position(self) -> None:
        """Test that the error names the offending token and its position."""
        with pytest.raises(ParseError) as exc_info:
            parse_json('{"a" 1}')
        assert exc_info.value.line == 1
        assert exc_info.value.column == 6
        assert "expected ':' after object key, got number '1'" in str(exc_info.value)

    def test_parser_base_is_abstract(self) -> None:
        """Test that the shared base cannot be used without a grammar."""
        with pytest.raises(TypeError):
            Parser(JSONLexer("1"))  # type: ignore[abstract]

    def test_invalid_character_reported(self) -> None:
        """Test that an unknown character is named in the error."""
        with pytest.raises(ParseError, match="invalid character 'i'"):
            parse_json("{invalid json}")

    def test_integer_out_of_range(self) -> None:
        """Test that integers beyond 64 bits are rejected."""
        assert parse_json("9223372036854775807") == Integer(2**63 - 1)
        with pytest.raises(ParseError, match="out of 64-bit range"):
            parse_json("9223372036854775808")


class TestTOMLParser:
    """Test TOML parsing into a root table."""

    def test_key_values(self) -> None:
        """Test scalar and array values."""
        result = parse_toml('name = "x"\nage = 30\nratio = 0.5\nok = true\ntags = ["a", "b"]\n')
        assert result == Table(
            {
                "name": String("x"),
                "age": Integer(30),
                "ratio": Float(0.5),
                "ok": Boolean(True),
                "tags": Array((String("a"), String("b"))),
            },
        )

    def test_nested_table_header(self) -> None:
        """Test that [a.b] creates intermediate tables."""
        result = parse_toml("[a.b]\nk = 1\n")
        assert result == Table({"a": Table({"b": Table({"k": Integer(1)})})})

    def test_header_switches_current_table(self) -> None:
        """Test that pairs go into the most recent header's table."""
        result = parse_toml("top = 1\n[one]\nx = 1\n[two]\ny = 2\n[one.deep]\nz = 3\n")
        assert result == Table(
            {
                "top": Integer(1),
                "one": Table({"x": Integer(1), "deep": Table({"z": Integer(3)})}),
                "two": Table({"y": Integer(2)}),
            },
        )

    def test_dotted_keys(self) -> None:
        """Test that dotted keys nest relative to the current table."""
        result = parse_toml('[server]\ndb.host = "localhost"\ndb.port = 5432\n')
        assert result == Table(
            {
                "server": Table(
                    {"db": Table({"host": String("localhost"), "port": Integer(5432)})},
                ),
            },
        )

    def test_quoted_keys(self) -> None:
        """Test quoted key segments."""
        result = parse_toml('"two words"."x.y" = 1\n')
        assert result == Table({"two words": Table({"x.y": Integer(1)})})

    def test_blank_lines_and_comments(self) -> None:
        """Test that blank lines and comments are ignored."""
        result = parse_toml("\n# comment\n\na = 1 # trailing\n\n")
        assert result == Table({"a": Integer(1)})

    def test_missing_trailing_newline(self) -> None:
        """Test that a final statement may end at EOF."""
        assert parse_toml("a = 1") == Table({"a": Integer(1)})

    def test_empty_document(self) -> None:
        """Test that empty input is an empty table."""
        assert parse_toml("") == Table()

    def test_multiline_array_with_trailing_comma(self) -> None:
        """Test arrays spanning lines."""
        result = parse_toml("xs = [\n  1,\n  2,\n]\n")
        assert result == Table({"xs": Array((Integer(1), Integer(2)))})

    def test_timestamps(self) -> None:
        """Test RFC 3339 date-times and local dates."""
        result = parse_toml(
            "utc = 1979-05-27T07:32:00Z\n"
            "offset = 1979-05-27T00:32:00-07:00\n"
            "day = 2024-02-29\n",
        )
        assert result.entries["utc"] == Timestamp(
            datetime(1979, 5, 27, 7, 32, tzinfo=UTC),
        )
        assert result.entries["offset"] == Timestamp(
            datetime(1979, 5, 27, 0, 32, tzinfo=timezone(timedelta(hours=-7))),
        )
        assert result.entries["day"] == Timestamp(datetime(2024, 2, 29))

    def test_redeclaring_scalar_as_table(self) -> None:
        """Test that a scalar key cannot become a table."""
        with pytest.raises(ParseError, match="cannot use a.k as table"):
            parse_toml("[a]\nk = 1\n[a.k]\nx = 2\n")

    @pytest.mark.parametrize(
        "text",
        [
            "a = 1\na = 2\n",
            "a.b = 1\na = 2\n",
            "[t]\nx = 1\n[t]\nx = 2\n",
            "\"a\" = 1\na = 2\n",
        ],
    )
    def test_duplicate_key_rejected(self, text: str) -> None:
        """Test that a key cannot be defined twice in one table."""
        with pytest.raises(ParseError, match="cannot redefine key"):
            parse_toml(text)

    def test_reopening_table_allowed(self) -> None:
        """Test that a header may name a table again to add new keys."""
        result = parse_toml("[t]\nx = 1\n[u]\n[t]\ny = 2\n")
        assert result.entries["t"] == Table({"x": Integer(1), "y": Integer(2)})

    def test_dotted_key_through_scalar(self) -> None:
        """Test that a dotted key cannot pass through a scalar."""
        with pytest.raises(ParseError, match="cannot use a as table"):
            parse_toml("a = 1\na.b = 2\n")

    @pytest.mark.parametrize(
        "text",
        [
            "invalid = toml]",
            "a 1",
            "a = ",
            "a = 1 b = 2",
            "= 1",
            "[]",
            "[a",
            "[a] x = 1",
            "[[items]]\nname = 1",
            "a = null",
            "a = {}",
            "a = bare",
            'a = "unterminated',
            "a = 2024-13-45",
            "a = [1 2]",
        ],
    )
    def test_malformed_input(self, text: str) -> None:
        """Test that malformed documents raise ParseError."""
        with pytest.raises(ParseError):
            parse_toml(text)

    def test_array_of_tables_rejected_with_reason(self) -> None:
        """Test that [[name]] headers are reported as unsupported."""
        with pytest.raises(ParseError, match="array-of-tables"):
            parse_toml("[[developers]]\nname = 1\n")

    def test_error_line(self) -> None:
        """Test that errors report the line of the offending token."""
        with pytest.raises(ParseError) as exc_info:
            parse_toml("a = 1\nb = 2\nc = ]\n")
        assert exc_info.value.line == 3
