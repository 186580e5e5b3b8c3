"""JSON format: lexer, parser, encoder and adapter."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from datetime import datetime
from typing import Any

from typedserde.adapters import FormatAdapter
from typedserde.lexer import Lexer, Token, TokenKind, escape_string
from typedserde.mapper import Encoder, is_sequence, join_path
from typedserde.parser import Parser
from typedserde.schema import is_record
from typedserde.values import Boolean, Null, String, Table, Value

_PUNCTUATION = {
    "{": TokenKind.LEFT_BRACE,
    "}": TokenKind.RIGHT_BRACE,
    "[": TokenKind.LEFT_BRACKET,
    "]": TokenKind.RIGHT_BRACKET,
    ",": TokenKind.COMMA,
    ":": TokenKind.COLON,
}
_KEYWORDS = (
    ("true", TokenKind.TRUE),
    ("false", TokenKind.FALSE),
    ("null", TokenKind.NULL),
)


class JSONLexer(Lexer):
    """Tokenizer for JSON; all whitespace is insignificant."""

    def next(self) -> Token:
        """Return the next JSON token."""
        self.skip_whitespace(newlines=True)
        self.mark()

        char = self.peek()
        if not char:
            return self.token(TokenKind.EOF)
        if kind := _PUNCTUATION.get(char):
            self.advance()
            return self.token(kind, char)
        if char == '"':
            return self.scan_string()
        if char == "-" or "0" <= char <= "9":
            return self.scan_number()
        for word, kind in _KEYWORDS:
            if self.match_keyword(word):
                self.advance(len(word))
                return self.token(kind, word)
        return self.invalid(f"invalid character {char!r}")

    def scan_number(self) -> Token:
        """Scan ``-?digits(.digits)?([eE][+-]?digits)?``."""
        start = self.pos
        if self.peek() == "-":
            self.advance()
        if not self.scan_digits():
            return self.invalid("invalid number: expected digit")
        if self.peek() == ".":
            self.advance()
            if not self.scan_digits():
                return self.invalid("invalid number: expected digit after '.'")
        if self.peek() in ("e", "E"):
            self.advance()
            if self.peek() in ("+", "-"):
                self.advance()
            if not self.scan_digits():
                return self.invalid("invalid number: expected digit in exponent")
        return self.token(TokenKind.NUMBER, self.text[start : self.pos])


class JSONParser(Parser):
    """Recursive-descent JSON parser producing a Value tree."""

    def parse(self) -> Value:
        """Parse a complete document; nothing may follow the top-level value."""
        value = self.parse_value()
        if self.token.kind is not TokenKind.EOF:
            self.fail(f"unexpected {self.token.describe()} after top-level value")
        return value

    def parse_value(self) -> Value:
        """Parse any JSON value."""
        match self.token.kind:
            case TokenKind.STRING:
                return String(self.advance().value)
            case TokenKind.NUMBER:
                return self.number()
            case TokenKind.TRUE:
                self.advance()
                return Boolean(True)
            case TokenKind.FALSE:
                self.advance()
                return Boolean(False)
            case TokenKind.NULL:
                self.advance()
                return Null()
            case TokenKind.LEFT_BRACE:
                return self.parse_object()
            case TokenKind.LEFT_BRACKET:
                return self.parse_array()
            case _:
                self.fail(f"unexpected {self.token.describe()}, expected a value")

    def parse_object(self) -> Table:
        """Parse ``{"k": v, ...}``; the current token is ``{``."""
        self.advance()
        entries: dict[str, Value] = {}
        if self.token.kind is TokenKind.RIGHT_BRACE:
            self.advance()
            return Table(entries)

        while True:
            key = self.expect(TokenKind.STRING, "as object key").value
            self.expect(TokenKind.COLON, "after object key")
            entries[key] = self.parse_value()
            if self.token.kind is TokenKind.RIGHT_BRACE:
                self.advance()
                return Table(entries)
            if self.token.kind is not TokenKind.COMMA:
                found = self.token.describe()
                self.fail(f"expected ',' or '}}' in object, got {found}")
            self.advance()


class JSONEncoder(Encoder):
    """Renders native data as compact JSON."""

    tag_key = "json"

    def encode(self, obj: Any, path: str = "") -> str:
        """Render obj; path names its position for error messages."""
        obj = self.prepare(obj)
        if obj is None:
            return "null"
        if (text := self.scalar(obj, path)) is not None:
            return text
        if isinstance(obj, datetime):
            return escape_string(obj.isoformat())
        if is_record(obj):
            return self._object(self.record_items(obj), path)
        if isinstance(obj, Mapping):
            return self._object(self.mapping_items(obj, path), path)
        if is_sequence(obj):
            items = (
                self.encode(item, join_path(path, i)) for i, item in enumerate(obj)
            )
            return "[" + ",".join(items) + "]"
        raise self.unsupported(obj, path)

    def _object(self, items: Iterator[tuple[str, Any, Any]], path: str) -> str:
        members = (
            f"{escape_string(name)}:{self.encode(value, join_path(path, name))}"
            for name, value, _ in items
        )
        return "{" + ",".join(members) + "}"


class JSONAdapter(FormatAdapter, format_name="JSON", tag_key="json"):
    """Hand-written JSON codec.

    Record fields are named by their ``json`` metadata tag, e.g.
    ``field(metadata={"json": "user_name"})``; ``"-"`` excludes a field.
    A ``None`` value, including an unset sequence, encodes as ``null``.
    """

    def render(self, value: Any) -> str:
        """Render value as compact JSON."""
        return JSONEncoder().encode(value)

    def parse(self, text: str) -> Value:
        """Parse a JSON document."""
        return JSONParser(JSONLexer(text)).parse()
