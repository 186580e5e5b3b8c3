"""TOML format: lexer, parser, encoder and adapter.

Covers the subset of TOML needed to carry records: ``key = value`` pairs
with dotted keys, ``[table.path]`` headers, strings, integers, floats,
booleans, date-times and inline arrays. Array-of-tables (``[[name]]``)
and inline tables are not part of the grammar.

Encoding flattens nested records and mappings to dotted keys:

    name = "Alice"
    info.email = "alice@example.com"

which decodes back to the same structure as an ``[info]`` section would.
A nested table with nothing to write is kept as a bare ``[header]`` line at
the end of the document.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from typedserde.adapters import FormatAdapter
from typedserde.errors import ParseError, UnsupportedTypeError
from typedserde.lexer import Lexer, Token, TokenKind, escape_string
from typedserde.mapper import Encoder, is_sequence, is_sequence_type, join_path
from typedserde.parser import Parser
from typedserde.schema import is_record
from typedserde.values import Boolean, String, Table, Timestamp, Value

_PUNCTUATION = {
    "[": TokenKind.LEFT_BRACKET,
    "]": TokenKind.RIGHT_BRACKET,
    ".": TokenKind.DOT,
    "=": TokenKind.EQUALS,
    ",": TokenKind.COMMA,
    "\n": TokenKind.NEWLINE,
}
_KEYWORDS = (
    ("true", TokenKind.TRUE),
    ("false", TokenKind.FALSE),
)
_DIGITS = "0123456789"
_NUMBER_CHARS = frozenset(_DIGITS + ".+eE" + "TZ-:")
_BARE_KEY_START = frozenset("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz_")
_BARE_KEY_CHARS = _BARE_KEY_START | frozenset(_DIGITS + "-")
_BARE_KEY_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_-]*")


class TOMLLexer(Lexer):
    """Tokenizer for TOML; newlines are significant statement terminators."""

    def next(self) -> Token:
        """Return the next TOML token."""
        self._skip_blanks()
        self.mark()

        char = self.peek()
        if not char:
            return self.token(TokenKind.EOF)
        if kind := _PUNCTUATION.get(char):
            self.advance()
            return self.token(kind, char)
        if char == '"':
            return self.scan_string()
        for word, kind in _KEYWORDS:
            if self.match_keyword(word) and self.peek(len(word)) not in _BARE_KEY_CHARS:
                self.advance(len(word))
                return self.token(kind, word)
        if char == "-" or char in _DIGITS:
            return self.scan_number_or_timestamp()
        if char in _BARE_KEY_START:
            return self.scan_bare_key()
        return self.invalid(f"invalid character {char!r}")

    def _skip_blanks(self) -> None:
        """Skip non-newline whitespace and ``#`` comments."""
        while True:
            self.skip_whitespace(newlines=False)
            if self.peek() != "#":
                return
            while (char := self.peek()) and char != "\n":
                self.advance()

    def scan_number_or_timestamp(self) -> Token:
        """Scan a number or date-time lexeme.

        Both share one character class; the lexeme is a timestamp if after
        its first character it contains 'T', 'Z', ':' or a '-' that is not
        an exponent sign.
        """
        start = self.pos
        self.advance()
        is_timestamp = False
        while (char := self.peek()) and char in _NUMBER_CHARS:
            if char in "TZ:" or (char == "-" and self.text[self.pos - 1] not in "eE"):
                is_timestamp = True
            self.advance()
        lexeme = self.text[start : self.pos]
        if lexeme == "-":
            return self.invalid("invalid number: expected digit")
        kind = TokenKind.TIMESTAMP if is_timestamp else TokenKind.NUMBER
        return self.token(kind, lexeme)

    def scan_bare_key(self) -> Token:
        """Scan ``[A-Za-z0-9_-]+`` as a key segment."""
        start = self.pos
        while (char := self.peek()) and char in _BARE_KEY_CHARS:
            self.advance()
        return self.token(TokenKind.BARE_KEY, self.text[start : self.pos])


class TOMLParser(Parser):
    """Parses a TOML document into its root Table.

    Key/value statements go into the current table, which starts as the
    root and is switched by each ``[a.b]`` header.
    """

    allow_trailing_comma = True

    def parse(self) -> Table:
        """Parse the whole document into its root table."""
        root = Table()
        current = root
        while self.token.kind is not TokenKind.EOF:
            match self.token.kind:
                case TokenKind.NEWLINE:
                    self.advance()
                case TokenKind.LEFT_BRACKET:
                    current = self.parse_header(root)
                case TokenKind.STRING | TokenKind.BARE_KEY:
                    self.parse_pair(current)
                case _:
                    found = self.token.describe()
                    self.fail(f"unexpected {found} at start of statement")
        return root

    def parse_header(self, root: Table) -> Table:
        """Parse ``[a.b.c]`` and return the table it names, creating it if needed."""
        header = self.advance()
        if self.token.kind is TokenKind.LEFT_BRACKET:
            self.fail("array-of-tables headers '[[...]]' are not supported")
        if self.token.kind is TokenKind.RIGHT_BRACKET:
            self.fail("empty table header")
        path = self.parse_key("in table header")
        self.expect(TokenKind.RIGHT_BRACKET, "to close table header")
        self.end_statement()
        return self.descend(root, path, header)

    def parse_pair(self, current: Table) -> None:
        """Parse ``key = value`` (key may be dotted) into the current table."""
        start = self.token
        path = self.parse_key("as key")
        self.expect(TokenKind.EQUALS, "after key")
        value = self.parse_value()
        table = self.descend(current, path[:-1], start)
        if path[-1] in table.entries:
            msg = f"cannot redefine key {'.'.join(path)}"
            raise ParseError(msg, start)
        table.entries[path[-1]] = value
        self.end_statement()

    def parse_key(self, context: str) -> list[str]:
        """Parse a dotted key of bare or quoted segments."""
        path = [self.key_segment(context)]
        while self.token.kind is TokenKind.DOT:
            self.advance()
            path.append(self.key_segment(context))
        return path

    def key_segment(self, context: str) -> str:
        """Consume one bare or quoted key segment."""
        if self.token.kind not in (TokenKind.STRING, TokenKind.BARE_KEY):
            self.fail(f"expected key {context}, got {self.token.describe()}")
        return self.advance().value

    def end_statement(self) -> None:
        """Require a newline or EOF after a statement."""
        if self.token.kind is TokenKind.NEWLINE:
            self.advance()
        elif self.token.kind is not TokenKind.EOF:
            self.fail(f"expected newline or end of input, got {self.token.describe()}")

    def descend(self, table: Table, path: list[str], token: Token) -> Table:
        """Walk path from table, creating missing tables along the way."""
        for depth, key in enumerate(path, start=1):
            existing = table.entries.get(key)
            if existing is None:
                existing = table.entries[key] = Table()
            elif not isinstance(existing, Table):
                name = ".".join(path[:depth])
                msg = f"cannot use {name} as table, it's already defined as a value"
                raise ParseError(msg, token)
            table = existing
        return table

    def parse_value(self) -> Value:
        """Parse the value on the right of ``=`` or inside an array."""
        match self.token.kind:
            case TokenKind.STRING:
                return String(self.advance().value)
            case TokenKind.NUMBER:
                return self.number()
            case TokenKind.TIMESTAMP:
                return self.timestamp()
            case TokenKind.TRUE:
                self.advance()
                return Boolean(True)
            case TokenKind.FALSE:
                self.advance()
                return Boolean(False)
            case TokenKind.LEFT_BRACKET:
                return self.parse_array()
            case _:
                self.fail(f"unexpected {self.token.describe()}, expected a value")

    def timestamp(self) -> Timestamp:
        """Convert the current TIMESTAMP token and consume it."""
        text = self.token.value
        try:
            value = datetime.fromisoformat(text)
        except ValueError:
            self.fail(f"invalid date-time {text!r}")
        self.advance()
        return Timestamp(value)

    def skip_array_whitespace(self) -> None:
        """Arrays may span lines."""
        while self.token.kind is TokenKind.NEWLINE:
            self.advance()


def format_key(path: list[str]) -> str:
    """Dotted key, quoting segments that are not valid bare keys."""
    return ".".join(
        segment
        if _BARE_KEY_RE.fullmatch(segment) and segment not in ("true", "false")
        else escape_string(segment)
        for segment in path
    )


class TOMLEncoder(Encoder):
    """Renders records and mappings as flat ``dotted.key = value`` lines."""

    tag_key = "toml"

    def encode_document(self, obj: Any) -> str:
        """Render a record or mapping as a TOML document."""
        obj = self.prepare(obj)
        if obj is None:
            return ""
        if not (is_record(obj) or isinstance(obj, Mapping)):
            msg = (
                "TOML document root must be a record or mapping, "
                f"got {type(obj).__qualname__}"
            )
            raise UnsupportedTypeError(msg)
        lines: list[str] = []
        empty: list[str] = []
        self._emit_table(obj, [], lines, empty)
        # empty tables go last, so no pair follows their headers
        lines.extend(f"[{key}]" for key in empty)
        return "".join(f"{line}\n" for line in lines)

    def _emit_table(
        self,
        obj: Any,
        prefix: list[str],
        lines: list[str],
        empty: list[str],
    ) -> None:
        """Append dotted-key lines for obj; record it in empty if it has none."""
        path = ".".join(prefix)
        if is_record(obj):
            items = self.record_items(obj)
        else:
            items = self.mapping_items(obj, path)
        written = len(lines), len(empty)
        for name, raw, hint in items:
            value = self.prepare(raw)
            key = [*prefix, name]
            if value is None:
                # TOML has no null: unset sequences become [], anything else is omitted
                if is_sequence_type(hint):
                    lines.append(f"{format_key(key)} = []")
                continue
            if is_record(value) or isinstance(value, Mapping):
                self._emit_table(value, key, lines, empty)
                continue
            text = self.encode_inline(value, ".".join(key))
            lines.append(f"{format_key(key)} = {text}")
        if prefix and (len(lines), len(empty)) == written:
            empty.append(format_key(prefix))

    def encode_inline(self, obj: Any, path: str) -> str:
        """Render a value on the right of ``=``."""
        obj = self.prepare(obj)
        if obj is None:
            msg = "TOML has no null value"
            raise UnsupportedTypeError(msg, path)
        if (text := self.scalar(obj, path)) is not None:
            return text
        if isinstance(obj, datetime):
            return obj.isoformat()
        if is_record(obj) or isinstance(obj, Mapping):
            msg = "tables inside arrays are not supported in TOML"
            raise UnsupportedTypeError(msg, path)
        if is_sequence(obj):
            items = (
                self.encode_inline(item, join_path(path, i))
                for i, item in enumerate(obj)
            )
            return "[" + ", ".join(items) + "]"
        raise self.unsupported(obj, path)


class TOMLAdapter(FormatAdapter, format_name="TOML", tag_key="toml"):
    """Hand-written TOML codec.

    Record fields are named by their ``toml`` metadata tag. ``None`` fields
    are left out of the output, except unset sequences, which encode as
    ``[]``.
    """

    def render(self, value: Any) -> str:
        """Render value as a TOML document."""
        return TOMLEncoder().encode_document(value)

    def parse(self, text: str) -> Value:
        """Parse a TOML document."""
        return TOMLParser(TOMLLexer(text)).parse()
