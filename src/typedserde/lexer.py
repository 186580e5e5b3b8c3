"""Tokenizer infrastructure shared by the JSON and TOML lexers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

_ESCAPES = {
    '"': '"',
    "\\": "\\",
    "/": "/",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
}
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


def _is_surrogate(code: int) -> bool:
    return 0xD800 <= code <= 0xDFFF


class TokenKind(Enum):
    """Token kinds across both grammars. Values are used in error messages."""

    EOF = "end of input"
    INVALID = "invalid input"
    STRING = "string"
    BARE_KEY = "key"
    NUMBER = "number"
    TIMESTAMP = "timestamp"
    TRUE = "true"
    FALSE = "false"
    NULL = "null"
    LEFT_BRACE = "'{'"
    RIGHT_BRACE = "'}'"
    LEFT_BRACKET = "'['"
    RIGHT_BRACKET = "']'"
    COMMA = "','"
    COLON = "':'"
    DOT = "'.'"
    EQUALS = "'='"
    NEWLINE = "newline"


@dataclass(frozen=True)
class Token:
    """A lexeme with its 1-based source position.

    For INVALID tokens, value holds the diagnostic rather than source text.
    """

    kind: TokenKind
    value: str
    line: int
    column: int

    def describe(self) -> str:
        """Human-readable form used in parse errors."""
        if self.kind in _LITERAL_KINDS:
            return f"{self.kind.value} {self.value!r}"
        if self.kind is TokenKind.INVALID:
            return self.value
        return self.kind.value


_LITERAL_KINDS = frozenset(
    {TokenKind.STRING, TokenKind.BARE_KEY, TokenKind.NUMBER, TokenKind.TIMESTAMP},
)


class Lexer(ABC):
    """Pull-based cursor over an immutable input string.

    Subclasses implement next(); this class provides the scanning
    primitives both grammars need.
    """

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0
        self.line = 1
        self.column = 1
        self._start_line = 1
        self._start_column = 1

    @abstractmethod
    def next(self) -> Token:
        """Return the next token, or EOF once input is exhausted."""
        ...

    def peek(self, offset: int = 0) -> str:
        """Character at pos + offset, or '' past the end."""
        index = self.pos + offset
        return self.text[index] if index < len(self.text) else ""

    def advance(self, count: int = 1) -> str:
        """Consume count characters and return them."""
        consumed = self.text[self.pos : self.pos + count]
        for char in consumed:
            if char == "\n":
                self.line += 1
                self.column = 1
            else:
                self.column += 1
        self.pos += len(consumed)
        return consumed

    def mark(self) -> None:
        """Remember where the token being scanned starts."""
        self._start_line = self.line
        self._start_column = self.column

    def token(self, kind: TokenKind, value: str = "") -> Token:
        """Build a token positioned at the last mark()."""
        return Token(kind, value, self._start_line, self._start_column)

    def invalid(self, message: str) -> Token:
        """INVALID token carrying message as its diagnostic."""
        return self.token(TokenKind.INVALID, message)

    def skip_whitespace(self, *, newlines: bool) -> None:
        """Skip blanks; newlines too unless they are significant."""
        while (char := self.peek()) and char.isspace():
            if char == "\n" and not newlines:
                return
            self.advance()

    def match_keyword(self, word: str) -> bool:
        """Fixed-length lookahead for a keyword at the cursor."""
        return self.text.startswith(word, self.pos)

    def scan_string(self) -> Token:
        """Scan a double-quoted string and unescape it.

        The character following a backslash is always consumed, so an
        escaped quote never terminates the string.
        """
        self.advance()  # opening quote
        chars: list[str] = []
        while True:
            char = self.peek()
            if not char:
                return self.invalid("unterminated string")
            if char == '"':
                self.advance()
                return self.token(TokenKind.STRING, "".join(chars))
            if char == "\\":
                self.advance()
                escaped = self._scan_escape()
                if isinstance(escaped, Token):
                    return escaped
                chars.append(escaped)
                continue
            if _is_surrogate(ord(char)):
                return self.invalid("unpaired surrogate in string")
            chars.append(self.advance())

    def _scan_escape(self) -> str | Token:
        """Unescape the sequence after a backslash, or return an INVALID token."""
        char = self.peek()
        if char in _ESCAPES:
            self.advance()
            return _ESCAPES[char]
        if char != "u" or (code := self._scan_hex()) is None:
            return self.invalid(f"invalid escape sequence '\\{char}' in string")
        if 0xDC00 <= code <= 0xDFFF:
            return self.invalid("unpaired surrogate in string")
        if 0xD800 <= code <= 0xDBFF:
            # high surrogate: must be followed by an escaped low surrogate
            if not self.match_keyword("\\u"):
                return self.invalid("unpaired surrogate in string")
            self.advance()
            low = self._scan_hex()
            if low is None or not 0xDC00 <= low <= 0xDFFF:
                return self.invalid("unpaired surrogate in string")
            code = 0x10000 + ((code - 0xD800) << 10) + (low - 0xDC00)
        return chr(code)

    def _scan_hex(self) -> int | None:
        """Consume ``uXXXX`` at the cursor and return the code unit."""
        digits = self.text[self.pos + 1 : self.pos + 5]
        if len(digits) != 4 or not all(d in _HEX_DIGITS for d in digits):
            return None
        self.advance(5)
        return int(digits, 16)

    def scan_digits(self) -> int:
        """Consume a run of ASCII digits and return how many there were."""
        count = 0
        while (char := self.peek()) and char in "0123456789":
            self.advance()
            count += 1
        return count


def escape_string(s: str) -> str:
    """Quote s, escaping backslash, quote, newline, carriage return and tab."""
    s = s.replace("\\", "\\\\")
    s = s.replace('"', '\\"')
    s = s.replace("\n", "\\n")
    s = s.replace("\r", "\\r")
    s = s.replace("\t", "\\t")
    return f'"{s}"'
