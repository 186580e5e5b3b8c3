"""Recursive-descent parser infrastructure shared by both grammars."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, NoReturn

from typedserde.errors import ParseError
from typedserde.lexer import Token, TokenKind
from typedserde.values import Array, Float, Integer, Value

if TYPE_CHECKING:
    from typedserde.lexer import Lexer

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class Parser(ABC):
    """Holds one token of lookahead over a lexer."""

    allow_trailing_comma = False

    def __init__(self, lexer: Lexer) -> None:
        self.lexer = lexer
        self.token: Token = lexer.next()

    def advance(self) -> Token:
        """Consume the current token and return it."""
        token = self.token
        self.token = self.lexer.next()
        return token

    def expect(self, kind: TokenKind, context: str) -> Token:
        """Consume a token of the given kind or fail."""
        if self.token.kind is not kind:
            self.fail(f"expected {kind.value} {context}, got {self.token.describe()}")
        return self.advance()

    def fail(self, message: str) -> NoReturn:
        """Raise a ParseError pointing at the current token."""
        if self.token.kind is TokenKind.INVALID:
            message = self.token.value
        raise ParseError(message, self.token)

    @abstractmethod
    def parse_value(self) -> Value:
        """Parse one value starting at the current token."""
        ...

    def parse_array(self) -> Array:
        """Parse ``[v, v, ...]``; the current token is ``[``."""
        self.advance()
        items: list[Value] = []
        self.skip_array_whitespace()
        if self.token.kind is TokenKind.RIGHT_BRACKET:
            self.advance()
            return Array(tuple(items))

        while True:
            items.append(self.parse_value())
            self.skip_array_whitespace()
            if self.token.kind is TokenKind.RIGHT_BRACKET:
                self.advance()
                return Array(tuple(items))
            if self.token.kind is not TokenKind.COMMA:
                self.fail(f"expected ',' or ']' in array, got {self.token.describe()}")
            self.advance()
            self.skip_array_whitespace()
            if self.allow_trailing_comma and self.token.kind is TokenKind.RIGHT_BRACKET:
                self.advance()
                return Array(tuple(items))

    def skip_array_whitespace(self) -> None:
        """Hook for grammars where newlines may appear inside arrays."""

    def number(self) -> Integer | Float:
        """Convert the current NUMBER token and consume it."""
        token = self.token
        text = token.value
        if any(c in text for c in ".eE"):
            try:
                result: Integer | Float = Float(float(text))
            except ValueError:
                self.fail(f"invalid number {text!r}")
        else:
            try:
                value = int(text, 10)
            except ValueError:
                self.fail(f"invalid number {text!r}")
            if not INT64_MIN <= value <= INT64_MAX:
                self.fail(f"integer {text} out of 64-bit range")
            result = Integer(value)
        self.advance()
        return result
