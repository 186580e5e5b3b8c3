"""Error types raised by the codecs.

Every error derives from SerializerError, and each also derives from the
builtin exception that best describes it, so callers can catch either
``SerializerError`` or the usual ``ValueError``/``TypeError``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typedserde.lexer import Token


class SerializerError(Exception):
    """Base class for all serialization errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ParseError(SerializerError, ValueError):
    """Input text does not follow the format's grammar.

    Also raised for characters the lexer cannot start a token with.
    """

    def __init__(self, message: str, token: Token | None = None) -> None:
        self.token = token
        self.line = token.line if token is not None else 0
        self.column = token.column if token is not None else 0
        if token is not None:
            message = f"{message} at line {self.line}, column {self.column}"
        super().__init__(message)


class TypeMismatchError(SerializerError, TypeError):
    """Decoded value kind is incompatible with the destination's type."""

    def __init__(self, message: str, path: str = "") -> None:
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


class UnsupportedTypeError(SerializerError, TypeError):
    """Value or annotation has no encoding rule."""

    def __init__(self, message: str, path: str = "") -> None:
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


class UsageError(SerializerError, TypeError):
    """Codec called incorrectly, e.g. with an immutable destination."""


class UnsupportedFormatError(SerializerError, ValueError):
    """No codec is registered under the requested format name."""
