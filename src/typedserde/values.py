"""Generic value tree produced by the parsers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar, assert_never, dataclass_transform


@dataclass(frozen=True)
@dataclass_transform(frozen_default=True)
class Value:
    """Base for parsed values. Each subclass is one case of the union."""

    kind: ClassVar[str]

    def __init_subclass__(cls, kind: str | None = None) -> None:
        """Turn the subclass into a frozen dataclass and record its kind."""
        dataclass(frozen=True)(cls)
        cls.kind = kind if kind is not None else cls.__name__.lower()


class String(Value, kind="string"):
    """Quoted string, already unescaped."""

    value: str


class Integer(Value, kind="integer"):
    """64-bit signed integer literal."""

    value: int


class Float(Value, kind="float"):
    """Floating point literal (has a decimal point or an exponent)."""

    value: float


class Boolean(Value, kind="boolean"):
    """``true`` or ``false``."""

    value: bool


class Null(Value, kind="null"):
    """JSON ``null``."""


class Timestamp(Value, kind="timestamp"):
    """TOML date-time literal."""

    value: datetime


class Array(Value, kind="array"):
    """Ordered sequence of values."""

    items: tuple[Value, ...] = ()


class Table(Value, kind="table"):
    """String-keyed mapping of values.

    The entries dict stays mutable so the TOML parser can fill in tables
    created by headers and dotted keys after the Table itself exists.
    """

    entries: dict[str, Value] = field(default_factory=dict)


def to_builtins(value: Value) -> Any:
    """Convert a value tree to plain Python objects.

    Tables become dicts, arrays become lists, and scalars are unwrapped.
    """
    match value:
        case String(value=v) | Integer(value=v) | Float(value=v) | Boolean(value=v):
            return v
        case Timestamp(value=v):
            return v
        case Null():
            return None
        case Array(items=items):
            return [to_builtins(item) for item in items]
        case Table(entries=entries):
            return {k: to_builtins(v) for k, v in entries.items()}
        case _:
            assert_never(value)
