"""Convenience functions over the JSON and TOML adapters."""

from __future__ import annotations

from typing import Any

from typedserde.formats.json import JSONAdapter
from typedserde.formats.toml import TOMLAdapter

_json = JSONAdapter()
_toml = TOMLAdapter()


def to_json(obj: Any) -> str:
    """Serialize obj to a compact JSON string.

    Raises:
        UnsupportedTypeError: If obj contains a value with no JSON form

    """
    return _json.render(obj)


def from_json(s: str | bytes, destination: Any) -> None:
    """Populate destination in place from a JSON document.

    Raises:
        UsageError: If destination is not a mutable dataclass, list or dict
        ParseError: If s is not valid JSON
        TypeMismatchError: If a value does not fit the destination's types

    """
    _json.decode(s, destination)


def to_toml(obj: Any) -> str:
    """Serialize a record or mapping to TOML using dotted keys."""
    return _toml.render(obj)


def from_toml(s: str | bytes, destination: Any) -> None:
    """Populate destination in place from a TOML document."""
    _toml.decode(s, destination)
