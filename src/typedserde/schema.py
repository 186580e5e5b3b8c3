"""Record reflection: which dataclass fields go on the wire, and under what name."""

from __future__ import annotations

from dataclasses import dataclass, fields, is_dataclass
from functools import cache
from typing import Any, get_type_hints

from typedserde.errors import UnsupportedTypeError

EXCLUDE = "-"


@dataclass(frozen=True)
class FieldSchema:
    """One serializable field of a record type."""

    name: str
    wire_name: str
    type: Any


def tag(**formats: str) -> dict[str, str]:
    """Build field metadata carrying per-format wire tags.

    Example:
        @dataclass
        class User:
            name: str = field(metadata=tag(json="user_name", toml="name"))
            secret: str = field(default="", metadata=tag(json="-", toml="-"))

    """
    return dict(formats)


def wire_name(name: str, metadata: Any, tag_key: str) -> str | None:
    """Resolve a field's wire name for a format, or None if it is excluded.

    The first comma-separated segment of the tag is the name; the
    remaining segments are options and are not interpreted.
    """
    raw = metadata.get(tag_key) if metadata else None
    if raw is None:
        return name
    if raw == EXCLUDE:
        return None
    return raw.split(",", 1)[0] or name


def is_record(obj: Any) -> bool:
    """True for dataclass instances (not dataclass types)."""
    return is_dataclass(obj) and not isinstance(obj, type)


def is_record_type(tp: Any) -> bool:
    """True for dataclass types."""
    return isinstance(tp, type) and is_dataclass(tp)


@cache
def type_hints(cls: type) -> dict[str, Any]:
    """Resolved annotations of a record type."""
    try:
        return get_type_hints(cls)
    except NameError as exc:
        msg = f"cannot resolve annotations of {cls.__qualname__}: {exc}"
        raise UnsupportedTypeError(msg) from exc


@cache
def record_schema(cls: type, tag_key: str) -> tuple[FieldSchema, ...]:
    """Public, non-excluded fields of a record in declaration order."""
    hints = type_hints(cls)
    result = []
    for f in fields(cls):
        if f.name.startswith("_"):
            continue
        name = wire_name(f.name, f.metadata, tag_key)
        if name is None:
            continue
        result.append(FieldSchema(name=f.name, wire_name=name, type=hints[f.name]))
    return tuple(result)
