"""Bidirectional mapping between value trees and native Python data.

Decoding is driven by type annotations: the destination's declared types
decide how each Value is converted. Encoding is driven by the runtime
values themselves and walks native data directly, without building a
Value tree first.

Null handling on decode: a ``null`` in the input resets the destination
to its zero value, whatever the destination's type. An already-populated
record field hit by ``null`` comes back as an all-zero record (or ``None``
if the field is optional). Keys missing from the input leave fields
untouched.
"""

from __future__ import annotations

import math
import types
from collections.abc import (
    Iterator,
    Mapping,
    MutableSequence,
    Sequence,
)
from collections.abc import Set as AbstractSet
from dataclasses import fields, replace
from datetime import UTC, date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, TypeAliasType, Union, get_args, get_origin

from typedserde.codecs import TypeCodecs
from typedserde.errors import TypeMismatchError, UnsupportedTypeError, UsageError
from typedserde.lexer import escape_string
from typedserde.parser import INT64_MAX, INT64_MIN
from typedserde.schema import is_record, is_record_type, record_schema, type_hints
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
    to_builtins,
)

ZERO_TIME = datetime(1, 1, 1, tzinfo=UTC)

_SEQUENCE_ORIGINS = (
    list,
    tuple,
    set,
    frozenset,
    Sequence,
    MutableSequence,
    AbstractSet,
)
_MAPPING_ORIGINS = (dict, Mapping)

# Zero values for types handled through TypeCodecs; other registered types
# reset to None.
_ZERO_REGISTERED: dict[type, Any] = {
    bytes: b"",
    Decimal: Decimal(0),
    date: date.min,
    time: time(),
    timedelta: timedelta(),
}


def join_path(path: str, name: str | int) -> str:
    """Extend a diagnostic field path with a key or an index."""
    if isinstance(name, int):
        return f"{path}[{name}]"
    return f"{path}.{name}" if path else name


def _is_union(hint: Any) -> bool:
    return isinstance(hint, types.UnionType) or get_origin(hint) is Union


def _container_type(hint: Any) -> Any:
    """Bare container class for list[int] / list / Sequence[str] etc."""
    origin = get_origin(hint)
    return origin if origin is not None else hint


def is_sequence_type(hint: Any) -> bool:
    """True if the annotation (optionally wrapped in Optional) is a sequence."""
    if _is_union(hint):
        return any(is_sequence_type(a) for a in get_args(hint) if a is not type(None))
    return _container_type(hint) in _SEQUENCE_ORIGINS


def is_sequence(obj: Any) -> bool:
    """Runtime sequences that encode as arrays."""
    if isinstance(obj, str | bytes | bytearray):
        return False
    return isinstance(obj, Sequence | AbstractSet)


def zero_value(hint: Any) -> Any:
    """The value a destination of type ``hint`` holds when reset."""
    if hint is Any or hint is object or hint is type(None):
        return None
    if isinstance(hint, TypeAliasType):
        return zero_value(hint.__value__)
    if _is_union(hint):
        args = get_args(hint)
        if type(None) in args:
            return None
        return zero_value(args[0])

    container = _container_type(hint)
    if container in (list, Sequence, MutableSequence):
        return []
    if container is tuple:
        args = get_args(hint)
        if args and args[-1] is not Ellipsis:
            return tuple(zero_value(arg) for arg in args)
        return ()
    if container in (set, AbstractSet):
        return set()
    if container is frozenset:
        return frozenset()
    if container in _MAPPING_ORIGINS:
        return {}

    if hint is bool:
        return False
    if hint is int:
        return 0
    if hint is float:
        return 0.0
    if hint is str:
        return ""
    if hint is datetime:
        return ZERO_TIME
    if is_record_type(hint):
        return _zero_record(hint)
    if isinstance(hint, type) and issubclass(hint, Enum):
        return next(iter(hint))
    if isinstance(hint, type) and TypeCodecs.get(hint) is not None:
        return _ZERO_REGISTERED.get(hint)

    msg = f"no zero value for {hint!r}"
    raise UnsupportedTypeError(msg)


def _zero_record(cls: type) -> Any:
    """Instance of cls with every field at its zero value."""
    hints = type_hints(cls)
    kwargs = {f.name: zero_value(hints[f.name]) for f in fields(cls) if f.init}
    record = cls(**kwargs)
    for f in fields(cls):
        if not f.init:
            object.__setattr__(record, f.name, zero_value(hints[f.name]))
    return record


def _is_frozen(cls: type) -> bool:
    return cls.__dataclass_params__.frozen  # type: ignore[attr-defined]


def _kept(current: Any, option: Any) -> Any:
    """Current value if it already has the container type of a union option."""
    container = _container_type(option)
    if isinstance(container, type) and isinstance(current, container):
        return current
    return None


def _rebuild(record: Any, changes: dict[str, Any]) -> Any:
    """Copy of a frozen record with changes applied.

    replace() only accepts init fields; the others keep their current value
    unless decoded.
    """
    late = {f.name for f in fields(record) if not f.init}
    result = replace(record, **{k: v for k, v in changes.items() if k not in late})
    for name in late:
        object.__setattr__(result, name, changes.get(name, getattr(record, name)))
    return result


class Decoder:
    """Populate native data from a value tree.

    Parameterized by the tag key ("json" or "toml") used to resolve
    wire names from dataclass field metadata.
    """

    def __init__(self, tag_key: str) -> None:
        self.tag_key = tag_key

    def check_destination(self, destination: Any) -> None:
        """Reject destinations that cannot be populated in place."""
        if is_record(destination):
            if _is_frozen(type(destination)):
                msg = (
                    "destination must be addressable: "
                    f"{type(destination).__qualname__} is a frozen dataclass"
                )
                raise UsageError(msg)
            return
        if isinstance(destination, list | dict):
            return
        msg = (
            "destination must be addressable: expected a mutable dataclass "
            f"instance, list or dict, got {type(destination).__name__}"
        )
        raise UsageError(msg)

    def decode_into(self, destination: Any, value: Value) -> None:
        """Decode value into a caller-owned destination, mutating it."""
        self.check_destination(destination)

        if isinstance(destination, list):
            destination[:] = self.convert(value, list, None, "")
            return
        if isinstance(destination, dict):
            decoded = self.convert(value, dict, None, "")
            destination.clear()
            destination.update(decoded)
            return

        cls = type(destination)
        if isinstance(value, Null):
            zero = _zero_record(cls)
            for f in fields(cls):
                setattr(destination, f.name, getattr(zero, f.name))
            return
        self.convert(value, cls, destination, "")

    def convert(self, value: Value, hint: Any, current: Any, path: str) -> Any:
        """Return the native value for ``value`` as type ``hint``.

        ``current`` is the destination's present value; records are
        decoded into it in place when it has the right type.
        """
        if hint is Any or hint is object:
            return to_builtins(value)
        if isinstance(hint, TypeAliasType):
            return self.convert(value, hint.__value__, current, path)
        if _is_union(hint):
            return self._convert_union(value, hint, current, path)
        if isinstance(value, Null):
            return zero_value(hint)

        if isinstance(hint, type) and (codec := TypeCodecs.get(hint)):
            return self._convert_registered(value, hint, codec[1], path)

        if hint is bool:
            if isinstance(value, Boolean):
                return value.value
            raise self._mismatch(value, "bool", path)
        if hint is int:
            if isinstance(value, Integer):
                return value.value
            if isinstance(value, Float):
                msg = f"cannot narrow float {value.value!r} to int"
                raise TypeMismatchError(msg, path)
            raise self._mismatch(value, "int", path)
        if hint is float:
            if isinstance(value, Integer | Float):
                return float(value.value)
            raise self._mismatch(value, "float", path)
        if hint is str:
            if isinstance(value, String):
                return value.value
            raise self._mismatch(value, "str", path)
        if hint is datetime:
            return self._convert_datetime(value, path)
        if isinstance(hint, type) and issubclass(hint, Enum):
            return self._convert_enum(value, hint, path)
        if is_record_type(hint):
            if not isinstance(value, Table):
                raise self._mismatch(value, hint.__qualname__, path)
            return self._convert_record(value, hint, current, path)

        container = _container_type(hint)
        if container in _SEQUENCE_ORIGINS:
            if not isinstance(value, Array):
                raise self._mismatch(value, "sequence", path)
            return self._convert_sequence(value, hint, container, path)
        if container in _MAPPING_ORIGINS:
            if not isinstance(value, Table):
                raise self._mismatch(value, "mapping", path)
            return self._convert_mapping(value, hint, path)

        msg = f"cannot decode into {hint!r}"
        raise UnsupportedTypeError(msg, path)

    def _convert_union(self, value: Value, hint: Any, current: Any, path: str) -> Any:
        args = get_args(hint)
        options = [a for a in args if a is not type(None)]
        if isinstance(value, Null):
            return None if len(options) < len(args) else zero_value(hint)

        if len(options) == 1:
            # Optional[T] behaves like a pointer: allocate on first use.
            inner = options[0]
            if current is None and is_record_type(inner):
                current = _zero_record(inner)
            return self.convert(value, inner, current, path)

        # the last option's mismatch is the one reported
        *leading, last = options
        for option in leading:
            try:
                return self.convert(value, option, _kept(current, option), path)
            except TypeMismatchError:
                continue
        return self.convert(value, last, _kept(current, last), path)

    def _convert_registered(
        self,
        value: Value,
        hint: type,
        decode: Any,
        path: str,
    ) -> Any:
        raw = to_builtins(value)
        try:
            return decode(raw)
        except (TypeError, ValueError, ArithmeticError) as exc:
            msg = f"cannot convert {value.kind} {raw!r} to {hint.__qualname__}: {exc}"
            raise TypeMismatchError(msg, path) from exc

    def _convert_datetime(self, value: Value, path: str) -> datetime:
        if isinstance(value, Timestamp):
            return value.value
        if isinstance(value, String):
            try:
                return datetime.fromisoformat(value.value)
            except ValueError as exc:
                msg = f"invalid timestamp {value.value!r}"
                raise TypeMismatchError(msg, path) from exc
        raise self._mismatch(value, "datetime", path)

    def _convert_enum(self, value: Value, hint: type[Enum], path: str) -> Enum:
        if isinstance(value, Array | Table | Timestamp):
            raise self._mismatch(value, hint.__qualname__, path)
        raw = to_builtins(value)
        try:
            return hint(raw)
        except ValueError as exc:
            msg = f"{raw!r} is not a valid {hint.__qualname__}"
            raise TypeMismatchError(msg, path) from exc

    def _convert_record(self, table: Table, cls: type, current: Any, path: str) -> Any:
        record = current if isinstance(current, cls) else _zero_record(cls)
        frozen = _is_frozen(cls)
        changes: dict[str, Any] = {}
        for f in record_schema(cls, self.tag_key):
            if f.wire_name not in table.entries:
                continue
            decoded = self.convert(
                table.entries[f.wire_name],
                f.type,
                getattr(record, f.name),
                join_path(path, f.wire_name),
            )
            if frozen:
                changes[f.name] = decoded
            else:
                setattr(record, f.name, decoded)
        if changes:
            record = _rebuild(record, changes)
        return record

    def _convert_sequence(
        self,
        array: Array,
        hint: Any,
        container: Any,
        path: str,
    ) -> Any:
        args = get_args(hint)
        if container is tuple and args and args[-1] is not Ellipsis:
            if len(args) != len(array.items):
                msg = f"expected {len(args)} elements, got {len(array.items)}"
                raise TypeMismatchError(msg, path)
            return tuple(
                self.convert(item, arg, None, join_path(path, i))
                for i, (item, arg) in enumerate(zip(array.items, args, strict=True))
            )

        element = args[0] if args else Any
        items = [
            self.convert(item, element, None, join_path(path, i))
            for i, item in enumerate(array.items)
        ]
        if container is tuple:
            return tuple(items)
        if container in (set, AbstractSet):
            return set(items)
        if container is frozenset:
            return frozenset(items)
        return items

    def _convert_mapping(self, table: Table, hint: Any, path: str) -> dict[str, Any]:
        args = get_args(hint)
        key_type, value_type = args if len(args) == 2 else (str, Any)
        if key_type is not str and key_type is not Any:
            msg = f"mapping keys must be str, not {key_type!r}"
            raise UnsupportedTypeError(msg, path)
        return {
            key: self.convert(item, value_type, None, join_path(path, key))
            for key, item in table.entries.items()
        }

    @staticmethod
    def _mismatch(value: Value, expected: str, path: str) -> TypeMismatchError:
        return TypeMismatchError(f"cannot convert {value.kind} to {expected}", path)


class Encoder:
    """Traversal helpers shared by the format encoders.

    Subclasses decide layout; this class resolves wire names, applies
    registered codecs and renders scalars.
    """

    tag_key: ClassVar[str]

    def prepare(self, obj: Any) -> Any:
        """Replace enums and registered types with their builtin form."""
        if isinstance(obj, Enum):
            return obj.value
        if codec := TypeCodecs.get(type(obj)):
            return codec[0](obj)
        return obj

    def record_items(self, obj: Any) -> Iterator[tuple[str, Any, Any]]:
        """(wire name, value, annotation) for each serializable field."""
        for f in record_schema(type(obj), self.tag_key):
            yield f.wire_name, getattr(obj, f.name), f.type

    def mapping_items(
        self,
        obj: Mapping[Any, Any],
        path: str,
    ) -> Iterator[tuple[str, Any, Any]]:
        """(key, value, Any) for each entry; keys must be str."""
        for key, value in obj.items():
            if not isinstance(key, str):
                msg = f"mapping keys must be str, got {type(key).__name__}"
                raise UnsupportedTypeError(msg, path)
            yield key, value, Any

    def scalar(self, obj: Any, path: str) -> str | None:
        """Render str, bool, int and float; None for anything else."""
        # bool first: it is a subclass of int
        if isinstance(obj, bool):
            return "true" if obj else "false"
        if isinstance(obj, int):
            if not INT64_MIN <= obj <= INT64_MAX:
                msg = f"integer {obj} out of 64-bit range"
                raise UnsupportedTypeError(msg, path)
            return str(int(obj))
        if isinstance(obj, float):
            return format_float(obj, path)
        if isinstance(obj, str):
            return escape_string(obj)
        return None

    def unsupported(self, obj: Any, path: str) -> UnsupportedTypeError:
        """Error for a value with no encoding rule."""
        return UnsupportedTypeError(f"unsupported type: {type(obj).__qualname__}", path)


def format_float(value: float, path: str = "") -> str:
    """Fixed-point, shortest round-trip digits, always with a decimal point."""
    if math.isnan(value) or math.isinf(value):
        msg = f"cannot encode non-finite float {value!r}"
        raise UnsupportedTypeError(msg, path)
    text = format(Decimal(repr(float(value))), "f")
    return text if "." in text else f"{text}.0"

