"""Format adapters: the uniform encode/decode contract and the format factory."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar

from typedserde.errors import ParseError, UnsupportedFormatError, UnsupportedTypeError
from typedserde.mapper import Decoder, zero_value

if TYPE_CHECKING:
    from typedserde.values import Value

logger = logging.getLogger(__name__)


class FormatAdapter(ABC):
    """Base class for format-specific codecs.

    Subclasses register themselves under a format name:

        class JSONAdapter(FormatAdapter, format_name="JSON", tag_key="json"):
            ...

    and are then reachable through new("json").
    """

    format_name: ClassVar[str]
    tag_key: ClassVar[str]
    registry: ClassVar[dict[str, type[FormatAdapter]]] = {}

    def __init_subclass__(
        cls,
        format_name: str | None = None,
        tag_key: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Register adapter subclass under its format name."""
        super().__init_subclass__(**kwargs)
        if format_name is None:
            return
        cls.format_name = format_name
        cls.tag_key = tag_key if tag_key is not None else format_name.lower()

        key = format_name.lower()
        if (existing := FormatAdapter.registry.get(key)) and existing is not cls:
            msg = (
                f"Format '{format_name}' already registered to {existing}. "
                "Choose a different format name."
            )
            raise ValueError(msg)
        FormatAdapter.registry[key] = cls

    def encode(self, value: Any) -> bytes:
        """Serialize a native value to UTF-8 encoded text."""
        text = self.render(value)
        try:
            data = text.encode("utf-8")
        except UnicodeEncodeError as exc:
            msg = f"output is not encodable as UTF-8: {exc}"
            raise UnsupportedTypeError(msg) from exc
        logger.debug(
            "Encoded %s to %d bytes of %s",
            type(value).__name__,
            len(data),
            self.format_name,
        )
        return data

    def decode(self, data: bytes | str, destination: Any) -> None:
        """Parse data and populate destination in place.

        Args:
            data: Serialized text, as bytes (UTF-8) or str
            destination: Mutable dataclass instance, list or dict

        Raises:
            UsageError: If destination cannot be populated in place
            ParseError: If data is not valid in this format
            TypeMismatchError: If a value does not fit the destination's types

        Note:
            A ``null`` resets the matching field to its zero value, even if
            the field was populated before the call. Keys missing from the
            input leave fields untouched. On error the destination may be
            partially populated.

        """
        decoder = Decoder(self.tag_key)
        decoder.check_destination(destination)
        value = self.parse(_as_text(data))
        decoder.decode_into(destination, value)
        logger.debug(
            "Decoded %d bytes of %s into %s",
            len(data),
            self.format_name,
            type(destination).__name__,
        )

    def decode_as[T](self, data: bytes | str, typ: type[T]) -> T:
        """Parse data into a fresh instance of typ.

        Starts from the zero value of typ, so absent keys keep zero values.
        """
        decoder = Decoder(self.tag_key)
        value = self.parse(_as_text(data))
        return decoder.convert(value, typ, zero_value(typ), "")

    @abstractmethod
    def render(self, value: Any) -> str:
        """Serialize a native value to text."""
        ...

    @abstractmethod
    def parse(self, text: str) -> Value:
        """Parse text into a value tree."""
        ...


def _as_text(data: bytes | str) -> str:
    if isinstance(data, str):
        return data
    try:
        return bytes(data).decode("utf-8")
    except UnicodeDecodeError as exc:
        msg = f"input is not valid UTF-8: {exc}"
        raise ParseError(msg) from exc


def new(format_name: str) -> FormatAdapter:
    """Create the adapter registered under format_name (case-insensitive).

    Raises:
        UnsupportedFormatError: If no adapter is registered under that name

    """
    adapter_cls = FormatAdapter.registry.get(format_name.lower())
    if adapter_cls is None:
        available = sorted(cls.format_name for cls in FormatAdapter.registry.values())
        msg = (
            f"unsupported serialization format '{format_name}'. "
            f"Available formats: {available}"
        )
        raise UnsupportedFormatError(msg)
    logger.debug("Resolved format '%s' to %s", format_name, adapter_cls.__name__)
    return adapter_cls()
