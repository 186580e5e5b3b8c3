"""Registry of codecs for types with no native wire representation."""

from __future__ import annotations

import base64
import logging
from collections.abc import Callable
from datetime import date, time, timedelta
from decimal import Decimal
from typing import Any, ClassVar

logger = logging.getLogger(__name__)


class TypeCodecs:
    """Registry mapping a Python type to encode/decode functions.

    The encode function turns an instance into builtins the mapper already
    knows how to write (str, int, float, bool, list, dict). The decode
    function receives the same builtins back and rebuilds the instance.

    Usage:
        TypeCodecs.register(
            UUID,
            encode=str,
            decode=UUID,
        )
    """

    _registry: ClassVar[
        dict[type, tuple[Callable[[Any], Any], Callable[[Any], Any]]]
    ] = {}

    @classmethod
    def register[T](
        cls,
        typ: type[T],
        encode: Callable[[T], Any],
        decode: Callable[[Any], T],
    ) -> None:
        """Register encode/decode functions for a type.

        Registering a type again replaces its previous codec.
        """
        cls._registry[typ] = (encode, decode)
        logger.debug("Registered codec for %s", typ.__qualname__)

    @classmethod
    def get[T](
        cls,
        typ: type[T],
    ) -> tuple[Callable[[T], Any], Callable[[Any], T]] | None:
        """Get codec for type, or None if not registered."""
        return cls._registry.get(typ)

    @classmethod
    def unregister(cls, typ: type) -> bool:
        """Unregister a type's codec.

        Returns:
            True if the type was registered and removed, False otherwise.

        """
        if typ in cls._registry:
            del cls._registry[typ]
            return True
        return False

    @classmethod
    def clear(cls) -> None:
        """Clear codec registry and re-register builtins."""
        cls._registry.clear()
        _register_builtins()


def _register_builtins() -> None:
    """Pre-register codecs for standard library types."""
    TypeCodecs.register(
        bytes,
        encode=lambda b: base64.b64encode(b).decode("ascii"),
        decode=base64.b64decode,
    )

    TypeCodecs.register(
        date,
        encode=lambda d: d.isoformat(),
        decode=date.fromisoformat,
    )

    TypeCodecs.register(
        time,
        encode=lambda t: t.isoformat(),
        decode=time.fromisoformat,
    )

    TypeCodecs.register(
        timedelta,
        encode=lambda td: td.total_seconds(),
        decode=lambda s: timedelta(seconds=s),
    )

    TypeCodecs.register(
        Decimal,
        encode=str,
        decode=Decimal,
    )


# Register builtins on module load
_register_builtins()
