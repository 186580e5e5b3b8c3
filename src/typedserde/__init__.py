"""typedserde - JSON and TOML codecs for dataclass records."""

from typedserde.adapters import (
    FormatAdapter,
    new,
)
from typedserde.codecs import TypeCodecs
from typedserde.errors import (
    ParseError,
    SerializerError,
    TypeMismatchError,
    UnsupportedFormatError,
    UnsupportedTypeError,
    UsageError,
)
from typedserde.formats import (
    JSONAdapter,
    TOMLAdapter,
)
from typedserde.schema import (
    FieldSchema,
    record_schema,
    tag,
)
from typedserde.serialization import (
    from_json,
    from_toml,
    to_json,
    to_toml,
)

__all__ = [
    "FieldSchema",
    "FormatAdapter",
    "JSONAdapter",
    "ParseError",
    "SerializerError",
    "TOMLAdapter",
    "TypeCodecs",
    "TypeMismatchError",
    "UnsupportedFormatError",
    "UnsupportedTypeError",
    "UsageError",
    "from_json",
    "from_toml",
    "new",
    "record_schema",
    "tag",
    "to_json",
    "to_toml",
]
