"""Format adapters.

Importing this package registers each adapter with the format factory.
"""

from typedserde.formats.json import JSONAdapter
from typedserde.formats.toml import TOMLAdapter

__all__ = ["JSONAdapter", "TOMLAdapter"]
