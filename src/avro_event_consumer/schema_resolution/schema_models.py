"""Schema resolution contracts."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol


class SchemaCodec(Protocol):
    """Converts one schema's binary datum to native form and native form to text."""

    def native_from_binary(self, payload: bytes) -> Any: ...

    def textual_from_native(self, native: Any) -> str: ...


SchemaResolver = Callable[[int], SchemaCodec]
"""Maps a registry schema id to its codec; raises when the id cannot be resolved."""
