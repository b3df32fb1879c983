"""Record and message entities."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol


class KafkaRawMessage(Protocol):
    """Subset of the Kafka message API required to decode a record."""

    def error(self) -> Any: ...

    def topic(self) -> str | None: ...

    def partition(self) -> int | None: ...

    def offset(self) -> int | None: ...

    def key(self) -> bytes | None: ...

    def value(self) -> bytes | None: ...

    def headers(self) -> Sequence[tuple[str, bytes | None]] | None: ...

    def timestamp(self) -> tuple[int, int]: ...


@dataclass(frozen=True)
class DecodedMessage:  # pylint: disable=too-many-instance-attributes
    """Registry-decoded Kafka record handed to the data callback."""

    schema_id: int
    topic: str
    partition: int
    offset: int
    key: str
    value: str
    headers: Mapping[str, str] | None = None
    timestamp: datetime | None = None
