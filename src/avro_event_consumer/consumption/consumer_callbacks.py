"""Callback and notification entities."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from avro_event_consumer.message_decoding.decoded_messages import DecodedMessage


class NotificationKind(str, Enum):
    """Consumer-group rebalance events."""

    ASSIGNED = "assigned"
    REVOKED = "revoked"
    LOST = "lost"


@dataclass(frozen=True)
class PartitionRef:
    """Topic partition affected by a rebalance."""

    topic: str
    partition: int


@dataclass(frozen=True)
class GroupNotification:
    """Rebalance notification forwarded to ``on_notification``."""

    kind: NotificationKind
    partitions: tuple[PartitionRef, ...]

    @classmethod
    def from_topic_partitions(
        cls, kind: NotificationKind, partitions: Iterable[Any]
    ) -> GroupNotification:
        return cls(
            kind=kind,
            partitions=tuple(
                PartitionRef(topic=str(item.topic), partition=int(item.partition))
                for item in partitions
            ),
        )


@dataclass(frozen=True)
class ConsumerCallbacks:
    """Optional handlers; a missing handler means the event is dropped."""

    on_data_received: Callable[[DecodedMessage], None] | None = None
    on_error: Callable[[Exception], None] | None = None
    on_notification: Callable[[GroupNotification], None] | None = None
