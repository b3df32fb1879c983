"""Kafka client adapter exposing record, error and notification channels."""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable, Iterator, Sequence
from typing import Any, Protocol

from confluent_kafka import Consumer, KafkaError
from avro_event_consumer.configuration.runtime_settings import ConsumerConfig
from avro_event_consumer.errors import TransportError
from avro_event_consumer.message_decoding.decoded_messages import KafkaRawMessage

from .consumer_callbacks import GroupNotification, NotificationKind

logger = logging.getLogger(__name__)

_KAFKA_CLIENT_LOGGER = logging.getLogger("avro_event_consumer.kafka.client")
_KAFKA_CLIENT_LOGGER.addHandler(logging.NullHandler())
_KAFKA_CLIENT_LOGGER.propagate = False
_KAFKA_CLIENT_LOGGER.setLevel(logging.CRITICAL + 1)

_CLOSED = object()


class KafkaConsumerProtocol(Protocol):
    """Protocol implemented by both real and fake consumers."""

    def subscribe(self, topics: list[str], **kwargs: Any) -> None: ...

    def poll(self, timeout: float) -> KafkaRawMessage | None: ...

    def store_offsets(self, message: Any = None, **kwargs: Any) -> None: ...

    def list_topics(self, topic: str | None = None, timeout: float = -1) -> Any: ...

    def close(self) -> None: ...


ConsumerFactory = Callable[..., KafkaConsumerProtocol]


def enable_client_logging(level: int = logging.DEBUG) -> None:
    """Let librdkafka log lines reach the root logger."""
    _KAFKA_CLIENT_LOGGER.setLevel(level)
    _KAFKA_CLIENT_LOGGER.propagate = True


def build_kafka_config(
    bootstrap_servers: Sequence[str], group_id: str, config: ConsumerConfig
) -> dict[str, Any]:
    """Translate the consumer config into librdkafka properties."""
    kafka_config: dict[str, Any] = {
        "bootstrap.servers": ",".join(bootstrap_servers),
        "group.id": group_id,
        "auto.offset.reset": config.initial_offset.auto_offset_reset,
        # Stored offsets are committed in the background and on close.
        "enable.auto.commit": True,
        "enable.auto.offset.store": False,
        "enable.partition.eof": False,
    }
    kafka_config.update(config.kafka_overrides)
    return kafka_config


class KafkaTransport:
    """Owns the Kafka consumer and fans its events out onto three channels.

    Records are pulled with :meth:`poll`. Client errors and rebalance events are
    raised by librdkafka from inside ``poll`` and are queued on :attr:`errors`
    and :attr:`notifications`; :meth:`close` terminates both channels.
    """

    def __init__(
        self,
        kafka_config: dict[str, Any],
        topic: str,
        *,
        return_errors: bool = True,
        return_notifications: bool = True,
        consumer_factory: ConsumerFactory | None = None,
    ) -> None:
        self._topic = topic
        self._return_errors = return_errors
        self._return_notifications = return_notifications
        self.errors: queue.Queue[Any] = queue.Queue()
        self.notifications: queue.Queue[Any] = queue.Queue()
        self._closed = False
        self._close_lock = threading.Lock()
        config = dict(kafka_config)
        config["error_cb"] = self.report_error
        self._consumer = self._create_consumer(config, consumer_factory or Consumer)

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self) -> None:
        """Join the consumer group for the configured topic."""
        kwargs: dict[str, Any] = {}
        if self._return_notifications:
            kwargs = {
                "on_assign": self._on_assign,
                "on_revoke": self._on_revoke,
                "on_lost": self._on_lost,
            }
        self._consumer.subscribe([self._topic], **kwargs)

    def verify_connectivity(self, timeout: float) -> None:
        """Fetch topic metadata; raises KafkaException when brokers are unreachable."""
        self._consumer.list_topics(topic=self._topic, timeout=timeout)

    def poll(self, timeout: float) -> KafkaRawMessage | None:
        """Return the next data record, or None when nothing arrived within ``timeout``."""
        message = self._consumer.poll(timeout)
        if message is None:
            return None
        error = message.error()
        if error:
            if error.code() != KafkaError._PARTITION_EOF:  # pylint: disable=protected-access
                self.report_error(error)
            return None
        return message

    def acknowledge(self, message: KafkaRawMessage) -> None:
        """Mark ``message`` as processed so its offset is committed."""
        self._consumer.store_offsets(message=message)

    def report_error(self, kafka_error: Any) -> None:
        if not self._return_errors:
            logger.warning("Kafka error: %s", kafka_error)
            return
        self.errors.put(TransportError(kafka_error))

    def drain(self, channel: queue.Queue[Any]) -> Iterator[Any]:
        """Yield items from ``channel`` until the transport is closed."""
        while True:
            item = channel.get()
            if item is _CLOSED:
                return
            yield item

    def close(self) -> None:
        """Close the consumer and terminate the error and notification channels."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        try:
            self._consumer.close()
        finally:
            self.errors.put(_CLOSED)
            self.notifications.put(_CLOSED)

    def _on_assign(self, _consumer: Any, partitions: list[Any]) -> None:
        self._notify(NotificationKind.ASSIGNED, partitions)

    def _on_revoke(self, _consumer: Any, partitions: list[Any]) -> None:
        self._notify(NotificationKind.REVOKED, partitions)

    def _on_lost(self, _consumer: Any, partitions: list[Any]) -> None:
        self._notify(NotificationKind.LOST, partitions)

    def _notify(self, kind: NotificationKind, partitions: list[Any]) -> None:
        logger.info("Partitions %s: %d", kind.value, len(partitions))
        self.notifications.put(GroupNotification.from_topic_partitions(kind, partitions))

    @staticmethod
    def _create_consumer(
        config: dict[str, Any], consumer_factory: ConsumerFactory
    ) -> KafkaConsumerProtocol:
        try:
            return consumer_factory(config, logger=_KAFKA_CLIENT_LOGGER)
        except TypeError:
            # Older/mock Consumer implementations may not support the logger kwarg.
            return consumer_factory(config)
