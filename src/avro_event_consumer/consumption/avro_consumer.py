"""Avro consumer: event loop and lifecycle."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Any

from confluent_kafka import KafkaException
from avro_event_consumer.configuration.runtime_settings import (
    ConsumerConfig,
    default_consumer_config,
)
from avro_event_consumer.errors import (
    ConsumerClosedError,
    ConsumerConnectionError,
    TransportError,
)
from avro_event_consumer.message_decoding.decoded_messages import KafkaRawMessage
from avro_event_consumer.message_decoding.record_decoder import decode_record
from avro_event_consumer.schema_resolution.schema_models import SchemaCodec, SchemaResolver
from avro_event_consumer.schema_resolution.schema_registry_resolver import (
    RegistryClientFactory,
    SchemaRegistryResolver,
    build_registry_client,
)

from .consumer_callbacks import ConsumerCallbacks
from .kafka_transport import ConsumerFactory, KafkaTransport, build_kafka_config

logger = logging.getLogger(__name__)


class ConsumerState(str, Enum):
    """Event loop states."""

    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"
    TERMINATED = "terminated"


class AvroConsumer:
    """Consumes registry-encoded Avro records and hands them to callbacks."""

    def __init__(
        self,
        transport: KafkaTransport,
        resolver: SchemaResolver,
        callbacks: ConsumerCallbacks,
        config: ConsumerConfig | None = None,
    ) -> None:
        self._transport = transport
        self._resolver = resolver
        self._callbacks = callbacks
        self._config = config or default_consumer_config()
        self._state = ConsumerState.IDLE
        self._shutdown = threading.Event()
        self._executor: ThreadPoolExecutor | None = None
        self._drain_threads: set[int] = set()
        self._closed = False

    @property
    def state(self) -> ConsumerState:
        return self._state

    @property
    def config(self) -> ConsumerConfig:
        return self._config

    def get_schema(self, schema_id: int) -> SchemaCodec:
        """Return the codec the registry holds for ``schema_id``."""
        return self._resolver(schema_id)

    def stop(self) -> None:
        """Ask the running :meth:`consume` call to return after the current record.

        The request applies to that call only; a later :meth:`consume` starts afresh.
        """
        self._shutdown.set()

    def consume(self, shutdown: threading.Event | None = None) -> None:
        """Run the event loop until ``shutdown`` (or :meth:`stop`) is signalled.

        Each polled record is decoded exactly once and acknowledged afterwards,
        whether decoding succeeded or not. Records not yet polled when shutdown is
        observed are left untouched.
        """
        if self._closed:
            raise ConsumerClosedError("Consumer has been closed.")
        self._shutdown.clear()
        stop_event = shutdown or self._shutdown
        self._start_background_drains()
        self._state = ConsumerState.RUNNING
        logger.info("Consuming from topic %s", self._transport.topic)
        try:
            while not (stop_event.is_set() or self._shutdown.is_set()):
                record = self._transport.poll(self._config.poll_timeout_seconds)
                if record is None:
                    continue
                self._process_record(record)
            self._state = ConsumerState.DRAINING
            logger.info("Shutdown requested; leaving event loop")
        finally:
            self._state = ConsumerState.TERMINATED

    def close(self) -> None:
        """Release the Kafka connection and stop the background drains. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._shutdown.set()
        try:
            self._transport.close()
        finally:
            if self._executor is not None:
                # A drain thread cannot join itself when a callback closes the consumer.
                self._executor.shutdown(wait=threading.get_ident() not in self._drain_threads)
            self._state = ConsumerState.TERMINATED

    def __enter__(self) -> AvroConsumer:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _process_record(self, record: KafkaRawMessage) -> None:
        try:
            message = decode_record(
                record,
                self._resolver,
                validate_magic_byte=self._config.validate_magic_byte,
            )
        except Exception as exc:  # pylint: disable=broad-exception-caught
            self._dispatch_error(exc)
        else:
            if self._callbacks.on_data_received is not None:
                _invoke(self._callbacks.on_data_received, message)
        if self._transport.closed:
            return
        try:
            self._transport.acknowledge(record)
        except KafkaException as exc:
            self._dispatch_error(TransportError(exc.args[0] if exc.args else exc))

    def _dispatch_error(self, error: Exception) -> None:
        if self._callbacks.on_error is None:
            logger.error("Unhandled consumer error: %s", error)
            return
        _invoke(self._callbacks.on_error, error)

    def _dispatch_notification(self, notification: Any) -> None:
        if self._callbacks.on_notification is None:
            logger.debug("Dropping notification %s", notification)
            return
        _invoke(self._callbacks.on_notification, notification)

    def _start_background_drains(self) -> None:
        if self._executor is not None:
            return
        self._executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="avro-consumer")
        if self._config.return_errors:
            self._executor.submit(self._drain, self._transport.errors, self._dispatch_error)
        if self._config.return_notifications:
            self._executor.submit(
                self._drain, self._transport.notifications, self._dispatch_notification
            )

    def _drain(self, channel: Any, dispatch: Callable[[Any], None]) -> None:
        self._drain_threads.add(threading.get_ident())
        for item in self._transport.drain(channel):
            dispatch(item)


def _invoke(handler: Callable[[Any], None], payload: Any) -> None:
    try:
        handler(payload)
    except Exception:  # pylint: disable=broad-exception-caught
        logger.exception("Consumer callback %r raised", handler)


def create_avro_consumer(  # pylint: disable=too-many-arguments
    kafka_servers: Sequence[str],
    schema_registry_servers: Sequence[str],
    topic: str,
    group_id: str,
    callbacks: ConsumerCallbacks,
    config: ConsumerConfig | None = None,
    *,
    consumer_factory: ConsumerFactory | None = None,
    registry_client_factory: RegistryClientFactory | None = None,
) -> AvroConsumer:
    """Connect to Kafka and the schema registry and return a ready consumer.

    Raises:
      ConsumerConnectionError: If the Kafka client cannot be created or the
        brokers or registry cannot be reached.
    """
    resolved_config = config or default_consumer_config()
    try:
        transport = KafkaTransport(
            build_kafka_config(kafka_servers, group_id, resolved_config),
            topic,
            return_errors=resolved_config.return_errors,
            return_notifications=resolved_config.return_notifications,
            consumer_factory=consumer_factory,
        )
    except (KafkaException, ValueError) as exc:
        raise ConsumerConnectionError(f"Unable to create Kafka consumer: {exc}") from exc

    try:
        transport.subscribe()
        transport.verify_connectivity(resolved_config.connect_timeout_seconds)
    except (KafkaException, ValueError) as exc:
        transport.close()
        raise ConsumerConnectionError(f"Unable to reach Kafka brokers: {exc}") from exc

    try:
        resolver = SchemaRegistryResolver(
            build_registry_client(
                schema_registry_servers,
                resolved_config.registry_overrides,
                client_factory=registry_client_factory,
            )
        )
        if resolved_config.verify_registry:
            resolver.verify_connectivity()
    # Registry transports raise their own exception hierarchies.
    except Exception as exc:  # pylint: disable=broad-exception-caught
        transport.close()
        raise ConsumerConnectionError(f"Unable to reach schema registry: {exc}") from exc

    return AvroConsumer(transport, resolver, callbacks, resolved_config)
