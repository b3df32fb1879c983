"""Exception taxonomy shared by the consumer components."""

from __future__ import annotations

from typing import Any


class AvroConsumerError(Exception):
    """Base class for all errors raised by avro-event-consumer."""


class ConsumerConnectionError(AvroConsumerError):
    """Raised when Kafka or the schema registry cannot be reached during construction."""


class RecordDecodeError(AvroConsumerError):
    """Raised when a record payload cannot be decoded into a message."""


class SchemaResolutionError(AvroConsumerError):
    """Raised when the schema registry cannot supply a codec for a schema id."""

    def __init__(self, schema_id: int, reason: str) -> None:
        super().__init__(f"Unable to resolve schema id {schema_id}: {reason}")
        self.schema_id = schema_id


class ConsumerClosedError(AvroConsumerError):
    """Raised when a closed consumer is asked to consume again."""


class TransportError(AvroConsumerError):
    """Error surfaced by the Kafka client outside the record-processing path."""

    def __init__(self, kafka_error: Any) -> None:
        super().__init__(f"Kafka error: {kafka_error}")
        self.kafka_error = kafka_error

    @property
    def code(self) -> Any:
        code = getattr(self.kafka_error, "code", None)
        return code() if callable(code) else None

    @property
    def fatal(self) -> bool:
        fatal = getattr(self.kafka_error, "fatal", None)
        return bool(fatal()) if callable(fatal) else False
