"""Registry wire-format record decoding."""

from __future__ import annotations

import struct
from datetime import UTC, datetime

from confluent_kafka import TIMESTAMP_NOT_AVAILABLE
from avro_event_consumer.errors import RecordDecodeError
from avro_event_consumer.schema_resolution.schema_models import SchemaResolver

from .decoded_messages import DecodedMessage, KafkaRawMessage

MAGIC_BYTE = 0
WIRE_HEADER_SIZE = 5
_SCHEMA_ID = struct.Struct(">I")


def read_schema_id(payload: bytes | None) -> int:
    """Return the big-endian schema id stored in bytes 1-4 of a registry payload."""
    if payload is None or len(payload) < WIRE_HEADER_SIZE:
        size = 0 if payload is None else len(payload)
        raise RecordDecodeError(
            f"Payload of {size} bytes is shorter than the {WIRE_HEADER_SIZE}-byte wire header."
        )
    return _SCHEMA_ID.unpack_from(payload, 1)[0]


def decode_record(
    raw: KafkaRawMessage,
    resolve: SchemaResolver,
    *,
    validate_magic_byte: bool = False,
) -> DecodedMessage:
    """Decode one registry-encoded record into a DecodedMessage.

    Errors raised by ``resolve`` propagate unchanged. Failures while reading the
    wire header, decoding the binary datum or producing the textual form raise
    RecordDecodeError.
    """
    payload = bytes(raw.value() or b"")
    schema_id = read_schema_id(payload)
    if validate_magic_byte and payload[0] != MAGIC_BYTE:
        raise RecordDecodeError(f"Unknown wire-format marker byte: {payload[0]:#04x}")

    codec = resolve(schema_id)

    try:
        native = codec.native_from_binary(payload[WIRE_HEADER_SIZE:])
        textual = codec.textual_from_native(native)
    except RecordDecodeError:
        raise
    except Exception as exc:  # pylint: disable=broad-exception-caught
        raise RecordDecodeError(f"Schema id {schema_id}: {exc}") from exc

    return DecodedMessage(
        schema_id=schema_id,
        topic=raw.topic() or "",
        partition=raw.partition() or 0,
        offset=raw.offset() or 0,
        key=_decode_key(raw.key()),
        value=textual,
        headers=_decode_headers(raw.headers()),
        timestamp=_decode_timestamp(raw.timestamp()),
    )


def _decode_key(key: bytes | None) -> str:
    if key is None:
        return ""
    return bytes(key).decode("utf-8", errors="replace")


def _decode_headers(headers) -> dict[str, str] | None:
    if not headers:
        return None
    decoded: dict[str, str] = {}
    for name, value in headers:
        decoded[str(name)] = "" if value is None else bytes(value).decode("utf-8", errors="replace")
    return decoded


def _decode_timestamp(timestamp: tuple[int, int] | None) -> datetime | None:
    if timestamp is None:
        return None
    timestamp_type, timestamp_value = timestamp
    if timestamp_type == TIMESTAMP_NOT_AVAILABLE or timestamp_value is None:
        return None
    try:
        return datetime.fromtimestamp(timestamp_value / 1000, tz=UTC)
    except (OverflowError, OSError, ValueError):
        # Producer-set timestamps can fall outside the datetime range.
        return None
