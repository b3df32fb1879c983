"""Record decoder tests."""

from __future__ import annotations

import struct
from datetime import UTC, datetime

import pytest
from avro_event_consumer.errors import RecordDecodeError, SchemaResolutionError
from avro_event_consumer.message_decoding.record_decoder import decode_record, read_schema_id
from avro_event_consumer.schema_resolution.avro_codec import AvroSchemaCodec
from confluent_kafka import TIMESTAMP_CREATE_TIME, TIMESTAMP_NOT_AVAILABLE

_X_CODEC = AvroSchemaCodec.from_schema_text(
    '{"type":"record","fields":[{"name":"x","type":"int"}]}'
)


class FakeRecord:
    def __init__(
        self,
        payload: bytes | None,
        *,
        key: bytes | None = None,
        headers: list[tuple[str, bytes | None]] | None = None,
        timestamp: tuple[int, int] = (TIMESTAMP_NOT_AVAILABLE, 0),
    ) -> None:
        self._payload = payload
        self._key = key
        self._headers = headers
        self._timestamp = timestamp

    def error(self) -> None:
        return None

    def topic(self) -> str:
        return "orders"

    def partition(self) -> int:
        return 3

    def offset(self) -> int:
        return 1187

    def key(self) -> bytes | None:
        return self._key

    def value(self) -> bytes | None:
        return self._payload

    def headers(self) -> list[tuple[str, bytes | None]] | None:
        return self._headers

    def timestamp(self) -> tuple[int, int]:
        return self._timestamp


class RecordingResolver:
    def __init__(self, codecs: dict[int, AvroSchemaCodec]) -> None:
        self.codecs = codecs
        self.calls: list[int] = []

    def __call__(self, schema_id: int) -> AvroSchemaCodec:
        self.calls.append(schema_id)
        if schema_id not in self.codecs:
            raise SchemaResolutionError(schema_id, "not registered")
        return self.codecs[schema_id]


def _wire(schema_id: int, body: bytes, marker: int = 0) -> bytes:
    return bytes([marker]) + struct.pack(">I", schema_id) + body


def test_decodes_registry_record_with_metadata() -> None:
    resolver = RecordingResolver({7: _X_CODEC})

    message = decode_record(FakeRecord(_wire(7, b"\x02"), key=b"order-1"), resolver)

    assert message.schema_id == 7
    assert message.value == '{"x":1}'
    assert (message.topic, message.partition, message.offset) == ("orders", 3, 1187)
    assert message.key == "order-1"
    assert message.headers is None
    assert message.timestamp is None
    assert resolver.calls == [7]


def test_headers_are_copied_as_strings() -> None:
    record = FakeRecord(
        _wire(7, b"\x02"),
        headers=[("trace-id", b"abc"), ("empty", None)],
    )

    message = decode_record(record, RecordingResolver({7: _X_CODEC}))

    assert message.headers == {"trace-id": "abc", "empty": ""}


def test_empty_header_list_is_treated_as_absent() -> None:
    message = decode_record(
        FakeRecord(_wire(7, b"\x02"), headers=[]), RecordingResolver({7: _X_CODEC})
    )

    assert message.headers is None


def test_timestamp_is_converted_when_available() -> None:
    record = FakeRecord(_wire(7, b"\x02"), timestamp=(TIMESTAMP_CREATE_TIME, 1_700_000_000_000))

    message = decode_record(record, RecordingResolver({7: _X_CODEC}))

    assert message.timestamp == datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC)


@pytest.mark.parametrize("timestamp_ms", [2**62, -(2**62)])
def test_out_of_range_timestamp_is_treated_as_absent(timestamp_ms: int) -> None:
    record = FakeRecord(_wire(7, b"\x02"), timestamp=(TIMESTAMP_CREATE_TIME, timestamp_ms))

    message = decode_record(record, RecordingResolver({7: _X_CODEC}))

    assert message.value == '{"x":1}'
    assert message.timestamp is None


def test_bytes_after_the_avro_datum_do_not_block_delivery() -> None:
    message = decode_record(FakeRecord(_wire(7, b"\x02\x00")), RecordingResolver({7: _X_CODEC}))

    assert message.value == '{"x":1}'


def test_missing_key_becomes_empty_string() -> None:
    message = decode_record(FakeRecord(_wire(7, b"\x02")), RecordingResolver({7: _X_CODEC}))

    assert message.key == ""


@pytest.mark.parametrize("payload", [b"", b"\x00\x00\x00", b"\x00\x00\x00\x07", None])
def test_short_payload_raises_without_resolving(payload: bytes | None) -> None:
    resolver = RecordingResolver({7: _X_CODEC})

    with pytest.raises(RecordDecodeError, match="wire header"):
        decode_record(FakeRecord(payload), resolver)

    assert resolver.calls == []


def test_resolver_error_propagates_unchanged() -> None:
    failure = SchemaResolutionError(99, "not registered")

    def _resolve(schema_id: int) -> AvroSchemaCodec:
        raise failure

    with pytest.raises(SchemaResolutionError) as exc_info:
        decode_record(FakeRecord(_wire(99, b"\x02")), _resolve)

    assert exc_info.value is failure


def test_resolver_error_skips_textual_conversion() -> None:
    class _Codec:
        def native_from_binary(self, payload: bytes) -> object:
            raise AssertionError("must not decode")

        def textual_from_native(self, native: object) -> str:
            raise AssertionError("must not encode")

    resolver = RecordingResolver({1: _Codec()})  # type: ignore[dict-item]

    with pytest.raises(SchemaResolutionError):
        decode_record(FakeRecord(_wire(99, b"")), resolver)


def test_binary_decode_failure_is_a_decode_error() -> None:
    with pytest.raises(RecordDecodeError, match="Unexpected end"):
        decode_record(FakeRecord(_wire(7, b"")), RecordingResolver({7: _X_CODEC}))


def test_foreign_codec_failures_are_wrapped() -> None:
    class _BrokenCodec:
        def native_from_binary(self, payload: bytes) -> object:
            return {"x": 1}

        def textual_from_native(self, native: object) -> str:
            raise TypeError("cannot serialise")

    resolver = RecordingResolver({7: _BrokenCodec()})  # type: ignore[dict-item]

    with pytest.raises(RecordDecodeError, match="Schema id 7: cannot serialise") as exc_info:
        decode_record(FakeRecord(_wire(7, b"\x02")), resolver)

    assert isinstance(exc_info.value.__cause__, TypeError)


def test_marker_byte_is_not_checked_by_default() -> None:
    message = decode_record(
        FakeRecord(_wire(7, b"\x02", marker=0x5A)), RecordingResolver({7: _X_CODEC})
    )

    assert message.value == '{"x":1}'


def test_marker_byte_can_be_validated() -> None:
    resolver = RecordingResolver({7: _X_CODEC})

    with pytest.raises(RecordDecodeError, match="marker byte: 0x5a"):
        decode_record(
            FakeRecord(_wire(7, b"\x02", marker=0x5A)), resolver, validate_magic_byte=True
        )

    assert resolver.calls == []


def test_read_schema_id_is_big_endian() -> None:
    assert read_schema_id(b"\x00\x01\x02\x03\x04rest") == 0x01020304
