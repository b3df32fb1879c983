"""Message decoding exports."""

from .decoded_messages import DecodedMessage, KafkaRawMessage
from .record_decoder import MAGIC_BYTE, WIRE_HEADER_SIZE, decode_record, read_schema_id

__all__ = [
    "DecodedMessage",
    "KafkaRawMessage",
    "MAGIC_BYTE",
    "WIRE_HEADER_SIZE",
    "decode_record",
    "read_schema_id",
]
