"""Consumption exports."""

from .avro_consumer import AvroConsumer, ConsumerState, create_avro_consumer
from .consumer_callbacks import (
    ConsumerCallbacks,
    GroupNotification,
    NotificationKind,
    PartitionRef,
)
from .kafka_transport import KafkaTransport, build_kafka_config, enable_client_logging

__all__ = [
    "AvroConsumer",
    "ConsumerState",
    "create_avro_consumer",
    "ConsumerCallbacks",
    "GroupNotification",
    "NotificationKind",
    "PartitionRef",
    "KafkaTransport",
    "build_kafka_config",
    "enable_client_logging",
]
