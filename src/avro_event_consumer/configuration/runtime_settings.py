"""Configuration domain entities."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class InitialOffset(str, Enum):
    """Where a consumer group starts when it has no committed offset."""

    OLDEST = "oldest"
    NEWEST = "newest"
    COMMITTED = "committed"

    @property
    def auto_offset_reset(self) -> str:
        """librdkafka ``auto.offset.reset`` value for this policy."""
        return _AUTO_OFFSET_RESET[self]


_AUTO_OFFSET_RESET = {
    InitialOffset.OLDEST: "earliest",
    InitialOffset.NEWEST: "latest",
    # Only committed positions are valid; a missing one is reported as an error.
    InitialOffset.COMMITTED: "error",
}


@dataclass(frozen=True)
class ConsumerConfig:
    """Behavioural switches of the Avro consumer."""

    return_errors: bool = True
    return_notifications: bool = True
    initial_offset: InitialOffset = InitialOffset.OLDEST
    validate_magic_byte: bool = False
    poll_timeout_seconds: float = 0.5
    connect_timeout_seconds: float = 10.0
    verify_registry: bool = True
    kafka_overrides: Mapping[str, object] = field(default_factory=dict)
    registry_overrides: Mapping[str, object] = field(default_factory=dict)


def default_consumer_config() -> ConsumerConfig:
    """Errors and notifications enabled, reading from the oldest offset the first time."""
    return ConsumerConfig(
        return_errors=True,
        return_notifications=True,
        initial_offset=InitialOffset.OLDEST,
    )


@dataclass(frozen=True)
class KafkaSettings:
    """Kafka consumer connectivity configuration."""

    bootstrap_servers: tuple[str, ...]
    topic: str
    group_id: str
    security: Mapping[str, object]
    poll_interval_ms: int
    connect_timeout_seconds: int


@dataclass(frozen=True)
class RegistrySettings:
    """Schema registry connectivity configuration."""

    urls: tuple[str, ...]
    client_config: Mapping[str, object]
    verify: bool


@dataclass(frozen=True)
class ConsumerBehaviour:
    """Consumer section of the configuration file."""

    return_errors: bool
    return_notifications: bool
    initial_offset: InitialOffset
    validate_magic_byte: bool


@dataclass(frozen=True)
class Configuration:
    """Top-level configuration aggregate."""

    path: Path
    kafka: KafkaSettings
    schema_registry: RegistrySettings
    consumer: ConsumerBehaviour

    def to_consumer_config(self) -> ConsumerConfig:
        """Collapse the file sections into the runtime consumer config."""
        return ConsumerConfig(
            return_errors=self.consumer.return_errors,
            return_notifications=self.consumer.return_notifications,
            initial_offset=self.consumer.initial_offset,
            validate_magic_byte=self.consumer.validate_magic_byte,
            poll_timeout_seconds=self.kafka.poll_interval_ms / 1000.0,
            connect_timeout_seconds=float(self.kafka.connect_timeout_seconds),
            verify_registry=self.schema_registry.verify,
            kafka_overrides=dict(self.kafka.security),
            registry_overrides=dict(self.schema_registry.client_config),
        )
