"""Configuration loader service."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import yaml

from avro_event_consumer.errors import AvroConsumerError

from .runtime_settings import (
    Configuration,
    ConsumerBehaviour,
    InitialOffset,
    KafkaSettings,
    RegistrySettings,
)


class ConfigurationError(AvroConsumerError):
    """Raised when the configuration file is invalid."""


def load_configuration(config_path: Path | str) -> Configuration:
    """Load and validate the configuration file."""
    path = Path(config_path)
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    text = path.read_text(encoding="utf-8")
    try:
        parsed = yaml.safe_load(text)
    except yaml.YAMLError as exc:  # pragma: no cover - exercised indirectly
        raise ConfigurationError(f"Failed to parse configuration file: {exc}") from exc

    if parsed is None:
        parsed = {}

    if not isinstance(parsed, Mapping):
        raise ConfigurationError("Configuration root must be a mapping.")

    kafka = _parse_kafka_section(parsed.get("kafka"))
    schema_registry = _parse_registry_section(parsed.get("schema_registry"))
    consumer = _parse_consumer_section(parsed.get("consumer"))

    return Configuration(
        path=path,
        kafka=kafka,
        schema_registry=schema_registry,
        consumer=consumer,
    )


def _parse_kafka_section(value: Any) -> KafkaSettings:
    section = _require_mapping(value, "kafka")
    bootstrap_servers = _normalize_server_list(
        section.get("bootstrap_servers"), "kafka.bootstrap_servers"
    )
    topic = _require_non_empty_string(section.get("topic"), "kafka.topic")
    group_id = _require_non_empty_string(section.get("group_id"), "kafka.group_id")
    security = section.get("security") or {}
    if not isinstance(security, Mapping):
        raise ConfigurationError("kafka.security must be a mapping.")
    poll_interval_ms = _require_positive_int(
        section.get("poll_interval_ms", 500), "kafka.poll_interval_ms"
    )
    connect_timeout_seconds = _require_positive_int(
        section.get("connect_timeout_seconds", 10), "kafka.connect_timeout_seconds"
    )
    return KafkaSettings(
        bootstrap_servers=bootstrap_servers,
        topic=topic,
        group_id=group_id,
        security=dict(security),
        poll_interval_ms=poll_interval_ms,
        connect_timeout_seconds=connect_timeout_seconds,
    )


def _parse_registry_section(value: Any) -> RegistrySettings:
    section = _require_mapping(value, "schema_registry")
    urls = _normalize_server_list(section.get("urls"), "schema_registry.urls")
    client_config = section.get("client_config") or {}
    if not isinstance(client_config, Mapping):
        raise ConfigurationError("schema_registry.client_config must be a mapping.")
    verify = _optional_bool(section.get("verify"), "schema_registry.verify", default=True)
    return RegistrySettings(urls=urls, client_config=dict(client_config), verify=verify)


def _parse_consumer_section(value: Any) -> ConsumerBehaviour:
    # The whole section is optional; every key falls back to the default policy.
    section = {} if value is None else _require_mapping(value, "consumer")
    return_errors = _optional_bool(
        section.get("return_errors"), "consumer.return_errors", default=True
    )
    return_notifications = _optional_bool(
        section.get("return_notifications"), "consumer.return_notifications", default=True
    )
    validate_magic_byte = _optional_bool(
        section.get("validate_magic_byte"), "consumer.validate_magic_byte", default=False
    )
    initial_offset_raw = _require_non_empty_string(
        section.get("initial_offset", InitialOffset.OLDEST.value), "consumer.initial_offset"
    ).lower()
    try:
        initial_offset = InitialOffset(initial_offset_raw)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in InitialOffset)
        raise ConfigurationError(
            f"consumer.initial_offset must be one of: {allowed}."
        ) from exc
    return ConsumerBehaviour(
        return_errors=return_errors,
        return_notifications=return_notifications,
        initial_offset=initial_offset,
        validate_magic_byte=validate_magic_byte,
    )


def _normalize_server_list(value: Any, field_name: str) -> tuple[str, ...]:
    if value is None:
        raise ConfigurationError(f"{field_name} is required.")
    servers: list[str] = []
    if isinstance(value, str):
        servers = [item.strip() for item in value.split(",") if item.strip()]
    elif isinstance(value, Sequence):
        for item in value:
            if not isinstance(item, str):
                raise ConfigurationError(f"{field_name} entries must be strings.")
            stripped = item.strip()
            if stripped:
                servers.append(stripped)
    else:
        raise ConfigurationError(f"{field_name} must be a string or list of strings.")
    if not servers:
        raise ConfigurationError(f"{field_name} must contain at least one server.")
    return tuple(servers)


def _require_mapping(value: Any, section_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"Configuration section '{section_name}' is required.")
    return value


def _require_non_empty_string(value: Any, field_name: str) -> str:
    if not isinstance(value, str):
        raise ConfigurationError(f"{field_name} must be a string.")
    stripped = value.strip()
    if not stripped:
        raise ConfigurationError(f"{field_name} must not be empty.")
    return stripped


def _optional_bool(value: Any, field_name: str, *, default: bool) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ConfigurationError(f"{field_name} must be a boolean.")
    return value


def _require_positive_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{field_name} must be an integer.")
    if not isinstance(value, int):
        raise ConfigurationError(f"{field_name} must be an integer.")
    if value <= 0:
        raise ConfigurationError(f"{field_name} must be greater than zero.")
    return value
