"""Configuration loader tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from avro_event_consumer.configuration.loader import ConfigurationError, load_configuration
from avro_event_consumer.configuration.runtime_settings import InitialOffset


def _write_file(path: Path, contents: str) -> Path:
    path.write_text(contents, encoding="utf-8")
    return path


_MINIMAL_CONFIG = """
kafka:
  bootstrap_servers: "localhost:9092"
  topic: "orders"
  group_id: "billing"
schema_registry:
  urls: "http://localhost:8081"
"""


def test_loads_yaml_configuration_with_defaults(tmp_path: Path) -> None:
    config_path = _write_file(tmp_path / "consumer.yaml", _MINIMAL_CONFIG)

    configuration = load_configuration(config_path)

    assert configuration.path == config_path
    assert configuration.kafka.bootstrap_servers == ("localhost:9092",)
    assert configuration.kafka.topic == "orders"
    assert configuration.kafka.group_id == "billing"
    assert configuration.kafka.security == {}
    assert configuration.kafka.poll_interval_ms == 500
    assert configuration.kafka.connect_timeout_seconds == 10
    assert configuration.schema_registry.urls == ("http://localhost:8081",)
    assert configuration.schema_registry.verify is True
    assert configuration.consumer.return_errors is True
    assert configuration.consumer.return_notifications is True
    assert configuration.consumer.initial_offset is InitialOffset.OLDEST
    assert configuration.consumer.validate_magic_byte is False


def test_loads_full_configuration_into_consumer_config(tmp_path: Path) -> None:
    config_path = _write_file(
        tmp_path / "consumer.yaml",
        """
kafka:
  bootstrap_servers:
    - "kafka-1:9092"
    - " kafka-2:9092 "
  topic: "orders"
  group_id: "billing"
  security:
    security.protocol: SASL_SSL
    sasl.username: alice
  poll_interval_ms: 250
  connect_timeout_seconds: 3
schema_registry:
  urls: "http://registry-1:8081, http://registry-2:8081"
  client_config:
    basic.auth.user.info: "alice:secret"
  verify: false
consumer:
  return_errors: false
  return_notifications: false
  initial_offset: NEWEST
  validate_magic_byte: true
""",
    )

    consumer_config = load_configuration(config_path).to_consumer_config()

    assert consumer_config.return_errors is False
    assert consumer_config.return_notifications is False
    assert consumer_config.initial_offset is InitialOffset.NEWEST
    assert consumer_config.validate_magic_byte is True
    assert consumer_config.poll_timeout_seconds == 0.25
    assert consumer_config.connect_timeout_seconds == 3.0
    assert consumer_config.verify_registry is False
    assert consumer_config.kafka_overrides == {
        "security.protocol": "SASL_SSL",
        "sasl.username": "alice",
    }
    assert consumer_config.registry_overrides == {"basic.auth.user.info": "alice:secret"}


def test_server_lists_are_split_and_trimmed(tmp_path: Path) -> None:
    config_path = _write_file(
        tmp_path / "consumer.yaml",
        _MINIMAL_CONFIG.replace(
            '"localhost:9092"', '"kafka-1:9092, kafka-2:9092,"'
        ),
    )

    configuration = load_configuration(config_path)

    assert configuration.kafka.bootstrap_servers == ("kafka-1:9092", "kafka-2:9092")


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="not found"):
        load_configuration(tmp_path / "missing.yaml")


def test_non_mapping_root_raises(tmp_path: Path) -> None:
    config_path = _write_file(tmp_path / "consumer.yaml", "- just\n- a list\n")

    with pytest.raises(ConfigurationError, match="root must be a mapping"):
        load_configuration(config_path)


@pytest.mark.parametrize(
    ("original", "replacement", "message"),
    [
        ('  topic: "orders"\n', "", "kafka.topic must be a string"),
        ('  group_id: "billing"\n', '  group_id: "  "\n', "kafka.group_id must not be empty"),
        ('"localhost:9092"', "[]", "kafka.bootstrap_servers must contain at least one server"),
        ('"localhost:9092"', "[1, 2]", "kafka.bootstrap_servers entries must be strings"),
        ('"http://localhost:8081"', "42", "schema_registry.urls must be a string or list"),
    ],
)
def test_invalid_values_are_reported_by_field(
    tmp_path: Path, original: str, replacement: str, message: str
) -> None:
    config_path = _write_file(
        tmp_path / "consumer.yaml", _MINIMAL_CONFIG.replace(original, replacement)
    )

    with pytest.raises(ConfigurationError, match=message):
        load_configuration(config_path)


def test_missing_registry_section_raises(tmp_path: Path) -> None:
    config_path = _write_file(
        tmp_path / "consumer.yaml",
        'kafka:\n  bootstrap_servers: "k:9092"\n  topic: t\n  group_id: g\n',
    )

    with pytest.raises(ConfigurationError, match="'schema_registry' is required"):
        load_configuration(config_path)


def test_unknown_initial_offset_raises(tmp_path: Path) -> None:
    config_path = _write_file(
        tmp_path / "consumer.yaml",
        _MINIMAL_CONFIG + "consumer:\n  initial_offset: middle\n",
    )

    with pytest.raises(ConfigurationError, match="oldest, newest, committed"):
        load_configuration(config_path)


def test_non_boolean_switch_raises(tmp_path: Path) -> None:
    config_path = _write_file(
        tmp_path / "consumer.yaml",
        _MINIMAL_CONFIG + "consumer:\n  return_errors: 'yes please'\n",
    )

    with pytest.raises(ConfigurationError, match="consumer.return_errors must be a boolean"):
        load_configuration(config_path)


def test_non_positive_poll_interval_raises(tmp_path: Path) -> None:
    config_path = _write_file(
        tmp_path / "consumer.yaml",
        _MINIMAL_CONFIG.replace(
            'group_id: "billing"', 'group_id: "billing"\n  poll_interval_ms: 0'
        ),
    )

    with pytest.raises(ConfigurationError, match="must be greater than zero"):
        load_configuration(config_path)
