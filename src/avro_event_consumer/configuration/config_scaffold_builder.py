"""Configuration scaffold generation helpers."""

from __future__ import annotations

from pathlib import Path

DEFAULT_CONFIG_FILENAME = "consumer.yaml"

_CONFIG_SCAFFOLD_TEMPLATE = """# Consumer configuration template for avro-event-consumer.
# Replace every <REQUIRED> placeholder before running consume.
# Remove or fill <OPTIONAL> entries; omitted keys fall back to the documented defaults.

kafka:
  bootstrap_servers:
    - "<REQUIRED>"
  topic: "<REQUIRED>"
  group_id: "<REQUIRED>"
  # Passed through verbatim to the Kafka client.
  security:
    sasl.username: "<OPTIONAL>"
    sasl.password: "<OPTIONAL>"
    security.protocol: "<OPTIONAL>"
    sasl.mechanisms: "<OPTIONAL>"
  # poll_interval_ms: 500
  # connect_timeout_seconds: 10

schema_registry:
  urls:
    - "<REQUIRED>"
  # Passed through verbatim to the schema registry client.
  # client_config:
  #   basic.auth.user.info: "<OPTIONAL>"
  # verify: true

consumer:
  # Forward Kafka client errors to the error handler.
  return_errors: true
  # Forward partition assignment/revocation notifications.
  return_notifications: true
  # oldest | newest | committed; used when the group has no committed offset.
  initial_offset: oldest
  # Reject payloads whose first byte is not the 0x00 wire-format marker.
  validate_magic_byte: false
"""


def build_placeholder_configuration() -> str:
    """Build a YAML consumer configuration template with placeholders and inline guidance."""
    return _CONFIG_SCAFFOLD_TEMPLATE


def write_placeholder_configuration(output_path: Path | str) -> Path:
    """Write the placeholder consumer configuration to the requested output path.

    Args:
      output_path: Destination file path for the scaffold.

    Returns:
      The resolved destination path.

    Raises:
      FileExistsError: If the destination file already exists.
      OSError: If writing the scaffold fails.
    """
    destination = Path(output_path)
    if destination.exists():
        raise FileExistsError(f"Configuration file already exists: {destination.resolve()}")
    destination.write_text(build_placeholder_configuration(), encoding="utf-8")
    return destination.resolve()
