"""Command line interface entry point."""

from __future__ import annotations

import json
import logging
import signal
import sys
import threading
from typing import Any

import click

from avro_event_consumer.configuration import (
    DEFAULT_CONFIG_FILENAME,
    ConfigurationError,
    load_configuration,
    write_placeholder_configuration,
)
from avro_event_consumer.consumption import (
    ConsumerCallbacks,
    GroupNotification,
    create_avro_consumer,
    enable_client_logging,
)
from avro_event_consumer.errors import ConsumerConnectionError
from avro_event_consumer.message_decoding import DecodedMessage


class CliError(Exception):
    """Custom CLI error."""


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="avro-event-consumer")
def cli() -> None:
    """Schema-registry aware Avro consumer for Kafka topics."""


@cli.command(name="generate-config")
@click.option(
    "--output",
    "output_path",
    required=False,
    default=DEFAULT_CONFIG_FILENAME,
    show_default=True,
    type=click.Path(path_type=str),
    help="Path to the YAML consumer configuration template to write",
)
def generate_config(output_path: str) -> None:
    """Generate a placeholder YAML consumer configuration with guidance comments."""
    try:
        resolved_output = write_placeholder_configuration(output_path)
    except (FileExistsError, OSError) as exc:
        raise CliError(str(exc)) from exc
    click.echo(str(resolved_output))


@cli.command(name="consume")
@click.option(
    "--config",
    "config_path",
    required=True,
    type=click.Path(path_type=str),
    help="Path to the YAML consumer configuration file",
)
@click.option("--verbose", is_flag=True, default=False, help="Enable debug logging.")
def consume(config_path: str, verbose: bool) -> None:
    """Print decoded records as JSON lines until interrupted."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG)
        enable_client_logging()
    try:
        configuration = load_configuration(config_path)
        consumer = create_avro_consumer(
            configuration.kafka.bootstrap_servers,
            configuration.schema_registry.urls,
            configuration.kafka.topic,
            configuration.kafka.group_id,
            ConsumerCallbacks(
                on_data_received=_echo_message,
                on_error=_echo_error,
                on_notification=_echo_notification,
            ),
            configuration.to_consumer_config(),
        )
    except (ConfigurationError, ConsumerConnectionError) as exc:
        raise CliError(str(exc)) from exc

    shutdown = threading.Event()
    previous_handlers = _install_shutdown_handlers(shutdown)
    try:
        consumer.consume(shutdown)
    finally:
        consumer.close()
        for signum, handler in previous_handlers.items():
            signal.signal(signum, handler)


def _install_shutdown_handlers(shutdown: threading.Event) -> dict[int, Any]:
    def _request_shutdown(signum: int, _frame: object) -> None:
        click.echo(f"Received {signal.Signals(signum).name}, shutting down.", err=True)
        shutdown.set()

    previous: dict[int, Any] = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        previous[signum] = signal.signal(signum, _request_shutdown)
    return previous


def _echo_message(message: DecodedMessage) -> None:
    click.echo(
        json.dumps(
            {
                "schema_id": message.schema_id,
                "topic": message.topic,
                "partition": message.partition,
                "offset": message.offset,
                "key": message.key,
                "headers": dict(message.headers) if message.headers is not None else None,
                "timestamp": message.timestamp.isoformat() if message.timestamp else None,
                "value": json.loads(message.value),
            },
            ensure_ascii=False,
        )
    )


def _echo_error(error: Exception) -> None:
    click.echo(f"error: {error}", err=True)


def _echo_notification(notification: GroupNotification) -> None:
    partitions = ", ".join(f"{ref.topic}[{ref.partition}]" for ref in notification.partitions)
    click.echo(f"{notification.kind.value}: {partitions or '-'}", err=True)


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for console_scripts wiring."""
    argv = argv if argv is not None else sys.argv[1:]
    try:
        cli.main(args=list(argv), standalone_mode=False)
    except CliError as exc:
        click.echo(str(exc), err=True)
        return 1
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except click.Abort:
        click.echo("Aborted.", err=True)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
