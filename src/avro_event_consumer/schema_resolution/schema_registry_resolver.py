"""Schema registry backed codec resolver."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Protocol

from confluent_kafka.schema_registry import SchemaRegistryClient
from avro_event_consumer.errors import SchemaResolutionError

from .avro_codec import AvroSchemaCodec, AvroSchemaError

logger = logging.getLogger(__name__)


class RegistryClientProtocol(Protocol):
    """Subset of the schema registry client API required by the resolver."""

    def get_schema(self, schema_id: int) -> Any: ...

    def get_subjects(self) -> list[str]: ...


RegistryClientFactory = Callable[[dict[str, Any]], RegistryClientProtocol]


def build_registry_client(
    urls: Sequence[str],
    overrides: Mapping[str, object] | None = None,
    *,
    client_factory: RegistryClientFactory | None = None,
) -> RegistryClientProtocol:
    """Create a registry client for the given base URLs."""
    config: dict[str, Any] = {"url": ",".join(urls)}
    config.update(overrides or {})
    factory = client_factory or SchemaRegistryClient
    return factory(config)


class SchemaRegistryResolver:
    """Resolves schema ids to Avro codecs, caching one codec per id."""

    def __init__(self, registry_client: RegistryClientProtocol) -> None:
        self._client = registry_client
        self._codecs: dict[int, AvroSchemaCodec] = {}
        self._lock = threading.Lock()

    def __call__(self, schema_id: int) -> AvroSchemaCodec:
        return self.resolve(schema_id)

    def resolve(self, schema_id: int) -> AvroSchemaCodec:
        """Return the codec for ``schema_id``, fetching the schema on first use."""
        with self._lock:
            cached = self._codecs.get(schema_id)
        if cached is not None:
            return cached

        codec = self._fetch_codec(schema_id)
        with self._lock:
            # Another thread may have raced us; keep the first codec stored.
            return self._codecs.setdefault(schema_id, codec)

    def verify_connectivity(self) -> None:
        """Issue one cheap registry request; raises whatever the client raises."""
        self._client.get_subjects()

    def _fetch_codec(self, schema_id: int) -> AvroSchemaCodec:
        logger.debug("Fetching schema id %s from registry", schema_id)
        try:
            schema = self._client.get_schema(schema_id)
        # The registry client surfaces both HTTP-level and transport-level failures.
        except Exception as exc:  # pylint: disable=broad-exception-caught
            raise SchemaResolutionError(schema_id, str(exc)) from exc

        schema_type = getattr(schema, "schema_type", None) or "AVRO"
        if schema_type.upper() != "AVRO":
            raise SchemaResolutionError(schema_id, f"unsupported schema type {schema_type}")
        schema_str = getattr(schema, "schema_str", None)
        if not isinstance(schema_str, str):
            raise SchemaResolutionError(schema_id, "registry returned no schema text")
        try:
            return AvroSchemaCodec.from_schema_text(schema_str)
        except AvroSchemaError as exc:
            raise SchemaResolutionError(schema_id, str(exc)) from exc
