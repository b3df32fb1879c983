"""Schema resolution exports."""

from .avro_codec import AvroSchemaCodec, AvroSchemaError
from .schema_models import SchemaCodec, SchemaResolver
from .schema_registry_resolver import SchemaRegistryResolver, build_registry_client

__all__ = [
    "AvroSchemaCodec",
    "AvroSchemaError",
    "SchemaCodec",
    "SchemaResolver",
    "SchemaRegistryResolver",
    "build_registry_client",
]
