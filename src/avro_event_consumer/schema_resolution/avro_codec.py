"""Avro schema codec: binary payload to native values to Avro JSON text."""

from __future__ import annotations

import json
import math
import struct
from collections.abc import Mapping, Sequence
from typing import Any

from avro_event_consumer.errors import AvroConsumerError, RecordDecodeError

PRIMITIVE_TYPES = frozenset(
    {"null", "boolean", "int", "long", "float", "double", "bytes", "string"}
)
_NAMED_TYPES = frozenset({"record", "error", "enum", "fixed"})


class AvroSchemaError(AvroConsumerError):
    """Raised when a schema document is not a usable Avro schema."""


class AvroSchemaCodec:
    """Codec for one writer schema.

    Native form mirrors the Avro JSON encoding: records and maps become dicts,
    arrays become lists, and a non-null union branch is wrapped as
    ``{branch_name: value}`` so the textual form can be produced without the schema.
    """

    def __init__(self, schema: Any) -> None:
        self._named_types: dict[str, Mapping[str, Any]] = {}
        self._register_named_types(schema, namespace=None)
        self._schema = schema

    @classmethod
    def from_schema_text(cls, schema_text: str) -> AvroSchemaCodec:
        """Parse Avro schema JSON (object, array or quoted primitive name)."""
        try:
            root = json.loads(schema_text)
        except json.JSONDecodeError as exc:
            raise AvroSchemaError(f"Invalid avsc schema JSON: {exc}") from exc
        if not isinstance(root, Mapping | list | str):
            raise AvroSchemaError("Avro schema must be an object, a union array or a type name.")
        return cls(root)

    @property
    def schema(self) -> Any:
        return self._schema

    def native_from_binary(self, payload: bytes) -> Any:
        """Decode one Avro binary datum into its native form; unread bytes after it are ignored."""
        reader = _AvroBinaryReader(payload)
        return self._decode_avro_node(self._schema, reader, namespace=None)

    def textual_from_native(self, native: Any) -> str:
        """Encode a native value as compact Avro JSON text."""
        try:
            return json.dumps(
                _to_json_compatible(native),
                separators=(",", ":"),
                ensure_ascii=False,
                allow_nan=False,
            )
        except (TypeError, ValueError) as exc:
            raise RecordDecodeError(f"Value cannot be encoded as Avro JSON: {exc}") from exc

    def _decode_avro_node(
        self, schema: Any, reader: _AvroBinaryReader, *, namespace: str | None
    ) -> Any:
        if isinstance(schema, list):
            index = reader.read_long()
            if index < 0 or index >= len(schema):
                raise RecordDecodeError(f"Avro union index out of range: {index}")
            branch = schema[index]
            value = self._decode_avro_node(branch, reader, namespace=namespace)
            if value is None and self._branch_name(branch, namespace) == "null":
                return None
            return {self._branch_name(branch, namespace): value}

        if isinstance(schema, str):
            return self._decode_avro_type(schema, None, reader, namespace=namespace)

        if not isinstance(schema, Mapping):
            raise RecordDecodeError("Invalid AVSC node encountered during decode.")

        node_type = schema.get("type")
        if isinstance(node_type, list | Mapping):
            return self._decode_avro_node(node_type, reader, namespace=namespace)
        if isinstance(node_type, str):
            return self._decode_avro_type(node_type, schema, reader, namespace=namespace)

        raise RecordDecodeError("AVSC node is missing a valid 'type'.")

    def _decode_avro_type(
        self,
        type_name: str,
        schema_node: Mapping[str, Any] | None,
        reader: _AvroBinaryReader,
        *,
        namespace: str | None,
    ) -> Any:
        if type_name == "null":
            return None
        if type_name == "boolean":
            return reader.read_boolean()
        if type_name in {"int", "long"}:
            return reader.read_long()
        if type_name == "float":
            return reader.read_float()
        if type_name == "double":
            return reader.read_double()
        if type_name == "bytes":
            return reader.read_bytes()
        if type_name == "string":
            return reader.read_string()

        if type_name in {"record", "error"}:
            if schema_node is None:
                raise RecordDecodeError("Record definition is missing from AVSC schema.")
            fields = schema_node.get("fields")
            if not isinstance(fields, Sequence):
                raise RecordDecodeError("Record schema requires a fields array.")
            inner_namespace = _namespace_of(schema_node, namespace)
            record_output: dict[str, Any] = {}
            for field in fields:
                if not isinstance(field, Mapping) or "name" not in field:
                    raise RecordDecodeError("Record field definition is invalid.")
                record_output[str(field["name"])] = self._decode_avro_node(
                    field.get("type"), reader, namespace=inner_namespace
                )
            return record_output

        if type_name == "enum":
            if schema_node is None:
                raise RecordDecodeError("Enum definition is missing from AVSC schema.")
            symbols = schema_node.get("symbols")
            if not isinstance(symbols, Sequence):
                raise RecordDecodeError("Enum schema requires a symbols array.")
            index = reader.read_long()
            if index < 0 or index >= len(symbols):
                raise RecordDecodeError(f"Avro enum index out of range: {index}")
            return symbols[index]

        if type_name == "array":
            if schema_node is None:
                raise RecordDecodeError("Array definition is missing from AVSC schema.")
            items_schema = schema_node.get("items")
            items: list[Any] = []
            for _ in reader.iter_blocks():
                items.append(self._decode_avro_node(items_schema, reader, namespace=namespace))
            return items

        if type_name == "map":
            if schema_node is None:
                raise RecordDecodeError("Map definition is missing from AVSC schema.")
            values_schema = schema_node.get("values")
            map_output: dict[str, Any] = {}
            for _ in reader.iter_blocks():
                key = reader.read_string()
                map_output[key] = self._decode_avro_node(values_schema, reader, namespace=namespace)
            return map_output

        if type_name == "fixed":
            if schema_node is None:
                raise RecordDecodeError("Fixed definition is missing from AVSC schema.")
            size = schema_node.get("size")
            if not isinstance(size, int) or size < 0:
                raise RecordDecodeError("Fixed schema requires a non-negative integer size.")
            return reader.read_exact(size)

        named_type = self._lookup_named_type(type_name, namespace)
        if named_type is None:
            raise RecordDecodeError(f"Unsupported or unknown Avro type reference: {type_name}")
        return self._decode_avro_node(named_type, reader, namespace=namespace)

    def _lookup_named_type(self, name: str, namespace: str | None) -> Mapping[str, Any] | None:
        if "." not in name and namespace:
            qualified = self._named_types.get(f"{namespace}.{name}")
            if qualified is not None:
                return qualified
        return self._named_types.get(name)

    def _branch_name(self, branch: Any, namespace: str | None) -> str:
        if isinstance(branch, str):
            if branch in PRIMITIVE_TYPES:
                return branch
            named = self._lookup_named_type(branch, namespace)
            return _full_name(named, namespace) if named is not None else branch
        if isinstance(branch, Mapping):
            branch_type = branch.get("type")
            if isinstance(branch_type, str) and branch_type in _NAMED_TYPES:
                return _full_name(branch, namespace)
            if isinstance(branch_type, str | Mapping):
                return self._branch_name(branch_type, namespace)
        raise RecordDecodeError("Avro union branch has no usable name.")

    def _register_named_types(self, schema: Any, *, namespace: str | None) -> None:
        if isinstance(schema, list):
            for node in schema:
                self._register_named_types(node, namespace=namespace)
            return

        if not isinstance(schema, Mapping):
            return

        node_type = schema.get("type")
        if isinstance(node_type, Mapping | list):
            self._register_named_types(node_type, namespace=namespace)
            return
        if not isinstance(node_type, str):
            raise AvroSchemaError("AVSC node is missing a valid 'type'.")

        if node_type in _NAMED_TYPES:
            name = schema.get("name")
            if isinstance(name, str) and name:
                full_name = _full_name(schema, namespace)
                self._named_types.setdefault(full_name, schema)
                self._named_types.setdefault(full_name.rsplit(".", 1)[-1], schema)

        if node_type in {"record", "error"}:
            fields = schema.get("fields")
            if not isinstance(fields, Sequence):
                raise AvroSchemaError("Avro record requires fields.")
            inner_namespace = _namespace_of(schema, namespace)
            for field in fields:
                if not isinstance(field, Mapping) or "name" not in field:
                    raise AvroSchemaError("Avro field definitions must include a name.")
                self._register_named_types(field.get("type"), namespace=inner_namespace)
        elif node_type == "array":
            self._register_named_types(schema.get("items"), namespace=namespace)
        elif node_type == "map":
            self._register_named_types(schema.get("values"), namespace=namespace)


def _namespace_of(schema: Mapping[str, Any], enclosing: str | None) -> str | None:
    name = schema.get("name")
    if isinstance(name, str) and "." in name:
        return name.rsplit(".", 1)[0]
    namespace = schema.get("namespace")
    if isinstance(namespace, str):
        return namespace or None
    return enclosing


def _full_name(schema: Mapping[str, Any], enclosing: str | None) -> str:
    name = str(schema.get("name", ""))
    if "." in name:
        return name
    namespace = _namespace_of(schema, enclosing)
    return f"{namespace}.{name}" if namespace else name


def _to_json_compatible(native: Any) -> Any:
    if isinstance(native, bytes):
        # Avro JSON maps each byte to the code point of the same value.
        return native.decode("latin-1")
    if isinstance(native, Mapping):
        return {str(key): _to_json_compatible(value) for key, value in native.items()}
    if isinstance(native, list | tuple):
        return [_to_json_compatible(item) for item in native]
    if isinstance(native, float) and not math.isfinite(native):
        raise ValueError(f"non-finite float {native!r}")
    return native


class _AvroBinaryReader:
    """Avro binary reader over one datum."""

    def __init__(self, payload: bytes) -> None:
        self._data = payload
        self._offset = 0

    def read_exact(self, size: int) -> bytes:
        """Read exactly `size` bytes or raise RecordDecodeError."""
        if size < 0:
            raise RecordDecodeError("Negative read size is invalid.")
        end = self._offset + size
        if end > len(self._data):
            raise RecordDecodeError("Unexpected end of Avro payload.")
        chunk = self._data[self._offset : end]
        self._offset = end
        return bytes(chunk)

    def read_boolean(self) -> bool:
        return self.read_exact(1) != b"\x00"

    def read_float(self) -> float:
        """Read an Avro float (32-bit little-endian)."""
        return struct.unpack("<f", self.read_exact(4))[0]

    def read_double(self) -> float:
        """Read an Avro double (64-bit little-endian)."""
        return struct.unpack("<d", self.read_exact(8))[0]

    def read_bytes(self) -> bytes:
        length = self.read_long()
        if length < 0:
            raise RecordDecodeError("Negative bytes length in Avro payload.")
        return self.read_exact(length)

    def read_string(self) -> str:
        """Read Avro UTF-8 string."""
        raw = self.read_bytes()
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise RecordDecodeError("Invalid UTF-8 string in Avro payload.") from exc

    def read_long(self) -> int:
        """Read Avro zigzag-encoded long."""
        shift = 0
        raw_value = 0
        while True:
            byte = self.read_exact(1)[0]
            raw_value |= (byte & 0x7F) << shift
            if (byte & 0x80) == 0:
                break
            shift += 7
            if shift > 63:
                raise RecordDecodeError("Avro varint is too long.")
        return (raw_value >> 1) ^ -(raw_value & 1)

    def iter_blocks(self):
        """Yield once per item of a block-encoded array or map."""
        while True:
            count = self.read_long()
            if count == 0:
                return
            if count < 0:
                _block_size = self.read_long()
                count = -count
            for _ in range(count):
                yield
