"""Parser for Avro JSON schema documents.

Turns ``.avsc`` documents into immutable SchemaNode trees. Logical types are
parsed as their underlying type, and named types may be referenced by full or
namespace-relative name once they have been defined.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import structlog

from .errors import InvalidSchemaError, SchemaParseError
from .types import (
    PRIMITIVE_KINDS,
    ArraySchema,
    EnumSchema,
    Field,
    FixedSchema,
    MapSchema,
    PrimitiveSchema,
    RecordSchema,
    SchemaNode,
    UnionSchema,
)

logger = structlog.get_logger(__name__)

PRIMITIVE_NAMES = {kind.value: kind for kind in PRIMITIVE_KINDS}


class SchemaParser:
    """Parses one schema document.

    Keeps the named types defined so far so later references resolve to
    the same node. Use a fresh parser per document.
    """

    def __init__(self):
        self._named: Dict[str, SchemaNode] = {}

    @property
    def named_types(self) -> Dict[str, SchemaNode]:
        return dict(self._named)

    def parse(self, document: Any) -> SchemaNode:
        """Parse an already-decoded JSON document."""
        return self._parse(document, namespace=None, path="$")

    def _parse(self, obj: Any, namespace: Optional[str], path: str) -> SchemaNode:
        if isinstance(obj, str):
            return self._parse_name(obj, namespace, path)

        if isinstance(obj, list):
            members = [
                self._parse(member, namespace, f"{path}[{i}]") for i, member in enumerate(obj)
            ]
            return self._build(UnionSchema, path, tuple(members))

        if isinstance(obj, dict):
            return self._parse_object(obj, namespace, path)

        raise SchemaParseError(f"Expected a type name, object or list, got {type(obj).__name__}", path)

    def _parse_name(self, name: str, namespace: Optional[str], path: str) -> SchemaNode:
        if name in PRIMITIVE_NAMES:
            return PrimitiveSchema(PRIMITIVE_NAMES[name])

        candidates = [name]
        if namespace and "." not in name:
            candidates.insert(0, f"{namespace}.{name}")
        for candidate in candidates:
            if candidate in self._named:
                return self._named[candidate]

        raise SchemaParseError(f"Unknown type '{name}'", path)

    def _parse_object(self, obj: Dict[str, Any], namespace: Optional[str], path: str) -> SchemaNode:
        if "type" not in obj:
            raise SchemaParseError("Schema object is missing 'type'", path)

        type_value = obj["type"]

        # {"type": {...}} and {"type": [...]} wrap another schema
        if not isinstance(type_value, str):
            return self._parse(type_value, namespace, f"{path}.type")

        if type_value in PRIMITIVE_NAMES:
            return PrimitiveSchema(PRIMITIVE_NAMES[type_value])

        if type_value in ("record", "error"):
            return self._parse_record(obj, namespace, path)

        if type_value == "enum":
            name, ns = self._name_and_namespace(obj, namespace, path)
            symbols = obj.get("symbols")
            if not isinstance(symbols, list) or not all(isinstance(s, str) for s in symbols):
                raise SchemaParseError("Enum 'symbols' must be a list of strings", path)
            return self._register(self._build(EnumSchema, path, name, tuple(symbols), ns), path)

        if type_value == "fixed":
            name, ns = self._name_and_namespace(obj, namespace, path)
            return self._register(self._build(FixedSchema, path, name, obj.get("size"), ns), path)

        if type_value == "array":
            if "items" not in obj:
                raise SchemaParseError("Array schema is missing 'items'", path)
            return ArraySchema(self._parse(obj["items"], namespace, f"{path}.items"))

        if type_value == "map":
            if "values" not in obj:
                raise SchemaParseError("Map schema is missing 'values'", path)
            return MapSchema(self._parse(obj["values"], namespace, f"{path}.values"))

        return self._parse_name(type_value, namespace, f"{path}.type")

    def _parse_record(self, obj: Dict[str, Any], namespace: Optional[str], path: str) -> RecordSchema:
        name, ns = self._name_and_namespace(obj, namespace, path)
        raw_fields = obj.get("fields")
        if not isinstance(raw_fields, list):
            raise SchemaParseError("Record 'fields' must be a list", path)

        fields: List[Field] = []
        for i, raw_field in enumerate(raw_fields):
            field_path = f"{path}.fields[{i}]"
            if not isinstance(raw_field, dict) or not isinstance(raw_field.get("name"), str):
                raise SchemaParseError("Field must be an object with a string 'name'", field_path)
            if "type" not in raw_field:
                raise SchemaParseError(f"Field '{raw_field['name']}' is missing 'type'", field_path)

            field_type = self._parse(raw_field["type"], ns, f"{field_path}.type")
            fields.append(Field(
                name=raw_field["name"],
                type=field_type,
                has_default="default" in raw_field,
                default=raw_field.get("default"),
            ))

        record = self._build(RecordSchema, path, name, tuple(fields), ns)
        return self._register(record, path)

    def _name_and_namespace(self, obj: Dict[str, Any], namespace: Optional[str], path: str):
        name = obj.get("name")
        if not isinstance(name, str) or not name:
            raise SchemaParseError(f"Named type '{obj.get('type')}' requires a 'name'", path)

        if "." in name:
            ns, _, short_name = name.rpartition(".")
            return short_name, ns

        ns = obj.get("namespace", namespace)
        if ns is not None and not isinstance(ns, str):
            raise SchemaParseError("'namespace' must be a string", path)
        return name, ns or None

    def _register(self, node: SchemaNode, path: str) -> SchemaNode:
        full_name = node.full_name
        if full_name in self._named:
            raise SchemaParseError(f"Type '{full_name}' is defined more than once", path)
        self._named[full_name] = node
        return node

    def _build(self, node_class, path: str, *args):
        try:
            return node_class(*args)
        except InvalidSchemaError as e:
            raise SchemaParseError(str(e), path) from e


def parse_schema(document: Union[str, bytes, Dict[str, Any], List[Any]]) -> SchemaNode:
    """Parse an Avro schema from JSON text or an already-decoded document.

    Args:
        document: JSON text, or the decoded object/list

    Returns:
        Root schema node

    Raises:
        SchemaParseError: If the document is not a valid schema
    """
    if isinstance(document, (str, bytes)):
        try:
            document = json.loads(document)
        except json.JSONDecodeError as e:
            raise SchemaParseError(f"Invalid JSON: {e.msg} (line {e.lineno}, column {e.colno})") from e

    return SchemaParser().parse(document)


def load_schema(schema_path: Union[str, Path]) -> SchemaNode:
    """Load and parse an ``.avsc`` file."""
    schema_path = Path(schema_path)
    if not schema_path.exists():
        raise FileNotFoundError(f"Schema file not found: {schema_path}")

    try:
        text = schema_path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise SchemaParseError(f"Schema file is not valid UTF-8: {schema_path}") from e

    node = parse_schema(text)
    logger.debug("Loaded schema file", path=str(schema_path), kind=node.kind.value)
    return node
