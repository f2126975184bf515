"""Mapping of single source schema nodes onto target column types."""

from typing import Dict, Tuple

import structlog

from .errors import SchemaConversionError
from .target import (
    BINARY_TYPE,
    BOOLEAN_TYPE,
    DOUBLE_TYPE,
    FLOAT_TYPE,
    INTEGER_TYPE,
    LONG_TYPE,
    STRING_TYPE,
    ArrayType,
    MapType,
    PrimitiveType,
    StructType,
    TargetField,
    TargetType,
)
from .types import (
    ArraySchema,
    EnumSchema,
    FixedSchema,
    MapSchema,
    PrimitiveSchema,
    RecordSchema,
    SchemaKind,
    SchemaNode,
    UnionSchema,
    field_path,
    items_path,
    values_path,
)

logger = structlog.get_logger(__name__)


# Exhaustive: a primitive kind missing here has no target representation.
PRIMITIVE_TYPE_MAPPING: Dict[SchemaKind, PrimitiveType] = {
    SchemaKind.STRING: STRING_TYPE,
    SchemaKind.INT: INTEGER_TYPE,
    SchemaKind.LONG: LONG_TYPE,
    SchemaKind.FLOAT: FLOAT_TYPE,
    SchemaKind.DOUBLE: DOUBLE_TYPE,
    SchemaKind.BOOLEAN: BOOLEAN_TYPE,
    SchemaKind.BYTES: BINARY_TYPE,
}


class TypeMapper:
    """Maps source schema nodes to target types.

    Stateless; a single instance can be shared between threads. Records,
    arrays and maps are mapped recursively, and every unsupported shape raises
    a SchemaConversionError carrying the dotted field path.
    """

    def map_type(self, node: SchemaNode, path: str = "") -> TargetType:
        """Map a node to its target type, ignoring nullability.

        Args:
            node: Source schema node
            path: Dotted path of the node, used in error messages

        Returns:
            The target type of the node
        """
        data_type, _ = self.resolve(node, path)
        return data_type

    def resolve(self, node: SchemaNode, path: str = "") -> Tuple[TargetType, bool]:
        """Map a node to its target type and nullability flag."""
        if isinstance(node, UnionSchema):
            return self._map_union(node, path), True

        if isinstance(node, PrimitiveSchema):
            target = PRIMITIVE_TYPE_MAPPING.get(node.kind)
            if target is None:
                raise SchemaConversionError(path, node.kind.value, "no column type for this primitive")
            return target, False

        if isinstance(node, RecordSchema):
            return self._map_record(node, path), False

        if isinstance(node, ArraySchema):
            element_type, contains_null = self.resolve(node.items, items_path(path))
            return ArrayType(element_type, contains_null), False

        if isinstance(node, MapSchema):
            value_type, value_contains_null = self.resolve(node.values, values_path(path))
            return MapType(value_type, value_contains_null), False

        if isinstance(node, EnumSchema):
            return STRING_TYPE, False

        if isinstance(node, FixedSchema):
            return BINARY_TYPE, False

        kind = getattr(node, "kind", None)
        raise SchemaConversionError(path, getattr(kind, "value", type(node).__name__))

    def map_fields(self, record: RecordSchema, path: str = "") -> Tuple[TargetField, ...]:
        """Map the fields of a record in declared order."""
        target_fields = []
        for record_field in record.fields:
            child = field_path(path, record_field.name)
            data_type, nullable = self.resolve(record_field.type, child)
            target_fields.append(TargetField(record_field.name, data_type, nullable))
            logger.debug(
                "Converted field",
                field=child,
                source_kind=record_field.type.kind.value,
                target_type=data_type.simple_string(),
                nullable=nullable,
            )
        return tuple(target_fields)

    def _map_record(self, record: RecordSchema, path: str) -> StructType:
        return StructType(self.map_fields(record, path))

    def _map_union(self, union: UnionSchema, path: str) -> TargetType:
        if not union.is_nullable_pattern:
            members = ", ".join(union.member_signatures) or "empty"
            raise SchemaConversionError(
                path,
                SchemaKind.UNION.value,
                f"only [null, T] unions are supported, got [{members}]",
            )
        data_type, _ = self.resolve(union.non_null_members[0], path)
        return data_type
