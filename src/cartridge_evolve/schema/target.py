"""Target (columnar table) schema model.

Mirrors the Delta Lake type system: primitive types, nested structs, arrays
and string-keyed maps. Every type serialises to the Delta JSON schema layout.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, Iterator, List, Optional, Tuple, Union


class TargetTypeName(str, Enum):
    """Type names in the storage engine's vocabulary."""

    STRING = "string"
    INTEGER = "integer"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"
    BOOLEAN = "boolean"
    BINARY = "binary"
    STRUCT = "struct"
    ARRAY = "array"
    MAP = "map"


@dataclass(frozen=True)
class PrimitiveType:
    """A scalar column type."""

    name: TargetTypeName

    @property
    def type_name(self) -> TargetTypeName:
        return self.name

    def simple_string(self) -> str:
        return self.name.value

    def to_json(self) -> Any:
        return self.name.value


STRING_TYPE = PrimitiveType(TargetTypeName.STRING)
INTEGER_TYPE = PrimitiveType(TargetTypeName.INTEGER)
LONG_TYPE = PrimitiveType(TargetTypeName.LONG)
FLOAT_TYPE = PrimitiveType(TargetTypeName.FLOAT)
DOUBLE_TYPE = PrimitiveType(TargetTypeName.DOUBLE)
BOOLEAN_TYPE = PrimitiveType(TargetTypeName.BOOLEAN)
BINARY_TYPE = PrimitiveType(TargetTypeName.BINARY)


@dataclass(frozen=True)
class ArrayType:
    """A list column."""

    element_type: "TargetType"
    contains_null: bool = False

    type_name: ClassVar[TargetTypeName] = TargetTypeName.ARRAY

    def simple_string(self) -> str:
        return f"array<{self.element_type.simple_string()}>"

    def to_json(self) -> Dict[str, Any]:
        return {
            "type": "array",
            "elementType": self.element_type.to_json(),
            "containsNull": self.contains_null,
        }


@dataclass(frozen=True)
class MapType:
    """A map column with string keys."""

    value_type: "TargetType"
    value_contains_null: bool = False
    key_type: PrimitiveType = field(default=STRING_TYPE)

    type_name: ClassVar[TargetTypeName] = TargetTypeName.MAP

    def simple_string(self) -> str:
        return f"map<{self.key_type.simple_string()},{self.value_type.simple_string()}>"

    def to_json(self) -> Dict[str, Any]:
        return {
            "type": "map",
            "keyType": self.key_type.to_json(),
            "valueType": self.value_type.to_json(),
            "valueContainsNull": self.value_contains_null,
        }


@dataclass(frozen=True)
class TargetField:
    """A named column of a struct or table."""

    name: str
    data_type: "TargetType"
    nullable: bool = False

    def to_json(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.data_type.to_json(),
            "nullable": self.nullable,
            "metadata": {},
        }


@dataclass(frozen=True)
class StructType:
    """A nested struct column."""

    fields: Tuple[TargetField, ...] = ()

    type_name: ClassVar[TargetTypeName] = TargetTypeName.STRUCT

    def __post_init__(self):
        object.__setattr__(self, "fields", tuple(self.fields))

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    def get(self, name: str) -> Optional[TargetField]:
        for target_field in self.fields:
            if target_field.name == name:
                return target_field
        return None

    def simple_string(self) -> str:
        inner = ",".join(f"{f.name}:{f.data_type.simple_string()}" for f in self.fields)
        return f"struct<{inner}>"

    def to_json(self) -> Dict[str, Any]:
        return {"type": "struct", "fields": [f.to_json() for f in self.fields]}


TargetType = Union[PrimitiveType, ArrayType, MapType, StructType]


@dataclass(frozen=True)
class TargetSchema:
    """Ordered column list produced by converting a source record schema.

    Field order is significant for columnar layout and is never changed.
    """

    fields: Tuple[TargetField, ...]
    name: str = ""

    def __post_init__(self):
        object.__setattr__(self, "fields", tuple(self.fields))

    def __iter__(self) -> Iterator[TargetField]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    def get(self, name: str) -> Optional[TargetField]:
        """Get a top-level column by name."""
        for target_field in self.fields:
            if target_field.name == name:
                return target_field
        return None

    def to_struct(self) -> StructType:
        return StructType(self.fields)

    def to_json(self) -> Dict[str, Any]:
        """Serialise to the Delta JSON schema layout."""
        return self.to_struct().to_json()
