"""Source schema model and compatibility types for the schema evolution engine."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Union

from .errors import InvalidSchemaError


class SchemaKind(str, Enum):
    """Kinds of source schema nodes."""

    NULL = "null"
    STRING = "string"
    INT = "int"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"
    BOOLEAN = "boolean"
    BYTES = "bytes"
    RECORD = "record"
    ENUM = "enum"
    ARRAY = "array"
    MAP = "map"
    UNION = "union"
    FIXED = "fixed"


PRIMITIVE_KINDS = frozenset({
    SchemaKind.NULL,
    SchemaKind.STRING,
    SchemaKind.INT,
    SchemaKind.LONG,
    SchemaKind.FLOAT,
    SchemaKind.DOUBLE,
    SchemaKind.BOOLEAN,
    SchemaKind.BYTES,
})

NAMED_KINDS = frozenset({SchemaKind.RECORD, SchemaKind.ENUM, SchemaKind.FIXED})


class CompatibilityPolicy(str, Enum):
    """Policy used when deciding whether a new schema may replace an old one."""

    BACKWARD = "backward"  # New schema can read data written with the old schema
    FORWARD = "forward"  # Old schema can read data written with the new schema
    FULL = "full"  # Both backward and forward
    NONE = "none"  # No checking

    @classmethod
    def parse(cls, value: Union[str, "CompatibilityPolicy"]) -> "CompatibilityPolicy":
        """Parse a policy name, accepting ``BACKWARD`` or ``backward_compatible`` spellings."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Compatibility policy must be a string, got {type(value).__name__}")

        normalized = value.strip().lower().replace("-", "_")
        if normalized.endswith("_compatible"):
            normalized = normalized[: -len("_compatible")]

        try:
            return cls(normalized)
        except ValueError:
            allowed = ", ".join(p.value for p in cls)
            raise ValueError(f"Unknown compatibility policy '{value}', expected one of: {allowed}") from None


def _full_name(name: str, namespace: Optional[str]) -> str:
    if namespace and "." not in name:
        return f"{namespace}.{name}"
    return name


@dataclass(frozen=True)
class PrimitiveSchema:
    """A primitive type node such as ``string`` or ``long``."""

    kind: SchemaKind

    def __post_init__(self):
        kind = SchemaKind(self.kind)
        if kind not in PRIMITIVE_KINDS:
            raise InvalidSchemaError(f"'{kind.value}' is not a primitive kind")
        object.__setattr__(self, "kind", kind)

    @property
    def signature(self) -> str:
        return self.kind.value


@dataclass(frozen=True)
class Field:
    """A named field of a record schema."""

    name: str
    type: "SchemaNode"
    has_default: bool = False
    default: Any = field(default=None, hash=False)


@dataclass(frozen=True)
class RecordSchema:
    """A record node: an ordered list of uniquely named fields."""

    name: str
    fields: Tuple[Field, ...] = ()
    namespace: Optional[str] = None

    kind: ClassVar[SchemaKind] = SchemaKind.RECORD

    def __post_init__(self):
        fields = tuple(self.fields)
        object.__setattr__(self, "fields", fields)

        seen = set()
        duplicates = []
        for record_field in fields:
            if record_field.name in seen:
                duplicates.append(record_field.name)
            seen.add(record_field.name)
        if duplicates:
            raise InvalidSchemaError(
                f"Record '{self.full_name}' has duplicate field names: {', '.join(duplicates)}"
            )

    @property
    def full_name(self) -> str:
        return _full_name(self.name, self.namespace)

    @property
    def signature(self) -> str:
        return f"{self.kind.value}:{self.full_name}"

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    def get_field(self, name: str) -> Optional[Field]:
        """Get a field by name, or None if the record has no such field."""
        for record_field in self.fields:
            if record_field.name == name:
                return record_field
        return None


@dataclass(frozen=True)
class EnumSchema:
    """An enum node with an ordered list of symbols."""

    name: str
    symbols: Tuple[str, ...] = ()
    namespace: Optional[str] = None

    kind: ClassVar[SchemaKind] = SchemaKind.ENUM

    def __post_init__(self):
        symbols = tuple(self.symbols)
        if len(set(symbols)) != len(symbols):
            raise InvalidSchemaError(f"Enum '{self.full_name}' has duplicate symbols")
        object.__setattr__(self, "symbols", symbols)

    @property
    def full_name(self) -> str:
        return _full_name(self.name, self.namespace)

    @property
    def signature(self) -> str:
        return f"{self.kind.value}:{self.full_name}"


@dataclass(frozen=True)
class FixedSchema:
    """A fixed-size binary node."""

    name: str
    size: int
    namespace: Optional[str] = None

    kind: ClassVar[SchemaKind] = SchemaKind.FIXED

    def __post_init__(self):
        if isinstance(self.size, bool) or not isinstance(self.size, int) or self.size < 0:
            raise InvalidSchemaError(f"Fixed '{self.full_name}' must have a non-negative integer size")

    @property
    def full_name(self) -> str:
        return _full_name(self.name, self.namespace)

    @property
    def signature(self) -> str:
        return f"{self.kind.value}:{self.full_name}"


@dataclass(frozen=True)
class ArraySchema:
    """An array node."""

    items: "SchemaNode"

    kind: ClassVar[SchemaKind] = SchemaKind.ARRAY

    @property
    def signature(self) -> str:
        return self.kind.value


@dataclass(frozen=True)
class MapSchema:
    """A map node. Keys are always strings."""

    values: "SchemaNode"

    kind: ClassVar[SchemaKind] = SchemaKind.MAP

    @property
    def signature(self) -> str:
        return self.kind.value


@dataclass(frozen=True)
class UnionSchema:
    """A union node. Members are unique by signature and never unions themselves."""

    members: Tuple["SchemaNode", ...]

    kind: ClassVar[SchemaKind] = SchemaKind.UNION

    def __post_init__(self):
        members = tuple(self.members)
        object.__setattr__(self, "members", members)

        signatures = []
        for member in members:
            if member.kind == SchemaKind.UNION:
                raise InvalidSchemaError("Unions may not immediately contain other unions")
            if member.signature in signatures:
                raise InvalidSchemaError(f"Duplicate union member '{member.signature}'")
            signatures.append(member.signature)

    @property
    def signature(self) -> str:
        return self.kind.value

    @property
    def member_signatures(self) -> List[str]:
        return [m.signature for m in self.members]

    @property
    def non_null_members(self) -> List["SchemaNode"]:
        return [m for m in self.members if m.kind != SchemaKind.NULL]

    @property
    def is_nullable_pattern(self) -> bool:
        """True for ``[null, T]`` in either order."""
        return len(self.members) == 2 and len(self.non_null_members) == 1


SchemaNode = Union[
    PrimitiveSchema,
    RecordSchema,
    EnumSchema,
    FixedSchema,
    ArraySchema,
    MapSchema,
    UnionSchema,
]


NULL = PrimitiveSchema(SchemaKind.NULL)
STRING = PrimitiveSchema(SchemaKind.STRING)
INT = PrimitiveSchema(SchemaKind.INT)
LONG = PrimitiveSchema(SchemaKind.LONG)
FLOAT = PrimitiveSchema(SchemaKind.FLOAT)
DOUBLE = PrimitiveSchema(SchemaKind.DOUBLE)
BOOLEAN = PrimitiveSchema(SchemaKind.BOOLEAN)
BYTES = PrimitiveSchema(SchemaKind.BYTES)


def field_path(path: str, name: str) -> str:
    """Dotted path of a record field below ``path``."""
    return f"{path}.{name}" if path else name


def items_path(path: str) -> str:
    return f"{path}[]"


def values_path(path: str) -> str:
    return f"{path}{{}}"


def optional(node: SchemaNode) -> UnionSchema:
    """Build the nullable pattern ``[null, node]``."""
    return UnionSchema((NULL, node))


def unwrap_nullable(node: SchemaNode) -> Tuple[SchemaNode, bool]:
    """Unwrap ``[null, T]`` to ``(T, True)``; any other node is returned as ``(node, False)``."""
    if isinstance(node, UnionSchema) and node.is_nullable_pattern:
        return node.non_null_members[0], True
    return node, False


@dataclass
class CompatibilityResult:
    """Verdict of a compatibility check.

    Issues are compatibility-breaking facts, warnings are informational.
    """

    compatible: bool
    issues: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    policy: CompatibilityPolicy = CompatibilityPolicy.BACKWARD

    def to_dict(self) -> Dict[str, Any]:
        return {
            "compatible": self.compatible,
            "issues": list(self.issues),
            "warnings": list(self.warnings),
            "policy": self.policy.value,
        }
