"""Canonical form and structural fingerprints of source schemas.

The canonical form follows Avro's Parsing Canonical Form: defaults, docs and
aliases are dropped, names are fully qualified, object keys are sorted and
field and union member order is kept. Two structurally identical schemas
always produce the same fingerprint, whichever object instances hold them.
"""

import hashlib
import json
from typing import Any, Dict

from .types import (
    ArraySchema,
    EnumSchema,
    FixedSchema,
    MapSchema,
    PrimitiveSchema,
    RecordSchema,
    SchemaNode,
    UnionSchema,
)


def canonical_form(node: SchemaNode) -> Any:
    """Build the JSON-compatible canonical representation of a node."""
    if isinstance(node, PrimitiveSchema):
        return node.kind.value

    if isinstance(node, RecordSchema):
        return {
            "type": "record",
            "name": node.full_name,
            "fields": [
                {"name": f.name, "type": canonical_form(f.type)} for f in node.fields
            ],
        }

    if isinstance(node, EnumSchema):
        return {"type": "enum", "name": node.full_name, "symbols": list(node.symbols)}

    if isinstance(node, FixedSchema):
        return {"type": "fixed", "name": node.full_name, "size": node.size}

    if isinstance(node, ArraySchema):
        return {"type": "array", "items": canonical_form(node.items)}

    if isinstance(node, MapSchema):
        return {"type": "map", "values": canonical_form(node.values)}

    if isinstance(node, UnionSchema):
        return [canonical_form(m) for m in node.members]

    raise TypeError(f"Not a schema node: {type(node).__name__}")


def canonical_json(node: SchemaNode) -> str:
    """Serialise the canonical form with sorted keys and no whitespace."""
    return json.dumps(canonical_form(node), sort_keys=True, separators=(",", ":"))


def schema_full_name(node: SchemaNode) -> str:
    """Full name of a named node, or the kind name for anonymous nodes."""
    return getattr(node, "full_name", None) or node.kind.value


def fingerprint(node: SchemaNode) -> str:
    """SHA-256 fingerprint of the schema's full name and canonical structure."""
    payload = f"{schema_full_name(node)}:{canonical_json(node)}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def describe(node: SchemaNode) -> Dict[str, Any]:
    """Short description used in log events."""
    return {"schema": schema_full_name(node), "kind": node.kind.value}
