"""Schema evolution engine: conversion, compatibility checking and caching."""

from .cache import CacheStats, SchemaCache
from .compatibility import CompatibilityChecker, CompatibilityMetrics
from .converter import SchemaConverter
from .errors import (
    InvalidSchemaError,
    RootMustBeRecordError,
    SchemaConversionError,
    SchemaEngineError,
    SchemaNotRegisteredError,
    SchemaParseError,
)
from .fingerprint import canonical_json, fingerprint
from .parser import load_schema, parse_schema
from .registry import RegisteredSchema, SchemaRegistry
from .target import TargetField, TargetSchema
from .type_mapper import TypeMapper
from .types import (
    CompatibilityPolicy,
    CompatibilityResult,
    Field,
    SchemaKind,
    SchemaNode,
)

__all__ = [
    "CacheStats",
    "SchemaCache",
    "CompatibilityChecker",
    "CompatibilityMetrics",
    "SchemaConverter",
    "InvalidSchemaError",
    "RootMustBeRecordError",
    "SchemaConversionError",
    "SchemaEngineError",
    "SchemaNotRegisteredError",
    "SchemaParseError",
    "canonical_json",
    "fingerprint",
    "load_schema",
    "parse_schema",
    "RegisteredSchema",
    "SchemaRegistry",
    "TargetField",
    "TargetSchema",
    "TypeMapper",
    "CompatibilityPolicy",
    "CompatibilityResult",
    "Field",
    "SchemaKind",
    "SchemaNode",
]
