"""Exception types raised by the schema evolution engine."""

from typing import Optional


class SchemaEngineError(ValueError):
    """Base class for all schema engine errors."""


class InvalidSchemaError(SchemaEngineError):
    """A schema node violates a structural invariant."""


class SchemaParseError(SchemaEngineError):
    """A serialized schema document could not be parsed."""

    def __init__(self, message: str, path: str = ""):
        self.path = path
        location = f" at {path}" if path else ""
        super().__init__(f"{message}{location}")


class SchemaConversionError(SchemaEngineError):
    """A source schema node has no target representation.

    Carries the dotted field path and the offending kind so callers can
    report exactly which part of the schema is unsupported.
    """

    def __init__(self, path: str, kind: str, reason: Optional[str] = None):
        self.path = path or "<root>"
        self.kind = kind
        self.reason = reason
        message = f"Unsupported type '{kind}' at '{self.path}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class RootMustBeRecordError(SchemaConversionError):
    """Only record schemas can be converted to a table schema."""

    def __init__(self, kind: str):
        super().__init__("", kind, "schema root must be a record")


class SchemaNotRegisteredError(SchemaEngineError):
    """No schema is registered under the requested name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No schema registered for '{name}'")
