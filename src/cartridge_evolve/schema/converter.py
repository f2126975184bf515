"""Conversion of source record schemas into target table schemas."""

from typing import Optional

import structlog

from .errors import RootMustBeRecordError, SchemaConversionError
from .target import TargetSchema
from .type_mapper import TypeMapper
from .types import RecordSchema, SchemaNode

logger = structlog.get_logger(__name__)


class SchemaConverter:
    """Converts a source record schema into an ordered target schema.

    Conversion is pure: the same input always produces a structurally equal
    result, so one converter can serve any number of threads.
    """

    def __init__(self, type_mapper: Optional[TypeMapper] = None):
        self.type_mapper = type_mapper or TypeMapper()
        self.logger = logger.bind(component="schema_converter")

    def convert(self, root: SchemaNode) -> TargetSchema:
        """Convert a record schema into a target schema.

        Args:
            root: Source schema; must be a record

        Returns:
            Target schema with one column per record field, in declared order

        Raises:
            RootMustBeRecordError: If the root is not a record
            SchemaConversionError: If any nested node has no target type
        """
        if not isinstance(root, RecordSchema):
            kind = getattr(root, "kind", None)
            raise RootMustBeRecordError(getattr(kind, "value", type(root).__name__))

        try:
            fields = self.type_mapper.map_fields(root)
        except SchemaConversionError as e:
            self.logger.warning("Schema conversion failed",
                                schema=root.full_name,
                                path=e.path,
                                kind=e.kind)
            raise

        self.logger.debug("Converted schema", schema=root.full_name, fields=len(fields))
        return TargetSchema(fields, name=root.full_name)
