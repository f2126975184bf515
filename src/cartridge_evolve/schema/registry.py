"""Explicit registry of table schemas keyed by name.

Schemas are registered once, typically from configuration at startup, and
looked up by string identifier afterwards.
"""

import threading
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

import structlog

from .errors import InvalidSchemaError, SchemaNotRegisteredError
from .fingerprint import fingerprint
from .parser import load_schema
from .types import CompatibilityPolicy, RecordSchema, SchemaNode

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RegisteredSchema:
    """A table schema together with its layout metadata."""

    name: str
    schema: SchemaNode
    fingerprint: str
    version: int = 1
    primary_key: Optional[str] = None
    partition_by: Tuple[str, ...] = ()
    evolution_policy: Optional[CompatibilityPolicy] = None


class SchemaRegistry:
    """Thread-safe map of table name to its current registered schema."""

    def __init__(self):
        self._schemas: Dict[str, RegisteredSchema] = {}
        self._lock = threading.Lock()
        self.logger = logger.bind(component="schema_registry")

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._schemas

    def __len__(self) -> int:
        with self._lock:
            return len(self._schemas)

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._schemas)

    def register(
        self,
        name: str,
        schema: SchemaNode,
        primary_key: Optional[str] = None,
        partition_by: Iterable[str] = (),
        evolution_policy: Optional[CompatibilityPolicy] = None,
    ) -> RegisteredSchema:
        """Register a schema under ``name``, replacing any previous version.

        Args:
            name: Registry key, usually the table name
            schema: Root record schema of the table
            primary_key: Primary key column, if any
            partition_by: Partition columns
            evolution_policy: Optional per-table compatibility policy

        Returns:
            The registered entry; its version is one higher than the
            replaced entry's

        Raises:
            InvalidSchemaError: If the schema is not a record or names
                columns it does not have
        """
        partition_by = tuple(partition_by)
        self._validate(name, schema, primary_key, partition_by)

        with self._lock:
            previous = self._schemas.get(name)
            entry = RegisteredSchema(
                name=name,
                schema=schema,
                fingerprint=fingerprint(schema),
                version=previous.version + 1 if previous else 1,
                primary_key=primary_key,
                partition_by=partition_by,
                evolution_policy=evolution_policy,
            )
            self._schemas[name] = entry

        self.logger.info("Registered schema",
                         table=name,
                         schema=schema.full_name,
                         version=entry.version)
        return entry

    def get(self, name: str) -> Optional[RegisteredSchema]:
        with self._lock:
            return self._schemas.get(name)

    def require(self, name: str) -> RegisteredSchema:
        """Get a registered schema, raising if the name is unknown."""
        entry = self.get(name)
        if entry is None:
            raise SchemaNotRegisteredError(name)
        return entry

    def unregister(self, name: str) -> bool:
        with self._lock:
            return self._schemas.pop(name, None) is not None

    @classmethod
    def from_table_configs(cls, tables) -> "SchemaRegistry":
        """Build a registry by loading each configured table's schema file.

        Args:
            tables: Iterable of TableConfig entries
        """
        registry = cls()
        for table in tables:
            registry.register(
                table.name,
                load_schema(table.schema_path),
                primary_key=table.primary_key,
                partition_by=table.partition_by,
                evolution_policy=table.evolution_policy,
            )
        return registry

    def _validate(
        self,
        name: str,
        schema: SchemaNode,
        primary_key: Optional[str],
        partition_by: Tuple[str, ...],
    ) -> None:
        if not isinstance(schema, RecordSchema):
            raise InvalidSchemaError(f"Schema for table '{name}' must be a record")

        columns = set(schema.field_names)
        if primary_key is not None and primary_key not in columns:
            raise InvalidSchemaError(f"Primary key '{primary_key}' is not a field of table '{name}'")

        missing = [column for column in partition_by if column not in columns]
        if missing:
            raise InvalidSchemaError(
                f"Partition columns not in table '{name}': {', '.join(missing)}"
            )
