"""Schema manager coordinating conversion, caching and compatibility checks."""

from typing import Optional, Union

import structlog

from ..core.config import EngineConfig
from .cache import CacheStats, SchemaCache
from .compatibility import CompatibilityChecker, CompatibilityMetrics
from .converter import SchemaConverter
from .fingerprint import describe, fingerprint
from .registry import SchemaRegistry
from .target import TargetSchema
from .types import CompatibilityPolicy, CompatibilityResult, SchemaNode

logger = structlog.get_logger(__name__)


class SchemaManager:
    """Main entry point of the schema evolution engine.

    Converted schemas are cached by structural fingerprint, so equal
    schemas coming from different sources share one cache entry.
    Compatibility checks never consult or change the cache.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        converter: Optional[SchemaConverter] = None,
        checker: Optional[CompatibilityChecker] = None,
        cache: Optional[SchemaCache] = None,
        registry: Optional[SchemaRegistry] = None,
    ):
        """Initialize the schema manager.

        Args:
            config: Engine configuration; defaults are used when omitted
            converter: Schema converter
            checker: Compatibility checker
            cache: Cache of converted schemas; built from ``config.cache`` when omitted
            registry: Registry of table schemas
        """
        self.config = config or EngineConfig()
        self.converter = converter or SchemaConverter()
        self.checker = checker or CompatibilityChecker()
        self.cache = cache or SchemaCache(
            max_size=self.config.cache.max_size,
            ttl_seconds=self.config.cache.ttl_seconds,
        )
        self.registry = registry or SchemaRegistry()

        self.logger = logger.bind(component="schema_manager")

    @classmethod
    def from_config(cls, config: EngineConfig) -> "SchemaManager":
        """Build a manager with the registry populated from configured tables."""
        return cls(config=config, registry=SchemaRegistry.from_table_configs(config.tables))

    def fingerprint(self, source: SchemaNode) -> str:
        return fingerprint(source)

    def get_or_create_schema(self, source: SchemaNode) -> TargetSchema:
        """Get the target schema for a source schema, converting on a miss.

        Conversion runs outside the cache lock. Two callers missing on the
        same fingerprint may both convert; the first stored result is kept
        and returned to both.

        Raises:
            SchemaConversionError: If the source schema cannot be converted
        """
        if not self.config.cache.enabled:
            return self.converter.convert(source)

        key = fingerprint(source)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        self.logger.info("Converting schema", fingerprint=key, **describe(source))
        target = self.converter.convert(source)
        stored = self.cache.put_if_absent(key, target)
        self.logger.debug("Cached converted schema", fingerprint=key, fields=len(stored))
        return stored

    def invalidate_schema(self, source: SchemaNode) -> bool:
        """Drop the cached conversion of a source schema.

        Returns:
            True if an entry was removed
        """
        key = fingerprint(source)
        removed = self.cache.invalidate(key)
        self.logger.debug("Invalidated cached schema", fingerprint=key, removed=removed)
        return removed

    def is_compatible(
        self,
        old: Optional[SchemaNode],
        new: Optional[SchemaNode],
        policy: Optional[Union[CompatibilityPolicy, str]] = None,
    ) -> bool:
        return self.check_compatibility(old, new, policy).compatible

    def check_compatibility(
        self,
        old: Optional[SchemaNode],
        new: Optional[SchemaNode],
        policy: Optional[Union[CompatibilityPolicy, str]] = None,
    ) -> CompatibilityResult:
        """Check whether ``new`` may replace ``old``.

        Args:
            old: Current schema, or None
            new: Proposed schema, or None
            policy: Policy to apply; the configured default when omitted
        """
        if policy is None:
            policy = self.config.compatibility.default_policy
        return self.checker.check(old, new, policy)

    def policy_for(self, table_name: str) -> CompatibilityPolicy:
        """Effective policy for a table: registry entry, then configuration."""
        entry = self.registry.get(table_name)
        if entry is not None and entry.evolution_policy is not None:
            return entry.evolution_policy
        return self.config.get_policy(table_name)

    def check_table_compatibility(
        self,
        table_name: str,
        new: Optional[SchemaNode],
        policy: Optional[Union[CompatibilityPolicy, str]] = None,
    ) -> CompatibilityResult:
        """Check a proposed schema against the one registered for a table.

        An unregistered table is treated as a first-time registration.
        """
        entry = self.registry.get(table_name)
        old = entry.schema if entry else None
        return self.check_compatibility(old, new, policy or self.policy_for(table_name))

    def cache_stats(self) -> CacheStats:
        return self.cache.stats()

    def compatibility_metrics(self) -> CompatibilityMetrics:
        return self.checker.metrics()

    def clear_cache(self) -> None:
        self.cache.clear()
        self.logger.info("Schema cache cleared")

    def shutdown(self) -> None:
        """Release cached schemas at process shutdown."""
        stats = self.cache.stats()
        self.cache.clear()
        self.logger.info("Schema manager shut down",
                         cached_schemas=stats.size,
                         hit_rate=stats.hit_rate)
