"""Unit tests for the schema manager."""

import threading
from unittest.mock import MagicMock

import pytest

from cartridge_evolve.core.config import CacheConfig, CompatibilityConfig, EngineConfig
from cartridge_evolve.schema.cache import SchemaCache
from cartridge_evolve.schema.converter import SchemaConverter
from cartridge_evolve.schema.errors import RootMustBeRecordError
from cartridge_evolve.schema.fingerprint import fingerprint
from cartridge_evolve.schema.manager import SchemaManager
from cartridge_evolve.schema.parser import load_schema
from cartridge_evolve.schema.types import INT, ArraySchema, CompatibilityPolicy, RecordSchema


class TestSchemaCaching:
    """Test conversion caching by fingerprint."""

    def test_second_request_is_a_hit(self, user_schema):
        """Test a repeated request is served from the cache."""
        manager = SchemaManager()

        first = manager.get_or_create_schema(user_schema)
        second = manager.get_or_create_schema(user_schema)

        assert first is second
        stats = manager.cache_stats()
        assert stats.hit_count == 1
        assert stats.miss_count == 1
        assert stats.size == 1

    def test_structurally_equal_schemas_share_entry(self, user_schema):
        """Test equal schemas built separately hit the same entry."""
        manager = SchemaManager()
        rebuilt = RecordSchema(user_schema.name, tuple(user_schema.fields), user_schema.namespace)

        manager.get_or_create_schema(user_schema)
        manager.get_or_create_schema(rebuilt)

        assert manager.cache_stats().hit_count == 1
        assert manager.cache_stats().size == 1

    def test_converter_called_once(self, user_schema):
        """Test a cached schema is not converted again."""
        converter = MagicMock(wraps=SchemaConverter())
        manager = SchemaManager(converter=converter)

        for _ in range(3):
            manager.get_or_create_schema(user_schema)

        assert converter.convert.call_count == 1

    def test_cache_disabled(self, user_schema):
        """Test every request converts when caching is off."""
        config = EngineConfig(cache=CacheConfig(enabled=False))
        converter = MagicMock(wraps=SchemaConverter())
        manager = SchemaManager(config=config, converter=converter)

        manager.get_or_create_schema(user_schema)
        manager.get_or_create_schema(user_schema)

        assert converter.convert.call_count == 2
        assert manager.cache_stats().size == 0

    def test_cache_built_from_config(self):
        """Test cache limits come from configuration."""
        config = EngineConfig(cache=CacheConfig(max_size=7, ttl_seconds=12))
        manager = SchemaManager(config=config)
        assert manager.cache.max_size == 7
        assert manager.cache.ttl_seconds == 12

    def test_expired_entry_reconverted(self, user_schema, clock):
        """Test an entry idle past its TTL is converted again."""
        manager = SchemaManager(cache=SchemaCache(ttl_seconds=5, clock=clock))

        manager.get_or_create_schema(user_schema)
        clock.advance(6)
        manager.get_or_create_schema(user_schema)

        stats = manager.cache_stats()
        assert stats.miss_count == 2
        assert stats.expired_count == 1

    def test_conversion_error_not_cached(self):
        """Test failed conversions propagate and leave no entry."""
        manager = SchemaManager()
        with pytest.raises(RootMustBeRecordError):
            manager.get_or_create_schema(ArraySchema(INT))
        assert manager.cache_stats().size == 0

    def test_invalidate_and_clear(self, user_schema):
        """Test explicit invalidation and clearing."""
        manager = SchemaManager()
        manager.get_or_create_schema(user_schema)

        assert manager.invalidate_schema(user_schema) is True
        assert manager.invalidate_schema(user_schema) is False

        manager.get_or_create_schema(user_schema)
        manager.clear_cache()
        assert manager.cache_stats().size == 0

    def test_fingerprint(self, user_schema):
        """Test the manager exposes the cache key."""
        manager = SchemaManager()
        manager.get_or_create_schema(user_schema)
        assert manager.cache.keys() == [manager.fingerprint(user_schema)]
        assert manager.fingerprint(user_schema) == fingerprint(user_schema)

    def test_concurrent_requests_share_result(self, user_schema):
        """Test concurrent callers all receive the same cached schema."""
        manager = SchemaManager()
        results = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            results.append(manager.get_or_create_schema(user_schema))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == 8
        assert all(result is results[0] for result in results)
        assert manager.cache_stats().size == 1

    def test_shutdown_clears_cache(self, user_schema):
        """Test shutdown drops cached schemas."""
        manager = SchemaManager()
        manager.get_or_create_schema(user_schema)
        manager.shutdown()
        assert manager.cache_stats().size == 0


class TestManagerCompatibility:
    """Test compatibility checks through the manager."""

    def test_default_policy_from_config(self, user_schema, user_schema_with_phone):
        """Test the configured default policy is used when none is given."""
        config = EngineConfig(compatibility=CompatibilityConfig(default_policy="forward"))
        manager = SchemaManager(config=config)

        result = manager.check_compatibility(user_schema, user_schema_with_phone)
        assert result.policy == CompatibilityPolicy.FORWARD
        assert not result.compatible

    def test_explicit_policy(self, user_schema, user_schema_with_phone):
        """Test an explicit policy overrides the default."""
        manager = SchemaManager()
        assert manager.is_compatible(user_schema, user_schema_with_phone, "backward")
        assert not manager.is_compatible(user_schema, user_schema_with_phone, "full")

    def test_checks_do_not_touch_cache(self, user_schema, user_schema_with_phone):
        """Test compatibility checks neither read nor fill the cache."""
        manager = SchemaManager()
        manager.check_compatibility(user_schema, user_schema_with_phone)

        stats = manager.cache_stats()
        assert stats.size == 0
        assert stats.hit_count + stats.miss_count == 0
        assert manager.compatibility_metrics().total == 1

    def test_table_check_uses_registered_schema(self, sample_config_file, fixtures_dir):
        """Test table checks compare against the registered schema and table policy."""
        manager = SchemaManager.from_config(EngineConfig.from_file(sample_config_file))
        new = load_schema(fixtures_dir / "user_v2.avsc")

        result = manager.check_table_compatibility("users", new)
        assert result.policy == CompatibilityPolicy.FULL
        assert not result.compatible
        assert manager.check_table_compatibility("users", new, "backward").compatible

    def test_unregistered_table_is_first_registration(self, user_schema):
        """Test an unknown table behaves like a schema with no predecessor."""
        manager = SchemaManager()
        result = manager.check_table_compatibility("new_table", user_schema)
        assert result.compatible
        assert result.warnings == ["no prior schema, accepting new schema"]

    def test_policy_for(self, sample_config_file):
        """Test policy resolution for registered and configured tables."""
        manager = SchemaManager.from_config(EngineConfig.from_file(sample_config_file))
        assert manager.policy_for("users") == CompatibilityPolicy.FULL
        assert manager.policy_for("audit_log") == CompatibilityPolicy.NONE
        assert manager.policy_for("other") == CompatibilityPolicy.BACKWARD
