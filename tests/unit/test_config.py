"""Test configuration management."""

import pytest
from pydantic import ValidationError

from cartridge_evolve.core.config import (
    CacheConfig,
    CompatibilityConfig,
    EngineConfig,
    PrometheusConfig,
    TableConfig,
)
from cartridge_evolve.schema.types import CompatibilityPolicy


def test_load_config_from_file(sample_config_file):
    """Test loading configuration from file."""
    config = EngineConfig.from_file(sample_config_file)

    assert config.cache.max_size == 50
    assert config.cache.ttl_seconds == 60
    assert config.compatibility.default_policy == CompatibilityPolicy.BACKWARD
    assert config.compatibility.table_policies == {"audit_log": CompatibilityPolicy.NONE}
    assert config.monitoring.log_level == "DEBUG"
    assert len(config.tables) == 1


def test_relative_schema_path_resolved(sample_config_file):
    """Test table schema paths are resolved against the config file."""
    config = EngineConfig.from_file(sample_config_file)
    table = config.get_table_config("users")

    assert table.schema_path == sample_config_file.parent / "schemas" / "user.avsc"
    assert table.schema_path.exists()
    assert table.partition_by == ["country"]
    assert table.evolution_policy == CompatibilityPolicy.FULL


def test_missing_config_file(tmp_path):
    """Test loading a missing configuration file."""
    with pytest.raises(FileNotFoundError):
        EngineConfig.from_file(tmp_path / "missing.yaml")


def test_empty_config_file(tmp_path):
    """Test an empty file gives the defaults."""
    config_file = tmp_path / "empty.yaml"
    config_file.write_text("")

    config = EngineConfig.from_file(config_file)
    assert config.cache.enabled
    assert config.compatibility.default_policy == CompatibilityPolicy.BACKWARD
    assert config.tables == []


def test_cache_validation():
    """Test cache limits must be positive."""
    with pytest.raises(ValidationError, match="Cache max_size must be positive"):
        CacheConfig(max_size=0)
    with pytest.raises(ValidationError, match="Cache TTL must be positive"):
        CacheConfig(ttl_seconds=-1)


def test_policy_spellings():
    """Test policies accept upper-case and suffixed names."""
    config = CompatibilityConfig(
        default_policy="FULL_COMPATIBLE",
        table_policies={"events": "Forward"},
    )
    assert config.default_policy == CompatibilityPolicy.FULL
    assert config.table_policies["events"] == CompatibilityPolicy.FORWARD


def test_unknown_policy_rejected():
    """Test unknown policy names fail validation."""
    with pytest.raises(ValidationError):
        CompatibilityConfig(default_policy="sideways")


def test_duplicate_table_names(tmp_path):
    """Test duplicate table names are rejected."""
    tables = [
        TableConfig(name="users", schema_path=tmp_path / "a.avsc"),
        TableConfig(name="users", schema_path=tmp_path / "b.avsc"),
    ]
    with pytest.raises(ValidationError, match="Duplicate table names: users"):
        EngineConfig(tables=tables)


def test_get_policy_precedence(tmp_path):
    """Test table setting, then override table, then default."""
    config = EngineConfig(
        compatibility=CompatibilityConfig(
            default_policy="forward",
            table_policies={"users": "none", "orders": "full"},
        ),
        tables=[TableConfig(name="users", schema_path=tmp_path / "u.avsc", evolution_policy="backward")],
    )

    assert config.get_policy("users") == CompatibilityPolicy.BACKWARD
    assert config.get_policy("orders") == CompatibilityPolicy.FULL
    assert config.get_policy("unknown") == CompatibilityPolicy.FORWARD
    assert config.get_policy() == CompatibilityPolicy.FORWARD


def test_env_overrides(monkeypatch):
    """Test nested settings can be set from the environment."""
    monkeypatch.setenv("CARTRIDGE_EVOLVE_CACHE__MAX_SIZE", "25")
    monkeypatch.setenv("CARTRIDGE_EVOLVE_COMPATIBILITY__DEFAULT_POLICY", "none")

    config = EngineConfig()
    assert config.cache.max_size == 25
    assert config.compatibility.default_policy == CompatibilityPolicy.NONE


def test_prometheus_config_defaults():
    """Test Prometheus configuration defaults."""
    config = PrometheusConfig()
    assert config.enabled is False
    assert config.port == 8080
    assert "path" not in PrometheusConfig.model_fields
