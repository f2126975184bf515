"""Configuration management for cartridge-evolve."""

from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from ..schema.types import CompatibilityPolicy


def _parse_policy(value: Any) -> Any:
    """Normalise policy spellings such as ``BACKWARD_COMPATIBLE``."""
    if value is None or isinstance(value, CompatibilityPolicy):
        return value
    return CompatibilityPolicy.parse(value)


def _parse_comma_separated_list(value: Any) -> Optional[list[str]]:
    """Parse comma-separated string into list of strings."""
    if value is None:
        return None
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return None


class CacheConfig(BaseModel):
    """Converted-schema cache configuration."""

    enabled: bool = Field(True, description="Cache converted schemas")
    max_size: int = Field(1000, description="Maximum number of cached schemas")
    ttl_seconds: float = Field(300.0, description="Idle time after which a cached schema expires")

    @field_validator("max_size")
    @classmethod
    def validate_max_size(cls, v):
        """Validate cache ceiling."""
        if v <= 0:
            raise ValueError("Cache max_size must be positive")
        return v

    @field_validator("ttl_seconds")
    @classmethod
    def validate_ttl(cls, v):
        """Validate cache TTL."""
        if v <= 0:
            raise ValueError("Cache TTL must be positive")
        return v


class CompatibilityConfig(BaseModel):
    """Schema compatibility policy configuration."""

    default_policy: CompatibilityPolicy = Field(
        CompatibilityPolicy.BACKWARD, description="Policy used when none is given"
    )
    table_policies: Dict[str, CompatibilityPolicy] = Field(
        default_factory=dict, description="Per-table policy overrides"
    )

    @field_validator("default_policy", mode="before")
    @classmethod
    def parse_default_policy(cls, v):
        """Accept any policy spelling."""
        return _parse_policy(v)

    @field_validator("table_policies", mode="before")
    @classmethod
    def parse_table_policies(cls, v):
        """Accept any policy spelling in overrides."""
        if isinstance(v, dict):
            return {name: _parse_policy(policy) for name, policy in v.items()}
        return v


class TableConfig(BaseModel):
    """A table whose source schema is registered at configuration time."""

    name: str = Field(description="Table name, used as the registry key")
    schema_path: Path = Field(description="Path to the table's Avro schema (.avsc)")
    primary_key: Optional[str] = Field(None, description="Primary key column")
    partition_by: List[str] = Field(default_factory=list, description="Partition columns")
    evolution_policy: Optional[CompatibilityPolicy] = Field(
        None, description="Compatibility policy override for this table"
    )

    @field_validator("partition_by", mode="before")
    @classmethod
    def parse_partition_by(cls, v):
        """Parse comma-separated string for partition columns."""
        parsed = _parse_comma_separated_list(v)
        return parsed if parsed is not None else []

    @field_validator("evolution_policy", mode="before")
    @classmethod
    def parse_evolution_policy(cls, v):
        """Accept any policy spelling."""
        return _parse_policy(v)


class PrometheusConfig(BaseModel):
    """Prometheus monitoring configuration."""

    enabled: bool = False
    port: int = 8080


class MonitoringConfig(BaseModel):
    """Monitoring and observability configuration."""

    prometheus: PrometheusConfig = PrometheusConfig()
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    structured_logging: bool = False

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        """Accept lower-case log levels."""
        return v.upper() if isinstance(v, str) else v


class EngineConfig(BaseSettings):
    """Main configuration for the schema evolution engine."""

    cache: CacheConfig = CacheConfig()
    compatibility: CompatibilityConfig = CompatibilityConfig()
    tables: List[TableConfig] = Field(default_factory=list, description="Registered tables")
    monitoring: MonitoringConfig = MonitoringConfig()

    model_config = {
        "env_prefix": "CARTRIDGE_EVOLVE_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
    }

    @field_validator("tables")
    @classmethod
    def validate_unique_tables(cls, v):
        """Ensure table names are unique."""
        names = [table.name for table in v]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate table names: {', '.join(duplicates)}")
        return v

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> "EngineConfig":
        """Load configuration from YAML file.

        Relative schema paths are resolved against the file's directory.
        """
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path) as f:
            config_data = yaml.safe_load(f) or {}

        for table in config_data.get("tables") or []:
            schema_path = table.get("schema_path") if isinstance(table, dict) else None
            if schema_path and not Path(schema_path).is_absolute():
                table["schema_path"] = str(config_path.parent / schema_path)

        return cls(**config_data)

    def get_table_config(self, table_name: str) -> Optional[TableConfig]:
        """Get configuration for a specific table."""
        for table_config in self.tables:
            if table_config.name == table_name:
                return table_config
        return None

    def get_policy(self, table_name: Optional[str] = None) -> CompatibilityPolicy:
        """Get the effective compatibility policy for a table.

        Table configuration wins over ``compatibility.table_policies``, which
        wins over the default policy.
        """
        if table_name:
            table_config = self.get_table_config(table_name)
            if table_config and table_config.evolution_policy is not None:
                return table_config.evolution_policy

            override = self.compatibility.table_policies.get(table_name)
            if override is not None:
                return override

        return self.compatibility.default_policy
