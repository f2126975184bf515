"""Test configuration for cartridge-evolve."""

from pathlib import Path

import pytest

from cartridge_evolve.schema.types import (
    BOOLEAN,
    BYTES,
    DOUBLE,
    FLOAT,
    INT,
    LONG,
    STRING,
    ArraySchema,
    EnumSchema,
    Field,
    FixedSchema,
    MapSchema,
    RecordSchema,
    optional,
)

FIXTURES_DIR = Path(__file__).parent / "fixtures"


class FakeClock:
    """Manually advanced time source for cache tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    """A fake monotonic clock."""
    return FakeClock()


@pytest.fixture
def fixtures_dir():
    """Directory holding sample .avsc files."""
    return FIXTURES_DIR


@pytest.fixture
def user_schema():
    """A flat user record."""
    return RecordSchema(
        name="User",
        namespace="com.example.users",
        fields=(
            Field("id", STRING),
            Field("name", STRING),
            Field("age", INT),
            Field("email", optional(STRING), has_default=True, default=None),
        ),
    )


@pytest.fixture
def user_schema_with_phone(user_schema):
    """The user record with an optional phone field appended."""
    return RecordSchema(
        name=user_schema.name,
        namespace=user_schema.namespace,
        fields=user_schema.fields + (
            Field("phone", optional(STRING), has_default=True, default=None),
        ),
    )


@pytest.fixture
def nested_schema():
    """A record using every supported kind."""
    address = RecordSchema(
        name="Address",
        namespace="com.example.orders",
        fields=(
            Field("street", STRING),
            Field("zip", optional(STRING), has_default=True, default=None),
        ),
    )
    return RecordSchema(
        name="Order",
        namespace="com.example.orders",
        fields=(
            Field("order_id", LONG),
            Field("address", optional(address), has_default=True, default=None),
            Field("tags", ArraySchema(STRING)),
            Field("attributes", MapSchema(optional(STRING))),
            Field("status", EnumSchema("Status", ("NEW", "PAID"), "com.example.orders")),
            Field("checksum", FixedSchema("MD5", 16, "com.example.orders")),
            Field("payload", BYTES),
            Field("total", DOUBLE),
            Field("discount", FLOAT),
            Field("gift", BOOLEAN),
        ),
    )


@pytest.fixture
def sample_config_file(tmp_path):
    """Create a sample configuration file with one registered table."""
    schemas_dir = tmp_path / "schemas"
    schemas_dir.mkdir()
    (schemas_dir / "user.avsc").write_text((FIXTURES_DIR / "user_v1.avsc").read_text())

    config_content = """
cache:
  enabled: true
  max_size: 50
  ttl_seconds: 60

compatibility:
  default_policy: BACKWARD_COMPATIBLE
  table_policies:
    audit_log: none

tables:
  - name: users
    schema_path: schemas/user.avsc
    primary_key: id
    partition_by: country
    evolution_policy: full

monitoring:
  prometheus:
    enabled: false
  log_level: "debug"
"""

    config_file = tmp_path / "test_config.yaml"
    config_file.write_text(config_content)
    return config_file
