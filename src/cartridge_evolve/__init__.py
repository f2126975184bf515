"""
Cartridge-Evolve: Schema Evolution Engine

Converts Avro-style source schemas into columnar table schemas, caches the
conversions and decides whether a new schema version may safely replace an
older one under a configurable compatibility policy.
"""

__version__ = "0.1.0"
__author__ = "Cartridge Team"
__email__ = "team@cartridge.dev"

from .core.config import EngineConfig
from .schema.manager import SchemaManager
from .schema.types import CompatibilityPolicy, CompatibilityResult

__all__ = ["EngineConfig", "SchemaManager", "CompatibilityPolicy", "CompatibilityResult"]
