"""Metrics exposure for cartridge-evolve."""

from .metrics import EngineCollector, MetricsCollector

__all__ = ["EngineCollector", "MetricsCollector"]
