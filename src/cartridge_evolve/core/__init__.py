"""Core components for cartridge-evolve."""

from .config import EngineConfig

__all__ = ["EngineConfig"]
