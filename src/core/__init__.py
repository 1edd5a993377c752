"""Config-driven simulation runner."""

from .temporal_engine import TemporalEngine

__all__ = ["TemporalEngine"]
