"""Pydantic models for adapter configuration and layer entries."""

from pycontection.models.adapter import AdapterConfig, PersistFlags, SameSite
from pycontection.models.layer import LayerEntry, LayerKind

__all__ = [
    "AdapterConfig",
    "LayerEntry",
    "LayerKind",
    "PersistFlags",
    "SameSite",
]
