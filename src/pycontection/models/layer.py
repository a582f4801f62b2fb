"""Layer registry models."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

LayerKind = Literal["dialog", "upper_layer"]


def normalize_layer_id(layer_id: str) -> str:
    """Canonical form of a layer identifier, used for every lookup."""
    return layer_id.strip()


class LayerEntry(BaseModel):
    """One registered overlay (dialog, popover, drawer...).

    A layer counts as active while ``check_is_active(data)`` returns true;
    without a predicate a registered layer is always active.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique layer identifier")
    kind: LayerKind = Field(default="dialog", description="Dialog or upper layer")
    isolated: bool = Field(default=False, description="Demands exclusive interaction")
    data: Any = None
    check_is_active: Callable[[Any], bool] | None = Field(default=None, exclude=True, repr=False)

    @field_validator("id")
    @classmethod
    def _normalize_id(cls, value: str) -> str:
        layer_id = normalize_layer_id(value)
        if not layer_id:
            raise ValueError("id must be non-empty")
        return layer_id

    @property
    def active(self) -> bool:
        if self.check_is_active is None:
            return True
        return bool(self.check_is_active(self.data))
