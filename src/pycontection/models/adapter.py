"""Adapter configuration models."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

SameSite = Literal["strict", "lax", "none"]


class PersistFlags(BaseModel):
    """Medium-specific write attributes.

    Every attribute is optional; adapters fill unset values from
    :class:`~pycontection.config.ContectionConfig`. Key-value storage media
    ignore these flags entirely.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    path: str | None = Field(default=None, description="Path scope of the cookie")
    domain: str | None = None
    expires: datetime | None = None
    max_age: int | None = Field(default=None, description="Lifetime in seconds")
    secure: bool | None = Field(default=None, description="Only send over HTTPS")
    same_site: SameSite | None = Field(default=None, description="Cross-site send policy")

    @field_validator("path")
    @classmethod
    def _normalize_path(cls, value: str | None) -> str | None:
        if value is None:
            return value
        path = value.strip()
        if not path.startswith("/"):
            raise ValueError("path must start with '/'")
        return path

    @field_validator("max_age")
    @classmethod
    def _non_negative_max_age(cls, value: int | None) -> int | None:
        if value is not None and value < 0:
            raise ValueError("max_age must be >= 0")
        return value

    @field_validator("expires")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


class AdapterConfig(BaseModel):
    """Which fields an adapter persists, and how.

    ``save_keys=None`` means every field of the store is persisted.
    Constructed once when the adapter is created and never changed.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    save_keys: frozenset[str] | None = None
    flags: PersistFlags = Field(default_factory=PersistFlags)

    @field_validator("save_keys", mode="before")
    @classmethod
    def _coerce_save_keys(cls, value: object) -> object:
        if isinstance(value, str):
            # A bare string would otherwise be split into characters.
            return frozenset({value})
        return value

    def selects(self, key: str) -> bool:
        """Whether *key* is persisted by this adapter."""
        return self.save_keys is None or key in self.save_keys

    def select(self, keys: Iterable[str]) -> list[str]:
        """Filter *keys* down to the persisted ones, keeping order."""
        return [key for key in keys if self.selects(key)]
