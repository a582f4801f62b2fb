"""Library configuration for pycontection."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pycontection.exceptions import ContectionConfigError

#: Cookie lifetime used when no explicit ``max_age`` is given (30 days).
DEFAULT_COOKIE_MAX_AGE: int = 60 * 60 * 24 * 30

_SAME_SITE_VALUES = frozenset({"strict", "lax", "none"})


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_int(env_key: str, value: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise ContectionConfigError(f"{env_key} must be an integer, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class ContectionConfig:
    """Defaults shared by the persistence adapters.

    Parameters
    ----------
    storage_prefix : str
        Prefix prepended to every key written to a key-value storage medium.
    storage_raw_limit : int
        Largest serialized size (in characters) the storage adapter persists.
    cookie_prefix : str
        Prefix prepended to every cookie name.
    cookie_raw_limit : int
        Largest serialized cookie size. Browsers reject cookies above ~4 KiB.
    cookie_max_age : int
        Default ``Max-Age`` in seconds for persisted cookies.
    cookie_secure : bool
        Default ``Secure`` attribute for persisted cookies.
    cookie_same_site : str
        Default ``SameSite`` policy: ``"strict"``, ``"lax"`` or ``"none"``.
    """

    storage_prefix: str = "__ctn_"
    storage_raw_limit: int = 1024 * 100
    cookie_prefix: str = "__ctn_"
    cookie_raw_limit: int = 1024 * 4
    cookie_max_age: int = DEFAULT_COOKIE_MAX_AGE
    cookie_secure: bool = True
    cookie_same_site: str = "strict"

    def __post_init__(self) -> None:
        if self.cookie_same_site not in _SAME_SITE_VALUES:
            raise ContectionConfigError(
                f"cookie_same_site must be one of {sorted(_SAME_SITE_VALUES)}, got {self.cookie_same_site!r}"
            )
        if self.storage_raw_limit <= 0 or self.cookie_raw_limit <= 0:
            raise ContectionConfigError("raw limits must be positive")
        if self.cookie_max_age < 0:
            raise ContectionConfigError(f"cookie_max_age must be >= 0, got {self.cookie_max_age}")

    @classmethod
    def from_env(cls, **overrides: Any) -> ContectionConfig:
        """Create configuration from ``CONTECTION_*`` environment variables.

        Explicit keyword arguments take precedence over environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        _ENV_STR_MAP = {
            "CONTECTION_STORAGE_PREFIX": "storage_prefix",
            "CONTECTION_COOKIE_PREFIX": "cookie_prefix",
            "CONTECTION_COOKIE_SAME_SITE": "cookie_same_site",
        }
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val.strip().lower() if field_name == "cookie_same_site" else val

        _ENV_INT_MAP = {
            "CONTECTION_STORAGE_RAW_LIMIT": "storage_raw_limit",
            "CONTECTION_COOKIE_RAW_LIMIT": "cookie_raw_limit",
            "CONTECTION_COOKIE_MAX_AGE": "cookie_max_age",
        }
        for env_key, field_name in _ENV_INT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_int(env_key, val)

        if "cookie_secure" not in overrides:
            config_kwargs["cookie_secure"] = _env_bool(env.get("CONTECTION_COOKIE_SECURE"), True)

        config_kwargs.update(overrides)
        return cls(**config_kwargs)
