"""Persistence adapter contract.

An adapter moves a chosen set of store fields to and from an external
medium. The store engine calls :meth:`Adapter.restore` and
:meth:`Adapter.persist` (plus an optional ``before_destroy(state)`` on
disposal); new media are added by implementing those operations, never by
teaching the engine about them.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from pycontection._redact import summarize
from pycontection.exceptions import AdapterError, AdapterPersistFailure, AdapterRestoreFailure, ContectionConfigError
from pycontection.models.adapter import AdapterConfig, PersistFlags

_logger = logging.getLogger(__name__)

#: Optional payload validator. ``False`` or an exception rejects the value.
Validate = Callable[[dict[str, Any]], bool | None]

AdapterErrorCallback = Callable[[AdapterError], None]


@runtime_checkable
class Adapter(Protocol):
    """Structural adapter interface consumed by the store engine."""

    config: AdapterConfig

    @property
    def restore_on_prepare(self) -> bool:
        """Whether ``get_store`` should restore through this adapter."""
        ...

    async def restore(self, context: Any = None) -> dict[str, Any]:
        """Read persisted fields. Must not raise for missing or malformed values."""
        ...

    def persist(
        self,
        keys: Sequence[str],
        state: Mapping[str, Any],
        flags: PersistFlags,
    ) -> Awaitable[None] | None:
        """Write *keys* of *state* to the medium."""
        ...


class BaseAdapter(ABC):
    """Shared plumbing for adapters that store JSON-encoded values by key."""

    def __init__(
        self,
        *,
        prefix: str,
        raw_limit: int,
        save_keys: Iterable[str] | None = None,
        flags: PersistFlags | None = None,
        validate: Validate | None = None,
    ) -> None:
        if raw_limit <= 0:
            raise ContectionConfigError("raw_limit must be positive")
        self.config = AdapterConfig(
            save_keys=frozenset(save_keys) if save_keys is not None and not isinstance(save_keys, str) else save_keys,
            flags=flags or PersistFlags(),
        )
        self.prefix = prefix
        self.raw_limit = raw_limit
        self._validate = validate

    @property
    def restore_on_prepare(self) -> bool:
        return True

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    async def restore(self, context: Any = None) -> dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def persist(
        self,
        keys: Sequence[str],
        state: Mapping[str, Any],
        flags: PersistFlags,
    ) -> Awaitable[None] | None:
        raise NotImplementedError

    def before_destroy(self, state: Mapping[str, Any]) -> None:
        """Called once when a store using this adapter is disposed."""

    def write_each(self, keys: Iterable[str], write: Callable[[str], None]) -> None:
        """Call ``write(key)`` for every key, then report all failures at once."""
        failed: list[str] = []
        first_error: Exception | None = None
        for key in keys:
            try:
                write(key)
            except Exception as exc:
                failed.append(key)
                if first_error is None:
                    first_error = exc
                _logger.debug("%s: writing %r failed: %s", self.name, key, exc)
        if failed:
            raise AdapterPersistFailure(
                f"{self.name}: could not persist {failed}",
                adapter=self.name,
                keys=failed,
            ) from first_error

    # ------------------------------------------------------------------
    # Encoding helpers
    # ------------------------------------------------------------------

    def storage_key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def field_name(self, storage_key: str) -> str | None:
        """Inverse of :meth:`storage_key`; ``None`` for foreign keys."""
        if not storage_key.startswith(self.prefix):
            return None
        key = storage_key[len(self.prefix) :]
        return key or None

    def encode(self, key: str, value: Any) -> str | None:
        """Serialize *value*, or return ``None`` when it exceeds ``raw_limit``.

        Raises ``TypeError``/``ValueError`` for values JSON cannot represent.
        """
        raw = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
        if len(raw) + len(self.prefix) + len(key) >= self.raw_limit:
            _logger.debug(
                "%s: not persisting %r, %d chars exceeds raw limit %d",
                self.name,
                key,
                len(raw),
                self.raw_limit,
            )
            return None
        return raw

    def decode(self, key: str, raw: str | None) -> tuple[bool, Any]:
        """Parse and validate a persisted value.

        Returns ``(found, value)``. Malformed or rejected data degrades to
        ``(False, None)`` so that the default applies.
        """
        if not raw:
            return False, None
        try:
            value = json.loads(raw)
        except ValueError as exc:
            self._restore_failed(key, raw, exc)
            return False, None
        if not self._is_valid(key, value):
            self._restore_failed(key, raw, None)
            return False, None
        return True, value

    def _is_valid(self, key: str, value: Any) -> bool:
        if self._validate is None:
            return True
        try:
            return self._validate({key: value}) is not False
        except Exception:  # noqa: BLE001 - a raising validator means "invalid"
            return False

    def _restore_failed(self, key: str, raw: str, exc: Exception | None) -> None:
        failure = AdapterRestoreFailure(
            f"{self.name}: discarded persisted value for {key!r}",
            adapter=self.name,
            keys=(key,),
        )
        _logger.warning("%s (raw=%r, error=%s)", failure, summarize(raw), exc or "rejected by validator")


def merge_restored(
    defaults: Mapping[str, Any],
    restored: Mapping[str, Any],
    config: AdapterConfig,
) -> dict[str, Any]:
    """Overlay *restored* on *defaults*, keeping only persisted schema fields."""
    merged = dict(defaults)
    for key, value in restored.items():
        if key not in defaults:
            _logger.debug("Ignoring restored field %r: not part of the store schema", key)
            continue
        if not config.selects(key):
            _logger.debug("Ignoring restored field %r: not in save_keys", key)
            continue
        merged[key] = value
    return merged


def report_adapter_error(error: AdapterError, callback: AdapterErrorCallback | None) -> None:
    """Log an absorbed adapter failure and hand it to the observability callback."""
    cause = error.__cause__
    if cause is not None:
        _logger.warning("%s: %s", error, cause)
    else:
        _logger.warning("%s", error)
    if callback is not None:
        callback(error)
