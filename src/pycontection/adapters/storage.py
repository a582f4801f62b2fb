"""Key-value storage adapter (the ``localStorage``/``sessionStorage`` medium)."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import Any, Literal, Protocol, runtime_checkable

from pycontection.adapters.base import BaseAdapter, Validate
from pycontection.config import ContectionConfig
from pycontection.exceptions import ContectionConfigError
from pycontection.models.adapter import PersistFlags

_logger = logging.getLogger(__name__)

_PROBE_KEY = "___ctn_test"

RestoreMode = Literal["always", "after-hydration", "never"]
DestroyMode = Literal["ignore", "cleanup"]


@runtime_checkable
class KeyValueStorage(Protocol):
    """Synchronous string key-value medium."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def keys(self) -> Iterable[str]: ...


class MemoryStorage:
    """Dict-backed :class:`KeyValueStorage`."""

    def __init__(self, items: Mapping[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(items or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = str(value)

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> Iterator[str]:
        return iter(list(self._items))

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: object) -> bool:
        return key in self._items


def is_storage_available(storage: KeyValueStorage | None) -> bool:
    """Probe *storage* with a write/read/remove round trip."""
    if storage is None:
        return False
    try:
        storage.set_item(_PROBE_KEY, "1")
        if storage.get_item(_PROBE_KEY) == "1":
            storage.remove_item(_PROBE_KEY)
            return True
    except Exception as exc:  # noqa: BLE001 - quota/security errors mean "unavailable"
        _logger.debug("Storage probe failed: %s", exc)
    return False


class StorageAdapter(BaseAdapter):
    """Persist selected fields as JSON strings in a key-value storage.

    Parameters
    ----------
    storage : KeyValueStorage or None
        Medium to use. Defaults to a fresh :class:`MemoryStorage`. A medium
        that fails the availability probe makes the adapter inert.
    save_keys : iterable of str or None
        Fields to persist. ``None`` persists every field.
    enabled : str
        ``"always"`` restores while preparing the store, ``"after-hydration"``
        only when ``Store.restore()`` is awaited after activation, ``"never"``
        never restores (values are still written).
    on_destroy : str
        ``"cleanup"`` removes the persisted fields when the store is
        disposed; ``"ignore"`` (default) keeps them.
    prefix, raw_limit : optional
        Override :class:`ContectionConfig` ``storage_prefix``/``storage_raw_limit``.
    validate : callable or None
        ``validate({key: value})``; ``False`` or an exception rejects the value.
    """

    def __init__(
        self,
        *,
        storage: KeyValueStorage | None = None,
        save_keys: Iterable[str] | None = None,
        enabled: RestoreMode = "always",
        on_destroy: DestroyMode = "ignore",
        prefix: str | None = None,
        raw_limit: int | None = None,
        validate: Validate | None = None,
        config: ContectionConfig | None = None,
    ) -> None:
        if enabled not in ("always", "after-hydration", "never"):
            raise ContectionConfigError(f"Unknown restore mode {enabled!r}")
        if on_destroy not in ("ignore", "cleanup"):
            raise ContectionConfigError(f"Unknown destroy mode {on_destroy!r}")
        config = config or ContectionConfig()
        super().__init__(
            prefix=config.storage_prefix if prefix is None else prefix,
            raw_limit=config.storage_raw_limit if raw_limit is None else raw_limit,
            save_keys=save_keys,
            validate=validate,
        )
        self.enabled = enabled
        self.on_destroy = on_destroy
        medium = MemoryStorage() if storage is None else storage
        self._storage: KeyValueStorage | None = medium if is_storage_available(medium) else None
        if self._storage is None:
            _logger.warning("%s: storage medium unavailable, persistence disabled", self.name)

    @property
    def available(self) -> bool:
        return self._storage is not None

    @property
    def restore_on_prepare(self) -> bool:
        return self.enabled == "always"

    async def restore(self, context: Any = None) -> dict[str, Any]:
        """Read persisted fields. *context* is unused: the medium is local."""
        return self.read()

    def read(self) -> dict[str, Any]:
        storage = self._storage
        if storage is None or self.enabled == "never":
            return {}

        if self.config.save_keys is not None:
            candidates = sorted(self.config.save_keys)
        else:
            candidates = [key for key in map(self.field_name, storage.keys()) if key is not None]

        restored: dict[str, Any] = {}
        for key in candidates:
            try:
                raw = storage.get_item(self.storage_key(key))
            except Exception as exc:  # noqa: BLE001 - unreadable medium degrades to defaults
                _logger.warning("%s: could not read %r: %s", self.name, key, exc)
                continue
            found, value = self.decode(key, raw)
            if found:
                restored[key] = value
        _logger.debug("%s restored %s", self.name, sorted(restored))
        return restored

    def persist(
        self,
        keys: Sequence[str],
        state: Mapping[str, Any],
        flags: PersistFlags,
    ) -> None:
        storage = self._storage
        if storage is None:
            return

        def write(key: str) -> None:
            raw = self.encode(key, state[key])
            if raw is not None:
                storage.set_item(self.storage_key(key), raw)

        self.write_each(self.config.select(keys), write)

    def clear(self, keys: Iterable[str]) -> None:
        """Remove persisted values for *keys* (e.g. on sign-out)."""
        storage = self._storage
        if storage is None:
            return
        for key in self.config.select(keys):
            storage.remove_item(self.storage_key(key))

    def before_destroy(self, state: Mapping[str, Any]) -> None:
        if self.on_destroy == "cleanup":
            _logger.debug("%s: removing persisted fields on destroy", self.name)
            self.clear(state)
