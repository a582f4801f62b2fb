"""Server/client store preparation.

:func:`prepare_store` runs once per store definition, usually at module
import time. The returned :class:`PreparedStore` is immutable and shared;
everything it produces per request is a fresh copy.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from pycontection.adapters.base import Adapter, AdapterErrorCallback, merge_restored, report_adapter_error
from pycontection.exceptions import AdapterRestoreFailure, ContectionConfigError
from pycontection.lifecycle import LifecycleHooks
from pycontection.store import Store, StoreOptions

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class PreparedStore:
    """Static bundle describing one store definition.

    Attributes
    ----------
    initial_data : Mapping
        Read-only default state; its keys are the store schema.
    options : StoreOptions
        Adapter and lifecycle configuration handed to every instance.
    """

    initial_data: Mapping[str, Any]
    options: StoreOptions

    @property
    def schema(self) -> tuple[str, ...]:
        return tuple(self.initial_data)

    async def get_store(self, context: Any = None) -> dict[str, Any]:
        """Effective initial state for one request.

        Restores persisted fields through the adapter (if any) and overlays
        them on a private copy of the defaults. Adapter failures fall back
        to the defaults and are never raised.
        """
        defaults = copy.deepcopy(dict(self.initial_data))
        adapter = self.options.adapter
        if adapter is None or not adapter.restore_on_prepare:
            return defaults

        try:
            restored = await adapter.restore(context)
        except Exception as exc:
            name = type(adapter).__name__
            failure = AdapterRestoreFailure(f"{name}: restore failed, using defaults", adapter=name)
            failure.__cause__ = exc
            report_adapter_error(failure, self.options.on_adapter_error)
            return defaults

        return merge_restored(defaults, restored, adapter.config)

    def create_store(self, value: Mapping[str, Any] | None = None) -> Store:
        """Build a store instance seeded with *value* (defaults when omitted).

        On the client, *value* is the state computed by :meth:`get_store`
        during server rendering, so the first client render matches it.
        """
        data = copy.deepcopy(dict(self.initial_data)) if value is None else dict(value)
        return Store(data, schema=self.schema, options=self.options)


def prepare_store(
    initial_data: Mapping[str, Any],
    options: StoreOptions | None = None,
    *,
    adapter: Adapter | None = None,
    lifecycle_hooks: LifecycleHooks | None = None,
    on_adapter_error: AdapterErrorCallback | None = None,
) -> PreparedStore:
    """Prepare a store definition for server rendering and client hydration.

    Either pass a ready :class:`StoreOptions` or the individual keyword
    arguments, not both.
    """
    if options is not None and any(arg is not None for arg in (adapter, lifecycle_hooks, on_adapter_error)):
        raise ContectionConfigError("Pass either options or adapter/lifecycle_hooks/on_adapter_error, not both")
    if options is None:
        options = StoreOptions(
            adapter=adapter,
            lifecycle_hooks=lifecycle_hooks,
            on_adapter_error=on_adapter_error,
        )

    if not isinstance(initial_data, Mapping):
        raise ContectionConfigError(f"initial_data must be a mapping, got {type(initial_data).__name__}")
    non_str = [key for key in initial_data if not isinstance(key, str)]
    if non_str:
        raise ContectionConfigError(f"Store field names must be strings, got {non_str!r}")

    if options.adapter is not None:
        save_keys = options.adapter.config.save_keys
        if save_keys is not None:
            unknown = sorted(save_keys - set(initial_data))
            if unknown:
                raise ContectionConfigError(f"save_keys not in the store schema: {unknown}")

    frozen = MappingProxyType(copy.deepcopy(dict(initial_data)))
    _logger.debug("Prepared store with fields %s", list(frozen))
    return PreparedStore(initial_data=frozen, options=options)
