"""Scoped store access.

A :class:`StoreScope` owns one store instance for the duration of a
``with`` block (the "mounted subtree"). Code running inside the block
reaches it through :func:`use_store` without the store being threaded
through every call. Scopes nest; the innermost scope for a definition wins.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from contextvars import ContextVar, Token
from types import MappingProxyType
from typing import Any

from pycontection.exceptions import ContectionError
from pycontection.prepare import PreparedStore
from pycontection.store import Store

_logger = logging.getLogger(__name__)

_EMPTY: Mapping[PreparedStore, Store] = MappingProxyType({})

_scoped_stores: ContextVar[Mapping[PreparedStore, Store]] = ContextVar("pycontection_scoped_stores", default=_EMPTY)


class StoreScope:
    """Bind a store instance to the current context.

    Usage::

        with StoreScope(app_store, value=server_state) as store:
            ...

        async with StoreScope(app_store, context=request) as store:
            ...

    The async form computes the initial state with ``get_store(context)``
    when no *value* is given, and awaits ``Store.restore()`` for adapters
    that restore after hydration.
    """

    def __init__(
        self,
        prepared: PreparedStore,
        value: Mapping[str, Any] | None = None,
        *,
        context: Any = None,
    ) -> None:
        self._prepared = prepared
        self._value = value
        self._context = context
        self._store: Store | None = None
        self._token: Token[Mapping[PreparedStore, Store]] | None = None

    @property
    def store(self) -> Store:
        if self._store is None:
            raise ContectionError("StoreScope has not been entered")
        return self._store

    def __enter__(self) -> Store:
        return self._mount(self._value)

    def __exit__(self, *exc: Any) -> None:
        self._unmount()

    async def __aenter__(self) -> Store:
        value = self._value
        if value is None:
            value = await self._prepared.get_store(self._context)
        store = self._mount(value)
        adapter = self._prepared.options.adapter
        if adapter is not None and not adapter.restore_on_prepare:
            await store.restore(self._context)
        return store

    async def __aexit__(self, *exc: Any) -> None:
        self._unmount()

    def _mount(self, value: Mapping[str, Any] | None) -> Store:
        if self._store is not None:
            raise ContectionError("StoreScope is not reentrant")
        store = self._prepared.create_store(value)
        current = _scoped_stores.get()
        self._token = _scoped_stores.set(MappingProxyType({**current, self._prepared: store}))
        self._store = store
        try:
            store.activate()
        except BaseException:
            self._unmount()
            raise
        return store

    def _unmount(self) -> None:
        store, token = self._store, self._token
        self._store = None
        self._token = None
        try:
            if store is not None:
                store.dispose()
        finally:
            if token is not None:
                _scoped_stores.reset(token)


def use_store(prepared: PreparedStore) -> Store:
    """Return the innermost store bound to *prepared*.

    Raises :class:`ContectionError` when called outside a matching scope.
    """
    store = _scoped_stores.get().get(prepared)
    if store is None:
        raise ContectionError("No StoreScope is active for this store definition")
    return store
