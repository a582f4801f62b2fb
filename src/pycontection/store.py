"""Key-scoped reactive store.

A :class:`Store` owns one state dict with a fixed set of fields and a list
of subscribers, each of which names the fields it cares about. Dispatching
a partial update notifies exactly those subscribers whose selected fields
changed; everyone else is left alone.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import Any, Literal

from pycontection._keys import extract_and_compare, extract_subset, remove_item, same_value
from pycontection._redact import summarize
from pycontection.adapters.base import Adapter, AdapterErrorCallback, merge_restored, report_adapter_error
from pycontection.exceptions import (
    AdapterPersistFailure,
    AdapterRestoreFailure,
    SchemaViolation,
    StoreDisposed,
)
from pycontection.lifecycle import LifecycleHookRunner, LifecycleHooks

_logger = logging.getLogger(__name__)

State = Mapping[str, Any]
Partial = Mapping[str, Any]
Callback = Callable[[dict[str, Any]], None]
Unsubscribe = Callable[[], None]
Enabled = Literal["always", "never", "after-hydration"] | Callable[[State], bool]


class StoreStatus(StrEnum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    DISPOSED = "disposed"


@dataclass(frozen=True)
class StoreOptions:
    """Adapter and lifecycle configuration shared by every instance of a store."""

    adapter: Adapter | None = None
    lifecycle_hooks: LifecycleHooks | None = None
    on_adapter_error: AdapterErrorCallback | None = None


@dataclass(slots=True, eq=False)
class Subscriber:
    """A consumer registered against a subset of store fields.

    Compared by identity so that two subscribers with the same keys and
    callback remain distinct registry entries. ``delivered`` is the subset
    the subscriber last observed (its snapshot at subscription time until
    the first notification).
    """

    keys: tuple[str, ...]
    callback: Callback
    enabled: Enabled = "always"
    active: bool = field(default=True)
    delivered: dict[str, Any] = field(default_factory=dict)


class Store:
    """In-memory state container with key-scoped notifications.

    Lifecycle: ``UNINITIALIZED`` after construction, ``ACTIVE`` once
    :meth:`activate` has run the mount hooks, ``DISPOSED`` after
    :meth:`dispose`. A disposed store drops its state and rejects every
    further dispatch and subscription.
    """

    def __init__(
        self,
        initial_data: State,
        *,
        schema: Iterable[str] | None = None,
        options: StoreOptions | None = None,
    ) -> None:
        self._schema: tuple[str, ...] = tuple(schema) if schema is not None else tuple(initial_data)
        unknown = [key for key in initial_data if key not in self._schema]
        if unknown:
            raise SchemaViolation(unknown, operation="initialize")
        missing = [key for key in self._schema if key not in initial_data]
        if missing:
            raise SchemaViolation(missing, operation="initialize")

        self._state: dict[str, Any] = dict(initial_data)
        self._options = options or StoreOptions()
        self._subscribers: list[Subscriber] = []
        self._pending: set[asyncio.Future[Any]] = set()
        self._status = StoreStatus.UNINITIALIZED
        self._runner: LifecycleHookRunner | None = None
        if self._options.lifecycle_hooks is not None:
            self._runner = LifecycleHookRunner(self._options.lifecycle_hooks)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def status(self) -> StoreStatus:
        return self._status

    @property
    def schema(self) -> tuple[str, ...]:
        return self._schema

    @property
    def state(self) -> State:
        """Read-only view of the current state."""
        self._ensure_live("state")
        return MappingProxyType(self._state)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def pending_persists(self) -> int:
        return len(self._pending)

    def __repr__(self) -> str:
        return f"<Store status={self._status.value} fields={list(self._schema)} subscribers={len(self._subscribers)}>"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def activate(self) -> None:
        """Move to ``ACTIVE`` and run the mount hooks (once)."""
        self._ensure_live("activate")
        if self._status is StoreStatus.ACTIVE:
            return
        self._status = StoreStatus.ACTIVE
        _logger.debug("Store activated with fields %s", list(self._schema))

        if self._runner is not None:
            self._runner.start(self)

        # Subscribers held back until hydration catch up with the current state.
        for subscriber in list(self._subscribers):
            if subscriber.active and subscriber.enabled == "after-hydration":
                subscriber.delivered = extract_subset(self._state, subscriber.keys)
                subscriber.callback(subscriber.delivered)

        if self._runner is not None:
            self._runner.did_mount(self)

    def dispose(self) -> None:
        """Tear down hooks, cancel in-flight persistence and drop state."""
        if self._status is StoreStatus.DISPOSED:
            return
        try:
            if self._runner is not None:
                self._runner.teardown(MappingProxyType(self._state))
        finally:
            self._status = StoreStatus.DISPOSED
            for task in self._pending:
                task.cancel()
            self._pending.clear()
            self._before_destroy()
            for subscriber in self._subscribers:
                subscriber.active = False
            self._subscribers.clear()
            self._state = {}
            _logger.debug("Store disposed")

    # ------------------------------------------------------------------
    # Reads and subscriptions
    # ------------------------------------------------------------------

    def get_snapshot(self, keys: Iterable[str] | None = None) -> dict[str, Any]:
        """Current values for *keys* (all fields when omitted)."""
        self._ensure_live("get_snapshot")
        selected = self._check_keys(keys, "get_snapshot")
        return extract_subset(self._state, selected)

    def subscribe(
        self,
        keys: Iterable[str] | None,
        callback: Callback,
        *,
        enabled: Enabled = "always",
    ) -> Unsubscribe:
        """Register *callback* for changes to *keys*.

        Returns a handle that removes this exact registration. Calling the
        handle more than once is harmless.
        """
        self._ensure_live("subscribe")
        selected = self._check_keys(keys, "subscribe")
        subscriber = Subscriber(
            keys=selected,
            callback=callback,
            enabled=enabled,
            delivered=extract_subset(self._state, selected),
        )
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if not subscriber.active:
                return
            subscriber.active = False
            remove_item(self._subscribers, subscriber)

        return unsubscribe

    def listen(self, key: str, callback: Callable[[Any], None]) -> Unsubscribe:
        """Subscribe to a single field; *callback* receives the bare value."""
        return self.subscribe((key,), lambda subset: callback(subset[key]))

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def dispatch(self, partial: Partial | Callable[[State], Partial]) -> None:
        """Shallow-merge *partial* into the state and notify affected subscribers.

        *partial* may be a callable receiving a read-only view of the
        current state and returning the update. Every subscriber observes
        the fully merged state; nobody sees a half-applied update.
        """
        self._ensure_live("dispatch")
        if callable(partial):
            partial = partial(MappingProxyType(self._state))

        unknown = [key for key in partial if key not in self._state]
        if unknown:
            raise SchemaViolation(unknown, operation="dispatch")

        changed = {key: value for key, value in partial.items() if not same_value(self._state[key], value)}
        if not changed:
            return

        previous = self._state
        self._state = {**previous, **changed}
        _logger.debug("Dispatch changed %s", summarize(changed))

        due: list[Subscriber] = []
        for subscriber in self._subscribers:
            if not self._is_enabled(subscriber):
                continue
            if not extract_and_compare(self._state, subscriber.keys, previous)[1]:
                due.append(subscriber)

        first_error: Exception | None = None
        for subscriber in due:
            # An earlier callback may have unsubscribed this one.
            if not subscriber.active:
                continue
            # A nested dispatch from an earlier callback may already have
            # delivered the latest values; never hand out a stale subset.
            subset, is_equal = extract_and_compare(self._state, subscriber.keys, subscriber.delivered)
            if is_equal:
                continue
            subscriber.delivered = subset
            try:
                subscriber.callback(subset)
            except Exception as exc:
                if first_error is None:
                    first_error = exc
                else:
                    _logger.exception("Subscriber callback for %s failed", list(subscriber.keys))

        if self._status is not StoreStatus.DISPOSED:
            self._persist(list(changed))

        if first_error is not None:
            raise first_error

    async def restore(self, context: Any = None) -> dict[str, Any]:
        """Pull persisted values through the adapter and dispatch them.

        Used on the client when the adapter does not restore during
        ``get_store``. If the store is disposed while the adapter is
        reading, the result is discarded.
        """
        adapter = self._options.adapter
        self._ensure_live("restore")
        if adapter is None:
            return {}
        try:
            restored = await adapter.restore(context)
        except Exception as exc:
            failure = AdapterRestoreFailure(
                f"{type(adapter).__name__}: restore failed, keeping current state",
                adapter=type(adapter).__name__,
            )
            failure.__cause__ = exc
            report_adapter_error(failure, self._options.on_adapter_error)
            return {}

        if self._status is StoreStatus.DISPOSED:
            _logger.debug("Discarding restored values: store was disposed during restore")
            return {}

        merged = merge_restored(self._state, restored, adapter.config)
        update = {key: merged[key] for key in restored if key in self._state and adapter.config.selects(key)}
        self.dispatch(update)
        return update

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _ensure_live(self, operation: str) -> None:
        if self._status is StoreStatus.DISPOSED:
            raise StoreDisposed(f"Cannot {operation}: store has been disposed")

    def _check_keys(self, keys: Iterable[str] | None, operation: str) -> tuple[str, ...]:
        if keys is None:
            return self._schema
        if isinstance(keys, str):
            keys = (keys,)
        selected = tuple(keys)
        unknown = [key for key in selected if key not in self._state]
        if unknown:
            raise SchemaViolation(unknown, operation=operation)
        return selected

    def _is_enabled(self, subscriber: Subscriber) -> bool:
        enabled = subscriber.enabled
        if enabled == "always":
            return True
        if enabled == "never":
            return False
        if enabled == "after-hydration":
            return self._status is StoreStatus.ACTIVE
        return bool(enabled(MappingProxyType(self._state)))

    def _before_destroy(self) -> None:
        adapter = self._options.adapter
        hook = getattr(adapter, "before_destroy", None)
        if hook is None:
            return
        name = type(adapter).__name__
        try:
            hook(MappingProxyType(self._state))
        except Exception as exc:
            failure = AdapterPersistFailure(f"{name}: before_destroy failed", adapter=name)
            failure.__cause__ = exc
            report_adapter_error(failure, self._options.on_adapter_error)

    def _persist(self, changed: list[str]) -> None:
        adapter = self._options.adapter
        if adapter is None:
            return
        keys = adapter.config.select(changed)
        if not keys:
            return
        name = type(adapter).__name__
        try:
            result = adapter.persist(keys, MappingProxyType(self._state), adapter.config.flags)
        except AdapterPersistFailure as exc:
            report_adapter_error(exc, self._options.on_adapter_error)
            return
        except Exception as exc:
            failure = AdapterPersistFailure(f"{name}: persist failed", adapter=name, keys=keys)
            failure.__cause__ = exc
            report_adapter_error(failure, self._options.on_adapter_error)
            return

        if inspect.isawaitable(result):
            self._schedule_persist(result, keys, name)

    def _schedule_persist(self, awaitable: Awaitable[None], keys: list[str], name: str) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            failure = AdapterPersistFailure(
                f"{name}: asynchronous persist needs a running event loop",
                adapter=name,
                keys=keys,
            )
            report_adapter_error(failure, self._options.on_adapter_error)
            return

        task = asyncio.ensure_future(awaitable)
        self._pending.add(task)

        def _done(fut: asyncio.Future[Any]) -> None:
            self._pending.discard(fut)
            if fut.cancelled():
                return
            exc = fut.exception()
            if exc is None:
                return
            if isinstance(exc, AdapterPersistFailure):
                failure = exc
            else:
                failure = AdapterPersistFailure(f"{name}: persist failed", adapter=name, keys=keys)
                failure.__cause__ = exc
            report_adapter_error(failure, self._options.on_adapter_error)

        task.add_done_callback(_done)
