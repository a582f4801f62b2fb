"""Store lifecycle hooks.

The mount hooks run once when a store becomes active and receive the live
state, the store's ``dispatch`` and a tracking ``listen``. Every
subscription made through that ``listen`` is released on disposal, whether
or not the hooks' own teardowns remember to do it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from pycontection._keys import remove_item
from pycontection.exceptions import ContectionConfigError

if TYPE_CHECKING:
    from pycontection.store import Store

_logger = logging.getLogger(__name__)

Teardown = Callable[[], None]
Dispatch = Callable[..., None]
Listen = Callable[[str, Callable[[Any], None]], Callable[[], None]]


class LifecycleMountHook(Protocol):
    def __call__(
        self,
        state: Mapping[str, Any],
        dispatch: Dispatch,
        listen: Listen,
    ) -> Teardown | None: ...


@dataclass(frozen=True)
class LifecycleHooks:
    """Hooks attached to every instance of a prepared store.

    Parameters
    ----------
    store_will_mount : callable or None
        ``hook(state, dispatch, listen)`` run when the store activates,
        before any subscriber held back until hydration is notified.
        May return a zero-argument teardown callable.
    store_did_mount : callable or None
        Same signature, run once activation has finished. Its teardown
        runs before the ``store_will_mount`` one.
    store_will_unmount : callable or None
        ``hook(state)`` run on disposal, after the mount teardowns. Skipped
        when ``store_will_mount`` never completed.
    """

    store_will_mount: LifecycleMountHook | None = None
    store_did_mount: LifecycleMountHook | None = None
    store_will_unmount: Callable[[Mapping[str, Any]], None] | None = None


class LifecycleHookRunner:
    """Runs the hooks of one store instance with scoped cleanup."""

    def __init__(self, hooks: LifecycleHooks) -> None:
        self._hooks = hooks
        self._tracked: list[Callable[[], None]] = []
        self._teardowns: list[Teardown] = []
        self._started = False
        self._mounted = False
        self._did_mount = False
        self._torn_down = False

    @property
    def open_subscriptions(self) -> int:
        """Number of ``listen`` subscriptions still held by the mount hooks."""
        return len(self._tracked)

    @property
    def mounted(self) -> bool:
        """Whether ``store_will_mount`` ran to completion."""
        return self._mounted

    def start(self, store: Store) -> None:
        if self._started:
            _logger.debug("Mount hook already ran for this store; ignoring")
            return
        self._started = True
        self._run_mount_hook("store_will_mount", self._hooks.store_will_mount, store)
        self._mounted = True

    def did_mount(self, store: Store) -> None:
        if self._did_mount or not self._mounted:
            return
        self._did_mount = True
        self._run_mount_hook("store_did_mount", self._hooks.store_did_mount, store)

    def teardown(self, state: Mapping[str, Any]) -> None:
        """Run the explicit teardowns, then release anything left open."""
        if self._torn_down:
            return
        self._torn_down = True
        first_error: Exception | None = None
        while self._teardowns:
            try:
                self._teardowns.pop()()
            except Exception as exc:
                if first_error is None:
                    first_error = exc
                else:
                    _logger.exception("Lifecycle teardown failed")

        leaked = len(self._tracked)
        if leaked:
            _logger.debug("Releasing %d listen subscription(s) left open by the mount hooks", leaked)
        while self._tracked:
            self._tracked.pop()()

        if first_error is not None:
            raise first_error
        if not self._mounted:
            _logger.debug("Skipping store_will_unmount: store_will_mount did not complete")
            return
        if self._hooks.store_will_unmount is not None:
            self._hooks.store_will_unmount(state)

    def _run_mount_hook(self, name: str, hook: LifecycleMountHook | None, store: Store) -> None:
        if hook is None:
            return
        result = hook(store.state, store.dispatch, self._tracking_listen(store))
        if result is not None and not callable(result):
            raise ContectionConfigError(f"{name} must return a callable or None, got {type(result).__name__}")
        if result is not None:
            self._teardowns.append(result)

    def _tracking_listen(self, store: Store) -> Listen:
        def listen(key: str, callback: Callable[[Any], None]) -> Callable[[], None]:
            unsubscribe = store.listen(key, callback)

            def release() -> None:
                remove_item(self._tracked, release)
                unsubscribe()

            self._tracked.append(release)
            return release

        return listen
