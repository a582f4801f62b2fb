"""Consumer-side selection of store fields."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any, Generic, TypeVar

from pycontection._keys import extract_and_compare, same_value
from pycontection.store import Enabled, Store

R = TypeVar("R")

Mutation = Callable[[dict[str, Any], dict[str, Any] | None, Any], R]


class Selection(Generic[R]):
    """A live view of some store fields, optionally mapped through *mutation*.

    ``mutation(subset, previous_subset, previous_result)`` derives a value
    from the selected fields. ``on_change(value)`` is called only when the
    derived value actually changes, which is what a component re-render
    would hang off.
    """

    def __init__(
        self,
        store: Store,
        keys: Iterable[str] | None = None,
        *,
        mutation: Mutation[R] | None = None,
        enabled: Enabled = "always",
        on_change: Callable[[Any], None] | None = None,
    ) -> None:
        self._store = store
        self._mutation = mutation
        self._on_change = on_change
        self._subset = store.get_snapshot(keys)
        self._keys = tuple(self._subset)
        self._value: Any = mutation(dict(self._subset), None, None) if mutation else self._subset
        self.updates = 0
        self._unsubscribe: Callable[[], None] | None = store.subscribe(self._keys, self._handle, enabled=enabled)

    @property
    def keys(self) -> tuple[str, ...]:
        return self._keys

    @property
    def value(self) -> Any:
        return self._value

    @property
    def closed(self) -> bool:
        return self._unsubscribe is None

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def __enter__(self) -> Selection[R]:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _handle(self, subset: dict[str, Any]) -> None:
        previous_subset = self._subset
        self._subset = subset
        if self._mutation is not None:
            value = self._mutation(dict(subset), previous_subset, self._value)
            if same_value(self._value, value):
                return
        else:
            if extract_and_compare(subset, self._keys, previous_subset)[1]:
                return
            value = subset
        self._value = value
        self.updates += 1
        if self._on_change is not None:
            self._on_change(value)
