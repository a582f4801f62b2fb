"""Overlay layer registry.

Dialogs, drawers and other overlays register themselves while open. The
registry publishes its stack through an ordinary :class:`Store`, so
consumers subscribe to ``has_active_isolated_layers`` exactly like any
other store field.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any, Protocol

from pycontection.exceptions import DuplicateLayer
from pycontection.models.layer import LayerEntry, LayerKind, normalize_layer_id
from pycontection.store import Callback, Store, Unsubscribe

_logger = logging.getLogger(__name__)


class LayerRegistry:
    """Ordered stack of open layers, most recent last.

    Derived fields are recomputed from the whole stack on every change;
    the stack only ever holds a handful of overlays. A layer whose
    ``check_is_active`` predicate returns false stays registered but does
    not count towards ``has_active_layers``/``has_active_isolated_layers``.
    """

    def __init__(self) -> None:
        self._entries: list[LayerEntry] = []
        self._store = Store(
            {
                "layers": (),
                "dialogs": (),
                "upper_layers": (),
                "has_active_layers": False,
                "has_active_isolated_layers": False,
            }
        )
        self._store.activate()

    @property
    def store(self) -> Store:
        return self._store

    @property
    def layers(self) -> tuple[LayerEntry, ...]:
        return tuple(self._entries)

    @property
    def dialogs(self) -> tuple[LayerEntry, ...]:
        return self._store.state["dialogs"]

    @property
    def upper_layers(self) -> tuple[LayerEntry, ...]:
        return self._store.state["upper_layers"]

    @property
    def top(self) -> LayerEntry | None:
        return self._entries[-1] if self._entries else None

    @property
    def has_active_layers(self) -> bool:
        return bool(self._store.state["has_active_layers"])

    @property
    def has_active_isolated_layers(self) -> bool:
        return bool(self._store.state["has_active_isolated_layers"])

    def is_registered(self, layer_id: str) -> bool:
        return self._index(layer_id) is not None

    def push(
        self,
        layer_id: str,
        isolated: bool = False,
        data: Any = None,
        *,
        kind: LayerKind = "dialog",
        check_is_active: Callable[[Any], bool] | None = None,
    ) -> LayerEntry:
        entry = LayerEntry(id=layer_id, kind=kind, isolated=isolated, data=data, check_is_active=check_is_active)
        if self.is_registered(entry.id):
            raise DuplicateLayer(entry.id)
        self._entries.append(entry)
        _logger.debug("Layer %r pushed (isolated=%s), depth %d", entry.id, entry.isolated, len(self._entries))
        self._publish()
        return entry

    def update(self, layer_id: str, data: Any) -> LayerEntry | None:
        """Replace the data of a registered layer; ``None`` if it is absent."""
        index = self._index(layer_id)
        if index is None:
            return None
        entry = self._entries[index].model_copy(update={"data": data})
        self._entries[index] = entry
        self._publish()
        return entry

    def pop(self, layer_id: str) -> None:
        index = self._index(layer_id)
        if index is None:
            return
        entry = self._entries.pop(index)
        _logger.debug("Layer %r popped, depth %d", entry.id, len(self._entries))
        self._publish()

    def subscribe(self, keys: Iterable[str] | None, callback: Callback) -> Unsubscribe:
        return self._store.subscribe(keys, callback)

    def listen(self, key: str, callback: Callable[[Any], None]) -> Unsubscribe:
        return self._store.listen(key, callback)

    def dispose(self) -> None:
        self._entries.clear()
        self._store.dispose()

    def _index(self, layer_id: str) -> int | None:
        wanted = normalize_layer_id(layer_id)
        for index, entry in enumerate(self._entries):
            if entry.id == wanted:
                return index
        return None

    def _publish(self) -> None:
        layers = tuple(self._entries)
        active = [entry for entry in layers if entry.active]
        self._store.dispatch(
            {
                "layers": layers,
                "dialogs": tuple(entry for entry in layers if entry.kind == "dialog"),
                "upper_layers": tuple(entry for entry in layers if entry.kind == "upper_layer"),
                "has_active_layers": bool(active),
                "has_active_isolated_layers": any(entry.isolated for entry in active),
            }
        )


class StyleTarget(Protocol):
    """Document-level style properties (``document.documentElement.style``)."""

    def set_property(self, name: str, value: str) -> None: ...

    def remove_property(self, name: str) -> None: ...


class ScrollLock:
    """Block page scrolling while any isolated layer is open.

    The style property is always removed when the lock stops, whatever
    state the registry is in.
    """

    def __init__(
        self,
        registry: LayerRegistry,
        target: StyleTarget,
        *,
        property_name: str = "overflow",
        value: str = "hidden",
    ) -> None:
        self._registry = registry
        self._target = target
        self._property_name = property_name
        self._value = value
        self._unsubscribe: Unsubscribe | None = None

    @property
    def running(self) -> bool:
        return self._unsubscribe is not None

    def start(self) -> ScrollLock:
        if self._unsubscribe is None:
            self._apply(self._registry.has_active_isolated_layers)
            self._unsubscribe = self._registry.listen("has_active_isolated_layers", self._apply)
        return self

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._target.remove_property(self._property_name)

    def __enter__(self) -> ScrollLock:
        return self.start()

    def __exit__(self, *exc: Any) -> None:
        self.stop()

    def _apply(self, locked: bool) -> None:
        if locked:
            self._target.set_property(self._property_name, self._value)
        else:
            self._target.remove_property(self._property_name)
