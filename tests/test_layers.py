from __future__ import annotations

from typing import Any

import pytest
from pydantic import ValidationError

from pycontection.exceptions import DuplicateLayer
from pycontection.layers import LayerRegistry, ScrollLock


class _Style:
    def __init__(self) -> None:
        self.properties: dict[str, str] = {}
        self.calls: list[tuple[str, str]] = []

    def set_property(self, name: str, value: str) -> None:
        self.properties[name] = value
        self.calls.append(("set", name))

    def remove_property(self, name: str) -> None:
        self.properties.pop(name, None)
        self.calls.append(("remove", name))


def test_isolated_flag_follows_open_layers() -> None:
    registry = LayerRegistry()

    registry.push("modal-1", isolated=True)
    registry.push("tooltip")
    assert registry.has_active_isolated_layers
    assert [entry.id for entry in registry.layers] == ["modal-1", "tooltip"]
    assert registry.top is not None and registry.top.id == "tooltip"

    registry.pop("modal-1")
    assert not registry.has_active_isolated_layers
    assert registry.has_active_layers

    registry.pop("tooltip")
    assert not registry.has_active_layers
    assert registry.top is None


def test_pop_unknown_layer_is_noop() -> None:
    registry = LayerRegistry()
    registry.push("drawer", data={"side": "left"})
    seen: list[Any] = []
    registry.subscribe(None, seen.append)

    registry.pop("missing")

    assert seen == []
    assert registry.is_registered("drawer")


def test_duplicate_layer_rejected() -> None:
    registry = LayerRegistry()
    registry.push("modal-1")

    with pytest.raises(DuplicateLayer):
        registry.push("modal-1", isolated=True)
    assert len(registry.layers) == 1


def test_blank_layer_id_rejected() -> None:
    with pytest.raises(ValidationError):
        LayerRegistry().push("  ")


def test_boolean_listeners_fire_on_flip_only() -> None:
    registry = LayerRegistry()
    seen: list[bool] = []
    registry.listen("has_active_isolated_layers", seen.append)

    registry.push("modal-1", isolated=True)
    registry.push("modal-2", isolated=True)
    registry.pop("modal-1")
    registry.pop("modal-2")

    assert seen == [True, False]


def test_scroll_lock_tracks_isolated_layers() -> None:
    registry = LayerRegistry()
    style = _Style()

    with ScrollLock(registry, style) as lock:
        assert lock.running
        registry.push("modal-1", isolated=True)
        assert style.properties == {"overflow": "hidden"}
        registry.push("modal-2", isolated=True)
        registry.pop("modal-1")
        assert style.properties == {"overflow": "hidden"}
        registry.pop("modal-2")
        assert style.properties == {}

    assert not lock.running


def test_scroll_lock_applies_current_state_and_reverts_on_stop() -> None:
    registry = LayerRegistry()
    registry.push("modal-1", isolated=True)
    style = _Style()

    lock = ScrollLock(registry, style, property_name="overflow-y", value="clip").start()
    assert style.properties == {"overflow-y": "clip"}

    lock.stop()
    assert style.properties == {}

    registry.pop("modal-1")
    registry.push("modal-2", isolated=True)
    assert style.properties == {}


def test_dispose_clears_layers() -> None:
    registry = LayerRegistry()
    registry.push("modal-1", isolated=True)

    registry.dispose()

    assert registry.layers == ()


def test_padded_id_pops_the_layer_it_pushed() -> None:
    registry = LayerRegistry()
    style = _Style()
    lock = ScrollLock(registry, style).start()

    registry.push(" modal ", isolated=True)
    assert registry.is_registered(" modal ")
    assert registry.is_registered("modal")
    with pytest.raises(DuplicateLayer):
        registry.push("modal")

    registry.pop(" modal ")

    assert not registry.has_active_isolated_layers
    assert style.properties == {}
    lock.stop()


class TestActivity:
    def test_inactive_layer_does_not_count(self) -> None:
        registry = LayerRegistry()

        registry.push(
            "settings",
            isolated=True,
            data={"open": False},
            check_is_active=lambda data: data["open"],
        )

        assert registry.is_registered("settings")
        assert not registry.has_active_layers
        assert not registry.has_active_isolated_layers

    def test_update_reevaluates_predicate(self) -> None:
        registry = LayerRegistry()
        seen: list[bool] = []
        registry.listen("has_active_isolated_layers", seen.append)
        registry.push("settings", isolated=True, data={"open": False}, check_is_active=lambda data: data["open"])

        entry = registry.update("settings", {"open": True})
        assert entry is not None and entry.data == {"open": True}
        registry.update("settings", {"open": False})

        assert seen == [True, False]
        assert registry.update("missing", {"open": True}) is None

    def test_dialogs_and_upper_layers_are_split(self) -> None:
        registry = LayerRegistry()
        registry.push("confirm")
        registry.push("toast", kind="upper_layer", data="saved", check_is_active=bool)

        assert [entry.id for entry in registry.dialogs] == ["confirm"]
        assert [entry.id for entry in registry.upper_layers] == ["toast"]
        assert registry.store.state["has_active_layers"] is True

    def test_non_isolated_active_layer_does_not_lock(self) -> None:
        registry = LayerRegistry()
        registry.push("toast", kind="upper_layer", data="saved", check_is_active=bool)
        registry.push("modal", isolated=True, data=None, check_is_active=bool)

        assert registry.has_active_layers
        assert not registry.has_active_isolated_layers
