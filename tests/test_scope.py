from __future__ import annotations

from typing import Any

import pytest

from pycontection.adapters.storage import MemoryStorage, StorageAdapter
from pycontection.exceptions import ContectionError
from pycontection.lifecycle import LifecycleHooks
from pycontection.prepare import prepare_store
from pycontection.scope import StoreScope, use_store
from pycontection.store import StoreStatus

app_store = prepare_store({"theme": "system"})
feed_store = prepare_store({"currentFeed": "discover"})


def test_use_store_outside_scope_raises() -> None:
    with pytest.raises(ContectionError):
        use_store(app_store)


def test_scope_binds_activates_and_disposes() -> None:
    with StoreScope(app_store) as store:
        assert use_store(app_store) is store
        assert store.status is StoreStatus.ACTIVE

    assert store.status is StoreStatus.DISPOSED
    with pytest.raises(ContectionError):
        use_store(app_store)


def test_nested_scopes_shadow_and_restore() -> None:
    with StoreScope(app_store, {"theme": "light"}) as outer:
        with StoreScope(feed_store) as feed, StoreScope(app_store, {"theme": "dark"}) as inner:
            assert use_store(app_store) is inner
            assert use_store(feed_store) is feed
            assert use_store(app_store).state["theme"] == "dark"
        assert use_store(app_store) is outer
        assert outer.state["theme"] == "light"


def test_scope_is_not_reentrant() -> None:
    scope = StoreScope(app_store)
    with scope:
        with pytest.raises(ContectionError):
            scope.__enter__()


def test_scope_store_property_requires_entry() -> None:
    with pytest.raises(ContectionError):
        StoreScope(app_store).store


@pytest.mark.asyncio
async def test_async_scope_prepares_state_from_context() -> None:
    prepared = prepare_store(
        {"theme": "system"},
        adapter=StorageAdapter(storage=MemoryStorage({"__ctn_theme": '"dark"'}), save_keys=["theme"]),
    )

    async with StoreScope(prepared) as store:
        assert store.state["theme"] == "dark"
        assert use_store(prepared) is store

    assert store.status is StoreStatus.DISPOSED


@pytest.mark.asyncio
async def test_async_scope_restores_after_hydration() -> None:
    prepared = prepare_store(
        {"theme": "system"},
        adapter=StorageAdapter(
            storage=MemoryStorage({"__ctn_theme": '"dark"'}),
            save_keys=["theme"],
            enabled="after-hydration",
        ),
    )
    seen: list[str] = []

    async with StoreScope(prepared) as store:
        assert store.state["theme"] == "dark"
        store.listen("theme", seen.append)
        store.dispatch({"theme": "light"})

    assert seen == ["light"]


def test_failed_mount_does_not_run_unmount_hook() -> None:
    unmounted: list[Any] = []

    def will_mount(state: Any, dispatch: Any, listen: Any) -> None:
        raise RuntimeError("mount failed")

    prepared = prepare_store(
        {"theme": "system"},
        lifecycle_hooks=LifecycleHooks(store_will_mount=will_mount, store_will_unmount=unmounted.append),
    )

    with pytest.raises(RuntimeError, match="mount failed"):
        with StoreScope(prepared):
            pass

    assert unmounted == []
    with pytest.raises(ContectionError):
        use_store(prepared)
