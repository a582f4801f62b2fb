from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from pycontection.models import AdapterConfig, LayerEntry, PersistFlags


class TestPersistFlags:
    def test_all_unset_by_default(self) -> None:
        flags = PersistFlags()
        assert flags.model_dump(exclude_none=True) == {}

    def test_path_must_be_absolute(self) -> None:
        assert PersistFlags(path=" /app ").path == "/app"
        with pytest.raises(ValidationError):
            PersistFlags(path="app")

    def test_negative_max_age_rejected(self) -> None:
        assert PersistFlags(max_age=0).max_age == 0
        with pytest.raises(ValidationError):
            PersistFlags(max_age=-1)

    def test_naive_expires_is_utc(self) -> None:
        flags = PersistFlags(expires=datetime(2030, 1, 1, 12, 0))
        assert flags.expires == datetime(2030, 1, 1, 12, 0, tzinfo=UTC)

    def test_unknown_same_site_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PersistFlags(same_site="sometimes")  # type: ignore[arg-type]

    def test_extra_fields_forbidden(self) -> None:
        with pytest.raises(ValidationError):
            PersistFlags(http_only=True)  # type: ignore[call-arg]

    def test_frozen(self) -> None:
        flags = PersistFlags(path="/")
        with pytest.raises(ValidationError):
            flags.path = "/other"  # type: ignore[misc]


class TestAdapterConfig:
    def test_none_selects_everything(self) -> None:
        config = AdapterConfig()
        assert config.selects("anything")
        assert config.select(["a", "b"]) == ["a", "b"]

    def test_select_keeps_order(self) -> None:
        config = AdapterConfig(save_keys=frozenset({"theme", "currentFeed"}))
        assert config.select(["posts", "theme", "currentFeed"]) == ["theme", "currentFeed"]
        assert not config.selects("posts")

    def test_bare_string_is_one_key(self) -> None:
        config = AdapterConfig(save_keys="theme")  # type: ignore[arg-type]
        assert config.save_keys == frozenset({"theme"})


def test_layer_entry_defaults() -> None:
    entry = LayerEntry(id=" modal-1 ")

    assert entry.id == "modal-1"
    assert entry.isolated is False
    assert entry.data is None


def test_layer_entry_activity_predicate() -> None:
    entry = LayerEntry(id="menu", kind="upper_layer", data=0, check_is_active=lambda data: data > 0)

    assert entry.active is False
    assert entry.model_copy(update={"data": 2}).active is True
    assert "check_is_active" not in entry.model_dump()


def test_layer_entry_rejects_unknown_kind() -> None:
    with pytest.raises(ValidationError):
        LayerEntry(id="menu", kind="popover")  # type: ignore[arg-type]
