from __future__ import annotations

import pytest

from pycontection._keys import extract_and_compare, extract_subset, remove_item, same_value
from pycontection.exceptions import SchemaViolation


def test_extract_subset_returns_new_dict_with_selected_keys() -> None:
    state = {"theme": "dark", "user": {"id": 1}, "count": 3}

    subset = extract_subset(state, ["user", "count"])

    assert subset == {"user": {"id": 1}, "count": 3}
    assert subset["user"] is state["user"]
    subset["count"] = 99
    assert state["count"] == 3


def test_extract_subset_unknown_key_is_schema_violation() -> None:
    with pytest.raises(SchemaViolation) as exc_info:
        extract_subset({"theme": "dark"}, ["theme", "missing"])
    assert exc_info.value.keys == ("missing",)


def test_extract_subset_accepts_generators() -> None:
    state = {"a": 1, "b": 2}
    assert extract_subset(state, (key for key in ["a"])) == {"a": 1}


def test_compare_state_to_itself_is_equal() -> None:
    state = {"a": [1], "b": {"x": 1}, "c": "text"}
    subset, is_equal = extract_and_compare(state, ["a", "b", "c"], state)
    assert is_equal is True
    assert subset == state


def test_compare_uses_identity_not_deep_equality() -> None:
    previous = {"items": [1, 2, 3]}
    current = {"items": [1, 2, 3]}

    _, is_equal = extract_and_compare(current, ["items"], previous)

    assert is_equal is False


def test_compare_ignores_unselected_keys() -> None:
    shared = ["feed"]
    previous = {"feed": shared, "theme": "light"}
    current = {"feed": shared, "theme": "dark"}

    subset, is_equal = extract_and_compare(current, ["feed"], previous)

    assert is_equal is True
    assert subset == {"feed": shared}


def test_compare_missing_previous_key_counts_as_changed() -> None:
    _, is_equal = extract_and_compare({"a": None}, ["a"], {})
    assert is_equal is False


def test_remove_item_removes_first_identical_entry_only() -> None:
    first = {"keys": ["a"]}
    second = {"keys": ["a"]}
    items = [first, second]

    remove_item(items, second)

    assert items == [first]
    assert items[0] is first


def test_remove_item_absent_is_noop() -> None:
    items = [1, 2]
    remove_item(items, object())
    assert items == [1, 2]


class TestSameValue:
    def test_equal_strings(self) -> None:
        assert same_value("dark", "".join(["da", "rk"]))

    def test_bool_and_int_are_different(self) -> None:
        assert not same_value(1, True)

    def test_equal_containers_are_different(self) -> None:
        assert not same_value([1], [1])

    def test_identity(self) -> None:
        value = {"a": 1}
        assert same_value(value, value)
