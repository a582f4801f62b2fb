"""Key-scoped subset extraction and comparison.

Fields are always replaced wholesale, never mutated in place, so an
identity check per selected key is enough to decide whether a consumer
needs to hear about a change. The cost is O(k) in the number of selected
keys regardless of how many fields the store holds.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

from pycontection.exceptions import SchemaViolation

T = TypeVar("T")


def extract_subset(state: Mapping[str, Any], keys: Iterable[str]) -> dict[str, Any]:
    """Return a new dict holding only *keys* from *state*."""
    keys = tuple(keys)
    try:
        return {key: state[key] for key in keys}
    except KeyError:
        missing = [key for key in keys if key not in state]
        raise SchemaViolation(missing, operation="extract_subset") from None


def extract_and_compare(
    state: Mapping[str, Any],
    keys: Iterable[str],
    previous_state: Mapping[str, Any],
) -> tuple[dict[str, Any], bool]:
    """Extract *keys* from *state* and compare them against *previous_state*.

    ``is_equal`` is ``True`` only when every selected key refers to the very
    same object in both states. A key absent from *previous_state* counts
    as changed.
    """
    subset = extract_subset(state, keys)
    is_equal = True
    for key, value in subset.items():
        if key not in previous_state or previous_state[key] is not value:
            is_equal = False
            break
    return subset, is_equal


def remove_item(items: list[T], item: T) -> list[T]:
    """Remove the first entry of *items* that *is* ``item``, in place.

    Identity is used rather than equality so that two subscriptions with
    the same shape can be removed independently.
    """
    for index, candidate in enumerate(items):
        if candidate is item:
            del items[index]
            break
    return items


_VALUE_TYPES = (str, bytes, int, float, complex, bool)


def same_value(current: Any, incoming: Any) -> bool:
    """Whether dispatching *incoming* over *current* is a no-op.

    Identity always counts as unchanged. Immutable scalars of the same type
    also compare by value, since two equal strings are not guaranteed to be
    the same object.
    """
    if current is incoming:
        return True
    return type(current) is type(incoming) and isinstance(current, _VALUE_TYPES) and current == incoming
