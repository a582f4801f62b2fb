"""Custom exception hierarchy for pycontection."""

from __future__ import annotations

from collections.abc import Iterable


class ContectionError(Exception):
    """Base exception for all pycontection errors."""


class ContectionConfigError(ContectionError):
    """Invalid store, adapter or layer configuration."""


class SchemaViolation(ContectionError, KeyError):
    """A dispatch, subscription or read referenced fields outside the store schema.

    This is a programming error and is surfaced immediately; it is never
    retried or absorbed.
    """

    def __init__(self, keys: Iterable[str], *, operation: str = "") -> None:
        self.keys: tuple[str, ...] = tuple(keys)
        self.operation = operation
        where = f" in {operation}" if operation else ""
        super().__init__(f"Unknown store field(s){where}: {', '.join(map(repr, self.keys))}")

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the whole message.
        return str(self.args[0])


class StoreDisposed(ContectionError):
    """Operation attempted on a store whose owning scope has been torn down."""


class AdapterError(ContectionError):
    """Base for persistence adapter failures.

    Adapter failures are absorbed by the store: they are logged and passed
    to the ``on_adapter_error`` callback, never raised to ``dispatch`` or
    ``get_store`` callers.
    """

    def __init__(
        self,
        message: str,
        *,
        adapter: str = "",
        keys: Iterable[str] = (),
    ) -> None:
        self.adapter = adapter
        self.keys: tuple[str, ...] = tuple(keys)
        super().__init__(message)


class AdapterRestoreFailure(AdapterError):
    """Persisted data could not be read back; defaults are used instead."""


class AdapterPersistFailure(AdapterError):
    """Writing to the persistence medium failed.

    The in-memory state stays authoritative; the dispatch that triggered
    the write is never rolled back.
    """


class DuplicateLayer(ContectionError):
    """A layer with the same identifier is already registered."""

    def __init__(self, layer_id: str) -> None:
        self.layer_id = layer_id
        super().__init__(f"Layer {layer_id!r} is already registered")
