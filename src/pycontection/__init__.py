"""pycontection - key-scoped reactive stores with persistence adapters."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pycontection")
except PackageNotFoundError:
    __version__ = "0+local"
from pycontection._keys import extract_and_compare, extract_subset
from pycontection.adapters import (
    Adapter,
    BaseAdapter,
    CookieAdapter,
    CookieJar,
    KeyValueStorage,
    MemoryStorage,
    ResponseCookieJar,
    StorageAdapter,
)
from pycontection.config import ContectionConfig
from pycontection.consumer import Selection
from pycontection.exceptions import (
    AdapterError,
    AdapterPersistFailure,
    AdapterRestoreFailure,
    ContectionConfigError,
    ContectionError,
    DuplicateLayer,
    SchemaViolation,
    StoreDisposed,
)
from pycontection.layers import LayerRegistry, ScrollLock, StyleTarget
from pycontection.lifecycle import LifecycleHookRunner, LifecycleHooks
from pycontection.models import AdapterConfig, LayerEntry, LayerKind, PersistFlags
from pycontection.prepare import PreparedStore, prepare_store
from pycontection.scope import StoreScope, use_store
from pycontection.store import Store, StoreOptions, StoreStatus, Subscriber

__all__ = [
    "__version__",
    "Adapter",
    "AdapterConfig",
    "AdapterError",
    "AdapterPersistFailure",
    "AdapterRestoreFailure",
    "BaseAdapter",
    "ContectionConfig",
    "ContectionConfigError",
    "ContectionError",
    "CookieAdapter",
    "CookieJar",
    "DuplicateLayer",
    "KeyValueStorage",
    "LayerEntry",
    "LayerKind",
    "LayerRegistry",
    "LifecycleHookRunner",
    "LifecycleHooks",
    "MemoryStorage",
    "PersistFlags",
    "PreparedStore",
    "ResponseCookieJar",
    "SchemaViolation",
    "ScrollLock",
    "Selection",
    "StorageAdapter",
    "Store",
    "StoreDisposed",
    "StoreOptions",
    "StoreScope",
    "StoreStatus",
    "StyleTarget",
    "Subscriber",
    "extract_and_compare",
    "extract_subset",
    "prepare_store",
    "use_store",
]
