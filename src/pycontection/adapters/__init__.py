"""Persistence adapters.

Two media ship with the library: a key-value storage adapter and a cookie
adapter. Both implement the :class:`~pycontection.adapters.base.Adapter`
contract and nothing else is required of new media.
"""

from pycontection.adapters.base import Adapter, BaseAdapter, merge_restored
from pycontection.adapters.cookie import CookieAdapter, CookieJar, ResponseCookieJar, render_set_cookie
from pycontection.adapters.storage import KeyValueStorage, MemoryStorage, StorageAdapter, is_storage_available

__all__ = [
    "Adapter",
    "BaseAdapter",
    "CookieAdapter",
    "CookieJar",
    "KeyValueStorage",
    "MemoryStorage",
    "ResponseCookieJar",
    "StorageAdapter",
    "is_storage_available",
    "merge_restored",
    "render_set_cookie",
]
