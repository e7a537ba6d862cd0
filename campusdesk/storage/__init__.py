"""Storage adapters for whole-collection persistence."""

from __future__ import annotations

from .base import InMemoryStorage, Storage
from .sql import SQLModelStorage

MEMORY_DSN = "memory://"


def build_storage(dsn: str) -> Storage:
    """Return the storage adapter matching ``dsn``.

    ``memory://`` selects :class:`InMemoryStorage`; any other value is handed
    to SQLAlchemy as an engine URL.
    """

    if dsn == MEMORY_DSN:
        return InMemoryStorage()
    storage = SQLModelStorage.from_url(dsn)
    storage.ensure_schema()
    return storage


__all__ = ["InMemoryStorage", "MEMORY_DSN", "SQLModelStorage", "Storage", "build_storage"]
