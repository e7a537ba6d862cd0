"""Key/value storage contract used by the ticket and audit stores."""

from __future__ import annotations

import copy
import json
import logging
from typing import Any, MutableMapping, Protocol, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Storage(Protocol):
    """Load and save entire collections by key.

    There are no transactions and no partial writes: ``save`` replaces the
    whole value stored under ``key``.
    """

    def load(self, key: str, default: T) -> T | Any:
        ...

    def save(self, key: str, collection: Any) -> None:
        ...


class InMemoryStorage:
    """Process local storage that round-trips values through JSON.

    Values are serialized on save and parsed on load, so callers never share
    references with what is stored.
    """

    def __init__(self, initial: MutableMapping[str, Any] | None = None) -> None:
        self._items: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self.save(key, value)

    def load(self, key: str, default: T) -> T | Any:
        serialized = self._items.get(key)
        if serialized is None:
            return copy.deepcopy(default)
        try:
            return json.loads(serialized)
        except ValueError:
            logger.exception("Stored value under %s is not valid JSON", key)
            return copy.deepcopy(default)

    def save(self, key: str, collection: Any) -> None:
        self._items[key] = json.dumps(collection)

    def keys(self) -> list[str]:
        return sorted(self._items)

    def clear(self) -> None:
        self._items.clear()
