"""User-facing notification sinks used by the lifecycle manager."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Protocol

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    """Tone of a notification as shown to the user."""

    SUCCESS = "success"
    ALERT = "alert"


class Notifier(Protocol):
    def notify(self, message: str, severity: Severity = Severity.SUCCESS) -> None:
        ...


@dataclass(slots=True, frozen=True)
class Notification:
    message: str
    severity: Severity
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class LoggingNotifier:
    """Write notifications to the application log."""

    def notify(self, message: str, severity: Severity = Severity.SUCCESS) -> None:
        level = logging.WARNING if severity is Severity.ALERT else logging.INFO
        logger.log(level, "notify[%s]: %s", severity.value, message)


class NotificationBuffer:
    """Keep the most recent notifications so a UI can poll for them."""

    def __init__(self, *, maxlen: int = 50, forward_to: Iterable[Notifier] = ()) -> None:
        self._items: deque[Notification] = deque(maxlen=maxlen)
        self._forward_to = tuple(forward_to)

    def notify(self, message: str, severity: Severity = Severity.SUCCESS) -> None:
        self._items.append(Notification(message=message, severity=severity))
        for notifier in self._forward_to:
            notifier.notify(message, severity)

    def recent(self, limit: int | None = None) -> list[Notification]:
        items = list(self._items)
        items.reverse()
        return items if limit is None else items[:limit]

    @property
    def last(self) -> Notification | None:
        return self._items[-1] if self._items else None

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)
