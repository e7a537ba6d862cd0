from __future__ import annotations

import logging
import uuid
from typing import Sequence

from campusdesk.core.clock import Clock, utcnow
from campusdesk.storage import Storage

from .models import FieldChange, LogAction, LogStatus, RiskLevel, SystemLog, derive_risk_level

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_LOGS_KEY = "ISU_CARE_SYS_SYSTEM_LOGS"


class AuditLogStore:
    """Append-only collection of system log entries.

    Any subsystem may append. Readers take a tuple snapshot and never see a
    later append mid-computation.
    """

    def __init__(self, storage: Storage, *, key: str = DEFAULT_SYSTEM_LOGS_KEY, clock: Clock = utcnow) -> None:
        self._storage = storage
        self._key = key
        self._clock = clock
        self._entries: list[SystemLog] = []
        self.reload()

    def reload(self) -> None:
        raw = self._storage.load(self._key, [])
        entries: list[SystemLog] = []
        for item in raw if isinstance(raw, list) else []:
            try:
                entries.append(SystemLog.from_dict(item))
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed system log record: %r", item)
        self._entries = entries

    def append(self, entry: SystemLog) -> SystemLog:
        self._entries.append(entry)
        self._storage.save(self._key, [item.to_dict() for item in self._entries])
        logger.debug("Audit entry %s %s on %s", entry.id, entry.action_type, entry.target)
        return entry

    def record(
        self,
        *,
        actor_name: str,
        role_name: str,
        action_type: LogAction | str,
        target: str,
        status: LogStatus = LogStatus.SUCCESS,
        risk_level: RiskLevel | None = None,
        ip: str = "",
        details: str | None = None,
        user_agent: str | None = None,
        changes: Sequence[FieldChange] | None = None,
        actor_id: str | None = None,
    ) -> SystemLog:
        """Build an entry stamped with a fresh id and the current time, then append it.

        Without an explicit ``risk_level`` the risk is derived from the action
        type and status, see :func:`derive_risk_level`.
        """

        entry = SystemLog(
            id=f"log_{uuid.uuid4().hex}",
            timestamp=self._clock(),
            actor_id=actor_id,
            actor_name=actor_name,
            role_name=role_name,
            ip=ip,
            action_type=action_type,
            target=target,
            status=LogStatus(status),
            risk_level=derive_risk_level(action_type, status) if risk_level is None else RiskLevel(risk_level),
            details=details,
            user_agent=user_agent,
            changes=tuple(changes) if changes is not None else None,
        )
        return self.append(entry)

    def snapshot(self) -> tuple[SystemLog, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
