from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping, Sequence

from campusdesk.core.clock import ensure_aware, parse_datetime, to_iso


class LogAction(str, Enum):
    """Action types known to the dashboard; other values are kept verbatim."""

    LOGIN = "LOGIN"
    VIEW_SENSITIVE = "VIEW_SENSITIVE"
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    EXPORT = "EXPORT"
    ACCESS_DENIED = "ACCESS_DENIED"
    SYSTEM_RESET = "SYSTEM_RESET"


class LogStatus(str, Enum):
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    FAILURE = "FAILURE"


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


@dataclass(slots=True, frozen=True)
class FieldChange:
    field: str
    old_value: Any = None
    new_value: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field, "oldValue": self.old_value, "newValue": self.new_value}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FieldChange":
        return cls(field=str(data["field"]), old_value=data.get("oldValue"), new_value=data.get("newValue"))


@dataclass(slots=True, frozen=True)
class SystemLog:
    """One audited action. Entries are produced elsewhere and only read here."""

    id: str
    timestamp: datetime
    actor_name: str
    role_name: str
    ip: str
    action_type: str
    target: str
    status: LogStatus
    risk_level: RiskLevel
    details: str | None = None
    user_agent: str | None = None
    changes: Sequence[FieldChange] | None = None
    actor_id: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "timestamp", ensure_aware(self.timestamp))
        object.__setattr__(self, "action_type", normalize_action(self.action_type))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": to_iso(self.timestamp),
            "actorId": self.actor_id,
            "actorName": self.actor_name,
            "roleName": self.role_name,
            "ip": self.ip,
            "actionType": self.action_type,
            "target": self.target,
            "status": self.status.value,
            "riskLevel": self.risk_level.value,
            "details": self.details,
            "userAgent": self.user_agent,
            "changes": None if self.changes is None else [change.to_dict() for change in self.changes],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SystemLog":
        changes = data.get("changes")
        action_type = normalize_action(data["actionType"])
        status = LogStatus(data["status"])
        risk_level = data.get("riskLevel")
        return cls(
            id=str(data["id"]),
            timestamp=parse_datetime(data["timestamp"]),
            actor_id=data.get("actorId"),
            actor_name=str(data.get("actorName", "")),
            role_name=str(data.get("roleName", "")),
            ip=str(data.get("ip", "")),
            action_type=action_type,
            target=str(data.get("target", "")),
            status=status,
            risk_level=RiskLevel(risk_level) if risk_level else derive_risk_level(action_type, status),
            details=data.get("details"),
            user_agent=data.get("userAgent"),
            changes=None if changes is None else tuple(FieldChange.from_dict(item) for item in changes),
        )


def normalize_action(value: LogAction | str) -> str:
    """Upper-case an action type; values outside :class:`LogAction` are otherwise kept."""

    return value.value if isinstance(value, LogAction) else str(value).strip().upper()


_ACTION_RISK: dict[str, RiskLevel] = {
    LogAction.VIEW_SENSITIVE.value: RiskLevel.HIGH,
    LogAction.EXPORT.value: RiskLevel.HIGH,
    LogAction.SYSTEM_RESET.value: RiskLevel.CRITICAL,
}


def derive_risk_level(action_type: LogAction | str, status: LogStatus) -> RiskLevel:
    """Risk assigned to an entry recorded without one.

    Denied access and failed actions are MEDIUM and take precedence over the
    per-action table; everything not listed is LOW.
    """

    action = normalize_action(action_type)
    if action == LogAction.ACCESS_DENIED.value or LogStatus(status) is LogStatus.FAILURE:
        return RiskLevel.MEDIUM
    return _ACTION_RISK.get(action, RiskLevel.LOW)


class AnomalyKind(str, Enum):
    BRUTE_FORCE = "BRUTE_FORCE"
    MASS_EXPORT = "MASS_EXPORT"
    CRITICAL_ACTION = "CRITICAL_ACTION"


@dataclass(slots=True, frozen=True)
class AnomalyAlert:
    """Informational signal derived from the log; nothing acts on it here."""

    kind: AnomalyKind
    count: int
    message: str
    severity: RiskLevel = RiskLevel.HIGH


@dataclass(slots=True, frozen=True)
class AuditSummary:
    total: int
    failures: int
    warnings: int
    high_risk: int
    unique_actors: int
    today: int


@dataclass(slots=True, frozen=True)
class TrendPoint:
    day: date
    count: int


@dataclass(slots=True)
class AuditLogFilter:
    """Criteria for the filtered log view. ``"ALL"`` disables a field."""

    query: str = ""
    action_type: str = "ALL"
    risk_level: str = "ALL"
    start: date | datetime | str | None = None
    end: date | datetime | str | None = None
