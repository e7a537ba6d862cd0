"""Audit log storage and read-side analysis."""

from .analyzer import AuditTrailAnalyzer
from .export import EXPORT_COLUMNS
from .models import (
    AnomalyAlert,
    AnomalyKind,
    AuditLogFilter,
    AuditSummary,
    FieldChange,
    LogAction,
    LogStatus,
    RiskLevel,
    SystemLog,
    TrendPoint,
    derive_risk_level,
)
from .store import AuditLogStore

__all__ = [
    "AnomalyAlert",
    "AnomalyKind",
    "AuditLogFilter",
    "AuditLogStore",
    "AuditSummary",
    "AuditTrailAnalyzer",
    "EXPORT_COLUMNS",
    "FieldChange",
    "LogAction",
    "LogStatus",
    "RiskLevel",
    "SystemLog",
    "TrendPoint",
    "derive_risk_level",
]
