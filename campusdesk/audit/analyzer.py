"""Read-side views over the audit log: filtering, trends, risk and anomalies."""

from __future__ import annotations

import logging
from collections import Counter
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Protocol

from campusdesk.core.clock import Clock, ensure_aware, parse_datetime, utcnow
from campusdesk.metrics import MetricsRegistry, register_default_metrics

from .export import build_rows, rows_to_text
from .models import (
    AnomalyAlert,
    AnomalyKind,
    AuditLogFilter,
    AuditSummary,
    LogAction,
    LogStatus,
    RiskLevel,
    SystemLog,
    TrendPoint,
)

logger = logging.getLogger(__name__)

ALL = "ALL"


class LogSource(Protocol):
    def snapshot(self) -> tuple[SystemLog, ...]:
        ...


class AuditTrailAnalyzer:
    """Derive dashboard views from a snapshot of the audit log.

    Nothing here mutates the log. Each call takes a fresh snapshot of the
    source, so views are recomputed on demand.
    """

    def __init__(
        self,
        source: LogSource | Iterable[SystemLog],
        *,
        clock: Clock = utcnow,
        brute_force_threshold: int = 3,
        mass_export_threshold: int = 2,
        mass_export_window: timedelta = timedelta(hours=1),
        trend_days: int = 7,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        if trend_days < 1:
            raise ValueError("trend_days must be at least 1")
        self._source = source
        self._clock = clock
        self._brute_force_threshold = brute_force_threshold
        self._mass_export_threshold = mass_export_threshold
        self._mass_export_window = mass_export_window
        self._trend_days = trend_days
        self._metrics = register_default_metrics(metrics)

    def snapshot(self) -> tuple[SystemLog, ...]:
        if hasattr(self._source, "snapshot"):
            return tuple(self._source.snapshot())
        return tuple(self._source)

    def filter_logs(self, criteria: AuditLogFilter | None = None) -> list[SystemLog]:
        """Entries matching every criterion, newest first."""

        criteria = criteria or AuditLogFilter()
        query = criteria.query.strip().casefold()
        action = _enum_value(criteria.action_type)
        risk = _enum_value(criteria.risk_level)
        start = coerce_bound(criteria.start, end=False)
        end = coerce_bound(criteria.end, end=True)

        def matches(entry: SystemLog) -> bool:
            if query and query not in entry.actor_name.casefold() and query not in entry.target.casefold():
                return False
            if action != ALL and entry.action_type != action:
                return False
            if risk != ALL and entry.risk_level.value != risk:
                return False
            if start is not None and entry.timestamp < start:
                return False
            if end is not None and entry.timestamp > end:
                return False
            return True

        with self._metrics.time("audit_analysis_duration_seconds", labels={"view": "filter"}):
            result = [entry for entry in self.snapshot() if matches(entry)]
            result.sort(key=lambda entry: entry.timestamp, reverse=True)
        return result

    def daily_trend(self, now: datetime | None = None, days: int | None = None) -> list[TrendPoint]:
        """Entry counts for each calendar day in the trailing window, oldest first.

        Days are taken in the timezone of ``now``; the window always has
        ``days`` buckets, zero-filled.
        """

        now = ensure_aware(now or self._clock())
        days = self._trend_days if days is None else days
        if days < 1:
            raise ValueError("days must be at least 1")
        tz = now.tzinfo
        today = now.date()
        first_day = today - timedelta(days=days - 1)

        with self._metrics.time("audit_analysis_duration_seconds", labels={"view": "trend"}):
            counts = Counter(entry.timestamp.astimezone(tz).date() for entry in self.snapshot())
        return [
            TrendPoint(day=day, count=counts.get(day, 0))
            for day in (first_day + timedelta(days=offset) for offset in range(days))
        ]

    def risk_distribution(self) -> dict[RiskLevel, int]:
        distribution = {level: 0 for level in RiskLevel}
        for entry in self.snapshot():
            distribution[entry.risk_level] += 1
        return distribution

    def summary(self, now: datetime | None = None) -> AuditSummary:
        now = ensure_aware(now or self._clock())
        entries = self.snapshot()
        today = now.date()
        return AuditSummary(
            total=len(entries),
            failures=sum(1 for entry in entries if entry.status is LogStatus.FAILURE),
            warnings=sum(1 for entry in entries if entry.status is LogStatus.WARNING),
            high_risk=sum(1 for entry in entries if entry.risk_level in (RiskLevel.HIGH, RiskLevel.CRITICAL)),
            unique_actors=len({entry.actor_name for entry in entries}),
            today=sum(1 for entry in entries if entry.timestamp.astimezone(now.tzinfo).date() == today),
        )

    def detect_anomalies(self, now: datetime | None = None) -> list[AnomalyAlert]:
        """Evaluate the anomaly heuristics over the full, unfiltered log."""

        now = ensure_aware(now or self._clock())
        entries = self.snapshot()
        alerts: list[AnomalyAlert] = []

        with self._metrics.time("audit_analysis_duration_seconds", labels={"view": "anomalies"}):
            failed_logins = sum(
                1
                for entry in entries
                if entry.action_type == LogAction.LOGIN.value and entry.status is LogStatus.FAILURE
            )
            if failed_logins > self._brute_force_threshold:
                alerts.append(
                    AnomalyAlert(
                        kind=AnomalyKind.BRUTE_FORCE,
                        count=failed_logins,
                        message=f"Possible brute-force attack: {failed_logins} failed login attempts.",
                        severity=RiskLevel.HIGH,
                    )
                )

            recent_exports = sum(
                1
                for entry in entries
                if entry.action_type == LogAction.EXPORT.value
                and timedelta(0) <= now - entry.timestamp <= self._mass_export_window
            )
            if recent_exports > self._mass_export_threshold:
                alerts.append(
                    AnomalyAlert(
                        kind=AnomalyKind.MASS_EXPORT,
                        count=recent_exports,
                        message=f"Unusual data export volume: {recent_exports} exports in the last hour.",
                        severity=RiskLevel.HIGH,
                    )
                )

            critical = sum(1 for entry in entries if entry.risk_level is RiskLevel.CRITICAL)
            if critical > 0:
                alerts.append(
                    AnomalyAlert(
                        kind=AnomalyKind.CRITICAL_ACTION,
                        count=critical,
                        message=f"{critical} critical-risk action(s) recorded.",
                        severity=RiskLevel.CRITICAL,
                    )
                )

        for alert in alerts:
            self._metrics.counter("audit_anomaly_alerts_total").inc(labels={"kind": alert.kind.value})
            logger.warning("Audit anomaly %s: %s", alert.kind.value, alert.message)
        return alerts

    def export_rows(self, criteria: AuditLogFilter | None = None) -> list[list[str]]:
        return build_rows(self.filter_logs(criteria))

    def export_text(self, criteria: AuditLogFilter | None = None) -> str:
        return rows_to_text(self.export_rows(criteria))


def coerce_bound(value: date | datetime | str | None, *, end: bool) -> datetime | None:
    """Turn a filter bound into an aware datetime.

    A date without a time component covers the whole day: midnight for a
    start bound, the last microsecond of the day for an end bound.
    """

    if value is None or value == "":
        return None
    if isinstance(value, str):
        text = value.strip()
        try:
            value = date.fromisoformat(text) if len(text) == 10 else parse_datetime(text)
        except ValueError as exc:
            raise ValueError(f"Invalid date or timestamp: {text!r}") from exc
    if isinstance(value, datetime):
        return ensure_aware(value)
    return datetime.combine(value, time.max if end else time.min, tzinfo=timezone.utc)


def _enum_value(value: object) -> str:
    if value is None or value == "":
        return ALL
    return str(getattr(value, "value", value)).upper()
