from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from campusdesk.audit import AnomalyKind, AuditLogFilter, AuditTrailAnalyzer, LogStatus, RiskLevel
from campusdesk.audit.analyzer import coerce_bound

NOW = datetime(2024, 5, 20, 10, 30, tzinfo=timezone.utc)


@pytest.fixture
def analyzer_for(clock, registry):
    def factory(entries, **kwargs):
        return AuditTrailAnalyzer(entries, clock=clock, metrics=registry, **kwargs)

    return factory


@pytest.fixture
def sample_logs(make_log):
    return [
        make_log(timestamp=NOW - timedelta(days=2), action_type="LOGIN", actor_name="Admin Zhang"),
        make_log(timestamp=NOW - timedelta(hours=3), action_type="EXPORT", target="Scholarship roster"),
        make_log(timestamp=NOW - timedelta(hours=1), action_type="DELETE", risk_level=RiskLevel.HIGH),
        make_log(timestamp=NOW, action_type="UPDATE", target="Student 11288999B", risk_level=RiskLevel.MEDIUM),
    ]


def test_filter_without_criteria_returns_everything_newest_first(analyzer_for, sample_logs):
    result = analyzer_for(sample_logs).filter_logs()

    assert [entry.id for entry in result] == [entry.id for entry in reversed(sample_logs)]


def test_filter_query_matches_actor_or_target_case_insensitive(analyzer_for, sample_logs):
    analyzer = analyzer_for(sample_logs)

    by_actor = analyzer.filter_logs(AuditLogFilter(query="zhang"))
    by_target = analyzer.filter_logs(AuditLogFilter(query="ROSTER"))

    assert [entry.actor_name for entry in by_actor] == ["Admin Zhang"]
    assert [entry.target for entry in by_target] == ["Scholarship roster"]


def test_filter_by_action_and_risk(analyzer_for, sample_logs):
    analyzer = analyzer_for(sample_logs)

    assert [entry.action_type for entry in analyzer.filter_logs(AuditLogFilter(action_type="delete"))] == ["DELETE"]
    assert [entry.risk_level for entry in analyzer.filter_logs(AuditLogFilter(risk_level=RiskLevel.MEDIUM))] == [
        RiskLevel.MEDIUM
    ]
    assert analyzer.filter_logs(AuditLogFilter(action_type="SYSTEM_RESET")) == []


def test_filter_date_bounds_cover_whole_days(analyzer_for, make_log):
    late_evening = make_log(timestamp=datetime(2024, 5, 18, 23, 59, 30, tzinfo=timezone.utc))
    next_morning = make_log(timestamp=datetime(2024, 5, 19, 0, 0, tzinfo=timezone.utc))
    earlier = make_log(timestamp=datetime(2024, 5, 17, 12, 0, tzinfo=timezone.utc))
    analyzer = analyzer_for([earlier, late_evening, next_morning])

    same_day = analyzer.filter_logs(AuditLogFilter(start="2024-05-18", end="2024-05-18"))
    assert [entry.id for entry in same_day] == [late_evening.id]

    from_date = analyzer.filter_logs(AuditLogFilter(start=date(2024, 5, 18)))
    assert [entry.id for entry in from_date] == [next_morning.id, late_evening.id]


def test_filter_combines_criteria(analyzer_for, sample_logs):
    criteria = AuditLogFilter(query="student", risk_level="MEDIUM", start=NOW - timedelta(minutes=5))

    assert [entry.id for entry in analyzer_for(sample_logs).filter_logs(criteria)] == [sample_logs[-1].id]


def test_invalid_bound_is_rejected(analyzer_for, sample_logs):
    with pytest.raises(ValueError, match="Invalid date or timestamp"):
        analyzer_for(sample_logs).filter_logs(AuditLogFilter(start="20-05-2024"))


def test_coerce_bound():
    assert coerce_bound(None, end=False) is None
    assert coerce_bound("", end=True) is None
    assert coerce_bound("2024-05-18", end=False) == datetime(2024, 5, 18, tzinfo=timezone.utc)
    assert coerce_bound("2024-05-18", end=True) == datetime(2024, 5, 18, 23, 59, 59, 999999, tzinfo=timezone.utc)
    assert coerce_bound("2024-05-18T08:00:00Z", end=True) == datetime(2024, 5, 18, 8, tzinfo=timezone.utc)
    assert coerce_bound(datetime(2024, 5, 18, 8), end=False).tzinfo is not None


def test_daily_trend_has_fixed_zero_filled_window(analyzer_for, make_log):
    entries = [
        make_log(timestamp=NOW),
        make_log(timestamp=NOW - timedelta(hours=2)),
        make_log(timestamp=NOW - timedelta(days=3)),
        make_log(timestamp=NOW - timedelta(days=10)),
    ]

    trend = analyzer_for(entries).daily_trend()

    assert len(trend) == 7
    assert trend[0].day == date(2024, 5, 14)
    assert trend[-1].day == date(2024, 5, 20)
    assert [point.count for point in trend] == [0, 0, 0, 1, 0, 0, 2]


def test_daily_trend_of_empty_log(analyzer_for):
    trend = analyzer_for([]).daily_trend(days=3)

    assert [point.count for point in trend] == [0, 0, 0]
    assert [point.day for point in trend] == [date(2024, 5, 18), date(2024, 5, 19), date(2024, 5, 20)]


def test_daily_trend_uses_timezone_of_now(analyzer_for, make_log):
    entry = make_log(timestamp=datetime(2024, 5, 19, 20, 0, tzinfo=timezone.utc))
    taipei_now = NOW.astimezone(timezone(timedelta(hours=8)))

    trend = analyzer_for([entry]).daily_trend(now=taipei_now, days=2)

    assert [(point.day, point.count) for point in trend] == [(date(2024, 5, 19), 0), (date(2024, 5, 20), 1)]


def test_risk_distribution_covers_every_level(analyzer_for, make_log):
    entries = [
        make_log(risk_level=RiskLevel.LOW),
        make_log(risk_level=RiskLevel.LOW),
        make_log(risk_level=RiskLevel.CRITICAL),
    ]

    distribution = analyzer_for(entries).risk_distribution()

    assert distribution == {RiskLevel.LOW: 2, RiskLevel.MEDIUM: 0, RiskLevel.HIGH: 0, RiskLevel.CRITICAL: 1}
    assert sum(distribution.values()) == len(entries)


def test_brute_force_requires_more_than_threshold(analyzer_for, make_log):
    three = [make_log(action_type="LOGIN", status=LogStatus.FAILURE) for _ in range(3)]
    assert analyzer_for(three).detect_anomalies() == []

    four = three + [make_log(action_type="LOGIN", status=LogStatus.FAILURE)]
    alerts = analyzer_for(four).detect_anomalies()
    assert [alert.kind for alert in alerts] == [AnomalyKind.BRUTE_FORCE]
    assert alerts[0].count == 4
    assert "4" in alerts[0].message


def test_successful_logins_do_not_count_toward_brute_force(analyzer_for, make_log):
    entries = [make_log(action_type="LOGIN") for _ in range(6)]

    assert analyzer_for(entries).detect_anomalies() == []


def test_five_failed_logins_and_one_export(analyzer_for, make_log):
    entries = [
        make_log(action_type="LOGIN", status=LogStatus.FAILURE, timestamp=NOW - timedelta(minutes=index))
        for index in range(5)
    ]
    entries.append(make_log(action_type="EXPORT", timestamp=NOW - timedelta(minutes=10)))

    alerts = analyzer_for(entries).detect_anomalies()

    assert [alert.kind for alert in alerts] == [AnomalyKind.BRUTE_FORCE]
    assert alerts[0].count == 5


def test_mass_export_counts_only_recent_exports(analyzer_for, make_log):
    recent = [make_log(action_type="EXPORT", timestamp=NOW - timedelta(minutes=minutes)) for minutes in (5, 30, 60)]
    stale = make_log(action_type="EXPORT", timestamp=NOW - timedelta(hours=2))

    alerts = analyzer_for(recent + [stale]).detect_anomalies()
    assert [(alert.kind, alert.count) for alert in alerts] == [(AnomalyKind.MASS_EXPORT, 3)]

    assert analyzer_for(recent[:2] + [stale]).detect_anomalies() == []


def test_future_exports_are_ignored(analyzer_for, make_log):
    entries = [make_log(action_type="EXPORT", timestamp=NOW + timedelta(minutes=minutes)) for minutes in (1, 2, 3)]

    assert analyzer_for(entries).detect_anomalies() == []


def test_critical_entries_raise_alert(analyzer_for, make_log, registry):
    entries = [make_log(risk_level=RiskLevel.CRITICAL, action_type="SYSTEM_RESET"), make_log()]

    alerts = analyzer_for(entries).detect_anomalies()

    assert [(alert.kind, alert.count, alert.severity) for alert in alerts] == [
        (AnomalyKind.CRITICAL_ACTION, 1, RiskLevel.CRITICAL)
    ]
    assert registry.counter("audit_anomaly_alerts_total").value(labels={"kind": "CRITICAL_ACTION"}) == 1


def test_anomaly_thresholds_are_configurable(analyzer_for, make_log):
    entries = [make_log(action_type="LOGIN", status=LogStatus.FAILURE) for _ in range(2)]

    alerts = analyzer_for(entries, brute_force_threshold=1).detect_anomalies()

    assert [alert.kind for alert in alerts] == [AnomalyKind.BRUTE_FORCE]


def test_summary(analyzer_for, make_log):
    entries = [
        make_log(status=LogStatus.FAILURE, actor_name="Admin Zhang"),
        make_log(status=LogStatus.WARNING, risk_level=RiskLevel.HIGH),
        make_log(risk_level=RiskLevel.CRITICAL, timestamp=NOW - timedelta(days=1)),
    ]

    summary = analyzer_for(entries).summary()

    assert summary.total == 3
    assert summary.failures == 1
    assert summary.warnings == 1
    assert summary.high_risk == 2
    assert summary.unique_actors == 2
    assert summary.today == 2


def test_views_follow_store_appends(audit_store, clock, registry):
    analyzer = AuditTrailAnalyzer(audit_store, clock=clock, metrics=registry)
    assert analyzer.summary().total == 0

    audit_store.record(actor_name="Counselor Wu", role_name="Counselor", action_type="EXPORT", target="Roster")

    assert analyzer.summary().total == 1
    assert analyzer.daily_trend()[-1].count == 1


def test_export_rows_follow_filter_order(analyzer_for, sample_logs):
    rows = analyzer_for(sample_logs).export_rows(AuditLogFilter(action_type="EXPORT"))

    assert len(rows) == 2
    assert rows[0][0] == "timestamp"
    assert rows[1][5] == "Scholarship roster"


def test_trend_days_must_be_positive():
    with pytest.raises(ValueError):
        AuditTrailAnalyzer([], trend_days=0)


def test_naive_timestamps_are_treated_as_utc(audit_store, clock, registry, make_log):
    audit_store.append(make_log(timestamp=datetime(2024, 5, 20, 10, 0), action_type="EXPORT"))
    audit_store.append(make_log(timestamp=datetime(2024, 5, 20, 10, 10), action_type="EXPORT"))
    audit_store.append(make_log(timestamp=datetime(2024, 5, 19, 23, 30), action_type="EXPORT"))
    analyzer = AuditTrailAnalyzer(audit_store, clock=clock, metrics=registry)

    assert all(entry.timestamp.tzinfo is not None for entry in audit_store.snapshot())
    assert len(analyzer.filter_logs(AuditLogFilter(start="2024-05-20"))) == 2
    assert [point.count for point in analyzer.daily_trend(days=2)] == [1, 2]
    assert analyzer.detect_anomalies() == []

    assert analyzer.detect_anomalies(now=datetime(2024, 5, 20, 0, 15)) == []


def test_naive_entries_in_a_plain_iterable(analyzer_for, make_log):
    entries = [make_log(timestamp=datetime(2024, 5, 20, 10, minute), action_type="EXPORT") for minute in (0, 5, 10)]

    alerts = analyzer_for(entries).detect_anomalies(now=datetime(2024, 5, 20, 10, 30))

    assert [(alert.kind, alert.count) for alert in alerts] == [(AnomalyKind.MASS_EXPORT, 3)]


@pytest.mark.parametrize("days", [0, -3])
def test_trend_window_must_be_positive(analyzer_for, days):
    with pytest.raises(ValueError):
        analyzer_for([]).daily_trend(days=days)


def test_action_filter_matches_custom_action_regardless_of_case(audit_store, clock, registry):
    audit_store.record(actor_name="Sync job", role_name="System", action_type="import", target="roster")
    analyzer = AuditTrailAnalyzer(audit_store, clock=clock, metrics=registry)

    assert [entry.action_type for entry in analyzer.filter_logs(AuditLogFilter(action_type="Import"))] == ["IMPORT"]
