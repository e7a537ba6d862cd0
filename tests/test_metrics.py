import pytest

from campusdesk.metrics import MetricsRegistry, register_default_metrics


def test_default_metrics_are_registered():
    registry = register_default_metrics(MetricsRegistry())

    names = {metric.name for metric in registry.metrics()}
    assert {
        "tickets_created_total",
        "tickets_rejected_total",
        "ticket_replies_total",
        "ticket_status_changes_total",
        "audit_anomaly_alerts_total",
        "audit_analysis_duration_seconds",
    } <= names


def test_counter_requires_declared_labels():
    registry = register_default_metrics(MetricsRegistry())
    counter = registry.counter("tickets_created_total")

    counter.inc(labels={"category": "PAYMENT"})
    counter.inc(2, labels={"category": "PAYMENT"})

    assert counter.value(labels={"category": "PAYMENT"}) == 3
    assert counter.value(labels={"category": "HOURS"}) == 0
    with pytest.raises(ValueError):
        counter.inc()
    with pytest.raises(ValueError):
        counter.inc(-1, labels={"category": "PAYMENT"})


def test_time_records_distribution():
    registry = register_default_metrics(MetricsRegistry())

    with registry.time("audit_analysis_duration_seconds", labels={"view": "trend"}):
        pass

    stats = registry.snapshot()["audit_analysis_duration_seconds"][("trend",)]
    assert stats["count"] == 1.0
    assert stats["max"] >= 0.0


def test_type_conflict_is_rejected():
    registry = MetricsRegistry()
    registry.counter("requests")

    with pytest.raises(TypeError):
        registry.distribution("requests")
