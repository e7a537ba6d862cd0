"""Metric definitions used across the support desk."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class MetricDefinition:
    """Declared name, kind and label names of a metric registered at import."""

    name: str
    metric_type: str
    description: str
    label_names: Tuple[str, ...] = ()


DEFAULT_METRIC_DEFINITIONS: Tuple[MetricDefinition, ...] = (
    MetricDefinition(
        name="tickets_created_total",
        metric_type="counter",
        description="Tickets accepted by the lifecycle manager.",
        label_names=("category",),
    ),
    MetricDefinition(
        name="tickets_rejected_total",
        metric_type="counter",
        description="Ticket operations rejected by validation rules.",
        label_names=("reason",),
    ),
    MetricDefinition(
        name="ticket_replies_total",
        metric_type="counter",
        description="Replies appended to tickets.",
        label_names=("role",),
    ),
    MetricDefinition(
        name="ticket_status_changes_total",
        metric_type="counter",
        description="Status transitions applied to tickets.",
        label_names=("status",),
    ),
    MetricDefinition(
        name="audit_anomaly_alerts_total",
        metric_type="counter",
        description="Anomaly alerts raised by the audit trail analyzer.",
        label_names=("kind",),
    ),
    MetricDefinition(
        name="audit_analysis_duration_seconds",
        metric_type="distribution",
        description="Time spent computing audit trail views.",
        label_names=("view",),
    ),
)
