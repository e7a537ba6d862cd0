"""Counters and value summaries held in process memory."""
from __future__ import annotations

from collections import Counter, deque
from contextlib import contextmanager
from threading import Lock
from time import perf_counter
from typing import Dict, Iterable, Iterator, Mapping, Tuple

LabelValues = Tuple[str, ...]
Snapshot = Mapping[LabelValues, Mapping[str, float]]


class Metric:
    """A named series family; each label combination is tracked separately."""

    kind = "metric"

    def __init__(
        self, name: str, *, description: str = "", label_names: Iterable[str] | None = None
    ) -> None:
        self.name = name
        self.description = description
        self.label_names: Tuple[str, ...] = tuple(label_names or ())
        self._lock = Lock()

    def series_key(self, labels: Mapping[str, str] | None) -> LabelValues:
        labels = labels or {}
        unexpected = set(labels) - set(self.label_names)
        if unexpected:
            raise ValueError(f"Unknown label(s) {sorted(unexpected)} for metric '{self.name}'")
        missing = [label for label in self.label_names if label not in labels]
        if missing:
            raise ValueError(f"Metric '{self.name}' requires label(s) {', '.join(missing)}")
        return tuple(str(labels[label]) for label in self.label_names)

    def snapshot(self) -> Snapshot:
        raise NotImplementedError


class CounterMetric(Metric):
    """Monotonic count per label combination."""

    kind = "counter"

    def __init__(
        self, name: str, *, description: str = "", label_names: Iterable[str] | None = None
    ) -> None:
        super().__init__(name, description=description, label_names=label_names)
        self._counts: Counter[LabelValues] = Counter()

    def inc(self, amount: float = 1.0, *, labels: Mapping[str, str] | None = None) -> None:
        if amount < 0:
            raise ValueError(f"Counter '{self.name}' cannot be decremented")
        key = self.series_key(labels)
        with self._lock:
            self._counts[key] += amount

    def value(self, *, labels: Mapping[str, str] | None = None) -> float:
        key = self.series_key(labels)
        with self._lock:
            return float(self._counts.get(key, 0.0))

    def snapshot(self) -> Snapshot:
        with self._lock:
            return {key: {"value": float(count)} for key, count in self._counts.items()}


class _Samples:
    """Running totals plus a bounded window of recent values for percentiles."""

    def __init__(self, window: int) -> None:
        self.count = 0
        self.total = 0.0
        self.max = 0.0
        self._recent: deque[float] = deque(maxlen=window)

    def add(self, value: float) -> None:
        self.count += 1
        self.total += value
        self.max = value if self.count == 1 else max(self.max, value)
        self._recent.append(value)

    def percentile(self, fraction: float) -> float:
        ordered = sorted(self._recent)
        if not ordered:
            return 0.0
        index = min(len(ordered) - 1, int(round(fraction * (len(ordered) - 1))))
        return ordered[index]

    def summary(self) -> Dict[str, float]:
        return {
            "count": float(self.count),
            "sum": self.total,
            "max": self.max,
            "avg": self.total / self.count if self.count else 0.0,
            "p50": self.percentile(0.5),
            "p95": self.percentile(0.95),
        }


class DistributionMetric(Metric):
    """Summary of observed values such as analysis durations."""

    kind = "distribution"

    def __init__(
        self,
        name: str,
        *,
        description: str = "",
        label_names: Iterable[str] | None = None,
        window: int = 512,
    ) -> None:
        super().__init__(name, description=description, label_names=label_names)
        self._window = window
        self._series: Dict[LabelValues, _Samples] = {}

    def observe(self, value: float, *, labels: Mapping[str, str] | None = None) -> None:
        key = self.series_key(labels)
        with self._lock:
            samples = self._series.get(key)
            if samples is None:
                samples = self._series[key] = _Samples(self._window)
            samples.add(value)

    def snapshot(self) -> Snapshot:
        with self._lock:
            return {key: samples.summary() for key, samples in self._series.items()}


@contextmanager
def track_duration(metric: DistributionMetric, *, labels: Mapping[str, str] | None = None) -> Iterator[None]:
    """Observe how long the block took, in seconds, even if it raises."""

    started = perf_counter()
    try:
        yield
    finally:
        metric.observe(perf_counter() - started, labels=labels)
