"""Named metrics shared by the services of one process."""
from __future__ import annotations

from contextlib import contextmanager
from threading import Lock
from typing import Dict, Iterable, Iterator, Mapping, Tuple, Type, TypeVar

from .base import CounterMetric, DistributionMetric, Metric, Snapshot, track_duration

_M = TypeVar("_M", bound=Metric)


class MetricsRegistry:
    """Metrics are created on first request; later requests return the same object.

    Label names and descriptions are fixed by the first request, so callers
    after :func:`campusdesk.metrics.register_default_metrics` only pass the name.
    """

    def __init__(self) -> None:
        self._metrics: Dict[str, Metric] = {}
        self._lock = Lock()

    def _resolve(self, cls: Type[_M], name: str, description: str, label_names: Iterable[str] | None) -> _M:
        with self._lock:
            metric = self._metrics.get(name)
            if metric is None:
                metric = self._metrics[name] = cls(name, description=description, label_names=label_names)
        if not isinstance(metric, cls):
            raise TypeError(f"Metric '{name}' is a {metric.kind}, not a {cls.kind}")
        return metric

    def counter(
        self, name: str, *, description: str = "", label_names: Iterable[str] | None = None
    ) -> CounterMetric:
        return self._resolve(CounterMetric, name, description, label_names)

    def distribution(
        self, name: str, *, description: str = "", label_names: Iterable[str] | None = None
    ) -> DistributionMetric:
        return self._resolve(DistributionMetric, name, description, label_names)

    def metrics(self) -> Tuple[Metric, ...]:
        with self._lock:
            return tuple(self._metrics.values())

    def snapshot(self) -> Dict[str, Snapshot]:
        return {metric.name: metric.snapshot() for metric in self.metrics()}

    @contextmanager
    def time(self, name: str, *, labels: Mapping[str, str] | None = None) -> Iterator[None]:
        """Record the duration of the block on the distribution ``name``."""

        with track_duration(self.distribution(name), labels=labels):
            yield
