"""
In-process metrics for matcher runs
"""
import time
from collections import defaultdict, deque
from typing import Any, Dict, Optional

import structlog

logger = structlog.get_logger()


class MetricsCollector:
    """Simple in-memory metrics collector"""

    def __init__(self, histogram_window: int = 1000):
        self.counters: Dict[str, int] = defaultdict(int)
        self.histograms = defaultdict(lambda: deque(maxlen=histogram_window))

    def increment_counter(self, name: str, value: int = 1, tags: Optional[Dict[str, str]] = None):
        """Increment a counter metric"""
        self.counters[self._make_key(name, tags)] += value

    def record_histogram(self, name: str, value: float, tags: Optional[Dict[str, str]] = None):
        """Record a histogram value"""
        self.histograms[self._make_key(name, tags)].append(value)

    def get_metrics(self) -> Dict[str, Any]:
        """Get all current metrics"""
        metrics: Dict[str, Any] = {
            "counters": dict(self.counters),
            "histograms": {},
        }

        for key, values in self.histograms.items():
            if values:
                values_list = sorted(values)
                metrics["histograms"][key] = {
                    "count": len(values_list),
                    "min": values_list[0],
                    "max": values_list[-1],
                    "avg": sum(values_list) / len(values_list),
                    "p50": self._percentile(values_list, 0.5),
                    "p95": self._percentile(values_list, 0.95),
                }

        return metrics

    def log_snapshot(self, event: str = "metrics.snapshot") -> None:
        """Emit counters and histogram summaries as one structured log line."""
        snapshot = self.get_metrics()
        logger.info(event, counters=snapshot["counters"], histograms=snapshot["histograms"])

    def _make_key(self, name: str, tags: Optional[Dict[str, str]] = None) -> str:
        """Create metric key with tags"""
        if not tags:
            return name

        tag_str = ",".join(f"{k}={v}" for k, v in sorted(tags.items()))
        return f"{name}[{tag_str}]"

    def _percentile(self, sorted_values: list, percentile: float) -> float:
        index = int(percentile * (len(sorted_values) - 1))
        return sorted_values[index]


# Global metrics instance
metrics = MetricsCollector()


class TimerContext:
    """Context manager for timing operations; ``elapsed`` is set on exit."""

    def __init__(self, name: str, tags: Optional[Dict[str, str]] = None, collector: Optional[MetricsCollector] = None):
        self.name = name
        self.tags = tags
        self.collector = collector or metrics
        self.elapsed = 0.0
        self._start = 0.0

    def __enter__(self):
        self._start = time.monotonic()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed = time.monotonic() - self._start
        self.collector.record_histogram(self.name, self.elapsed, self.tags)
