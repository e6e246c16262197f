"""
Performance monitoring utilities for VidLook.

Each session owns a PerformanceMonitor; provider requests are recorded into
it through measure_time so callers can inspect request timings.
"""

import time
from contextlib import contextmanager
from typing import Any, Dict, Optional

from .constants import NetworkConstants
from .logging_config import PerformanceLogger


class PerformanceMonitor:
    """Per-session performance monitoring."""

    def __init__(self, slow_threshold_ms: float = NetworkConstants.SLOW_REQUEST_MS):
        self.metrics: Dict[str, Dict[str, Any]] = {}
        self.slow_threshold_ms = slow_threshold_ms
        self.logger = PerformanceLogger("monitor")

    def record_metric(self, name: str, value: float, unit: str = "ms", **tags) -> None:
        """Record a performance metric."""
        if name not in self.metrics:
            self.metrics[name] = {
                "count": 0,
                "total": 0.0,
                "min": float("inf"),
                "max": 0.0,
                "unit": unit,
                "failures": 0,
            }

        metric = self.metrics[name]
        metric["count"] += 1
        metric["total"] += value
        metric["min"] = min(metric["min"], value)
        metric["max"] = max(metric["max"], value)
        if tags.get("success") is False:
            metric["failures"] += 1

        if unit == "ms" and value > self.slow_threshold_ms:
            self.logger.log_duration(name, value / 1000, **tags)

    def get_stats(self, name: str) -> Optional[Dict[str, Any]]:
        """Get statistics for a metric."""
        if name not in self.metrics:
            return None

        metric = self.metrics[name]
        if metric["count"] == 0:
            return dict(metric)

        return {**metric, "avg": metric["total"] / metric["count"]}

    def get_all_stats(self) -> Dict[str, Dict[str, Any]]:
        """Get all performance statistics."""
        return {name: self.get_stats(name) for name in self.metrics}

    def reset(self) -> None:
        self.metrics.clear()

    @contextmanager
    def measure_time(self, operation_name: str, **tags):
        """Context manager to measure execution time into this monitor."""
        start_time = time.perf_counter()
        outcome = {"success": True}
        try:
            yield outcome
        except BaseException:
            outcome["success"] = False
            raise
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            self.record_metric(
                operation_name, duration_ms, "ms", success=outcome["success"], **tags
            )


@contextmanager
def measure_time(
    monitor: Optional[PerformanceMonitor], operation_name: str, **tags
):
    """Measure execution time into `monitor`, or do nothing when it is None."""
    if monitor is None:
        yield {"success": True}
        return
    with monitor.measure_time(operation_name, **tags) as outcome:
        yield outcome
