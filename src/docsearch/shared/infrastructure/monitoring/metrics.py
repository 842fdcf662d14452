"""
Metrics collection for DocSearch.

Search latency, branch failures and index churn are recorded here.
Collection is in-process and best-effort.
"""

import time
import threading
from typing import Dict, Any, List, Optional, Union
from collections import defaultdict, deque
from dataclasses import dataclass, field
from functools import wraps

from ...config.settings import get_settings


@dataclass
class Metric:
    """Represents a single metric measurement."""

    name: str
    value: Union[int, float]
    timestamp: float
    tags: Dict[str, str] = field(default_factory=dict)

    @property
    def age_seconds(self) -> float:
        """Get age of metric in seconds."""
        return time.time() - self.timestamp


class MetricsCollector:
    """
    Collects and stores performance metrics for search operations.

    Thread-safe; keeps a bounded time series per metric name.
    """

    _instance: Optional["MetricsCollector"] = None
    _lock = threading.RLock()

    def __new__(cls) -> "MetricsCollector":
        """Singleton pattern."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        settings = get_settings()
        self.enabled = settings.monitoring_config.get('enabled', True)
        self.max_history = settings.monitoring_config.get('max_history', 1000)
        self.retention_seconds = settings.monitoring_config.get('retention_seconds', 3600)

        self._metrics: Dict[str, deque] = defaultdict(lambda: deque(maxlen=self.max_history))
        self._counters: Dict[str, int] = defaultdict(int)
        self._gauges: Dict[str, float] = defaultdict(float)
        self._timers: Dict[str, deque] = defaultdict(lambda: deque(maxlen=self.max_history))

        self._initialized = True

    def counter(self, name: str, value: int = 1, tags: Dict[str, str] = None) -> None:
        """Increment a counter metric."""
        if not self.enabled:
            return
        with self._lock:
            self._counters[name] += value
            self._record(name, self._counters[name], tags)

    def gauge(self, name: str, value: float, tags: Dict[str, str] = None) -> None:
        """Set a gauge metric value."""
        if not self.enabled:
            return
        with self._lock:
            self._gauges[name] = value
            self._record(name, value, tags)

    def timer(self, name: str, duration_seconds: float, tags: Dict[str, str] = None) -> None:
        """Record a timing metric."""
        if not self.enabled:
            return
        with self._lock:
            self._timers[name].append(duration_seconds)
            self._record(name, duration_seconds, tags)

    def _record(self, name: str, value: Union[int, float], tags: Optional[Dict[str, str]]) -> None:
        current_time = time.time()
        series = self._metrics[name]
        series.append(Metric(name=name, value=value, timestamp=current_time, tags=tags or {}))

        while series and current_time - series[0].timestamp > self.retention_seconds:
            series.popleft()

    def get_counter(self, name: str) -> int:
        """Get current counter value."""
        return self._counters.get(name, 0)

    def get_gauge(self, name: str) -> float:
        """Get current gauge value."""
        return self._gauges.get(name, 0.0)

    def get_timer_stats(self, name: str) -> Dict[str, float]:
        """Get timer statistics."""
        timings = sorted(self._timers.get(name, []))

        if not timings:
            return {'count': 0, 'mean': 0.0, 'min': 0.0, 'max': 0.0, 'p95': 0.0}

        count = len(timings)
        return {
            'count': count,
            'mean': sum(timings) / count,
            'min': timings[0],
            'max': timings[-1],
            'p95': timings[min(count - 1, int(0.95 * count))],
        }

    def get_metric_history(self, name: str, limit: int = 100) -> List[Metric]:
        """Get recent history for a metric."""
        with self._lock:
            metrics = list(self._metrics.get(name, []))
            return metrics[-limit:] if limit else metrics

    def get_all_metrics(self) -> Dict[str, Any]:
        """Get all current metric values."""
        with self._lock:
            return {
                'counters': dict(self._counters),
                'gauges': dict(self._gauges),
                'timers': {name: self.get_timer_stats(name) for name in self._timers},
            }

    def record_search(self, search_type: str, duration_seconds: float, result_count: int) -> None:
        """Record one completed search."""
        tags = {'search_type': search_type}

        self.counter('search_requests_total', tags=tags)
        self.timer('search_duration', duration_seconds, tags=tags)
        self.gauge('search_last_result_count', result_count, tags=tags)

    def record_branch_failure(self, branch: str, error: Exception) -> None:
        """Record a retrieval branch that failed and was dropped."""
        self.counter('search_branch_failures_total', tags={'branch': branch, 'error': type(error).__name__})

    def record_extraction_failure(self, reason: str) -> None:
        """Record a concept-extraction call that fell back."""
        self.counter('concept_extraction_failures_total', tags={'reason': reason})

    def record_index_change(self, operation: str, document_count: int) -> None:
        """Record an index write and the resulting corpus size."""
        self.counter(f'index_{operation}_total', tags={'operation': operation})
        self.gauge('index_documents', document_count)


def timed_operation(metric_name: str, tags: Dict[str, str] = None):
    """
    Decorator for timing synchronous operations.

    Args:
        metric_name: Name of the timing metric
        tags: Optional tags for the metric
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            metrics = get_metrics()
            start_time = time.time()

            try:
                result = func(*args, **kwargs)
                metrics.timer(metric_name, time.time() - start_time, tags)
                return result

            except Exception as e:
                error_tags = (tags or {}).copy()
                error_tags['error'] = type(e).__name__
                metrics.timer(f"{metric_name}_error", time.time() - start_time, error_tags)
                raise

        return wrapper
    return decorator


# Global instance
_metrics_collector = None
_metrics_lock = threading.Lock()


def get_metrics() -> MetricsCollector:
    """
    Get the global metrics collector instance.

    Returns:
        MetricsCollector singleton instance
    """
    global _metrics_collector

    if _metrics_collector is None:
        with _metrics_lock:
            if _metrics_collector is None:
                _metrics_collector = MetricsCollector()

    return _metrics_collector
