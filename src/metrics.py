"""
Prometheus metrics for the record sync engine.
Tracks reconciliation passes, detected changes and callback outcomes.
"""

from prometheus_client import Counter, Histogram, start_http_server
import time
from functools import wraps
import logging

logger = logging.getLogger(__name__)

# Business Metrics
SYNC_PASSES_TOTAL = Counter(
    'sync_passes_total',
    'Total number of engine operations',
    ['operation', 'status']
)

CHANGES_DETECTED_TOTAL = Counter(
    'sync_changes_detected_total',
    'Total changes detected by the diff stage',
    ['change_type']
)

CALLBACK_INVOCATIONS_TOTAL = Counter(
    'sync_callback_invocations_total',
    'Total effect callback invocations',
    ['category', 'status']
)

# Technical Metrics
SYNC_PASS_DURATION_SECONDS = Histogram(
    'sync_pass_duration_seconds',
    'Time spent per engine operation',
    ['operation'],
    buckets=[0.01, 0.05, 0.1, 0.5, 1, 5, 10, 30, 60]
)


class MetricsCollector:
    """Centralized metrics collection for the sync engine."""

    def __init__(self, port: int = 8000):
        self.port = port
        self.server_started = False

    def start_metrics_server(self):
        """Start Prometheus metrics server."""
        if not self.server_started:
            if not (8000 <= self.port <= 9999):
                raise ValueError(f"Invalid port {self.port}. Must be between 8000-9999")
            start_http_server(self.port)
            self.server_started = True
            logger.info(f"Metrics server started on port {self.port}")

    def record_pass(self, operation: str, status: str, duration: float):
        """Record one engine operation."""
        SYNC_PASSES_TOTAL.labels(operation=operation, status=status).inc()
        SYNC_PASS_DURATION_SECONDS.labels(operation=operation).observe(duration)

    def record_changes(self, inserted: int, deleted: int, updated: int):
        """Record change set sizes."""
        CHANGES_DETECTED_TOTAL.labels(change_type='inserted').inc(inserted)
        CHANGES_DETECTED_TOTAL.labels(change_type='deleted').inc(deleted)
        CHANGES_DETECTED_TOTAL.labels(change_type='updated').inc(updated)

    def record_callbacks(self, category: str, status: str, count: int):
        """Record callback invocations for one category."""
        CALLBACK_INVOCATIONS_TOTAL.labels(category=category, status=status).inc(count)


# Global metrics collector instance
metrics = MetricsCollector()


def track_duration(operation: str):
    """Decorator to track async engine operation duration and outcome."""
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                result = await func(*args, **kwargs)
            except Exception:
                metrics.record_pass(operation, 'error', time.time() - start_time)
                raise
            metrics.record_pass(operation, 'success', time.time() - start_time)
            return result
        return wrapper
    return decorator
