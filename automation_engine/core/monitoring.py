"""Prometheus Metrics Configuration"""

from prometheus_client import Counter, Histogram, CollectorRegistry, generate_latest, CONTENT_TYPE_LATEST

# Create a custom registry for our metrics
registry = CollectorRegistry()

# ============================================================================
# HTTP Request Metrics
# ============================================================================

http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status'],
    registry=registry
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    registry=registry,
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0)
)

# ============================================================================
# Automation Engine Metrics
# ============================================================================

automation_runs_total = Counter(
    'automation_runs_total',
    'Closed automation runs by terminal status',
    ['status'],
    registry=registry
)

automation_actions_total = Counter(
    'automation_actions_total',
    'Executed automation actions by type and outcome',
    ['action_type', 'outcome'],
    registry=registry
)

automation_schedule_advance_failures_total = Counter(
    'automation_schedule_advance_failures_total',
    'Failures persisting runs_completed/next_run_at after a run',
    registry=registry
)

automation_skipped_total = Counter(
    'automation_skipped_total',
    'Automations skipped and deactivated because their duration expired',
    registry=registry
)

automation_batches_total = Counter(
    'automation_batches_total',
    'Orchestrator invocations by mode',
    ['mode'],
    registry=registry
)

automation_batch_duration_seconds = Histogram(
    'automation_batch_duration_seconds',
    'Orchestrator invocation duration in seconds',
    ['mode'],
    registry=registry,
    buckets=(0.05, 0.1, 0.5, 1.0, 5.0, 15.0, 30.0, 60.0, 120.0, 300.0)
)

# ============================================================================
# Helper Functions
# ============================================================================

def get_metrics() -> bytes:
    """
    Generate Prometheus metrics in text format.

    Returns:
        Metrics in Prometheus text format
    """
    return generate_latest(registry)


def get_metrics_content_type() -> str:
    """
    Get the content type for Prometheus metrics.

    Returns:
        Content type string
    """
    return CONTENT_TYPE_LATEST


class MetricsCollector:
    """Helper class for collecting and updating metrics"""

    @staticmethod
    def record_http_request(method: str, endpoint: str, status: int, duration: float):
        """Record HTTP request metrics"""
        http_requests_total.labels(method=method, endpoint=endpoint, status=status).inc()
        http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(duration)

    @staticmethod
    def record_run(status: str):
        """Record a closed run"""
        automation_runs_total.labels(status=status).inc()

    @staticmethod
    def record_action(action_type: str, ok: bool):
        """Record one action outcome"""
        outcome = "success" if ok else "failure"
        automation_actions_total.labels(action_type=action_type, outcome=outcome).inc()

    @staticmethod
    def record_schedule_advance_failure():
        automation_schedule_advance_failures_total.inc()

    @staticmethod
    def record_skipped_automation():
        automation_skipped_total.inc()

    @staticmethod
    def record_batch(mode: str, duration: float = None):
        """Record an orchestrator invocation"""
        automation_batches_total.labels(mode=mode).inc()
        if duration is not None:
            automation_batch_duration_seconds.labels(mode=mode).observe(duration)


__all__ = [
    'registry',
    'get_metrics',
    'get_metrics_content_type',
    'MetricsCollector',
    'http_requests_total',
    'http_request_duration_seconds',
    'automation_runs_total',
    'automation_actions_total',
    'automation_schedule_advance_failures_total',
    'automation_batches_total',
]
