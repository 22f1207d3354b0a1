"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

# Admission metrics
admission_requests = Counter(
    'registrar_admission_requests_total',
    'Total registration requests by outcome',
    ['result']  # confirmed, waitlisted, rejected
)

# State machine metrics
status_transitions = Counter(
    'registrar_status_transitions_total',
    'Registration status transitions',
    ['from_status', 'to_status']
)

promotions = Counter(
    'registrar_promotions_total',
    'Waitlisted registrations promoted to confirmed'
)

# Critical section metrics
contention_retries = Counter(
    'registrar_contention_retries_total',
    'Operations retried after a per-event lock timeout or conflict'
)

critical_section_latency = Histogram(
    'registrar_critical_section_seconds',
    'Time spent holding a per-event critical section',
    buckets=[0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Notification metrics
notification_failures = Counter(
    'registrar_notification_failures_total',
    'Notifications that could not be handed to the dispatcher',
    ['kind']
)


def metrics_endpoint() -> Response:
    """
    Prometheus metrics endpoint.

    Usage:
        @app.get("/metrics")
        def metrics():
            return metrics_endpoint()
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


# Convenience functions for instrumentation
def record_admission(result: str):
    """Record admission decision. Result: confirmed, waitlisted, rejected"""
    admission_requests.labels(result=result).inc()


def record_transition(from_status: str, to_status: str):
    status_transitions.labels(from_status=from_status, to_status=to_status).inc()


def record_promotion():
    promotions.inc()


def record_contention_retry():
    contention_retries.inc()


def record_notification_failure(kind: str):
    notification_failures.labels(kind=kind).inc()
