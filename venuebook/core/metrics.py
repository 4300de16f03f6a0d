"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at the /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Reservation metrics
booking_attempts = Counter(
    'booking_attempts_total',
    'Total booking creation attempts',
    ['status']  # success, conflict, rejected, error
)

booking_latency = Histogram(
    'booking_latency_seconds',
    'Booking creation latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

# Lifecycle metrics
status_transitions = Counter(
    'status_transitions_total',
    'Booking status transitions',
    ['action']  # confirm, reject, cancel
)

payments_recorded = Counter(
    'payments_recorded_total',
    'Payments appended to booking ledgers'
)

# Database metrics
db_retries = Counter(
    'db_retry_attempts_total',
    'Database retry attempts due to version conflicts',
    ['operation']  # create_booking, transition, payment
)

# Notification metrics
notifications = Counter(
    'notifications_total',
    'Notification dispatches',
    ['event', 'result']  # booking_created/confirmed/cancelled x sent/failed
)

redis_connection_errors = Counter(
    'redis_connection_errors_total',
    'Redis connection errors'
)


def metrics_endpoint() -> Response:
    """Render the default registry in the Prometheus text format."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_attempt(status: str):
    """Record booking attempt. Status: success, conflict, rejected, error"""
    booking_attempts.labels(status=status).inc()


def record_transition(action: str):
    status_transitions.labels(action=action).inc()


def record_db_retry(operation: str):
    db_retries.labels(operation=operation).inc()


def record_notification(event: str, sent: bool):
    result = "sent" if sent else "failed"
    notifications.labels(event=event, result=result).inc()
