"""
Prometheus metrics for the notification pipeline.

Metrics live in the default registry so a host already exposing
``prometheus_client`` metrics picks them up without extra wiring.
"""

from typing import Optional

from prometheus_client import Counter, Histogram

# =====================================================================
# PIPELINE
# =====================================================================

METRIC_NOTIFICATIONS_TOTAL = Counter(
    'error_alerter_notifications_total',
    'Notification attempts by final outcome',
    ['outcome']  # sent, failed, disabled, duplicate, error
)

METRIC_DEDUP_FAILURES_TOTAL = Counter(
    'error_alerter_dedup_failures_total',
    'Dedup cache operations that failed (notification proceeded)'
)

# =====================================================================
# WEBHOOK DELIVERY
# =====================================================================

METRIC_WEBHOOK_REQUESTS_TOTAL = Counter(
    'error_alerter_webhook_requests_total',
    'Webhook POST attempts by result',
    ['status']  # success, fail_http, fail_timeout, fail_connection, fail_encoding, fail_other, skipped
)

METRIC_WEBHOOK_LATENCY = Histogram(
    'error_alerter_webhook_latency_seconds',
    'Latency of webhook POST requests',
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)


def record_outcome(outcome: str) -> None:
    try:
        METRIC_NOTIFICATIONS_TOTAL.labels(outcome=outcome).inc()
    except Exception:
        pass


def record_dedup_failure() -> None:
    try:
        METRIC_DEDUP_FAILURES_TOTAL.inc()
    except Exception:
        pass


def record_webhook_request(status: str, latency: Optional[float] = None) -> None:
    try:
        METRIC_WEBHOOK_REQUESTS_TOTAL.labels(status=status).inc()
        if latency is not None:
            METRIC_WEBHOOK_LATENCY.observe(latency)
    except Exception:
        pass
