"""Prometheus metric inventory.

Every metric the service exports is declared here; the owning module
imports the one it needs and increments it at the point of action.
HTTP metrics are fed by MetricsMiddleware, domain metrics by the services.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    # Order creation waits on the gateway, hence the long tail buckets.
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Domain metrics
# ---------------------------------------------------------------------------

PAYMENT_ORDERS = Counter(
    "payment_orders_total",
    "Checkout order creation attempts by outcome",
    ["outcome"],  # created|rejected|gateway_unavailable
)

PAYMENT_VERIFICATIONS = Counter(
    "payment_verifications_total",
    "Payment signature verifications by outcome",
    ["outcome"],  # paid|duplicate|invalid_signature|closed
)

GATEWAY_LATENCY = Histogram(
    "payment_gateway_request_seconds",
    "Latency of outbound payment gateway calls",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

LESSONS_MARKED = Counter(
    "lessons_marked_total",
    "Lesson-watched events by effect",
    ["effect"],  # recorded|duplicate|unknown_lesson
)

CERTIFICATES_ISSUED = Counter(
    "certificates_issued_total",
    "Certificates issued by the completion gate",
)

RATING_RECOMPUTES = Counter(
    "rating_recomputes_total",
    "Course rating recomputations by trigger",
    ["trigger"],  # created|updated|deleted
)
