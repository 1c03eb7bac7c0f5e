"""Prometheus metric definitions for the payment bridge."""

from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response


gateway_calls_total = Counter(
    "gateway_calls_total",
    "Total payment gateway calls by outcome",
    ["operation", "outcome"],
)
gateway_call_duration_seconds = Histogram(
    "gateway_call_duration_seconds",
    "Payment gateway call duration seconds",
    ["operation"],
)
payment_status_transitions_total = Counter(
    "payment_status_transitions_total",
    "Payment status values produced by provider operations",
    ["operation", "status"],
)
precondition_skips_total = Counter(
    "precondition_skips_total",
    "Provider operations skipped because the order status did not allow them",
    ["operation"],
)
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "route", "method", "status_code"],
)
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration seconds",
    ["service", "route", "method"],
)


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
