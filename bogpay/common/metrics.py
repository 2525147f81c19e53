"""Prometheus metric definitions for the checkout service."""

from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response


order_requests_total = Counter("order_requests_total", "Total order-create requests", ["service"])
order_success_total = Counter("order_success_total", "Orders created with a redirect", ["service"])
order_failure_total = Counter("order_failure_total", "Failed order-create requests", ["service", "kind"])
order_latency_seconds = Histogram("order_latency_seconds", "Order-create latency seconds", ["service"])
token_fetch_total = Counter("token_fetch_total", "Token endpoint round-trips", ["service", "outcome"])
gateway_request_duration_seconds = Histogram(
    "gateway_request_duration_seconds",
    "Outbound gateway request duration seconds",
    ["service", "endpoint"],
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
retries_total = Counter("retries_total", "Retry count", ["service", "dependency"])
callbacks_received_total = Counter(
    "callbacks_received_total",
    "Gateway delivery notifications received",
    ["service", "parsed"],
)


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
