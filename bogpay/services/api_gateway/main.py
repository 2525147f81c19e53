"""Public entrypoint for checkout.

Creates gateway orders for the storefront, acknowledges the gateway's delivery
notifications, and maps every failure to a JSON envelope.
"""

import json
from time import perf_counter, time
from uuid import uuid4

from fastapi import FastAPI, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bogpay.common.config import settings
from bogpay.common.errors import normalize_error
from bogpay.common.logging import configure_logging, logger, trace_id_ctx
from bogpay.common.metrics import (
    http_request_duration_seconds,
    http_requests_total,
    metrics_response,
    order_failure_total,
    order_latency_seconds,
    order_requests_total,
    order_success_total,
)
from bogpay.common.startup import log_startup_config
from bogpay.common.tracing import instrument_app, setup_tracing
from bogpay.services.auth.service import TokenProvider
from bogpay.services.callback.models import Ack
from bogpay.services.callback.service import CallbackReceiver
from bogpay.services.orders.schemas import OrderCreateRequest
from bogpay.services.orders.service import OrderConfig, OrderService

configure_logging()
setup_tracing(settings.service_name)
log_startup_config(
    settings.service_name,
    [
        "SERVICE_NAME",
        "BOG_CLIENT_ID",
        "BOG_CLIENT_SECRET",
        "PUBLIC_BASE_URL",
        "SUCCESS_URL",
        "FAIL_URL",
        "CALLBACK_URL",
    ],
)
token_provider = TokenProvider(settings)
order_service = OrderService(
    OrderConfig.from_settings(settings),
    token_provider,
    service_name=settings.service_name,
)
callback_receiver = CallbackReceiver(service_name=settings.service_name)

app = FastAPI(title="BogPay Checkout")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)
instrument_app(app)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    """Record request count and latency, and bind a trace id for the logs."""

    start = perf_counter()
    route = request.url.path
    method = request.method
    status_code = 500
    trace_token = trace_id_ctx.set(request.headers.get("x-correlation-id") or str(uuid4()))
    try:
        response = await call_next(request)
        status_code = response.status_code
        route_obj = request.scope.get("route")
        if route_obj is not None and getattr(route_obj, "path", None):
            route = route_obj.path
        return response
    finally:
        trace_id_ctx.reset(trace_token)
        elapsed = max(0.0, perf_counter() - start)
        http_request_duration_seconds.labels(
            service=settings.service_name,
            route=route,
            method=method,
        ).observe(elapsed)
        http_requests_total.labels(
            service=settings.service_name,
            route=route,
            method=method,
            status_code=str(status_code),
        ).inc()


def parse_order_body(raw: bytes) -> OrderCreateRequest:
    """Decode the storefront's body, substituting defaults for anything unusable."""

    try:
        data = json.loads(raw.decode("utf-8")) if raw.strip() else {}
        # Some form builders post the JSON document as a JSON string.
        if isinstance(data, str):
            data = json.loads(data)
    except ValueError as exc:
        logger.warning("malformed order body, using defaults: %s", exc)
        data = {}
    if not isinstance(data, dict):
        logger.warning("order body is not a JSON object, using defaults")
        data = {}
    return OrderCreateRequest.model_validate(data)


@app.post("/create-order")
@app.post("/bog/create-order")
async def create_order(request: Request, accept_language: str | None = Header(default=None)):
    """Create a gateway order and return the payer redirect.

    Gateway rejections come back with the gateway's own status and body so the
    storefront can show what went wrong.
    """

    req = parse_order_body(await request.body())
    order_requests_total.labels(service=settings.service_name).inc()
    with order_latency_seconds.labels(service=settings.service_name).time():
        try:
            result = await order_service.create_order(req, accept_language)
        except Exception as exc:
            error = normalize_error(exc)
            if error is not exc:
                logger.exception("unexpected order failure")
            order_failure_total.labels(service=settings.service_name, kind=error.kind).inc()
            return JSONResponse(status_code=error.response_status(), content=error.to_envelope())
    order_success_total.labels(service=settings.service_name).inc()
    return result.model_dump()


@app.post("/callback")
@app.post("/bog/callback")
@app.post("/api/bog/callback")
async def callback(request: Request):
    """Acknowledge a gateway delivery notification.

    Always replies 200 once the body has been read; any other answer makes the
    gateway redeliver.
    """

    raw = await request.body()
    try:
        ack = callback_receiver.handle(raw)
    except Exception:
        logger.exception("callback handling failed, acknowledging anyway")
        ack = Ack(ok=True)
    return ack.model_dump()


@app.get("/")
def root():
    """Liveness probe with server time in epoch milliseconds."""

    return {"ok": True, "service": settings.service_name, "time": int(time() * 1000)}


@app.get("/metrics")
def metrics():
    """Prometheus scrape endpoint."""

    return metrics_response()


@app.get("/health")
def health():
    """Container health probe endpoint."""

    return {"ok": True}
