"""Order creation against the gateway.

Normalizes the client's loosely-typed request, submits it once per logical
submission under a fixed idempotency key, and turns the gateway's answer into
either an `OrderResult` with a redirect or a classified error.
"""

import math
import time
from uuid import uuid4

import httpx
from pydantic import BaseModel

from bogpay.common.errors import OrderError, RedirectMissing, TransientNetworkError
from bogpay.common.http import JsonBody, diagnostic, parse_body
from bogpay.common.logging import external_order_id_ctx, logger
from bogpay.common.metrics import gateway_request_duration_seconds, retries_total
from bogpay.services.auth.models import AccessToken
from bogpay.services.auth.service import TokenProvider
from bogpay.services.orders.language import resolve_language
from bogpay.services.orders.redirect import resolve_redirect
from bogpay.services.orders.schemas import (
    OrderCreateRequest,
    OrderRequest,
    OrderResult,
    OrderSubmission,
    RedirectUrls,
)

STEP = "create-order"
DEFAULT_STATUS = "created"


class OrderConfig(BaseModel):
    """Knobs that differ between storefronts sharing this flow."""

    orders_url: str
    currency: str
    default_amount: float
    default_description: str
    default_product_id: str
    external_order_prefix: str
    default_language: str
    supported_languages: list[str]
    callback_url: str
    success_url: str | None = None
    fail_url: str | None = None
    include_redirect_urls: bool = True
    timeout_seconds: float = 10.0
    max_attempts: int = 2

    @classmethod
    def from_settings(cls, settings) -> "OrderConfig":
        return cls(
            orders_url=settings.bog_orders_url,
            currency=settings.currency,
            default_amount=settings.default_amount,
            default_description=settings.default_description,
            default_product_id=settings.default_product_id,
            external_order_prefix=settings.external_order_prefix,
            default_language=settings.default_language,
            supported_languages=settings.supported_languages,
            callback_url=settings.callback_url,
            success_url=settings.success_url,
            fail_url=settings.fail_url,
            include_redirect_urls=settings.include_redirect_urls,
            timeout_seconds=settings.http_timeout_seconds,
            max_attempts=settings.order_max_attempts,
        )


def coerce_amount(value, default: float) -> float:
    """Positive, finite amount rounded to minor units, else `default`."""

    if isinstance(value, bool) or value is None:
        return default
    try:
        amount = float(value)
    except (TypeError, ValueError, OverflowError):
        return default
    if not math.isfinite(amount):
        return default
    amount = round(amount, 2)
    if amount <= 0:
        return default
    return amount


def _text_or_default(value, default: str) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def new_external_order_id(prefix: str) -> str:
    # Millisecond clock plus a random suffix keeps ids unique even for
    # submissions landing in the same millisecond.
    return f"{prefix}-{int(time.time() * 1000)}-{uuid4().hex[:8]}"


class OrderService:
    """Creates gateway orders and resolves the payer redirect."""

    def __init__(
        self,
        config: OrderConfig,
        token_provider: TokenProvider,
        transport: httpx.AsyncBaseTransport | None = None,
        service_name: str = "bogpay-checkout",
    ) -> None:
        self.config = config
        self.token_provider = token_provider
        self.transport = transport
        self.service_name = service_name

    def build_order(self, req: OrderCreateRequest, accept_language: str | None = None) -> OrderRequest:
        """Apply defaults and language resolution to a client request."""

        config = self.config
        redirect_urls = None
        if config.include_redirect_urls:
            redirect_urls = RedirectUrls(success=config.success_url, fail=config.fail_url)
        return OrderRequest(
            amount=coerce_amount(req.amount, config.default_amount),
            currency=config.currency,
            description=_text_or_default(req.description, config.default_description),
            product_id=_text_or_default(req.product_id, config.default_product_id),
            language=resolve_language(
                req.language,
                accept_language,
                config.supported_languages,
                config.default_language,
            ),
            external_order_id=new_external_order_id(config.external_order_prefix),
            callback_url=config.callback_url,
            redirect_urls=redirect_urls,
        )

    async def create_order(self, req: OrderCreateRequest, accept_language: str | None = None) -> OrderResult:
        """Submit one order and return where to send the payer."""

        submission = OrderSubmission(order=self.build_order(req, accept_language))
        ctx_token = external_order_id_ctx.set(submission.order.external_order_id)
        try:
            logger.info(
                "order_submit amount=%s currency=%s language=%s",
                submission.order.amount,
                submission.order.currency,
                submission.order.language,
            )
            resp = await self._submit(submission)
            return self._result(resp)
        finally:
            external_order_id_ctx.reset(ctx_token)

    async def _submit(self, submission: OrderSubmission) -> httpx.Response:
        """POST the submission, retrying at most once with the same key.

        Retries only happen when the gateway cannot have acted on the request
        (rejected token) or when no response arrived at all.
        """

        max_attempts = self.config.max_attempts
        for attempt in range(1, max_attempts + 1):
            token = await self.token_provider.get_token()
            try:
                resp = await self._post(submission, token)
            except httpx.TransportError as exc:
                if attempt < max_attempts:
                    retries_total.labels(service=self.service_name, dependency="create-order").inc()
                    logger.warning(
                        "order create transport error attempt=%s error=%s",
                        attempt,
                        exc.__class__.__name__,
                    )
                    continue
                kind = "timed out" if isinstance(exc, httpx.TimeoutException) else "failed"
                raise TransientNetworkError(f"order create request {kind}", step=STEP) from exc
            if resp.status_code == 401 and attempt < max_attempts:
                retries_total.labels(service=self.service_name, dependency="create-order").inc()
                logger.warning("order create unauthorized, refreshing token attempt=%s", attempt)
                self.token_provider.invalidate(token)
                continue
            if resp.status_code == 401:
                self.token_provider.invalidate(token)
            return resp
        raise TransientNetworkError("order create attempts exhausted", step=STEP)

    async def _post(self, submission: OrderSubmission, token: AccessToken) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {token.value}",
            "Content-Type": "application/json",
            "Idempotency-Key": submission.idempotency_key,
            "Accept-Language": submission.order.language,
        }
        started = time.perf_counter()
        try:
            async with httpx.AsyncClient(timeout=self.config.timeout_seconds, transport=self.transport) as client:
                return await client.post(
                    self.config.orders_url,
                    headers=headers,
                    json=submission.order.to_payload(),
                )
        finally:
            gateway_request_duration_seconds.labels(service=self.service_name, endpoint="create-order").observe(
                max(0.0, time.perf_counter() - started)
            )

    def _result(self, resp: httpx.Response) -> OrderResult:
        parsed = parse_body(resp)
        if not resp.is_success:
            logger.error("gateway rejected order status=%s", resp.status_code)
            raise OrderError(
                f"gateway returned {resp.status_code}",
                step=STEP,
                http_status=resp.status_code,
                upstream_body=diagnostic(parsed),
            )

        body = parsed.body if isinstance(parsed, JsonBody) else None
        redirect_url = resolve_redirect(body)
        if redirect_url is None:
            logger.error("gateway accepted order without redirect status=%s", resp.status_code)
            raise RedirectMissing(
                "gateway response has no redirect url",
                step=STEP,
                http_status=resp.status_code,
                upstream_body=diagnostic(parsed),
            )

        order_id = body.get("id")
        status = body.get("status")
        logger.info("order created order_id=%s status=%s", order_id, status)
        return OrderResult(
            order_id=str(order_id) if order_id is not None else None,
            status=status if isinstance(status, str) and status else DEFAULT_STATUS,
            redirect_url=redirect_url,
        )
