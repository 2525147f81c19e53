"""Shared fixtures: test settings and a scripted fake of the gateway."""

import json
import os

# Settings are read at import time; credentials must exist before any import.
os.environ.setdefault("BOG_CLIENT_ID", "test-client")
os.environ.setdefault("BOG_CLIENT_SECRET", "test-secret")
os.environ.setdefault("BOG_OAUTH_URL", "https://oauth.test/token")
os.environ.setdefault("BOG_ORDERS_URL", "https://api.test/orders")
os.environ.setdefault("TOKEN_BACKOFF_SECONDS", "0")

import httpx
import pytest

from bogpay.common.config import CommonSettings
from bogpay.services.auth.service import TokenProvider
from bogpay.services.orders.service import OrderConfig, OrderService

TOKEN_URL = "https://oauth.test/token"
ORDERS_URL = "https://api.test/orders"


class FakeGateway:
    """Scripted stand-in for the token and order-create endpoints.

    Queued responses (or exceptions) are served in order; once a queue is empty
    the endpoint answers with a healthy default.
    """

    def __init__(self) -> None:
        self.token_requests: list[httpx.Request] = []
        self.order_requests: list[httpx.Request] = []
        self.token_responses: list = []
        self.order_responses: list = []

    @staticmethod
    def ok_body(order_id: str = "ord-1") -> dict:
        return {"id": order_id, "status": "created", "_links": {"redirect": {"href": f"https://pay.test/{order_id}"}}}

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/token":
            self.token_requests.append(request)
            queue = self.token_responses
            default = httpx.Response(
                200,
                json={"access_token": f"tok-{len(self.token_requests)}", "expires_in": 300},
            )
        else:
            self.order_requests.append(request)
            queue = self.order_responses
            default = httpx.Response(200, json=self.ok_body())
        item = queue.pop(0) if queue else default
        if isinstance(item, Exception):
            raise item
        return item

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def order_payload(self, index: int = -1) -> dict:
        return json.loads(self.order_requests[index].content)


@pytest.fixture
def settings() -> CommonSettings:
    return CommonSettings(
        bog_client_id="client",
        bog_client_secret="secret",
        bog_oauth_url=TOKEN_URL,
        bog_orders_url=ORDERS_URL,
        public_base_url="https://checkout.test",
        success_url="https://shop.test/ok",
        fail_url="https://shop.test/fail",
        token_backoff_seconds=0,
    )


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def token_provider(settings, gateway) -> TokenProvider:
    return TokenProvider(settings, transport=gateway.transport())


@pytest.fixture
def order_service(settings, gateway, token_provider) -> OrderService:
    return OrderService(
        OrderConfig.from_settings(settings),
        token_provider,
        transport=gateway.transport(),
        service_name=settings.service_name,
    )
