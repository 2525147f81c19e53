"""Order creation: payload assembly, idempotency and gateway outcomes."""

import asyncio

import httpx
import pytest

from bogpay.common.errors import OrderError, RedirectMissing, TransientNetworkError
from bogpay.services.orders.schemas import OrderCreateRequest
from bogpay.services.orders.service import OrderConfig, OrderService, coerce_amount, new_external_order_id


def create(service, accept_language=None, **fields):
    return asyncio.run(service.create_order(OrderCreateRequest(**fields), accept_language))


def test_payload_basket_and_currency(order_service, gateway):
    create(order_service, amount=69.0, description="d", product_id="p")

    payload = gateway.order_payload()
    units = payload["purchase_units"]
    assert units["currency"] == "GEL"
    assert units["total_amount"] == 69.0
    assert units["basket"] == [{"quantity": 1, "unit_price": 69.0, "product_id": "p", "description": "d"}]
    assert payload["callback_url"] == "https://checkout.test/callback"
    assert payload["redirect_urls"] == {"success": "https://shop.test/ok", "fail": "https://shop.test/fail"}
    assert payload["external_order_id"].startswith("posture-")


def test_missing_fields_use_defaults(order_service, gateway, settings):
    create(order_service)

    line = gateway.order_payload()["purchase_units"]["basket"][0]
    assert line["unit_price"] == settings.default_amount
    assert line["product_id"] == settings.default_product_id
    assert line["description"] == settings.default_description


def test_redirect_urls_can_be_left_out(settings, gateway, token_provider):
    config = OrderConfig.from_settings(settings).model_copy(update={"include_redirect_urls": False})
    service = OrderService(config, token_provider, transport=gateway.transport())

    create(service, amount=10)

    assert "redirect_urls" not in gateway.order_payload()


def test_request_headers(order_service, gateway):
    create(order_service, accept_language="en-US,en;q=0.9")

    request = gateway.order_requests[0]
    assert request.headers["authorization"] == "Bearer tok-1"
    assert request.headers["accept-language"] == "en"
    assert request.headers["content-type"] == "application/json"
    assert request.headers["idempotency-key"]


def test_success_returns_redirect(order_service):
    result = create(order_service, amount=5)

    assert result.order_id == "ord-1"
    assert result.status == "created"
    assert result.redirect_url == "https://pay.test/ord-1"


def test_flat_redirect_field_and_default_status(order_service, gateway):
    gateway.order_responses = [httpx.Response(200, json={"id": 42, "redirect_url": "https://pay.test/flat"})]

    result = create(order_service)

    assert result.order_id == "42"
    assert result.status == "created"
    assert result.redirect_url == "https://pay.test/flat"


def test_gateway_rejection_is_passed_through_verbatim(order_service, gateway):
    gateway.order_responses = [httpx.Response(400, json={"message": "bad amount"})]

    with pytest.raises(OrderError) as info:
        create(order_service, amount=1)

    assert info.value.step == "create-order"
    assert info.value.http_status == 400
    assert info.value.upstream_body == {"message": "bad amount"}


def test_plain_text_error_body_kept_as_text(order_service, gateway):
    gateway.order_responses = [httpx.Response(422, text="amount invalid")]

    with pytest.raises(OrderError) as info:
        create(order_service)

    assert info.value.upstream_body == "amount invalid"


def test_success_without_redirect_is_redirect_missing(order_service, gateway):
    """A 2xx with no payment link must never look like success."""

    gateway.order_responses = [httpx.Response(200, json={"id": "ord-9", "status": "created"})]

    with pytest.raises(RedirectMissing) as info:
        create(order_service)

    assert info.value.upstream_body == {"id": "ord-9", "status": "created"}


def test_non_json_success_is_redirect_missing(order_service, gateway):
    gateway.order_responses = [httpx.Response(200, text="<html>ok</html>")]

    with pytest.raises(RedirectMissing):
        create(order_service)


def test_each_submission_gets_its_own_idempotency_key(order_service, gateway):
    create(order_service)
    create(order_service)

    keys = [request.headers["idempotency-key"] for request in gateway.order_requests]
    assert len(keys) == 2
    assert keys[0] != keys[1]
    assert gateway.order_payload(0)["external_order_id"] != gateway.order_payload(1)["external_order_id"]


def test_unauthorized_refreshes_token_and_reuses_key(order_service, gateway):
    gateway.order_responses = [httpx.Response(401, json={"error": "expired"}), httpx.Response(200, json=gateway.ok_body())]

    result = create(order_service)

    assert result.redirect_url == "https://pay.test/ord-1"
    assert len(gateway.token_requests) == 2
    first, second = gateway.order_requests
    assert first.headers["authorization"] == "Bearer tok-1"
    assert second.headers["authorization"] == "Bearer tok-2"
    assert first.headers["idempotency-key"] == second.headers["idempotency-key"]
    assert first.content == second.content


def test_transport_error_retried_once_with_same_key(order_service, gateway):
    gateway.order_responses = [httpx.ReadTimeout("slow"), httpx.Response(200, json=gateway.ok_body())]

    create(order_service)

    assert len(gateway.order_requests) == 2
    first, second = gateway.order_requests
    assert first.headers["idempotency-key"] == second.headers["idempotency-key"]


def test_repeated_transport_errors_become_transient(order_service, gateway):
    gateway.order_responses = [httpx.ConnectError("down"), httpx.ConnectError("down")]

    with pytest.raises(TransientNetworkError) as info:
        create(order_service)

    assert info.value.step == "create-order"
    assert len(gateway.order_requests) == 2


def test_server_error_is_not_retried(order_service, gateway):
    gateway.order_responses = [httpx.Response(503, json={"message": "maintenance"})]

    with pytest.raises(OrderError) as info:
        create(order_service)

    assert info.value.http_status == 503
    assert len(gateway.order_requests) == 1


@pytest.mark.parametrize(
    "value, expected",
    [
        (69.0, 69.0),
        ("12.5", 12.5),
        (10, 10.0),
        (None, 69.0),
        ("abc", 69.0),
        (-5, 69.0),
        (0, 69.0),
        (True, 69.0),
        ("nan", 69.0),
        (0.001, 69.0),
        (10**400, 69.0),
    ],
)
def test_coerce_amount(value, expected):
    assert coerce_amount(value, 69.0) == expected


def test_external_order_ids_are_unique():
    ids = {new_external_order_id("posture") for _ in range(1000)}

    assert len(ids) == 1000
