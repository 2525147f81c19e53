"""Request/response schemas for order creation."""

from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class OrderCreateRequest(BaseModel):
    """Loosely-typed body accepted by `POST /create-order`.

    Every field is optional and unvalidated here; normalization applies
    defaults instead of rejecting the request.
    """

    model_config = ConfigDict(extra="ignore")

    amount: Any = None
    description: Any = None
    product_id: Any = None
    language: Any = None


class BasketItem(BaseModel):
    quantity: int = 1
    unit_price: float
    product_id: str
    description: str


class PurchaseUnits(BaseModel):
    currency: str
    total_amount: float
    basket: list[BasketItem]


class RedirectUrls(BaseModel):
    success: str | None = None
    fail: str | None = None


class OrderRequest(BaseModel):
    """Normalized order, ready to be turned into a gateway payload."""

    amount: float = Field(gt=0)
    currency: str
    description: str
    product_id: str
    language: str
    external_order_id: str
    callback_url: str
    redirect_urls: RedirectUrls | None = None

    def to_payload(self) -> dict[str, Any]:
        """Order-create body in the gateway's wire format."""

        payload: dict[str, Any] = {
            "callback_url": self.callback_url,
            "external_order_id": self.external_order_id,
            "purchase_units": PurchaseUnits(
                currency=self.currency,
                total_amount=self.amount,
                basket=[
                    BasketItem(
                        quantity=1,
                        unit_price=self.amount,
                        product_id=self.product_id,
                        description=self.description,
                    )
                ],
            ).model_dump(),
        }
        if self.redirect_urls is not None:
            payload["redirect_urls"] = self.redirect_urls.model_dump()
        return payload


class OrderSubmission(BaseModel):
    """One logical client submission.

    The idempotency key is fixed at construction and reused by every internal
    retry of this submission.
    """

    model_config = ConfigDict(frozen=True)

    order: OrderRequest
    idempotency_key: str = Field(default_factory=lambda: str(uuid4()))


class OrderResult(BaseModel):
    """Minimal order response returned to clients."""

    order_id: str | None
    status: str
    redirect_url: str
