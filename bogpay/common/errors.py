"""Failure taxonomy shared by every payment flow.

Each error carries the step that failed, the upstream HTTP status and the
upstream body (when the gateway produced one). `to_envelope()` is the only
shape that ever reaches a caller; tracebacks stay in the logs.
"""

from typing import Any

import httpx


class PaymentError(Exception):
    """Base class for classified failures."""

    kind = "internal_error"
    status_code = 500

    def __init__(
        self,
        detail: Any = None,
        *,
        step: str | None = None,
        http_status: int | None = None,
        upstream_body: Any = None,
    ) -> None:
        super().__init__(detail if isinstance(detail, str) else self.kind)
        self.detail = detail
        self.step = step
        self.http_status = http_status
        self.upstream_body = upstream_body

    def response_status(self) -> int:
        return self.status_code

    def to_envelope(self) -> dict[str, Any]:
        envelope: dict[str, Any] = {"error": self.kind}
        if self.step:
            envelope["step"] = self.step
        envelope["detail"] = self.upstream_body if self.upstream_body is not None else self.detail
        return envelope


class AuthError(PaymentError):
    """Token endpoint rejected our credentials. Retrying will not help."""

    kind = "auth_error"
    status_code = 502


class TransientNetworkError(PaymentError):
    kind = "transient_network_error"
    status_code = 503


class OrderError(PaymentError):
    """Gateway rejected the order; status and body are passed through as-is."""

    kind = "order_error"
    status_code = 502

    def response_status(self) -> int:
        if self.http_status is not None and 400 <= self.http_status < 600:
            return self.http_status
        return self.status_code


class RedirectMissing(PaymentError):
    """Gateway accepted the order but gave no URL to send the payer to."""

    kind = "redirect_missing"
    status_code = 502


class MalformedInput(PaymentError):
    kind = "malformed_input"
    status_code = 400


class InternalError(PaymentError):
    kind = "internal_error"
    status_code = 500

    def to_envelope(self) -> dict[str, Any]:
        return {"error": self.kind, "detail": "internal server error"}


def normalize_error(exc: BaseException, step: str | None = None) -> PaymentError:
    """Classify any exception into the taxonomy above."""

    if isinstance(exc, PaymentError):
        return exc
    if isinstance(exc, httpx.TimeoutException):
        return TransientNetworkError(f"timeout: {exc.__class__.__name__}", step=step)
    if isinstance(exc, httpx.TransportError):
        return TransientNetworkError(f"network error: {exc.__class__.__name__}", step=step)
    return InternalError(step=step)
