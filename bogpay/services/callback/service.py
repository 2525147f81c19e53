"""Gateway delivery notifications.

The gateway redelivers until it sees a success reply, so `handle` never
raises: whatever arrives is logged and acknowledged.
"""

import json
from datetime import datetime, timezone

from bogpay.common.logging import logger
from bogpay.common.metrics import callbacks_received_total
from bogpay.services.callback.models import Ack, CallbackPayload


def parse_callback(raw: bytes) -> CallbackPayload:
    """Best-effort decode of a complete notification body."""

    received_at = datetime.now(timezone.utc)
    try:
        body = json.loads(raw.decode("utf-8"))
        parsed = True
    except ValueError:
        body = {}
        parsed = False
    return CallbackPayload(raw=raw, body=body, parsed=parsed, received_at=received_at)


class CallbackReceiver:
    """Acknowledges every fully-read notification."""

    def __init__(self, service_name: str = "bogpay-checkout") -> None:
        self.service_name = service_name

    def handle(self, raw: bytes) -> Ack:
        payload = parse_callback(raw)
        callbacks_received_total.labels(
            service=self.service_name,
            parsed=str(payload.parsed).lower(),
        ).inc()
        if payload.parsed:
            logger.info(
                "gateway_callback",
                extra={"callback_body": payload.body, "received_at": payload.received_at.isoformat()},
            )
        else:
            logger.warning(
                "gateway_callback unparseable",
                extra={
                    "callback_raw": payload.raw.decode("utf-8", errors="replace"),
                    "received_at": payload.received_at.isoformat(),
                },
            )
        return Ack(ok=True)
