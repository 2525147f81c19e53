"""Delivery notification shapes."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class CallbackPayload(BaseModel):
    """One notification as received; `body` is `{}` when it was not JSON."""

    raw: bytes
    body: Any
    parsed: bool
    received_at: datetime


class Ack(BaseModel):
    ok: bool = True
