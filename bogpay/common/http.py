"""Tolerant parsing of upstream gateway responses."""

import json
from typing import Any, Literal

import httpx
from pydantic import BaseModel


class JsonBody(BaseModel):
    """Response body that parsed as JSON."""

    ok: Literal[True] = True
    body: Any


class RawBody(BaseModel):
    """Response body kept as text because it was not JSON."""

    ok: Literal[False] = False
    raw: str


ParsedBody = JsonBody | RawBody


def parse_body(resp: httpx.Response) -> ParsedBody:
    """Attempt a JSON parse, falling back to the raw text."""

    text = resp.text
    try:
        return JsonBody(body=json.loads(text))
    except ValueError:
        return RawBody(raw=text)


def diagnostic(parsed: ParsedBody) -> Any:
    """Upstream body exactly as the caller should see it."""

    return parsed.body if isinstance(parsed, JsonBody) else parsed.raw
