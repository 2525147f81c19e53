"""Redirect URL extraction from order-create success bodies.

The gateway has returned the payment page link in different places across API
versions. Shapes are probed in order and the first non-empty string wins.
"""

from typing import Any

REDIRECT_PATHS: tuple[tuple[str, ...], ...] = (
    ("_links", "redirect", "href"),
    ("redirect_url",),
)


def _lookup(body: Any, path: tuple[str, ...]) -> Any:
    node = body
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def resolve_redirect(body: Any) -> str | None:
    for path in REDIRECT_PATHS:
        value = _lookup(body, path)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None
