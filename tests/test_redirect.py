"""Redirect URL extraction across response shapes."""

import pytest

from bogpay.services.orders.redirect import resolve_redirect


def test_link_object_wins_over_flat_field():
    body = {"_links": {"redirect": {"href": "https://a"}}, "redirect_url": "https://b"}

    assert resolve_redirect(body) == "https://a"


def test_flat_field_used_when_link_absent():
    assert resolve_redirect({"redirect_url": "https://b"}) == "https://b"


def test_blank_link_falls_through_to_flat_field():
    body = {"_links": {"redirect": {"href": "  "}}, "redirect_url": "https://b"}

    assert resolve_redirect(body) == "https://b"


@pytest.mark.parametrize(
    "body",
    [
        None,
        "text",
        [],
        {},
        {"_links": None},
        {"_links": {"redirect": "https://not-an-object"}},
        {"_links": {"redirect": {"href": 3}}},
        {"redirect_url": None},
    ],
)
def test_unknown_shapes_resolve_to_none(body):
    assert resolve_redirect(body) is None
