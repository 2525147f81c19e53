"""Payer language resolution for the gateway's hosted payment page."""


def primary_subtag(value) -> str | None:
    """`"en-US,en;q=0.9"` -> `"en"`; blank or non-string -> None."""

    if not isinstance(value, str):
        return None
    first = value.split(",", 1)[0].split(";", 1)[0].strip()
    if not first:
        return None
    return first.replace("_", "-").split("-", 1)[0].lower() or None


def resolve_language(
    explicit,
    header: str | None,
    supported: list[str],
    default: str,
) -> str:
    """Pick the page language from an explicit field or a header hint.

    A usable explicit value wins over the header. Anything outside `supported`
    falls back to `default`.
    """

    tag = primary_subtag(explicit)
    if tag is None:
        tag = primary_subtag(header)
    if tag in supported:
        return tag
    return default
