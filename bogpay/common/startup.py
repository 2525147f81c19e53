"""Startup-time helpers for safe config logging."""

import os

from bogpay.common.logging import logger

SECRET_MARKERS = ("SECRET", "PASSWORD", "TOKEN", "KEY")
# Identifiers are not secrets, but only the tail is needed to tell them apart.
MASKED_MARKERS = ("CLIENT_ID",)


def _safe_env(name: str) -> str:
    """Return env value redacted or masked according to the variable name."""

    value = os.getenv(name)
    if value is None:
        return "<unset>"
    if any(marker in name for marker in SECRET_MARKERS):
        return "<redacted>"
    if any(marker in name for marker in MASKED_MARKERS):
        return f"***{value[-4:]}" if len(value) > 8 else "***"
    return value


def log_startup_config(service_name: str, keys: list[str]) -> None:
    """Log selected startup config keys for quick troubleshooting."""

    config = {"service": service_name}
    for key in keys:
        config[key] = _safe_env(key)
    logger.info("startup_config=%s", config)
