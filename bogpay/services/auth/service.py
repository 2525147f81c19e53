"""Client-credentials token fetch with a single-flight process cache.

Only one token request is ever in flight: concurrent callers that miss the
cache queue on the lock and re-check the cache once they get it. Callers that
queued behind a failed fetch get that failure rather than retrying again.
"""

import asyncio
import base64
import time
from datetime import datetime, timedelta, timezone

import httpx

from bogpay.common.errors import AuthError, TransientNetworkError
from bogpay.common.http import JsonBody, diagnostic, parse_body
from bogpay.common.logging import logger
from bogpay.common.metrics import gateway_request_duration_seconds, retries_total, token_fetch_total
from bogpay.services.auth.models import AccessToken

DEFAULT_TOKEN_LIFETIME_SECONDS = 300


def basic_credential(client_id: str, client_secret: str) -> str:
    """`Authorization` header value for the client-credentials grant."""

    raw = f"{client_id}:{client_secret}".encode("utf-8")
    return f"Basic {base64.b64encode(raw).decode('ascii')}"


class TokenProvider:
    """Owns the process-wide gateway bearer token."""

    def __init__(self, settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.settings = settings
        self.transport = transport
        self.service_name = settings.service_name
        self._token: AccessToken | None = None
        self._lock = asyncio.Lock()
        self._generation = 0
        self._last_error: AuthError | TransientNetworkError | None = None

    def _cached(self) -> AccessToken | None:
        token = self._token
        if token is not None and token.is_valid(skew_seconds=self.settings.token_expiry_skew_seconds):
            return token
        return None

    async def get_token(self) -> AccessToken:
        """Return a valid token, fetching one if the cache is empty or stale."""

        token = self._cached()
        if token is not None:
            return token
        generation = self._generation
        async with self._lock:
            token = self._cached()
            if token is not None:
                return token
            # A fetch finished while we waited and still left no token: share
            # its failure instead of starting another retry sequence.
            if self._generation != generation and self._last_error is not None:
                raise self._last_error
            self._last_error = None
            try:
                self._token = await self._fetch_with_retry()
            except (AuthError, TransientNetworkError) as exc:
                self._last_error = exc
                raise
            finally:
                self._generation += 1
            return self._token

    def invalidate(self, token: AccessToken | None = None) -> None:
        """Drop the cached token.

        With `token` given, only drop it if the cache still holds that token, so
        a late 401 cannot evict a fresher token fetched by another request.
        """

        if token is None or self._token == token:
            logger.info("token_invalidated")
            self._token = None

    async def _fetch_with_retry(self) -> AccessToken:
        max_attempts = self.settings.token_max_attempts
        last_error = "UNKNOWN"
        for attempt in range(1, max_attempts + 1):
            try:
                return await self._fetch()
            except TransientNetworkError as exc:
                last_error = str(exc)
                token_fetch_total.labels(service=self.service_name, outcome="transient").inc()
                if attempt == max_attempts:
                    break
                retries_total.labels(service=self.service_name, dependency="token").inc()
                # Exponential backoff: base, 2*base, 4*base...
                backoff_seconds = self.settings.token_backoff_seconds * 2 ** (attempt - 1)
                logger.warning(
                    "token fetch failed attempt=%s backoff_s=%s error=%s",
                    attempt,
                    backoff_seconds,
                    last_error,
                )
                await asyncio.sleep(backoff_seconds)
        raise TransientNetworkError(
            f"token endpoint unavailable after {max_attempts} attempts: {last_error}",
            step="token",
        )

    async def _fetch(self) -> AccessToken:
        """One round-trip to the OAuth endpoint."""

        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Authorization": basic_credential(self.settings.bog_client_id, self.settings.bog_client_secret),
        }
        started = time.perf_counter()
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.http_timeout_seconds,
                transport=self.transport,
            ) as client:
                resp = await client.post(
                    self.settings.bog_oauth_url,
                    headers=headers,
                    data={"grant_type": "client_credentials"},
                )
        except httpx.TimeoutException as exc:
            raise TransientNetworkError("token request timed out", step="token") from exc
        except httpx.TransportError as exc:
            raise TransientNetworkError(f"token request failed: {exc}", step="token") from exc
        finally:
            gateway_request_duration_seconds.labels(service=self.service_name, endpoint="token").observe(
                max(0.0, time.perf_counter() - started)
            )

        parsed = parse_body(resp)
        if resp.status_code >= 500:
            raise TransientNetworkError(
                f"token endpoint returned {resp.status_code}",
                step="token",
                http_status=resp.status_code,
            )
        if resp.status_code >= 400:
            token_fetch_total.labels(service=self.service_name, outcome="rejected").inc()
            logger.error("token request rejected status=%s", resp.status_code)
            raise AuthError(
                f"OAuth error: {resp.status_code}",
                step="token",
                http_status=resp.status_code,
                upstream_body=diagnostic(parsed),
            )

        body = parsed.body if isinstance(parsed, JsonBody) else None
        value = body.get("access_token") if isinstance(body, dict) else None
        if not isinstance(value, str) or not value:
            token_fetch_total.labels(service=self.service_name, outcome="rejected").inc()
            raise AuthError(
                "token response has no access_token",
                step="token",
                http_status=resp.status_code,
                upstream_body=diagnostic(parsed),
            )

        lifetime = body.get("expires_in")
        if not isinstance(lifetime, (int, float)) or isinstance(lifetime, bool) or lifetime <= 0:
            lifetime = DEFAULT_TOKEN_LIFETIME_SECONDS
        token_fetch_total.labels(service=self.service_name, outcome="ok").inc()
        logger.info("token fetched expires_in=%s", lifetime)
        return AccessToken(
            value=value,
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=lifetime),
        )
