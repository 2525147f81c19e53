"""Bearer token issued by the gateway's OAuth endpoint."""

from datetime import datetime, timedelta, timezone

from pydantic import BaseModel, ConfigDict


class AccessToken(BaseModel):
    """Immutable token value plus the instant it stops being usable."""

    model_config = ConfigDict(frozen=True)

    value: str
    expires_at: datetime

    def is_valid(self, now: datetime | None = None, skew_seconds: int = 0) -> bool:
        now = now or datetime.now(timezone.utc)
        return now < self.expires_at - timedelta(seconds=skew_seconds)
