"""Bearer token holder for a carrier client.

Each client instance owns one session. Tokens are reused until one day
before the carrier's ten-day expiry, then fetched again.
"""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

TOKEN_LIFETIME = timedelta(days=10)
REFRESH_MARGIN = timedelta(days=1)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TokenSession:
    def __init__(
        self,
        clock: Callable[[], datetime] = _utcnow,
        lifetime: timedelta = TOKEN_LIFETIME,
        refresh_margin: timedelta = REFRESH_MARGIN,
    ):
        self._clock = clock
        self._lifetime = lifetime
        self._refresh_margin = refresh_margin
        self.token: str | None = None
        self.expires_at: datetime | None = None

    @property
    def is_valid(self) -> bool:
        if not self.token or self.expires_at is None:
            return False
        return self._clock() < self.expires_at - self._refresh_margin

    def get_or_refresh(self, authenticate: Callable[[], str]) -> str:
        """Return the cached token, calling ``authenticate`` when it is absent or due."""
        if not self.is_valid:
            self.store(authenticate())
        return self.token

    def store(self, token: str) -> None:
        self.token = token
        self.expires_at = self._clock() + self._lifetime

    def invalidate(self) -> None:
        self.token = None
        self.expires_at = None
