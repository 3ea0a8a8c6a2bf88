"""
In-memory cache for the short-lived iiko access token.
"""

import time
from collections.abc import Callable


class TokenCache:
    """Holds one bearer token and its expiry (epoch seconds)."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self.token: str | None = None
        self.expires_at: float = 0.0

    def get(self) -> str | None:
        """Return the cached token if it has not expired yet."""
        if self.token and self._clock() < self.expires_at:
            return self.token
        return None

    def set(self, token: str, ttl_seconds: float) -> None:
        self.token = token
        self.expires_at = self._clock() + ttl_seconds

    def clear(self) -> None:
        self.token = None
        self.expires_at = 0.0
