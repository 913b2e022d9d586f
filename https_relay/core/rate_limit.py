"""
Rate Limiting

This module provides the per-client admission gate of the relay.
Rate limiting protects the relay (and the upstream behind it) from abuse.

Design Decisions:
- Uses the "limits" library, the storage/strategy engine behind slowapi
- Fixed window per client: the first hit opens a window of RATE_LIMIT_DURATION
  seconds, hits beyond RATE_LIMIT_POINTS inside it are denied
- In-memory storage: per-key locking serializes hits of the same client,
  different clients never contend; expired windows are evicted lazily
- IP-based identity via slowapi's key function (X-Forwarded-For opt-in)
"""

from typing import Optional

from fastapi import Request
from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter
from slowapi.util import get_remote_address

from https_relay.core.exceptions import RateLimitedError
from https_relay.core.setting import settings


class RateLimiter:
    """
    Fixed-window admission counter keyed by client identity.

    Denial is a normal outcome, not a failure: `admit` answers a bool,
    `consume` raises RateLimitedError for callers that prefer exceptions.
    """

    def __init__(self, points: int = 60, duration: int = 60, storage: Optional[MemoryStorage] = None):
        if points < 1 or duration < 1:
            raise ValueError("points and duration must both be >= 1")
        self.points = points
        self.duration = duration
        self._storage = storage or MemoryStorage()
        self._strategy = FixedWindowRateLimiter(self._storage)
        self._item = RateLimitItemPerSecond(points, duration, namespace="relay")

    def admit(self, identity: str) -> bool:
        """Count one hit for identity and tell whether it is within the window quota."""
        return self._strategy.hit(self._item, identity)

    def consume(self, identity: str) -> None:
        if not self.admit(identity):
            raise RateLimitedError(identity)

    def remaining(self, identity: str) -> int:
        return self._strategy.get_window_stats(self._item, identity).remaining

    def reset(self) -> None:
        """Drop every window."""
        self._storage.reset()


def get_client_identity(request: Request, trust_forwarded_for: bool = False) -> str:
    """
    Extract the rate limiting key from a request.

    Args:
        request: FastAPI Request object
        trust_forwarded_for: Honour X-Forwarded-For; only safe behind a proxy
            that overwrites the header

    Returns:
        Client address as string
    """
    if trust_forwarded_for:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            # X-Forwarded-For can contain multiple IPs, take the first one
            return forwarded_for.split(",")[0].strip()

    return get_remote_address(request)


limiter = RateLimiter(
    points=settings.RATE_LIMIT_POINTS,
    duration=settings.RATE_LIMIT_DURATION,
)
