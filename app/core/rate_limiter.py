"""In-memory token bucket rate limiting for chat turns."""

import threading
import time
from uuid import UUID

from app.core.logging import get_logger

logger = get_logger(__name__)


class RateLimitExceeded(Exception):
    """Raised when a key has no tokens left."""

    def __init__(self, retry_after: int):
        super().__init__(f"Rate limit exceeded. Try again in {retry_after} seconds.")
        self.retry_after = retry_after


class RateLimiter:
    """
    Simple token bucket rate limiter.

    Tracks requests per key (e.g., user id). State lives in process memory,
    so each worker process enforces its own budget.
    """

    def __init__(self, requests_per_minute: int = 10, burst_size: int = 15):
        """
        Initialize rate limiter.

        Args:
            requests_per_minute: Sustained rate limit
            burst_size: Maximum burst size
        """
        self.requests_per_minute = requests_per_minute
        self.burst_size = burst_size
        self.refill_rate = requests_per_minute / 60.0  # tokens per second

        # key -> (tokens, last_refill_time)
        self._buckets: dict[str, tuple[float, float]] = {}
        self._lock = threading.Lock()

    def _refill(self, key: str, now: float) -> float:
        tokens, last_refill = self._buckets.get(key, (float(self.burst_size), now))
        tokens = min(self.burst_size, tokens + (now - last_refill) * self.refill_rate)
        self._buckets[key] = (tokens, now)
        return tokens

    def check_limit(self, key: str, cost: float = 1.0) -> None:
        """
        Consume tokens for one request.

        Args:
            key: Rate limit key
            cost: Token cost for this request (default 1.0)

        Raises:
            RateLimitExceeded: If the bucket does not hold enough tokens
        """
        with self._lock:
            now = time.monotonic()
            tokens = self._refill(key, now)

            if tokens >= cost:
                self._buckets[key] = (tokens - cost, now)
                return

        retry_after = int((cost - tokens) / self.refill_rate) + 1
        logger.warning(
            f"Rate limit exceeded for key: {key}, "
            f"tokens: {tokens:.2f}/{self.burst_size}, "
            f"retry after: {retry_after}s"
        )
        raise RateLimitExceeded(retry_after)

    def reset(self, key: str | None = None) -> None:
        """Forget one key, or every key when none is given."""
        with self._lock:
            if key is None:
                self._buckets.clear()
            else:
                self._buckets.pop(key, None)


_chat_rate_limiter: RateLimiter | None = None


def get_chat_rate_limiter() -> RateLimiter:
    """Process-wide limiter for chat turns, sized from settings."""
    global _chat_rate_limiter
    if _chat_rate_limiter is None:
        from app.core.config import get_settings

        per_minute = get_settings().CHAT_REQUESTS_PER_MINUTE
        _chat_rate_limiter = RateLimiter(
            requests_per_minute=per_minute,
            burst_size=max(1, per_minute + per_minute // 2),
        )
    return _chat_rate_limiter


def check_chat_rate_limit(user_id: UUID) -> None:
    """
    Check rate limit for a user's chat turn.

    Raises:
        RateLimitExceeded: If the user is over budget
    """
    get_chat_rate_limiter().check_limit(f"chat:{user_id}")
