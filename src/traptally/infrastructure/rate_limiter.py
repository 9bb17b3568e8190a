"""Token bucket shared by every Spotify catalog request in the process.

Hey future me - several playlist entries fetch at once during a sync run. Without
one shared bucket they would burn through Spotify's request allowance together.
Each request takes a token; a 429 empties the bucket and sleeps for Retry-After
(or a doubling backoff when Spotify sends none).
"""

import asyncio
import logging
import time
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimiterConfig:
    """Bucket shape and backoff limits.

    Spotify allows roughly 180 requests per rolling 30s window for a regular app,
    so the default is 2 req/sec sustained with bursts of 10. Retry-After can be
    several minutes, and a cap below it just earns another 429.
    """

    max_tokens: int = 10
    refill_rate: float = 2.0
    max_backoff_seconds: float = 600.0
    initial_backoff_seconds: float = 1.0
    backoff_multiplier: float = 2.0


class RateLimiter:
    """Token bucket with a backoff that grows on consecutive 429s."""

    def __init__(self, config: RateLimiterConfig | None = None, name: str = "default") -> None:
        self.config = config or RateLimiterConfig()
        self.name = name
        self._tokens = float(self.config.max_tokens)
        self._stamp = time.monotonic()
        self._backoff = self.config.initial_backoff_seconds
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = time.monotonic()
        self._tokens = min(
            float(self.config.max_tokens),
            self._tokens + (now - self._stamp) * self.config.refill_rate,
        )
        self._stamp = now

    @property
    def available_tokens(self) -> float:
        self._refill()
        return self._tokens

    async def acquire(self) -> None:
        """Take one token, sleeping until the bucket has one."""
        while True:
            async with self._lock:
                self._refill()
                if self._tokens >= 1.0:
                    self._tokens -= 1.0
                    return
                shortfall = 1.0 - self._tokens
            delay = shortfall / self.config.refill_rate
            logger.debug("RateLimiter[%s]: empty bucket, sleeping %.2fs", self.name, delay)
            await asyncio.sleep(delay)

    async def back_off(self, retry_after: int | None = None) -> float:
        """Sleep after a 429 and return how long we waited.

        Retry-After wins when present; both it and the backoff are capped at
        max_backoff_seconds. The next backoff step doubles either way.
        """
        async with self._lock:
            delay = float(retry_after) if retry_after is not None else self._backoff
            delay = min(delay, self.config.max_backoff_seconds)
            self._backoff = min(
                self._backoff * self.config.backoff_multiplier,
                self.config.max_backoff_seconds,
            )
            self._tokens = 0.0
        logger.warning(
            "RateLimiter[%s]: Spotify returned 429, pausing %.1fs", self.name, delay
        )
        await asyncio.sleep(delay)
        return delay

    def record_success(self) -> None:
        self._backoff = self.config.initial_backoff_seconds


_spotify_limiter: RateLimiter | None = None


def get_spotify_limiter() -> RateLimiter:
    """Process-wide limiter for the Spotify Web API."""
    global _spotify_limiter
    if _spotify_limiter is None:
        _spotify_limiter = RateLimiter(name="spotify")
    return _spotify_limiter
