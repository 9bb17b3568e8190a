"""Tests for the token bucket rate limiter."""

import pytest

from traptally.infrastructure.rate_limiter import (
    RateLimiter,
    RateLimiterConfig,
    get_spotify_limiter,
)


class TestRateLimiter:
    async def test_acquire_takes_a_token(self):
        limiter = RateLimiter(RateLimiterConfig(max_tokens=5, refill_rate=0.001))

        await limiter.acquire()

        assert limiter.available_tokens == pytest.approx(4, abs=0.01)

    async def test_429_with_retry_after_waits_that_long(self, mocker):
        sleep = mocker.patch(
            "traptally.infrastructure.rate_limiter.asyncio.sleep", return_value=None
        )
        limiter = RateLimiter(RateLimiterConfig(max_tokens=5))

        waited = await limiter.back_off(retry_after=7)

        assert waited == 7.0
        sleep.assert_awaited_once_with(7.0)
        assert limiter.available_tokens < 1

    async def test_backoff_grows_without_retry_after(self, mocker):
        mocker.patch("traptally.infrastructure.rate_limiter.asyncio.sleep", return_value=None)
        limiter = RateLimiter(
            RateLimiterConfig(
                initial_backoff_seconds=1.0, backoff_multiplier=2.0, max_backoff_seconds=3.0
            )
        )

        waits = [await limiter.back_off() for _ in range(4)]

        assert waits == [1.0, 2.0, 3.0, 3.0]

    async def test_success_resets_backoff(self, mocker):
        mocker.patch("traptally.infrastructure.rate_limiter.asyncio.sleep", return_value=None)
        limiter = RateLimiter(RateLimiterConfig(initial_backoff_seconds=1.0))
        await limiter.back_off()
        await limiter.back_off()

        limiter.record_success()

        assert await limiter.back_off() == 1.0

    async def test_retry_after_is_capped(self, mocker):
        mocker.patch("traptally.infrastructure.rate_limiter.asyncio.sleep", return_value=None)
        limiter = RateLimiter(RateLimiterConfig(max_backoff_seconds=10.0))

        assert await limiter.back_off(retry_after=3600) == 10.0

    def test_spotify_limiter_is_shared(self):
        assert get_spotify_limiter() is get_spotify_limiter()
        assert get_spotify_limiter().name == "spotify"
