"""Tests for the rate limiter's in-memory fallback."""

from uuid import uuid4

import pytest

from mosque_directory.core import rate_limit
from mosque_directory.core import redis as redis_module
from mosque_directory.core.rate_limit import (
    RateLimitExceeded,
    check_rate_limit,
    enforce_actor_rate_limit,
)


@pytest.fixture(autouse=True)
def no_redis(monkeypatch):
    monkeypatch.setattr(redis_module, "redis_client", None)


@pytest.mark.asyncio
async def test_allows_up_to_limit():
    results = [await check_rate_limit("test:key", 3, 60) for _ in range(4)]

    assert results == [True, True, True, False]


@pytest.mark.asyncio
async def test_keys_are_independent():
    assert await check_rate_limit("test:a", 1, 60)
    assert await check_rate_limit("test:b", 1, 60)
    assert not await check_rate_limit("test:a", 1, 60)


@pytest.mark.asyncio
async def test_window_expiry(monkeypatch):
    now = [1_000.0]
    monkeypatch.setattr(rate_limit.time, "time", lambda: now[0])

    assert await check_rate_limit("test:window", 1, 60)
    assert not await check_rate_limit("test:window", 1, 60)

    now[0] += 61
    assert await check_rate_limit("test:window", 1, 60)


@pytest.mark.asyncio
async def test_enforce_raises_429():
    actor_id = uuid4()
    await enforce_actor_rate_limit(actor_id, "approve", 1, 60)

    with pytest.raises(RateLimitExceeded) as exc_info:
        await enforce_actor_rate_limit(actor_id, "approve", 1, 60)

    assert exc_info.value.status_code == 429
    assert exc_info.value.detail["error"] == "RATE_LIMIT_EXCEEDED"
    assert exc_info.value.headers["Retry-After"] == "60"


@pytest.mark.asyncio
async def test_enforce_is_per_action():
    actor_id = uuid4()

    await enforce_actor_rate_limit(actor_id, "approve", 1, 60)
    await enforce_actor_rate_limit(actor_id, "reject", 1, 60)
