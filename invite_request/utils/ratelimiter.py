"""Rate limiter backends.

Fixed-window counters keyed by ``(client key, category)``. Two backends share
one interface:

    allowed, meta = await limiter.check_and_increment(
        key=client_host,
        category="apply",
        limit=5,
        window_seconds=60,
    )

``InMemoryRateLimiter`` keeps buckets in process memory and sweeps buckets
whose window has closed, so memory stays proportional to the number of
clients seen during one window. ``RedisRateLimiter`` uses one ``INCR``ed key
per window with an ``EXPIRE`` equal to the window length, which makes counters
shared across workers and lets Redis age them out.

Headers contract (mirrors common conventions):
    X-RateLimit-Limit: int total allowed in the window
    X-RateLimit-Remaining: int remaining
    X-RateLimit-Reset: epoch seconds when current window resets

Return semantics:
    check_and_increment -> (allowed: bool, meta: dict)
        meta = {
            'limit': int,
            'remaining': int,
            'reset_epoch': int,
            'window_start': int,
            'count': int,
            'category': str,
        }

Backend failures: ``RedisRateLimiter`` never raises ``redis.RedisError`` to the
caller. With ``fail_open=True`` the request is allowed, otherwise it is
throttled; ``meta['degraded']`` is set in both cases and the error is logged.
"""
from __future__ import annotations

import time
import asyncio
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Protocol, Tuple

import redis
import redis.asyncio as aioredis

from invite_request.utils.logger import get_logger

logger = get_logger(__name__)

Clock = Callable[[], float]


class RateLimiter(Protocol):
    async def check_and_increment(self, key: str, category: str, limit: int, window_seconds: int) -> Tuple[bool, dict]:
        ...

    async def close(self) -> None:
        ...


def _window_start(now: int, window_seconds: int) -> int:
    return now - (now % window_seconds)


def _meta(limit: int, count: int, window_start: int, window_seconds: int, category: str) -> dict:
    allowed = count <= limit
    return {
        "limit": limit,
        "remaining": max(0, limit - count) if allowed else 0,
        "reset_epoch": window_start + window_seconds,
        "window_start": window_start,
        "count": count,
        "category": category,
    }


@dataclass
class Bucket:
    window_start: int
    window_seconds: int
    count: int = 0
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def expired(self, now: int) -> bool:
        return now >= self.window_start + self.window_seconds


class InMemoryRateLimiter:
    # Sweep at most once per this many seconds.
    SWEEP_INTERVAL = 1

    def __init__(self, clock: Optional[Clock] = None):
        # (key, category) -> Bucket
        self._buckets: Dict[Tuple[str, str], Bucket] = {}
        self._global_lock = asyncio.Lock()
        self._clock = clock or time.time
        self._last_sweep = 0

    def _now(self) -> int:
        return int(self._clock())

    def __len__(self) -> int:
        return len(self._buckets)

    async def _sweep(self, now: int) -> None:
        if now - self._last_sweep < self.SWEEP_INTERVAL:
            return
        async with self._global_lock:
            stale = [k for k, b in self._buckets.items() if b.expired(now) and not b.lock.locked()]
            for k in stale:
                del self._buckets[k]
            self._last_sweep = now
        if stale:
            logger.debug("Swept expired rate limit buckets", removed=len(stale), remaining=len(self._buckets))

    async def check_and_increment(self, key: str, category: str, limit: int, window_seconds: int) -> Tuple[bool, dict]:
        now = self._now()
        window_start = _window_start(now, window_seconds)
        await self._sweep(now)

        bucket_key = (key, category)
        bucket = self._buckets.get(bucket_key)
        if bucket is None:
            async with self._global_lock:
                # Re-check inside lock
                bucket = self._buckets.get(bucket_key)
                if bucket is None:
                    bucket = Bucket(window_start=window_start, window_seconds=window_seconds)
                    self._buckets[bucket_key] = bucket

        async with bucket.lock:
            if bucket.window_start != window_start:
                bucket.window_start = window_start
                bucket.window_seconds = window_seconds
                bucket.count = 0
            bucket.count += 1
            meta = _meta(limit, bucket.count, bucket.window_start, window_seconds, category)
            return bucket.count <= limit, meta

    async def close(self) -> None:
        self._buckets.clear()


class RedisRateLimiter:
    KEY_PREFIX = "invite:ratelimit"

    def __init__(self, client: aioredis.Redis, *, fail_open: bool = True, clock: Optional[Clock] = None):
        self._redis = client
        self._fail_open = fail_open
        self._clock = clock or time.time

    @classmethod
    def from_url(cls, url: str, *, username: str | None = None, password: str | None = None, fail_open: bool = True) -> "RedisRateLimiter":
        client = aioredis.from_url(url, username=username, password=password, socket_connect_timeout=2.0, socket_timeout=2.0)
        return cls(client, fail_open=fail_open)

    def _key(self, key: str, category: str, window_start: int) -> str:
        return f"{self.KEY_PREFIX}:{category}:{key}:{window_start}"

    async def check_and_increment(self, key: str, category: str, limit: int, window_seconds: int) -> Tuple[bool, dict]:
        now = int(self._clock())
        window_start = _window_start(now, window_seconds)
        redis_key = self._key(key, category, window_start)
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.incr(redis_key)
                pipe.expire(redis_key, window_seconds)
                count, _ = await pipe.execute()
        except (redis.RedisError, OSError) as e:
            logger.error(
                "Rate limiter backend unavailable",
                category=category,
                fail_open=self._fail_open,
                error=str(e),
            )
            meta = _meta(limit, 0 if self._fail_open else limit + 1, window_start, window_seconds, category)
            meta["degraded"] = True
            return self._fail_open, meta

        count = int(count)
        return count <= limit, _meta(limit, count, window_start, window_seconds, category)

    async def close(self) -> None:
        await self._redis.aclose()


def create_rate_limiter(settings) -> RateLimiter:
    """Build the limiter selected by ``settings.rate_limit_backend``."""
    if settings.rate_limit_backend == "redis":
        logger.info("Using Redis rate limiter", url=settings.redis_url, fail_open=settings.rate_limit_fail_open)
        return RedisRateLimiter.from_url(
            settings.redis_url,
            username=settings.redis_username,
            password=settings.redis_password,
            fail_open=settings.rate_limit_fail_open,
        )
    logger.info("Using in-memory rate limiter")
    return InMemoryRateLimiter()


__all__ = ["RateLimiter", "InMemoryRateLimiter", "RedisRateLimiter", "create_rate_limiter"]
