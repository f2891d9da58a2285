"""Server-side session stores.

Sessions are JSON-serialisable dicts keyed by an opaque token. The token is the
only thing the browser holds (see ``session.middleware``).

Backends:
 - ``RedisSessionStore``: ``SET key value EX ttl`` per session; Redis does the
   expiry. Used in production so every worker sees the same sessions.
 - ``MemorySessionStore``: process-local dict with lazy expiry. Used for tests
   and as the fallback when Redis cannot be reached at startup.
"""
from __future__ import annotations

import asyncio
import json
import time
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

import redis
import redis.asyncio as aioredis

from invite_request.utils.logger import get_logger

logger = get_logger(__name__)

SessionData = Dict[str, Any]


class SessionStore(Protocol):
    async def load(self, token: str) -> Optional[SessionData]:
        ...

    async def save(self, token: str, data: SessionData, ttl_seconds: int) -> None:
        ...

    async def delete(self, token: str) -> None:
        ...

    async def close(self) -> None:
        ...


class MemorySessionStore:
    def __init__(self, clock: Optional[Callable[[], float]] = None):
        # token -> (expires_at, serialized data)
        self._sessions: Dict[str, Tuple[float, str]] = {}
        self._lock = asyncio.Lock()
        self._clock = clock or time.time

    def __len__(self) -> int:
        return len(self._sessions)

    def _purge_expired(self, now: float) -> None:
        stale = [t for t, (expires_at, _) in self._sessions.items() if expires_at <= now]
        for t in stale:
            del self._sessions[t]

    async def load(self, token: str) -> Optional[SessionData]:
        async with self._lock:
            entry = self._sessions.get(token)
            if entry is None:
                return None
            expires_at, raw = entry
            if expires_at <= self._clock():
                del self._sessions[token]
                return None
            return json.loads(raw)

    async def save(self, token: str, data: SessionData, ttl_seconds: int) -> None:
        async with self._lock:
            now = self._clock()
            self._purge_expired(now)
            self._sessions[token] = (now + ttl_seconds, json.dumps(data))

    async def delete(self, token: str) -> None:
        async with self._lock:
            self._sessions.pop(token, None)

    async def close(self) -> None:
        async with self._lock:
            self._sessions.clear()


class RedisSessionStore:
    KEY_PREFIX = "invite:sess"

    def __init__(self, client: aioredis.Redis):
        self._redis = client

    @classmethod
    def from_url(cls, url: str, *, username: str | None = None, password: str | None = None) -> "RedisSessionStore":
        client = aioredis.from_url(url, username=username, password=password, socket_connect_timeout=2.0, socket_timeout=2.0)
        return cls(client)

    def _key(self, token: str) -> str:
        return f"{self.KEY_PREFIX}:{token}"

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except (redis.RedisError, OSError) as e:
            logger.warning("Redis session store ping failed", error=str(e))
            return False

    async def load(self, token: str) -> Optional[SessionData]:
        raw = await self._redis.get(self._key(token))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable session payload", token_prefix=token[:8])
            return None

    async def save(self, token: str, data: SessionData, ttl_seconds: int) -> None:
        await self._redis.set(self._key(token), json.dumps(data), ex=ttl_seconds)

    async def delete(self, token: str) -> None:
        await self._redis.delete(self._key(token))

    async def close(self) -> None:
        await self._redis.aclose()


async def create_session_store(settings) -> SessionStore:
    """Build the store selected by ``settings.session_backend``.

    A Redis store that does not answer ``PING`` at startup is replaced by the
    in-memory store; sessions then live only as long as this process.
    """
    if settings.session_backend == "memory":
        logger.info("Using in-memory session store")
        return MemorySessionStore()

    store = RedisSessionStore.from_url(
        settings.redis_url,
        username=settings.redis_username,
        password=settings.redis_password,
    )
    if await store.ping():
        logger.info("Connected to Redis session store", url=settings.redis_url)
        return store

    logger.warning(
        "Redis session store is unavailable. Using in-memory session store as fallback.",
        url=settings.redis_url,
    )
    await store.close()
    return MemorySessionStore()


__all__ = ["SessionStore", "MemorySessionStore", "RedisSessionStore", "create_session_store"]
