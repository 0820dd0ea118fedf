# app/middleware/rate_limit.py
"""
Fixed-window rate limiting keyed by client IP and path.

The counter store is pluggable: an in-process dict for a single instance, or
Redis when several instances must share counters. The store is built once in
the application lifespan and reached through ``request.app.state.rate_limiter``.
"""
import asyncio
import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from fastapi import Request
import redis.asyncio as aioredis

from app.core.config import settings
from app.core.exceptions import RateLimitError
from app.core.logging import logger
from app.core.security import get_client_ip


@dataclass
class RateLimitDecision:
    allowed: bool
    count: int
    retry_after: int = 0


class RateLimitStore(ABC):
    """Counts hits per key inside a fixed window"""

    @abstractmethod
    async def hit(self, key: str, window_seconds: int) -> Tuple[int, float]:
        """Record a hit; return (hits in the current window, seconds until it resets)"""

    async def sweep(self) -> int:
        """Evict stale windows; returns how many were dropped"""
        return 0

    async def close(self):
        pass


class InMemoryRateLimitStore(RateLimitStore):
    """Per-process counters. Not shared between instances."""

    def __init__(self, max_age_seconds: int = 300, clock=time.monotonic):
        self._windows: Dict[str, Tuple[int, float]] = {}
        self._lock = asyncio.Lock()
        self.max_age_seconds = max_age_seconds
        self.clock = clock

    async def hit(self, key: str, window_seconds: int) -> Tuple[int, float]:
        now = self.clock()
        async with self._lock:
            count, started = self._windows.get(key, (0, now))
            if now - started > window_seconds:
                count, started = 0, now
            count += 1
            self._windows[key] = (count, started)
        return count, window_seconds - (now - started)

    async def sweep(self) -> int:
        now = self.clock()
        async with self._lock:
            stale = [key for key, (_, started) in self._windows.items() if now - started > self.max_age_seconds]
            for key in stale:
                del self._windows[key]
        return len(stale)

    def __len__(self):
        return len(self._windows)


class RedisRateLimitStore(RateLimitStore):
    """Counters shared through Redis (INCR + EXPIRE)"""

    def __init__(self, url: str, prefix: str = "ratelimit"):
        self.redis = aioredis.from_url(url, decode_responses=True)
        self.prefix = prefix

    async def hit(self, key: str, window_seconds: int) -> Tuple[int, float]:
        redis_key = f"{self.prefix}:{key}"
        count = await self.redis.incr(redis_key)
        if count == 1:
            await self.redis.expire(redis_key, window_seconds)
        ttl = await self.redis.ttl(redis_key)
        if ttl < 0:
            # Key lost its expiry (INCR landed without the EXPIRE)
            await self.redis.expire(redis_key, window_seconds)
            ttl = window_seconds
        return int(count), float(ttl)

    async def close(self):
        await self.redis.aclose()


class RateLimiter:
    """Apply a request budget per (identifier, path)"""

    def __init__(self, store: RateLimitStore, max_requests: int, window_seconds: int):
        self.store = store
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._sweeper: Optional[asyncio.Task] = None

    async def check(self, identifier: str, path: str) -> RateLimitDecision:
        count, remaining = await self.store.hit(f"{identifier}:{path}", self.window_seconds)
        if count > self.max_requests:
            return RateLimitDecision(False, count, max(1, math.ceil(remaining)))
        return RateLimitDecision(True, count)

    def start_sweeper(self, interval_seconds: int):
        async def _run():
            while True:
                await asyncio.sleep(interval_seconds)
                try:
                    dropped = await self.store.sweep()
                    if dropped:
                        logger.debug(f"Rate limiter swept {dropped} stale windows")
                except Exception as e:
                    logger.error(f"Rate limiter sweep failed: {str(e)}")

        self._sweeper = asyncio.create_task(_run())

    async def shutdown(self):
        if self._sweeper is not None:
            self._sweeper.cancel()
            try:
                await self._sweeper
            except asyncio.CancelledError:
                pass
            self._sweeper = None
        await self.store.close()


def build_rate_limiter() -> RateLimiter:
    if settings.RATE_LIMIT_BACKEND == "redis":
        logger.info("Using Redis rate limit store")
        store: RateLimitStore = RedisRateLimitStore(settings.REDIS_URL)
    else:
        store = InMemoryRateLimitStore(max_age_seconds=settings.RATE_LIMIT_SWEEP_SECONDS)
    return RateLimiter(store, settings.RATE_LIMIT_REQUESTS, settings.RATE_LIMIT_WINDOW_SECONDS)


async def rate_limit(request: Request):
    """Router dependency enforcing the app-wide limiter, when one is configured"""
    limiter: Optional[RateLimiter] = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        return

    client_host = request.client.host if request.client else None
    identifier = get_client_ip(request.headers, client_host) or "unknown"
    decision = await limiter.check(identifier, request.url.path)
    if not decision.allowed:
        logger.warning(f"Rate limit exceeded for {identifier} on {request.url.path}")
        raise RateLimitError(payload={"retryAfter": decision.retry_after})
