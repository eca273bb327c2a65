"""
Sliding window rate limiting middleware.

Two interchangeable counter stores are provided:

- ``InMemorySlidingWindowRateLimiter``: per-process state, the default for a
  single instance deployment.
- ``SlidingWindowRateLimiter``: Redis sorted sets, shared by every instance.

Both expose ``check(key, max_requests, window_seconds) -> RateLimitResult``.
"""

import asyncio
import hashlib
import logging
import math
import re
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, List, Protocol

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
import redis.asyncio as redis
from redis.asyncio import Redis
from redis.exceptions import RedisError

from core.exceptions import RateLimitExceeded
from core.middleware.error_handling import app_error_response

logger = logging.getLogger(__name__)


class RateLimitStrategy(str, Enum):
    """What identifies a caller."""
    IP_ADDRESS = "ip"
    USER_ID = "user"


@dataclass
class RateLimitRule:
    """Rate limit rule configuration."""
    name: str
    strategy: RateLimitStrategy
    max_requests: int
    window_seconds: int
    path_pattern: Optional[str] = None  # regex matched against the request path
    methods: Optional[List[str]] = None
    message: str = "Too many requests. Please try again later."
    _compiled: Optional[re.Pattern] = field(default=None, init=False, repr=False)

    def __post_init__(self):
        if self.path_pattern:
            self._compiled = re.compile(self.path_pattern)

    def matches(self, method: str, path: str) -> bool:
        if self.methods and method.upper() not in self.methods:
            return False
        if self._compiled is not None and not self._compiled.match(path):
            return False
        return True


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_seconds: int
    retry_after: int = 0


class RateLimiter(Protocol):
    async def check(self, key: str, max_requests: int, window_seconds: int) -> RateLimitResult:
        ...


def _seconds_until(timestamp: float, now: float) -> int:
    return max(0, math.ceil(timestamp - now))


class InMemorySlidingWindowRateLimiter:
    """
    Sliding log limiter held in process memory.

    Each key keeps the timestamps of its accepted requests inside the window.
    All reads and writes happen under one ``asyncio.Lock`` so concurrent
    requests for the same key never lose updates. A background task drops
    keys whose timestamps have all expired.
    """

    def __init__(self, prune_interval_seconds: Optional[float] = None):
        self._entries: dict[str, tuple[int, deque[float]]] = {}
        self._lock = asyncio.Lock()
        self._prune_interval = prune_interval_seconds
        self._prune_task: Optional[asyncio.Task] = None

    async def check(self, key: str, max_requests: int, window_seconds: int) -> RateLimitResult:
        now = time.monotonic()
        async with self._lock:
            _, timestamps = self._entries.setdefault(key, (window_seconds, deque()))
            self._drop_expired(timestamps, window_seconds, now)

            if len(timestamps) >= max_requests:
                retry_after = _seconds_until(timestamps[0] + window_seconds, now)
                return RateLimitResult(
                    allowed=False,
                    limit=max_requests,
                    remaining=0,
                    reset_seconds=retry_after,
                    retry_after=retry_after,
                )

            timestamps.append(now)
            return RateLimitResult(
                allowed=True,
                limit=max_requests,
                remaining=max(0, max_requests - len(timestamps)),
                reset_seconds=_seconds_until(timestamps[0] + window_seconds, now),
            )

    @staticmethod
    def _drop_expired(timestamps: deque[float], window_seconds: int, now: float) -> None:
        while timestamps and now - timestamps[0] >= window_seconds:
            timestamps.popleft()

    async def prune(self) -> int:
        """Remove keys with no requests left in their window. Returns how many."""
        now = time.monotonic()
        async with self._lock:
            stale = []
            for key, (window_seconds, timestamps) in self._entries.items():
                self._drop_expired(timestamps, window_seconds, now)
                if not timestamps:
                    stale.append(key)
            for key in stale:
                del self._entries[key]
        return len(stale)

    def start(self, longest_window_seconds: int = 60) -> None:
        """Start the background prune loop (app startup)."""
        if self._prune_task is None or self._prune_task.done():
            interval = self._prune_interval or max(2 * longest_window_seconds, 60)
            self._prune_task = asyncio.create_task(self._prune_loop(interval))

    async def _prune_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            removed = await self.prune()
            if removed:
                logger.debug(f"Pruned {removed} idle rate limit keys")

    async def close(self) -> None:
        """Stop the prune loop (app shutdown)."""
        if self._prune_task is not None:
            self._prune_task.cancel()
            try:
                await self._prune_task
            except asyncio.CancelledError:
                pass
            self._prune_task = None

    def clear(self) -> None:
        self._entries.clear()


class SlidingWindowRateLimiter:
    """
    Redis-based sliding window rate limiter.

    Uses one sorted set per key with request timestamps as scores. Fails open
    when Redis is unavailable.
    """

    def __init__(self, redis_client: Redis):
        self.redis = redis_client

    @classmethod
    def from_url(cls, redis_url: str) -> "SlidingWindowRateLimiter":
        client = redis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_keepalive=True,
            health_check_interval=30,
        )
        return cls(client)

    async def check(self, key: str, max_requests: int, window_seconds: int) -> RateLimitResult:
        now = time.time()
        window_start = now - window_seconds

        try:
            pipe = self.redis.pipeline()
            pipe.zremrangebyscore(key, 0, window_start)
            pipe.zcard(key)
            request_id = f"{now}:{hashlib.md5(str(now).encode()).hexdigest()[:8]}"
            pipe.zadd(key, {request_id: now})
            pipe.expire(key, window_seconds + 60)
            results = await pipe.execute()

            # Count before this request was added
            current_count = results[1]
            oldest = await self.redis.zrange(key, 0, 0, withscores=True)
            oldest_timestamp = oldest[0][1] if oldest else now
            reset_seconds = _seconds_until(oldest_timestamp + window_seconds, now)

            if current_count >= max_requests:
                await self.redis.zrem(key, request_id)
                return RateLimitResult(
                    allowed=False,
                    limit=max_requests,
                    remaining=0,
                    reset_seconds=reset_seconds,
                    retry_after=reset_seconds,
                )

            return RateLimitResult(
                allowed=True,
                limit=max_requests,
                remaining=max(0, max_requests - current_count - 1),
                reset_seconds=reset_seconds,
            )

        except RedisError as e:
            logger.error(f"Redis error in rate limiter, allowing request: {e}")
            return RateLimitResult(
                allowed=True,
                limit=max_requests,
                remaining=max_requests,
                reset_seconds=window_seconds,
            )

    async def close(self) -> None:
        await self.redis.aclose()
        logger.info("Rate limiter closed")


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Applies the first matching ``RateLimitRule`` to each request.

    Responses of limited routes carry ``X-RateLimit-Limit``,
    ``X-RateLimit-Remaining`` and ``X-RateLimit-Reset`` (seconds); rejected
    requests get 429 plus ``Retry-After``.
    """

    def __init__(
        self,
        app: ASGIApp,
        limiter: RateLimiter,
        rules: List[RateLimitRule],
        key_prefix: str = "ratelimit",
    ):
        """
        Initialize rate limiting middleware.

        Args:
            app: The ASGI application
            limiter: Counter store (in-memory or Redis)
            rules: Rules to apply; requests matching none are not limited
            key_prefix: Prefix for counter keys
        """
        super().__init__(app)
        self.limiter = limiter
        self.rules = rules
        self.key_prefix = key_prefix

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rule = self._get_applicable_rule(request)
        if rule is None:
            return await call_next(request)

        key = self._generate_key(request, rule)
        result = await self.limiter.check(key, rule.max_requests, rule.window_seconds)

        if not result.allowed:
            logger.warning(f"Rate limit exceeded for rule '{rule.name}' on {request.url.path}")
            exc = RateLimitExceeded(rule.message, details={'retry_after': result.retry_after})
            response = app_error_response(exc, request.url.path, request.method)
            self._add_rate_limit_headers(response, result)
            return response

        response = await call_next(request)
        self._add_rate_limit_headers(response, result)
        return response

    def _get_applicable_rule(self, request: Request) -> Optional[RateLimitRule]:
        for rule in self.rules:
            if rule.matches(request.method, request.url.path):
                return rule
        return None

    def _generate_key(self, request: Request, rule: RateLimitRule) -> str:
        if rule.strategy == RateLimitStrategy.USER_ID:
            user_id = self._get_user_id(request)
            # Unauthenticated callers are rejected by the route; count them by IP
            identity = user_id if user_id else f"ip:{self._get_client_ip(request)}"
        else:
            identity = self._get_client_ip(request)
        return ":".join([self.key_prefix, rule.name, rule.strategy.value, identity])

    def _get_client_ip(self, request: Request) -> str:
        forwarded_for = request.headers.get('x-forwarded-for')
        if forwarded_for:
            first_ip = forwarded_for.split(',')[0].strip()
            if first_ip:
                return first_ip

        real_ip = request.headers.get('x-real-ip')
        if real_ip:
            return real_ip

        return request.client.host if request.client else '0.0.0.0'

    def _get_user_id(self, request: Request) -> Optional[str]:
        session = request.scope.get('auth')
        return session.user_id if session is not None else None

    def _add_rate_limit_headers(self, response: Response, result: RateLimitResult):
        response.headers['X-RateLimit-Limit'] = str(result.limit)
        response.headers['X-RateLimit-Remaining'] = str(result.remaining)
        response.headers['X-RateLimit-Reset'] = str(result.reset_seconds)

        if not result.allowed:
            response.headers['Retry-After'] = str(result.retry_after)
