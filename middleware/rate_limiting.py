"""
FastAPI Rate Limiting Middleware using Token Bucket Algorithm

This module provides a thread-safe rate limiting middleware for the
authentication endpoints. Each client identity gets its own token bucket
per rule; rules are applied in series and a request must pass all of them.
"""

import math
import time
import logging
import logfire

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple
from threading import Lock

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from middleware.error_handling import rate_limited_response
from security.errors import RateLimited


logger = logging.getLogger(__name__)

NANOS_PER_SECOND = 1_000_000_000

denied_counter = logfire.metric_counter(
    "rate_limit_denied",
    unit="1",
    description="Requests rejected by the rate limiter",
)


@dataclass(frozen=True)
class ConsumptionProbe:
    """Outcome of a consumption attempt."""

    allowed: bool
    remaining: int
    retry_after_seconds: int  # whole seconds until the bucket is full again
    reset_seconds: int


class TokenBucket:
    """
    Token Bucket implementation for rate limiting.

    The bucket holds at most `capacity` tokens and refills `capacity` tokens
    per `window_seconds`, continuously and in proportion to elapsed time.
    Each request consumes one token.
    """

    def __init__(
        self,
        capacity: int,
        window_seconds: float,
        clock: Callable[[], int] = time.monotonic_ns,
    ):
        """
        Initialize a full token bucket.

        Args:
            capacity: Maximum number of tokens the bucket can hold
            window_seconds: Time for an empty bucket to refill completely
            clock: Monotonic clock returning nanoseconds
        """
        if capacity <= 0 or window_seconds <= 0:
            raise ValueError("capacity and window_seconds must be positive")
        self.capacity = capacity
        self.window_seconds = window_seconds
        self.refill_per_nano = capacity / (window_seconds * NANOS_PER_SECOND)
        self._clock = clock
        self.tokens = float(capacity)
        self.last_refill = clock()
        self.last_used = self.last_refill
        self.lock = Lock()

    def _refill(self) -> None:
        """Add tokens for the time elapsed since the last refill, capped at capacity."""
        now = self._clock()
        elapsed = max(0, now - self.last_refill)
        self.tokens = min(float(self.capacity), self.tokens + elapsed * self.refill_per_nano)
        self.last_refill = now

    def _nanos_until_full(self) -> float:
        return (self.capacity - self.tokens) / self.refill_per_nano

    def try_consume(self, cost: int = 1) -> ConsumptionProbe:
        """
        Attempt to consume tokens from the bucket.

        Args:
            cost: Number of tokens to consume (default: 1)

        Returns:
            ConsumptionProbe describing the decision and the bucket state after it
        """
        with self.lock:
            self._refill()
            self.last_used = self.last_refill

            allowed = self.tokens >= cost
            if allowed:
                self.tokens -= cost

            # rounded first so float noise cannot add a whole second
            reset = math.ceil(round(self._nanos_until_full() / NANOS_PER_SECOND, 6))
            return ConsumptionProbe(
                allowed=allowed,
                remaining=int(self.tokens),
                retry_after_seconds=0 if allowed else max(1, reset),
                reset_seconds=reset,
            )

    def is_idle(self, idle_nanos: int) -> bool:
        """Full and untouched for at least `idle_nanos`."""
        with self.lock:
            self._refill()
            return self.tokens >= self.capacity and (self.last_refill - self.last_used) >= idle_nanos


class RateLimiter:
    """
    Registry of token buckets keyed by client identity.

    The registry lock guards lookup, creation and eviction. Consumption holds
    only the lock of the individual bucket.
    """

    def __init__(
        self,
        capacity: int,
        window_seconds: float,
        cleanup_interval: float = 3600,
        clock: Callable[[], int] = time.monotonic_ns,
    ):
        self.capacity = capacity
        self.window_seconds = window_seconds
        self.cleanup_interval_nanos = int(cleanup_interval * NANOS_PER_SECOND)
        self._clock = clock

        self.buckets: Dict[str, TokenBucket] = {}
        self.bucket_lock = Lock()
        self.last_cleanup = clock()

    def _get_or_create_bucket(self, key: str) -> TokenBucket:
        with self.bucket_lock:
            bucket = self.buckets.get(key)
            if bucket is None:
                bucket = TokenBucket(self.capacity, self.window_seconds, clock=self._clock)
                self.buckets[key] = bucket
                logger.debug(f"Created new token bucket for client: {key}")
            return bucket

    def try_consume(self, key: str, cost: int = 1) -> ConsumptionProbe:
        self._cleanup_idle_buckets()
        bucket = self._get_or_create_bucket(key)
        outcome = bucket.try_consume(cost)

        # an eviction may have run between lookup and consumption
        with self.bucket_lock:
            live = self.buckets.setdefault(key, bucket)
        if live is not bucket:
            outcome = live.try_consume(cost)
        return outcome

    def _cleanup_idle_buckets(self) -> None:
        """Remove buckets that are full and unused for a whole cleanup interval."""
        now = self._clock()
        if now - self.last_cleanup < self.cleanup_interval_nanos:
            return

        with self.bucket_lock:
            if now - self.last_cleanup < self.cleanup_interval_nanos:
                return
            to_remove = [
                key
                for key, bucket in list(self.buckets.items())
                if bucket.is_idle(self.cleanup_interval_nanos)
            ]
            for key in to_remove:
                del self.buckets[key]

            if to_remove:
                logger.info(f"Cleaned up {len(to_remove)} inactive token buckets")

            self.last_cleanup = now

    def __len__(self) -> int:
        return len(self.buckets)


@dataclass(frozen=True)
class RateLimitRule:
    """Applies a limiter to every path starting with one of `prefixes`."""

    name: str
    prefixes: Tuple[str, ...]
    limiter: RateLimiter
    message: str = "Too many requests. Please try again later."

    def matches(self, path: str) -> bool:
        return any(path.startswith(prefix) for prefix in self.prefixes)


def client_ip(request: Request) -> str:
    """
    Extract the client IP from the request.

    Uses the first X-Forwarded-For entry if present (proxied requests),
    otherwise the peer address.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    return request.client.host if request.client else "unknown"


def principal_subject(request: Request) -> str:
    """Key authenticated limits by user id, falling back to the client IP."""
    principal = getattr(request.state, "principal", None)
    if principal is not None:
        return f"user:{principal.subject}"
    return client_ip(request)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Rate limiting for FastAPI using per-client token buckets.

    Rules are evaluated in order; the first rule that denies the request
    produces the 429. Allowed responses carry the headers of the tightest
    matching rule.
    """

    def __init__(
        self,
        app: FastAPI,
        rules: Sequence[RateLimitRule],
        key_func: Callable[[Request], str] = client_ip,
    ):
        super().__init__(app)
        self.rules: List[RateLimitRule] = list(rules)
        self.key_func = key_func

        for rule in self.rules:
            logger.info(
                f"Rate limit rule '{rule.name}' on {', '.join(rule.prefixes)}: "
                f"{rule.limiter.capacity} requests per {rule.limiter.window_seconds}s"
            )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        matching = [rule for rule in self.rules if rule.matches(path)]
        if not matching:
            return await call_next(request)

        client_id = self.key_func(request)
        tightest: Optional[ConsumptionProbe] = None

        for rule in matching:
            probe = rule.limiter.try_consume(client_id)
            if not probe.allowed:
                logger.warning(f"Rate limit '{rule.name}' exceeded for {client_id} on {path}")
                denied_counter.add(1, {"rule": rule.name})
                return rate_limited_response(RateLimited(probe.retry_after_seconds, rule.message))
            if tightest is None or probe.remaining < tightest.remaining:
                tightest = probe

        logger.debug(f"Request allowed for {client_id} on {path} ({tightest.remaining} tokens remaining)")

        response = await call_next(request)
        response.headers["X-Rate-Limit-Remaining"] = str(tightest.remaining)
        response.headers["X-Rate-Limit-Reset"] = str(tightest.reset_seconds)
        return response
