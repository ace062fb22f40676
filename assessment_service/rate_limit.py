"""
rate_limit.py — Fixed-window request rate limiting
===================================================
Protects the mutating endpoints (registration, answers, participant
status) with a per-client fixed-window counter.

A window opens on the first request for a key and lasts ``window_ms``;
the counter restarts once ``now >= window_reset_at``. Windows are not
aligned or sliding, so a client can land up to 2x the quota in a short
span straddling a boundary.

Keys are ``<endpoint class>:<address>-<user agent>``: each endpoint
class counts independently, and clients sharing an address and agent
string share a quota.

Limits use the same grammar slowapi does ("30/minute",
"5 per 5 minutes"), parsed with the ``limits`` package.
"""
from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict

from fastapi import Request, Response
from limits import parse as parse_limit
from slowapi.util import get_remote_address

from .config import settings
from .errors import RateLimited

logger = logging.getLogger("assessment.rate_limit")


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    window_reset_at: int  # epoch milliseconds


@dataclass
class _Counter:
    count: int
    window_reset_at: int


class RateLimiter:
    """In-memory fixed-window counters, one per client key, behind one lock."""

    def __init__(self, clock: Callable[[], int] = _now_ms) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._counters: Dict[str, _Counter] = {}

    def now(self) -> int:
        return self._clock()

    def check(self, client_key: str, window_ms: int, max_requests: int) -> RateLimitDecision:
        now = self._clock()
        with self._lock:
            counter = self._counters.get(client_key)
            if counter is None or now >= counter.window_reset_at:
                counter = _Counter(count=1, window_reset_at=now + window_ms)
                self._counters[client_key] = counter
                return RateLimitDecision(True, max_requests - 1, counter.window_reset_at)

            if counter.count >= max_requests:
                return RateLimitDecision(False, 0, counter.window_reset_at)

            counter.count += 1
            return RateLimitDecision(True, max_requests - counter.count, counter.window_reset_at)

    def sweep(self) -> int:
        """Drop every counter whose window has expired. Returns how many went."""
        now = self._clock()
        with self._lock:
            expired = [k for k, c in self._counters.items() if now >= c.window_reset_at]
            for key in expired:
                del self._counters[key]
        return len(expired)

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()

    def __contains__(self, client_key: str) -> bool:
        with self._lock:
            return client_key in self._counters

    def __len__(self) -> int:
        with self._lock:
            return len(self._counters)


# Module-level singleton shared by every rate-limited route
limiter = RateLimiter()


# ---------------------------------------------------------------------------
# Endpoint classes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EndpointLimit:
    endpoint: str
    max_requests: int
    window_ms: int


def _limit_strings() -> Dict[str, str]:
    return {
        "register": settings.register_rate_limit,
        "answer": settings.answer_rate_limit,
        "participant": settings.participant_rate_limit,
    }


def endpoint_limit(endpoint: str) -> EndpointLimit:
    """Quota for an endpoint class, read from settings on every call."""
    item = parse_limit(_limit_strings()[endpoint])
    return EndpointLimit(endpoint, item.amount, item.get_expiry() * 1000)


def client_identity(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for", "")
    address = forwarded.split(",")[0].strip() or request.headers.get("x-real-ip", "").strip()
    if not address:
        address = get_remote_address(request) or "unknown"
    agent = request.headers.get("user-agent") or "unknown"
    return f"{address}-{agent}"


def rate_limited(endpoint: str) -> Callable[[Request, Response], None]:
    """FastAPI dependency: count the request, add X-RateLimit-* headers or raise RateLimited."""
    endpoint_limit(endpoint)  # unknown class fails at import time, not per request

    def dependency(request: Request, response: Response) -> None:
        limit = endpoint_limit(endpoint)
        key = f"{endpoint}:{client_identity(request)}"
        decision = limiter.check(key, limit.window_ms, limit.max_requests)
        if not decision.allowed:
            logger.warning("Rate limit exceeded for %s on %s", key, request.url.path)
            raise RateLimited(decision, limit.max_requests, limiter.now())
        response.headers["X-RateLimit-Limit"] = str(limit.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
        response.headers["X-RateLimit-Reset"] = str(decision.window_reset_at)

    return dependency


# ---------------------------------------------------------------------------
# Periodic sweep
# ---------------------------------------------------------------------------

async def sweep_forever(rate_limiter: RateLimiter, period_seconds: float) -> None:
    """Sweep expired counters on a fixed period, independent of traffic."""
    while True:
        await asyncio.sleep(period_seconds)
        removed = rate_limiter.sweep()
        if removed:
            logger.debug("Rate limiter sweep removed %d expired counters", removed)
