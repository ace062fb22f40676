"""
errors.py — Error taxonomy for the assessment service
======================================================
Routes and the progress engine raise these; handlers registered in
main.py turn them into JSON responses. Only ``message`` ever reaches
the client; ``Fatal`` always answers with an opaque body.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .rate_limit import RateLimitDecision


class AssessmentError(Exception):
    """Base class. ``status_code`` is the HTTP status used by the handler."""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class InvalidInput(AssessmentError):
    status_code = 400
    message = "Invalid request body"


class NotFound(AssessmentError):
    status_code = 404
    message = "Not found"


class WriteConflict(AssessmentError):
    """Concurrent update detected by the store. Retried by the engine."""

    status_code = 409
    message = "Concurrent update"


class Fatal(AssessmentError):
    """Store unreachable or corrupted. Detail is logged, never returned."""

    status_code = 500
    message = "Internal server error"

    def __init__(self, detail: Optional[str] = None) -> None:
        super().__init__()
        self.detail = detail or self.message

    def __str__(self) -> str:
        return self.detail


class DataCorruption(Fatal):
    """A persisted value is outside its domain (e.g. unknown step)."""


class RateLimited(AssessmentError):
    status_code = 429
    message = "Too many requests. Please try again later."

    def __init__(self, decision: "RateLimitDecision", limit: int, now_ms: int) -> None:
        super().__init__()
        self.decision = decision
        self.limit = limit
        self.now_ms = now_ms

    @property
    def retry_after_seconds(self) -> int:
        remaining_ms = max(self.decision.window_reset_at - self.now_ms, 0)
        # Whole seconds, rounded up
        return -(-remaining_ms // 1000)

    def body(self) -> dict:
        reset_at = self.decision.window_reset_at
        return {
            "error": self.message,
            "rateLimit": {
                "retryAfter": self.retry_after_seconds,
                "resetTime": reset_at,
                "resetDate": datetime.fromtimestamp(reset_at / 1000, tz=timezone.utc).isoformat(),
                "limit": self.limit,
                "remaining": self.decision.remaining,
            },
        }

    def headers(self) -> dict:
        return {
            "Retry-After": str(self.retry_after_seconds),
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.decision.remaining),
            "X-RateLimit-Reset": str(self.decision.window_reset_at),
        }
