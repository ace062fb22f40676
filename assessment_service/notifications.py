"""
notifications.py — Participant export sink
==========================================
Best-effort export of a participant snapshot to an external collector
(e.g. a spreadsheet web app) right after registration.

``send`` never raises: failures and timeouts are logged and dropped.
Routes schedule it as a background task so it runs after the response
has been sent.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from .config import settings
from .domain import ParticipantProgress

logger = logging.getLogger("assessment.notifications")


def participant_snapshot(progress: ParticipantProgress) -> dict:
    return {
        "id": progress.id,
        "name": progress.name,
        "email": progress.email,
        "phone": progress.phone,
        "createdAt": progress.created_at.isoformat() if progress.created_at else None,
    }


class NotificationSink(ABC):
    @abstractmethod
    def send(self, snapshot: dict) -> None:
        """Fire-and-forget delivery. Must not raise."""


class NullNotificationSink(NotificationSink):
    def send(self, snapshot: dict) -> None:
        logger.debug("Export not configured, skipping participant %s", snapshot.get("id"))


class WebhookNotificationSink(NotificationSink):
    """POST the snapshot as JSON, with the shared secret merged into the body."""

    def __init__(self, url: str, secret: str = "", timeout: float = 5.0) -> None:
        self.url = url
        self.secret = secret
        self.timeout = timeout

    def send(self, snapshot: dict) -> None:
        payload = dict(snapshot)
        if self.secret:
            payload["secret"] = self.secret
        try:
            with httpx.Client(timeout=self.timeout) as client:
                resp = client.post(self.url, json=payload)
            if resp.status_code >= 400:
                logger.warning(
                    "Participant export for %s returned %d: %s",
                    snapshot.get("id"), resp.status_code, resp.text[:200],
                )
            else:
                logger.info("Participant %s exported → %d", snapshot.get("id"), resp.status_code)
        except Exception as exc:
            logger.warning("Participant export for %s failed: %s", snapshot.get("id"), exc)


def build_sink(url: Optional[str] = None) -> NotificationSink:
    url = settings.export_url if url is None else url
    if not url:
        return NullNotificationSink()
    return WebhookNotificationSink(url, settings.export_secret, settings.export_timeout_seconds)
