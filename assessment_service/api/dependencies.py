from __future__ import annotations

from functools import lru_cache
from typing import Optional

from fastapi import Cookie

from ..catalog import SqlQuestionCatalog
from ..config import settings
from ..notifications import NotificationSink, build_sink
from ..progress import ProgressEngine
from ..store import ParticipantStore, SqlParticipantStore
from ..validation import is_valid_participant_token


# ---------------------------------------------------------------------------
# Collaborators (overridable via app.dependency_overrides in tests)
# ---------------------------------------------------------------------------

@lru_cache
def get_store() -> ParticipantStore:
    return SqlParticipantStore()


@lru_cache
def get_catalog() -> SqlQuestionCatalog:
    return SqlQuestionCatalog()


@lru_cache
def get_engine() -> ProgressEngine:
    return ProgressEngine(get_store(), get_catalog())


@lru_cache
def get_sink() -> NotificationSink:
    return build_sink()


# ---------------------------------------------------------------------------
# Participant session token
# ---------------------------------------------------------------------------

def participant_token(
    token: Optional[str] = Cookie(default=None, alias=settings.cookie_name),
) -> Optional[str]:
    """The participant id from the session cookie, or None if absent/malformed."""
    if not is_valid_participant_token(token):
        return None
    return token
