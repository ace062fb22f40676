from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Response, status

from ..catalog import SqlQuestionCatalog
from ..config import settings
from ..domain import NewParticipant
from ..notifications import NotificationSink, participant_snapshot
from ..rate_limit import rate_limited
from ..schemas import (
    ParticipantEnvelope,
    ParticipantStatus,
    QuestionRead,
    RegistrationRequest,
    RegistrationResponse,
    SuccessResponse,
)
from ..store import ParticipantStore
from ..validation import validate_email, validate_name, validate_phone
from .dependencies import get_catalog, get_sink, get_store, participant_token

router = APIRouter(prefix="/participants", tags=["participants"])

logger = logging.getLogger("assessment.participants")


@router.post(
    "",
    response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limited("register"))],
)
def register_participant(
    body: RegistrationRequest,
    response: Response,
    background_tasks: BackgroundTasks,
    store: ParticipantStore = Depends(get_store),
    catalog: SqlQuestionCatalog = Depends(get_catalog),
    sink: NotificationSink = Depends(get_sink),
) -> RegistrationResponse:
    """Register a participant, start their session and return the ordered questions.

    The export sink runs as a background task once the response is sent;
    its failures never reach the client.
    """
    fields = NewParticipant(
        name=validate_name(body.name),
        email=validate_email(body.email),
        phone=validate_phone(body.phone),
    )
    progress = store.create(fields)
    questions = catalog.list()

    response.set_cookie(
        settings.cookie_name,
        progress.id,
        max_age=settings.cookie_max_age_seconds,
        path="/",
        httponly=True,
        samesite="strict",
        secure=settings.cookie_secure,
    )
    background_tasks.add_task(sink.send, participant_snapshot(progress))
    logger.info("Registered participant %s", progress.id)

    return RegistrationResponse(
        participant=ParticipantStatus.from_progress(progress),
        questions=[QuestionRead.from_question(q) for q in questions],
    )


@router.get(
    "/me",
    response_model=ParticipantEnvelope,
    dependencies=[Depends(rate_limited("participant"))],
)
def get_current_participant(
    participant_id: Optional[str] = Depends(participant_token),
    store: ParticipantStore = Depends(get_store),
) -> ParticipantEnvelope:
    """Return the session's participant status, or ``participant: null`` without a session."""
    if participant_id is None:
        return ParticipantEnvelope(participant=None)
    return ParticipantEnvelope(participant=ParticipantStatus.from_progress(store.get(participant_id)))


@router.delete(
    "/me",
    response_model=SuccessResponse,
    dependencies=[Depends(rate_limited("participant"))],
)
def clear_session(response: Response) -> SuccessResponse:
    """Forget the session cookie. Stored progress is left untouched."""
    response.delete_cookie(
        settings.cookie_name,
        path="/",
        httponly=True,
        samesite="strict",
        secure=settings.cookie_secure,
    )
    return SuccessResponse()
