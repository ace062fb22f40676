"""
routes_pages.py — Page-level entry points
=========================================
Each page knows which view it serves and redirects (303) everyone else
to the page matching their persisted step:

  /            → not started (registration)
  /test/start  → in progress, resumes at the first unanswered question
  /result      → completed

Rendering is the client's job; these return the data a page needs.
"""
from __future__ import annotations

from typing import Optional, Union

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from ..catalog import SqlQuestionCatalog
from ..domain import ParticipantProgress, QuestionKind
from ..errors import NotFound
from ..flow import SessionView, decide, resume_view
from ..schemas import PartRead, QuestionRead, ResultPageRead, StartPageRead
from ..store import ParticipantStore
from .dependencies import get_catalog, get_store, participant_token

router = APIRouter(tags=["pages"])

LANDING_URL = "/"
TEST_URL = "/test/start"
RESULT_URL = "/result"


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=303)


def _load_participant(participant_id: Optional[str], store: ParticipantStore) -> Optional[ParticipantProgress]:
    if participant_id is None:
        return None
    try:
        return store.get(participant_id)
    except NotFound:
        return None


@router.get("/", response_model=None)
def landing_page(
    participant_id: Optional[str] = Depends(participant_token),
    store: ParticipantStore = Depends(get_store),
) -> Union[dict, RedirectResponse]:
    progress = _load_participant(participant_id, store)
    if progress is None:
        return {"view": "register", "registered": False}
    view = decide(progress.current_step)
    if view == SessionView.ACTIVE:
        return _redirect(TEST_URL)
    if view == SessionView.COMPLETED:
        return _redirect(RESULT_URL)
    return {"view": "register", "registered": True}


@router.get("/test/start", response_model=None)
def test_page(
    participant_id: Optional[str] = Depends(participant_token),
    store: ParticipantStore = Depends(get_store),
    catalog: SqlQuestionCatalog = Depends(get_catalog),
) -> Union[StartPageRead, RedirectResponse]:
    progress = _load_participant(participant_id, store)
    if progress is None:
        return _redirect(LANDING_URL)

    questions = catalog.list()
    view, start_index = resume_view(progress.current_step, progress.answers, questions)
    if view == SessionView.COMPLETED:
        return _redirect(RESULT_URL)

    return StartPageRead(
        start_index=start_index or 0,
        questions=[QuestionRead.from_question(q) for q in questions],
        listening_parts=[PartRead.from_part(p) for p in catalog.parts(QuestionKind.LISTENING)],
        reading_parts=[PartRead.from_part(p) for p in catalog.parts(QuestionKind.READING)],
    )


@router.get("/result", response_model=None)
def result_page(
    participant_id: Optional[str] = Depends(participant_token),
    store: ParticipantStore = Depends(get_store),
    catalog: SqlQuestionCatalog = Depends(get_catalog),
) -> Union[ResultPageRead, RedirectResponse]:
    progress = _load_participant(participant_id, store)
    if progress is None:
        return _redirect(LANDING_URL)

    # Same completion rule as the test page, so the two never bounce
    view, _ = resume_view(progress.current_step, progress.answers, catalog.list())
    if view == SessionView.NOT_STARTED:
        return _redirect(LANDING_URL)
    if view == SessionView.ACTIVE:
        return _redirect(TEST_URL)

    return ResultPageRead(
        name=progress.name,
        reading_score=progress.reading_score,
        listening_score=progress.listening_score,
        score_percent=progress.score_percent,
        completed_at=progress.completed_at,
    )
