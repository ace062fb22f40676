from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from ..errors import InvalidInput
from ..progress import ProgressEngine
from ..rate_limit import rate_limited
from ..schemas import SubmitAnswerRequest, SubmitAnswerResponse
from .dependencies import get_engine, participant_token

router = APIRouter(prefix="/answers", tags=["answers"])


@router.post(
    "",
    response_model=SubmitAnswerResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(rate_limited("answer"))],
)
def submit_answer(
    body: SubmitAnswerRequest,
    participant_id: Optional[str] = Depends(participant_token),
    engine: ProgressEngine = Depends(get_engine),
) -> SubmitAnswerResponse:
    """Score and record one answer.

    Re-submitting an already answered question is not an error: the
    original correctness is returned with ``message: "Already answered"``
    and nothing is changed.
    """
    if participant_id is None:
        raise InvalidInput("Invalid participant_id")

    result = engine.submit(participant_id, body.question_id, body.answer)
    progress = result.progress
    return SubmitAnswerResponse(
        is_correct=result.is_correct,
        current_step=progress.current_step,
        has_started=progress.has_started,
        score_percent=progress.score_percent,
        reading_score=progress.reading_score,
        listening_score=progress.listening_score,
        answers_count=progress.answers_count,
        completed=result.completed,
        message="Already answered" if result.replayed else None,
    )
