"""
flow.py — Session flow controller
=================================
Decides which view a participant may see from their persisted step,
and where an in-progress participant resumes.
"""
from __future__ import annotations

from enum import Enum
from typing import Iterable, Optional, Sequence

from .domain import AnswerRecord, Question
from .errors import DataCorruption


class SessionView(str, Enum):
    NOT_STARTED = "not_started"
    ACTIVE = "active"
    COMPLETED = "completed"


def decide(step: int) -> SessionView:
    """Map a persisted step to its view. Unknown steps are reported, not coerced."""
    if step == 0:
        return SessionView.NOT_STARTED
    if step in (1, 2):
        return SessionView.ACTIVE
    if step == 3:
        return SessionView.COMPLETED
    raise DataCorruption(f"current_step {step!r} is outside 0..3")


def first_unanswered_index(
    answers: Iterable[AnswerRecord],
    questions: Sequence[Question],
) -> Optional[int]:
    """Index (catalog order) of the first question without an answer, or None."""
    answered = {a.question_id for a in answers}
    for index, question in enumerate(questions):
        if question.id not in answered:
            return index
    return None


def resume_view(
    step: int,
    answers: Iterable[AnswerRecord],
    questions: Sequence[Question],
) -> tuple[SessionView, Optional[int]]:
    """
    View plus resume index for the test page.

    Completion is derivable two ways (step 3, or every question already
    answered) and either one is enough to send the participant to the
    result page.
    """
    view = decide(step)
    if view == SessionView.COMPLETED:
        return view, None
    index = first_unanswered_index(answers, questions)
    if index is None and questions:
        return SessionView.COMPLETED, None
    return view, index
