from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .domain import ParticipantProgress, Question, Part


class CamelModel(BaseModel):
    """Wire models: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Questions
# ---------------------------------------------------------------------------

class QuestionRead(CamelModel):
    """A question as shown to the participant, without the correct option."""

    id: int
    type: str = Field(..., description="'listening' or 'reading'.")
    question_text: Optional[str] = None
    question_audio_url: Optional[str] = None
    question_image_url: Optional[str] = None
    options: List[str]

    @classmethod
    def from_question(cls, q: Question) -> "QuestionRead":
        return cls(
            id=q.id,
            type=q.kind.value,
            question_text=q.text,
            question_audio_url=q.audio_url,
            question_image_url=q.image_url,
            options=list(q.options),
        )


class PartRead(CamelModel):
    id: int
    type: str
    title: str
    description: str
    question_ids: List[int]
    passage_text: Optional[str] = None

    @classmethod
    def from_part(cls, part: Part) -> "PartRead":
        return cls(
            id=part.id,
            type=part.kind.value,
            title=part.title,
            description=part.description,
            question_ids=list(part.question_ids),
            passage_text=part.passage_text,
        )


# ---------------------------------------------------------------------------
# Participants
# ---------------------------------------------------------------------------

class RegistrationRequest(BaseModel):
    """Raw registration fields; sanitized and validated in validation.py."""

    name: str = ""
    email: str = ""
    phone: str = ""


class ParticipantStatus(CamelModel):
    id: str
    has_started: bool
    current_step: int

    @classmethod
    def from_progress(cls, p: ParticipantProgress) -> "ParticipantStatus":
        return cls(id=p.id, has_started=p.has_started, current_step=p.current_step)


class ParticipantEnvelope(CamelModel):
    participant: Optional[ParticipantStatus] = None


class RegistrationResponse(CamelModel):
    success: bool = True
    participant: ParticipantStatus
    questions: List[QuestionRead]
    message: str = "Participant created successfully"


class SuccessResponse(CamelModel):
    success: bool = True


# ---------------------------------------------------------------------------
# Answers
# ---------------------------------------------------------------------------

class SubmitAnswerRequest(CamelModel):
    question_id: int = Field(..., gt=0)
    answer: str = Field(..., min_length=1)


class SubmitAnswerResponse(CamelModel):
    success: bool = True
    is_correct: bool
    current_step: int = Field(..., ge=0, le=3)
    has_started: bool
    score_percent: int = Field(..., ge=0, le=100)
    reading_score: int = Field(..., ge=0)
    listening_score: int = Field(..., ge=0)
    answers_count: int = Field(..., ge=0)
    completed: bool
    message: Optional[str] = Field(
        default=None,
        description="Set to 'Already answered' when the submission was a no-op replay.",
    )


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------

class StartPageRead(CamelModel):
    view: str = "test"
    start_index: int
    questions: List[QuestionRead]
    listening_parts: List[PartRead]
    reading_parts: List[PartRead]


class ResultPageRead(CamelModel):
    view: str = "result"
    name: str
    reading_score: int
    listening_score: int
    score_percent: int
    completed_at: Optional[datetime] = None
