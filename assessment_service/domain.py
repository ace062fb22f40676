"""
domain.py — Value types shared by the engine, the store and the catalog
=========================================================================
These are plain snapshots detached from any database session. The
ORM rows in models.py are converted into them at the store/catalog
boundary so the progress engine never touches SQLAlchemy objects.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple


class QuestionKind(str, Enum):
    LISTENING = "listening"
    READING = "reading"


@dataclass(frozen=True)
class Question:
    id: int
    kind: QuestionKind
    options: Tuple[str, ...]
    correct_option_index: int
    text: Optional[str] = None
    audio_url: Optional[str] = None
    image_url: Optional[str] = None


@dataclass(frozen=True)
class Part:
    id: int
    kind: QuestionKind
    title: str
    description: str
    question_ids: Tuple[int, ...]
    passage_text: Optional[str] = None


@dataclass(frozen=True)
class AnswerRecord:
    """One submitted answer. Immutable once created."""

    question_id: int
    submitted_text: str
    is_correct: bool
    kind: QuestionKind
    answered_at: datetime


@dataclass(frozen=True)
class ParticipantProgress:
    """Snapshot of one participant's aggregate as read from the store."""

    id: str
    name: str
    email: str
    phone: str
    answers: Tuple[AnswerRecord, ...] = ()
    reading_score: int = 0
    listening_score: int = 0
    score_percent: int = 0
    has_started: bool = False
    current_step: int = 0
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    version: int = 1

    @property
    def correct_question_ids(self) -> List[int]:
        # Derived on read rather than persisted next to the answers
        return [a.question_id for a in self.answers if a.is_correct]

    @property
    def answers_count(self) -> int:
        return len(self.answers)

    def answer_for(self, question_id: int) -> Optional[AnswerRecord]:
        for answer in self.answers:
            if answer.question_id == question_id:
                return answer
        return None


@dataclass(frozen=True)
class NewParticipant:
    """Initial fields accepted by ``ParticipantStore.create``."""

    name: str
    email: str
    phone: str


@dataclass(frozen=True)
class ProgressUpdate:
    """Everything one genuinely new answer changes, written atomically."""

    answer: AnswerRecord
    reading_score: int
    listening_score: int
    score_percent: int
    has_started: bool
    current_step: int
    completed_at: Optional[datetime] = None
