"""
progress.py — Progress state machine
====================================
Turns one submitted answer into a scored, idempotent transition of a
participant's aggregate.

Pipeline for ``ProgressEngine.submit``:
  1. Validate the answer text, resolve participant and question
  2. Replay check: an already-answered question returns the stored
     correctness and changes nothing
  3. Score the answer, bump the per-kind score, recompute the percent
     against the live catalog count
  4. Advance the phase via the pure ``next_phase`` function
  5. Persist answer + aggregate in one version-stamped write

Submissions for the same participant are serialised by an in-process
keyed lock; the store's version check and unique answer key catch any
writer outside this process. A WriteConflict is retried a bounded
number of times (each retry re-reads, so a duplicate becomes a replay)
and then surfaced as Fatal.
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import IntEnum
from typing import Callable, Dict, Iterator, Optional

from .catalog import QuestionCatalog
from .config import settings
from .domain import AnswerRecord, ParticipantProgress, ProgressUpdate, QuestionKind
from .errors import DataCorruption, Fatal, InvalidInput, WriteConflict
from .scoring import is_answer_correct, score_percent
from .store import ParticipantStore

logger = logging.getLogger("assessment.progress")


class Phase(IntEnum):
    """Navigational phase; the integer value is the persisted ``current_step``."""

    NOT_STARTED = 0
    LISTENING_ACTIVE = 1
    READING_ACTIVE = 2
    COMPLETED = 3

    @classmethod
    def from_step(cls, step: int) -> "Phase":
        try:
            return cls(step)
        except ValueError:
            raise DataCorruption(f"current_step {step!r} is not a known phase")


def next_phase(
    phase: Phase,
    answered_kind: QuestionKind,
    is_first_answer: bool,
    is_last_answer: bool,
) -> Phase:
    """Phase after a genuinely new answer. Never called for replays."""
    if is_last_answer:
        return Phase.COMPLETED
    if is_first_answer:
        if answered_kind == QuestionKind.LISTENING:
            return Phase.LISTENING_ACTIVE
        return Phase.READING_ACTIVE
    if answered_kind == QuestionKind.READING:
        # Answering any reading question means the reading phase has begun
        return max(phase, Phase.READING_ACTIVE)
    return phase


# ---------------------------------------------------------------------------
# Per-participant serialisation
# ---------------------------------------------------------------------------

@dataclass
class _LockEntry:
    lock: threading.Lock
    holders: int = 0


class KeyedLock:
    """One mutex per key, dropped again once nobody holds or waits on it."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: Dict[str, _LockEntry] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _LockEntry(threading.Lock())
            entry.holders += 1
        entry.lock.acquire()
        try:
            yield
        finally:
            entry.lock.release()
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._entries[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SubmitResult:
    is_correct: bool
    progress: ParticipantProgress
    replayed: bool = False

    @property
    def completed(self) -> bool:
        return self.progress.current_step == Phase.COMPLETED


class ProgressEngine:
    def __init__(
        self,
        store: ParticipantStore,
        catalog: QuestionCatalog,
        *,
        max_attempts: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store
        self.catalog = catalog
        self.max_attempts = settings.submit_max_attempts if max_attempts is None else max_attempts
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._locks = KeyedLock()

    def submit(self, participant_id: str, question_id: int, submitted_text: str) -> SubmitResult:
        """Record an answer. Raises InvalidInput, NotFound or Fatal."""
        if not isinstance(submitted_text, str) or not submitted_text:
            raise InvalidInput("Answer must be a non-empty string")

        with self._locks.hold(participant_id):
            for attempt in range(1, self.max_attempts + 1):
                try:
                    return self._apply(participant_id, question_id, submitted_text)
                except WriteConflict as exc:
                    logger.warning(
                        "Write conflict for participant %s question %s (attempt %d/%d): %s",
                        participant_id, question_id, attempt, self.max_attempts, exc,
                    )
        raise Fatal(
            f"participant {participant_id}: {self.max_attempts} conflicting writes "
            f"for question {question_id}"
        )

    def _apply(self, participant_id: str, question_id: int, submitted_text: str) -> SubmitResult:
        progress = self.store.get(participant_id)
        question = self.catalog.get(question_id)
        phase = Phase.from_step(progress.current_step)

        previous = progress.answer_for(question.id)
        if previous is not None:
            logger.info("Replay of question %s for participant %s, no change", question.id, participant_id)
            return SubmitResult(is_correct=previous.is_correct, progress=progress, replayed=True)

        is_correct = is_answer_correct(question, submitted_text)
        now = self._clock()
        record = AnswerRecord(
            question_id=question.id,
            submitted_text=submitted_text,
            is_correct=is_correct,
            kind=question.kind,
            answered_at=now,
        )

        reading_score = progress.reading_score
        listening_score = progress.listening_score
        if is_correct:
            if question.kind == QuestionKind.READING:
                reading_score += 1
            else:
                listening_score += 1

        # Only answers to questions still in the catalog count toward the total
        live_ids = {q.id for q in self.catalog.list()}
        total = len(live_ids)
        answered_live = sum(1 for a in progress.answers if a.question_id in live_ids) + 1
        correct_count = sum(1 for qid in progress.correct_question_ids if qid in live_ids)
        correct_count += 1 if is_correct else 0
        is_last = total > 0 and answered_live >= total

        new_phase = next_phase(phase, question.kind, not progress.has_started, is_last)
        completed_at = progress.completed_at
        if new_phase == Phase.COMPLETED and completed_at is None:
            completed_at = now

        updated = self.store.update(
            participant_id,
            ProgressUpdate(
                answer=record,
                reading_score=reading_score,
                listening_score=listening_score,
                score_percent=score_percent(correct_count, total),
                has_started=True,
                current_step=int(new_phase),
                completed_at=completed_at,
            ),
            expected_version=progress.version,
        )

        if new_phase == Phase.COMPLETED and progress.completed_at is None:
            logger.info(
                "Participant %s completed the test (%d%%, reading=%d, listening=%d)",
                participant_id, updated.score_percent, updated.reading_score, updated.listening_score,
            )
        return SubmitResult(is_correct=is_correct, progress=updated)
