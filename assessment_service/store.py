"""
store.py — Participant Store
============================
Create/read/update of one participant aggregate by id.

Writes are version-stamped: ``update`` only succeeds when the caller
still holds the latest version, and the answer row and aggregate
columns land in the same transaction. A stale version or a duplicate
(participant, question) row is reported as WriteConflict; anything
else the database raises becomes Fatal. Either way the transaction is
rolled back, so a failed submission leaves no partial score behind.
"""
from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from sqlalchemy import update as sa_update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .database import db_session
from .domain import AnswerRecord, NewParticipant, ParticipantProgress, ProgressUpdate, QuestionKind
from .encryption import decrypt_value, encrypt_value
from .errors import Fatal, NotFound, WriteConflict
from .models import AnswerModel, ParticipantModel

logger = logging.getLogger("assessment.store")


class ParticipantStore(ABC):
    """Persistence contract consumed by the progress engine."""

    @abstractmethod
    def get(self, participant_id: str) -> ParticipantProgress:
        """Return the participant or raise NotFound."""

    @abstractmethod
    def create(self, fields: NewParticipant) -> ParticipantProgress:
        """Insert a fresh participant (no answers, step 0, not started)."""

    @abstractmethod
    def update(
        self,
        participant_id: str,
        changes: ProgressUpdate,
        expected_version: int,
    ) -> ParticipantProgress:
        """Append one answer and write the aggregate, all or nothing.

        Raises NotFound, WriteConflict (stale version or duplicate answer)
        or Fatal.
        """


def _to_progress(row: ParticipantModel) -> ParticipantProgress:
    return ParticipantProgress(
        id=row.id,
        name=row.name,
        email=decrypt_value(row.email_enc),
        phone=decrypt_value(row.phone_enc),
        answers=tuple(
            AnswerRecord(
                question_id=a.question_id,
                submitted_text=a.submitted_text,
                is_correct=a.is_correct,
                kind=QuestionKind(a.kind),
                answered_at=a.answered_at,
            )
            for a in row.answers
        ),
        reading_score=row.reading_score,
        listening_score=row.listening_score,
        score_percent=row.score_percent,
        has_started=row.has_started,
        current_step=row.current_step,
        completed_at=row.completed_at,
        created_at=row.created_at,
        version=row.version,
    )


class SqlParticipantStore(ParticipantStore):
    """SQLAlchemy-backed store over the participants/answer_records tables."""

    def get(self, participant_id: str) -> ParticipantProgress:
        try:
            with db_session() as session:
                row = session.get(ParticipantModel, participant_id)
                if row is None:
                    raise NotFound("Participant not found")
                return _to_progress(row)
        except SQLAlchemyError as exc:
            raise Fatal(f"participant read failed: {exc}") from exc

    def create(self, fields: NewParticipant) -> ParticipantProgress:
        try:
            with db_session() as session:
                row = ParticipantModel(
                    id=str(uuid.uuid4()),
                    name=fields.name,
                    email_enc=encrypt_value(fields.email),
                    phone_enc=encrypt_value(fields.phone),
                    reading_score=0,
                    listening_score=0,
                    score_percent=0,
                    has_started=False,
                    current_step=0,
                    version=1,
                )
                session.add(row)
                session.flush()
                return _to_progress(row)
        except SQLAlchemyError as exc:
            raise Fatal(f"participant insert failed: {exc}") from exc

    def update(
        self,
        participant_id: str,
        changes: ProgressUpdate,
        expected_version: int,
    ) -> ParticipantProgress:
        try:
            with db_session() as session:
                result = session.execute(
                    sa_update(ParticipantModel)
                    .where(ParticipantModel.id == participant_id)
                    .where(ParticipantModel.version == expected_version)
                    .values(
                        reading_score=changes.reading_score,
                        listening_score=changes.listening_score,
                        score_percent=changes.score_percent,
                        has_started=changes.has_started,
                        current_step=changes.current_step,
                        completed_at=changes.completed_at,
                        version=ParticipantModel.version + 1,
                        updated_at=datetime.now(timezone.utc),
                    )
                )
                if result.rowcount == 0:
                    if session.get(ParticipantModel, participant_id) is None:
                        raise NotFound("Participant not found")
                    raise WriteConflict(
                        f"participant {participant_id} changed since version {expected_version}"
                    )

                answer = changes.answer
                session.add(
                    AnswerModel(
                        participant_id=participant_id,
                        question_id=answer.question_id,
                        submitted_text=answer.submitted_text,
                        is_correct=answer.is_correct,
                        kind=answer.kind.value,
                        answered_at=answer.answered_at,
                    )
                )
                session.flush()

                row = session.get(ParticipantModel, participant_id)
                return _to_progress(row)
        except IntegrityError as exc:
            # Unique (participant, question) guard tripped by a racing writer
            raise WriteConflict(f"duplicate answer for participant {participant_id}") from exc
        except SQLAlchemyError as exc:
            raise Fatal(f"participant update failed: {exc}") from exc
