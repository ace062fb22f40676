from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .database import Base


class QuestionModel(Base):
    """Seeded catalog entry. Never mutated by the progress engine."""

    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    kind: Mapped[str] = mapped_column(String(16), index=True)  # listening | reading
    text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    audio_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    options_json: Mapped[str] = mapped_column(Text)  # JSON array of strings
    correct_option_index: Mapped[int] = mapped_column(Integer)


class ParticipantModel(Base):
    """
    One test-taker and their aggregate progress.

    ``version`` stamps every write: the store issues
    ``UPDATE ... WHERE id = :id AND version = :seen`` and treats a zero
    row count as a write conflict.
    """

    __tablename__ = "participants"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Contact details (email/phone encrypted when a key is configured)
    name: Mapped[str] = mapped_column(String(100))
    email_enc: Mapped[str] = mapped_column(Text)
    phone_enc: Mapped[str] = mapped_column(Text)

    # Aggregate progress
    reading_score: Mapped[int] = mapped_column(Integer, default=0)
    listening_score: Mapped[int] = mapped_column(Integer, default=0)
    score_percent: Mapped[int] = mapped_column(Integer, default=0)
    has_started: Mapped[bool] = mapped_column(Boolean, default=False)
    current_step: Mapped[int] = mapped_column(Integer, default=0)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    answers: Mapped[List["AnswerModel"]] = relationship(
        back_populates="participant",
        order_by="AnswerModel.id",
        cascade="all, delete-orphan",
    )


class AnswerModel(Base):
    """Append-only answer record. At most one per (participant, question)."""

    __tablename__ = "answer_records"
    __table_args__ = (
        UniqueConstraint("participant_id", "question_id", name="uq_answer_participant_question"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    participant_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("participants.id", ondelete="CASCADE"), index=True
    )
    question_id: Mapped[int] = mapped_column(Integer, index=True)
    submitted_text: Mapped[str] = mapped_column(Text)
    is_correct: Mapped[bool] = mapped_column(Boolean)
    kind: Mapped[str] = mapped_column(String(16))
    answered_at: Mapped[datetime] = mapped_column(DateTime)

    participant: Mapped[ParticipantModel] = relationship(back_populates="answers")
