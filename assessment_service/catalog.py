"""
catalog.py — Question Catalog
=============================
Ordered, immutable list of questions. Questions live in the
``questions`` table and are seeded once from a YAML file on first
startup; test parts (listening/reading groupings shown to the
participant) are read from the same file and kept in memory.

The progress engine calls ``get`` for the answered question and ``list``
for the live question set; both are read fresh on every submission,
never cached.
"""
from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from .config import settings
from .database import db_session
from .domain import Question, QuestionKind, Part
from .errors import Fatal, NotFound
from .models import QuestionModel

logger = logging.getLogger("assessment.catalog")


class QuestionCatalog(ABC):
    @abstractmethod
    def list(self) -> List[Question]:
        """All questions in ascending id order."""

    @abstractmethod
    def count(self) -> int:
        ...

    @abstractmethod
    def get(self, question_id: int) -> Question:
        """Return the question or raise NotFound."""


# ---------------------------------------------------------------------------
# YAML source
# ---------------------------------------------------------------------------

def catalog_path() -> Path:
    configured = settings.catalog_path
    if configured:
        return Path(configured)
    return Path(__file__).parent / "data" / "questions.yml"


def load_catalog_file(path: Optional[Path] = None) -> Dict[str, Any]:
    """Read the raw catalog document. Missing file ⇒ empty catalog."""
    path = path or catalog_path()
    if not path.exists():
        logger.warning("Catalog file %s not found, starting with an empty catalog", path)
        return {"questions": [], "parts": {}}
    with path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    raw.setdefault("questions", [])
    raw.setdefault("parts", {})
    return raw


def _question_from_item(item: Dict[str, Any]) -> QuestionModel:
    options = [str(o) for o in item.get("options", [])]
    correct = int(item["correct_option"])
    if not 0 <= correct < len(options):
        raise ValueError(f"question {item['id']}: correct_option {correct} out of range")
    return QuestionModel(
        id=int(item["id"]),
        kind=QuestionKind(item["type"]).value,
        text=item.get("text"),
        audio_url=item.get("audio_url"),
        image_url=item.get("image_url"),
        options_json=json.dumps(options),
        correct_option_index=correct,
    )


def _parts_from_doc(doc: Dict[str, Any]) -> Dict[QuestionKind, List[Part]]:
    parts: Dict[QuestionKind, List[Part]] = {kind: [] for kind in QuestionKind}
    for kind_name, items in (doc.get("parts") or {}).items():
        kind = QuestionKind(kind_name)
        for item in items or []:
            parts[kind].append(
                Part(
                    id=int(item["id"]),
                    kind=kind,
                    title=item.get("title", ""),
                    description=item.get("description", ""),
                    question_ids=tuple(int(q) for q in item.get("question_ids", [])),
                    passage_text=item.get("passage_text"),
                )
            )
    return parts


def seed_catalog(path: Optional[Path] = None) -> int:
    """
    Insert the YAML questions when the table is empty.

    Returns the number of questions inserted (0 if already seeded).
    Existing rows are never modified.
    """
    doc = load_catalog_file(path)
    with db_session() as session:
        existing = session.execute(select(func.count(QuestionModel.id))).scalar_one()
        if existing:
            return 0
        rows = [_question_from_item(item) for item in doc["questions"]]
        session.add_all(rows)
    logger.info("Seeded %d catalog questions from %s", len(rows), path or catalog_path())
    return len(rows)


# ---------------------------------------------------------------------------
# SQL-backed catalog
# ---------------------------------------------------------------------------

def _to_question(row: QuestionModel) -> Question:
    return Question(
        id=row.id,
        kind=QuestionKind(row.kind),
        options=tuple(json.loads(row.options_json or "[]")),
        correct_option_index=row.correct_option_index,
        text=row.text,
        audio_url=row.audio_url,
        image_url=row.image_url,
    )


class SqlQuestionCatalog(QuestionCatalog):
    def __init__(self, parts: Optional[Dict[QuestionKind, List[Part]]] = None) -> None:
        self._parts = parts if parts is not None else _parts_from_doc(load_catalog_file())

    def list(self) -> List[Question]:
        try:
            with db_session() as session:
                rows = session.execute(select(QuestionModel).order_by(QuestionModel.id.asc())).scalars().all()
                return [_to_question(r) for r in rows]
        except SQLAlchemyError as exc:
            raise Fatal(f"catalog list failed: {exc}") from exc

    def count(self) -> int:
        try:
            with db_session() as session:
                return session.execute(select(func.count(QuestionModel.id))).scalar_one()
        except SQLAlchemyError as exc:
            raise Fatal(f"catalog count failed: {exc}") from exc

    def get(self, question_id: int) -> Question:
        try:
            with db_session() as session:
                row = session.get(QuestionModel, question_id)
                if row is None:
                    raise NotFound("Question not found")
                return _to_question(row)
        except SQLAlchemyError as exc:
            raise Fatal(f"catalog read failed: {exc}") from exc

    # -- Test parts ---------------------------------------------------------

    def parts(self, kind: QuestionKind) -> List[Part]:
        return list(self._parts.get(kind, []))

    def part_for_question(self, question_id: int, kind: QuestionKind) -> Optional[Part]:
        for part in self._parts.get(kind, []):
            if question_id in part.question_ids:
                return part
        return None
