"""
Tests for the question catalog: YAML loading, one-time seeding and the
SQL-backed lookups.

Run with: pytest tests/test_catalog.py -v
"""
from __future__ import annotations

from pathlib import Path

import pytest

from assessment_service.catalog import (
    SqlQuestionCatalog,
    _parts_from_doc,
    _question_from_item,
    load_catalog_file,
    seed_catalog,
)
from assessment_service.domain import QuestionKind
from assessment_service.errors import NotFound


@pytest.fixture(scope="module")
def catalog() -> SqlQuestionCatalog:
    return SqlQuestionCatalog()


def test_list_is_ordered_by_id(catalog):
    questions = catalog.list()
    assert [q.id for q in questions] == list(range(1, 9))
    assert {q.kind for q in questions[:4]} == {QuestionKind.LISTENING}
    assert {q.kind for q in questions[4:]} == {QuestionKind.READING}


def test_count_matches_list(catalog):
    assert catalog.count() == len(catalog.list()) == 8


def test_get_returns_options_in_order(catalog):
    q = catalog.get(3)
    assert q.options == ("12 + 4", "12 - 4", "12 x 4")
    assert q.correct_option_index == 2
    assert q.audio_url == "/media/listening/q3.mp3"


def test_get_unknown_question(catalog):
    with pytest.raises(NotFound):
        catalog.get(12345)


def test_parts_by_kind(catalog):
    listening = catalog.parts(QuestionKind.LISTENING)
    assert [p.question_ids for p in listening] == [(1, 2), (3,), (4,)]
    reading = catalog.parts(QuestionKind.READING)
    assert reading[0].passage_text is None
    assert "lobbyists" in reading[1].passage_text


def test_part_for_question(catalog):
    assert catalog.part_for_question(7, QuestionKind.READING).id == 2
    assert catalog.part_for_question(7, QuestionKind.LISTENING) is None


def test_seeding_runs_once():
    assert seed_catalog() == 0


def test_missing_file_is_empty_catalog(tmp_path: Path):
    doc = load_catalog_file(tmp_path / "nope.yml")
    assert doc == {"questions": [], "parts": {}}


def test_custom_file_parts(tmp_path: Path):
    path = tmp_path / "catalog.yml"
    path.write_text(
        "questions: []\n"
        "parts:\n"
        "  reading:\n"
        "    - id: 9\n"
        "      title: Only part\n"
        "      question_ids: [1]\n",
        encoding="utf-8",
    )
    parts = _parts_from_doc(load_catalog_file(path))
    assert parts[QuestionKind.LISTENING] == []
    only = parts[QuestionKind.READING][0]
    assert (only.id, only.title, only.description, only.question_ids) == (9, "Only part", "", (1,))


def test_correct_option_must_point_at_an_option():
    with pytest.raises(ValueError):
        _question_from_item({"id": 50, "type": "reading", "options": ["a", "b"], "correct_option": 2})
