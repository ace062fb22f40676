"""Scoring function: pure mapping of (question, submitted text) to correctness."""
from __future__ import annotations

from .domain import Question


def selected_option_index(question: Question, submitted_text: str) -> int:
    """Position of ``submitted_text`` within the question's options, or -1."""
    try:
        return question.options.index(submitted_text)
    except ValueError:
        return -1


def is_answer_correct(question: Question, submitted_text: str) -> bool:
    """Text that matches no option is simply incorrect, never an error."""
    selected = selected_option_index(question, submitted_text)
    return selected >= 0 and selected == question.correct_option_index


def score_percent(correct_count: int, total_count: int) -> int:
    """round(100 * correct / total) with halves rounded up; 0 for an empty catalog."""
    if total_count <= 0:
        return 0
    return (200 * correct_count + total_count) // (2 * total_count)
