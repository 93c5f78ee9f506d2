"""
Answer coercion - raw JSON answer -> tagged AnswerValue

Callers submit answers as decoded JSON: a string for single-choice
questions, a list of strings for multi-choice ones. This module checks
the shape against the question's answer type and wraps it.

Option membership is NOT checked: rules match on raw values and the
asset may route on values outside the displayed options.
"""

from typing import Any

from symptom_triage.contracts import AnswerType, AnswerValue, Choices, Question, Scalar
from symptom_triage.errors import InvalidAnswer


def coerce_answer(question: Question, raw: Any) -> AnswerValue:
    """
    Validate and wrap a raw answer for a question.

    Rules:
    - Already-tagged values (Scalar/Choices) must match the answer type
    - Single-choice: non-empty string
    - Multi-choice: non-empty list/tuple/set of non-empty strings;
      a lone string is accepted as a one-element selection

    Args:
        question: Question being answered
        raw: Submitted answer

    Returns:
        Scalar or Choices

    Raises:
        InvalidAnswer: If the answer is missing or has the wrong shape
    """
    if raw is None:
        raise InvalidAnswer(f"Answer to '{question.id}' is missing")

    if question.answer_type is AnswerType.SINGLE:
        if isinstance(raw, Scalar):
            return raw
        if isinstance(raw, str) and raw.strip():
            return Scalar(raw)
        raise InvalidAnswer(
            f"Question '{question.id}' is single-choice: answer must be a non-empty string, "
            f"got {type(raw).__name__}"
        )

    if isinstance(raw, Choices):
        values = raw.values
    elif isinstance(raw, str):
        values = frozenset([raw]) if raw.strip() else frozenset()
    elif isinstance(raw, (list, tuple, set, frozenset)):
        if not all(isinstance(value, str) and value.strip() for value in raw):
            raise InvalidAnswer(f"Question '{question.id}' answers must all be non-empty strings")
        values = frozenset(raw)
    else:
        raise InvalidAnswer(
            f"Question '{question.id}' is multi-choice: answer must be a list of strings, "
            f"got {type(raw).__name__}"
        )

    if not values:
        raise InvalidAnswer(f"Question '{question.id}' needs at least one selection")

    return Choices(values)
