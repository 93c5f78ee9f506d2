"""
Question Graph - answer-keyed routing between questions

Responsibilities:
- Look up question definitions by id
- Resolve the next step for a (question, answer) pair

Design principles:
- Read-only after construction (safe to share across threads)
- Deterministic: same answer always routes the same way
- No knowledge of sessions or rules

The graph is expected to be acyclic. This is a requirement on the asset
and is not checked here; a cyclic asset loops the dialogue forever.
"""

import logging
from types import MappingProxyType
from typing import Iterable, Iterator, Optional

from symptom_triage.contracts import (
    TERMINAL,
    AnswerValue,
    Choices,
    NextStep,
    Question,
    Scalar,
)
from symptom_triage.errors import QuestionNotFound

logger = logging.getLogger(__name__)


class QuestionGraph:
    """
    Immutable map of question id -> Question with routing.

    Construction does not cross-validate successor ids; the ruleset
    loader does that before building the graph.
    """

    def __init__(self, questions: Iterable[Question], entry_question_id: str):
        """
        Build graph from loaded questions.

        Args:
            questions: Question definitions, in asset order
            entry_question_id: Id of the question every session starts on

        Raises:
            QuestionNotFound: If entry_question_id is not among questions
        """
        by_id = {}
        for question in questions:
            by_id[question.id] = question

        self._questions = MappingProxyType(by_id)

        if entry_question_id not in self._questions:
            raise QuestionNotFound(entry_question_id)
        self.entry_question_id = entry_question_id

    # =========================================================================
    # Lookup
    # =========================================================================

    def lookup(self, question_id: str) -> Question:
        """
        Get question by id.

        Raises:
            QuestionNotFound: If question_id is unknown
        """
        question = self.get(question_id)
        if question is None:
            raise QuestionNotFound(question_id)
        return question

    def get(self, question_id: str) -> Optional[Question]:
        if not isinstance(question_id, str):
            return None
        return self._questions.get(question_id)

    @property
    def entry_question(self) -> Question:
        return self._questions[self.entry_question_id]

    def __contains__(self, question_id: object) -> bool:
        return isinstance(question_id, str) and question_id in self._questions

    def __iter__(self) -> Iterator[Question]:
        return iter(self._questions.values())

    def __len__(self) -> int:
        return len(self._questions)

    # =========================================================================
    # Routing
    # =========================================================================

    def resolve_next(self, question: Question, answer: AnswerValue) -> NextStep:
        """
        Resolve where the dialogue goes after answering question.

        Resolution order:
        1. Successor whose key equals the answer. For a multi-choice
           answer, the first successor (definition order) whose key is
           one of the selected values.
        2. question.default_next, if defined
        3. TERMINAL

        Args:
            question: Question that was answered
            answer: Scalar or Choices

        Returns:
            Continue(question_id) or TERMINAL
        """
        for key, step in question.successors:
            if isinstance(answer, Scalar) and key == answer.value:
                return step
            if isinstance(answer, Choices) and key in answer.values:
                return step

        if question.default_next is not None:
            return question.default_next

        logger.debug(f"Question {question.id}: no matching edge, routing to terminal")
        return TERMINAL
