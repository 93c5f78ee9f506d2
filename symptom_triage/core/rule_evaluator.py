"""
Rule Evaluator - match answers against rules, rank, cap, fall back

Responsibilities:
- Evaluate each rule's conditions against a session's answers
- Rank matches by urgency (HIGH > MEDIUM > LOW), stable on definition order
- Truncate to the suggestion cap
- Substitute the ruleset fallback when nothing matches

Design principles:
- Stateless: all input comes from the answers argument
- Deterministic: same answers always produce the same suggestions
- Pure functions: no side effects

Condition matching (per condition, a rule matches iff ALL hold):

    expected \\ answer | Scalar(a)        | Choices(A)
    -------------------+------------------+--------------------
    Single(e)          | a == e           | e in A
    Many(E)            | a in E           | A & E non-empty

A question the user never answered satisfies its condition by absence.
"""

import logging
from typing import List, Mapping, Sequence

from symptom_triage.contracts import (
    AnswerValue,
    Choices,
    ExpectedValue,
    Many,
    Rule,
    Scalar,
    Single,
    Suggestion,
    SuggestionResult,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_SUGGESTIONS = 3


def condition_matches(expected: ExpectedValue, answer: AnswerValue) -> bool:
    """
    Evaluate one condition against one answer.

    Args:
        expected: Single or Many
        answer: Scalar or Choices

    Returns:
        bool: True if the answer satisfies the condition

    Raises:
        TypeError: If either argument is not one of the tagged variants
    """
    if isinstance(expected, Single):
        if isinstance(answer, Scalar):
            return answer.value == expected.value
        if isinstance(answer, Choices):
            return expected.value in answer.values

    if isinstance(expected, Many):
        if isinstance(answer, Scalar):
            return answer.value in expected.values
        if isinstance(answer, Choices):
            return not expected.values.isdisjoint(answer.values)

    raise TypeError(
        f"Unsupported condition/answer pair: {type(expected).__name__}/{type(answer).__name__}"
    )


def rule_matches(rule: Rule, answers: Mapping[str, AnswerValue]) -> bool:
    """
    Evaluate a rule's full condition set.

    Unanswered questions are skipped (partial evidence policy): a rule
    with no answered condition questions matches vacuously.
    """
    for question_id, expected in rule.conditions:
        answer = answers.get(question_id)

        if answer is None:
            continue

        if not condition_matches(expected, answer):
            return False

    return True


class RuleEvaluator:
    """
    Ranks rule matches for a completed answer set.

    Holds only read-only configuration (rules, fallback, cap), so a single
    instance is shared by all sessions.
    """

    def __init__(
        self,
        rules: Sequence[Rule],
        fallback: SuggestionResult,
        max_suggestions: int = DEFAULT_MAX_SUGGESTIONS
    ):
        """
        Args:
            rules: Rules in definition order
            fallback: Result returned when no rule matches
            max_suggestions: Cap on returned suggestions (>= 1)

        Raises:
            ValueError: If max_suggestions < 1
        """
        if max_suggestions < 1:
            raise ValueError(f"max_suggestions must be >= 1, got {max_suggestions}")

        self.rules = tuple(rules)
        self.fallback = fallback
        self.max_suggestions = max_suggestions

    @classmethod
    def from_ruleset(cls, ruleset, max_suggestions: int = DEFAULT_MAX_SUGGESTIONS) -> "RuleEvaluator":
        return cls(ruleset.rules, ruleset.fallback, max_suggestions=max_suggestions)

    def matching_rules(self, answers: Mapping[str, AnswerValue]) -> List[Rule]:
        """All matching rules, in definition order (unranked, uncapped)."""
        return [rule for rule in self.rules if rule_matches(rule, answers)]

    def evaluate(self, answers: Mapping[str, AnswerValue]) -> List[Suggestion]:
        """
        Produce ranked suggestions for an answer set.

        Args:
            answers: question_id -> Scalar/Choices

        Returns:
            list[Suggestion]: 1 to max_suggestions entries. Exactly one
            entry (the fallback, source_rule_id=None) when nothing matched.
        """
        matched = self.matching_rules(answers)

        if not matched:
            logger.info("No rules matched, returning fallback suggestion")
            return [Suggestion.from_result(self.fallback)]

        # sorted() is stable: definition order breaks urgency ties
        ranked = sorted(matched, key=lambda rule: rule.result.urgency.rank, reverse=True)

        suggestions = [
            Suggestion.from_result(rule.result, source_rule_id=rule.id)
            for rule in ranked[:self.max_suggestions]
        ]

        logger.info(
            f"{len(matched)} rule(s) matched, returning {len(suggestions)}: "
            f"{[s.source_rule_id for s in suggestions]}"
        )
        return suggestions
