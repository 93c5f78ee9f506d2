"""
Semantic contracts for the symptom triage engine.

This module defines the immutable data structures shared between the
ruleset loader, question graph, rule evaluator and dialogue manager.

Design principles:
- Frozen dataclasses (immutable after creation)
- Tuples and frozensets instead of lists/dicts (no accidental mutation)
- Tagged variants for values that are "sometimes a string, sometimes a list"
  in the JSON asset
- No dependencies on other modules

Contents:
- AnswerType, Urgency: enumerations
- Scalar / Choices: a user's answer (AnswerValue)
- Single / Many: a rule condition's expected value (ExpectedValue)
- Continue / TERMINAL: the outcome of routing an answer (NextStep)
- QuestionOption, Question, SuggestionResult, Rule: loaded definitions
- Suggestion: ranked evaluator output

Usage:
    from symptom_triage.contracts import Question, Scalar, Choices, TERMINAL
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple, Union


class AnswerType(Enum):
    """How many options a user may pick for a question."""
    SINGLE = "single"
    MULTIPLE = "multiple"


class Urgency(Enum):
    """
    Ordinal severity tag used to rank suggestions.

    Ordering is fixed: HIGH > MEDIUM > LOW. Use .rank for comparisons
    rather than comparing the string values.
    """
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _URGENCY_RANK[self]


_URGENCY_RANK = {
    Urgency.LOW: 1,
    Urgency.MEDIUM: 2,
    Urgency.HIGH: 3,
}


# =============================================================================
# Answer values (what the user submitted)
# =============================================================================

@dataclass(frozen=True)
class Scalar:
    """Answer to a single-choice question."""
    value: str

    def to_json(self) -> str:
        return self.value


@dataclass(frozen=True)
class Choices:
    """Answer to a multi-choice question (order is not significant)."""
    values: FrozenSet[str]

    def to_json(self) -> list:
        return sorted(self.values)


AnswerValue = Union[Scalar, Choices]


# =============================================================================
# Expected values (what a rule condition asks for)
# =============================================================================

@dataclass(frozen=True)
class Single:
    """Condition expecting exactly one value."""
    value: str


@dataclass(frozen=True)
class Many:
    """Condition satisfied by any one of several values."""
    values: FrozenSet[str]


ExpectedValue = Union[Single, Many]


# =============================================================================
# Routing
# =============================================================================

@dataclass(frozen=True)
class Continue:
    """Route to another question."""
    question_id: str


class Terminal(Enum):
    """Marker: the dialogue has no further questions."""
    TERMINAL = "terminal"


TERMINAL = Terminal.TERMINAL

NextStep = Union[Continue, Terminal]


# =============================================================================
# Loaded definitions
# =============================================================================

@dataclass(frozen=True)
class QuestionOption:
    """
    One selectable option of a question.

    Attributes:
        value: Machine value stored in answers and matched by rules
        label: Text shown to the user (defaults to value in the asset)
    """
    value: str
    label: str

    def to_dict(self) -> Dict[str, str]:
        return {'value': self.value, 'label': self.label}


@dataclass(frozen=True)
class Question:
    """
    Immutable question definition from the ruleset.

    Attributes:
        id: Stable question identifier (e.g., 'fever_check')
        text: Prompt shown to the user
        answer_type: AnswerType.SINGLE or AnswerType.MULTIPLE
        options: Selectable options, in display order
        successors: (answer value, NextStep) pairs in definition order.
            Tuple of pairs (not dict) to keep definition order explicit
            and the structure immutable.
        default_next: Edge taken when no successor key matches.
            None means "no default" (which routes to terminal).

    Note:
        A question with no successors and no default implicitly
        routes to TERMINAL.
    """
    id: str
    text: str
    answer_type: AnswerType = AnswerType.SINGLE
    options: Tuple[QuestionOption, ...] = ()
    successors: Tuple[Tuple[str, NextStep], ...] = ()
    default_next: Optional[NextStep] = None

    @property
    def option_values(self) -> Tuple[str, ...]:
        return tuple(option.value for option in self.options)

    def to_dict(self) -> Dict[str, Any]:
        """Public shape of the question (no routing information)."""
        return {
            'id': self.id,
            'text': self.text,
            'type': self.answer_type.value,
            'options': [option.to_dict() for option in self.options],
        }


@dataclass(frozen=True)
class SuggestionResult:
    """Suggestion payload attached to a rule (or used as fallback)."""
    urgency: Urgency
    title: str
    description: str = ""
    reasoning: str = ""
    action: str = ""


@dataclass(frozen=True)
class Rule:
    """
    Condition set over answers paired with a suggestion.

    Attributes:
        id: Rule identifier (reported as source_rule_id)
        conditions: (question_id, ExpectedValue) pairs in definition order
        result: Suggestion produced when every condition holds
    """
    id: str
    conditions: Tuple[Tuple[str, ExpectedValue], ...]
    result: SuggestionResult


@dataclass(frozen=True)
class Suggestion:
    """
    Ranked evaluator output.

    source_rule_id is None when the suggestion is the ruleset fallback.
    """
    urgency: Urgency
    title: str
    description: str
    reasoning: str
    action: str
    source_rule_id: Optional[str] = None

    @classmethod
    def from_result(cls, result: SuggestionResult, source_rule_id: Optional[str] = None) -> "Suggestion":
        return cls(
            urgency=result.urgency,
            title=result.title,
            description=result.description,
            reasoning=result.reasoning,
            action=result.action,
            source_rule_id=source_rule_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'urgency': self.urgency.value,
            'title': self.title,
            'description': self.description,
            'reasoning': self.reasoning,
            'action': self.action,
            'source_rule_id': self.source_rule_id,
        }
