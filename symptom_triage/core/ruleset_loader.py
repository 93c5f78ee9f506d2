"""
Ruleset Loader - parse the declarative question/rule asset

Responsibilities:
- Read the JSON asset once at startup
- Validate structure and cross-references
- Convert loose JSON values into tagged contracts (Scalar/Many/TERMINAL...)

Design principles:
- Fail fast: any problem raises before the engine serves a single request
- Collect all validation errors, then raise once (easier asset debugging)
- No partial or degraded mode
- The literal "final" from the asset never survives past this module
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from symptom_triage.contracts import (
    TERMINAL,
    AnswerType,
    Continue,
    ExpectedValue,
    Many,
    NextStep,
    Question,
    QuestionOption,
    Rule,
    Single,
    SuggestionResult,
    Urgency,
)
from symptom_triage.core.question_graph import QuestionGraph
from symptom_triage.errors import RuleSetError

logger = logging.getLogger(__name__)

# Asset spelling of the terminal edge
FINAL_MARKER = "final"

# Key inside "next" read as the default edge when "default_next" is absent
LEGACY_DEFAULT_KEY = "default"

ANSWER_TYPE_ALIASES = {
    "single": AnswerType.SINGLE,
    "single-choice": AnswerType.SINGLE,
    "single_choice": AnswerType.SINGLE,
    "multiple": AnswerType.MULTIPLE,
    "multi": AnswerType.MULTIPLE,
    "multi-choice": AnswerType.MULTIPLE,
    "multi_choice": AnswerType.MULTIPLE,
}

DEFAULT_FALLBACK = SuggestionResult(
    urgency=Urgency.LOW,
    title="General Health Recommendations",
    description="Continue monitoring your symptoms and maintaining healthy habits.",
    reasoning="Based on your responses, no specific patterns requiring immediate attention were identified.",
    action="Rest, stay hydrated, and contact a healthcare provider if symptoms worsen",
)


@dataclass(frozen=True)
class RuleSet:
    """
    Fully loaded, read-only triage definitions.

    Attributes:
        questions: Question graph (lookup + routing)
        rules: Rules in definition order (order breaks urgency ties)
        fallback: Result used when no rule matches
        version: Asset version string (informational)
    """
    questions: QuestionGraph
    rules: Tuple[Rule, ...]
    fallback: SuggestionResult
    version: str = "unknown"

    @property
    def entry_question_id(self) -> str:
        return self.questions.entry_question_id


def load_ruleset(path: Union[str, Path]) -> RuleSet:
    """
    Load and validate ruleset from a JSON file.

    Args:
        path: Path to ruleset JSON

    Returns:
        RuleSet

    Raises:
        FileNotFoundError: If the file doesn't exist
        RuleSetError: If the file is not valid JSON or fails validation
    """
    ruleset_path = Path(path)

    if not ruleset_path.exists():
        raise FileNotFoundError(f"Ruleset not found: {path}")

    try:
        with open(ruleset_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise RuleSetError(f"Ruleset is not valid JSON ({path}): {e}") from e

    ruleset = parse_ruleset(data)

    logger.info(
        f"Ruleset loaded from {ruleset_path}: {len(ruleset.questions)} questions, "
        f"{len(ruleset.rules)} rules (version {ruleset.version})"
    )
    return ruleset


def parse_ruleset(data: Any) -> RuleSet:
    """
    Validate raw asset data and build a RuleSet.

    Checks:
    - Top level is an object with a non-empty 'questions' list
    - Every question has an id, a known type and well-formed options
    - No duplicate question ids
    - Every successor and default target exists (or is "final")
    - Entry question exists
    - Every rule has a unique id, conditions over known questions with
      string or non-empty string-list values, and a result with a known
      urgency and a title
    - Fallback (if present) is a valid result

    Args:
        data: Decoded JSON

    Returns:
        RuleSet

    Raises:
        RuleSetError: Listing every validation failure found
    """
    if not isinstance(data, dict):
        raise RuleSetError("Ruleset validation failed:\n  - top level must be an object")

    errors: List[str] = []

    raw_questions = data.get("questions")
    if not isinstance(raw_questions, list) or not raw_questions:
        errors.append("Missing or empty 'questions' list in ruleset")
        raw_questions = []

    # Pass 1: collect question ids so edges can be cross-checked
    known_ids = []
    for i, raw in enumerate(raw_questions):
        if not isinstance(raw, dict) or not isinstance(raw.get("id"), str) or not raw.get("id"):
            errors.append(f"Question at index {i} missing 'id'")
            continue
        if raw["id"] in known_ids:
            errors.append(f"Duplicate question id '{raw['id']}'")
            continue
        known_ids.append(raw["id"])

    # Pass 2: build questions
    questions = []
    seen = set()
    for raw in raw_questions:
        if not isinstance(raw, dict) or raw.get("id") not in known_ids or raw["id"] in seen:
            continue
        seen.add(raw["id"])
        question = _parse_question(raw, set(known_ids), errors)
        if question is not None:
            questions.append(question)

    entry_id = data.get("entry_question", known_ids[0] if known_ids else None)
    if known_ids and entry_id not in known_ids:
        errors.append(f"Entry question '{entry_id}' is not defined")

    rules = _parse_rules(data.get("rules", []), set(known_ids), errors)

    raw_fallback = data.get("fallback")
    if raw_fallback is None:
        logger.warning("Ruleset has no 'fallback'; using built-in general health fallback")
        fallback = DEFAULT_FALLBACK
    else:
        fallback = _parse_result(raw_fallback, "fallback", errors)

    if errors:
        error_msg = "Ruleset validation failed:\n  - " + "\n  - ".join(errors)
        raise RuleSetError(error_msg)

    logger.info("Ruleset validation passed")

    return RuleSet(
        questions=QuestionGraph(questions, entry_id),
        rules=tuple(rules),
        fallback=fallback,
        version=str(data.get("version", "unknown")),
    )


# =============================================================================
# Questions
# =============================================================================

def _parse_question(raw: dict, known_ids: set, errors: List[str]) -> Optional[Question]:
    q_id = raw["id"]
    error_count = len(errors)

    raw_type = raw.get("type", "single")
    answer_type = ANSWER_TYPE_ALIASES.get(str(raw_type).lower())
    if answer_type is None:
        errors.append(f"Question '{q_id}' has unknown type '{raw_type}'")

    text = raw.get("text", raw.get("question"))
    if not isinstance(text, str) or not text.strip():
        errors.append(f"Question '{q_id}' missing 'text'")

    options = _parse_options(q_id, raw.get("options", []), errors)

    raw_next = raw.get("next") or {}
    if not isinstance(raw_next, dict):
        errors.append(f"Question '{q_id}' has non-object 'next'")
        raw_next = {}

    successors = []
    legacy_default = None
    for key, target in raw_next.items():
        step = _parse_edge(q_id, target, known_ids, errors)
        if key == LEGACY_DEFAULT_KEY and "default_next" not in raw:
            legacy_default = step
            continue
        successors.append((str(key), step))

    if "default_next" in raw:
        default_next = _parse_edge(q_id, raw["default_next"], known_ids, errors)
    else:
        default_next = legacy_default

    if len(errors) > error_count:
        return None

    return Question(
        id=q_id,
        text=text,
        answer_type=answer_type,
        options=options,
        successors=tuple(successors),
        default_next=default_next,
    )


def _parse_options(q_id: str, raw_options: Any, errors: List[str]) -> Tuple[QuestionOption, ...]:
    if not isinstance(raw_options, list):
        errors.append(f"Question '{q_id}' has non-list 'options'")
        return ()

    options = []
    for i, raw in enumerate(raw_options):
        if isinstance(raw, str):
            options.append(QuestionOption(value=raw, label=raw))
        elif isinstance(raw, dict) and isinstance(raw.get("value"), str):
            options.append(QuestionOption(value=raw["value"], label=str(raw.get("label", raw["value"]))))
        else:
            errors.append(f"Question '{q_id}' option at index {i} must be a string or have a 'value'")
    return tuple(options)


def _parse_edge(q_id: str, target: Any, known_ids: set, errors: List[str]) -> NextStep:
    if target is None or target == FINAL_MARKER:
        return TERMINAL
    if not isinstance(target, str):
        errors.append(f"Question '{q_id}' has non-string successor {target!r}")
        return TERMINAL
    if target not in known_ids:
        errors.append(f"Question '{q_id}' routes to undefined question '{target}'")
        return TERMINAL
    return Continue(target)


# =============================================================================
# Rules
# =============================================================================

def _parse_rules(raw_rules: Any, known_ids: set, errors: List[str]) -> List[Rule]:
    if not isinstance(raw_rules, list):
        errors.append("'rules' must be a list")
        return []

    rules = []
    rule_ids = set()

    for i, raw in enumerate(raw_rules):
        if not isinstance(raw, dict) or not isinstance(raw.get("id"), str) or not raw.get("id"):
            errors.append(f"Rule at index {i} missing 'id'")
            continue

        rule_id = raw["id"]
        if rule_id in rule_ids:
            errors.append(f"Duplicate rule id '{rule_id}'")
            continue
        rule_ids.add(rule_id)

        error_count = len(errors)
        conditions = _parse_conditions(rule_id, raw.get("conditions"), known_ids, errors)
        result = _parse_result(raw.get("result"), f"rule '{rule_id}'", errors)

        if len(errors) == error_count:
            rules.append(Rule(id=rule_id, conditions=conditions, result=result))

    return rules


def _parse_conditions(
    rule_id: str,
    raw_conditions: Any,
    known_ids: set,
    errors: List[str]
) -> Tuple[Tuple[str, ExpectedValue], ...]:
    if not isinstance(raw_conditions, dict):
        errors.append(f"Rule '{rule_id}' missing 'conditions' object")
        return ()

    conditions = []
    for question_id, expected in raw_conditions.items():
        if question_id not in known_ids:
            errors.append(f"Rule '{rule_id}' references undefined question '{question_id}'")
            continue

        if isinstance(expected, str):
            conditions.append((question_id, Single(expected)))
        elif (isinstance(expected, list) and expected
              and all(isinstance(value, str) for value in expected)):
            conditions.append((question_id, Many(frozenset(expected))))
        else:
            errors.append(
                f"Rule '{rule_id}' condition on '{question_id}' must be a string "
                f"or a non-empty list of strings"
            )

    return tuple(conditions)


def _parse_result(raw: Any, owner: str, errors: List[str]) -> Optional[SuggestionResult]:
    if not isinstance(raw, dict):
        errors.append(f"{owner} missing 'result' object")
        return None

    try:
        urgency = Urgency(str(raw.get("urgency", "")).lower())
    except ValueError:
        errors.append(f"{owner} has unknown urgency '{raw.get('urgency')}'")
        return None

    title = raw.get("title")
    if not isinstance(title, str) or not title.strip():
        errors.append(f"{owner} missing 'title'")
        return None

    return SuggestionResult(
        urgency=urgency,
        title=title,
        description=str(raw.get("description", "")),
        reasoning=str(raw.get("reasoning", "")),
        action=str(raw.get("action", raw.get("actionText", ""))),
    )
