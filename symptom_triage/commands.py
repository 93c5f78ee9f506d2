"""
Command types for DialogueManager.handle()

Each command maps to one public engine operation. Adapters (Flask, the
console harness) may either build commands and call handle(), or call
the operation methods directly.
"""

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class StartSession:
    """
    Begin a new triage dialogue.

    Returns: SessionStarted with session id + first question.
    """
    pass


@dataclass(frozen=True)
class SubmitAnswer:
    """
    Answer one question of an existing session.

    answer is the raw decoded JSON value (string or list of strings).
    Returns: TurnResult with the next question, or the suggestions.
    """
    session_id: str
    question_id: str
    answer: Any


@dataclass(frozen=True)
class EndSession:
    """
    Delete a session. Idempotent.

    Returns: SessionEnded.
    """
    session_id: str


# Command union type for type hints
Command = Union[StartSession, SubmitAnswer, EndSession]
