"""
Result types returned by DialogueManager

These are the ONLY return types from the engine's public operations.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from symptom_triage.contracts import Question, Suggestion


@dataclass(frozen=True)
class SessionStarted:
    """
    Returned by: StartSession / start_session()

    Attributes:
        session_id: New session identifier
        first_question: Entry question the caller should display
    """
    session_id: str
    first_question: Question

    def to_dict(self) -> Dict[str, Any]:
        return {
            'session_id': self.session_id,
            'first_question': self.first_question.to_dict(),
        }


@dataclass(frozen=True)
class TurnResult:
    """
    Outcome of one answered question.

    Returned by: SubmitAnswer / submit_answer() / advance()

    Exactly one of next_question / suggestions is set:
    - is_complete=False: next_question is the question to ask next
    - is_complete=True: suggestions holds 1..N ranked suggestions

    Attributes:
        session_id: Session the answer was recorded on
        is_complete: Whether the dialogue reached terminal
        next_question: Next question (in progress only)
        suggestions: Ranked suggestions (complete only)
    """
    session_id: str
    is_complete: bool
    next_question: Optional[Question] = None
    suggestions: List[Suggestion] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'session_id': self.session_id,
            'is_complete': self.is_complete,
        }
        if self.is_complete:
            data['suggestions'] = [s.to_dict() for s in self.suggestions]
        else:
            data['next_question'] = self.next_question.to_dict()
        return data


@dataclass(frozen=True)
class SessionEnded:
    """
    Returned by: EndSession / end_session()

    existed is False when the session was already gone (not an error).
    """
    session_id: str
    existed: bool


@dataclass(frozen=True)
class IllegalCommand:
    """
    Command rejected by handle() (not a recognised command type).

    Attributes:
        reason: Human-readable explanation
        command_type: Name of rejected command type
    """
    reason: str
    command_type: str
