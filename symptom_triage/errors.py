"""
Exception types raised by the triage engine.

Taxonomy:
- Startup (fatal): RuleSetError
- Caller errors: SessionNotFound, QuestionNotFound, InvalidAnswer,
  SessionAlreadyComplete

Caller errors never leave a session partially updated.
"""


class TriageError(Exception):
    """Base class for all triage engine errors."""


class RuleSetError(TriageError, ValueError):
    """Rule asset is malformed. Raised at load time only."""


class SessionNotFound(TriageError, KeyError):
    """Session id is unknown (never created, ended, or swept)."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")

    def __str__(self) -> str:
        return self.args[0]


class QuestionNotFound(TriageError, KeyError):
    """Question id does not resolve in the question graph."""

    def __init__(self, question_id: str):
        self.question_id = question_id
        super().__init__(f"Question not found: {question_id}")

    def __str__(self) -> str:
        return self.args[0]


class InvalidAnswer(TriageError, ValueError):
    """Answer is missing or its shape does not fit the question."""


class SessionAlreadyComplete(TriageError):
    """Session reached the terminal state and accepts no more answers."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session already complete: {session_id}")
