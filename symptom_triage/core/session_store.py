"""
Session Store - concurrent registry of active triage sessions

Responsibilities:
- Create sessions positioned on the entry question
- Retrieve and delete sessions by id
- Sweep sessions older than a maximum age
- Report session statistics

Design principles:
- Store = dumb container (no routing or rule logic)
- One lock guards the id -> session map; each session carries its own lock
- Mutations of a single session are serialized via locked(); different
  sessions never contend on each other's lock
- Clock is injectable so age-based behaviour is testable

Lock ordering: the map lock is never held while waiting on a session lock.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterator, List, Optional

from symptom_triage.contracts import AnswerValue, Suggestion
from symptom_triage.errors import SessionNotFound
from symptom_triage.utils.helpers import generate_session_id

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Session:
    """
    One user's triage dialogue.

    Attributes:
        id: Session identifier
        current_question_id: Question awaiting an answer (last question
            asked once complete)
        answers: question_id -> answer, in the order answered
        started_at: Creation time (UTC)
        is_complete: True once the dialogue reached terminal
        completed_at: Completion time (UTC), None while in progress
        suggestions: Evaluator output, set on completion

    Invariant: while is_complete is False, current_question_id references
    a question in the graph the session was created against.
    """
    id: str
    current_question_id: str
    started_at: datetime
    answers: Dict[str, AnswerValue] = field(default_factory=dict)
    is_complete: bool = False
    completed_at: Optional[datetime] = None
    suggestions: Optional[List[Suggestion]] = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def age(self, now: datetime) -> timedelta:
        return now - self.started_at

    def summary(self) -> dict:
        """JSON-safe session description (no answer values)."""
        return {
            'session_id': self.id,
            'current_question_id': self.current_question_id,
            'is_complete': self.is_complete,
            'started_at': self.started_at.isoformat(),
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'answers_count': len(self.answers),
        }

    def export_answers(self) -> dict:
        """Answers as plain JSON values (multi-choice as sorted lists)."""
        return {question_id: answer.to_json() for question_id, answer in self.answers.items()}


@dataclass(frozen=True)
class SessionStats:
    active_sessions: int
    completed_sessions: int
    in_progress_sessions: int

    @property
    def total_sessions(self) -> int:
        return self.active_sessions

    def to_dict(self) -> dict:
        return {
            'active_sessions': self.active_sessions,
            'completed_sessions': self.completed_sessions,
            'in_progress_sessions': self.in_progress_sessions,
            'total_sessions': self.total_sessions,
        }


class SessionStore:
    """Thread-safe in-memory session registry"""

    def __init__(self, entry_question_id: str, clock: Callable[[], datetime] = utc_now):
        """
        Args:
            entry_question_id: Question every new session starts on
            clock: Returns the current time (timezone-aware UTC)
        """
        self.entry_question_id = entry_question_id
        self._clock = clock
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def now(self) -> datetime:
        return self._clock()

    # ========================
    # Lifecycle
    # ========================

    def create(self) -> Session:
        """
        Create and register a new session.

        Returns:
            Session positioned on the entry question
        """
        session = Session(
            id=generate_session_id(),
            current_question_id=self.entry_question_id,
            started_at=self._clock(),
        )

        with self._lock:
            # uuid4 collisions are not expected; regenerate rather than overwrite
            while session.id in self._sessions:
                session.id = generate_session_id()
            self._sessions[session.id] = session

        logger.info(f"Created session {session.id}")
        return session

    def get(self, session_id: str) -> Session:
        """
        Get session by id.

        Raises:
            SessionNotFound: If session_id is unknown
        """
        session = self.find(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def find(self, session_id: str) -> Optional[Session]:
        """Session by id, or None. Non-string ids never match."""
        if not isinstance(session_id, str):
            return None
        with self._lock:
            return self._sessions.get(session_id)

    def contains(self, session_id: str) -> bool:
        if not isinstance(session_id, str):
            return False
        with self._lock:
            return session_id in self._sessions

    def delete(self, session_id: str) -> bool:
        """
        Remove session. Idempotent.

        Returns:
            bool: True if a session was removed, False if it was absent
        """
        if not isinstance(session_id, str):
            return False

        with self._lock:
            removed = self._sessions.pop(session_id, None)

        if removed is None:
            logger.debug(f"Delete of unknown session {session_id} ignored")
            return False

        logger.info(f"Deleted session {session_id}")
        return True

    @contextmanager
    def locked(self, session_id: str) -> Iterator[Session]:
        """
        Hold a session's lock for the duration of the block.

        After the lock is acquired, the session is re-checked against the
        registry: a session removed while the caller was waiting raises
        SessionNotFound instead of being mutated.

        Raises:
            SessionNotFound: If the session is unknown or was removed
        """
        session = self.get(session_id)

        with session.lock:
            if self.find(session_id) is not session:
                raise SessionNotFound(session_id)
            yield session

    # ========================
    # Cleanup and reporting
    # ========================

    def sweep(self, max_age: timedelta) -> int:
        """
        Remove every session strictly older than max_age.

        Completion state is ignored. A session exactly max_age old survives.

        Args:
            max_age: Age threshold

        Returns:
            int: Number of sessions removed
        """
        now = self._clock()

        with self._lock:
            expired = [
                session_id for session_id, session in self._sessions.items()
                if session.age(now) > max_age
            ]
            for session_id in expired:
                del self._sessions[session_id]

        if expired:
            logger.info(f"Swept {len(expired)} session(s) older than {max_age}")
        return len(expired)

    def stats(self) -> SessionStats:
        with self._lock:
            sessions = list(self._sessions.values())

        completed = sum(1 for session in sessions if session.is_complete)
        return SessionStats(
            active_sessions=len(sessions),
            completed_sessions=completed,
            in_progress_sessions=len(sessions) - completed,
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
