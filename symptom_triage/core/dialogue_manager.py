"""
Dialogue Manager - per-session triage state machine

Responsibilities:
- Start sessions on the entry question
- Record answers and route to the next question
- Mark sessions complete and run the rule evaluator at terminal
- End sessions, report stats, trigger cleanup

State machine (per session):

    AWAITING_ANSWER(entry) -> AWAITING_ANSWER(next) -> ... -> COMPLETE

Design principles:
- Thin orchestration layer (routing in QuestionGraph, matching in
  RuleEvaluator, storage in SessionStore)
- Validate everything before mutating anything: a failed step leaves the
  session exactly as it was
- Each step runs under the session's own lock; different sessions never
  block each other
"""

import logging
from datetime import timedelta
from typing import Any, Optional

from symptom_triage.commands import EndSession, StartSession, SubmitAnswer
from symptom_triage.contracts import Continue
from symptom_triage.core.rule_evaluator import DEFAULT_MAX_SUGGESTIONS, RuleEvaluator
from symptom_triage.core.ruleset_loader import RuleSet
from symptom_triage.core.session_store import SessionStats, SessionStore
from symptom_triage.errors import SessionAlreadyComplete
from symptom_triage.results import IllegalCommand, SessionEnded, SessionStarted, TurnResult
from symptom_triage.utils.answer_parsing import coerce_answer

logger = logging.getLogger(__name__)


class DialogueManager:
    """
    Orchestrates triage dialogues over a shared, read-only ruleset.

    One instance serves every session; all per-session state lives in the
    SessionStore.
    """

    def __init__(
        self,
        ruleset: RuleSet,
        session_store: Optional[SessionStore] = None,
        evaluator: Optional[RuleEvaluator] = None,
        max_suggestions: int = DEFAULT_MAX_SUGGESTIONS
    ):
        """
        Args:
            ruleset: Loaded RuleSet (questions, rules, fallback)
            session_store: Store to use (default: new in-memory store on
                the ruleset's entry question)
            evaluator: Evaluator to use (default: built from ruleset)
            max_suggestions: Cap passed to the default evaluator

        Raises:
            TypeError: If evaluator lacks a callable evaluate()
            ValueError: If session_store starts on a question the ruleset
                doesn't define
        """
        self.ruleset = ruleset
        self.questions = ruleset.questions
        self.store = session_store or SessionStore(ruleset.entry_question_id)
        self.evaluator = evaluator or RuleEvaluator.from_ruleset(ruleset, max_suggestions=max_suggestions)

        self._validate_modules()

        logger.info(
            f"Dialogue Manager initialized (entry question '{self.store.entry_question_id}', "
            f"{len(self.ruleset.rules)} rules)"
        )

    def _validate_modules(self):
        """Validate collaborator interfaces"""
        if not callable(getattr(self.evaluator, 'evaluate', None)):
            raise TypeError("evaluator must have callable evaluate() method")

        if self.store.entry_question_id not in self.questions:
            raise ValueError(
                f"session_store entry question '{self.store.entry_question_id}' "
                f"is not defined in the ruleset"
            )

    # =========================================================================
    # Command dispatch
    # =========================================================================

    def handle(self, command):
        """
        Dispatch a command to the matching operation.

        Returns:
            SessionStarted | TurnResult | SessionEnded, or IllegalCommand
            for an unrecognised command type

        Raises:
            Whatever the underlying operation raises (SessionNotFound, ...)
        """
        if isinstance(command, StartSession):
            return self.start_session()

        if isinstance(command, SubmitAnswer):
            return self.submit_answer(command.session_id, command.question_id, command.answer)

        if isinstance(command, EndSession):
            return self.end_session(command.session_id)

        logger.warning(f"Rejected unknown command {type(command).__name__}")
        return IllegalCommand(
            reason="Unsupported command",
            command_type=type(command).__name__
        )

    # =========================================================================
    # Operations
    # =========================================================================

    def start_session(self) -> SessionStarted:
        """Create a session and return its first question"""
        session = self.store.create()
        first_question = self.questions.lookup(session.current_question_id)
        return SessionStarted(session_id=session.id, first_question=first_question)

    def submit_answer(self, session_id: str, question_id: str, answer: Any) -> TurnResult:
        """Public name for advance()"""
        return self.advance(session_id, question_id, answer)

    def advance(self, session_id: str, question_id: str, answer: Any) -> TurnResult:
        """
        Record an answer and move the session forward one step.

        Re-answering the current question overwrites the previous answer.
        Answering a question other than the current one is not prevented;
        routing continues from whichever question was answered.

        Args:
            session_id: Session to advance
            question_id: Question being answered
            answer: Raw answer (string, or list of strings for multi-choice)

        Returns:
            TurnResult with next_question, or with suggestions when the
            dialogue reached terminal

        Raises:
            SessionNotFound: Unknown or non-string session id (or removed mid-call)
            QuestionNotFound: Unknown or non-string question id
            InvalidAnswer: Missing answer or wrong shape for the question
            SessionAlreadyComplete: Session already reached terminal
        """
        self.store.get(session_id)
        question = self.questions.lookup(question_id)
        answer_value = coerce_answer(question, answer)

        with self.store.locked(session_id) as session:
            if session.is_complete:
                raise SessionAlreadyComplete(session_id)

            next_step = self.questions.resolve_next(question, answer_value)

            if isinstance(next_step, Continue):
                session.answers[question_id] = answer_value
                session.current_question_id = next_step.question_id

                logger.debug(f"Session {session_id}: {question_id} -> {next_step.question_id}")

                return TurnResult(
                    session_id=session_id,
                    is_complete=False,
                    next_question=self.questions.lookup(next_step.question_id),
                )

            # Terminal: evaluate before mutating so a failure leaves no trace
            final_answers = dict(session.answers)
            final_answers[question_id] = answer_value
            suggestions = self.evaluator.evaluate(final_answers)

            session.answers = final_answers
            session.current_question_id = question_id
            session.is_complete = True
            session.completed_at = self.store.now()
            session.suggestions = list(suggestions)

        logger.info(
            f"Session {session_id} complete after {len(final_answers)} answer(s): "
            f"{len(suggestions)} suggestion(s), top urgency {suggestions[0].urgency.value}"
        )

        return TurnResult(
            session_id=session_id,
            is_complete=True,
            suggestions=list(suggestions),
        )

    def end_session(self, session_id: str) -> SessionEnded:
        """Delete a session. No error if it is already gone."""
        existed = self.store.delete(session_id)
        return SessionEnded(session_id=session_id, existed=existed)

    def describe_session(self, session_id: str) -> dict:
        """
        Session summary for callers.

        Raises:
            SessionNotFound: Unknown session
        """
        with self.store.locked(session_id) as session:
            return session.summary()

    def stats(self) -> SessionStats:
        return self.store.stats()

    def cleanup(self, max_age: timedelta) -> int:
        """Sweep sessions older than max_age. Returns number removed."""
        return self.store.sweep(max_age)
