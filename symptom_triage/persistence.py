"""
Suggestion record persistence.

File-backed stand-in for the downstream document store that finished
triage sessions are written to. The engine itself never calls this; the
adapter (Flask app, console harness) saves a record once a session
completes.
"""

import json
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from symptom_triage.contracts import Suggestion, Urgency
from symptom_triage.core.session_store import Session
from symptom_triage.utils.helpers import generate_record_filename, isoformat_utc

logger = logging.getLogger(__name__)


class SuggestionRecordStore:
    """
    Manages one JSON document per completed session.

    Layout:
        outputs/records/
            SESSION-3f2a...json
            SESSION-9b1c...json

    Design:
    - Write-once (never overwrite)
    - Record holds answers + suggestions + metadata
    """

    def __init__(self, base_dir: str = "outputs/records"):
        """
        Initialize persistence layer.

        Args:
            base_dir: Directory for record files (created if missing)
        """
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"SuggestionRecordStore initialized: {self.base_dir}")

    def _record_path(self, session_id: str) -> Path:
        return self.base_dir / generate_record_filename(session_id)

    def build_record(self, session: Session, suggestions: Sequence[Suggestion]) -> dict:
        """
        Build the JSON document for a session.

        Metadata:
            answered_questions: Number of recorded answers
            session_duration_seconds: started_at -> completed_at (or now)
            rules_triggered: source_rule_id of every rule-backed suggestion
        """
        finished_at = session.completed_at
        duration = None
        if finished_at is not None:
            duration = round((finished_at - session.started_at).total_seconds(), 3)

        return {
            'session_id': session.id,
            'started_at': isoformat_utc(session.started_at),
            'completed_at': isoformat_utc(finished_at) if finished_at else None,
            'saved_at': isoformat_utc(),
            'user_responses': session.export_answers(),
            'suggestions': [s.to_dict() for s in suggestions],
            'metadata': {
                'answered_questions': len(session.answers),
                'session_duration_seconds': duration,
                'rules_triggered': [
                    s.source_rule_id for s in suggestions if s.source_rule_id is not None
                ],
            },
        }

    def save_record(self, session: Session, suggestions: Optional[Sequence[Suggestion]] = None) -> str:
        """
        Save a session's record.

        Args:
            session: Completed session
            suggestions: Suggestions to store (default: session.suggestions)

        Returns:
            str: Absolute path to saved file

        Raises:
            ValueError: If there are no suggestions to store
            FileExistsError: If a record for this session already exists
        """
        suggestions = list(suggestions if suggestions is not None else (session.suggestions or []))
        if not suggestions:
            raise ValueError(f"Session {session.id} has no suggestions to save")

        filepath = self._record_path(session.id)

        # Check for double-submit
        if filepath.exists():
            raise FileExistsError(
                f"Record already exists: {filepath}. "
                f"This indicates a double-submit for session {session.id}."
            )

        record = self.build_record(session, suggestions)

        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(record, f, indent=2, ensure_ascii=False)

        abs_path = str(filepath.absolute())
        logger.info(f"Saved record for session {session.id}: {filepath.name}")

        return abs_path

    def load_record(self, session_id: str) -> Optional[dict]:
        """
        Load a session's record.

        Returns:
            dict if the record exists, None otherwise
        """
        filepath = self._record_path(session_id)

        if not filepath.exists():
            logger.warning(f"Record not found for session {session_id}")
            return None

        with open(filepath, 'r', encoding='utf-8') as f:
            return json.load(f)

    def record_exists(self, session_id: str) -> bool:
        return self._record_path(session_id).exists()

    def delete_record(self, session_id: str) -> bool:
        """
        Delete a session's record.

        Returns:
            bool: True if a record was removed, False if none existed
        """
        filepath = self._record_path(session_id)

        if not filepath.exists():
            return False

        filepath.unlink()
        logger.info(f"Deleted record for session {session_id}")
        return True

    def _load_all(self, urgency: Optional[str] = None) -> List[dict]:
        records = []
        for filepath in self.base_dir.glob(generate_record_filename("*")):
            with open(filepath, 'r', encoding='utf-8') as f:
                records.append(json.load(f))

        if urgency is not None:
            records = [
                record for record in records
                if any(s.get('urgency') == urgency for s in record.get('suggestions', []))
            ]
        return records

    def list_records(self, urgency: Optional[str] = None, limit: int = 20, skip: int = 0) -> List[dict]:
        """
        List saved records, newest first.

        Args:
            urgency: Keep only records with at least one suggestion of
                this urgency ('low' / 'medium' / 'high')
            limit: Maximum records returned (>= 0)
            skip: Records skipped before collecting (>= 0)

        Returns:
            list[dict]: Record documents

        Raises:
            ValueError: If limit or skip is negative
        """
        if limit < 0 or skip < 0:
            raise ValueError(f"limit and skip must be non-negative, got limit={limit}, skip={skip}")

        records = self._load_all(urgency)
        records.sort(key=lambda record: record.get('saved_at') or '', reverse=True)
        return records[skip:skip + limit]

    def count_records(self, urgency: Optional[str] = None) -> int:
        return len(self._load_all(urgency))

    def record_stats(self) -> dict:
        """
        Totals across saved records.

        by_urgency counts each record once, under the urgency of its top
        (first-ranked) suggestion.
        """
        by_urgency = {urgency.value: 0 for urgency in Urgency}
        records = self._load_all()

        for record in records:
            suggestions = record.get('suggestions') or []
            if suggestions and suggestions[0].get('urgency') in by_urgency:
                by_urgency[suggestions[0]['urgency']] += 1

        return {
            'total_records': len(records),
            'by_urgency': by_urgency,
        }
