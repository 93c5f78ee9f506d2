"""
Utility helpers for the symptom triage engine

Simple utility functions for ID and filename generation.
"""

import uuid
from datetime import datetime, timezone


def generate_session_id():
    """
    Generate unique session identifier

    Returns:
        str: 32-char UUID4 hex

    Examples:
        >>> generate_session_id()
        'a3f7e2b9c1d2e3f4a5b6c7d8e9f0a1b2'
    """
    return uuid.uuid4().hex


def generate_record_filename(session_id, prefix="SESSION", extension="json"):
    """
    Build the filename a finished session's record is stored under

    Format: {prefix}-{session_id}.{extension}

    Examples:
        >>> generate_record_filename('a3f7e2b9')
        'SESSION-a3f7e2b9.json'
    """
    return f"{prefix}-{session_id}.{extension}"


def isoformat_utc(moment=None):
    """ISO-8601 timestamp in UTC (now if moment is None)"""
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat()
