"""
Tests for utility helpers
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import datetime, timedelta, timezone

from symptom_triage.utils.helpers import (
    generate_record_filename,
    generate_session_id,
    isoformat_utc,
)


def test_session_id_is_full_uuid_hex():
    session_id = generate_session_id()

    assert len(session_id) == 32
    int(session_id, 16)


def test_session_ids_differ():
    assert generate_session_id() != generate_session_id()


def test_record_filename():
    assert generate_record_filename("a3f7e2b9") == "SESSION-a3f7e2b9.json"
    assert generate_record_filename("x", prefix="REC", extension="txt") == "REC-x.txt"


def test_isoformat_utc_converts_offset():
    moment = datetime(2024, 1, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))
    assert isoformat_utc(moment) == "2024-01-01T12:00:00+00:00"
