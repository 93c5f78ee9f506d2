"""
Flask Web Application for the Symptom Triage Engine

Thin HTTP adapter over DialogueManager. Authentication, UI rendering and
notification delivery live outside this app.
"""

from flask import Flask, current_app, jsonify, request
from werkzeug.exceptions import HTTPException
import atexit
import logging
import math
from datetime import timedelta

from symptom_triage.config import TriageConfig
from symptom_triage.core.dialogue_manager import DialogueManager
from symptom_triage.core.ruleset_loader import load_ruleset
from symptom_triage.core.session_sweeper import SessionSweeper
from symptom_triage.errors import (
    InvalidAnswer,
    QuestionNotFound,
    SessionAlreadyComplete,
    SessionNotFound,
)
from symptom_triage.persistence import SuggestionRecordStore

logger = logging.getLogger(__name__)


def create_app(config=None, start_sweeper=True):
    """
    Build the Flask app.

    Loads the ruleset immediately: a missing or malformed asset raises
    here and the app never serves requests.

    Args:
        config: TriageConfig (default: TriageConfig.from_env())
        start_sweeper: Start the background session sweeper

    Returns:
        Flask app with 'triage.manager', 'triage.records' and
        'triage.sweeper' in app.extensions
    """
    config = config or TriageConfig.from_env()

    app = Flask(__name__)
    app.config['TRIAGE'] = config

    ruleset = load_ruleset(config.ruleset_path)
    manager = DialogueManager(ruleset, max_suggestions=config.max_suggestions)
    records = SuggestionRecordStore(config.records_dir)
    sweeper = SessionSweeper(
        manager.store,
        max_age=config.session_max_age,
        interval=config.sweep_interval
    )

    app.extensions['triage.manager'] = manager
    app.extensions['triage.records'] = records
    app.extensions['triage.sweeper'] = sweeper

    if start_sweeper:
        sweeper.start()
        atexit.register(sweeper.stop)

    register_routes(app)

    logger.info(f"Triage app created (ruleset {config.ruleset_path})")
    return app


def _manager():
    return current_app.extensions['triage.manager']


def _records():
    return current_app.extensions['triage.records']


def _error(message, status):
    return jsonify({
        'success': False,
        'error': message
    }), status


def _json_body():
    """Decoded JSON object body, {} when absent, None when not an object"""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        return None
    return data


def _non_negative_int_arg(name, default):
    """Query arg as int >= 0, or None if it is not one"""
    try:
        value = int(request.args.get(name, default))
    except ValueError:
        return None
    return value if value >= 0 else None


def register_routes(app):
    """Attach /api/triage routes and error handlers"""

    @app.errorhandler(SessionNotFound)
    def handle_session_not_found(e):
        return _error('Session not found or expired', 404)

    @app.errorhandler(QuestionNotFound)
    def handle_question_not_found(e):
        return _error(str(e), 400)

    @app.errorhandler(InvalidAnswer)
    def handle_invalid_answer(e):
        return _error(str(e), 400)

    @app.errorhandler(SessionAlreadyComplete)
    def handle_session_complete(e):
        return _error(str(e), 409)

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return _error(e.description, e.code)

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        logger.exception(f"Unhandled error on {request.method} {request.path}")
        return _error('Internal server error', 500)

    @app.route('/api/triage/start', methods=['POST'])
    def start_session():
        """Start a new triage session"""
        started = _manager().start_session()

        return jsonify({
            'success': True,
            'data': started.to_dict()
        })

    @app.route('/api/triage/answer', methods=['POST'])
    def submit_answer():
        """Submit an answer and get the next question or the suggestions"""
        data = _json_body()
        if data is None:
            return _error('Request body must be a JSON object', 400)

        session_id = data.get('session_id')
        question_id = data.get('question_id')
        answer = data.get('answer')

        if not session_id or not question_id or answer is None:
            return _error('session_id, question_id and answer are required', 400)

        if not isinstance(session_id, str) or not isinstance(question_id, str):
            return _error('session_id and question_id must be strings', 400)

        manager = _manager()
        result = manager.submit_answer(session_id, question_id, answer)

        if result.is_complete:
            _save_record(manager, session_id)

        return jsonify({
            'success': True,
            'data': result.to_dict()
        })

    @app.route('/api/triage/session/<session_id>', methods=['GET'])
    def get_session(session_id):
        """Get session details"""
        return jsonify({
            'success': True,
            'data': _manager().describe_session(session_id)
        })

    @app.route('/api/triage/session/<session_id>', methods=['DELETE'])
    def end_session(session_id):
        """End and delete a session (idempotent)"""
        ended = _manager().end_session(session_id)

        return jsonify({
            'success': True,
            'data': {
                'session_id': ended.session_id,
                'existed': ended.existed
            }
        })

    @app.route('/api/triage/stats', methods=['GET'])
    def get_stats():
        """Session statistics"""
        return jsonify({
            'success': True,
            'data': _manager().stats().to_dict()
        })

    @app.route('/api/triage/cleanup', methods=['POST'])
    def cleanup_sessions():
        """Remove sessions older than max_age_minutes (default: configured max age)"""
        data = _json_body()
        if data is None:
            return _error('Request body must be a JSON object', 400)

        config = current_app.config['TRIAGE']
        max_age_minutes = data.get('max_age_minutes', config.session_max_age_minutes)

        if (isinstance(max_age_minutes, bool)
                or not isinstance(max_age_minutes, (int, float))
                or not math.isfinite(max_age_minutes)
                or max_age_minutes < 0):
            return _error('max_age_minutes must be a non-negative number', 400)

        try:
            max_age = timedelta(minutes=max_age_minutes)
        except OverflowError:
            return _error('max_age_minutes is out of range', 400)

        removed = _manager().cleanup(max_age)

        return jsonify({
            'success': True,
            'data': {'removed': removed}
        })

    @app.route('/api/triage/records', methods=['GET'])
    def list_records():
        """Saved suggestion records, newest first"""
        limit = _non_negative_int_arg('limit', 20)
        skip = _non_negative_int_arg('skip', 0)

        if limit is None or skip is None:
            return _error('limit and skip must be non-negative integers', 400)

        urgency = request.args.get('urgency')
        records = _records()

        return jsonify({
            'success': True,
            'data': records.list_records(urgency=urgency, limit=limit, skip=skip),
            'pagination': {
                'limit': limit,
                'skip': skip,
                'total': records.count_records(urgency=urgency)
            }
        })

    @app.route('/api/triage/records/stats', methods=['GET'])
    def get_record_stats():
        """Record totals, broken down by top suggestion urgency"""
        return jsonify({
            'success': True,
            'data': _records().record_stats()
        })

    @app.route('/api/triage/records/<session_id>', methods=['GET'])
    def get_record(session_id):
        """Saved suggestion record for one session"""
        record = _records().load_record(session_id)

        if record is None:
            return _error('Record not found', 404)

        return jsonify({
            'success': True,
            'data': record
        })

    @app.route('/api/triage/records/<session_id>', methods=['DELETE'])
    def delete_record(session_id):
        """Delete the saved record for one session"""
        if not _records().delete_record(session_id):
            return _error('Record not found', 404)

        return jsonify({
            'success': True,
            'data': {'session_id': session_id}
        })


def _save_record(manager, session_id):
    """Hand a completed session to the record store"""
    session = manager.store.find(session_id)
    if session is None:
        logger.warning(f"Session {session_id} removed before its record was saved")
        return None

    return _records().save_record(session)


if __name__ == '__main__':
    config = TriageConfig.from_env()

    # Configure logging
    logging.basicConfig(
        level=config.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    app = create_app(config)

    print("\n" + "="*60)
    print("SYMPTOM TRIAGE ENGINE - HTTP API")
    print("="*60)
    print("\nServer starting on http://localhost:5000")
    print("\nPress Ctrl+C to stop the server")
    print("="*60 + "\n")

    app.run(debug=False, host='0.0.0.0', port=5000)
