#!/usr/bin/env python3
"""
Spelling Practice App - Flask JSON API
Request/response boundary for the spelling session engine. Error kinds raised
by the core are translated into HTTP status codes here.
"""

import logging
import os
from typing import Any, Dict

from flask import Flask, jsonify, request

from llm_spelling_practice import config, db, session as practice_session
from llm_spelling_practice.errors import NotFoundError, SpellingError, ValidationError

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    "validation": 400,
    "not_found": 404,
    "state_conflict": 409,
    "store": 503,
}

app = Flask(__name__)
app.secret_key = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')


@app.before_request
def initialize_app() -> None:
    """Initialize the database if needed."""
    if not hasattr(app, '_database_initialized'):
        if not db.is_db_initialized():
            db.init_db()
            logger.info("Database initialized on startup")
        setattr(app, "_database_initialized", True)


@app.errorhandler(SpellingError)
def handle_spelling_error(error: SpellingError) -> Any:
    status = STATUS_BY_KIND.get(error.kind, 500)
    if status >= 500:
        logger.error("Request failed: %s", error.message)
    else:
        logger.info("Request rejected (%s): %s", error.kind, error.message)
    return jsonify(error.to_dict()), status


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("request body must be a JSON object")
    return data


@app.route('/api/session/start', methods=['POST'])
def api_start_session() -> Any:
    """START {learnerId, wordIds?, listId?, assessment?, mode?}"""
    return jsonify(practice_session.handle_action("START", _json_body()))


@app.route('/api/session/action', methods=['POST'])
def api_session_action() -> Any:
    """SUBMIT / COMPLETE_MINISET / FINISH, as {type, payload}."""
    data = _json_body()
    action_type = data.get('type')
    if action_type not in ('SUBMIT', 'COMPLETE_MINISET', 'FINISH'):
        raise ValidationError(f"unknown action type: {action_type}")
    return jsonify(practice_session.handle_action(action_type, data.get('payload') or {}))


@app.route('/api/kid/level', methods=['POST'])
def api_set_kid_level() -> Any:
    """Explicit level override, e.g. applying an assessment's suggested level."""
    data = _json_body()
    kid_id = data.get('learnerId')
    level = data.get('level')
    if not isinstance(kid_id, int) or not isinstance(level, int) or isinstance(level, bool):
        raise ValidationError("learnerId and level must be integers")
    kid = db.apply_level_override(kid_id, level)
    return jsonify({'learnerId': kid.id, 'level': kid.level, 'rating': kid.rating})


@app.route('/api/kids/<int:kid_id>/progress')
def api_kid_progress(kid_id: int) -> Any:
    return jsonify(db.get_kid_progress(kid_id))


@app.route('/api/kids/<int:kid_id>/words/<int:word_id>/mistakes')
def api_word_mistakes(kid_id: int, word_id: int) -> Any:
    if db.get_kid(kid_id) is None:
        raise NotFoundError(f"learner {kid_id} not found")
    return jsonify({
        'wordId': word_id,
        'mastery': db.get_mastery_score(kid_id, word_id),
        'mistakes': db.get_word_mistake_stats(kid_id, word_id),
    })


@app.route('/api/share/<session_id>')
def api_share_session(session_id: str) -> Any:
    """Read-only results of a completed session."""
    shared = db.get_public_session(session_id)
    if shared is None:
        raise NotFoundError(f"session {session_id} not found")
    return jsonify(shared)


if __name__ == '__main__':
    import argparse

    parser = argparse.ArgumentParser(description='Spelling Practice App')
    parser.add_argument('--host', default='127.0.0.1', help='Host IP to bind to (default: 127.0.0.1)')
    parser.add_argument('--port', type=int, default=5000, help='Port to bind to (default: 5000)')
    parser.add_argument('--debug', action='store_true', help='Enable debug mode')

    args = parser.parse_args()
    config.configure_logging()

    if not db.is_db_initialized():
        db.init_db()
        logger.info("Database initialized")

    logger.info("Starting server on http://%s:%s", args.host, args.port)
    app.run(debug=args.debug or config.DEBUG_MODE, host=args.host, port=args.port)
