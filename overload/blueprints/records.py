from flask import Blueprint, request, jsonify
import math

from ..app import logger, limiter
from overload.progression import classify_progression_trend
from overload.records import (
    check_set_pr,
    estimated_1rm,
    get_prs_for_session,
    get_recent_prs,
    session_best_e1rms,
)

records_bp = Blueprint('records', __name__)


def _is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _list_of_objects(value, name):
    if not isinstance(value, list) or not all(isinstance(v, dict) for v in value):
        raise ValueError(f"'{name}' must be a list of objects")
    return value


def _with_nested_objects(items, key, name):
    """A list of objects whose optional ``key`` holds a list of objects too."""
    _list_of_objects(items, name)
    for item in items:
        _list_of_objects(item.get(key, []), f"{name}[].{key}")
    return items


@records_bp.route('/v1/records/e1rm', methods=['POST'])
@limiter.limit("300 per hour")
def e1rm():
    data = request.get_json(silent=True)
    if not data or 'weight' not in data or 'reps' not in data:
        return jsonify(error="Missing 'weight' or 'reps' in request body"), 400
    weight, reps = data['weight'], data['reps']
    if not _is_number(weight) or not _is_number(reps):
        return jsonify(error="'weight' and 'reps' must be numeric"), 400
    if weight <= 0:
        return jsonify(error="'weight' must be positive"), 400

    return jsonify(weight=weight, reps=reps, estimated_1rm=round(estimated_1rm(weight, reps), 2)), 200


@records_bp.route('/v1/records/check-set', methods=['POST'])
@limiter.limit("300 per hour")
def check_set():
    data = request.get_json(silent=True)
    if not data or 'weight' not in data or 'reps' not in data:
        return jsonify(error="Missing 'weight' or 'reps' in request body"), 400
    if not _is_number(data['weight']) or not _is_number(data['reps']):
        return jsonify(error="'weight' and 'reps' must be numeric"), 400

    try:
        previous_sets = _list_of_objects(data.get('previous_sets', []), 'previous_sets')
        current_sets = _list_of_objects(data.get('current_sets', []), 'current_sets')
        status = check_set_pr(data['weight'], data['reps'], previous_sets, current_sets)
    except (TypeError, ValueError) as e:
        return jsonify(error=str(e)), 400
    return jsonify(status), 200


@records_bp.route('/v1/records/session', methods=['POST'])
@limiter.limit("60 per hour")
def session_records():
    """PRs hit in a workout that has not been saved yet."""
    data = request.get_json(silent=True)
    if not data or 'exercises' not in data:
        return jsonify(error="Missing 'exercises' in request body"), 400

    previous = data.get('previous_sets_by_exercise') or {}
    if not isinstance(previous, dict):
        return jsonify(error="'previous_sets_by_exercise' must be an object"), 400

    try:
        exercises = _with_nested_objects(data['exercises'], 'sets', 'exercises')
        for history in previous.values():
            _list_of_objects(history, 'previous_sets_by_exercise')
        prs = get_prs_for_session(exercises, previous)
    except ValueError as e:
        return jsonify(error=str(e)), 400
    except (KeyError, TypeError) as e:
        logger.warning(f"Rejected session PR request: {e!r}")
        return jsonify(error="Each exercise needs 'exercise_name' and sets with numeric 'weight' and 'reps'"), 400
    return jsonify(prs=prs), 200


@records_bp.route('/v1/records/recent', methods=['POST'])
@limiter.limit("60 per hour")
def recent_records():
    data = request.get_json(silent=True)
    if not data or 'sessions' not in data:
        return jsonify(error="Missing 'sessions' in request body"), 400

    limit = data.get('limit', 5)
    if not isinstance(limit, int) or isinstance(limit, bool) or limit < 0:
        return jsonify(error="'limit' must be a non-negative integer"), 400

    try:
        sessions = _with_nested_objects(data['sessions'], 'logs', 'sessions')
        prs = get_recent_prs(sessions, limit)
    except ValueError as e:
        return jsonify(error=str(e)), 400
    except (KeyError, TypeError) as e:
        logger.warning(f"Rejected recent PR request: {e!r}")
        return jsonify(error="Each session needs 'template_day_id', 'workout_date' and 'logs'"), 400
    return jsonify(prs=prs), 200


@records_bp.route('/v1/progression/trend', methods=['POST'])
@limiter.limit("60 per hour")
def progression_trend():
    data = request.get_json(silent=True)
    if not data:
        return jsonify(error="Request body must be JSON"), 400

    try:
        if 'session_e1rms' in data:
            values = data['session_e1rms']
            if not isinstance(values, list) or not all(_is_number(v) for v in values):
                raise ValueError("'session_e1rms' must be a list of numbers")
        elif 'sessions' in data and data.get('exercise_name'):
            sessions = _with_nested_objects(data['sessions'], 'logs', 'sessions')
            values = session_best_e1rms(sessions, data['exercise_name'])
        else:
            raise ValueError("Provide 'session_e1rms', or 'sessions' with 'exercise_name'")
    except (KeyError, TypeError, ValueError) as e:
        return jsonify(error=str(e)), 400

    result = classify_progression_trend(values)
    if result is None:
        return jsonify(trend=None, percent_change=None, message="Not enough sessions to detect a trend.",
                       sessions=len(values)), 200
    return jsonify(trend=result['trend'].value, percent_change=result['percent_change'],
                   message=result['message'], sessions=len(values)), 200
