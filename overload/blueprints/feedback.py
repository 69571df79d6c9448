from flask import Blueprint, request, jsonify

from ..app import logger, limiter
from .targets import parse_logged_sets
from overload.constants import PLAN_TYPES
from overload.feedback import (
    calculate_workout_rating,
    generate_exercise_feedback,
    generate_workout_feedback,
)
from overload.progression import PerformanceStatus, calculate_exercise_performance

feedback_bp = Blueprint('feedback', __name__)


def _exercise_performance(exercise, position):
    """Roll up an exercise from its logged sets, or accept a precomputed status."""
    if not isinstance(exercise, dict):
        raise ValueError(f"Exercise {position} must be an object")
    if exercise.get('sets'):
        performance = calculate_exercise_performance(parse_logged_sets(exercise['sets']))
    elif exercise.get('status'):
        status = PerformanceStatus(exercise['status'])
        performance = {
            'status': status,
            'overperformed_count': exercise.get('overperformed_count', 0),
            'met_target_count': exercise.get('met_target_count', 0),
            'underperformed_count': exercise.get('underperformed_count', 0),
        }
        performance['total_sets'] = exercise.get(
            'total_sets',
            performance['overperformed_count'] + performance['met_target_count'] + performance['underperformed_count'],
        )
    else:
        raise ValueError(f"Exercise {position} needs 'sets' or 'status'")
    return performance


@feedback_bp.route('/v1/feedback/exercise', methods=['POST'])
@limiter.limit("120 per hour")
def exercise_feedback():
    data = request.get_json(silent=True)
    if not data:
        return jsonify(error="Request body must be JSON"), 400

    plan_type = data.get('plan_type')
    if plan_type not in PLAN_TYPES:
        return jsonify(error=f"'plan_type' must be one of {', '.join(PLAN_TYPES)}"), 400

    try:
        performance = _exercise_performance(data, 0)
    except ValueError as e:
        return jsonify(error=str(e)), 400

    feedback = generate_exercise_feedback(performance, plan_type)
    performance['status'] = performance['status'].value
    return jsonify(performance=performance, feedback=feedback), 200


@feedback_bp.route('/v1/feedback/workout', methods=['POST'])
@limiter.limit("60 per hour")
def workout_feedback():
    data = request.get_json(silent=True)
    if not data:
        return jsonify(error="Request body must be JSON"), 400

    plan_type = data.get('plan_type')
    if plan_type not in PLAN_TYPES:
        return jsonify(error=f"'plan_type' must be one of {', '.join(PLAN_TYPES)}"), 400
    exercises = data.get('exercises')
    if not isinstance(exercises, list):
        return jsonify(error="'exercises' must be a list"), 400

    try:
        performances = [_exercise_performance(e, i) for i, e in enumerate(exercises)]
    except ValueError as e:
        logger.warning(f"Rejected workout feedback request: {e}")
        return jsonify(error=str(e)), 400

    rating = calculate_workout_rating(performances)
    summary = generate_workout_feedback(performances, plan_type, rating)

    per_exercise = []
    for exercise, performance in zip(exercises, performances):
        per_exercise.append({
            'exercise_name': exercise.get('exercise_name'),
            'status': performance['status'].value,
            'feedback': generate_exercise_feedback(performance, plan_type),
        })

    return jsonify(overall_rating=rating, feedback=summary, exercises=per_exercise), 200
