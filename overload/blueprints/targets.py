from flask import Blueprint, request, jsonify, current_app
import math
from datetime import date

from ..app import get_redis, logger, limiter
from overload.constants import PLAN_TYPES, UNITS
from overload.deload import apply_deload, get_deload_multiplier, is_in_deload_period
from overload.feedback import get_target_explanation
from overload.plates import unit_defaults
from overload.progression import (
    calculate_exercise_performance,
    calculate_set_target,
    calculate_targets,
    evaluate_set_performance,
    get_default_plan_settings,
    merge_plan_settings,
    tally_session_status,
    underperformance_streak,
)
from overload.stores import DeloadStateStore
from overload.target_strategies import (
    TargetStrategy,
    calculate_strategy_target,
    get_preset_target_strategy,
)

targets_bp = Blueprint('targets', __name__)

SET_FIELDS = ('weight', 'reps', 'rpe')
TARGET_FIELDS = ('target_weight', 'target_reps', 'target_rpe')


def _is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def parse_logged_set(raw, position=0):
    """Validate one logged set; targets are optional (first week has none)."""
    if not isinstance(raw, dict):
        raise ValueError(f"Set {position} must be an object")
    parsed = {}
    for field in SET_FIELDS:
        if not _is_number(raw.get(field)):
            raise ValueError(f"Set {position} is missing a numeric '{field}'")
        parsed[field] = raw[field]
    for field in TARGET_FIELDS:
        value = raw.get(field)
        if value is not None and not _is_number(value):
            raise ValueError(f"Set {position} has a non-numeric '{field}'")
        parsed[field] = value
    return parsed


def parse_logged_sets(raw_sets):
    if not isinstance(raw_sets, list):
        raise ValueError("'sets' must be a list")
    return [parse_logged_set(s, i) for i, s in enumerate(raw_sets)]


def _unit_from(data):
    unit = str(data.get('unit') or current_app.config['DEFAULT_UNIT']).lower()
    if unit not in UNITS:
        raise ValueError(f"'unit' must be one of {', '.join(UNITS)}")
    return unit


def _plan_settings_from(data, plan_type):
    overrides = data.get('plan_settings')
    if overrides is not None and not isinstance(overrides, dict):
        raise ValueError("'plan_settings' must be an object")
    return merge_plan_settings(plan_type, overrides)


def _streak_from(data):
    if data.get('previous_statuses') is not None:
        statuses = data['previous_statuses']
        if not isinstance(statuses, list):
            raise ValueError("'previous_statuses' must be a list")
        return underperformance_streak(statuses)
    streak = data.get('consecutive_underperformance', 0)
    if not isinstance(streak, int) or isinstance(streak, bool) or streak < 0:
        raise ValueError("'consecutive_underperformance' must be a non-negative integer")
    return streak


def _deload_active(data):
    if data.get('deload_active') is True:
        return True
    user_id = data.get('user_id')
    if not user_id:
        return False
    active_until = DeloadStateStore(get_redis()).get_active_until(str(user_id))
    return is_in_deload_period(active_until, date.today())


@targets_bp.route('/v1/targets/exercise', methods=['POST'])
@limiter.limit("120 per hour")
def exercise_targets():
    data = request.get_json(silent=True)
    if not data:
        return jsonify(error="Request body must be JSON"), 400

    plan_type = data.get('plan_type')
    if plan_type not in PLAN_TYPES:
        return jsonify(error=f"'plan_type' must be one of {', '.join(PLAN_TYPES)}"), 400

    try:
        previous_sets = parse_logged_sets(data.get('previous_sets') or [])
        settings = _plan_settings_from(data, plan_type)
        streak = _streak_from(data)
        unit = _unit_from(data)
    except ValueError as e:
        logger.warning(f"Rejected exercise target request: {e}")
        return jsonify(error=str(e)), 400

    increment = unit_defaults(unit)['rounding_increment']
    targets = calculate_targets(previous_sets, plan_type, settings, streak, increment)
    status = tally_session_status(previous_sets) if previous_sets else None

    deload_applied = False
    if targets['target_weight'] is not None and _deload_active(data):
        targets = apply_deload(targets, get_deload_multiplier(), increment)
        deload_applied = True

    return jsonify(
        plan_type=plan_type,
        unit=unit,
        performance_status=status.value if status else None,
        consecutive_underperformance=streak,
        deload_applied=deload_applied,
        explanation=get_target_explanation(status, plan_type, streak),
        **targets,
    ), 200


@targets_bp.route('/v1/targets/set', methods=['POST'])
@limiter.limit("300 per hour")
def set_target():
    data = request.get_json(silent=True)
    if not data:
        return jsonify(error="Request body must be JSON"), 400

    plan_type = data.get('plan_type')
    if plan_type not in PLAN_TYPES:
        return jsonify(error=f"'plan_type' must be one of {', '.join(PLAN_TYPES)}"), 400
    if 'previous_set' not in data:
        return jsonify(error="Missing 'previous_set' in request body"), 400

    try:
        previous_set = parse_logged_set(data['previous_set'])
        settings = _plan_settings_from(data, plan_type)
        unit = _unit_from(data)
    except ValueError as e:
        return jsonify(error=str(e)), 400

    targets = calculate_set_target(previous_set, plan_type, settings, unit_defaults(unit)['rounding_increment'])
    status = None
    if all(previous_set[f] for f in TARGET_FIELDS):
        status = evaluate_set_performance(
            previous_set['weight'], previous_set['reps'], previous_set['rpe'],
            previous_set['target_weight'], previous_set['target_reps'], previous_set['target_rpe'],
        )

    return jsonify(
        plan_type=plan_type,
        unit=unit,
        performance_status=status.value if status else None,
        **targets,
    ), 200


@targets_bp.route('/v1/targets/program', methods=['POST'])
@limiter.limit("120 per hour")
def program_target():
    """Targets for templates created from a preset program (5/3/1, linear, GZCLP, Texas Method)."""
    data = request.get_json(silent=True)
    if not data:
        return jsonify(error="Request body must be JSON"), 400

    strategy = data.get('strategy')
    if strategy is None and data.get('preset_id'):
        strategy = get_preset_target_strategy(data['preset_id'])
        if strategy is None:
            return jsonify(error=f"Unknown preset '{data['preset_id']}'"), 400
    if strategy is None:
        return jsonify(error="Provide 'strategy' or 'preset_id'"), 400

    try:
        strategy = TargetStrategy(strategy)
    except ValueError:
        return jsonify(error=f"Unknown strategy '{strategy}'"), 400
    if strategy == TargetStrategy.DEFAULT:
        return jsonify(error="This program uses plan-type targets; use /v1/targets/exercise"), 400

    try:
        params = dict(data)
        params['unit'] = _unit_from(data)
        result = calculate_strategy_target(strategy, params)
    except (TypeError, ValueError) as e:
        logger.warning(f"Rejected {strategy.value} target request: {e}")
        return jsonify(error=str(e)), 400

    result['strategy'] = strategy.value
    result['unit'] = params['unit']
    result['explanation'] = get_target_explanation(
        None,
        data.get('plan_type', 'strength'),
        strategy=strategy,
        cycle_week=result.get('cycle_week'),
        week_label=result.get('week_label'),
    )
    return jsonify(result), 200


@targets_bp.route('/v1/performance/exercise', methods=['POST'])
@limiter.limit("300 per hour")
def exercise_performance():
    data = request.get_json(silent=True)
    if not data or 'sets' not in data:
        return jsonify(error="Missing 'sets' in request body"), 400

    try:
        sets = parse_logged_sets(data['sets'])
    except ValueError as e:
        return jsonify(error=str(e)), 400
    if not sets:
        return jsonify(error="'sets' must not be empty"), 400

    performance = calculate_exercise_performance(sets)
    performance['status'] = performance['status'].value
    performance['set_statuses'] = [
        evaluate_set_performance(
            s['weight'], s['reps'], s['rpe'], s['target_weight'], s['target_reps'], s['target_rpe'],
        ).value
        for s in sets
    ]
    return jsonify(performance), 200


@targets_bp.route('/v1/plan-settings/<plan_type>', methods=['GET'])
def plan_settings(plan_type):
    if plan_type not in PLAN_TYPES:
        return jsonify(error=f"Unknown plan type '{plan_type}'"), 404
    return jsonify(plan_type=plan_type, settings=get_default_plan_settings(plan_type)), 200
