from flask import Blueprint, request, jsonify
import math
from datetime import date

from ..app import get_redis, logger, limiter
from overload.constants import PLAN_TYPES
from overload.deload import (
    as_date,
    calculate_fatigue_score,
    end_of_week,
    fatigue_zone,
    get_deload_multiplier,
    get_deload_suggestion,
    is_banner_dismissed,
    is_in_deload_period,
    weekly_hit_rates,
)
from overload.progression import merge_plan_settings
from overload.stores import DeloadStateStore

deload_bp = Blueprint('deload', __name__)

MAX_WEEKS = 52


def _is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _hit_rates_from(data):
    """Weekly hit rates supplied directly, or computed from logged sessions."""
    if data.get('hit_rates') is not None:
        rates = data['hit_rates']
        if not isinstance(rates, list) or not all(r is None or _is_number(r) for r in rates):
            raise ValueError("'hit_rates' must be a list of numbers")
        return rates
    if data.get('sessions') is not None:
        sessions = data['sessions']
        if not isinstance(sessions, list) or not all(isinstance(s, dict) for s in sessions):
            raise ValueError("'sessions' must be a list of objects")
        for session in sessions:
            logs = session.get('logs', [])
            if not isinstance(logs, list) or not all(isinstance(log, dict) for log in logs):
                raise ValueError("Each session's 'logs' must be a list of objects")
        weeks = data.get('weeks', 12)
        if not isinstance(weeks, int) or isinstance(weeks, bool) or not 1 <= weeks <= MAX_WEEKS:
            raise ValueError(f"'weeks' must be an integer between 1 and {MAX_WEEKS}")
        return weekly_hit_rates(sessions, weeks=weeks, today=data.get('today'))
    raise ValueError("Provide 'hit_rates' or 'sessions'")


def _plan_from(data):
    plan_type = data.get('plan_type')
    if plan_type not in PLAN_TYPES:
        raise ValueError(f"'plan_type' must be one of {', '.join(PLAN_TYPES)}")
    overrides = data.get('plan_settings')
    if overrides is not None and not isinstance(overrides, dict):
        raise ValueError("'plan_settings' must be an object")
    return plan_type, merge_plan_settings(plan_type, overrides)


@deload_bp.route('/v1/deload/suggestion', methods=['POST'])
@limiter.limit("60 per hour")
def deload_suggestion():
    data = request.get_json(silent=True)
    if not data:
        return jsonify(error="Request body must be JSON"), 400

    try:
        plan_type, settings = _plan_from(data)
        hit_rates = _hit_rates_from(data)
        today = as_date(data.get('today') or date.today())
    except (KeyError, ValueError) as e:
        logger.warning(f"Rejected deload suggestion request: {e!r}")
        return jsonify(error=str(e)), 400

    suggestion = get_deload_suggestion(hit_rates, plan_type, settings)

    show_banner = suggestion is not None
    deload_active = False
    if data.get('user_id'):
        store = DeloadStateStore(get_redis())
        user_id = str(data['user_id'])
        deload_active = is_in_deload_period(store.get_active_until(user_id), today)
        if deload_active or is_banner_dismissed(store.get_banner_dismissed(user_id), today):
            show_banner = False

    return jsonify(
        should_deload=bool(suggestion),
        reason=suggestion['reason'] if suggestion else None,
        show_banner=show_banner,
        deload_active=deload_active,
        hit_rates=hit_rates,
    ), 200


@deload_bp.route('/v1/deload/fatigue', methods=['POST'])
@limiter.limit("60 per hour")
def fatigue():
    data = request.get_json(silent=True)
    if not data:
        return jsonify(error="Request body must be JSON"), 400

    try:
        plan_type, settings = _plan_from(data)
        hit_rates = _hit_rates_from(data)
    except (KeyError, ValueError) as e:
        return jsonify(error=str(e)), 400

    score = calculate_fatigue_score(hit_rates, plan_type, settings)
    return jsonify(score=score, **fatigue_zone(score)), 200


@deload_bp.route('/v1/users/<user_id>/deload-week', methods=['GET'])
def get_deload_week(user_id):
    try:
        check_date = as_date(request.args.get('date') or date.today())
    except ValueError:
        return jsonify(error="'date' must be an ISO date (YYYY-MM-DD)"), 400

    active_until = DeloadStateStore(get_redis()).get_active_until(user_id)
    return jsonify(
        user_id=user_id,
        active_until=active_until.isoformat() if active_until else None,
        active=is_in_deload_period(active_until, check_date),
        multiplier=get_deload_multiplier(),
    ), 200


@deload_bp.route('/v1/users/<user_id>/deload-week', methods=['PUT'])
@limiter.limit("30 per hour")
def start_deload_week(user_id):
    """Start a deload week running to the end of the current (or given) week."""
    data = request.get_json(silent=True) or {}
    try:
        start = as_date(data.get('start_date') or date.today())
    except ValueError:
        return jsonify(error="'start_date' must be an ISO date (YYYY-MM-DD)"), 400

    until = DeloadStateStore(get_redis()).start(user_id, end_of_week(start))
    return jsonify(
        user_id=user_id,
        active_until=until.isoformat(),
        active=True,
        multiplier=get_deload_multiplier(),
    ), 200


@deload_bp.route('/v1/users/<user_id>/deload-week', methods=['DELETE'])
@limiter.limit("30 per hour")
def end_deload_week(user_id):
    DeloadStateStore(get_redis()).clear(user_id)
    logger.info(f"Deload week cleared for user {user_id}")
    return jsonify(user_id=user_id, active_until=None, active=False), 200


@deload_bp.route('/v1/users/<user_id>/deload-week/dismiss-banner', methods=['POST'])
@limiter.limit("30 per hour")
def dismiss_deload_banner(user_id):
    data = request.get_json(silent=True) or {}
    try:
        day = as_date(data.get('date') or date.today())
    except ValueError:
        return jsonify(error="'date' must be an ISO date (YYYY-MM-DD)"), 400

    dismissed_on = DeloadStateStore(get_redis()).dismiss_banner(user_id, day)
    return jsonify(user_id=user_id, dismissed_on=dismissed_on.isoformat()), 200
