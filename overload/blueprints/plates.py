from flask import Blueprint, request, jsonify, current_app
import math

from ..app import get_redis, logger, limiter
from overload.constants import MAX_LOADABLE_WEIGHT, UNITS
from overload.plates import (
    EQUIPMENT_TYPES,
    MIN_PLATE_WEIGHT,
    get_plate_breakdown,
    round_for_equipment,
)
from overload.stores import PlateConfigStore

plates_bp = Blueprint('plates', __name__)

MAX_PLATE_SIZES = 20


def _is_number(value):
    # JSON allows Infinity and NaN
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _validate_plates(plates):
    if not isinstance(plates, list) or not plates:
        raise ValueError("'plates' must be a non-empty list")
    if len(plates) > MAX_PLATE_SIZES:
        raise ValueError(f"'plates' may list at most {MAX_PLATE_SIZES} sizes")
    if not all(_is_number(p) and MIN_PLATE_WEIGHT <= p <= MAX_LOADABLE_WEIGHT for p in plates):
        raise ValueError(f"'plates' must contain numbers between {MIN_PLATE_WEIGHT} and {MAX_LOADABLE_WEIGHT}")
    return plates


def _loading_setup(data):
    """Unit, bar weight and plates for a request; a user's saved config fills the gaps."""
    unit = str(data.get('unit') or current_app.config['DEFAULT_UNIT']).lower()
    if unit not in UNITS:
        raise ValueError(f"'unit' must be one of {', '.join(UNITS)}")

    saved = {}
    if data.get('user_id'):
        saved = PlateConfigStore(get_redis()).get(str(data['user_id']), unit)
        if data.get('unit') and saved['unit'] != unit:
            # Saved plates are in the other unit
            saved = {}
        else:
            unit = saved['unit']

    plates = data.get('plates')
    if plates is not None:
        _validate_plates(plates)
    else:
        plates = saved.get('plates')

    bar_weight = data.get('bar_weight')
    if bar_weight is not None:
        if not _is_number(bar_weight) or not 0 <= bar_weight <= MAX_LOADABLE_WEIGHT:
            raise ValueError("'bar_weight' must be a non-negative number")
    else:
        bar_weight = saved.get('bar_weight')

    return unit, bar_weight, plates


@plates_bp.route('/v1/plates/round', methods=['POST'])
@limiter.limit("300 per hour")
def round_weight():
    data = request.get_json(silent=True)
    if not data or 'weight' not in data:
        return jsonify(error="Missing 'weight' in request body"), 400
    weight = data['weight']
    if not _is_number(weight) or weight <= 0:
        return jsonify(error="'weight' must be a positive number"), 400
    if weight > MAX_LOADABLE_WEIGHT:
        return jsonify(error=f"'weight' must not exceed {MAX_LOADABLE_WEIGHT}"), 400

    equipment_type = data.get('equipment_type', 'barbell')
    if equipment_type not in EQUIPMENT_TYPES:
        return jsonify(error=f"'equipment_type' must be one of {', '.join(EQUIPMENT_TYPES)}"), 400

    try:
        unit, bar_weight, plates = _loading_setup(data)
    except ValueError as e:
        return jsonify(error=str(e)), 400

    rounded = round_for_equipment(weight, equipment_type, plates, bar_weight, unit)
    response = {
        'input_weight': weight,
        'rounded_weight': rounded,
        'equipment_type': equipment_type,
        'unit': unit,
    }
    if equipment_type == 'barbell':
        response['breakdown'] = get_plate_breakdown(rounded, bar_weight, plates, unit)
    return jsonify(response), 200


@plates_bp.route('/v1/plates/breakdown', methods=['POST'])
@limiter.limit("300 per hour")
def plate_breakdown():
    data = request.get_json(silent=True)
    if not data or 'weight' not in data:
        return jsonify(error="Missing 'weight' in request body"), 400
    if not _is_number(data['weight']):
        return jsonify(error="'weight' must be a number"), 400
    if data['weight'] > MAX_LOADABLE_WEIGHT:
        return jsonify(error=f"'weight' must not exceed {MAX_LOADABLE_WEIGHT}"), 400

    try:
        unit, bar_weight, plates = _loading_setup(data)
    except ValueError as e:
        return jsonify(error=str(e)), 400

    breakdown = get_plate_breakdown(data['weight'], bar_weight, plates, unit)
    if breakdown is None:
        return jsonify(weight=data['weight'], unit=unit, loadable=False, per_side=None, display=None), 200
    return jsonify(weight=data['weight'], unit=unit, loadable=True, **breakdown), 200


@plates_bp.route('/v1/users/<user_id>/plate-config', methods=['GET'])
def get_plate_config(user_id):
    unit = request.args.get('unit', current_app.config['DEFAULT_UNIT'])
    config = PlateConfigStore(get_redis()).get(user_id, unit)
    return jsonify(user_id=user_id, **config), 200


@plates_bp.route('/v1/users/<user_id>/plate-config', methods=['PUT'])
@limiter.limit("30 per hour")
def put_plate_config(user_id):
    data = request.get_json(silent=True)
    if not data:
        return jsonify(error="Request body must be JSON"), 400

    unit = data.get('unit', current_app.config['DEFAULT_UNIT'])
    if unit not in UNITS:
        return jsonify(error=f"'unit' must be one of {', '.join(UNITS)}"), 400
    bar_weight = data.get('bar_weight')
    if bar_weight is not None and (not _is_number(bar_weight) or not 0 <= bar_weight <= MAX_LOADABLE_WEIGHT):
        return jsonify(error="'bar_weight' must be a non-negative number"), 400
    try:
        if data.get('plates') is not None:
            _validate_plates(data['plates'])
    except ValueError as e:
        return jsonify(error=str(e)), 400

    config = PlateConfigStore(get_redis()).save(user_id, {
        'unit': unit,
        'bar_weight': bar_weight,
        'plates': data.get('plates'),
    })
    logger.info(f"Plate config updated for user {user_id}")
    return jsonify(user_id=user_id, **config), 200
