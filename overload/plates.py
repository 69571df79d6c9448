# Plate math for barbell, dumbbell and machine loading.
# A barbell load is bar + 2 * (plates on one side); any plate may be used more
# than once. Weights are in whatever unit the caller works in (lbs or kg), the
# unit only changes the defaults below.

import math

from overload.constants import MAX_LOADABLE_WEIGHT, UNIT_SETTINGS, UNITS

DEFAULT_UNIT = 'lbs'
DEFAULT_BAR_WEIGHT = UNIT_SETTINGS[DEFAULT_UNIT]['bar_weight']
STANDARD_PLATES = list(UNIT_SETTINGS[DEFAULT_UNIT]['plates'])

# Extra headroom (per side) searched above the raw target so that rounding up
# to the next loadable weight is always possible.
SIDE_SEARCH_HEADROOM = 25
# A breakdown that leaves more than this unloaded per side is not loadable.
MAX_UNLOADED_PER_SIDE = 0.5
PLATE_MATCH_TOLERANCE = 0.01
# Lighter plates are ignored, the greedy breakdown needs each plate to move it
MIN_PLATE_WEIGHT = 0.1

# Limit on stacked increments for dumbbells / machine stacks
DEFAULT_SINGLE_ITEM_PLATES_LIMIT = 20

EQUIPMENT_TYPES = ('barbell', 'dumbbell_pair', 'machine')


def unit_defaults(unit: str | None) -> dict:
    """Return the bar/plate/increment defaults for a unit (lbs when unknown)."""
    return UNIT_SETTINGS.get((unit or DEFAULT_UNIT).lower(), UNIT_SETTINGS[DEFAULT_UNIT])


def round_to_increment(weight: float, increment: float = 2.5) -> float:
    """Round half-up to the nearest multiple of ``increment``."""
    if not increment or increment <= 0:
        raise ValueError("increment must be positive")
    return round(math.floor(weight / increment + 0.5) * increment, 3)


def achievable_weights_per_side(plates: list[float], max_per_side: float) -> set[float]:
    """
    All positive sums of plates for one side of a bar, up to max_per_side.
    Every plate size can be used any number of times.
    """
    unique_plates = sorted(set(p for p in plates if p >= MIN_PLATE_WEIGHT))
    limit = max_per_side + PLATE_MATCH_TOLERANCE

    # Breadth-first over reachable totals; each total is expanded once
    achievable = {0.0}
    frontier = [0.0]
    while frontier:
        next_frontier = []
        for base in frontier:
            for plate in unique_plates:
                total = round(base + plate, 3)
                if total <= limit and total not in achievable:
                    achievable.add(total)
                    next_frontier.append(total)
        frontier = next_frontier

    achievable.discard(0.0)
    return achievable


def _check_loadable(weight: float) -> None:
    if not math.isfinite(weight) or weight > MAX_LOADABLE_WEIGHT:
        raise ValueError(f"weight must be a finite number no heavier than {MAX_LOADABLE_WEIGHT}")


def _closest(target: float, candidates) -> float:
    """Closest candidate to target; equidistant candidates resolve to the heavier one."""
    closest = None
    min_diff = float('inf')
    for value in sorted(candidates):
        diff = abs(target - value)
        if diff < min_diff or (diff == min_diff and closest is not None and value > closest):
            min_diff = diff
            closest = value
    return closest


def round_to_loadable_weight(
    raw_weight: float | None,
    plates: list[float],
    bar_weight: float = DEFAULT_BAR_WEIGHT,
    increment: float = 2.5,
) -> float:
    """
    Round a raw target to the nearest weight that can actually be put on the bar.

    Anything at or below the bar returns the bar. Without a plate list the
    weight is simply rounded to ``increment``.
    """
    if not raw_weight or raw_weight <= bar_weight:
        return bar_weight
    _check_loadable(raw_weight)
    if not plates:
        return round_to_increment(raw_weight, increment)

    weight_per_side = (raw_weight - bar_weight) / 2
    loadable_per_side = achievable_weights_per_side(plates, weight_per_side + SIDE_SEARCH_HEADROOM)
    if not loadable_per_side:
        return round_to_increment(raw_weight, increment)

    # The empty bar is a valid load as well
    nearest = _closest(weight_per_side, loadable_per_side | {0.0})
    return round(bar_weight + nearest * 2, 3)


def achievable_single_weights(
    increments: list[float],
    max_weight_target: float,
    max_plates_limit: int = DEFAULT_SINGLE_ITEM_PLATES_LIMIT,
) -> set[float]:
    """
    Possible totals for a single loadable item (one dumbbell, a machine stack)
    built from the given increments. Sums may go up to 1.5x the target so
    rounding up is possible.
    """
    unique_increments = sorted(set(p for p in increments if p > 0))
    if not unique_increments:
        return {0.0}

    current_sums = {0.0}
    for _i in range(max_plates_limit):
        newly_formed = set()
        for s in current_sums:
            for inc in unique_increments:
                new_sum = round(s + inc, 3)
                if new_sum <= max_weight_target * 1.5:
                    newly_formed.add(new_sum)

        previous_size = len(current_sums)
        current_sums.update(newly_formed)
        if len(current_sums) == previous_size:
            break

    return current_sums


def round_for_equipment(
    target_weight: float,
    equipment_type: str | None = 'barbell',
    plates: list[float] | None = None,
    bar_weight: float | None = None,
    unit: str = DEFAULT_UNIT,
) -> float:
    """
    Round target_weight to something loadable on the given equipment.
    For 'dumbbell_pair' the target is one dumbbell, for 'machine' the stack.
    """
    defaults = unit_defaults(unit)
    equipment = (equipment_type or 'barbell').lower()
    if equipment not in EQUIPMENT_TYPES:
        raise ValueError(f"Unknown equipment type '{equipment_type}'. Expected one of {', '.join(EQUIPMENT_TYPES)}.")
    _check_loadable(target_weight)

    usable = [p for p in (plates or []) if isinstance(p, (int, float)) and p > 0]

    if equipment in ('dumbbell_pair', 'machine'):
        if not usable:
            return float(round_to_increment(target_weight, 1))
        possible = achievable_single_weights(usable, target_weight)
        return _closest(target_weight, possible)

    if bar_weight is None or bar_weight < 0:
        bar_weight = defaults['bar_weight']
    if not usable:
        usable = list(defaults['plates'])
    return round_to_loadable_weight(target_weight, usable, bar_weight, defaults['rounding_increment'])


def _format_weight(value: float) -> str:
    return f"{value:g}"


def get_plate_breakdown(
    total_weight: float | None,
    bar_weight: float | None = None,
    plates: list[float] | None = None,
    unit: str = DEFAULT_UNIT,
) -> dict | None:
    """
    Greedy plate breakdown (heaviest first) for one side of the bar.

    Returns {'per_side': [...], 'display': str}, or None when the total is
    missing, lighter than the bar, above MAX_LOADABLE_WEIGHT or not loadable
    within 0.5 per side.
    """
    defaults = unit_defaults(unit)
    if bar_weight is None:
        bar_weight = defaults['bar_weight']
    if plates is None:
        plates = defaults['plates']

    if not total_weight or total_weight <= 0:
        return None
    if not math.isfinite(total_weight) or total_weight > MAX_LOADABLE_WEIGHT:
        return None
    if total_weight < bar_weight:
        return None

    weight_per_side = (total_weight - bar_weight) / 2
    remaining = weight_per_side
    per_side = []
    for plate in sorted(plates, reverse=True):
        if plate < MIN_PLATE_WEIGHT:
            continue
        while remaining >= plate - PLATE_MATCH_TOLERANCE:
            per_side.append(plate)
            remaining = round(remaining - plate, 3)

    if remaining > MAX_UNLOADED_PER_SIDE:
        return None

    unit_label = (unit or DEFAULT_UNIT).lower()
    if not per_side:
        display = f"{_format_weight(total_weight)} {unit_label} = {_format_weight(bar_weight)} bar (empty)"
    else:
        plate_str = ' + '.join(_format_weight(p) for p in per_side)
        display = (
            f"{_format_weight(total_weight)} {unit_label} = {_format_weight(bar_weight)} bar + "
            f"{plate_str} each side"
        )

    return {'per_side': per_side, 'display': display}


def is_barbell_exercise(exercise_name: str) -> bool:
    lower = (exercise_name or '').lower()
    return 'barbell' in lower or 'bb-' in lower


def normalize_plate_config(raw: dict | None, unit: str = DEFAULT_UNIT) -> dict:
    """Fill in bar weight / plates from the unit defaults when missing or invalid."""
    raw = raw if isinstance(raw, dict) else {}
    config_unit = raw.get('unit') if raw.get('unit') in UNITS else (unit if unit in UNITS else DEFAULT_UNIT)
    defaults = unit_defaults(config_unit)

    bar_weight = raw.get('bar_weight')
    if isinstance(bar_weight, bool) or not isinstance(bar_weight, (int, float)) or bar_weight < 0:
        bar_weight = defaults['bar_weight']

    plates = raw.get('plates')
    if (
        not isinstance(plates, list)
        or not plates
        or not all(isinstance(p, (int, float)) and not isinstance(p, bool) and p > 0 for p in plates)
    ):
        plates = list(defaults['plates'])

    return {'bar_weight': float(bar_weight), 'plates': plates, 'unit': config_unit}
