"""
Program-specific target calculation (5/3/1, linear progression, GZCLP, Texas Method).

Templates created from a preset program use these instead of the default
plan-type logic in overload.progression. Custom templates always use the
default logic.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Mapping, Optional

from overload.constants import LOWER_BODY_KEYWORDS
from overload.plates import round_to_increment, unit_defaults


class TargetStrategy(str, Enum):
    DEFAULT = "default"
    FIVE_THREE_ONE = "531"
    LINEAR = "linear"
    GZCLP = "gzclp"
    TEXAS = "texas"


PRESET_TARGET_STRATEGIES = {
    'ppl-6day': TargetStrategy.DEFAULT,
    'upper-lower-4day': TargetStrategy.DEFAULT,
    'phul-4day': TargetStrategy.DEFAULT,
    'bro-split-5day': TargetStrategy.DEFAULT,
    'ppl-3day': TargetStrategy.DEFAULT,
    '531-4day': TargetStrategy.FIVE_THREE_ONE,
    'starting-strength-3day': TargetStrategy.LINEAR,
    'stronglifts-3day': TargetStrategy.LINEAR,
    'gzclp-4day': TargetStrategy.GZCLP,
    'texas-method-style-3day': TargetStrategy.TEXAS,
}


def get_preset_target_strategy(preset_id: Optional[str]) -> Optional[TargetStrategy]:
    if not preset_id:
        return None
    return PRESET_TARGET_STRATEGIES.get(preset_id)


def is_lower_body_lift(exercise_name: str) -> bool:
    lower = (exercise_name or '').lower()
    return any(keyword in lower for keyword in LOWER_BODY_KEYWORDS)


def progression_increment(exercise_name: str, unit: str = 'lbs') -> float:
    """+5 lb upper / +10 lb lower (2.5 / 5 kg)."""
    defaults = unit_defaults(unit)
    if is_lower_body_lift(exercise_name):
        return defaults['lower_body_increment']
    return defaults['upper_body_increment']


# --- 5/3/1 ---
# Week 1 = 5/5/5+, Week 2 = 3/3/3+, Week 3 = 5/3/1+ as percentages of the
# training max (TM), which is typically 90% of the 1RM.
FIVE31_PERCENTAGES = {
    1: (65, 75, 85),
    2: (70, 80, 90),
    3: (75, 85, 95),
}

FIVE31_REPS = {
    1: (5, 5, 5),  # last set is 5+
    2: (3, 3, 3),  # last set is 3+
    3: (5, 3, 1),  # last set is 1+
}

FIVE31_TRAINING_MAX_RATIO = 0.9
FIVE31_WEIGHT_STEP = 0.5


def calculate_531_set_target(cycle_week: int, set_index: int, training_max: float) -> Dict[str, Any]:
    """
    Target for one working set of 5/3/1.

    Args:
        cycle_week: 1, 2 or 3.
        set_index: 0-based working set (2 is the AMRAP set).
        training_max: Typically 90% of the estimated 1RM.
    """
    if cycle_week not in FIVE31_PERCENTAGES:
        raise ValueError(f"cycle_week must be 1, 2 or 3, got {cycle_week}.")
    if set_index not in (0, 1, 2):
        raise ValueError(f"set_index must be 0, 1 or 2, got {set_index}.")

    pct = FIVE31_PERCENTAGES[cycle_week][set_index]
    reps = FIVE31_REPS[cycle_week][set_index]
    is_last_set = set_index == 2
    return {
        'target_weight': round_to_increment(training_max * (pct / 100), FIVE31_WEIGHT_STEP),
        'target_reps': reps,
        'target_rpe': 9 if is_last_set else 8,
        'amrap': is_last_set,
    }


def get_531_cycle_week(session_count: int) -> int:
    """Session 1 -> week 1, 2 -> week 2, 3 -> week 3, 4 -> week 1, ..."""
    return (session_count % 3) or 3


def training_max_from_one_rep_max(one_rep_max: float, ratio: float = FIVE31_TRAINING_MAX_RATIO) -> float:
    return round(one_rep_max * ratio, 2)


def next_531_training_max(training_max: float, exercise_name: str, unit: str = 'lbs') -> float:
    """Training max for the next cycle."""
    return training_max + progression_increment(exercise_name, unit)


# --- Linear progression (Starting Strength, StrongLifts) ---
LINEAR_REPS = 5
LINEAR_RPE = 8
LINEAR_FAILURES_BEFORE_DELOAD = 3
LINEAR_DELOAD_RATIO = 0.9


def calculate_linear_target(
    previous_weight: float,
    completed: bool,
    exercise_name: str,
    failure_streak: int = 0,
    unit: str = 'lbs',
) -> Dict[str, Any]:
    """
    Add weight every session the prescribed reps were completed; repeat the
    weight after a miss, deload 10% after the third miss in a row.
    """
    increment = unit_defaults(unit)['rounding_increment']
    if completed:
        weight = previous_weight + progression_increment(exercise_name, unit)
        failure_streak = 0
    else:
        failure_streak += 1
        if failure_streak >= LINEAR_FAILURES_BEFORE_DELOAD:
            weight = previous_weight * LINEAR_DELOAD_RATIO
            failure_streak = 0
        else:
            weight = previous_weight

    return {
        'target_weight': round_to_increment(weight, increment),
        'target_reps': LINEAR_REPS,
        'target_rpe': LINEAR_RPE,
        'failure_streak': failure_streak,
    }


# --- GZCLP ---
# (sets, reps) per stage; the last set of T1/T3 is AMRAP.
GZCLP_STAGES = {
    1: ((5, 3), (6, 2), (10, 1)),
    2: ((3, 10), (3, 8), (3, 6)),
    3: ((3, 15),),
}
GZCLP_TIER_RPE = {1: 9, 2: 8, 3: 8}
GZCLP_RESET_RATIO = 0.85
GZCLP_T3_AMRAP_GOAL = 25


def calculate_gzclp_target(
    tier: int,
    stage: int,
    previous_weight: float,
    success: bool,
    exercise_name: str,
    unit: str = 'lbs',
    amrap_reps: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Next GZCLP prescription for a lift.

    T1/T2: success adds weight at the same stage; a failure moves to the next
    stage (more sets, fewer reps) at the same weight; failing the last stage
    resets to the first stage at 85%.
    T3: weight goes up one rounding step once the AMRAP set reaches 25 reps.
    """
    if tier not in GZCLP_STAGES:
        raise ValueError(f"GZCLP tier must be 1, 2 or 3, got {tier}.")
    stages = GZCLP_STAGES[tier]
    if not 0 <= stage < len(stages):
        raise ValueError(f"Stage {stage} is not valid for tier {tier}.")

    increment = unit_defaults(unit)['rounding_increment']

    if tier == 3:
        next_stage = 0
        if amrap_reps is not None and amrap_reps >= GZCLP_T3_AMRAP_GOAL:
            weight = previous_weight + increment
        else:
            weight = previous_weight
    elif success:
        next_stage = stage
        weight = previous_weight + progression_increment(exercise_name, unit)
    elif stage + 1 < len(stages):
        next_stage = stage + 1
        weight = previous_weight
    else:
        next_stage = 0
        weight = previous_weight * GZCLP_RESET_RATIO

    sets, reps = stages[next_stage]
    return {
        'target_weight': round_to_increment(weight, increment),
        'target_sets': sets,
        'target_reps': reps,
        'target_rpe': GZCLP_TIER_RPE[tier],
        'stage': next_stage,
        'amrap': tier in (1, 3),
    }


# --- Texas Method ---
TEXAS_DAYS = {
    'volume': {'label': 'Volume Day', 'sets': 5, 'reps': 5, 'rpe': 8},
    'recovery': {'label': 'Recovery Day', 'sets': 2, 'reps': 5, 'rpe': 6},
    'intensity': {'label': 'Intensity Day', 'sets': 1, 'reps': 5, 'rpe': 9},
}
TEXAS_VOLUME_RATIO = 0.9
TEXAS_RECOVERY_RATIO = 0.8


def texas_day_from_label(day_label: str) -> str:
    lower = (day_label or '').lower()
    for day in TEXAS_DAYS:
        if day in lower:
            return day
    raise ValueError(f"Cannot map '{day_label}' to a Texas Method day.")


def calculate_texas_target(
    day: str,
    intensity_weight: float,
    succeeded: bool,
    exercise_name: str,
    unit: str = 'lbs',
) -> Dict[str, Any]:
    """
    Texas Method week built around the intensity-day 5RM.

    The intensity set moves up when the last one was completed; the volume day
    works at 90% of it and the recovery day at 80% of the volume weight.
    """
    if day not in TEXAS_DAYS:
        raise ValueError(f"Texas Method day must be one of {', '.join(TEXAS_DAYS)}, got '{day}'.")

    increment = unit_defaults(unit)['rounding_increment']
    heavy = intensity_weight + progression_increment(exercise_name, unit) if succeeded else intensity_weight
    volume = heavy * TEXAS_VOLUME_RATIO

    if day == 'intensity':
        weight = heavy
    elif day == 'volume':
        weight = volume
    else:
        weight = volume * TEXAS_RECOVERY_RATIO

    config = TEXAS_DAYS[day]
    return {
        'target_weight': round_to_increment(weight, increment),
        'target_sets': config['sets'],
        'target_reps': config['reps'],
        'target_rpe': config['rpe'],
        'week_label': config['label'],
    }


def _require(params: Mapping[str, Any], key: str, kind=(int, float)):
    value = params.get(key)
    if value is None or isinstance(value, bool) or not isinstance(value, kind):
        raise ValueError(f"Missing or invalid parameter: {key}")
    return value


def calculate_strategy_target(strategy: str, params: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Dispatch to the program's calculator.

    The result carries the program context (cycle_week / week_label) used to
    explain the target.
    """
    strategy = TargetStrategy(strategy)
    unit = params.get('unit', 'lbs')
    exercise_name = params.get('exercise_name') or ''

    if strategy == TargetStrategy.FIVE_THREE_ONE:
        if params.get('cycle_week') is not None:
            cycle_week = _require(params, 'cycle_week', int)
        else:
            cycle_week = get_531_cycle_week(_require(params, 'session_count', int))
        if params.get('training_max') is not None:
            training_max = _require(params, 'training_max')
        else:
            training_max = training_max_from_one_rep_max(_require(params, 'one_rep_max'))
        set_index = params.get('set_index')
        indices = [set_index] if set_index is not None else [0, 1, 2]
        sets = [calculate_531_set_target(cycle_week, i, training_max) for i in indices]
        return {'strategy': strategy, 'cycle_week': cycle_week, 'training_max': training_max, 'sets': sets}

    if strategy == TargetStrategy.LINEAR:
        target = calculate_linear_target(
            _require(params, 'previous_weight'),
            bool(params.get('completed', False)),
            exercise_name,
            failure_streak=params.get('failure_streak', 0) or 0,
            unit=unit,
        )
        return {'strategy': strategy, **target}

    if strategy == TargetStrategy.GZCLP:
        target = calculate_gzclp_target(
            _require(params, 'tier', int),
            params.get('stage', 0) or 0,
            _require(params, 'previous_weight'),
            bool(params.get('success', False)),
            exercise_name,
            unit=unit,
            amrap_reps=params.get('amrap_reps'),
        )
        return {'strategy': strategy, **target}

    if strategy == TargetStrategy.TEXAS:
        day = params.get('day') or texas_day_from_label(params.get('day_label') or '')
        target = calculate_texas_target(
            day,
            _require(params, 'intensity_weight'),
            bool(params.get('succeeded', False)),
            exercise_name,
            unit=unit,
        )
        return {'strategy': strategy, **target}

    raise ValueError("The default strategy uses plan-type targets, not a program calculator.")


__all__ = [
    "TargetStrategy",
    "get_preset_target_strategy",
    "is_lower_body_lift",
    "progression_increment",
    "calculate_531_set_target",
    "get_531_cycle_week",
    "training_max_from_one_rep_max",
    "next_531_training_max",
    "calculate_linear_target",
    "calculate_gzclp_target",
    "texas_day_from_label",
    "calculate_texas_target",
    "calculate_strategy_target",
]
