"""Default plan-type target calculation and performance evaluation."""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from overload.constants import (
    DEFAULT_PLAN_SETTINGS,
    REP_TOLERANCE,
    RPE_TOLERANCE,
    WEIGHT_TOLERANCE,
)
from overload.plates import round_to_increment


class PlanType(str, Enum):
    HYPERTROPHY = "hypertrophy"
    STRENGTH = "strength"


class PerformanceStatus(str, Enum):
    """How a logged set (or exercise) compares to its target."""
    OVERPERFORMED = "overperformed"
    MET_TARGET = "met_target"
    UNDERPERFORMED = "underperformed"


class ProgressionTrend(str, Enum):
    ACCELERATING = "accelerating"
    PROGRESSING = "progressing"
    MAINTAINING = "maintaining"
    PLATEAUED = "plateaued"
    REGRESSING = "regressing"


TREND_MESSAGES = {
    ProgressionTrend.ACCELERATING: "Accelerating progress! Keep it up.",
    ProgressionTrend.PROGRESSING: "Steady progress.",
    ProgressionTrend.MAINTAINING: "Maintaining strength.",
    ProgressionTrend.PLATEAUED: "Plateaued. Consider adding volume or changing rep scheme.",
    ProgressionTrend.REGRESSING: "Regressing. Check recovery and nutrition.",
}

PLAN_SETTING_KEYS = tuple(DEFAULT_PLAN_SETTINGS[PlanType.HYPERTROPHY.value].keys())

MOVING_AVERAGE_WINDOW = 3


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def get_default_plan_settings(plan_type: str) -> Dict[str, Any]:
    """Return a fresh copy of the default settings for a plan type."""
    return dict(DEFAULT_PLAN_SETTINGS[PlanType(plan_type).value])


def merge_plan_settings(plan_type: str, overrides: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """Apply user overrides on top of the plan type's defaults."""
    settings = get_default_plan_settings(plan_type)
    for key, value in (overrides or {}).items():
        if key not in PLAN_SETTING_KEYS:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"Plan setting '{key}' must be a number.")
        settings[key] = value
    if settings['rep_range_min'] > settings['rep_range_max']:
        raise ValueError("rep_range_min cannot exceed rep_range_max.")
    if settings['target_rpe_min'] > settings['target_rpe_max']:
        raise ValueError("target_rpe_min cannot exceed target_rpe_max.")
    return settings


def _has_targets(set_record: Mapping[str, Any]) -> bool:
    return bool(set_record.get('target_weight') and set_record.get('target_reps') and set_record.get('target_rpe'))


def evaluate_set_performance(
    actual_weight: float,
    actual_reps: float,
    actual_rpe: float,
    target_weight: Optional[float],
    target_reps: Optional[float],
    target_rpe: Optional[float],
) -> PerformanceStatus:
    """
    Compare one logged set to its target.

    A set without a full target (first week) counts as met. Weight gets a 5%
    tolerance, RPE one point; beating the target by more than that is
    overperforming.
    """
    if not target_weight or not target_reps or not target_rpe:
        return PerformanceStatus.MET_TARGET

    weight_met = actual_weight >= target_weight * (1 - WEIGHT_TOLERANCE)
    reps_met = actual_reps >= target_reps
    rpe_met = actual_rpe <= target_rpe + RPE_TOLERANCE

    if weight_met and reps_met and rpe_met:
        if (
            actual_weight > target_weight * (1 + WEIGHT_TOLERANCE)
            or actual_reps > target_reps + REP_TOLERANCE
            or actual_rpe < target_rpe - RPE_TOLERANCE
        ):
            return PerformanceStatus.OVERPERFORMED
        return PerformanceStatus.MET_TARGET

    return PerformanceStatus.UNDERPERFORMED


def _overall_status(overperformed: int, met_target: int, underperformed: int) -> PerformanceStatus:
    if overperformed > underperformed:
        return PerformanceStatus.OVERPERFORMED
    if underperformed > met_target:
        return PerformanceStatus.UNDERPERFORMED
    return PerformanceStatus.MET_TARGET


def calculate_exercise_performance(sets: Sequence[Mapping[str, Any]]) -> Dict[str, Any]:
    """Evaluate every set and roll the statuses up into one exercise status."""
    counts = {status: 0 for status in PerformanceStatus}
    for s in sets:
        status = evaluate_set_performance(
            s['weight'], s['reps'], s['rpe'],
            s.get('target_weight'), s.get('target_reps'), s.get('target_rpe'),
        )
        counts[status] += 1

    overperformed = counts[PerformanceStatus.OVERPERFORMED]
    met_target = counts[PerformanceStatus.MET_TARGET]
    underperformed = counts[PerformanceStatus.UNDERPERFORMED]
    return {
        'status': _overall_status(overperformed, met_target, underperformed),
        'overperformed_count': overperformed,
        'met_target_count': met_target,
        'underperformed_count': underperformed,
        'total_sets': len(sets),
    }


def tally_session_status(sets: Sequence[Mapping[str, Any]]) -> PerformanceStatus:
    """Overall status of a finished session, as used to pick the next targets."""
    # Only sets carrying a full target are counted; RPE does not make a set overperform here.
    over = met = under = 0
    for s in sets:
        if not _has_targets(s):
            continue
        weight_met = s['weight'] >= s['target_weight'] * (1 - WEIGHT_TOLERANCE)
        reps_met = s['reps'] >= s['target_reps']
        rpe_met = s['rpe'] <= s['target_rpe'] + RPE_TOLERANCE
        if weight_met and reps_met and rpe_met:
            if s['weight'] > s['target_weight'] * (1 + WEIGHT_TOLERANCE) or s['reps'] > s['target_reps'] + REP_TOLERANCE:
                over += 1
            else:
                met += 1
        else:
            under += 1
    return _overall_status(over, met, under)


def _empty_targets() -> Dict[str, Any]:
    return {'target_weight': None, 'target_reps': None, 'target_rpe': None}


def _next_targets(
    status: PerformanceStatus,
    plan_type: PlanType,
    settings: Mapping[str, Any],
    base_weight: float,
    base_reps: float,
    consecutive_underperformance: int,
) -> tuple[float, float, float]:
    rep_min = settings['rep_range_min']
    rep_max = settings['rep_range_max']
    rpe_min = settings['target_rpe_min']
    rpe_max = settings['target_rpe_max']
    pct = settings['weight_increase_percent']

    if plan_type == PlanType.HYPERTROPHY:
        # Volume first: reps climb alongside weight
        if status == PerformanceStatus.OVERPERFORMED:
            return base_weight * (1 + pct / 100), min(base_reps + settings['rep_increase'], rep_max), rpe_max
        if status == PerformanceStatus.UNDERPERFORMED:
            if consecutive_underperformance <= 0:
                return base_weight, base_reps, rpe_max
            if consecutive_underperformance == 1:
                return base_weight * 0.975, max(base_reps - 1, rep_min), rpe_max
            return base_weight * 0.9, max(base_reps - 2, rep_min), rpe_min
        return base_weight * (1 + pct / 200), min(base_reps + 1, rep_max), rpe_max

    # Strength: weight moves, reps hold
    if status == PerformanceStatus.OVERPERFORMED:
        return base_weight * (1 + pct / 100), min(base_reps, rep_max), rpe_max
    if status == PerformanceStatus.UNDERPERFORMED:
        if consecutive_underperformance <= 0:
            return base_weight, base_reps, rpe_max
        if consecutive_underperformance == 1:
            return base_weight * 0.95, max(base_reps - 1, rep_min), rpe_max
        return base_weight * 0.85, max(base_reps - 1, rep_min), rpe_min
    return base_weight * (1 + pct / 200), min(base_reps, rep_max), rpe_max


def _finalize(weight: float, reps: float, rpe: float, settings: Mapping[str, Any], increment: float) -> Dict[str, Any]:
    reps = max(settings['rep_range_min'], min(reps, settings['rep_range_max']))
    return {
        'target_weight': round_to_increment(weight, increment),
        'target_reps': _round_half_up(reps),
        'target_rpe': rpe,
    }


def calculate_targets(
    previous_sets: Optional[Sequence[Mapping[str, Any]]],
    plan_type: str,
    plan_settings: Mapping[str, Any],
    consecutive_underperformance: int = 0,
    increment: float = 2.5,
) -> Dict[str, Any]:
    """
    Targets for the next session of an exercise from the previous session's sets.

    Args:
        previous_sets: Set records from the last session of this exercise
            (weight, reps, rpe and the targets they were logged against).
        plan_type: 'hypertrophy' or 'strength'.
        plan_settings: Rep range, RPE range and increase settings.
        consecutive_underperformance: Underperformed sessions immediately
            before the previous one. 0 holds, 1 trims, 2+ deloads.
        increment: Weight rounding step (2.5 lbs / 1.25 kg).

    Returns:
        Dict with target_weight, target_reps, target_rpe (all None when there
        is no history yet).
    """
    if not previous_sets:
        return _empty_targets()

    plan = PlanType(plan_type)
    num_sets = len(previous_sets)
    avg_weight = sum(s['weight'] for s in previous_sets) / num_sets
    avg_reps = sum(s['reps'] for s in previous_sets) / num_sets

    status = tally_session_status(previous_sets)
    weight, reps, rpe = _next_targets(status, plan, plan_settings, avg_weight, avg_reps, consecutive_underperformance)
    return _finalize(weight, reps, rpe, plan_settings, increment)


def calculate_set_target(
    previous_set: Mapping[str, Any],
    plan_type: str,
    plan_settings: Mapping[str, Any],
    increment: float = 2.5,
) -> Dict[str, Any]:
    """Target for one set based on how the same set went last time."""
    if not _has_targets(previous_set):
        return _empty_targets()

    plan = PlanType(plan_type)
    status = evaluate_set_performance(
        previous_set['weight'], previous_set['reps'], previous_set['rpe'],
        previous_set['target_weight'], previous_set['target_reps'], previous_set['target_rpe'],
    )
    # A single missed set trims immediately, there is no streak at set level
    streak = 1 if status == PerformanceStatus.UNDERPERFORMED else 0
    weight, reps, rpe = _next_targets(status, plan, plan_settings, previous_set['weight'], previous_set['reps'], streak)
    return _finalize(weight, reps, rpe, plan_settings, increment)


def underperformance_streak(statuses: Iterable[str]) -> int:
    """Number of trailing 'underperformed' entries in an oldest-first list."""
    streak = 0
    for status in reversed(list(statuses)):
        if PerformanceStatus(status) != PerformanceStatus.UNDERPERFORMED:
            break
        streak += 1
    return streak


def moving_average(values: Sequence[float], window_size: int = MOVING_AVERAGE_WINDOW) -> List[float]:
    result = []
    for i in range(len(values)):
        window = values[max(0, i - window_size + 1):i + 1]
        result.append(sum(window) / len(window))
    return result


def classify_progression_trend(session_e1rms: Sequence[float]) -> Optional[Dict[str, Any]]:
    """
    Classify how an exercise is trending from its per-session best e1RM.

    Compares the latest 3-session moving average with the one three sessions
    earlier. Needs at least four sessions.
    """
    if len(session_e1rms) < 4:
        return None

    averages = moving_average(session_e1rms)
    recent_avg = averages[-1]
    previous_avg = averages[-4]
    if previous_avg == 0:
        return None

    percent_change = (recent_avg - previous_avg) / previous_avg * 100

    if percent_change > 8:
        trend = ProgressionTrend.ACCELERATING
    elif percent_change >= 2:
        trend = ProgressionTrend.PROGRESSING
    elif percent_change >= -2:
        trend = ProgressionTrend.MAINTAINING
    elif percent_change >= -5:
        trend = ProgressionTrend.PLATEAUED
    else:
        trend = ProgressionTrend.REGRESSING

    return {
        'trend': trend,
        'percent_change': round(percent_change, 2),
        'message': TREND_MESSAGES[trend],
    }


__all__ = [
    "PlanType",
    "PerformanceStatus",
    "ProgressionTrend",
    "get_default_plan_settings",
    "merge_plan_settings",
    "evaluate_set_performance",
    "calculate_exercise_performance",
    "tally_session_status",
    "calculate_targets",
    "calculate_set_target",
    "underperformance_streak",
    "moving_average",
    "classify_progression_trend",
]
