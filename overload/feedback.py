# Coaching text for finished exercises and workouts, plus the one-line
# explanation shown next to a suggested target.

import math
from typing import Any, Mapping, Optional, Sequence

from overload.progression import PerformanceStatus, PlanType
from overload.target_strategies import FIVE31_PERCENTAGES, TargetStrategy

RATING_SCORES = {
    PerformanceStatus.OVERPERFORMED: 9,
    PerformanceStatus.MET_TARGET: 7,
    PerformanceStatus.UNDERPERFORMED: 4,
}
NEUTRAL_RATING = 5
OUTSTANDING_RATING = 8
GOOD_RATING = 6


def generate_exercise_feedback(performance: Mapping[str, Any], plan_type: str) -> str:
    """
    Feedback for one exercise from its rolled-up performance
    (see overload.progression.calculate_exercise_performance).
    """
    status = PerformanceStatus(performance['status'])
    plan = PlanType(plan_type)
    over = performance.get('overperformed_count', 0)
    met = performance.get('met_target_count', 0)
    under = performance.get('underperformed_count', 0)
    total_sets = performance.get('total_sets', over + met + under)

    if status == PerformanceStatus.OVERPERFORMED:
        if plan == PlanType.HYPERTROPHY:
            if over == total_sets:
                return (
                    f"You exceeded targets on all {over} set(s), indicating excellent muscle adaptation and strong "
                    "recovery. This shows your muscles are growing and adapting to the training stimulus. Targets "
                    "will increase next week to maintain progressive overload."
                )
            return (
                f"You exceeded targets on {over} set(s), showing good progress. This indicates your muscles are "
                "adapting well. Targets will be adjusted upward next week."
            )
        if over == total_sets:
            return (
                f"You exceeded targets on all {over} set(s), demonstrating significant strength gains. Your nervous "
                "system and muscles are adapting effectively. Targets will increase next week."
            )
        return (
            f"You exceeded targets on {over} set(s), indicating strength progression. This shows good adaptation "
            "to the training load. Targets will be adjusted upward next week."
        )

    if status == PerformanceStatus.UNDERPERFORMED:
        if plan == PlanType.HYPERTROPHY:
            if under == total_sets:
                return (
                    f"You fell short on all {under} set(s), likely due to fatigue, insufficient recovery, or "
                    "aggressive targets. This suggests systemic fatigue rather than a single bad set. Targets will "
                    "be maintained or slightly reduced next week to allow proper recovery."
                )
            return (
                f"You struggled on {under} set(s), suggesting partial fatigue or starting too aggressively. This "
                "may indicate the need for better recovery between workouts. Targets will be adjusted accordingly."
            )
        if under == total_sets:
            return (
                f"You missed targets on all {under} set(s), possibly due to insufficient recovery, stress, or "
                "accumulated fatigue. Strength training requires adequate rest between sessions. Targets will be "
                "adjusted to ensure continued progress."
            )
        return (
            f"You fell short on {under} set(s), suggesting fatigue buildup or starting too heavy. Focus on proper "
            "warm-up and technique. Targets will be adjusted to match your current capacity."
        )

    if plan == PlanType.HYPERTROPHY:
        return (
            f"You met your targets on {met} set(s), indicating consistent progress and good recovery. This shows "
            "you're on track with your hypertrophy goals. Targets will increase slightly next week (2.5-5lbs or "
            "1-2 reps) to continue progressive overload."
        )
    return (
        f"You met your targets on {met} set(s), showing solid strength progression and good recovery. This "
        "indicates effective neuromuscular adaptation. Targets will increase conservatively next week (2.5-5lbs) "
        "to maintain progressive overload."
    )


def calculate_workout_rating(exercises: Sequence[Mapping[str, Any]]) -> float:
    """Average of 9/7/4 per over/met/under exercise, one decimal. 5 when empty."""
    if not exercises:
        return NEUTRAL_RATING

    total = sum(RATING_SCORES[PerformanceStatus(e['status'])] for e in exercises)
    average = total / len(exercises)
    return math.floor(average * 10 + 0.5) / 10


def _count_status(exercises, status):
    return sum(1 for e in exercises if PerformanceStatus(e['status']) == status)


def generate_workout_feedback(
    exercises: Sequence[Mapping[str, Any]],
    plan_type: str,
    overall_rating: Optional[float] = None,
) -> str:
    plan = PlanType(plan_type)
    if overall_rating is None:
        overall_rating = calculate_workout_rating(exercises)

    over = _count_status(exercises, PerformanceStatus.OVERPERFORMED)
    met = _count_status(exercises, PerformanceStatus.MET_TARGET)
    under = _count_status(exercises, PerformanceStatus.UNDERPERFORMED)

    if overall_rating >= OUTSTANDING_RATING:
        feedback = f"Outstanding workout! You performed exceptionally well across {over} exercise(s). "
        if plan == PlanType.HYPERTROPHY:
            feedback += "Your volume and intensity were on point. Keep this momentum going!"
        else:
            feedback += "Your strength is progressing well. Continue focusing on progressive overload."
    elif overall_rating >= GOOD_RATING:
        feedback = f"Good workout overall. You met or exceeded targets on {met + over} exercise(s). "
        if under > 0:
            feedback += (
                f"You struggled with {under} exercise(s) - this is normal. Focus on recovery and we will adjust "
                "targets accordingly."
            )
        else:
            feedback += "You are making steady progress. Keep it up!"
    else:
        feedback = f"This was a challenging workout. You underperformed on {under} exercise(s). "
        if plan == PlanType.HYPERTROPHY:
            feedback += (
                "Consider factors like sleep, nutrition, stress, and recovery. We will adjust your targets to "
                "ensure continued progress. Remember, consistency is key."
            )
        else:
            feedback += (
                "Strength training requires adequate recovery. Ensure you are getting enough sleep, proper "
                "nutrition, and managing stress. We will adjust targets to keep you progressing safely."
            )

    if plan == PlanType.HYPERTROPHY:
        feedback += " For hypertrophy, focus on controlled tempo, full range of motion, and the mind-muscle connection."
    else:
        feedback += " For strength training, prioritize perfect form, adequate warm-up, and sufficient rest between sets."
    return feedback


def get_target_explanation(
    performance_status: Optional[str],
    plan_type: str,
    consecutive_underperformance: int = 0,
    strategy: str = TargetStrategy.DEFAULT,
    cycle_week: Optional[int] = None,
    week_label: Optional[str] = None,
) -> str:
    """Short reason for a suggested target, kept under ~80 characters."""
    strategy = TargetStrategy(strategy)
    if strategy != TargetStrategy.DEFAULT:
        return _program_explanation(strategy, cycle_week, week_label)

    if performance_status is None:
        return "Based on your last performance."

    status = PerformanceStatus(performance_status)
    if status == PerformanceStatus.OVERPERFORMED:
        return "You beat last time, slightly higher target to keep progressing."
    if status == PerformanceStatus.MET_TARGET:
        if PlanType(plan_type) == PlanType.HYPERTROPHY:
            return "Same weight, +1 rep from last session."
        return "Met target: small weight bump this week."
    if consecutive_underperformance <= 0:
        return "Holding steady: aim for this again next time."
    if consecutive_underperformance == 1:
        return "Reduced slightly to allow recovery."
    return "Lightened to support recovery. Consider a deload week."


def _program_explanation(strategy: TargetStrategy, cycle_week: Optional[int], week_label: Optional[str]) -> str:
    if strategy == TargetStrategy.FIVE_THREE_ONE:
        week = cycle_week or 0
        percentages = FIVE31_PERCENTAGES.get(week, FIVE31_PERCENTAGES[3])
        return f"5/3/1 Week {week}: {percentages[0]}-{percentages[-1]}% of training max."
    if strategy == TargetStrategy.LINEAR:
        return "Linear progression: +5 lb upper / +10 lb lower."
    if strategy == TargetStrategy.GZCLP:
        return "GZCLP: AMRAP on T1, progression based on reps."
    if strategy == TargetStrategy.TEXAS:
        return f"Texas Method {week_label}." if week_label else "Texas Method: volume/intensity rotation."
    return "Program-based target."
