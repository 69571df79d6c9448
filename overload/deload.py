"""Deload detection: fatigue score, deload suggestions and deload-week windows."""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional, Sequence

from overload.plates import round_to_increment
from overload.progression import PerformanceStatus, PlanType, get_default_plan_settings

DELOAD_MULTIPLIER = 0.65  # deload targets are 65% of normal
DELOAD_WINDOW_DAYS = 7
BANNER_SNOOZE_DAYS = 7

LOW_HIT_RATE = 50  # percent
RECENT_WEEKS = 4
DECLINE_MIN_WEEKS = 6
FALLBACK_DELOAD_FREQUENCY = {PlanType.HYPERTROPHY: 5, PlanType.STRENGTH: 7}
FATIGUE_FALLBACK_DELOAD_FREQUENCY = 6

FATIGUE_ZONES = (
    (50, 'green', "You're well-recovered. Push hard and aim for PRs this week."),
    (75, 'yellow', "Accumulated load is building. Prioritize sleep and nutrition to sustain performance."),
    (101, 'red', "High fatigue detected. A deload week will help you recover and come back stronger."),
)


def as_date(value) -> date:
    """Accept a date, datetime or ISO string (YYYY-MM-DD...)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value[:10])
    raise ValueError(f"Not a date: {value!r}")


def get_deload_multiplier() -> float:
    return DELOAD_MULTIPLIER


def apply_deload(targets: Mapping[str, Any], multiplier: float = DELOAD_MULTIPLIER, increment: float = 2.5) -> Dict[str, Any]:
    """Scale a target's weight for a deload week; reps and RPE are left alone."""
    deloaded = dict(targets)
    if deloaded.get('target_weight') is not None:
        deloaded['target_weight'] = round_to_increment(deloaded['target_weight'] * multiplier, increment)
    return deloaded


def weekly_hit_rates(
    sessions: Sequence[Mapping[str, Any]],
    weeks: int = 12,
    today: Optional[date] = None,
) -> List[float]:
    """
    Percentage of working sets that met or beat their target, per week, oldest
    week first. Weeks without any evaluated set are 0.

    sessions: [{'workout_date', 'is_complete' (optional), 'logs': [{'set_type', 'performance_status'}]}]
    """
    today = as_date(today or date.today())
    start = today - timedelta(days=weeks * 7)
    buckets = [{'met': 0, 'total': 0} for _ in range(weeks)]

    for session in sessions:
        if session.get('is_complete') is False:
            continue
        session_date = as_date(session['workout_date'])
        if session_date < start or session_date > today:
            continue
        index = min((session_date - start).days // 7, weeks - 1)

        for log in session.get('logs', []):
            if log.get('set_type') != 'working':
                continue
            status = log.get('performance_status')
            if not status:
                continue
            buckets[index]['total'] += 1
            if PerformanceStatus(status) in (PerformanceStatus.MET_TARGET, PerformanceStatus.OVERPERFORMED):
                buckets[index]['met'] += 1

    return [
        (bucket['met'] / bucket['total']) * 100 if bucket['total'] > 0 else 0.0
        for bucket in buckets
    ]


def _valid_rates(hit_rates: Sequence[Optional[float]]) -> List[float]:
    return [r for r in hit_rates if r is not None and r > 0]


def _low_streak(rates: Sequence[float]) -> int:
    streak = 0
    for rate in reversed(rates):
        if rate >= LOW_HIT_RATE:
            break
        streak += 1
    return streak


def _recent_vs_earlier(rates: Sequence[float]) -> Optional[tuple[float, float]]:
    if len(rates) < DECLINE_MIN_WEEKS:
        return None
    recent = rates[-2:]
    earlier = rates[-6:-2]
    return sum(recent) / len(recent), sum(earlier) / len(earlier)


def _deload_frequency(plan_type: str, plan_settings: Optional[Mapping[str, Any]], fallback: int) -> int:
    settings = plan_settings if plan_settings is not None else get_default_plan_settings(plan_type)
    return settings.get('deload_frequency_weeks') or fallback


def get_deload_suggestion(
    hit_rates: Sequence[Optional[float]],
    plan_type: str,
    plan_settings: Optional[Mapping[str, Any]] = None,
) -> Optional[Dict[str, Any]]:
    """
    Suggest a lighter week when recent weekly hit rates point at accumulated fatigue.

    Returns None when there is not enough history (fewer trained weeks than the
    plan's deload frequency) or no reason to deload.
    """
    plan = PlanType(plan_type)
    deload_weeks = _deload_frequency(plan, plan_settings, FALLBACK_DELOAD_FREQUENCY[plan])

    rates = _valid_rates(hit_rates)
    if len(rates) < deload_weeks:
        return None

    if _low_streak(rates) >= 2:
        return {
            'should_deload': True,
            'reason': "You've had a few tough weeks. Consider a lighter week to recover.",
        }

    averages = _recent_vs_earlier(rates)
    if averages:
        recent_avg, earlier_avg = averages
        if recent_avg < earlier_avg - 15 and recent_avg < 60:
            return {
                'should_deload': True,
                'reason': "Performance has dipped recently. A deload week may help you bounce back.",
            }

    recent = rates[-min(RECENT_WEEKS, len(rates)):]
    if sum(recent) / len(recent) < 65:
        return {
            'should_deload': True,
            'reason': f"You've trained for {len(rates)}+ weeks. Consider a lighter week to support recovery.",
        }

    return None


def calculate_fatigue_score(
    hit_rates: Sequence[Optional[float]],
    plan_type: str,
    plan_settings: Optional[Mapping[str, Any]] = None,
) -> int:
    """
    0-100 fatigue estimate: weeks trained relative to the deload frequency,
    plus penalties for a falling hit rate and a run of low weeks.
    """
    rates = _valid_rates(hit_rates)
    deload_frequency = _deload_frequency(plan_type, plan_settings, FATIGUE_FALLBACK_DELOAD_FREQUENCY)

    score = min(100.0, (len(rates) / deload_frequency) * 40)

    averages = _recent_vs_earlier(rates)
    if averages:
        recent_avg, earlier_avg = averages
        if recent_avg < earlier_avg - 10:
            score += 25
        elif recent_avg < earlier_avg - 5:
            score += 15

    streak = _low_streak(rates)
    if streak >= 3:
        score += 30
    elif streak >= 2:
        score += 20
    elif streak >= 1:
        score += 10

    return min(100, int(math.floor(score + 0.5)))


def fatigue_zone(score: float) -> Dict[str, str]:
    for upper, zone, insight in FATIGUE_ZONES:
        if score < upper:
            return {'zone': zone, 'insight': insight}
    return {'zone': FATIGUE_ZONES[-1][1], 'insight': FATIGUE_ZONES[-1][2]}


def end_of_week(day) -> date:
    """The Sunday closing the week of ``day`` (``day`` itself on a Sunday)."""
    day = as_date(day)
    return day + timedelta(days=6 - day.weekday())


def is_in_deload_period(active_until, check_date) -> bool:
    """True when check_date falls in the 7-day window ending on active_until (inclusive)."""
    if not active_until:
        return False
    until = as_date(active_until)
    check = as_date(check_date)
    if check > until:
        return False
    return check >= until - timedelta(days=DELOAD_WINDOW_DAYS - 1)


def is_banner_dismissed(dismissed_on, today=None) -> bool:
    """The deload banner stays hidden for 7 days after being dismissed."""
    if not dismissed_on:
        return False
    days_since = (as_date(today or date.today()) - as_date(dismissed_on)).days
    return days_since < BANNER_SNOOZE_DAYS
