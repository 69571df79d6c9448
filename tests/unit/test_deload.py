import pytest
from datetime import date, datetime
from overload.deload import (
    apply_deload,
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


def test_apply_deload_scales_weight_only():
    result = apply_deload({'target_weight': 200, 'target_reps': 5, 'target_rpe': 8})
    assert result == {'target_weight': 130.0, 'target_reps': 5, 'target_rpe': 8}
    assert get_deload_multiplier() == 0.65

def test_apply_deload_without_weight():
    targets = {'target_weight': None, 'target_reps': None, 'target_rpe': None}
    assert apply_deload(targets) == targets

def test_weekly_hit_rates_buckets_by_week():
    sessions = [
        {
            'workout_date': '2026-03-16',
            'logs': [
                {'set_type': 'working', 'performance_status': 'met_target'},
                {'set_type': 'working', 'performance_status': 'underperformed'},
                {'set_type': 'warmup', 'performance_status': 'underperformed'},
            ],
        },
        # Today lands in the last week
        {'workout_date': '2026-03-29', 'logs': [{'set_type': 'working', 'performance_status': 'overperformed'}]},
        {'workout_date': '2026-03-20', 'is_complete': False, 'logs': [{'performance_status': 'underperformed'}]},
        {'workout_date': '2026-01-01', 'logs': [{'performance_status': 'underperformed'}]},
    ]
    assert weekly_hit_rates(sessions, weeks=2, today=date(2026, 3, 29)) == [50.0, 100.0]

def test_weekly_hit_rates_empty_weeks_are_zero():
    assert weekly_hit_rates([], weeks=3, today='2026-03-29') == [0.0, 0.0, 0.0]

def test_weekly_hit_rates_counts_only_logs_marked_working():
    sessions = [{
        'workout_date': '2026-03-28',
        'logs': [
            {'set_type': 'working', 'performance_status': 'met_target'},
            {'performance_status': 'underperformed'},
            {'set_type': None, 'performance_status': 'underperformed'},
        ],
    }]
    assert weekly_hit_rates(sessions, weeks=1, today='2026-03-29') == [100.0]

def test_deload_suggestion_needs_enough_weeks():
    assert get_deload_suggestion([80, 80, 80, 80], 'hypertrophy') is None
    # Zero weeks are not counted
    assert get_deload_suggestion([0, 80, 80, 80, 80], 'hypertrophy') is None

def test_deload_suggestion_low_streak():
    result = get_deload_suggestion([80, 80, 80, 40, 45], 'hypertrophy')
    assert result['should_deload'] is True
    assert "tough weeks" in result['reason']

def test_deload_suggestion_declining():
    result = get_deload_suggestion([90, 90, 90, 90, 55, 58], 'hypertrophy')
    assert "dipped" in result['reason']

def test_deload_suggestion_time_based():
    result = get_deload_suggestion([70, 70, 60, 60, 62], 'hypertrophy')
    assert result['reason'].startswith("You've trained for 5+ weeks.")

def test_deload_suggestion_none_when_performing_well():
    assert get_deload_suggestion([90] * 6, 'hypertrophy') is None

def test_deload_suggestion_respects_plan_settings():
    settings = {'deload_frequency_weeks': 8}
    assert get_deload_suggestion([80, 80, 80, 40, 45], 'hypertrophy', settings) is None

@pytest.mark.parametrize("rates, plan_type, expected", [
    ([80] * 5, 'hypertrophy', 40),
    ([90, 90, 90, 90, 40, 40], 'hypertrophy', 93),
    ([80, 80, 80, 80, 80, 45], 'hypertrophy', 83),
    ([80, 80, 80], 'strength', 17),
    ([40] * 12, 'hypertrophy', 100),
])
def test_fatigue_score(rates, plan_type, expected):
    assert calculate_fatigue_score(rates, plan_type) == expected

def test_fatigue_zone_boundaries():
    assert fatigue_zone(49)['zone'] == 'green'
    assert fatigue_zone(50)['zone'] == 'yellow'
    assert fatigue_zone(74)['zone'] == 'yellow'
    assert fatigue_zone(75)['zone'] == 'red'
    assert fatigue_zone(100)['zone'] == 'red'
    assert fatigue_zone(100)['insight'].startswith("High fatigue detected")

def test_end_of_week_is_sunday():
    assert end_of_week(date(2026, 10, 14)) == date(2026, 10, 18)
    assert end_of_week('2026-10-18') == date(2026, 10, 18)

def test_deload_period_window():
    assert is_in_deload_period('2026-10-18', '2026-10-12')
    assert is_in_deload_period('2026-10-18', '2026-10-18')
    assert not is_in_deload_period('2026-10-18', '2026-10-11')
    assert not is_in_deload_period('2026-10-18', '2026-10-19')
    assert not is_in_deload_period(None, '2026-10-18')

def test_banner_dismissed_for_seven_days():
    assert is_banner_dismissed('2026-10-10', '2026-10-16')
    assert not is_banner_dismissed('2026-10-10', '2026-10-17')
    assert not is_banner_dismissed(None, '2026-10-17')

def test_as_date():
    assert as_date(datetime(2026, 10, 17, 9, 30)) == date(2026, 10, 17)
    assert as_date('2026-10-17T09:30:00Z') == date(2026, 10, 17)
    with pytest.raises(ValueError):
        as_date(5)
