# overload/constants.py

PLAN_TYPES = ('hypertrophy', 'strength')

DEFAULT_PLAN_SETTINGS = {
    'hypertrophy': {
        'rep_range_min': 8,
        'rep_range_max': 12,
        'target_rpe_min': 7,
        'target_rpe_max': 9,
        'weight_increase_percent': 5,
        'rep_increase': 2,
        'deload_frequency_weeks': 5,
    },
    'strength': {
        'rep_range_min': 3,
        'rep_range_max': 6,
        'target_rpe_min': 7,
        'target_rpe_max': 9,
        'weight_increase_percent': 5,
        'rep_increase': 1,
        'deload_frequency_weeks': 7,
    },
}

# Performance tolerances used when comparing a logged set against its target
WEIGHT_TOLERANCE = 0.05  # 95% of target still counts, above 105% is overperforming
REP_TOLERANCE = 1
RPE_TOLERANCE = 1

UNITS = ('lbs', 'kg')

# Heaviest total the plate math will load, in either unit
MAX_LOADABLE_WEIGHT = 3000

UNIT_SETTINGS = {
    'lbs': {
        'bar_weight': 45.0,
        'plates': [45, 25, 10, 5, 2.5, 1.25],  # per side
        'rounding_increment': 2.5,
        'upper_body_increment': 5.0,
        'lower_body_increment': 10.0,
    },
    'kg': {
        'bar_weight': 20.0,
        'plates': [25, 20, 15, 10, 5, 2.5, 1.25],
        'rounding_increment': 1.25,
        'upper_body_increment': 2.5,
        'lower_body_increment': 5.0,
    },
}

# Used to pick the bigger per-cycle jump for squats, deadlifts and friends
LOWER_BODY_KEYWORDS = (
    'squat',
    'deadlift',
    'leg press',
    'lunge',
    'hip thrust',
    'rdl',
    'good morning',
)
