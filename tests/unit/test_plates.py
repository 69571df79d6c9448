import pytest
from overload.plates import (
    round_to_increment,
    achievable_weights_per_side,
    round_to_loadable_weight,
    round_for_equipment,
    get_plate_breakdown,
    is_barbell_exercise,
    normalize_plate_config,
    MIN_PLATE_WEIGHT,
    STANDARD_PLATES,
    DEFAULT_BAR_WEIGHT,
)

# --- round_to_increment ---

def test_round_to_increment_down():
    assert round_to_increment(101.2, 2.5) == 100.0

def test_round_to_increment_half_rounds_up():
    # 101.25 sits exactly between 100 and 102.5
    assert round_to_increment(101.25, 2.5) == 102.5

def test_round_to_increment_kg_step():
    assert round_to_increment(61.5, 1.25) == 61.25

def test_round_to_increment_rejects_non_positive_increment():
    with pytest.raises(ValueError):
        round_to_increment(100, 0)

# --- achievable_weights_per_side ---

def test_achievable_weights_per_side_reuses_plates():
    assert achievable_weights_per_side([5, 2.5], 10) == {2.5, 5.0, 7.5, 10.0}

def test_achievable_weights_per_side_ignores_non_positive_plates():
    assert achievable_weights_per_side([0, -5, 10], 20) == {10.0, 20.0}

def test_achievable_weights_per_side_ignores_tiny_plates():
    assert MIN_PLATE_WEIGHT > 0.0001
    assert achievable_weights_per_side([0.0001, 10], 20) == {10.0, 20.0}

# --- round_to_loadable_weight ---

def test_round_to_loadable_weight_missing_or_light_returns_bar():
    assert round_to_loadable_weight(None, STANDARD_PLATES) == DEFAULT_BAR_WEIGHT
    assert round_to_loadable_weight(40, STANDARD_PLATES) == DEFAULT_BAR_WEIGHT

def test_round_to_loadable_weight_standard_plates():
    # 46 per side -> 46.25 (45 + 1.25) is closer than 45
    assert round_to_loadable_weight(137, STANDARD_PLATES) == pytest.approx(137.5)

def test_round_to_loadable_weight_limited_plates():
    # Only 45s and 25s: 52.5 per side rounds to 50 (25 + 25)
    assert round_to_loadable_weight(150, [45, 25]) == pytest.approx(145.0)

def test_round_to_loadable_weight_tie_goes_heavier():
    # 5 per side is equidistant from the empty bar and one 10
    assert round_to_loadable_weight(55, [10]) == pytest.approx(65.0)

def test_round_to_loadable_weight_can_round_down_to_empty_bar():
    assert round_to_loadable_weight(50, [10]) == pytest.approx(45.0)

def test_round_to_loadable_weight_without_plates_uses_increment():
    assert round_to_loadable_weight(101.2, [], 45, 2.5) == 100.0

def test_round_to_loadable_weight_heavy_total():
    # 977.5 per side: 21 x 45 + 25 + 5 + 2.5
    assert round_to_loadable_weight(2000, STANDARD_PLATES) == pytest.approx(2000.0)
    assert round_to_loadable_weight(2001, STANDARD_PLATES) == pytest.approx(2000.0)

@pytest.mark.parametrize("raw", [float('inf'), float('nan'), 1e20, 3000.5])
def test_round_to_loadable_weight_rejects_unloadable_totals(raw):
    with pytest.raises(ValueError):
        round_to_loadable_weight(raw, STANDARD_PLATES)

# --- round_for_equipment ---

def test_round_for_equipment_barbell_uses_unit_defaults():
    assert round_for_equipment(137) == pytest.approx(137.5)
    # 20 kg bar, 20.5 per side -> 20
    assert round_for_equipment(61, 'barbell', unit='kg') == pytest.approx(60.0)

def test_round_for_equipment_dumbbell_without_increments_rounds_to_whole_unit():
    assert round_for_equipment(27.4, 'dumbbell_pair') == 27.0

def test_round_for_equipment_dumbbell_with_increments():
    assert round_for_equipment(52, 'dumbbell_pair', plates=[5, 2.5]) == pytest.approx(52.5)

def test_round_for_equipment_machine_stack():
    assert round_for_equipment(93, 'machine', plates=[10]) == pytest.approx(90.0)

def test_round_for_equipment_unknown_type():
    with pytest.raises(ValueError):
        round_for_equipment(100, 'kettlebell')

@pytest.mark.parametrize("equipment", ['barbell', 'dumbbell_pair', 'machine'])
def test_round_for_equipment_rejects_non_finite(equipment):
    with pytest.raises(ValueError):
        round_for_equipment(float('inf'), equipment, [5, 2.5])

# --- get_plate_breakdown ---

def test_plate_breakdown_two_plates():
    result = get_plate_breakdown(225)
    assert result['per_side'] == [45, 45]
    assert result['display'] == "225 lbs = 45 bar + 45 + 45 each side"

def test_plate_breakdown_empty_bar():
    result = get_plate_breakdown(45)
    assert result['per_side'] == []
    assert result['display'] == "45 lbs = 45 bar (empty)"

def test_plate_breakdown_mixed_plates():
    result = get_plate_breakdown(137.5)
    assert result['per_side'] == [45, 1.25]
    assert result['display'] == "137.5 lbs = 45 bar + 45 + 1.25 each side"

def test_plate_breakdown_kg():
    result = get_plate_breakdown(100, unit='kg')
    assert result['per_side'] == [25, 15]
    assert result['display'] == "100 kg = 20 bar + 25 + 15 each side"

def test_plate_breakdown_invariant_total_matches():
    for total in (95, 135, 185, 227.5, 315, 402.5):
        result = get_plate_breakdown(total)
        assert result is not None
        assert DEFAULT_BAR_WEIGHT + 2 * sum(result['per_side']) == pytest.approx(total, abs=1.0)

@pytest.mark.parametrize("total", [None, 0, -10, 30])
def test_plate_breakdown_not_loadable_inputs(total):
    assert get_plate_breakdown(total) is None

def test_plate_breakdown_unloadable_with_given_plates():
    # 27.5 per side with only 45s
    assert get_plate_breakdown(100, plates=[45]) is None

@pytest.mark.parametrize("total", [float('inf'), float('nan'), 1e20, 3000.5])
def test_plate_breakdown_unbounded_totals_are_not_loadable(total):
    assert get_plate_breakdown(total) is None

def test_plate_breakdown_heavy_total():
    result = get_plate_breakdown(2000)
    assert result['per_side'] == [45] * 21 + [25, 5, 2.5]
    assert DEFAULT_BAR_WEIGHT + 2 * sum(result['per_side']) == pytest.approx(2000)

def test_plate_breakdown_ignores_tiny_plates():
    assert get_plate_breakdown(100, plates=[0.0001]) is None

# --- helpers ---

def test_is_barbell_exercise():
    assert is_barbell_exercise("Barbell Bench Press")
    assert is_barbell_exercise("bb-row")
    assert not is_barbell_exercise("Dumbbell Curl")
    assert not is_barbell_exercise(None)

def test_normalize_plate_config_defaults_for_unit():
    config = normalize_plate_config(None, 'kg')
    assert config == {'bar_weight': 20.0, 'plates': [25, 20, 15, 10, 5, 2.5, 1.25], 'unit': 'kg'}

def test_normalize_plate_config_replaces_invalid_values():
    config = normalize_plate_config({'bar_weight': True, 'plates': [45, -5]}, 'lbs')
    assert config['bar_weight'] == 45.0
    assert config['plates'] == [45, 25, 10, 5, 2.5, 1.25]

def test_normalize_plate_config_keeps_stored_unit():
    config = normalize_plate_config({'unit': 'kg', 'bar_weight': 15, 'plates': [10, 5]}, 'lbs')
    assert config == {'bar_weight': 15.0, 'plates': [10, 5], 'unit': 'kg'}
