import pytest

from neuroplan.adaptation import (
    adaptation_for_day,
    compute_adaptation,
    default_adaptation,
)
from neuroplan.models import BrainState
from neuroplan.repositories import record_brain_state


def test_low_energy_boundary():
    result = compute_adaptation(3, 3)
    assert result.ui_level == "low"
    assert result.max_task_complexity == 1
    assert result.spacing == "spacious"
    assert result.encouragement_tone == "gentle"


def test_high_energy():
    result = compute_adaptation(8, 9)
    assert result.ui_level == "high"
    assert result.max_task_complexity >= 4


@pytest.mark.parametrize(
    "energy, focus, level, complexity",
    [
        (1, 1, "low", 1),
        (3, 4, "medium", 2),
        (5, 5, "medium", 2),
        (6, 6, "medium", 3),
        (6, 7, "medium", 3),
        (7, 7, "high", 4),
        (9, 8, "high", 4),
        (9, 9, "high", 5),
        (10, 10, "high", 5),
    ],
)
def test_boundary_table(energy, focus, level, complexity):
    result = compute_adaptation(energy, focus)
    assert (result.ui_level, result.max_task_complexity) == (level, complexity)


def test_total_and_monotonic_over_domain():
    previous = 0
    for total in range(2, 21):
        energy = min(10, total - 1)
        focus = total - energy
        result = compute_adaptation(energy, focus)
        assert result.ui_level in {"low", "medium", "high"}
        assert 1 <= result.max_task_complexity <= 5
        assert result.max_task_complexity >= previous
        previous = result.max_task_complexity
    for energy in range(1, 11):
        for focus in range(1, 11):
            assert compute_adaptation(energy, focus) == compute_adaptation(energy, focus)


def test_out_of_range_is_clamped():
    assert compute_adaptation(-5, 0) == compute_adaptation(1, 1)
    assert compute_adaptation(42, 11) == compute_adaptation(10, 10)


def test_default_is_medium_three():
    result = default_adaptation()
    assert result.ui_level == "medium"
    assert result.max_task_complexity == 3
    assert result.touch_target_size == 48


def test_adaptation_for_day_uses_recorded_state(db, user):
    assert adaptation_for_day(db, user.id, "2025-03-01") == default_adaptation()
    record_brain_state(
        db, BrainState(id=None, user_id=user.id, day="2025-03-01", energy=2, focus=3, mood=5)
    )
    assert adaptation_for_day(db, user.id, "2025-03-01").ui_level == "low"
    # Another day still falls back to the default
    assert adaptation_for_day(db, user.id, "2025-03-02") == default_adaptation()
