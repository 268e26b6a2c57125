from __future__ import annotations

"""Map a brain state to a UI tier and a task complexity ceiling.

The average of energy and focus picks a row from ``COMPLEXITY_TABLE``:

    avg <= 3        low     1
    3 < avg < 6     medium  2
    6 <= avg < 7    medium  3
    7 <= avg < 9    high    4
    avg >= 9        high    5

Mood is recorded but does not take part in the mapping. Inputs outside 1-10
are clamped rather than rejected.
"""

from typing import Optional

from .database_manager import DatabaseManager
from .models import AdaptationResult, today_iso
from .repositories import get_brain_state_for_day

LEVEL_MIN = 1
LEVEL_MAX = 10

# (lower bound inclusive, ui level, max complexity); scanned from the top
COMPLEXITY_TABLE: tuple[tuple[float, str, int], ...] = (
    (9.0, "high", 5),
    (7.0, "high", 4),
    (6.0, "medium", 3),
    (3.5, "medium", 2),
    (1.0, "low", 1),
)

PRESETS: dict[str, tuple[str, int, str]] = {
    # ui level: spacing, touch target (dp), encouragement tone
    "low": ("spacious", 56, "gentle"),
    "medium": ("comfortable", 48, "supportive"),
    "high": ("compact", 44, "energizing"),
}

DEFAULT_UI_LEVEL = "medium"
DEFAULT_MAX_COMPLEXITY = 3


def clamp_level(value: int) -> int:
    return max(LEVEL_MIN, min(LEVEL_MAX, int(value)))


def _build(ui_level: str, max_complexity: int) -> AdaptationResult:
    spacing, touch_target, tone = PRESETS[ui_level]
    return AdaptationResult(
        ui_level=ui_level,
        max_task_complexity=max_complexity,
        spacing=spacing,
        touch_target_size=touch_target,
        encouragement_tone=tone,
    )


def compute_adaptation(energy: int, focus: int) -> AdaptationResult:
    average = (clamp_level(energy) + clamp_level(focus)) / 2
    for lower, ui_level, max_complexity in COMPLEXITY_TABLE:
        if average >= lower:
            return _build(ui_level, max_complexity)
    # unreachable after clamping; the last row starts at the minimum level
    return default_adaptation()


def default_adaptation() -> AdaptationResult:
    """Safe preset for a day with no recorded brain state."""
    return _build(DEFAULT_UI_LEVEL, DEFAULT_MAX_COMPLEXITY)


def adaptation_for_day(
    db: DatabaseManager, user_id: int, day: Optional[str] = None
) -> AdaptationResult:
    state = get_brain_state_for_day(db, user_id, day or today_iso())
    if state is None:
        return default_adaptation()
    return compute_adaptation(state.energy, state.focus)


__all__ = [
    "COMPLEXITY_TABLE",
    "PRESETS",
    "clamp_level",
    "compute_adaptation",
    "default_adaptation",
    "adaptation_for_day",
]
