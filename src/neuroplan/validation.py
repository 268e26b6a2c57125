from __future__ import annotations

"""Write-time checks for tasks and brain states."""

from dataclasses import replace
from datetime import date

from .errors import ValidationError
from .models import BrainState, Task

TITLE_MAX = 255
DESCRIPTION_MAX = 1000
NOTES_MAX = 500
COMPLEXITY_RANGE = (1, 5)
LEVEL_RANGE = (1, 10)
MINUTES_RANGE = (1, 1440)


def _check_int(field: str, value, bounds: tuple[int, int]) -> None:
    # bool is an int subclass; True would pass as 1
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(field, "must be a whole number")
    lo, hi = bounds
    if not (lo <= value <= hi):
        raise ValidationError(field, f"must be between {lo} and {hi}")


def validate_task(task: Task) -> Task:
    """Return a normalized copy of ``task`` or raise ValidationError."""
    title = (task.title or "").strip()
    if not title:
        raise ValidationError("title", "required")
    if len(title) > TITLE_MAX:
        raise ValidationError("title", f"at most {TITLE_MAX} characters")
    description = task.description
    if description is not None:
        if len(description) > DESCRIPTION_MAX:
            raise ValidationError("description", f"at most {DESCRIPTION_MAX} characters")
        if not description.strip():
            description = None
    _check_int("complexity_level", task.complexity_level, COMPLEXITY_RANGE)
    if task.estimated_minutes is not None:
        _check_int("estimated_minutes", task.estimated_minutes, MINUTES_RANGE)
    return replace(task, title=title, description=description)


def validate_brain_state(state: BrainState) -> BrainState:
    try:
        day = date.fromisoformat(str(state.day)).isoformat()
    except ValueError:
        raise ValidationError("day", "must be a YYYY-MM-DD date") from None
    for name in ("energy", "focus", "mood"):
        _check_int(name, getattr(state, name), LEVEL_RANGE)
    notes = state.notes
    if notes is not None:
        if len(notes) > NOTES_MAX:
            raise ValidationError("notes", f"at most {NOTES_MAX} characters")
        if not notes.strip():
            notes = None
    return replace(state, day=day, notes=notes)


__all__ = ["validate_task", "validate_brain_state"]
