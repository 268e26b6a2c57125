from __future__ import annotations

"""Pick the open tasks that fit today's complexity ceiling."""

from typing import Iterable, Optional

from .adaptation import adaptation_for_day
from .database_manager import DatabaseManager
from .models import Task
from .repositories import list_tasks


def filter_tasks(tasks: Iterable[Task], max_complexity: int) -> list[Task]:
    return [
        t for t in tasks if not t.is_completed and t.complexity_level <= max_complexity
    ]


def tasks_for_today(db: DatabaseManager, user_id: int, day: Optional[str] = None) -> list[Task]:
    adaptation = adaptation_for_day(db, user_id, day)
    return filter_tasks(
        list_tasks(db, user_id, include_completed=False), adaptation.max_task_complexity
    )


__all__ = ["filter_tasks", "tasks_for_today"]
