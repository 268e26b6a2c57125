from __future__ import annotations

"""Quota-gated AI breakdown of a single task.

Flow: load task -> check quota -> call the model -> store steps -> consume.
A failed call leaves the quota untouched. Nothing here retries; that is the
caller's decision. Repeating an idempotency key that already produced steps
returns the stored steps without calling the model again.
"""

import logging
from typing import Optional

from .database_manager import DatabaseManager
from .errors import ConnectivityError, QuotaExceededError, ValidationError
from .gemini_breakdown import BreakdownFailed, GeminiClient
from .models import today_iso
from .quota import QuotaGate
from .repositories import (
    get_brain_state_for_day,
    get_quota,
    get_task,
    quota_request_seen,
    set_task_breakdown,
)

_log = logging.getLogger(__name__)


def request_breakdown(
    db: DatabaseManager,
    user_id: int,
    task_id: int,
    client: Optional[GeminiClient],
    gate: QuotaGate,
    idempotency_key: Optional[str] = None,
    day: Optional[str] = None,
) -> list[str]:
    task = get_task(db, user_id, task_id)
    if task is None:
        raise ValidationError("task_id", "task not found")
    if client is None:
        raise ConnectivityError("missing_key", "no AI client configured")

    if (
        idempotency_key is not None
        and task.ai_breakdown is not None
        and quota_request_seen(db, user_id, idempotency_key)
    ):
        _log.info(
            "breakdown replayed",
            extra={"_json_user_id": user_id, "_json_task_id": task_id, "_json_key": idempotency_key},
        )
        return list(task.ai_breakdown)

    status = gate.check(user_id)
    if not status.allowed:
        quota = get_quota(db, user_id)
        raise QuotaExceededError(
            remaining=status.remaining,
            reset_date=quota.reset_date if quota else None,
        )

    snapshot = get_brain_state_for_day(db, user_id, day or today_iso())
    result = client.breakdown_task(task.title, snapshot)
    if isinstance(result, BreakdownFailed):
        _log.warning(
            "breakdown unavailable",
            extra={"_json_user_id": user_id, "_json_task_id": task_id, "_json_kind": result.kind},
        )
        raise ConnectivityError(result.kind)

    steps = list(result.steps)
    set_task_breakdown(db, user_id, task_id, steps)
    gate.consume(user_id, idempotency_key)
    _log.info(
        "breakdown stored",
        extra={"_json_user_id": user_id, "_json_task_id": task_id, "_json_steps": len(steps)},
    )
    return steps


__all__ = ["request_breakdown"]
