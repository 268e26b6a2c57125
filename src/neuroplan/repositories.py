from __future__ import annotations

"""Repository helper functions for CRUD operations.

Each function takes the DatabaseManager explicitly. Per-user queries always
filter on ``user_id`` so one user's rows are never visible to another.
"""

import json
import logging
import sqlite3
from datetime import date

from .database_manager import DatabaseManager
from .errors import ValidationError
from .models import BrainState, SubscriptionQuota, Task, User, next_reset_date, utc_now_iso
from .validation import validate_brain_state, validate_task

_log = logging.getLogger(__name__)

DEFAULT_FREE_LIMIT = 10


# --- Generic helpers -------------------------------------------------------

def _last_row_id(cur: sqlite3.Cursor) -> int:
    return int(cur.lastrowid)  # type: ignore[arg-type]


# --- Users ------------------------------------------------------------------

def _row_to_user(row: sqlite3.Row) -> User:
    return User(
        id=row["id"],
        external_id=row["external_id"],
        display_name=row["display_name"],
        created_at=row["created_at"],
    )


def create_user(
    db: DatabaseManager,
    user: User,
    *,
    requests_limit: int = DEFAULT_FREE_LIMIT,
    today: date | None = None,
) -> User:
    """Insert ``user`` and give them a free-tier quota row."""
    if not user.external_id.strip():
        raise ValidationError("external_id", "required")
    if isinstance(requests_limit, bool) or not isinstance(requests_limit, int) or requests_limit <= 0:
        raise ValidationError("requests_limit", "must be a positive whole number")
    if get_user_by_external_id(db, user.external_id) is not None:
        raise ValidationError("external_id", "already registered")
    reset = next_reset_date(today or date.today())
    conn = db.connect()
    # user and quota rows land together or not at all
    with conn:
        cur = conn.execute(
            "INSERT INTO users (external_id, display_name) VALUES (?,?)",
            (user.external_id, user.display_name),
        )
        user_id = _last_row_id(cur)
        conn.execute(
            """
            INSERT INTO subscription_quotas (user_id, tier, requests_used, requests_limit, reset_date)
            VALUES (?,?,?,?,?)
            """,
            (user_id, "free", 0, requests_limit, reset.isoformat()),
        )
    user.id = user_id
    row = db.query_one("SELECT created_at FROM users WHERE id=?", (user.id,))
    if row:
        user.created_at = row["created_at"]
    _log.info("user created", extra={"_json_user_id": user.id})
    return user


def get_user(db: DatabaseManager, user_id: int) -> User | None:
    row = db.query_one("SELECT * FROM users WHERE id=?", (user_id,))
    return _row_to_user(row) if row else None


def get_user_by_external_id(db: DatabaseManager, external_id: str) -> User | None:
    row = db.query_one("SELECT * FROM users WHERE external_id=?", (external_id,))
    return _row_to_user(row) if row else None


def delete_user(db: DatabaseManager, user_id: int) -> None:
    db.execute("DELETE FROM users WHERE id=?", (user_id,))
    _log.info("user deleted", extra={"_json_user_id": user_id})


# --- Brain states -----------------------------------------------------------

def _row_to_brain_state(row: sqlite3.Row) -> BrainState:
    return BrainState(
        id=row["id"],
        user_id=row["user_id"],
        day=row["day"],
        energy=row["energy"],
        focus=row["focus"],
        mood=row["mood"],
        notes=row["notes"],
        created_at=row["created_at"],
    )


def record_brain_state(db: DatabaseManager, state: BrainState) -> BrainState:
    """Store today's snapshot. A day that already has one is left untouched."""
    state = validate_brain_state(state)
    if get_brain_state_for_day(db, state.user_id, state.day) is not None:
        raise ValidationError("day", "brain state already recorded")
    cur = db.execute(
        """
        INSERT INTO brain_states (user_id, day, energy, focus, mood, notes)
        VALUES (?,?,?,?,?,?)
        """,
        (state.user_id, state.day, state.energy, state.focus, state.mood, state.notes),
    )
    state.id = _last_row_id(cur)
    row = db.query_one("SELECT created_at FROM brain_states WHERE id=?", (state.id,))
    if row:
        state.created_at = row["created_at"]
    _log.info(
        "brain state recorded",
        extra={"_json_user_id": state.user_id, "_json_day": state.day},
    )
    return state


def get_brain_state_for_day(db: DatabaseManager, user_id: int, day: str) -> BrainState | None:
    row = db.query_one(
        "SELECT * FROM brain_states WHERE user_id=? AND day=?", (user_id, day)
    )
    return _row_to_brain_state(row) if row else None


def list_brain_states(db: DatabaseManager, user_id: int, limit: int = 30) -> list[BrainState]:
    rows = db.query_all(
        "SELECT * FROM brain_states WHERE user_id=? ORDER BY day DESC LIMIT ?",
        (user_id, limit),
    )
    return [_row_to_brain_state(r) for r in rows]


# --- Tasks ------------------------------------------------------------------

def _row_to_task(row: sqlite3.Row) -> Task:
    breakdown = json.loads(row["ai_breakdown"]) if row["ai_breakdown"] else None
    return Task(
        id=row["id"],
        user_id=row["user_id"],
        title=row["title"],
        description=row["description"],
        complexity_level=row["complexity_level"],
        estimated_minutes=row["estimated_minutes"],
        is_completed=bool(row["is_completed"]),
        ai_breakdown=breakdown,
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def create_task(db: DatabaseManager, task: Task) -> Task:
    task = validate_task(task)
    cur = db.execute(
        """
        INSERT INTO tasks (user_id, title, description, complexity_level, estimated_minutes, is_completed, ai_breakdown)
        VALUES (?,?,?,?,?,?,?)
        """,
        (
            task.user_id,
            task.title,
            task.description,
            task.complexity_level,
            task.estimated_minutes,
            int(task.is_completed),
            json.dumps(task.ai_breakdown) if task.ai_breakdown is not None else None,
        ),
    )
    created = get_task(db, task.user_id, _last_row_id(cur))
    assert created is not None
    _log.info(
        "task created",
        extra={"_json_user_id": task.user_id, "_json_task_id": created.id},
    )
    return created


def get_task(db: DatabaseManager, user_id: int, task_id: int) -> Task | None:
    row = db.query_one("SELECT * FROM tasks WHERE id=? AND user_id=?", (task_id, user_id))
    return _row_to_task(row) if row else None


def list_tasks(db: DatabaseManager, user_id: int, include_completed: bool = True) -> list[Task]:
    sql = "SELECT * FROM tasks WHERE user_id=?"
    if not include_completed:
        sql += " AND is_completed=0"
    rows = db.query_all(sql + " ORDER BY id", (user_id,))
    return [_row_to_task(r) for r in rows]


def update_task(db: DatabaseManager, task: Task) -> Task:
    if task.id is None:
        raise ValidationError("id", "task must be saved before updating")
    task = validate_task(task)
    task.updated_at = utc_now_iso()
    cur = db.execute(
        """
        UPDATE tasks SET title=?, description=?, complexity_level=?, estimated_minutes=?,
            is_completed=?, updated_at=?
        WHERE id=? AND user_id=?
        """,
        (
            task.title,
            task.description,
            task.complexity_level,
            task.estimated_minutes,
            int(task.is_completed),
            task.updated_at,
            task.id,
            task.user_id,
        ),
    )
    if cur.rowcount == 0:
        raise ValidationError("id", "task not found")
    return task


def complete_task(db: DatabaseManager, user_id: int, task_id: int) -> bool:
    cur = db.execute(
        "UPDATE tasks SET is_completed=1, updated_at=? WHERE id=? AND user_id=?",
        (utc_now_iso(), task_id, user_id),
    )
    done = cur.rowcount > 0
    if done:
        _log.info("task completed", extra={"_json_user_id": user_id, "_json_task_id": task_id})
    return done


def delete_task(db: DatabaseManager, user_id: int, task_id: int) -> bool:
    cur = db.execute("DELETE FROM tasks WHERE id=? AND user_id=?", (task_id, user_id))
    return cur.rowcount > 0


def set_task_breakdown(db: DatabaseManager, user_id: int, task_id: int, steps: list[str]) -> bool:
    cur = db.execute(
        "UPDATE tasks SET ai_breakdown=?, updated_at=? WHERE id=? AND user_id=?",
        (json.dumps(steps), utc_now_iso(), task_id, user_id),
    )
    return cur.rowcount > 0


# --- Subscription quotas ----------------------------------------------------

def get_quota(db: DatabaseManager, user_id: int) -> SubscriptionQuota | None:
    row = db.query_one("SELECT * FROM subscription_quotas WHERE user_id=?", (user_id,))
    if not row:
        return None
    return SubscriptionQuota(
        user_id=row["user_id"],
        tier=row["tier"],
        requests_used=row["requests_used"],
        requests_limit=row["requests_limit"],
        reset_date=row["reset_date"],
    )


def save_quota(db: DatabaseManager, quota: SubscriptionQuota) -> None:
    db.execute(
        """
        UPDATE subscription_quotas SET tier=?, requests_used=?, requests_limit=?, reset_date=?
        WHERE user_id=?
        """,
        (quota.tier, quota.requests_used, quota.requests_limit, quota.reset_date, quota.user_id),
    )


def increment_quota_usage(db: DatabaseManager, user_id: int) -> None:
    db.execute(
        "UPDATE subscription_quotas SET requests_used = requests_used + 1 WHERE user_id=?",
        (user_id,),
    )


def record_quota_request(db: DatabaseManager, user_id: int, idempotency_key: str) -> bool:
    """Remember ``idempotency_key``; False when it was already seen."""
    cur = db.execute(
        "INSERT OR IGNORE INTO quota_requests (user_id, idempotency_key) VALUES (?,?)",
        (user_id, idempotency_key),
    )
    return cur.rowcount > 0


def quota_request_seen(db: DatabaseManager, user_id: int, idempotency_key: str) -> bool:
    row = db.query_one(
        "SELECT 1 FROM quota_requests WHERE user_id=? AND idempotency_key=?",
        (user_id, idempotency_key),
    )
    return row is not None


# --- Settings ---------------------------------------------------------------

def get_setting(db: DatabaseManager, key: str) -> str | None:
    row = db.query_one("SELECT value FROM settings WHERE key=?", (key,))
    return row["value"] if row else None


def set_setting(db: DatabaseManager, key: str, value: str) -> None:
    db.execute(
        "INSERT INTO settings(key, value) VALUES(?, ?) ON CONFLICT(key) DO UPDATE SET value=excluded.value",
        (key, value),
    )


__all__ = [
    # Users
    "create_user",
    "get_user",
    "get_user_by_external_id",
    "delete_user",
    # Brain states
    "record_brain_state",
    "get_brain_state_for_day",
    "list_brain_states",
    # Tasks
    "create_task",
    "get_task",
    "list_tasks",
    "update_task",
    "complete_task",
    "delete_task",
    "set_task_breakdown",
    # Quotas
    "get_quota",
    "save_quota",
    "increment_quota_usage",
    "record_quota_request",
    "quota_request_seen",
    # Settings
    "get_setting",
    "set_setting",
]
