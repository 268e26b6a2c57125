from __future__ import annotations

"""Dataclass models representing database entities and derived values."""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Literal, Optional


UiLevel = Literal["low", "medium", "high"]
Tier = Literal["free", "premium"]
QuotaState = Literal["available", "exhausted"]

UI_LEVELS: tuple[str, ...] = ("low", "medium", "high")
TIERS: tuple[str, ...] = ("free", "premium")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0, tzinfo=None).isoformat() + "Z"


def today_iso() -> str:
    return date.today().isoformat()


def next_reset_date(day: date) -> date:
    """First day of the month after ``day``."""
    if day.month == 12:
        return date(day.year + 1, 1, 1)
    return date(day.year, day.month + 1, 1)


@dataclass(slots=True)
class User:
    id: Optional[int]
    external_id: str  # subject from the auth provider
    display_name: Optional[str] = None
    created_at: Optional[str] = None


@dataclass(slots=True)
class BrainState:
    id: Optional[int]
    user_id: int
    day: str  # YYYY-MM-DD
    energy: int
    focus: int
    mood: int
    notes: Optional[str] = None
    created_at: Optional[str] = None


@dataclass(slots=True)
class Task:
    id: Optional[int]
    user_id: int
    title: str
    description: Optional[str] = None
    complexity_level: int = 3
    estimated_minutes: Optional[int] = None
    is_completed: bool = False
    ai_breakdown: Optional[list[str]] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass(slots=True)
class SubscriptionQuota:
    user_id: int
    tier: str  # free or premium
    requests_used: int
    requests_limit: int
    reset_date: str  # YYYY-MM-DD, first day the counter goes back to zero


@dataclass(slots=True, frozen=True)
class AdaptationResult:
    ui_level: str
    max_task_complexity: int
    spacing: str
    touch_target_size: int
    encouragement_tone: str


@dataclass(slots=True, frozen=True)
class QuotaStatus:
    allowed: bool
    remaining: int
    state: str = field(default="available")


__all__ = [
    "User",
    "BrainState",
    "Task",
    "SubscriptionQuota",
    "AdaptationResult",
    "QuotaStatus",
    "UiLevel",
    "Tier",
    "QuotaState",
    "UI_LEVELS",
    "TIERS",
    "utc_now_iso",
    "today_iso",
    "next_reset_date",
]
