from __future__ import annotations

"""Error taxonomy and the gentle messages shown to users.

There are only three kinds of failure: bad input, an unreachable service and
an exhausted quota. Each carries a pre-written message with a next step so
the UI never has to show a raw error.
"""

from typing import Optional


GENTLE_MESSAGES: dict[str, str] = {
    "validation": "Something in that entry needs a small tweak. Take a look and try again whenever you're ready.",
    "unavailable": "The helper is taking a break right now. Give it a moment and try again.",
    "rate_limited": "Lots of requests right now. Waiting a minute and trying again usually works.",
    "missing_key": "AI breakdowns aren't set up yet. You can still split this task up yourself.",
    "invalid_response": "That breakdown came back jumbled. Trying again usually gives a cleaner one.",
    "quota_exceeded": "You've used this month's AI breakdowns. They refresh soon, or you can upgrade for more.",
    "unknown": "Something didn't go as planned. Nothing is lost, so feel free to try again.",
}


class PlannerError(Exception):
    kind = "unknown"

    @property
    def user_message(self) -> str:
        return GENTLE_MESSAGES.get(self.kind, GENTLE_MESSAGES["unknown"])


class ValidationError(PlannerError):
    kind = "validation"

    def __init__(self, field: str, reason: str):
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason


class ConnectivityError(PlannerError):
    def __init__(self, kind: str = "unavailable", detail: str = ""):
        super().__init__(detail or kind)
        self.kind = kind if kind in GENTLE_MESSAGES else "unavailable"


class QuotaExceededError(PlannerError):
    kind = "quota_exceeded"

    def __init__(self, remaining: int = 0, reset_date: Optional[str] = None):
        super().__init__(f"quota exhausted until {reset_date or 'next reset'}")
        self.remaining = remaining
        self.reset_date = reset_date


def gentle_message(exc: BaseException) -> str:
    if isinstance(exc, PlannerError):
        return exc.user_message
    return GENTLE_MESSAGES["unknown"]


__all__ = [
    "GENTLE_MESSAGES",
    "PlannerError",
    "ValidationError",
    "ConnectivityError",
    "QuotaExceededError",
    "gentle_message",
]
