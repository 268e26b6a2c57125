from __future__ import annotations

"""Monthly AI request quota.

Two states per user:

 - available: requests_used < requests_limit
 - exhausted: requests_used has reached requests_limit

``consume`` moves a user toward exhausted. The monthly reset is the only way
back to available. ``check`` never changes the usage counter, though it does
apply a reset that has come due.

Without an idempotency key ``consume`` counts every call, so a caller that
retries a successful AI request will be charged twice.
"""

import logging
from datetime import date
from typing import Callable, Optional

from .database_manager import DatabaseManager
from .errors import ValidationError
from .models import TIERS, QuotaStatus, SubscriptionQuota, next_reset_date
from .repositories import (
    get_quota,
    get_setting,
    increment_quota_usage,
    record_quota_request,
    save_quota,
)

_log = logging.getLogger(__name__)

DateProvider = Callable[[], date]

DEFAULT_LIMITS: dict[str, int] = {"free": 10, "premium": 100}
LIMIT_SETTING_KEYS: dict[str, str] = {
    "free": "quota_limit_free",
    "premium": "quota_limit_premium",
}


def check_quota(usage: SubscriptionQuota) -> QuotaStatus:
    remaining = max(0, usage.requests_limit - usage.requests_used)
    allowed = usage.requests_used < usage.requests_limit
    return QuotaStatus(
        allowed=allowed,
        remaining=remaining,
        state="available" if allowed else "exhausted",
    )


class QuotaGate:
    def __init__(
        self,
        db: DatabaseManager,
        default_limits: Optional[dict[str, int]] = None,
        today: Optional[DateProvider] = None,
    ) -> None:
        self._db = db
        self._limits = dict(DEFAULT_LIMITS)
        if default_limits:
            self._limits.update(default_limits)
        self._today: DateProvider = today or date.today

    # --- Configuration ----------------------------------------------------
    def limit_for(self, tier: str) -> int:
        if tier not in TIERS:
            raise ValidationError("tier", f"must be one of {', '.join(TIERS)}")
        override = get_setting(self._db, LIMIT_SETTING_KEYS[tier])
        if override:
            try:
                value = int(override)
            except ValueError:
                _log.warning("ignoring bad quota limit setting for %s: %r", tier, override)
            else:
                if value > 0:
                    return value
        return self._limits[tier]

    # --- Public API -------------------------------------------------------
    def check(self, user_id: int) -> QuotaStatus:
        return check_quota(self.reset_if_due(user_id))

    def consume(self, user_id: int, idempotency_key: Optional[str] = None) -> SubscriptionQuota:
        """Count one successful AI request against ``user_id``."""
        quota = self.reset_if_due(user_id)
        if idempotency_key is not None and not record_quota_request(
            self._db, user_id, idempotency_key
        ):
            _log.info(
                "quota request already counted",
                extra={"_json_user_id": user_id, "_json_key": idempotency_key},
            )
            return quota
        increment_quota_usage(self._db, user_id)
        quota = self._load(user_id)
        _log.info(
            "quota consumed",
            extra={
                "_json_user_id": user_id,
                "_json_used": quota.requests_used,
                "_json_limit": quota.requests_limit,
            },
        )
        if quota.requests_used >= quota.requests_limit:
            _log.info("quota exhausted", extra={"_json_user_id": user_id})
        return quota

    def reset_if_due(self, user_id: int) -> SubscriptionQuota:
        quota = self._load(user_id)
        today = self._today()
        if today >= date.fromisoformat(quota.reset_date):
            quota.requests_used = 0
            quota.reset_date = next_reset_date(today).isoformat()
            save_quota(self._db, quota)
            _log.info(
                "quota reset",
                extra={"_json_user_id": user_id, "_json_next_reset": quota.reset_date},
            )
        return quota

    def change_tier(self, user_id: int, tier: str) -> SubscriptionQuota:
        limit = self.limit_for(tier)
        quota = self._load(user_id)
        quota.tier = tier
        quota.requests_limit = limit
        save_quota(self._db, quota)
        _log.info("tier changed", extra={"_json_user_id": user_id, "_json_tier": tier})
        return quota

    # --- Internal ---------------------------------------------------------
    def _load(self, user_id: int) -> SubscriptionQuota:
        quota = get_quota(self._db, user_id)
        if quota is None:
            raise ValidationError("user_id", "no quota for user")
        return quota


__all__ = ["QuotaGate", "check_quota", "DEFAULT_LIMITS", "LIMIT_SETTING_KEYS"]
