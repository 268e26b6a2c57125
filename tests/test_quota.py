from datetime import date

import pytest

from neuroplan.errors import ValidationError
from neuroplan.models import SubscriptionQuota, User
from neuroplan.quota import QuotaGate, check_quota
from neuroplan.repositories import create_user, get_quota, save_quota, set_setting


class FakeToday:
    def __init__(self, start: date):
        self.value = start

    def __call__(self) -> date:
        return self.value


def _usage(used: int, limit: int) -> SubscriptionQuota:
    return SubscriptionQuota(user_id=1, tier="free", requests_used=used, requests_limit=limit, reset_date="2025-02-01")


def test_check_quota_exhausted():
    status = check_quota(_usage(10, 10))
    assert status.allowed is False
    assert status.remaining == 0
    assert status.state == "exhausted"


def test_check_quota_last_request():
    status = check_quota(_usage(9, 10))
    assert status.allowed is True
    assert status.remaining == 1
    assert status.state == "available"


def test_check_quota_over_limit_never_negative():
    assert check_quota(_usage(12, 10)).remaining == 0


@pytest.fixture()
def clock():
    return FakeToday(date(2025, 1, 10))


@pytest.fixture()
def member(db, clock):
    return create_user(db, User(id=None, external_id="auth|dana"), requests_limit=3, today=clock())


def test_consume_until_exhausted(db, clock, member):
    gate = QuotaGate(db, today=clock)
    for _ in range(3):
        assert gate.check(member.id).allowed
        gate.consume(member.id)
    status = gate.check(member.id)
    assert status.allowed is False
    assert status.state == "exhausted"


def test_check_does_not_mutate(db, clock, member):
    gate = QuotaGate(db, today=clock)
    gate.check(member.id)
    gate.check(member.id)
    assert get_quota(db, member.id).requests_used == 0  # type: ignore[union-attr]


def test_consume_without_key_double_counts(db, clock, member):
    gate = QuotaGate(db, today=clock)
    gate.consume(member.id)
    gate.consume(member.id)
    assert get_quota(db, member.id).requests_used == 2  # type: ignore[union-attr]


def test_consume_with_key_counts_once(db, clock, member):
    gate = QuotaGate(db, today=clock)
    gate.consume(member.id, idempotency_key="breakdown-42")
    q = gate.consume(member.id, idempotency_key="breakdown-42")
    assert q.requests_used == 1
    gate.consume(member.id, idempotency_key="breakdown-43")
    assert get_quota(db, member.id).requests_used == 2  # type: ignore[union-attr]


def test_monthly_reset_restores_availability(db, clock, member):
    gate = QuotaGate(db, today=clock)
    for _ in range(3):
        gate.consume(member.id)
    assert not gate.check(member.id).allowed

    clock.value = date(2025, 1, 31)
    assert not gate.check(member.id).allowed

    clock.value = date(2025, 2, 1)
    status = gate.check(member.id)
    assert status.allowed and status.remaining == 3
    q = get_quota(db, member.id)
    assert q.requests_used == 0  # type: ignore[union-attr]
    assert q.reset_date == "2025-03-01"  # type: ignore[union-attr]


def test_reset_rolls_over_year(db, clock, member):
    q = get_quota(db, member.id)
    q.reset_date = "2025-12-01"  # type: ignore[union-attr]
    save_quota(db, q)  # type: ignore[arg-type]
    clock.value = date(2025, 12, 20)
    assert QuotaGate(db, today=clock).reset_if_due(member.id).reset_date == "2026-01-01"


def test_change_tier_uses_configured_limits(db, clock, member):
    gate = QuotaGate(db, default_limits={"premium": 250}, today=clock)
    q = gate.change_tier(member.id, "premium")
    assert (q.tier, q.requests_limit) == ("premium", 250)

    set_setting(db, "quota_limit_free", "5")
    q = gate.change_tier(member.id, "free")
    assert q.requests_limit == 5

    set_setting(db, "quota_limit_free", "not-a-number")
    assert gate.limit_for("free") == 10

    with pytest.raises(ValidationError):
        gate.change_tier(member.id, "platinum")


def test_unknown_user(db, clock):
    with pytest.raises(ValidationError):
        QuotaGate(db, today=clock).check(999)
