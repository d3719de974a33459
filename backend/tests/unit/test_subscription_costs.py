"""
tests/unit/test_subscription_costs.py — Unit tests for monthly-cost normalisation
and billing-date arithmetic in services/subscription_service.py.

No database, no Flask.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest

from backend.app.models.subscription import BillingCycle
from backend.app.services.subscription_service import (
    MONTHLY_FACTORS,
    add_billing_cycle,
    advance_renewal,
    cost_per_person,
    is_overdue,
    monthly_equivalent,
    next_billing_date,
)


@pytest.mark.parametrize("cycle,price,expected", [
    (BillingCycle.DAILY,         "1.00",   "30.44"),
    (BillingCycle.WEEKLY,        "10.00",  "43.30"),
    (BillingCycle.BIWEEKLY,      "10.00",  "21.70"),
    (BillingCycle.MONTHLY,       "15.99",  "15.99"),
    (BillingCycle.QUARTERLY,     "30.00",  "10.00"),
    (BillingCycle.SEMI_ANNUALLY, "60.00",  "10.00"),
    (BillingCycle.YEARLY,        "120.00", "10.00"),
    (BillingCycle.ANNUALLY,      "99.99",  "8.33"),
    (BillingCycle.LIFETIME,      "299.00", "0.00"),
])
def test_monthly_equivalent(cycle, price, expected):
    assert monthly_equivalent(Decimal(price), cycle) == Decimal(expected)


def test_every_cycle_has_a_factor():
    assert set(MONTHLY_FACTORS) == set(BillingCycle)


def test_rounds_half_up():
    # 10.00 / 3 = 3.333… → 3.33; 10.01 / 6 = 1.668… → 1.67
    assert monthly_equivalent(Decimal("10.00"), BillingCycle.QUARTERLY) == Decimal("3.33")
    assert monthly_equivalent(Decimal("10.01"), BillingCycle.SEMI_ANNUALLY) == Decimal("1.67")


def test_cost_per_person_includes_owner():
    assert cost_per_person(Decimal("15.00"), 2) == Decimal("5.00")


def test_cost_per_person_unshared_is_whole_cost():
    assert cost_per_person(Decimal("15.99"), 0) == Decimal("15.99")


def test_cost_per_person_rounds_half_up():
    assert cost_per_person(Decimal("10.00"), 2) == Decimal("3.33")
    assert cost_per_person(Decimal("0.05"), 1) == Decimal("0.03")


# ── Billing dates ──────────────────────────────────────────────────────────

def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def _subscription(cycle: BillingCycle, next_billing: datetime | None, is_active: bool = True):
    # Stands in for a Subscription row; only the fields renewal reads.
    return SimpleNamespace(
        id=1, billing_cycle=cycle, is_active=is_active, next_billing_date=next_billing,
    )


@pytest.mark.parametrize("cycle,expected", [
    (BillingCycle.DAILY,         _utc(2026, 3, 16, 9, 30)),
    (BillingCycle.WEEKLY,        _utc(2026, 3, 22, 9, 30)),
    (BillingCycle.BIWEEKLY,      _utc(2026, 3, 29, 9, 30)),
    (BillingCycle.MONTHLY,       _utc(2026, 4, 15, 9, 30)),
    (BillingCycle.QUARTERLY,     _utc(2026, 6, 15, 9, 30)),
    (BillingCycle.SEMI_ANNUALLY, _utc(2026, 9, 15, 9, 30)),
    (BillingCycle.YEARLY,        _utc(2027, 3, 15, 9, 30)),
    (BillingCycle.ANNUALLY,      _utc(2027, 3, 15, 9, 30)),
])
def test_next_billing_date_per_cycle(cycle, expected):
    assert next_billing_date(_utc(2026, 3, 15, 9, 30), cycle) == expected


def test_lifetime_has_no_billing_date():
    assert next_billing_date(_utc(2026, 3, 15), BillingCycle.LIFETIME) is None


def test_month_end_clamps_to_shorter_month():
    assert next_billing_date(_utc(2026, 1, 31), BillingCycle.MONTHLY) == _utc(2026, 2, 28)
    assert next_billing_date(_utc(2024, 2, 29), BillingCycle.YEARLY) == _utc(2025, 2, 28)
    assert next_billing_date(_utc(2026, 8, 31), BillingCycle.SEMI_ANNUALLY) == _utc(2027, 2, 28)


def test_quarterly_crosses_year_end():
    assert next_billing_date(_utc(2026, 11, 30), BillingCycle.QUARTERLY) == _utc(2027, 2, 28)


def test_several_occurrences_count_from_the_start():
    assert add_billing_cycle(_utc(2026, 1, 31), BillingCycle.MONTHLY, 2) == _utc(2026, 3, 31)
    assert add_billing_cycle(_utc(2026, 1, 1), BillingCycle.WEEKLY, 3) == _utc(2026, 1, 22)


def test_naive_start_is_read_as_utc():
    assert next_billing_date(datetime(2026, 3, 15), BillingCycle.DAILY) == _utc(2026, 3, 16)


def test_is_overdue():
    now = _utc(2026, 5, 1)
    assert is_overdue(_subscription(BillingCycle.MONTHLY, _utc(2026, 4, 30)), now) is True
    assert is_overdue(_subscription(BillingCycle.MONTHLY, _utc(2026, 5, 2)), now) is False
    assert is_overdue(_subscription(BillingCycle.MONTHLY, _utc(2026, 4, 30), is_active=False), now) is False
    assert is_overdue(_subscription(BillingCycle.LIFETIME, None), now) is False


def test_advance_renewal_one_cycle():
    subscription = _subscription(BillingCycle.MONTHLY, _utc(2026, 4, 15))
    assert advance_renewal(subscription, now=_utc(2026, 4, 20)) == 1
    assert subscription.next_billing_date == _utc(2026, 5, 15)


def test_advance_renewal_skips_every_missed_cycle():
    subscription = _subscription(BillingCycle.WEEKLY, _utc(2026, 4, 1))
    assert advance_renewal(subscription, now=_utc(2026, 4, 20)) == 3
    assert subscription.next_billing_date == _utc(2026, 4, 22)


def test_advance_renewal_keeps_month_end_anchor():
    subscription = _subscription(BillingCycle.MONTHLY, _utc(2026, 1, 31))
    assert advance_renewal(subscription, now=_utc(2026, 3, 5)) == 2
    assert subscription.next_billing_date == _utc(2026, 3, 31)


def test_advance_renewal_leaves_future_date_alone():
    subscription = _subscription(BillingCycle.MONTHLY, _utc(2026, 6, 1))
    assert advance_renewal(subscription, now=_utc(2026, 5, 1)) == 0
    assert subscription.next_billing_date == _utc(2026, 6, 1)


def test_advance_renewal_ignores_paused_subscription():
    subscription = _subscription(BillingCycle.MONTHLY, _utc(2026, 1, 1), is_active=False)
    assert advance_renewal(subscription, now=_utc(2026, 5, 1)) == 0
    assert subscription.next_billing_date == _utc(2026, 1, 1)
