"""
services/subscription_service.py — Subscriptions and monthly-cost normalisation.

Every billing cycle is converted to a monthly figure with a fixed factor:

    daily 30.44 · weekly 4.33 · biweekly 2.17 · monthly 1
    quarterly 1/3 · semi_annually 1/6 · yearly 1/12 · annually 1/12
    lifetime 0 (a one-off purchase has no running cost)

The result is rounded half-up to the cent. A shared subscription's cost per
person divides the monthly figure between the owner and everyone in
shared_with.

Billing dates advance in calendar units: daily +1 day, weekly +1 week,
biweekly +2 weeks, monthly +1 month, quarterly +3 months, semi_annually
+6 months, yearly and annually +1 year. Month arithmetic clamps to the last
day of a shorter month (Jan 31 + 1 month = Feb 28). Lifetime purchases have
no billing date. A subscription is overdue while it is active and its
next_billing_date has passed; advance_renewal() rolls it forward.

Layer rules:
  - No Flask imports. Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import calendar
import logging
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.models.category import Category
from backend.app.models.subscription import BillingCycle, Subscription, SubscriptionShare
from backend.app.services import person_service

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")

MONTHLY_FACTORS: dict[BillingCycle, Decimal] = {
    BillingCycle.DAILY:         Decimal("30.44"),
    BillingCycle.WEEKLY:        Decimal("4.33"),
    BillingCycle.BIWEEKLY:      Decimal("2.17"),
    BillingCycle.MONTHLY:       Decimal("1"),
    BillingCycle.QUARTERLY:     Decimal("1") / Decimal("3"),
    BillingCycle.SEMI_ANNUALLY: Decimal("1") / Decimal("6"),
    BillingCycle.YEARLY:        Decimal("1") / Decimal("12"),
    BillingCycle.ANNUALLY:      Decimal("1") / Decimal("12"),
    BillingCycle.LIFETIME:      Decimal("0"),
}


def monthly_equivalent(price: Decimal, billing_cycle: BillingCycle) -> Decimal:
    """price per cycle → price per month, rounded half-up to the cent."""
    return (Decimal(price) * MONTHLY_FACTORS[billing_cycle]).quantize(_CENT, rounding=ROUND_HALF_UP)


def cost_per_person(monthly: Decimal, shared_with_count: int) -> Decimal:
    """Monthly cost split between the owner and shared_with_count others."""
    return (Decimal(monthly) / Decimal(shared_with_count + 1)).quantize(
        _CENT, rounding=ROUND_HALF_UP,
    )


# ── Billing dates ──────────────────────────────────────────────────────────

_DAY_STEPS: dict[BillingCycle, timedelta] = {
    BillingCycle.DAILY:    timedelta(days=1),
    BillingCycle.WEEKLY:   timedelta(weeks=1),
    BillingCycle.BIWEEKLY: timedelta(weeks=2),
}

_MONTH_STEPS: dict[BillingCycle, int] = {
    BillingCycle.MONTHLY:       1,
    BillingCycle.QUARTERLY:     3,
    BillingCycle.SEMI_ANNUALLY: 6,
    BillingCycle.YEARLY:        12,
    BillingCycle.ANNUALLY:      12,
}


def _as_utc(moment: datetime) -> datetime:
    # SQLite hands DateTime(timezone=True) columns back naive; they were stored as UTC.
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _add_months(moment: datetime, months: int) -> datetime:
    index = moment.month - 1 + months
    year, month = moment.year + index // 12, index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def add_billing_cycle(
    moment: datetime, billing_cycle: BillingCycle, occurrences: int = 1,
) -> datetime | None:
    """
    moment moved forward by `occurrences` billing cycles.

    Returns None for lifetime purchases. Month-based cycles are computed from
    `moment` in one step, so Jan 31 + 2 months is Mar 31, not Mar 28.
    """
    if billing_cycle in _DAY_STEPS:
        return moment + _DAY_STEPS[billing_cycle] * occurrences
    if billing_cycle in _MONTH_STEPS:
        return _add_months(moment, _MONTH_STEPS[billing_cycle] * occurrences)
    return None


def next_billing_date(start: datetime, billing_cycle: BillingCycle) -> datetime | None:
    """The first billing date after `start`."""
    return add_billing_cycle(_as_utc(start), billing_cycle)


def is_overdue(subscription: Subscription, now: datetime | None = None) -> bool:
    """Active, renewable and past its next_billing_date."""
    if not subscription.is_active or subscription.next_billing_date is None:
        return False
    now = now or datetime.now(timezone.utc)
    return _as_utc(subscription.next_billing_date) < now


def advance_renewal(subscription: Subscription, now: datetime | None = None) -> int:
    """
    Rolls next_billing_date forward past `now`, one billing cycle at a time.

    Every missed cycle is counted from the stored date in one step, so Jan 31
    renewed on Mar 5 becomes Mar 31, not Mar 28.

    Returns the number of cycles advanced (0 when the subscription is not
    overdue). Does not flush.
    """
    if not is_overdue(subscription, now):
        return 0
    now = now or datetime.now(timezone.utc)

    current = _as_utc(subscription.next_billing_date)
    occurrences = 1
    while add_billing_cycle(current, subscription.billing_cycle, occurrences) <= now:
        occurrences += 1

    subscription.next_billing_date = add_billing_cycle(
        current, subscription.billing_cycle, occurrences,
    )
    logger.info(
        "Renewed subscription %s by %s cycle(s), next billing %s",
        subscription.id, occurrences, subscription.next_billing_date.isoformat(),
    )
    return occurrences


def describe(subscription: Subscription) -> dict:
    """Plain dict for one subscription, including its normalised costs."""
    monthly = monthly_equivalent(subscription.price, subscription.billing_cycle)
    shared_with = [s.person_id for s in subscription.shared_with]
    next_billing = subscription.next_billing_date
    return {
        "id": subscription.id,
        "name": subscription.name,
        "price": str(subscription.price),
        "billing_cycle": subscription.billing_cycle.value,
        "category": subscription.category.value,
        "is_active": subscription.is_active,
        "shared_with": shared_with,
        "monthly_equivalent": str(monthly),
        "cost_per_person": str(cost_per_person(monthly, len(shared_with))),
        "created_at": subscription.created_at.isoformat() if subscription.created_at else None,
        "next_billing_date": _as_utc(next_billing).isoformat() if next_billing else None,
        "is_overdue": is_overdue(subscription),
    }


def create_subscription(caller_id: int, data: dict, session: Session) -> Subscription:
    """
    Records a subscription owned by the caller.

    next_billing_date is one billing cycle after data["start_date"] (default:
    now), or None for a lifetime purchase.

    Raises:
        AppError(UNKNOWN_PERSON, 422) — someone in shared_with does not exist.
    """
    shared_with = [pid for pid in dict.fromkeys(data.get("shared_with", [])) if pid != caller_id]
    person_service.require_people_exist(shared_with, session, field="shared_with")
    start = data.get("start_date") or datetime.now(timezone.utc)

    subscription = Subscription(
        owner_person_id=caller_id,
        name=data["name"].strip(),
        price=data["price"],
        billing_cycle=data["billing_cycle"],
        category=data.get("category", Category.ENTERTAINMENT),
        is_active=data.get("is_active", True),
        next_billing_date=next_billing_date(start, data["billing_cycle"]),
    )
    subscription.shared_with = [SubscriptionShare(person_id=pid) for pid in shared_with]

    session.add(subscription)
    session.flush()
    session.refresh(subscription)
    logger.info(
        "Created subscription %s (%s %s)",
        subscription.id, subscription.price, subscription.billing_cycle.value,
    )
    return subscription


def list_subscriptions(caller_id: int, session: Session) -> list[Subscription]:
    """The caller's subscriptions, by name."""
    stmt = (
        select(Subscription)
        .where(Subscription.owner_person_id == caller_id)
        .order_by(Subscription.name.asc(), Subscription.id.asc())
    )
    return list(session.execute(stmt).scalars().all())


def renew_overdue(caller_id: int, session: Session, now: datetime | None = None) -> list[Subscription]:
    """
    Advances every overdue subscription the caller owns past `now`.

    Returns the subscriptions that moved, by name.
    """
    renewed = [
        s for s in list_subscriptions(caller_id, session)
        if advance_renewal(s, now)
    ]
    session.flush()
    return renewed


def monthly_summary(caller_id: int, session: Session, currency: str) -> dict:
    """
    Monthly running cost of the caller's active subscriptions.

    total_monthly is the sum of the rounded per-subscription figures, so the
    rows always add up to the total shown. total_yearly = total_monthly * 12.
    """
    active = [s for s in list_subscriptions(caller_id, session) if s.is_active]
    rows = [describe(s) for s in active]

    total_monthly = sum((Decimal(r["monthly_equivalent"]) for r in rows), Decimal("0.00"))
    your_share = sum((Decimal(r["cost_per_person"]) for r in rows), Decimal("0.00"))

    return {
        "currency": currency,
        "subscriptions": rows,
        "active_count": len(rows),
        "total_monthly": str(total_monthly),
        "total_yearly": str(total_monthly * 12),
        "your_monthly_share": str(your_share),
    }
