"""
services/balance_service.py — Per-person net balances for one caller.

This file is the SINGLE SOURCE OF TRUTH for how balances are computed.
The canonical fold must not be reimplemented elsewhere in the codebase.

Sign convention (from the caller's point of view):
    balance > 0  → that person owes the caller
    balance < 0  → the caller owes that person
    balance == 0 → settled, or never involved

Three sources feed the fold:
  1. Transactions: the signed amount, flipped when the caller is the
     counterparty rather than the owner. Settled transactions are skipped.
  2. Split bills: every unpaid participant owes their amount to the payer.
     Paid participants and soft-deleted bills contribute nothing.
  3. Group expenses: every person in split_between except the payer owes
     their equal share to the payer, until the expense is settled.

Balances are recomputed from scratch on every call. Nothing is cached.

Layer rules:
  - No Flask imports. No current_app, request, g, or HTTP knowledge.
  - Receives caller_id (int) and session (SQLAlchemy Session) as arguments.
  - Returns plain Python dicts and lists.
  - fold_contributions() is fully unit-testable without a session; the data
    access helpers are patched in tests.
"""

from __future__ import annotations

from collections import defaultdict
from decimal import Decimal

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from backend.app.models.group_expense import GroupExpense, GroupExpenseShare
from backend.app.models.person import Person
from backend.app.models.split_bill import SplitBill
from backend.app.models.split_participant import SplitParticipant
from backend.app.models.transaction import Transaction
from backend.app.services import person_service
from backend.app.services.split_calculator import equal_shares

SOURCES = ("transactions", "split_bills", "group_expenses")

_ZERO = Decimal("0.00")


# ── Data access helpers ────────────────────────────────────────────────────
# These are the ONLY sanctioned ways to load balance inputs. Each one already
# narrows to records that involve the caller.

def get_active_split_bills(caller_id: int, session: Session) -> list[SplitBill]:
    """Split bills WHERE deleted_at IS NULL that the caller paid for or is in."""
    stmt = (
        select(SplitBill)
        .where(
            SplitBill.deleted_at.is_(None),
            or_(
                SplitBill.paid_by_person_id == caller_id,
                SplitBill.participants.any(SplitParticipant.person_id == caller_id),
            ),
        )
        .order_by(SplitBill.id.asc())
    )
    return list(session.execute(stmt).scalars().all())


def get_unsettled_group_expenses(caller_id: int, session: Session) -> list[GroupExpense]:
    """Unsettled group expenses the caller paid for or shares in."""
    stmt = (
        select(GroupExpense)
        .where(
            GroupExpense.is_settled == False,  # noqa: E712
            or_(
                GroupExpense.paid_by_person_id == caller_id,
                GroupExpense.shares.any(GroupExpenseShare.person_id == caller_id),
            ),
        )
        .order_by(GroupExpense.id.asc())
    )
    return list(session.execute(stmt).scalars().all())


def get_transactions_for(caller_id: int, session: Session) -> list[Transaction]:
    """All transactions where the caller is owner or counterparty."""
    stmt = (
        select(Transaction)
        .where(
            or_(
                Transaction.owner_person_id == caller_id,
                Transaction.counterparty_person_id == caller_id,
            )
        )
        .order_by(Transaction.id.asc())
    )
    return list(session.execute(stmt).scalars().all())


def get_person_ids(session: Session) -> list[int]:
    """Returns the ids of every person on record."""
    return list(session.execute(select(Person.id).order_by(Person.id.asc())).scalars().all())


# ── Core algorithm ─────────────────────────────────────────────────────────

def fold_contributions(
        caller_id: int,
        transactions,
        split_bills,
        group_expenses,
) -> dict[int, dict[str, Decimal]]:
    """
    Folds every input into {person_id: {source: amount}} relative to caller_id.

    Inputs only need the model attributes read below, so plain objects work
    in tests. Records that do not involve the caller are ignored. The caller
    never appears as a key.
    """
    contributions: dict[int, dict[str, Decimal]] = defaultdict(
        lambda: {source: _ZERO for source in SOURCES}
    )

    # 1. Transactions: signed from the owner's side.
    for transaction in transactions:
        if transaction.is_settled:
            continue
        if transaction.owner_person_id == caller_id:
            contributions[transaction.counterparty_person_id]["transactions"] += transaction.amount
        elif transaction.counterparty_person_id == caller_id:
            contributions[transaction.owner_person_id]["transactions"] -= transaction.amount

    # 2. Split bills: unpaid participants owe the payer.
    for split_bill in split_bills:
        if split_bill.deleted_at is not None:
            continue
        payer = split_bill.paid_by_person_id
        for participant in split_bill.participants:
            if participant.has_paid or participant.person_id == payer:
                continue
            if payer == caller_id:
                contributions[participant.person_id]["split_bills"] += participant.amount
            elif participant.person_id == caller_id:
                contributions[payer]["split_bills"] -= participant.amount

    # 3. Group expenses: equal shares owed to the payer.
    for expense in group_expenses:
        if expense.is_settled or not expense.split_between:
            continue
        payer = expense.paid_by_person_id
        shares = equal_shares(expense.amount, expense.split_between)
        if payer == caller_id:
            for person_id, amount in shares.items():
                if person_id != caller_id:
                    contributions[person_id]["group_expenses"] += amount
        elif caller_id in shares:
            contributions[payer]["group_expenses"] -= shares[caller_id]

    contributions.pop(caller_id, None)
    return dict(contributions)


def compute_balances(caller_id: int, session: Session) -> dict[int, Decimal]:
    """
    Canonical balance computation for one caller.

    Returns {person_id: net_balance} for every other person on record,
    including those whose balance is exactly zero.
    """
    folded = fold_contributions(
        caller_id,
        get_transactions_for(caller_id, session),
        get_active_split_bills(caller_id, session),
        get_unsettled_group_expenses(caller_id, session),
    )

    balances: dict[int, Decimal] = {
        person_id: sum(parts.values(), _ZERO)
        for person_id, parts in folded.items()
    }
    for person_id in get_person_ids(session):
        if person_id != caller_id:
            balances.setdefault(person_id, _ZERO)

    return balances


def direction_of(balance: Decimal) -> str:
    if balance > 0:
        return "owes_you"
    if balance < 0:
        return "you_owe"
    return "settled"


def get_balance_response(caller_id: int, session: Session, currency: str) -> dict:
    """
    Builds the payload for GET /balances.

    Args:
        currency: Display code from config. Amounts are not converted.
    """
    balances = compute_balances(caller_id, session)
    names = person_service.get_names(balances.keys(), session)

    rows = sorted(
        (
            {
                "person_id": pid,
                "name": names.get(pid, f"person_{pid}"),
                "balance": str(bal),
                "direction": direction_of(bal),
            }
            for pid, bal in balances.items()
        ),
        key=lambda row: (row["name"].lower(), row["person_id"]),
    )

    owed_to_you = sum((b for b in balances.values() if b > 0), _ZERO)
    you_owe = -sum((b for b in balances.values() if b < 0), _ZERO)

    return {
        "person_id": caller_id,
        "currency": currency,
        "balances": rows,
        "total_owed_to_you": str(owed_to_you),
        "total_you_owe": str(you_owe),
        "net_balance": str(owed_to_you - you_owe),
    }


def get_person_balance(
        caller_id: int,
        person_id: int,
        session: Session,
        currency: str,
) -> dict:
    """
    Balance between the caller and one person, with a per-source breakdown.

    Raises:
        AppError(PERSON_NOT_FOUND, 404)
    """
    person = person_service.get_person_or_404(person_id, session)

    folded = fold_contributions(
        caller_id,
        get_transactions_for(caller_id, session),
        get_active_split_bills(caller_id, session),
        get_unsettled_group_expenses(caller_id, session),
    )
    parts = folded.get(person_id, {source: _ZERO for source in SOURCES})
    balance = sum(parts.values(), _ZERO)

    return {
        "person_id": person.id,
        "name": person.name,
        "currency": currency,
        "balance": str(balance),
        "direction": direction_of(balance),
        "breakdown": {source: str(parts[source]) for source in SOURCES},
    }
