"""
tests/unit/test_balance_fold.py — Unit tests for balance_service.fold_contributions
                                   and balance_service.compute_balances.

What this file proves:
  - Transactions count with their sign, flipped for the counterparty
  - Unpaid split bill participants owe the payer; paid ones owe nothing
  - Soft-deleted split bills and settled records contribute nothing
  - Group expenses use the same equal-split cent policy as the calculator
  - Every other person appears in compute_balances, even at zero
  - The caller never appears in their own balance list

Unit test constraints:
  - No database. All DB-querying helpers are patched via unittest.mock.
  - No Flask application context.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from backend.app.services.balance_service import (
    compute_balances,
    direction_of,
    fold_contributions,
)

ME, BOB, CARA = 1, 2, 3


# ── Factory helpers ────────────────────────────────────────────────────────

def _transaction(owner: int, counterparty: int, amount: str, settled: bool = False):
    return SimpleNamespace(
        owner_person_id=owner,
        counterparty_person_id=counterparty,
        amount=Decimal(amount),
        is_settled=settled,
    )


def _participant(person_id: int, amount: str, has_paid: bool = False):
    return SimpleNamespace(person_id=person_id, amount=Decimal(amount), has_paid=has_paid)


def _split_bill(payer: int, participants, deleted: bool = False):
    return SimpleNamespace(
        paid_by_person_id=payer,
        participants=participants,
        deleted_at=datetime(2026, 1, 1, tzinfo=timezone.utc) if deleted else None,
    )


def _group_expense(payer: int, amount: str, split_between, settled: bool = False):
    return SimpleNamespace(
        paid_by_person_id=payer,
        amount=Decimal(amount),
        split_between=list(split_between),
        is_settled=settled,
    )


_PATCH_BASE = "backend.app.services.balance_service"
_PATCH_TRANSACTIONS = f"{_PATCH_BASE}.get_transactions_for"
_PATCH_SPLIT_BILLS  = f"{_PATCH_BASE}.get_active_split_bills"
_PATCH_EXPENSES     = f"{_PATCH_BASE}.get_unsettled_group_expenses"
_PATCH_PERSON_IDS   = f"{_PATCH_BASE}.get_person_ids"


# ── fold_contributions ─────────────────────────────────────────────────────

def test_owner_transaction_is_owed_to_caller():
    folded = fold_contributions(ME, [_transaction(ME, BOB, "20.00")], [], [])
    assert folded[BOB]["transactions"] == Decimal("20.00")


def test_counterparty_transaction_flips_sign():
    folded = fold_contributions(ME, [_transaction(BOB, ME, "20.00")], [], [])
    assert folded[BOB]["transactions"] == Decimal("-20.00")


def test_negative_transaction_means_caller_owes():
    folded = fold_contributions(ME, [_transaction(ME, BOB, "-15.00")], [], [])
    assert folded[BOB]["transactions"] == Decimal("-15.00")


def test_settled_transaction_contributes_nothing():
    folded = fold_contributions(ME, [_transaction(ME, BOB, "20.00", settled=True)], [], [])
    assert BOB not in folded


def test_unpaid_participant_owes_payer():
    bill = _split_bill(ME, [_participant(ME, "50.00"), _participant(BOB, "50.00")])
    folded = fold_contributions(ME, [], [bill], [])
    assert folded[BOB]["split_bills"] == Decimal("50.00")
    assert ME not in folded


def test_paid_participant_owes_nothing():
    bill = _split_bill(ME, [_participant(BOB, "50.00", has_paid=True)])
    folded = fold_contributions(ME, [], [bill], [])
    assert BOB not in folded


def test_caller_as_unpaid_participant_owes_payer():
    bill = _split_bill(BOB, [_participant(BOB, "30.00"), _participant(ME, "30.00")])
    folded = fold_contributions(ME, [], [bill], [])
    assert folded[BOB]["split_bills"] == Decimal("-30.00")


def test_other_peoples_debts_are_ignored():
    """Bob paid, Cara owes Bob. Nothing there concerns the caller."""
    bill = _split_bill(BOB, [_participant(CARA, "30.00"), _participant(ME, "10.00")])
    folded = fold_contributions(ME, [], [bill], [])
    assert CARA not in folded
    assert folded[BOB]["split_bills"] == Decimal("-10.00")


def test_deleted_split_bill_contributes_nothing():
    bill = _split_bill(ME, [_participant(BOB, "50.00")], deleted=True)
    assert fold_contributions(ME, [], [bill], []) == {}


def test_group_expense_uses_equal_cent_policy():
    """$100 between Bob, me and Cara: Bob's share is the extra-cent 33.34."""
    expense = _group_expense(ME, "100.00", [BOB, ME, CARA])
    folded = fold_contributions(ME, [], [], [expense])
    assert folded[BOB]["group_expenses"] == Decimal("33.34")
    assert folded[CARA]["group_expenses"] == Decimal("33.33")


def test_caller_owes_group_expense_payer():
    expense = _group_expense(BOB, "90.00", [BOB, ME, CARA])
    folded = fold_contributions(ME, [], [], [expense])
    assert folded[BOB]["group_expenses"] == Decimal("-30.00")
    assert CARA not in folded


def test_settled_group_expense_contributes_nothing():
    expense = _group_expense(ME, "90.00", [ME, BOB], settled=True)
    assert fold_contributions(ME, [], [], [expense]) == {}


def test_sources_are_kept_apart():
    folded = fold_contributions(
        ME,
        [_transaction(ME, BOB, "20.00")],
        [_split_bill(ME, [_participant(BOB, "50.00")])],
        [_group_expense(BOB, "10.00", [BOB, ME])],
    )
    assert folded[BOB] == {
        "transactions": Decimal("20.00"),
        "split_bills": Decimal("50.00"),
        "group_expenses": Decimal("-5.00"),
    }


# ── compute_balances ───────────────────────────────────────────────────────

@patch(_PATCH_PERSON_IDS)
@patch(_PATCH_EXPENSES)
@patch(_PATCH_SPLIT_BILLS)
@patch(_PATCH_TRANSACTIONS)
def test_split_share_and_transaction_add_up(
    mock_transactions, mock_split_bills, mock_expenses, mock_person_ids
):
    """
    I paid a $100 dinner split with Bob ($50 each, Bob unpaid) and separately
    lent Bob $20. Bob owes me $70.
    """
    mock_transactions.return_value = [_transaction(ME, BOB, "20.00")]
    mock_split_bills.return_value = [
        _split_bill(ME, [_participant(ME, "50.00"), _participant(BOB, "50.00")]),
    ]
    mock_expenses.return_value = []
    mock_person_ids.return_value = [ME, BOB]

    result = compute_balances(ME, session=MagicMock())

    assert result == {BOB: Decimal("70.00")}


@patch(_PATCH_PERSON_IDS)
@patch(_PATCH_EXPENSES)
@patch(_PATCH_SPLIT_BILLS)
@patch(_PATCH_TRANSACTIONS)
def test_everyone_else_appears_at_zero(
    mock_transactions, mock_split_bills, mock_expenses, mock_person_ids
):
    mock_transactions.return_value = []
    mock_split_bills.return_value = []
    mock_expenses.return_value = []
    mock_person_ids.return_value = [ME, BOB, CARA]

    result = compute_balances(ME, session=MagicMock())

    assert result == {BOB: Decimal("0.00"), CARA: Decimal("0.00")}


@patch(_PATCH_PERSON_IDS)
@patch(_PATCH_EXPENSES)
@patch(_PATCH_SPLIT_BILLS)
@patch(_PATCH_TRANSACTIONS)
def test_opposite_debts_net_out(
    mock_transactions, mock_split_bills, mock_expenses, mock_person_ids
):
    mock_transactions.return_value = [_transaction(BOB, ME, "25.00")]
    mock_split_bills.return_value = [_split_bill(ME, [_participant(BOB, "25.00")])]
    mock_expenses.return_value = []
    mock_person_ids.return_value = [ME, BOB]

    result = compute_balances(ME, session=MagicMock())

    assert result[BOB] == Decimal("0.00")
    assert direction_of(result[BOB]) == "settled"


def test_direction_labels():
    assert direction_of(Decimal("1.00")) == "owes_you"
    assert direction_of(Decimal("-1.00")) == "you_owe"
    assert direction_of(Decimal("0.00")) == "settled"
