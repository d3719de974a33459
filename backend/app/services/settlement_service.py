"""
services/settlement_service.py — Settlement tracking for split bills.

Two layers live here:

  1. Pure tracker functions (mark_participant_paid, settlement_progress, ...)
     that work on any object shaped like a SplitBill: a `participants` list
     whose items have `id`, `amount`, `has_paid` and `payment_date`. They
     never touch the session, so unit tests drive them with SimpleNamespace.

  2. settle_participant / unsettle_participant, which load the bill, check
     who is allowed to flip the flag, call the pure function, flush, and
     announce the change through app/signals.py.

Rules:
  - The payer's own participant row is created paid (split_bill_service), so
    a bill is fully settled once everyone else has paid.
  - Only the paid / unpaid flag and payment_date ever change on a participant.
  - Marking an already-paid participant as paid is a no-op (no error, the
    original payment_date is kept).
  - Soft-deleted bills are frozen: SPLIT_BILL_DELETED (422).
  - Payer, creator, or the participant themself may flip the flag; anyone
    else gets FORBIDDEN (403).

Layer rules:
  - No Flask imports. Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from backend.app import signals
from backend.app.errors import AppError, ErrorCode, ParticipantNotFoundError
from backend.app.models.split_bill import SplitBill

logger = logging.getLogger(__name__)


# ── Pure tracker functions ─────────────────────────────────────────────────

def _find_participant(split_bill, participant_id: int):
    for participant in split_bill.participants:
        if participant.id == participant_id:
            return participant
    raise ParticipantNotFoundError(split_bill.id, participant_id)


def mark_participant_paid(split_bill, participant_id: int, now: datetime | None = None) -> bool:
    """
    Marks one participant as paid.

    Returns True if the participant changed, False if they had already paid.
    Raises ParticipantNotFoundError if participant_id is not on this bill.
    """
    participant = _find_participant(split_bill, participant_id)
    if participant.has_paid:
        return False

    participant.has_paid = True
    participant.payment_date = now or datetime.now(timezone.utc)
    return True


def mark_participant_unpaid(split_bill, participant_id: int) -> bool:
    """Reverses a payment. Returns False if the participant was already unpaid."""
    participant = _find_participant(split_bill, participant_id)
    if not participant.has_paid:
        return False

    participant.has_paid = False
    participant.payment_date = None
    return True


def settled_count(split_bill) -> int:
    return sum(1 for p in split_bill.participants if p.has_paid)


def pending_count(split_bill) -> int:
    return len(split_bill.participants) - settled_count(split_bill)


def settlement_progress(split_bill) -> float:
    """Fraction of participants who have paid, in [0, 1]. 0.0 with no participants."""
    total = len(split_bill.participants)
    if total == 0:
        return 0.0
    return settled_count(split_bill) / total


def is_fully_settled(split_bill) -> bool:
    return settlement_progress(split_bill) == 1.0


def total_settled(split_bill) -> Decimal:
    return sum((p.amount for p in split_bill.participants if p.has_paid), Decimal("0.00"))


def total_pending(split_bill) -> Decimal:
    """Sum of amounts still owed by unpaid participants."""
    return sum((p.amount for p in split_bill.participants if not p.has_paid), Decimal("0.00"))


def settlement_summary(split_bill) -> dict:
    """Progress figures for display alongside a split bill."""
    return {
        "settled_count": settled_count(split_bill),
        "pending_count": pending_count(split_bill),
        "settlement_progress": settlement_progress(split_bill),
        "is_fully_settled": is_fully_settled(split_bill),
        "total_settled": total_settled(split_bill),
        "total_pending": total_pending(split_bill),
    }


# ── Session-bound operations ───────────────────────────────────────────────

def _load_open_bill(split_bill_id: int, session: Session) -> SplitBill:
    split_bill = session.get(SplitBill, split_bill_id)
    if split_bill is None:
        raise AppError(
            ErrorCode.SPLIT_BILL_NOT_FOUND,
            f"Split bill {split_bill_id} does not exist.",
            404,
        )
    if split_bill.is_deleted:
        raise AppError(
            ErrorCode.SPLIT_BILL_DELETED,
            f"Split bill {split_bill_id} has been deleted and cannot be settled.",
            422,
        )
    return split_bill


def _require_can_settle(split_bill: SplitBill, participant_id: int, caller_id: int) -> None:
    participant = _find_participant(split_bill, participant_id)
    allowed = {
        split_bill.paid_by_person_id,
        split_bill.created_by_person_id,
        participant.person_id,
    }
    if caller_id not in allowed:
        raise AppError(
            ErrorCode.FORBIDDEN,
            "Only the payer, the creator or the participant may change this payment.",
            403,
        )


def _announce(split_bill: SplitBill, participant_id: int) -> None:
    participant = _find_participant(split_bill, participant_id)
    signals.participant_settled.send(
        __name__,
        split_bill=split_bill,
        participant=participant,
        has_paid=participant.has_paid,
    )
    signals.balances_changed.send(
        __name__,
        person_ids={split_bill.paid_by_person_id, participant.person_id},
    )


def settle_participant(
        split_bill_id: int,
        participant_id: int,
        caller_id: int,
        session: Session,
) -> SplitBill:
    """
    Marks a participant of a split bill as paid.

    Raises:
        AppError(SPLIT_BILL_NOT_FOUND, 404)
        AppError(SPLIT_BILL_DELETED, 422)
        ParticipantNotFoundError (404)
        AppError(FORBIDDEN, 403)
    """
    split_bill = _load_open_bill(split_bill_id, session)
    _require_can_settle(split_bill, participant_id, caller_id)

    if mark_participant_paid(split_bill, participant_id):
        session.flush()
        logger.info(
            "Participant %s marked paid on split bill %s", participant_id, split_bill_id,
        )
        _announce(split_bill, participant_id)

    return split_bill


def unsettle_participant(
        split_bill_id: int,
        participant_id: int,
        caller_id: int,
        session: Session,
) -> SplitBill:
    """Reverses settle_participant. Same errors and authorisation."""
    split_bill = _load_open_bill(split_bill_id, session)
    _require_can_settle(split_bill, participant_id, caller_id)

    if mark_participant_unpaid(split_bill, participant_id):
        session.flush()
        logger.info(
            "Participant %s marked unpaid on split bill %s", participant_id, split_bill_id,
        )
        _announce(split_bill, participant_id)

    return split_bill
