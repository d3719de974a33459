"""
services/split_bill_service.py — Split bill creation, lookup and deletion.

Flow for a new bill:
  1. The schema has already checked request shape (per-type fields present,
     no duplicate participants, amounts at most 2 dp).
  2. build_split_method() turns the raw participant rows into the split
     method dataclass for the chosen split type.
  3. split_calculator.calculate_split() validates the inputs against the
     total and produces per-person amounts. Any SplitValidationError
     propagates unchanged so the client can show the delta.
  4. The bill and its ordered participant rows are written together. The
     payer's own row, if they take part, starts paid.

Visibility: a bill is visible to its creator, its payer and its participants.
Anyone else gets FORBIDDEN (403).

Deletion is soft (deleted_at = NOW()). Participant rows remain; balances
ignore the bill from then on. Only the payer or the creator may delete.

Layer rules:
  - No Flask imports. Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from backend.app import signals
from backend.app.errors import AppError, ErrorCode, InvalidSplitError
from backend.app.models.category import Category
from backend.app.models.group import Group
from backend.app.models.split_bill import SplitBill, SplitType
from backend.app.models.split_participant import SplitParticipant
from backend.app.services import person_service, split_calculator
from backend.app.services.split_calculator import (
    AdjustmentSplit,
    EqualSplit,
    ExactAmountSplit,
    PercentageSplit,
    ShareSplit,
    SplitMethod,
)

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _get_split_bill_or_404(split_bill_id: int, session: Session) -> SplitBill:
    """Returns the SplitBill (active or deleted) or raises SPLIT_BILL_NOT_FOUND (404)."""
    split_bill = session.get(SplitBill, split_bill_id)
    if split_bill is None:
        raise AppError(
            ErrorCode.SPLIT_BILL_NOT_FOUND,
            f"Split bill {split_bill_id} does not exist.",
            404,
        )
    return split_bill


def _require_visible(split_bill: SplitBill, caller_id: int) -> None:
    involved = {split_bill.paid_by_person_id, split_bill.created_by_person_id}
    involved.update(p.person_id for p in split_bill.participants)
    if caller_id not in involved:
        raise AppError(
            ErrorCode.FORBIDDEN,
            f"You are not part of split bill {split_bill.id}.",
            403,
        )


def build_split_method(split_type: SplitType, participants: list[dict]) -> SplitMethod:
    """
    Maps validated participant rows to the split method for split_type.

    Rows are {"person_id", "amount"?, "percentage"?, "shares"?, "adjustment"?};
    the schema guarantees the field each split type needs is present.
    """
    if split_type == SplitType.EQUALLY:
        return EqualSplit(person_ids=[p["person_id"] for p in participants])

    if split_type == SplitType.EXACT_AMOUNTS:
        return ExactAmountSplit(
            amounts={p["person_id"]: p["amount"] for p in participants},
        )

    if split_type == SplitType.PERCENTAGES:
        return PercentageSplit(
            percentages={p["person_id"]: p["percentage"] for p in participants},
        )

    if split_type == SplitType.SHARES:
        return ShareSplit(
            shares={p["person_id"]: p["shares"] for p in participants},
        )

    if split_type == SplitType.ADJUSTMENTS:
        return AdjustmentSplit(
            person_ids=[p["person_id"] for p in participants],
            adjustments={
                p["person_id"]: p["adjustment"]
                for p in participants
                if p.get("adjustment") is not None
            },
        )

    raise InvalidSplitError(f"Unsupported split type: {split_type!r}.", field="split_type")


# ── Public service functions ───────────────────────────────────────────────

def preview_split(data: dict) -> dict:
    """
    Runs the calculator without writing anything.

    Used by the client while the user is still editing the form. Raises the
    same SplitValidationError family as create_split_bill().
    """
    total: Decimal = data["total_amount"]
    split_type: SplitType = data["split_type"]
    method = build_split_method(split_type, data["participants"])
    results = split_calculator.calculate_split(total, method)
    return {
        "total_amount": total,
        "split_type": split_type.value,
        "participants": results,
    }


def create_split_bill(
        caller_id: int,
        data: dict,
        session: Session,
) -> SplitBill:
    """
    Creates a split bill with its participants.

    Args:
        caller_id: The acting person (recorded as created_by).
        data:      Validated dict from CreateSplitBillSchema.

    Raises:
        SplitValidationError family (422) — inputs do not reconcile with the total.
        AppError(UNKNOWN_PERSON, 422)     — payer or a participant does not exist.
    """
    total: Decimal = data["total_amount"]
    split_type: SplitType = data["split_type"]
    participants_in: list[dict] = data["participants"]

    method = build_split_method(split_type, participants_in)
    results = split_calculator.calculate_split(total, method)

    person_service.require_people_exist(
        [data["paid_by_person_id"]], session, field="paid_by_person_id",
    )
    person_service.require_people_exist(
        [r["person_id"] for r in results], session, field="participants",
    )
    if data.get("group_id") is not None and session.get(Group, data["group_id"]) is None:
        raise AppError(
            ErrorCode.GROUP_NOT_FOUND,
            f"Group {data['group_id']} does not exist.",
            404,
            field="group_id",
        )

    split_bill = SplitBill(
        title=data["title"].strip(),
        total_amount=total,
        paid_by_person_id=data["paid_by_person_id"],
        created_by_person_id=caller_id,
        split_type=split_type,
        category=data.get("category", Category.OTHER),
        notes=data.get("notes") or "",
        group_id=data.get("group_id"),
    )
    if data.get("date") is not None:
        split_bill.date = data["date"]

    # The payer's own share is settled from the start.
    payer_id = data["paid_by_person_id"]
    created_at = datetime.now(timezone.utc)
    split_bill.participants = [
        SplitParticipant(
            person_id=r["person_id"],
            position=position,
            amount=r["amount"],
            percentage=r["percentage"],
            shares=r["shares"],
            has_paid=r["person_id"] == payer_id,
            payment_date=created_at if r["person_id"] == payer_id else None,
        )
        for position, r in enumerate(results)
    ]

    session.add(split_bill)
    session.flush()
    session.refresh(split_bill)

    logger.info(
        "Created split bill %s (%s, %s participants, total %s)",
        split_bill.id, split_type.value, len(results), total,
    )
    signals.split_bill_created.send(__name__, split_bill=split_bill)
    signals.balances_changed.send(
        __name__,
        person_ids={split_bill.paid_by_person_id, *(r["person_id"] for r in results)},
    )
    return split_bill


def list_split_bills(caller_id: int, session: Session) -> list[SplitBill]:
    """Active bills the caller created, paid for, or takes part in. Newest first."""
    stmt = (
        select(SplitBill)
        .where(
            SplitBill.deleted_at.is_(None),
            or_(
                SplitBill.paid_by_person_id == caller_id,
                SplitBill.created_by_person_id == caller_id,
                SplitBill.participants.any(SplitParticipant.person_id == caller_id),
            ),
        )
        .order_by(SplitBill.date.desc(), SplitBill.id.desc())
    )
    return list(session.execute(stmt).scalars().all())


def get_split_bill(split_bill_id: int, caller_id: int, session: Session) -> SplitBill:
    """
    Returns a single bill with participants. Soft-deleted bills are returned
    too; deleted_at lets the client show that state.
    """
    split_bill = _get_split_bill_or_404(split_bill_id, session)
    _require_visible(split_bill, caller_id)
    return split_bill


def delete_split_bill(split_bill_id: int, caller_id: int, session: Session) -> None:
    """
    Soft-deletes a bill. Idempotent.

    Raises:
        AppError(SPLIT_BILL_NOT_FOUND, 404)
        AppError(FORBIDDEN, 403) — caller is neither payer nor creator.
    """
    split_bill = _get_split_bill_or_404(split_bill_id, session)

    if caller_id not in {split_bill.paid_by_person_id, split_bill.created_by_person_id}:
        raise AppError(
            ErrorCode.FORBIDDEN,
            "Only the payer or the creator may delete this split bill.",
            403,
        )

    if not split_bill.is_deleted:
        split_bill.deleted_at = datetime.now(timezone.utc)
        session.flush()
        logger.info("Soft-deleted split bill %s", split_bill_id)
        signals.balances_changed.send(
            __name__,
            person_ids={split_bill.paid_by_person_id, *(p.person_id for p in split_bill.participants)},
        )
