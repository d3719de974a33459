"""
services/transaction_service.py — Direct person-to-person amounts.

A transaction is recorded by its owner against one counterparty. The amount
is signed from the owner's point of view (see models/transaction.py).
Either party may see it or settle it.

Layer rules:
  - No Flask imports. Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from backend.app import signals
from backend.app.errors import AppError, ErrorCode
from backend.app.models.category import Category
from backend.app.models.transaction import Transaction
from backend.app.services import person_service

logger = logging.getLogger(__name__)


def record_transaction(caller_id: int, data: dict, session: Session) -> Transaction:
    """
    Records a transaction owned by the caller.

    Raises:
        AppError(SELF_TRANSACTION, 422) — counterparty is the caller.
        AppError(UNKNOWN_PERSON, 422)   — counterparty does not exist.
    """
    counterparty_id = data["counterparty_person_id"]
    if counterparty_id == caller_id:
        raise AppError(
            ErrorCode.SELF_TRANSACTION,
            "A transaction needs someone other than yourself on the other side.",
            422,
            field="counterparty_person_id",
        )
    person_service.require_people_exist(
        [counterparty_id], session, field="counterparty_person_id",
    )

    transaction = Transaction(
        owner_person_id=caller_id,
        counterparty_person_id=counterparty_id,
        title=data["title"].strip(),
        amount=data["amount"],
        category=data.get("category", Category.OTHER),
        notes=data.get("notes") or "",
        is_settled=False,
    )
    if data.get("date") is not None:
        transaction.date = data["date"]

    session.add(transaction)
    session.flush()
    session.refresh(transaction)

    logger.info(
        "Recorded transaction %s between %s and %s (%s)",
        transaction.id, caller_id, counterparty_id, transaction.amount,
    )
    signals.transaction_recorded.send(__name__, transaction=transaction)
    signals.balances_changed.send(__name__, person_ids={caller_id, counterparty_id})
    return transaction


def list_transactions(caller_id: int, session: Session) -> list[Transaction]:
    """Transactions where the caller is either party. Newest first."""
    stmt = (
        select(Transaction)
        .where(
            or_(
                Transaction.owner_person_id == caller_id,
                Transaction.counterparty_person_id == caller_id,
            )
        )
        .order_by(Transaction.date.desc(), Transaction.id.desc())
    )
    return list(session.execute(stmt).scalars().all())


def settle_transaction(transaction_id: int, caller_id: int, session: Session) -> Transaction:
    """
    Marks a transaction settled. Idempotent.

    Raises:
        AppError(TRANSACTION_NOT_FOUND, 404)
        AppError(FORBIDDEN, 403) — caller is neither party.
    """
    transaction = session.get(Transaction, transaction_id)
    if transaction is None:
        raise AppError(
            ErrorCode.TRANSACTION_NOT_FOUND,
            f"Transaction {transaction_id} does not exist.",
            404,
        )
    if caller_id not in {transaction.owner_person_id, transaction.counterparty_person_id}:
        raise AppError(
            ErrorCode.FORBIDDEN,
            "Only the two people on a transaction may settle it.",
            403,
        )

    if not transaction.is_settled:
        transaction.is_settled = True
        session.flush()
        logger.info("Settled transaction %s", transaction_id)
        signals.balances_changed.send(
            __name__,
            person_ids={transaction.owner_person_id, transaction.counterparty_person_id},
        )

    return transaction
