"""
routes/transactions.py — Direct transaction route handlers.

Endpoints (base url_prefix=/api/v1/transactions):
  POST   /transactions              → 201  record transaction
  GET    /transactions              → 200  list caller's transactions
  POST   /transactions/:id/settle   → 200  settle transaction
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from backend.app.extensions import db
from backend.app.middleware.identity_middleware import require_person
from backend.app.models.transaction import Transaction
from backend.app.schemas.transaction_schema import CreateTransactionSchema
from backend.app.services import transaction_service

transactions_bp = Blueprint("transactions", __name__)


def _serialize_transaction(transaction: Transaction) -> dict:
    return {
        "id": transaction.id,
        "owner_person_id": transaction.owner_person_id,
        "counterparty_person_id": transaction.counterparty_person_id,
        "counterparty_name": transaction.counterparty.name,
        "title": transaction.title,
        "amount": str(transaction.amount),
        "category": transaction.category.value,
        "notes": transaction.notes,
        "is_settled": transaction.is_settled,
        "date": transaction.date.isoformat(),
        "created_at": transaction.created_at.isoformat() if transaction.created_at else None,
    }


@transactions_bp.route("", methods=["POST"])
@require_person
def record_transaction():
    """
    POST /transactions — Record an amount between the caller and one person.
    Positive: they owe the caller. Negative: the caller owes them.
    """
    data = CreateTransactionSchema().load(request.get_json(force=True) or {})
    transaction = transaction_service.record_transaction(
        caller_id=g.person_id,
        data=data,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": _serialize_transaction(transaction), "warnings": []}), 201


@transactions_bp.route("", methods=["GET"])
@require_person
def list_transactions():
    """GET /transactions — Every transaction the caller is on, newest first."""
    transactions = transaction_service.list_transactions(
        caller_id=g.person_id,
        session=db.session,
    )
    return jsonify({
        "data": [_serialize_transaction(t) for t in transactions],
        "warnings": [],
    }), 200


@transactions_bp.route("/<int:transaction_id>/settle", methods=["POST"])
@require_person
def settle_transaction(transaction_id: int):
    """POST /transactions/:id/settle"""
    transaction = transaction_service.settle_transaction(
        transaction_id=transaction_id,
        caller_id=g.person_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": _serialize_transaction(transaction), "warnings": []}), 200
