"""
routes/split_bills.py — Split bill and payment route handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries. No bare SQL.
  - _serialize_split_bill() is a pure data-shape helper — not business logic.

Endpoints (base url_prefix=/api/v1/split-bills):
  POST   /split-bills/preview                          → 200  calculator only
  POST   /split-bills                                  → 201  create split bill
  GET    /split-bills                                  → 200  list caller's bills
  GET    /split-bills/:id                              → 200  bill + participants + progress
  DELETE /split-bills/:id                              → 200  soft-delete
  POST   /split-bills/:id/participants/:pid/payment    → 200  mark paid
  DELETE /split-bills/:id/participants/:pid/payment    → 200  mark unpaid
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from backend.app.extensions import db
from backend.app.middleware.identity_middleware import require_person
from backend.app.models.split_bill import SplitBill
from backend.app.schemas.split_bill_schema import CreateSplitBillSchema, PreviewSplitSchema
from backend.app.services import settlement_service, split_bill_service

split_bills_bp = Blueprint("split_bills", __name__)


# ── Serialization helpers ──────────────────────────────────────────────────
# Pure data-shaping. Amounts as strings.

def _serialize_split_bill(split_bill: SplitBill) -> dict:
    """Converts a SplitBill ORM object to a plain dict for JSON output."""
    summary = settlement_service.settlement_summary(split_bill)
    return {
        "id": split_bill.id,
        "title": split_bill.title,
        "total_amount": str(split_bill.total_amount),
        "paid_by_person_id": split_bill.paid_by_person_id,
        "paid_by_name": split_bill.payer.name,
        "created_by_person_id": split_bill.created_by_person_id,
        "split_type": split_bill.split_type.value,
        "category": split_bill.category.value,
        "notes": split_bill.notes,
        "group_id": split_bill.group_id,
        "date": split_bill.date.isoformat(),
        "created_at": split_bill.created_at.isoformat() if split_bill.created_at else None,
        "deleted_at": split_bill.deleted_at.isoformat() if split_bill.deleted_at else None,
        "participants": [
            {
                "id": p.id,
                "person_id": p.person_id,
                "name": p.person.name,
                "amount": str(p.amount),
                "percentage": str(p.percentage) if p.percentage is not None else None,
                "shares": p.shares,
                "has_paid": p.has_paid,
                "payment_date": p.payment_date.isoformat() if p.payment_date else None,
            }
            for p in split_bill.participants
        ],
        "settled_count": summary["settled_count"],
        "pending_count": summary["pending_count"],
        "settlement_progress": summary["settlement_progress"],
        "is_fully_settled": summary["is_fully_settled"],
        "total_settled": str(summary["total_settled"]),
        "total_pending": str(summary["total_pending"]),
    }


def _serialize_preview(preview: dict) -> dict:
    return {
        "total_amount": str(preview["total_amount"]),
        "split_type": preview["split_type"],
        "participants": [
            {
                "person_id": r["person_id"],
                "amount": str(r["amount"]),
                "percentage": str(r["percentage"]) if r["percentage"] is not None else None,
                "shares": r["shares"],
            }
            for r in preview["participants"]
        ],
    }


# ── Split bill routes ──────────────────────────────────────────────────────

@split_bills_bp.route("/preview", methods=["POST"])
def preview_split():
    """
    POST /split-bills/preview — Run the calculator without saving.
    Returns the same 422 errors (with delta) as create.
    """
    data = PreviewSplitSchema().load(request.get_json(force=True) or {})
    preview = split_bill_service.preview_split(data)
    return jsonify({"data": _serialize_preview(preview), "warnings": []}), 200


@split_bills_bp.route("", methods=["POST"])
@require_person
def create_split_bill():
    """POST /split-bills — Create a split bill. The caller is recorded as creator."""
    data = CreateSplitBillSchema().load(request.get_json(force=True) or {})
    split_bill = split_bill_service.create_split_bill(
        caller_id=g.person_id,
        data=data,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": _serialize_split_bill(split_bill), "warnings": []}), 201


@split_bills_bp.route("", methods=["GET"])
@require_person
def list_split_bills():
    """GET /split-bills — Active bills the caller is part of."""
    split_bills = split_bill_service.list_split_bills(
        caller_id=g.person_id,
        session=db.session,
    )
    return jsonify({
        "data": [_serialize_split_bill(b) for b in split_bills],
        "warnings": [],
    }), 200


@split_bills_bp.route("/<int:split_bill_id>", methods=["GET"])
@require_person
def get_split_bill(split_bill_id: int):
    """GET /split-bills/:id — Bill detail with participants and settlement progress."""
    split_bill = split_bill_service.get_split_bill(
        split_bill_id=split_bill_id,
        caller_id=g.person_id,
        session=db.session,
    )
    return jsonify({"data": _serialize_split_bill(split_bill), "warnings": []}), 200


@split_bills_bp.route("/<int:split_bill_id>", methods=["DELETE"])
@require_person
def delete_split_bill(split_bill_id: int):
    """
    DELETE /split-bills/:id — Soft-delete (sets deleted_at = NOW()).
    Participant rows stay. Balances ignore the bill from now on.
    """
    split_bill_service.delete_split_bill(
        split_bill_id=split_bill_id,
        caller_id=g.person_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({
        "data": {
            "deleted": True,
            "split_bill_id": split_bill_id,
        },
        "warnings": [],
    }), 200


# ── Payment routes ─────────────────────────────────────────────────────────

@split_bills_bp.route(
    "/<int:split_bill_id>/participants/<int:participant_id>/payment",
    methods=["POST"],
)
@require_person
def mark_paid(split_bill_id: int, participant_id: int):
    """POST .../payment — Mark a participant as paid. Repeating it is a no-op."""
    split_bill = settlement_service.settle_participant(
        split_bill_id=split_bill_id,
        participant_id=participant_id,
        caller_id=g.person_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": _serialize_split_bill(split_bill), "warnings": []}), 200


@split_bills_bp.route(
    "/<int:split_bill_id>/participants/<int:participant_id>/payment",
    methods=["DELETE"],
)
@require_person
def mark_unpaid(split_bill_id: int, participant_id: int):
    """DELETE .../payment — Undo a payment."""
    split_bill = settlement_service.unsettle_participant(
        split_bill_id=split_bill_id,
        participant_id=participant_id,
        caller_id=g.person_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": _serialize_split_bill(split_bill), "warnings": []}), 200
