"""
routes/groups.py — Group, membership and group expense route handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries. No bare SQL.

Endpoints (base url_prefix=/api/v1/groups):
  POST   /groups                                → 201  create group
  GET    /groups                                → 200  list caller's groups
  GET    /groups/:id                            → 200  get group + members
  POST   /groups/:id/members                    → 201  add member
  POST   /groups/:id/expenses                   → 201  add expense
  GET    /groups/:id/expenses                   → 200  list expenses
  POST   /groups/:id/expenses/:eid/settle       → 200  settle expense
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from backend.app.extensions import db
from backend.app.middleware.identity_middleware import require_person
from backend.app.models.group_expense import GroupExpense
from backend.app.schemas.group_schema import (
    AddMemberSchema,
    CreateGroupExpenseSchema,
    CreateGroupSchema,
)
from backend.app.services import group_service
from backend.app.services.split_calculator import equal_amount_per_person

groups_bp = Blueprint("groups", __name__)


def _serialize_expense(expense: GroupExpense) -> dict:
    """Converts a GroupExpense ORM object to a plain dict for JSON output."""
    return {
        "id": expense.id,
        "group_id": expense.group_id,
        "title": expense.title,
        "amount": str(expense.amount),
        "paid_by_person_id": expense.paid_by_person_id,
        "split_between": expense.split_between,
        "amount_per_person": str(
            equal_amount_per_person(expense.amount, len(expense.split_between))
        ),
        "category": expense.category.value,
        "notes": expense.notes,
        "is_settled": expense.is_settled,
        "date": expense.date.isoformat(),
        "created_at": expense.created_at.isoformat() if expense.created_at else None,
    }


@groups_bp.route("", methods=["POST"])
@require_person
def create_group():
    """POST /groups — Create a new group. Caller becomes the first member."""
    data = CreateGroupSchema().load(request.get_json(force=True) or {})
    result = group_service.create_group(
        caller_id=g.person_id,
        data=data,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@groups_bp.route("", methods=["GET"])
@require_person
def list_groups():
    """GET /groups — List all groups the caller belongs to."""
    result = group_service.list_groups(
        caller_id=g.person_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/<int:group_id>", methods=["GET"])
@require_person
def get_group(group_id: int):
    """GET /groups/:id — Get group details with member list. Caller must be member."""
    result = group_service.get_group(
        group_id=group_id,
        caller_id=g.person_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/<int:group_id>/members", methods=["POST"])
@require_person
def add_member(group_id: int):
    """POST /groups/:id/members — Add a person to the group. Members only."""
    data = AddMemberSchema().load(request.get_json(force=True) or {})
    result = group_service.add_member(
        group_id=group_id,
        person_id=data["person_id"],
        caller_id=g.person_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@groups_bp.route("/<int:group_id>/expenses", methods=["POST"])
@require_person
def add_expense(group_id: int):
    """POST /groups/:id/expenses — Record an expense split equally."""
    data = CreateGroupExpenseSchema().load(request.get_json(force=True) or {})
    expense = group_service.add_group_expense(
        group_id=group_id,
        caller_id=g.person_id,
        data=data,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": _serialize_expense(expense), "warnings": []}), 201


@groups_bp.route("/<int:group_id>/expenses", methods=["GET"])
@require_person
def list_expenses(group_id: int):
    """GET /groups/:id/expenses — All expenses of the group, newest first."""
    expenses = group_service.list_group_expenses(
        group_id=group_id,
        caller_id=g.person_id,
        session=db.session,
    )
    return jsonify({
        "data": [_serialize_expense(e) for e in expenses],
        "warnings": [],
    }), 200


@groups_bp.route("/<int:group_id>/expenses/<int:expense_id>/settle", methods=["POST"])
@require_person
def settle_expense(group_id: int, expense_id: int):
    """POST /groups/:id/expenses/:eid/settle — Mark the whole expense settled."""
    expense = group_service.settle_group_expense(
        group_id=group_id,
        expense_id=expense_id,
        caller_id=g.person_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": _serialize_expense(expense), "warnings": []}), 200
