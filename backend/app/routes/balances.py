"""
routes/balances.py — Balance route handlers.

Layer rules:
  - Call ONE service, return envelope.
  - No business logic. No DB queries. No bare SQL.
  - Balances are recomputed on every request.

Endpoints (base url_prefix=/api/v1/balances):
  GET /balances              → 200  every person's net balance with the caller
  GET /balances/:person_id   → 200  one person, with a per-source breakdown
"""

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify

from backend.app.extensions import db
from backend.app.middleware.identity_middleware import require_person
from backend.app.services import balance_service

balances_bp = Blueprint("balances", __name__)


@balances_bp.route("", methods=["GET"])
@require_person
def get_balances():
    """
    GET /balances

    Positive balance: that person owes the caller. Negative: the caller owes
    them. `currency` is the configured display code; amounts are not converted.
    """
    result = balance_service.get_balance_response(
        caller_id=g.person_id,
        session=db.session,
        currency=current_app.config["CURRENCY_CODE"],
    )
    return jsonify({"data": result, "warnings": []}), 200


@balances_bp.route("/<int:person_id>", methods=["GET"])
@require_person
def get_person_balance(person_id: int):
    """GET /balances/:person_id — split into transactions, split bills and group expenses."""
    result = balance_service.get_person_balance(
        caller_id=g.person_id,
        person_id=person_id,
        session=db.session,
        currency=current_app.config["CURRENCY_CODE"],
    )
    return jsonify({"data": result, "warnings": []}), 200
