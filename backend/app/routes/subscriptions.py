"""
routes/subscriptions.py — Subscription route handlers.

Endpoints (base url_prefix=/api/v1/subscriptions):
  POST   /subscriptions           → 201  create subscription
  GET    /subscriptions           → 200  list caller's subscriptions
  GET    /subscriptions/summary   → 200  monthly cost of active subscriptions
  POST   /subscriptions/renewals  → 200  roll overdue billing dates forward
"""

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from backend.app.extensions import db
from backend.app.middleware.identity_middleware import require_person
from backend.app.schemas.subscription_schema import CreateSubscriptionSchema
from backend.app.services import subscription_service

subscriptions_bp = Blueprint("subscriptions", __name__)


@subscriptions_bp.route("", methods=["POST"])
@require_person
def create_subscription():
    """POST /subscriptions"""
    data = CreateSubscriptionSchema().load(request.get_json(force=True) or {})
    subscription = subscription_service.create_subscription(
        caller_id=g.person_id,
        data=data,
        session=db.session,
    )
    db.session.commit()
    return jsonify({
        "data": subscription_service.describe(subscription),
        "warnings": [],
    }), 201


@subscriptions_bp.route("", methods=["GET"])
@require_person
def list_subscriptions():
    """GET /subscriptions — Active and paused, each with its monthly equivalent."""
    subscriptions = subscription_service.list_subscriptions(
        caller_id=g.person_id,
        session=db.session,
    )
    return jsonify({
        "data": [subscription_service.describe(s) for s in subscriptions],
        "warnings": [],
    }), 200


@subscriptions_bp.route("/summary", methods=["GET"])
@require_person
def subscription_summary():
    """GET /subscriptions/summary — Monthly and yearly totals of active subscriptions."""
    result = subscription_service.monthly_summary(
        caller_id=g.person_id,
        session=db.session,
        currency=current_app.config["CURRENCY_CODE"],
    )
    return jsonify({"data": result, "warnings": []}), 200


@subscriptions_bp.route("/renewals", methods=["POST"])
@require_person
def renew_subscriptions():
    """POST /subscriptions/renewals — Overdue subscriptions move to their next future billing date."""
    renewed = subscription_service.renew_overdue(
        caller_id=g.person_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({
        "data": [subscription_service.describe(s) for s in renewed],
        "warnings": [],
    }), 200
