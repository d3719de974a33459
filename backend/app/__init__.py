"""
app/__init__.py — Swiff Ledger application factory.

create_app(config_name) builds a fresh Flask app on every call; importing
this package has no side effects, so each test session gets its own app.

create_app() wires, in order:
  - the config class picked from config_by_name
  - `backend.*` loggers at LOG_LEVEL
  - Flask-SQLAlchemy, the model metadata and (outside tests) create_all()
  - the six /api/v1 blueprints
  - error handlers: AppError envelope, marshmallow 400s, catch-all 500
  - CORS headers for local front-ends
  - debug-level log receivers on the blinker signals in app/signals.py

Decimals leave the API as strings through DecimalJSONProvider.
"""

from __future__ import annotations

import logging
import traceback
from decimal import Decimal

from flask import Flask, jsonify, request
from flask.json.provider import DefaultJSONProvider
from flask.logging import default_handler
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from backend.config import config_by_name, validate_production_config

signal_logger = logging.getLogger("backend.app.signals")


# ── JSON ───────────────────────────────────────────────────────────────────

class DecimalJSONProvider(DefaultJSONProvider):
    """jsonify() with Decimal → str, so Decimal("33.30") stays "33.30"."""

    def default(self, o):
        if isinstance(o, Decimal):
            return str(o)
        return super().default(o)


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str = "development") -> Flask:
    """
    Builds the Swiff Ledger API.

    Args:
        config_name: "development", "testing" or "production". Unknown names
                     fall back to development.
    """
    app = Flask(__name__)
    app.json_provider_class = DecimalJSONProvider
    app.json = DecimalJSONProvider(app)

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    _configure_logging(app)

    # ── Extensions ─────────────────────────────────────────────────────────
    # Import here (not at module top) to avoid circular imports.
    from backend.app.extensions import db
    db.init_app(app)

    # ── Model registration ─────────────────────────────────────────────────
    # Importing the model modules registers their tables on db.metadata.
    with app.app_context():
        from backend.app.models import (  # noqa: F401
            group,
            group_expense,
            group_member,
            person,
            split_bill,
            split_participant,
            subscription,
            transaction,
        )

        # There is no migrations tooling; outside tests the schema is created
        # on start-up. Tests call create_all() themselves.
        if not app.config.get("TESTING"):
            db.create_all()

    # ── Blueprints ─────────────────────────────────────────────────────────
    # All routes are prefixed with /api/v1.
    _register_blueprints(app)

    # ── Error handlers ─────────────────────────────────────────────────────
    _register_error_handlers(app)
    _register_cors(app)
    _connect_signal_logging()

    app.logger.info("Swiff Ledger API created (config=%s)", config_name)
    return app


def _configure_logging(app: Flask) -> None:
    """
    Routes every logger under the `backend` namespace (services, middleware,
    app.logger itself) through Flask's default stderr handler at LOG_LEVEL.
    """
    level = app.config.get("LOG_LEVEL", "INFO")
    package_logger = logging.getLogger("backend")
    package_logger.setLevel(level)
    if default_handler not in package_logger.handlers:
        package_logger.addHandler(default_handler)
    app.logger.setLevel(level)


def _register_blueprints(app: Flask) -> None:
    """Mounts one blueprint per resource under /api/v1; routes use "" for the collection."""
    from backend.app.routes.balances import balances_bp
    from backend.app.routes.groups import groups_bp
    from backend.app.routes.people import people_bp
    from backend.app.routes.split_bills import split_bills_bp
    from backend.app.routes.subscriptions import subscriptions_bp
    from backend.app.routes.transactions import transactions_bp

    app.register_blueprint(people_bp,        url_prefix="/api/v1/people")
    app.register_blueprint(split_bills_bp,   url_prefix="/api/v1/split-bills")
    app.register_blueprint(groups_bp,        url_prefix="/api/v1/groups")
    app.register_blueprint(transactions_bp,  url_prefix="/api/v1/transactions")
    app.register_blueprint(balances_bp,      url_prefix="/api/v1/balances")
    app.register_blueprint(subscriptions_bp, url_prefix="/api/v1/subscriptions")


def _first_error(messages, path: tuple = ()) -> tuple[str | None, str]:
    """
    Walks a marshmallow messages structure to the first leaf message.

    Nested list errors look like {"participants": {0: {"amount": ["..."]}}};
    the reported field is the top-level key ("participants").
    """
    if isinstance(messages, dict):
        for key, value in messages.items():
            return _first_error(value, path + (key,))
    if isinstance(messages, list):
        if not messages:
            return (path[0] if path else None), "Invalid value."
        return _first_error(messages[0], path)

    field = path[0] if path else None
    if field == "_schema":
        field = None
    return (str(field) if field is not None else None), str(messages)


def _register_error_handlers(app: Flask) -> None:
    """
    AppError        → its own status, envelope includes `delta` for split errors
    ValidationError → 400 with the first field error only
    Exception       → 500 INTERNAL_ERROR, traceback to app.logger only
    """
    from backend.app.errors import AppError, ErrorCode

    known_codes = {
        value for name, value in vars(ErrorCode).items() if not name.startswith("_")
    }

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        """AppError from middleware, services or routes → error envelope."""
        if error.http_status >= 500:
            app.logger.error("%r", error)
        else:
            app.logger.debug("%r", error)
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        """
        Converts marshmallow ValidationError into the standard error envelope.

        Returns the FIRST error only ("one error, not many").

        The error code from the ValidationError message is used directly if it
        matches a known ErrorCode constant; otherwise INVALID_FIELD is used.
        """
        field, raw_message = _first_error(error.messages)

        if raw_message in known_codes:
            code = raw_message
            message = _code_to_message(code)
        elif raw_message.startswith("Missing data for required field"):
            code = ErrorCode.MISSING_FIELD
            message = raw_message
        else:
            code = ErrorCode.INVALID_FIELD
            message = raw_message

        response_body = {
            "error": {
                "code": code,
                "message": message,
            }
        }
        if field is not None:
            response_body["error"]["field"] = field

        return jsonify(response_body), 400

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        """
        Catches all unhandled exceptions and returns a generic 500 response.

        Werkzeug HTTP errors (404 for an unknown route, 405, malformed JSON)
        keep their own status. Everything else is logged with its traceback.
        """
        if isinstance(error, HTTPException):
            return error

        app.logger.error(
            "Unhandled exception: %s\n%s",
            str(error),
            traceback.format_exc(),
        )
        return jsonify({
            "error": {
                "code": ErrorCode.INTERNAL_ERROR,
                "message": "An unexpected error occurred. Please try again later.",
            }
        }), 500


def _register_cors(app: Flask) -> None:
    """
    Adds CORS headers for browser-based local development.

    Enabled when DEBUG or TESTING is true so a frontend served from another
    local port can call the API with the acting-person header.
    """

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allow_all = bool(app.config.get("DEBUG") or app.config.get("TESTING"))

        if allow_all:
            response.headers["Access-Control-Allow-Origin"] = origin if origin else "*"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, DELETE, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = (
                f"Content-Type, {app.config.get('PERSON_HEADER', 'X-Person-Id')}"
            )

        return response


# ── Change-notification logging ────────────────────────────────────────────
# Receivers stay at module level; blinker only keeps weak references.

def _log_split_bill_created(sender, split_bill, **extra) -> None:
    signal_logger.debug("split_bill_created from %s: bill %s", sender, split_bill.id)


def _log_participant_settled(sender, split_bill, participant, has_paid, **extra) -> None:
    signal_logger.debug(
        "participant_settled from %s: bill %s participant %s paid=%s",
        sender, split_bill.id, participant.id, has_paid,
    )


def _log_group_expense_settled(sender, group_expense, **extra) -> None:
    signal_logger.debug("group_expense_settled from %s: expense %s", sender, group_expense.id)


def _log_transaction_recorded(sender, transaction, **extra) -> None:
    signal_logger.debug("transaction_recorded from %s: transaction %s", sender, transaction.id)


def _log_balances_changed(sender, person_ids, **extra) -> None:
    signal_logger.debug("balances_changed from %s: people %s", sender, sorted(person_ids))


def _connect_signal_logging() -> None:
    from backend.app import signals

    signals.split_bill_created.connect(_log_split_bill_created)
    signals.participant_settled.connect(_log_participant_settled)
    signals.group_expense_settled.connect(_log_group_expense_settled)
    signals.transaction_recorded.connect(_log_transaction_recorded)
    signals.balances_changed.connect(_log_balances_changed)


def _code_to_message(code: str) -> str:
    """
    Returns a human-readable default message for a known error code.
    Used when a ValidationError message IS the error code constant itself
    (e.g. INVALID_AMOUNT_PRECISION raised as ValidationError in schemas).
    """
    _messages = {
        "INVALID_AMOUNT_PRECISION": "Amount must have at most 2 decimal places.",
        "INVALID_CATEGORY": "The category value is not valid.",
        "INVALID_SPLIT_TYPE": (
            "split_type must be one of 'equally', 'exact_amounts', "
            "'percentages', 'shares' or 'adjustments'."
        ),
        "INVALID_BILLING_CYCLE": "The billing_cycle value is not valid.",
        "DUPLICATE_PARTICIPANT": "The same person appears more than once.",
        "FIELD_NOT_ALLOWED_FOR_SPLIT_TYPE": (
            "A participant carries an input that does not belong to this split_type."
        ),
    }
    return _messages.get(code, "Invalid input.")
