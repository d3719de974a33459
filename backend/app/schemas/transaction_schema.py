"""
schemas/transaction_schema.py — Marshmallow schema for transaction endpoints.

Validation responsibility:
  - This file: field types, signed non-zero amount with at most 2 dp.
  - services/transaction_service.py:
      - SELF_TRANSACTION (422) — needs the caller id from flask.g, which the
        schema never sees.
      - UNKNOWN_PERSON   (422) — requires DB lookup.

IMPORTANT: Inherits from marshmallow.Schema directly.
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import Schema, ValidationError, fields, validate

from backend.app.errors import ErrorCode
from backend.app.models.category import Category


def _validate_signed_amount(value: Decimal) -> None:
    """
    Transactions carry a sign (positive: they owe you; negative: you owe them),
    so only zero is rejected here. Precision rule as everywhere else: 2 dp max.
    """
    if value == Decimal("0"):
        raise ValidationError("Amount must not be zero.")
    if value.as_tuple().exponent < -2:
        raise ValidationError(ErrorCode.INVALID_AMOUNT_PRECISION)


def _validate_non_empty_after_trim(value: str) -> None:
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


class CreateTransactionSchema(Schema):
    """POST /transactions — the owner is the acting person."""

    counterparty_person_id = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, error="counterparty_person_id must be a positive integer."),
    )

    title = fields.Str(
        required=True,
        validate=[
            validate.Length(
                min=1,
                max=255,
                error="Title must be between 1 and 255 characters.",
            ),
            _validate_non_empty_after_trim,
        ],
    )

    amount = fields.Decimal(
        required=True,
        validate=_validate_signed_amount,
    )

    category = fields.Enum(
        Category,
        load_default=Category.OTHER,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_CATEGORY},
    )

    notes = fields.Str(load_default="")

    date = fields.DateTime(load_default=None)
