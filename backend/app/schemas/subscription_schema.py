"""
schemas/subscription_schema.py — Marshmallow schema for subscription endpoints.

IMPORTANT: Inherits from marshmallow.Schema directly.
"""

from __future__ import annotations

from datetime import timezone
from decimal import Decimal

from marshmallow import Schema, ValidationError, fields, validate

from backend.app.errors import ErrorCode
from backend.app.models.category import Category
from backend.app.models.subscription import BillingCycle


def _validate_price(value: Decimal) -> None:
    # Free tiers are allowed; negative prices are not.
    if value < Decimal("0"):
        raise ValidationError("Price must not be negative.")
    if value.as_tuple().exponent < -2:
        raise ValidationError(ErrorCode.INVALID_AMOUNT_PRECISION)


def _validate_non_empty_after_trim(value: str) -> None:
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


class CreateSubscriptionSchema(Schema):
    """POST /subscriptions — the owner is the acting person."""

    name = fields.Str(
        required=True,
        validate=[
            validate.Length(
                min=1,
                max=100,
                error="Name must be between 1 and 100 characters.",
            ),
            _validate_non_empty_after_trim,
        ],
    )

    price = fields.Decimal(required=True, validate=_validate_price)

    billing_cycle = fields.Enum(
        BillingCycle,
        load_default=BillingCycle.MONTHLY,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_BILLING_CYCLE},
    )

    category = fields.Enum(
        Category,
        load_default=Category.ENTERTAINMENT,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_CATEGORY},
    )

    is_active = fields.Bool(load_default=True)

    # First billing date is one cycle after this; defaults to now.
    start_date = fields.AwareDateTime(default_timezone=timezone.utc, load_default=None)

    shared_with = fields.List(
        fields.Int(
            strict=True,
            validate=validate.Range(min=1, error="person ids must be positive integers."),
        ),
        load_default=list,
    )
