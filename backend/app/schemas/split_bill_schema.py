"""
schemas/split_bill_schema.py — Marshmallow schemas for split bill endpoints.

Validation responsibility:
  - This file:
      - Field types, lengths, enum values, decimal precision
      - DUPLICATE_PARTICIPANT            (400) — request shape rule
      - FIELD_NOT_ALLOWED_FOR_SPLIT_TYPE (400) — e.g. `shares` on a
                                                 percentage split
      - The per-type input each participant needs (amount for exact
        amounts, percentage for percentages, shares for shares)
  - services/split_calculator.py:
      - Sums against the total (AMOUNT_MISMATCH, PERCENTAGE_MISMATCH,
        ADJUSTMENT_MISMATCH), share counts (INVALID_SHARES), empty
        participant lists (INVALID_SPLIT) — all 422 with a delta
  - services/split_bill_service.py:
      - UNKNOWN_PERSON (422) — requires DB lookup

IMPORTANT: Inherits from marshmallow.Schema directly.
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import (
    Schema,
    ValidationError,
    fields,
    validate,
    validates_schema,
)

from backend.app.errors import ErrorCode
from backend.app.models.category import Category
from backend.app.models.split_bill import SplitType


# ── Shared validators ─────────────────────────────────────────────────────

def _validate_monetary_amount(value: Decimal) -> None:
    """
    Validates a bill total:
      - Must be strictly greater than zero.
      - Must have at most 2 decimal places (rejected, never rounded).
    """
    if value <= Decimal("0"):
        raise ValidationError("Amount must be greater than zero.")
    if value.as_tuple().exponent < -2:
        raise ValidationError(ErrorCode.INVALID_AMOUNT_PRECISION)


def _validate_cents(value: Decimal) -> None:
    """At most 2 dp. Sign is checked by the calculator (it reports a delta)."""
    if value.as_tuple().exponent < -2:
        raise ValidationError(ErrorCode.INVALID_AMOUNT_PRECISION)


def _validate_percentage_precision(value: Decimal) -> None:
    # Stored as NUMERIC(7, 4).
    if value.as_tuple().exponent < -4:
        raise ValidationError("Percentage may have at most 4 decimal places.")


def _validate_non_empty_after_trim(value: str) -> None:
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


# Which optional participant field each split type reads.
_FIELD_FOR_TYPE: dict[SplitType, str | None] = {
    SplitType.EQUALLY:       None,
    SplitType.EXACT_AMOUNTS: "amount",
    SplitType.PERCENTAGES:   "percentage",
    SplitType.SHARES:        "shares",
    SplitType.ADJUSTMENTS:   "adjustment",
}

# Adjustments are optional per person (absent means no adjustment).
_REQUIRED_FOR_TYPE = {
    SplitType.EXACT_AMOUNTS,
    SplitType.PERCENTAGES,
    SplitType.SHARES,
}

_PARTICIPANT_INPUTS = ("amount", "percentage", "shares", "adjustment")


# ── Sub-schema: one entry in the `participants` array ─────────────────────

class ParticipantInputSchema(Schema):
    """
    One participant row. Only the input field that matches the bill's
    split_type may be sent; the schema-level check on the parent enforces it.
    """

    person_id = fields.Int(
        required=True,
        strict=True,   # reject floats like 1.0
        validate=validate.Range(min=1, error="person_id must be a positive integer."),
    )

    amount = fields.Decimal(load_default=None, validate=_validate_cents)

    percentage = fields.Decimal(load_default=None, validate=_validate_percentage_precision)

    # Range is left to the calculator so a zero share count reports INVALID_SHARES.
    shares = fields.Int(load_default=None, strict=True)

    adjustment = fields.Decimal(load_default=None, validate=_validate_cents)


# ── Preview (calculator only) ─────────────────────────────────────────────

class PreviewSplitSchema(Schema):
    """
    POST /split-bills/preview

    The inputs the calculator needs and nothing else. CreateSplitBillSchema
    extends this, so both endpoints apply the same participant rules.
    """

    total_amount = fields.Decimal(
        required=True,
        validate=_validate_monetary_amount,
    )

    split_type = fields.Enum(
        SplitType,
        load_default=SplitType.EQUALLY,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_SPLIT_TYPE},
    )

    # An empty list is passed through; the calculator rejects it with
    # INVALID_SPLIT (422).
    participants = fields.List(
        fields.Nested(ParticipantInputSchema),
        required=True,
    )

    @validates_schema
    def validate_participants_coherence(self, data: dict, **kwargs) -> None:
        """
        1. DUPLICATE_PARTICIPANT: same person_id twice.
        2. FIELD_NOT_ALLOWED_FOR_SPLIT_TYPE: an input field that belongs to
           another split type.
        3. The input field this split type needs is present on every row.
        """
        split_type = data.get("split_type", SplitType.EQUALLY)
        participants = data.get("participants") or []

        person_ids = [p["person_id"] for p in participants]
        if len(person_ids) != len(set(person_ids)):
            raise ValidationError({"participants": [ErrorCode.DUPLICATE_PARTICIPANT]})

        wanted = _FIELD_FOR_TYPE[split_type]
        for participant in participants:
            for name in _PARTICIPANT_INPUTS:
                if name != wanted and participant.get(name) is not None:
                    raise ValidationError(
                        {"participants": [ErrorCode.FIELD_NOT_ALLOWED_FOR_SPLIT_TYPE]}
                    )
            if split_type in _REQUIRED_FOR_TYPE and participant.get(wanted) is None:
                raise ValidationError(
                    {
                        "participants": [
                            f"{wanted} is required for every participant when "
                            f"split_type is '{split_type.value}'."
                        ],
                    }
                )


# ── Create split bill ─────────────────────────────────────────────────────

class CreateSplitBillSchema(PreviewSplitSchema):
    """
    POST /split-bills

    created_by is the acting person (flask.g.person_id), never a body field.
    """

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

    paid_by_person_id = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, error="paid_by_person_id must be a positive integer."),
    )

    category = fields.Enum(
        Category,
        load_default=Category.OTHER,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_CATEGORY},
    )

    notes = fields.Str(load_default="")

    date = fields.DateTime(load_default=None)

    group_id = fields.Int(load_default=None, allow_none=True, strict=True)
