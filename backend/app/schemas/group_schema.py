"""
schemas/group_schema.py — Marshmallow schemas for group, membership and
group expense endpoints.

Validation responsibility:
  - This file: field types, string lengths, non-empty checks (including trim),
    decimal precision, a non-empty split_between without duplicates.
  - services/group_service.py:
      - FORBIDDEN (caller must be a member to read/write group data)
      - UNKNOWN_PERSON, ALREADY_MEMBER, GROUP_NOT_FOUND (DB lookups)
      - PAYER_NOT_MEMBER, SPLIT_PERSON_NOT_MEMBER (DB membership lookups)

IMPORTANT: Inherits from marshmallow.Schema directly.
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import Schema, ValidationError, fields, validate, validates

from backend.app.errors import ErrorCode
from backend.app.models.category import Category


def _validate_non_empty_after_trim(value: str) -> None:
    """
    Raises ValidationError if the string is blank or contains only whitespace.
    Mirrors the DB CHECK(LENGTH(TRIM(...)) > 0) constraint at the API layer.
    """
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


def _validate_monetary_amount(value: Decimal) -> None:
    if value <= Decimal("0"):
        raise ValidationError("Amount must be greater than zero.")
    if value.as_tuple().exponent < -2:
        raise ValidationError(ErrorCode.INVALID_AMOUNT_PRECISION)


def _person_id_field() -> fields.Int:
    return fields.Int(
        strict=True,
        validate=validate.Range(min=1, error="person ids must be positive integers."),
    )


class CreateGroupSchema(Schema):
    """
    POST /groups

    The caller always becomes the first member; member_ids adds others.
    """

    name = fields.Str(
        required=True,
        validate=[
            validate.Length(
                min=1,
                max=100,
                error="Group name must be between 1 and 100 characters.",
            ),
            _validate_non_empty_after_trim,
        ],
    )

    description = fields.Str(load_default="")

    emoji = fields.Str(load_default="", validate=validate.Length(max=16))

    member_ids = fields.List(_person_id_field(), load_default=list)


class AddMemberSchema(Schema):
    """
    POST /groups/:id/members

    Whether the person exists is a DB concern (UNKNOWN_PERSON, 422),
    checked in group_service.py.
    """

    person_id = fields.Int(
        required=True,
        strict=True,  # rejects 1.0
        validate=validate.Range(
            min=1,
            error="person_id must be a positive integer.",
        ),
    )


class CreateGroupExpenseSchema(Schema):
    """POST /groups/:id/expenses — always an equal split."""

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
        validate=_validate_monetary_amount,
    )

    paid_by_person_id = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, error="paid_by_person_id must be a positive integer."),
    )

    split_between = fields.List(
        _person_id_field(),
        required=True,
        validate=validate.Length(min=1, error="split_between needs at least one person."),
    )

    category = fields.Enum(
        Category,
        load_default=Category.OTHER,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_CATEGORY},
    )

    notes = fields.Str(load_default="")

    date = fields.DateTime(load_default=None)

    @validates("split_between")
    def validate_unique_people(self, value: list[int], **kwargs) -> None:
        if len(value) != len(set(value)):
            raise ValidationError(ErrorCode.DUPLICATE_PARTICIPANT)
