"""
schemas/person_schema.py — Marshmallow schema for people endpoints.

IMPORTANT: Inherits from marshmallow.Schema directly.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate


def _validate_non_empty_after_trim(value: str) -> None:
    """
    Raises ValidationError if the string is blank or contains only whitespace.
    Mirrors the DB CHECK(LENGTH(TRIM(...)) > 0) constraint at the API layer.
    """
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


class CreatePersonSchema(Schema):
    """POST /people"""

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

    email = fields.Email(load_default=None, allow_none=True)

    phone = fields.Str(
        load_default=None,
        allow_none=True,
        validate=validate.Length(max=40),
    )

    notes = fields.Str(load_default=None, allow_none=True)
