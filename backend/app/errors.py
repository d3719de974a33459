"""
errors.py — AppError base class, error code registry and split errors.

Every error returned by the Swiff Ledger API must use a code defined here.
Do not raise strings or generic exceptions from service or route code.

Rules:
  - Error codes are a versioned contract. They do not change once published.
  - Error messages are human-readable prose. They may be improved at any time.
  - Split validation errors carry the computed `delta` so the client can
    prompt the user with the exact correction ("add 1% more", "remove $0.50").
"""

from __future__ import annotations

from decimal import Decimal


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which request field caused the error

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
#
# IMPORTANT: these are the string values sent in the API response.
# Do not rename them without a major version bump.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"
    INVALID_AMOUNT_PRECISION   = "INVALID_AMOUNT_PRECISION"
    INVALID_CATEGORY           = "INVALID_CATEGORY"
    INVALID_SPLIT_TYPE         = "INVALID_SPLIT_TYPE"
    INVALID_BILLING_CYCLE      = "INVALID_BILLING_CYCLE"
    DUPLICATE_PARTICIPANT      = "DUPLICATE_PARTICIPANT"
    FIELD_NOT_ALLOWED_FOR_SPLIT_TYPE = "FIELD_NOT_ALLOWED_FOR_SPLIT_TYPE"

    # ── Conflict Errors (409) ──────────────────────────────────────────────
    ALREADY_MEMBER             = "ALREADY_MEMBER"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    PERSON_NOT_FOUND           = "PERSON_NOT_FOUND"
    GROUP_NOT_FOUND            = "GROUP_NOT_FOUND"
    SPLIT_BILL_NOT_FOUND       = "SPLIT_BILL_NOT_FOUND"
    GROUP_EXPENSE_NOT_FOUND    = "GROUP_EXPENSE_NOT_FOUND"
    TRANSACTION_NOT_FOUND      = "TRANSACTION_NOT_FOUND"
    PARTICIPANT_NOT_FOUND      = "PARTICIPANT_NOT_FOUND"

    # ── Split validation (422) ─────────────────────────────────────────────
    # Correctable user input: the client keeps the user on the form.
    INVALID_SPLIT              = "INVALID_SPLIT"
    AMOUNT_MISMATCH            = "AMOUNT_MISMATCH"
    PERCENTAGE_MISMATCH        = "PERCENTAGE_MISMATCH"
    INVALID_SHARES             = "INVALID_SHARES"
    ADJUSTMENT_MISMATCH        = "ADJUSTMENT_MISMATCH"

    # ── Business Rule Violations (422) ────────────────────────────────────
    UNKNOWN_PERSON             = "UNKNOWN_PERSON"
    PAYER_NOT_MEMBER           = "PAYER_NOT_MEMBER"
    SPLIT_PERSON_NOT_MEMBER    = "SPLIT_PERSON_NOT_MEMBER"
    SPLIT_BILL_DELETED         = "SPLIT_BILL_DELETED"
    SELF_TRANSACTION           = "SELF_TRANSACTION"

    # ── Identity Errors ────────────────────────────────────────────────────
    # 401 = we do not know who is acting
    # 403 = we know who is acting, but they may not touch this record
    PERSON_HEADER_MISSING      = "PERSON_HEADER_MISSING"  # 401
    PERSON_HEADER_INVALID      = "PERSON_HEADER_INVALID"  # 401
    FORBIDDEN                  = "FORBIDDEN"              # 403

    # ── System Errors (500) ────────────────────────────────────────────────
    INTERNAL_ERROR             = "INTERNAL_ERROR"


# ── Split validation errors ────────────────────────────────────────────────
#
# Raised by services/split_calculator.py. All are synchronous, local and
# never retried. The HTTP layer maps them to 422 through the AppError handler.
# ──────────────────────────────────────────────────────────────────────────

class SplitValidationError(AppError):
    """Base for split inputs that do not reconcile with the bill total."""

    code = ErrorCode.INVALID_SPLIT

    def __init__(
            self,
            message: str,
            delta: Decimal | None = None,
            field: str | None = "participants",
    ) -> None:
        super().__init__(self.code, message, 422, field=field)
        self.delta = delta

    def to_dict(self) -> dict:
        payload = super().to_dict()
        if self.delta is not None:
            payload["error"]["delta"] = str(self.delta)
        return payload


class InvalidSplitError(SplitValidationError):
    """No participants, non-positive total, or an otherwise unusable split."""

    code = ErrorCode.INVALID_SPLIT


class AmountMismatchError(SplitValidationError):
    """Exact amounts do not add up to the total. delta = total - sum."""

    code = ErrorCode.AMOUNT_MISMATCH


class PercentageMismatchError(SplitValidationError):
    """Percentages do not add up to 100. delta = 100 - sum."""

    code = ErrorCode.PERCENTAGE_MISMATCH


class InvalidSharesError(SplitValidationError):
    code = ErrorCode.INVALID_SHARES


class AdjustmentMismatchError(SplitValidationError):
    """Adjustments do not net to zero. delta = -sum(adjustments)."""

    code = ErrorCode.ADJUSTMENT_MISMATCH


class ParticipantNotFoundError(AppError):

    def __init__(self, split_bill_id, participant_id: int) -> None:
        super().__init__(
            ErrorCode.PARTICIPANT_NOT_FOUND,
            f"Participant {participant_id} is not part of split bill {split_bill_id}.",
            404,
        )
        self.participant_id = participant_id
