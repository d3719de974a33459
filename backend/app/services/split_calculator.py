"""
services/split_calculator.py — Split policy evaluator.

Turns a bill total and a split method into per-person amounts that add up to
the total exactly. This file is the SINGLE SOURCE OF TRUTH for split
arithmetic; split_bill_service, group_service and balance_service all call
into it rather than dividing amounts themselves.

Split methods are a closed set of frozen dataclasses, one per method, each
carrying only the inputs that method needs:

    EqualSplit(person_ids=[1, 2, 3])
    ExactAmountSplit(amounts={1: Decimal("40.00"), 2: Decimal("60.00")})
    PercentageSplit(percentages={1: Decimal("50"), 2: Decimal("50")})
    ShareSplit(shares={1: 1, 2: 2})
    AdjustmentSplit(person_ids=[1, 2], adjustments={1: Decimal("5"), 2: Decimal("-5")})

Rounding policy:
  - All arithmetic happens in integer cents.
  - Proportional amounts are rounded DOWN to the cent.
  - The leftover cents are handed out one at a time to participants in list
    order (wrapping round if there are more leftover cents than people), so
    the first participants absorb the remainder. $100.00 / 3 is
    [33.34, 33.33, 33.33].

Layer rules:
  - No Flask imports, no session, no I/O. Same inputs, same outputs.
  - Raises the SplitValidationError family from errors.py; never returns a
    partial result.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from typing import Callable, Union

from backend.app.errors import (
    AdjustmentMismatchError,
    AmountMismatchError,
    AppError,
    ErrorCode,
    InvalidSharesError,
    InvalidSplitError,
    PercentageMismatchError,
)


# Amount-based inputs must agree to the cent; a delta of 0.01 is a mismatch.
AMOUNT_TOLERANCE = Decimal("0.01")

# Percentages may drift by up to 0.1 (e.g. three lots of 33.3 = 99.9).
PERCENTAGE_TOLERANCE = Decimal("0.1")

_CENT = Decimal("0.01")
_HUNDRED = Decimal("100")
_ZERO = Decimal("0")


# ── Split methods ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class EqualSplit:
    person_ids: list[int]


@dataclass(frozen=True)
class ExactAmountSplit:
    amounts: dict[int, Decimal]


@dataclass(frozen=True)
class PercentageSplit:
    percentages: dict[int, Decimal]


@dataclass(frozen=True)
class ShareSplit:
    shares: dict[int, int]


@dataclass(frozen=True)
class AdjustmentSplit:
    person_ids: list[int]
    adjustments: dict[int, Decimal] = field(default_factory=dict)


SplitMethod = Union[EqualSplit, ExactAmountSplit, PercentageSplit, ShareSplit, AdjustmentSplit]


# ── Cent helpers ───────────────────────────────────────────────────────────

def _to_cents(amount: Decimal) -> int:
    return int((Decimal(amount) * _HUNDRED).to_integral_value(rounding=ROUND_HALF_UP))


def _from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / _HUNDRED).quantize(_CENT)


def _equal_cents(total_cents: int, count: int) -> list[int]:
    base, remainder = divmod(total_cents, count)
    return [base + 1 if i < remainder else base for i in range(count)]


def _distribute_remainder(cents: list[int], target_cents: int) -> list[int]:
    """
    Moves one cent at a time, in list order, until sum(cents) == target_cents.

    A negative remainder (inputs that overshoot, e.g. percentages summing to
    100.05) takes cents back in the same order, skipping anyone already at zero.
    """
    result = list(cents)
    remainder = target_cents - sum(result)
    if remainder == 0:
        return result

    step = 1 if remainder > 0 else -1
    index = 0
    while remainder != 0:
        slot = index % len(result)
        if step > 0 or result[slot] > 0:
            result[slot] += step
            remainder -= step
        index += 1
    return result


def _row(
        person_id: int,
        cents: int,
        percentage: Decimal | None = None,
        shares: int | None = None,
) -> dict:
    return {
        "person_id": person_id,
        "amount": _from_cents(cents),
        "percentage": percentage,
        "shares": shares,
    }


# ── Validation helpers ─────────────────────────────────────────────────────

def _validate_total(total_amount: Decimal) -> int:
    if total_amount is None or Decimal(total_amount) <= _ZERO:
        raise InvalidSplitError(
            "Total amount must be greater than zero.",
            field="total_amount",
        )
    return _to_cents(total_amount)


def _require_participants(person_ids) -> None:
    if len(person_ids) == 0:
        raise InvalidSplitError("At least one participant is required.")


def _require_unique(person_ids: list[int]) -> None:
    if len(set(person_ids)) != len(person_ids):
        raise InvalidSplitError("The same person appears more than once in the split.")


# ── Per-method calculators ─────────────────────────────────────────────────

def _calculate_equal(total_cents: int, method: EqualSplit) -> list[dict]:
    _require_participants(method.person_ids)
    _require_unique(method.person_ids)

    cents = _equal_cents(total_cents, len(method.person_ids))
    return [_row(pid, c) for pid, c in zip(method.person_ids, cents)]


def _calculate_exact(total_cents: int, method: ExactAmountSplit) -> list[dict]:
    _require_participants(method.amounts)

    for person_id, amount in method.amounts.items():
        if amount <= _ZERO:
            raise InvalidSplitError(
                f"Amount for person {person_id} must be greater than 0.",
            )

    total = _from_cents(total_cents)
    supplied = sum(method.amounts.values(), _ZERO)
    delta = total - supplied
    if abs(delta) >= AMOUNT_TOLERANCE:
        raise AmountMismatchError(
            f"Amounts add up to {supplied}, expected {total}.",
            delta=delta,
        )

    # Sub-cent inputs are rounded; any cent lost there goes back in list order.
    cents = _distribute_remainder([_to_cents(a) for a in method.amounts.values()], total_cents)
    return [_row(pid, c) for pid, c in zip(method.amounts, cents)]


def _calculate_percentages(total_cents: int, method: PercentageSplit) -> list[dict]:
    _require_participants(method.percentages)

    for person_id, percentage in method.percentages.items():
        if percentage < _ZERO:
            raise InvalidSplitError(
                f"Percentage for person {person_id} must not be negative.",
            )

    supplied = sum(method.percentages.values(), _ZERO)
    delta = _HUNDRED - supplied
    if abs(delta) > PERCENTAGE_TOLERANCE:
        raise PercentageMismatchError(
            f"Percentages add up to {supplied}%, expected 100%.",
            delta=delta,
        )

    floored = [
        int((Decimal(total_cents) * pct / _HUNDRED).to_integral_value(rounding=ROUND_DOWN))
        for pct in method.percentages.values()
    ]
    cents = _distribute_remainder(floored, total_cents)
    return [
        _row(pid, c, percentage=pct)
        for (pid, pct), c in zip(method.percentages.items(), cents)
    ]


def _calculate_shares(total_cents: int, method: ShareSplit) -> list[dict]:
    _require_participants(method.shares)

    for person_id, count in method.shares.items():
        if count <= 0:
            raise InvalidSharesError(
                f"Person {person_id} has {count} shares; every participant needs at least 1.",
            )

    total_shares = sum(method.shares.values())
    if total_shares == 0:
        raise InvalidSharesError("Total shares must be greater than zero.")

    floored = [total_cents * count // total_shares for count in method.shares.values()]
    cents = _distribute_remainder(floored, total_cents)
    return [
        _row(pid, c, shares=count)
        for (pid, count), c in zip(method.shares.items(), cents)
    ]


def _calculate_adjustments(total_cents: int, method: AdjustmentSplit) -> list[dict]:
    _require_participants(method.person_ids)
    _require_unique(method.person_ids)

    members = set(method.person_ids)
    for person_id in method.adjustments:
        if person_id not in members:
            raise InvalidSplitError(
                f"Adjustment given for person {person_id}, who is not in the split.",
            )

    net = sum(method.adjustments.values(), _ZERO)
    if abs(net) >= AMOUNT_TOLERANCE:
        raise AdjustmentMismatchError(
            f"Adjustments net to {net}; they must net to zero.",
            delta=-net,
        )

    baseline = _equal_cents(total_cents, len(method.person_ids))
    adjusted = [
        base + _to_cents(method.adjustments.get(pid, _ZERO))
        for pid, base in zip(method.person_ids, baseline)
    ]
    for pid, cents in zip(method.person_ids, adjusted):
        if cents < 0:
            raise InvalidSplitError(
                f"Adjustment for person {pid} takes their share below zero.",
            )

    cents = _distribute_remainder(adjusted, total_cents)
    return [_row(pid, c) for pid, c in zip(method.person_ids, cents)]


_CALCULATORS: dict[type, Callable[[int, SplitMethod], list[dict]]] = {
    EqualSplit:       _calculate_equal,
    ExactAmountSplit: _calculate_exact,
    PercentageSplit:  _calculate_percentages,
    ShareSplit:       _calculate_shares,
    AdjustmentSplit:  _calculate_adjustments,
}


# ── Public API ─────────────────────────────────────────────────────────────

def calculate_split(total_amount: Decimal, method: SplitMethod) -> list[dict]:
    """
    Computes each participant's amount for a bill.

    Args:
        total_amount: The bill total. Decimal, > 0, at most 2 dp.
        method:       One of the split method dataclasses above.

    Returns:
        [{"person_id", "amount", "percentage", "shares"}] in participant order.
        `percentage` is set only for PercentageSplit, `shares` only for ShareSplit.

    Raises:
        InvalidSplitError, AmountMismatchError, PercentageMismatchError,
        InvalidSharesError, AdjustmentMismatchError.
    """
    calculator = _CALCULATORS.get(type(method))
    if calculator is None:
        raise InvalidSplitError(
            f"Unsupported split method: {type(method).__name__}.",
            field="split_type",
        )

    total_cents = _validate_total(total_amount)
    results = calculator(total_cents, method)
    assert_split_sums_to_total(results, _from_cents(total_cents))
    return results


def assert_split_sums_to_total(results: list[dict], total_amount: Decimal) -> None:
    """
    Post-condition: sum(amounts) == total exactly.
    A failure here is a programming error, not bad input.
    """
    computed = sum((r["amount"] for r in results), _ZERO)
    if computed != total_amount:
        raise AppError(
            ErrorCode.INTERNAL_ERROR,
            f"Split computation produced sum {computed} for total {total_amount}. "
            f"This is a bug — please report it.",
            500,
        )


def equal_amount_per_person(total_amount: Decimal, participant_count: int) -> Decimal:
    """Headline per-person figure for an equal split, rounded half-up to the cent."""
    if participant_count <= 0 or total_amount <= _ZERO:
        return Decimal("0.00")
    return (Decimal(total_amount) / participant_count).quantize(_CENT, rounding=ROUND_HALF_UP)


def equal_shares(total_amount: Decimal, person_ids: list[int]) -> dict[int, Decimal]:
    """{person_id: amount} for an equal split. Shorthand for balance folding."""
    return {r["person_id"]: r["amount"] for r in calculate_split(total_amount, EqualSplit(person_ids))}
