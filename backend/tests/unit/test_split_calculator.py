"""
tests/unit/test_split_calculator.py — Unit tests for services/split_calculator.py.

What this file proves:
  - Every split method produces amounts that sum EXACTLY to the total
  - Leftover cents go to the first participants in list order
  - Mismatched inputs raise the right SplitValidationError with the right delta
  - percentage / shares are echoed only for their own split method

Unit test constraints:
  - No database, no Flask, no identity context.
  - Pure Python: only Decimal arithmetic.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from backend.app.errors import (
    AdjustmentMismatchError,
    AmountMismatchError,
    ErrorCode,
    InvalidSharesError,
    InvalidSplitError,
    PercentageMismatchError,
    SplitValidationError,
)
from backend.app.services.split_calculator import (
    AdjustmentSplit,
    EqualSplit,
    ExactAmountSplit,
    PercentageSplit,
    ShareSplit,
    calculate_split,
    equal_amount_per_person,
    equal_shares,
)


def _amounts(results: list[dict]) -> list[Decimal]:
    return [r["amount"] for r in results]


def _assert_sums_to(results: list[dict], total: str) -> None:
    computed = sum(_amounts(results), Decimal("0"))
    assert computed == Decimal(total), f"split sum {computed} != total {total}"


# ═══════════════════════════════════════════════════════════════════════════
# Equally
# ═══════════════════════════════════════════════════════════════════════════

class TestEqualSplit:

    def test_even_division(self):
        results = calculate_split(Decimal("90.00"), EqualSplit([1, 2, 3]))
        assert _amounts(results) == [Decimal("30.00")] * 3

    def test_remainder_goes_to_first_participant(self):
        """$100.00 / 3 → 33.34, 33.33, 33.33."""
        results = calculate_split(Decimal("100.00"), EqualSplit([1, 2, 3]))
        assert _amounts(results) == [
            Decimal("33.34"), Decimal("33.33"), Decimal("33.33"),
        ]
        _assert_sums_to(results, "100.00")

    def test_two_cent_remainder_spread_in_order(self):
        """$0.05 / 3 → 0.02, 0.02, 0.01."""
        results = calculate_split(Decimal("0.05"), EqualSplit([7, 8, 9]))
        assert _amounts(results) == [Decimal("0.02"), Decimal("0.02"), Decimal("0.01")]

    def test_order_is_participant_order(self):
        results = calculate_split(Decimal("10.00"), EqualSplit([3, 1, 2]))
        assert [r["person_id"] for r in results] == [3, 1, 2]
        assert results[0]["amount"] == Decimal("3.34")

    def test_single_participant_gets_everything(self):
        results = calculate_split(Decimal("12.34"), EqualSplit([5]))
        assert _amounts(results) == [Decimal("12.34")]

    def test_percentage_and_shares_not_populated(self):
        results = calculate_split(Decimal("10.00"), EqualSplit([1, 2]))
        assert all(r["percentage"] is None and r["shares"] is None for r in results)

    def test_no_participants_rejected(self):
        with pytest.raises(InvalidSplitError):
            calculate_split(Decimal("10.00"), EqualSplit([]))

    def test_duplicate_participants_rejected(self):
        with pytest.raises(InvalidSplitError):
            calculate_split(Decimal("10.00"), EqualSplit([1, 1]))

    @pytest.mark.parametrize("total", ["0", "0.00", "-5.00"])
    def test_non_positive_total_rejected(self, total):
        with pytest.raises(InvalidSplitError) as exc_info:
            calculate_split(Decimal(total), EqualSplit([1, 2]))
        assert exc_info.value.field == "total_amount"

    @pytest.mark.parametrize("total,count", [
        ("0.01", 2), ("1.00", 3), ("99.99", 7), ("1000.00", 13), ("0.07", 11),
    ])
    def test_sum_is_exact(self, total, count):
        results = calculate_split(Decimal(total), EqualSplit(list(range(1, count + 1))))
        _assert_sums_to(results, total)


# ═══════════════════════════════════════════════════════════════════════════
# Exact amounts
# ═══════════════════════════════════════════════════════════════════════════

class TestExactAmountSplit:

    def test_amounts_returned_as_given(self):
        method = ExactAmountSplit({1: Decimal("40.00"), 2: Decimal("60.00")})
        results = calculate_split(Decimal("100.00"), method)
        assert _amounts(results) == [Decimal("40.00"), Decimal("60.00")]

    def test_short_by_a_cent_is_mismatch(self):
        method = ExactAmountSplit({1: Decimal("40.00"), 2: Decimal("59.99")})
        with pytest.raises(AmountMismatchError) as exc_info:
            calculate_split(Decimal("100.00"), method)
        assert exc_info.value.delta == Decimal("0.01")
        assert exc_info.value.code == ErrorCode.AMOUNT_MISMATCH

    def test_over_total_gives_negative_delta(self):
        method = ExactAmountSplit({1: Decimal("50.00"), 2: Decimal("60.00")})
        with pytest.raises(AmountMismatchError) as exc_info:
            calculate_split(Decimal("100.00"), method)
        assert exc_info.value.delta == Decimal("-10.00")

    def test_negative_amount_rejected(self):
        method = ExactAmountSplit({1: Decimal("110.00"), 2: Decimal("-10.00")})
        with pytest.raises(InvalidSplitError):
            calculate_split(Decimal("100.00"), method)

    def test_zero_amount_rejected(self):
        """Someone who owes nothing should be left out of the split instead."""
        method = ExactAmountSplit({1: Decimal("100.00"), 2: Decimal("0.00")})
        with pytest.raises(InvalidSplitError) as exc_info:
            calculate_split(Decimal("100.00"), method)
        assert exc_info.value.code == ErrorCode.INVALID_SPLIT
        assert "greater than 0" in exc_info.value.message

    def test_empty_rejected(self):
        with pytest.raises(InvalidSplitError):
            calculate_split(Decimal("10.00"), ExactAmountSplit({}))


# ═══════════════════════════════════════════════════════════════════════════
# Percentages
# ═══════════════════════════════════════════════════════════════════════════

class TestPercentageSplit:

    def test_fifty_thirty_twenty(self):
        """$90.00 at 50/30/20 → 45.00, 27.00, 18.00."""
        method = PercentageSplit({1: Decimal("50"), 2: Decimal("30"), 3: Decimal("20")})
        results = calculate_split(Decimal("90.00"), method)
        assert _amounts(results) == [Decimal("45.00"), Decimal("27.00"), Decimal("18.00")]

    def test_percentage_echoed(self):
        method = PercentageSplit({1: Decimal("50"), 2: Decimal("50")})
        results = calculate_split(Decimal("10.00"), method)
        assert [r["percentage"] for r in results] == [Decimal("50"), Decimal("50")]
        assert all(r["shares"] is None for r in results)

    def test_ninety_nine_percent_is_mismatch_with_delta_one(self):
        method = PercentageSplit({1: Decimal("50"), 2: Decimal("49")})
        with pytest.raises(PercentageMismatchError) as exc_info:
            calculate_split(Decimal("100.00"), method)
        assert exc_info.value.delta == Decimal("1")
        assert exc_info.value.to_dict()["error"]["delta"] == "1"

    def test_within_tolerance_accepted_and_sums_exactly(self):
        """33.3 × 3 = 99.9, inside the 0.1 tolerance. Remainder cents are added in order."""
        method = PercentageSplit({1: Decimal("33.3"), 2: Decimal("33.3"), 3: Decimal("33.3")})
        results = calculate_split(Decimal("100.00"), method)
        _assert_sums_to(results, "100.00")
        assert results[0]["amount"] == Decimal("33.34")

    def test_just_outside_tolerance_rejected(self):
        method = PercentageSplit({1: Decimal("50"), 2: Decimal("49.89")})
        with pytest.raises(PercentageMismatchError):
            calculate_split(Decimal("100.00"), method)

    def test_overshoot_within_tolerance_takes_cents_back(self):
        method = PercentageSplit({1: Decimal("50.05"), 2: Decimal("50")})
        results = calculate_split(Decimal("100.00"), method)
        _assert_sums_to(results, "100.00")

    def test_negative_percentage_rejected(self):
        method = PercentageSplit({1: Decimal("110"), 2: Decimal("-10")})
        with pytest.raises(InvalidSplitError):
            calculate_split(Decimal("100.00"), method)


# ═══════════════════════════════════════════════════════════════════════════
# Shares
# ═══════════════════════════════════════════════════════════════════════════

class TestShareSplit:

    def test_one_two_three(self):
        """$60.00 with shares 1/2/3 → 10.00, 20.00, 30.00."""
        results = calculate_split(Decimal("60.00"), ShareSplit({1: 1, 2: 2, 3: 3}))
        assert _amounts(results) == [Decimal("10.00"), Decimal("20.00"), Decimal("30.00")]
        assert [r["shares"] for r in results] == [1, 2, 3]

    def test_remainder_distributed(self):
        results = calculate_split(Decimal("10.00"), ShareSplit({1: 1, 2: 1, 3: 1}))
        assert _amounts(results) == [Decimal("3.34"), Decimal("3.33"), Decimal("3.33")]

    @pytest.mark.parametrize("bad", [0, -1])
    def test_non_positive_share_rejected(self, bad):
        with pytest.raises(InvalidSharesError) as exc_info:
            calculate_split(Decimal("10.00"), ShareSplit({1: 2, 2: bad}))
        assert exc_info.value.delta is None
        assert exc_info.value.http_status == 422


# ═══════════════════════════════════════════════════════════════════════════
# Adjustments
# ═══════════════════════════════════════════════════════════════════════════

class TestAdjustmentSplit:

    def test_baseline_plus_adjustments(self):
        """$90 three ways is 30 each; +5 / -5 moves money between two people."""
        method = AdjustmentSplit(
            [1, 2, 3],
            {1: Decimal("5.00"), 2: Decimal("-5.00")},
        )
        results = calculate_split(Decimal("90.00"), method)
        assert _amounts(results) == [Decimal("35.00"), Decimal("25.00"), Decimal("30.00")]

    def test_no_adjustments_is_equal_split(self):
        results = calculate_split(Decimal("100.00"), AdjustmentSplit([1, 2, 3]))
        assert _amounts(results) == [Decimal("33.34"), Decimal("33.33"), Decimal("33.33")]

    def test_adjustments_must_net_to_zero(self):
        method = AdjustmentSplit([1, 2], {1: Decimal("5.00")})
        with pytest.raises(AdjustmentMismatchError) as exc_info:
            calculate_split(Decimal("20.00"), method)
        assert exc_info.value.delta == Decimal("-5.00")

    def test_adjustment_for_outsider_rejected(self):
        method = AdjustmentSplit([1, 2], {3: Decimal("0.00")})
        with pytest.raises(InvalidSplitError):
            calculate_split(Decimal("20.00"), method)

    def test_adjustment_below_zero_rejected(self):
        method = AdjustmentSplit([1, 2], {1: Decimal("-15.00"), 2: Decimal("15.00")})
        with pytest.raises(InvalidSplitError):
            calculate_split(Decimal("20.00"), method)


# ═══════════════════════════════════════════════════════════════════════════
# Error taxonomy and helpers
# ═══════════════════════════════════════════════════════════════════════════

def test_all_split_errors_share_a_base_and_status():
    for cls in (
        InvalidSplitError,
        AmountMismatchError,
        PercentageMismatchError,
        InvalidSharesError,
        AdjustmentMismatchError,
    ):
        err = cls("boom")
        assert isinstance(err, SplitValidationError)
        assert err.http_status == 422


def test_unsupported_method_rejected():
    with pytest.raises(InvalidSplitError):
        calculate_split(Decimal("10.00"), object())


def test_equal_amount_per_person_rounds_half_up():
    assert equal_amount_per_person(Decimal("100.00"), 3) == Decimal("33.33")
    assert equal_amount_per_person(Decimal("0.05"), 2) == Decimal("0.03")


def test_equal_amount_per_person_degenerate_inputs():
    assert equal_amount_per_person(Decimal("10.00"), 0) == Decimal("0.00")
    assert equal_amount_per_person(Decimal("0.00"), 3) == Decimal("0.00")


def test_equal_shares_maps_person_to_amount():
    assert equal_shares(Decimal("10.00"), [4, 5, 6]) == {
        4: Decimal("3.34"),
        5: Decimal("3.33"),
        6: Decimal("3.33"),
    }
