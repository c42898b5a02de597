"""
Tests for the quantity delta calculator.

Covers:
- Counted adjustments (Physical Inventory)
- Directed add/deduct adjustments (Stock Adjustment)
- Over-deduction clamping and its warning
- Rejection of negative input
"""

from decimal import Decimal

import pytest

from inventory_engines.adjustment import (
    OVER_DEDUCTION,
    compute_counted_adjustment,
    compute_directed_adjustment,
    split_delta,
)
from inventory_kernel.domain.values import AdjustmentType
from inventory_kernel.exceptions import ValidationError


class TestSplitDelta:
    @pytest.mark.parametrize(
        "delta, expected",
        [
            (Decimal("3"), (Decimal("3"), Decimal("0"))),
            (Decimal("-2.5"), (Decimal("0"), Decimal("2.5"))),
            (Decimal("0"), (Decimal("0"), Decimal("0"))),
        ],
    )
    def test_split(self, delta, expected):
        assert split_delta(delta) == expected


class TestCountedAdjustment:
    def test_count_above_baseline(self):
        result = compute_counted_adjustment(Decimal("10"), Decimal("12"))

        assert result.adjustment_in == Decimal("2")
        assert result.adjustment_out == Decimal("0")
        assert result.new_stock == Decimal("12")
        assert result.delta == Decimal("2")

    def test_count_below_baseline(self):
        result = compute_counted_adjustment(Decimal("10"), Decimal("7"))

        assert result.adjustment_in == Decimal("0")
        assert result.adjustment_out == Decimal("3")
        assert result.new_stock == Decimal("7")

    def test_count_matches_baseline(self):
        result = compute_counted_adjustment(Decimal("5"), Decimal("5"))

        assert result.adjustment_in == result.adjustment_out == Decimal("0")

    def test_fractional_quantities(self):
        result = compute_counted_adjustment(Decimal("1.25"), Decimal("1.5"))

        assert result.adjustment_in == Decimal("0.25")

    @pytest.mark.parametrize(
        "baseline, target, field",
        [
            (Decimal("-1"), Decimal("0"), "baseline_quantity"),
            (Decimal("0"), Decimal("-1"), "target_quantity"),
        ],
    )
    def test_negative_rejected(self, baseline, target, field):
        with pytest.raises(ValidationError) as exc_info:
            compute_counted_adjustment(baseline, target)

        assert exc_info.value.field == field


class TestDirectedAdjustment:
    def test_add(self):
        result = compute_directed_adjustment(Decimal("10"), AdjustmentType.ADD, Decimal("4"))

        assert result.adjustment_in == Decimal("4")
        assert result.adjustment_out == Decimal("0")
        assert result.new_stock == Decimal("14")
        assert result.delta == Decimal("4")
        assert result.warnings == ()

    def test_add_accepts_string_type(self):
        result = compute_directed_adjustment(Decimal("0"), "add", Decimal("4"))

        assert result.adjustment_type is AdjustmentType.ADD
        assert result.new_stock == Decimal("4")

    def test_deduct_within_stock(self):
        result = compute_directed_adjustment(Decimal("10"), AdjustmentType.DEDUCT, Decimal("4"))

        assert result.adjustment_out == Decimal("4")
        assert result.new_stock == Decimal("6")
        assert not result.is_over_deduction

    def test_deduct_entire_stock(self):
        result = compute_directed_adjustment(Decimal("4"), AdjustmentType.DEDUCT, Decimal("4"))

        assert result.new_stock == Decimal("0")
        assert result.warnings == ()

    def test_over_deduction_clamps_and_warns(self):
        result = compute_directed_adjustment(Decimal("3"), AdjustmentType.DEDUCT, Decimal("5"))

        assert result.new_stock == Decimal("0")
        assert result.adjustment_out == Decimal("3")
        assert result.adjusted_quantity == Decimal("5")
        assert result.is_over_deduction
        assert result.warnings[0].code == OVER_DEDUCTION
        assert result.warnings[0].shortfall == Decimal("2")

    def test_negative_amount_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            compute_directed_adjustment(Decimal("3"), AdjustmentType.ADD, Decimal("-1"))

        assert exc_info.value.field == "adjusted_quantity"

    @pytest.mark.parametrize("adjustment_type", [AdjustmentType.ADD, AdjustmentType.DEDUCT])
    def test_zero_amount_is_no_op(self, adjustment_type):
        result = compute_directed_adjustment(Decimal("3"), adjustment_type, Decimal("0"))

        assert result.adjustment_in == result.adjustment_out == Decimal("0")
        assert result.new_stock == Decimal("3")
        assert result.warnings == ()
