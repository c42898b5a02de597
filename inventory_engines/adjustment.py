"""
inventory_engines.adjustment -- Quantity delta calculator.

Responsibility:
    Turn a baseline stock level and an observation into adjustment-in,
    adjustment-out and the resulting stock level.  Two entry points model
    the two ways a reconciliation expresses a change:

    * ``compute_counted_adjustment`` -- a counted total replaces the
      baseline (Physical Inventory).
    * ``compute_directed_adjustment`` -- an explicit add/deduct amount is
      applied to the baseline (Stock Adjustment).

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - adjustment_in and adjustment_out are never both nonzero.
    - Counted variant: new_stock == target.
    - Directed variant: new_stock is never negative; a deduction beyond the
      baseline is clamped at zero and reported as an ``over_deduction``
      warning, not an error.

Failure modes:
    - ValidationError for negative quantities or a negative directed
      amount.  A zero amount computes a no-op; callers that require a
      positive amount check it themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from inventory_engines.tracer import traced_engine
from inventory_kernel.domain.values import AdjustmentType
from inventory_kernel.exceptions import ValidationError

ZERO = Decimal("0")

OVER_DEDUCTION = "over_deduction"


@dataclass(frozen=True)
class AdjustmentWarning:
    """Non-fatal condition surfaced to the caller."""

    code: str
    message: str
    shortfall: Decimal = ZERO


@dataclass(frozen=True)
class CountedAdjustment:
    """Result of reconciling a counted quantity against the baseline."""

    baseline: Decimal
    target: Decimal
    adjustment_in: Decimal
    adjustment_out: Decimal
    new_stock: Decimal

    @property
    def delta(self) -> Decimal:
        return self.target - self.baseline


@dataclass(frozen=True)
class DirectedAdjustment:
    """Result of applying an explicit add/deduct amount to the baseline."""

    baseline: Decimal
    adjustment_type: AdjustmentType
    adjusted_quantity: Decimal
    adjustment_in: Decimal
    adjustment_out: Decimal
    new_stock: Decimal
    warnings: tuple[AdjustmentWarning, ...] = ()

    @property
    def delta(self) -> Decimal:
        return self.new_stock - self.baseline

    @property
    def is_over_deduction(self) -> bool:
        return any(w.code == OVER_DEDUCTION for w in self.warnings)


def _require_non_negative(value: Decimal, field: str) -> None:
    if value < ZERO:
        raise ValidationError(f"{field} cannot be negative", field=field)


def split_delta(delta: Decimal) -> tuple[Decimal, Decimal]:
    """Split a signed delta into (in, out); at most one side is nonzero."""
    if delta > ZERO:
        return delta, ZERO
    if delta < ZERO:
        return ZERO, -delta
    return ZERO, ZERO


@traced_engine("adjustment", "1.0", fingerprint_fields=("baseline", "target"))
def compute_counted_adjustment(baseline: Decimal, target: Decimal) -> CountedAdjustment:
    """Reconcile a counted ``target`` against ``baseline``."""
    _require_non_negative(baseline, "baseline_quantity")
    _require_non_negative(target, "target_quantity")

    adjustment_in, adjustment_out = split_delta(target - baseline)
    return CountedAdjustment(
        baseline=baseline,
        target=target,
        adjustment_in=adjustment_in,
        adjustment_out=adjustment_out,
        new_stock=target,
    )


@traced_engine(
    "adjustment", "1.0",
    fingerprint_fields=("baseline", "adjustment_type", "adjusted_quantity"),
)
def compute_directed_adjustment(
    baseline: Decimal,
    adjustment_type: AdjustmentType,
    adjusted_quantity: Decimal,
) -> DirectedAdjustment:
    """
    Apply an explicit add/deduct amount to ``baseline``.

    For a deduction larger than the baseline, ``adjustment_out`` is the
    stock actually removed (the baseline) and the difference is reported
    as the warning's ``shortfall``.
    """
    adjustment_type = AdjustmentType(adjustment_type)
    _require_non_negative(baseline, "baseline_quantity")
    _require_non_negative(adjusted_quantity, "adjusted_quantity")

    if adjustment_type is AdjustmentType.ADD:
        return DirectedAdjustment(
            baseline=baseline,
            adjustment_type=adjustment_type,
            adjusted_quantity=adjusted_quantity,
            adjustment_in=adjusted_quantity,
            adjustment_out=ZERO,
            new_stock=baseline + adjusted_quantity,
        )

    warnings: tuple[AdjustmentWarning, ...] = ()
    new_stock = baseline - adjusted_quantity
    if new_stock < ZERO:
        warnings = (
            AdjustmentWarning(
                code=OVER_DEDUCTION,
                message=(
                    f"Deducting {adjusted_quantity} exceeds available stock "
                    f"{baseline}; new stock clamped to 0"
                ),
                shortfall=-new_stock,
            ),
        )
        new_stock = ZERO

    return DirectedAdjustment(
        baseline=baseline,
        adjustment_type=adjustment_type,
        adjusted_quantity=adjusted_quantity,
        adjustment_in=ZERO,
        adjustment_out=baseline - new_stock,
        new_stock=new_stock,
        warnings=warnings,
    )
