"""
inventory_engines.valuation -- Valuation aggregator.

Responsibility:
    Combine quantities, unit costs and a resolved exchange rate into line
    totals, equivalent (default-currency) totals, document totals and the
    variance value summary recorded when a count is accepted.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Which quantity a line is valued on is decided by the document policy,
    not here: these functions value whatever quantity they are given.

Invariants enforced:
    - An UNAVAILABLE exchange rate yields an UNAVAILABLE equivalent total;
      it is never replaced by zero.
    - Summation short-circuits to UNAVAILABLE when any term is UNAVAILABLE.
    - Full precision throughout.  Display rounding happens only at the
      presentation boundary (``inventory_kernel.domain.currency``).

Failure modes:
    - ValidationError for a negative quantity or unit cost.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from inventory_engines.tracer import traced_engine
from inventory_kernel.domain.values import UNAVAILABLE, Unavailable
from inventory_kernel.exceptions import ValidationError

ZERO = Decimal("0")


@dataclass(frozen=True)
class LineValuation:
    """Value of one line in document and default currency."""

    line_total: Decimal
    equivalent_line_total: Decimal | Unavailable


class ValuedLine(Protocol):
    """Anything carrying a line's quantities and values."""

    @property
    def adjustment_in(self) -> Decimal: ...

    @property
    def adjustment_out(self) -> Decimal: ...

    @property
    def line_total(self) -> Decimal: ...

    @property
    def equivalent_line_total(self) -> Decimal | Unavailable: ...


@dataclass(frozen=True)
class DocumentValuation:
    """Document-level totals over all lines."""

    line_count: int
    total_in_quantity: Decimal
    total_out_quantity: Decimal
    total_value: Decimal
    total_equivalent_value: Decimal | Unavailable


@dataclass(frozen=True)
class VarianceSummary:
    """
    Net valuation impact of a physical count.

    Each line contributes ``(counted - baseline) * unit cost``; gains and
    losses are kept apart so the net never hides offsetting errors.
    """

    total_delta_value: Decimal
    positive_delta_value: Decimal
    negative_delta_value: Decimal
    positive_count: int
    negative_count: int
    zero_count: int

    def to_dict(self) -> dict[str, str | int]:
        return {
            "total_delta_value": str(self.total_delta_value),
            "positive_delta_value": str(self.positive_delta_value),
            "negative_delta_value": str(self.negative_delta_value),
            "positive_count": self.positive_count,
            "negative_count": self.negative_count,
            "zero_count": self.zero_count,
        }

    @classmethod
    def from_dict(cls, data: dict) -> VarianceSummary:
        return cls(
            total_delta_value=Decimal(str(data["total_delta_value"])),
            positive_delta_value=Decimal(str(data["positive_delta_value"])),
            negative_delta_value=Decimal(str(data["negative_delta_value"])),
            positive_count=int(data["positive_count"]),
            negative_count=int(data["negative_count"]),
            zero_count=int(data["zero_count"]),
        )


def multiply_amount(
    amount: Decimal | Unavailable,
    rate: Decimal | Unavailable,
) -> Decimal | Unavailable:
    if amount is UNAVAILABLE or rate is UNAVAILABLE:
        return UNAVAILABLE
    return amount * rate


def sum_amounts(values: Iterable[Decimal | Unavailable]) -> Decimal | Unavailable:
    """Sum amounts; any UNAVAILABLE term makes the whole sum UNAVAILABLE."""
    total = ZERO
    for value in values:
        if value is UNAVAILABLE:
            return UNAVAILABLE
        total += value
    return total


@traced_engine(
    "valuation", "1.0",
    fingerprint_fields=("quantity", "unit_cost", "exchange_rate"),
)
def value_line(
    quantity: Decimal,
    unit_cost: Decimal,
    exchange_rate: Decimal | Unavailable,
) -> LineValuation:
    """Value ``quantity`` units at ``unit_cost`` and convert at ``exchange_rate``."""
    if quantity < ZERO:
        raise ValidationError("Valued quantity cannot be negative", field="quantity")
    if unit_cost < ZERO:
        raise ValidationError("Unit cost cannot be negative", field="unit_cost")

    line_total = quantity * unit_cost
    return LineValuation(
        line_total=line_total,
        equivalent_line_total=multiply_amount(line_total, exchange_rate),
    )


def aggregate_document(lines: Iterable[ValuedLine]) -> DocumentValuation:
    """
    Aggregate derived lines into document totals.

    The equivalent total is UNAVAILABLE if any line's equivalent is.
    """
    count = 0
    total_in = ZERO
    total_out = ZERO
    total_value = ZERO
    equivalents: list[Decimal | Unavailable] = []
    for line in lines:
        count += 1
        total_in += line.adjustment_in
        total_out += line.adjustment_out
        total_value += line.line_total
        equivalents.append(line.equivalent_line_total)

    return DocumentValuation(
        line_count=count,
        total_in_quantity=total_in,
        total_out_quantity=total_out,
        total_value=total_value,
        total_equivalent_value=sum_amounts(equivalents),
    )


@traced_engine("valuation", "1.0")
def summarize_variance(
    deltas: Iterable[tuple[Decimal, Decimal]],
) -> VarianceSummary:
    """
    Summarize (delta_quantity, unit_cost) pairs into a VarianceSummary.

    Lines are counted by the sign of their quantity delta, so a line with
    no known cost still shows up as a gain or a loss.
    """
    positive = ZERO
    negative = ZERO
    positive_count = negative_count = zero_count = 0
    for delta_quantity, unit_cost in deltas:
        value = delta_quantity * unit_cost
        if delta_quantity > ZERO:
            positive += value
            positive_count += 1
        elif delta_quantity < ZERO:
            negative += value
            negative_count += 1
        else:
            zero_count += 1

    return VarianceSummary(
        total_delta_value=positive + negative,
        positive_delta_value=positive,
        negative_delta_value=negative,
        positive_count=positive_count,
        negative_count=negative_count,
        zero_count=zero_count,
    )
