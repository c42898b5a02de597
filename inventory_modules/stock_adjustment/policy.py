"""
Stock Adjustment Policy.

The line carries the amount to add or deduct (the header decides which).
Lines are valued on that adjustment amount, not on the resulting stock.
"""

from __future__ import annotations

from decimal import Decimal

from inventory_engines.adjustment import compute_directed_adjustment
from inventory_engines.valuation import value_line
from inventory_kernel.domain.directories import ReferenceDirectory
from inventory_kernel.domain.values import Unavailable
from inventory_kernel.exceptions import ValidationError
from inventory_modules.reconciliation.models import (
    DerivedLine,
    DocumentType,
    MovementDirection,
    ReconciliationDocument,
    ReconciliationLine,
)
from inventory_modules.reconciliation.policy import ReconciliationPolicy
from inventory_modules.stock_adjustment.config import StockAdjustmentConfig
from inventory_modules.stock_adjustment.models import StockAdjustmentHeader
from inventory_modules.stock_adjustment.workflows import STOCK_ADJUSTMENT_WORKFLOW


class StockAdjustmentPolicy(ReconciliationPolicy):
    """Explicit add/deduct strategy."""

    document_type = DocumentType.STOCK_ADJUSTMENT
    header_type = StockAdjustmentHeader
    config_type = StockAdjustmentConfig
    workflow = STOCK_ADJUSTMENT_WORKFLOW

    def derive_line(
        self,
        line: ReconciliationLine,
        header: StockAdjustmentHeader,
        exchange_rate: Decimal | Unavailable,
    ) -> DerivedLine:
        directed = compute_directed_adjustment(
            line.baseline_quantity, header.adjustment_type, line.effective_target
        )
        valuation = value_line(directed.adjusted_quantity, line.unit_cost, exchange_rate)
        return DerivedLine(
            line_id=line.line_id,
            product_id=line.product_id,
            adjustment_in=directed.adjustment_in,
            adjustment_out=directed.adjustment_out,
            new_stock=directed.new_stock,
            delta_quantity=directed.delta,
            valued_quantity=directed.adjusted_quantity,
            line_total=valuation.line_total,
            equivalent_line_total=valuation.equivalent_line_total,
            delta_value=directed.delta * line.unit_cost,
            warnings=directed.warnings,
        )

    def validate_line(self, line: ReconciliationLine, index: int) -> None:
        super().validate_line(line, index)
        if line.target_quantity <= 0:
            raise ValidationError(
                f"Adjusted quantity must be greater than zero for item {index + 1}",
                field="target_quantity",
                line_index=index,
            )

    def validate_reasons(
        self,
        document: ReconciliationDocument,
        derived: tuple[DerivedLine, ...],
        reasons: ReferenceDirectory | None,
    ) -> None:
        header: StockAdjustmentHeader = document.header
        self.check_reason(reasons, header.reason_id, header.adjustment_type, "reason_id")
        if not self.config.allow_over_deduction:
            for index, d in enumerate(derived):
                if d.warnings:
                    raise ValidationError(
                        f"{d.warnings[0].message} (item {index + 1})",
                        field="target_quantity",
                        line_index=index,
                    )

    def posting_refs(
        self, header: StockAdjustmentHeader, direction: MovementDirection
    ) -> tuple[str | None, str | None, str | None]:
        return (
            header.reason_id,
            header.inventory_account_id,
            header.corresponding_account_id,
        )
