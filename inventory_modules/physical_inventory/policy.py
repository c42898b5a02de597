"""
Physical Inventory Policy.

A physical count replaces the baseline with the counted quantity.  Lines
are valued on the full counted stock, not on the delta, and each moving
line needs the document-level reason for its direction.
"""

from __future__ import annotations

from decimal import Decimal

from inventory_engines.adjustment import compute_counted_adjustment
from inventory_engines.valuation import value_line
from inventory_kernel.domain.directories import ReferenceDirectory
from inventory_kernel.domain.values import AdjustmentType, Unavailable
from inventory_kernel.exceptions import ValidationError
from inventory_modules.physical_inventory.config import PhysicalInventoryConfig
from inventory_modules.physical_inventory.models import PhysicalInventoryHeader
from inventory_modules.physical_inventory.workflows import PHYSICAL_INVENTORY_WORKFLOW
from inventory_modules.reconciliation.models import (
    DerivedLine,
    DocumentType,
    MovementDirection,
    ReconciliationDocument,
    ReconciliationLine,
)
from inventory_modules.reconciliation.policy import ReconciliationPolicy


class PhysicalInventoryPolicy(ReconciliationPolicy):
    """Counted-quantity strategy."""

    document_type = DocumentType.PHYSICAL_INVENTORY
    header_type = PhysicalInventoryHeader
    config_type = PhysicalInventoryConfig
    workflow = PHYSICAL_INVENTORY_WORKFLOW

    def derive_line(
        self,
        line: ReconciliationLine,
        header: PhysicalInventoryHeader,
        exchange_rate: Decimal | Unavailable,
    ) -> DerivedLine:
        counted = compute_counted_adjustment(
            line.baseline_quantity, line.effective_target
        )
        valuation = value_line(counted.target, line.unit_cost, exchange_rate)
        return DerivedLine(
            line_id=line.line_id,
            product_id=line.product_id,
            adjustment_in=counted.adjustment_in,
            adjustment_out=counted.adjustment_out,
            new_stock=counted.new_stock,
            delta_quantity=counted.delta,
            valued_quantity=counted.target,
            line_total=valuation.line_total,
            equivalent_line_total=valuation.equivalent_line_total,
            delta_value=counted.delta * line.cost_basis,
        )

    def validate_reasons(
        self,
        document: ReconciliationDocument,
        derived: tuple[DerivedLine, ...],
        reasons: ReferenceDirectory | None,
    ) -> None:
        header: PhysicalInventoryHeader = document.header
        needs_in = needs_out = False
        for index, d in enumerate(derived):
            if d.adjustment_in > 0:
                needs_in = True
                if not header.in_reason_id:
                    raise ValidationError(
                        f"Inventory IN reason is required for item {index + 1}",
                        field="in_reason_id",
                        line_index=index,
                    )
            if d.adjustment_out > 0:
                needs_out = True
                if not header.out_reason_id:
                    raise ValidationError(
                        f"Inventory OUT reason is required for item {index + 1}",
                        field="out_reason_id",
                        line_index=index,
                    )
        if needs_in:
            self.check_reason(reasons, header.in_reason_id, AdjustmentType.ADD, "in_reason_id")
        if needs_out:
            self.check_reason(reasons, header.out_reason_id, AdjustmentType.DEDUCT, "out_reason_id")

    def posting_refs(
        self, header: PhysicalInventoryHeader, direction: MovementDirection
    ) -> tuple[str | None, str | None, str | None]:
        if direction is MovementDirection.IN:
            return (
                header.in_reason_id,
                header.in_account_id,
                header.in_corresponding_account_id,
            )
        return (
            header.out_reason_id,
            header.out_account_id,
            header.out_corresponding_account_id,
        )
