"""
Reconciliation Policy (``inventory_modules.reconciliation.policy``).

Responsibility
--------------
The shared interface of the two document strategies.  A policy owns
everything that differs between Physical Inventory and Stock Adjustment:
how a line's delta is derived, which quantity it is valued on, which
header fields and reasons are required, which workflow governs it, and
how an approved document turns into stock movements.

Architecture
------------
Layer: **Modules**.  Pure: policies compute and validate, they never read
the clock or persist anything.  Concrete strategies live in
``inventory_modules.physical_inventory.policy`` and
``inventory_modules.stock_adjustment.policy``.

Invariants
----------
- ``validate_for_submission`` either passes or raises the first failure;
  it never returns a partial result.
- Valuation of a submitted document always uses the frozen rate.
- Serial uniqueness is enforced authoritatively at submission.

Failure Modes
-------------
- ``ValidationError`` naming the offending field and line.
- ``DuplicateSerialNumberError`` for a repeated serial.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, ClassVar

from inventory_engines.serials import ensure_unique_serials
from inventory_engines.valuation import (
    DocumentValuation,
    VarianceSummary,
    aggregate_document,
    multiply_amount,
    summarize_variance,
)
from inventory_kernel.domain.directories import ReferenceDirectory
from inventory_kernel.domain.values import (
    UNAVAILABLE,
    AdjustmentReason,
    AdjustmentType,
    Unavailable,
)
from inventory_kernel.domain.workflow import Workflow
from inventory_kernel.exceptions import ValidationError
from inventory_kernel.logging_config import get_logger
from inventory_modules.reconciliation.config import ReconciliationModuleConfig
from inventory_modules.reconciliation.models import (
    DerivedLine,
    DocumentHeader,
    DocumentType,
    MovementDirection,
    ReconciliationDocument,
    ReconciliationLine,
    StockMovement,
)

logger = get_logger("modules.reconciliation.policy")

ZERO = Decimal("0")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class ReconciliationPolicy(ABC):
    """Strategy interface for one reconciliation document type."""

    document_type: ClassVar[DocumentType]
    header_type: ClassVar[type[DocumentHeader]]
    config_type: ClassVar[type[ReconciliationModuleConfig]]
    workflow: ClassVar[Workflow]

    def __init__(self, config: ReconciliationModuleConfig | None = None):
        self.config = config or self.config_type.with_defaults()

    # ------------------------------------------------------------------
    # Derivation and valuation
    # ------------------------------------------------------------------

    @abstractmethod
    def derive_line(
        self,
        line: ReconciliationLine,
        header: DocumentHeader,
        exchange_rate: Decimal | Unavailable,
    ) -> DerivedLine:
        """Compute the delta and values of one line."""

    def effective_rate(
        self,
        document: ReconciliationDocument,
        resolved_rate: Decimal | Unavailable | None = None,
    ) -> Decimal | Unavailable:
        """The frozen rate once submitted, else the freshly resolved one."""
        if document.exchange_rate is not None:
            return document.exchange_rate
        if resolved_rate is None:
            return UNAVAILABLE
        return resolved_rate

    def derive_lines(
        self,
        document: ReconciliationDocument,
        resolved_rate: Decimal | Unavailable | None = None,
    ) -> tuple[DerivedLine, ...]:
        rate = self.effective_rate(document, resolved_rate)
        return tuple(
            self.derive_line(line, document.header, rate) for line in document.lines
        )

    def value_document(
        self,
        document: ReconciliationDocument,
        resolved_rate: Decimal | Unavailable | None = None,
    ) -> DocumentValuation:
        derived = self.derive_lines(document, resolved_rate)
        return aggregate_document(derived)

    def summarize_variance(self, document: ReconciliationDocument) -> VarianceSummary:
        return summarize_variance(
            (d.delta_quantity, line.cost_basis)
            for d, line in zip(self.derive_lines(document), document.lines)
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_line(self, line: ReconciliationLine, index: int) -> None:
        """Numeric checks that apply to every line of every document."""
        checks = (
            ("baseline_quantity", line.baseline_quantity),
            ("target_quantity", line.target_quantity),
            ("unit_cost", line.unit_cost),
        )
        for name, value in checks:
            if value < ZERO:
                raise ValidationError(
                    f"{name} cannot be negative for item {index + 1}",
                    field=name,
                    line_index=index,
                )
        if line.unit_average_cost is not None and line.unit_average_cost < ZERO:
            raise ValidationError(
                f"unit_average_cost cannot be negative for item {index + 1}",
                field="unit_average_cost",
                line_index=index,
            )
        if line.batch_number is None:
            if self.config.require_batch_number:
                raise ValidationError(
                    f"Batch number is required for item {index + 1}",
                    field="batch_number",
                    line_index=index,
                )
        elif not self.config.batch_number_matches(line.batch_number):
            raise ValidationError(
                f"Batch number {line.batch_number!r} on item {index + 1} "
                "does not match the required format",
                field="batch_number",
                line_index=index,
            )

    def validate_header(self, document: ReconciliationDocument) -> None:
        for name in self.config.required_header_fields:
            if hasattr(document.header, name):
                value = getattr(document.header, name)
            else:
                value = getattr(document, name)
            if _is_blank(value):
                raise ValidationError(f"{name} is required", field=name)

    @abstractmethod
    def validate_reasons(
        self,
        document: ReconciliationDocument,
        derived: tuple[DerivedLine, ...],
        reasons: ReferenceDirectory | None,
    ) -> None:
        """Type-specific reason requirements."""

    def validate_for_submission(
        self,
        document: ReconciliationDocument,
        reasons: ReferenceDirectory | None = None,
    ) -> None:
        """Authoritative pre-submit check; raises the first failure found."""
        if not document.lines:
            raise ValidationError(
                "At least one item is required to submit", field="lines"
            )
        self.validate_header(document)
        for index, line in enumerate(document.lines):
            self.validate_line(line, index)
        derived = self.derive_lines(document)
        self.validate_reasons(document, derived, reasons)
        ensure_unique_serials(document.line_serials)

    def validate_approved_quantities(self, document: ReconciliationDocument) -> None:
        for index, line in enumerate(document.lines):
            approved = line.approved_quantity
            if approved is None:
                continue
            if approved < ZERO:
                raise ValidationError(
                    f"Approved quantity cannot be negative for item {index + 1}",
                    field="approved_quantity",
                    line_index=index,
                )
            if approved > line.target_quantity:
                raise ValidationError(
                    f"Approved quantity {approved} exceeds requested quantity "
                    f"{line.target_quantity} for item {index + 1}",
                    field="approved_quantity",
                    line_index=index,
                )

    def check_reason(
        self,
        reasons: ReferenceDirectory | None,
        reason_id: str | None,
        expected_type: AdjustmentType,
        field: str,
        line_index: int | None = None,
    ) -> AdjustmentReason | None:
        """Look up a reason and check its direction, when a directory is given."""
        if reasons is None or reason_id is None or not self.config.check_reason_types:
            return None
        reason = reasons.get_reason(reason_id)
        if reason is None:
            raise ValidationError(
                f"Unknown adjustment reason {reason_id!r}",
                field=field,
                line_index=line_index,
            )
        if reason.adjustment_type is not expected_type:
            raise ValidationError(
                f"Reason {reason.name!r} is a {reason.adjustment_type.value} "
                f"reason; a {expected_type.value} reason is required",
                field=field,
                line_index=line_index,
            )
        return reason

    # ------------------------------------------------------------------
    # Movements
    # ------------------------------------------------------------------

    @abstractmethod
    def posting_refs(
        self, header: DocumentHeader, direction: MovementDirection
    ) -> tuple[str | None, str | None, str | None]:
        """(reason_id, account_id, corresponding_account_id) for a direction."""

    def build_movements(self, document: ReconciliationDocument) -> tuple[StockMovement, ...]:
        """Stock movements for an approved document, one per moving line."""
        if document.status.value not in self.workflow.released_states():
            raise ValidationError(
                f"Movements are only available once approved, "
                f"document is {document.status.value}",
                field="status",
            )
        rate = self.effective_rate(document)
        movements: list[StockMovement] = []
        for derived, line in zip(self.derive_lines(document), document.lines):
            direction = derived.direction
            if direction is None:
                continue
            quantity = (
                derived.adjustment_in
                if direction is MovementDirection.IN
                else derived.adjustment_out
            )
            value = quantity * line.unit_cost
            equivalent = multiply_amount(value, rate)
            reason_id, account_id, corresponding_id = self.posting_refs(
                document.header, direction
            )
            movements.append(
                StockMovement(
                    document_id=document.id,
                    reference_number=document.reference_number,
                    line_id=line.line_id,
                    product_id=line.product_id,
                    store_id=document.store_id,
                    direction=direction,
                    quantity=quantity,
                    unit_cost=line.unit_cost,
                    value=value,
                    # Approved documents always carry a frozen rate
                    equivalent_value=equivalent,
                    reason_id=reason_id,
                    account_id=account_id,
                    corresponding_account_id=corresponding_id,
                    batch_number=line.batch_number,
                    serial_numbers=line.serial_numbers,
                    expiry_date=line.expiry_date,
                )
            )
        logger.info(
            "stock_movements_built",
            extra={
                "document_id": str(document.id),
                "movement_count": len(movements),
            },
        )
        return tuple(movements)
