"""Stock Adjustment header."""

from __future__ import annotations

from dataclasses import dataclass

from inventory_kernel.domain.values import AdjustmentType
from inventory_modules.reconciliation.models import DocumentHeader


@dataclass(frozen=True)
class StockAdjustmentHeader(DocumentHeader):
    """
    Direction, reason and accounts of a stock adjustment.

    ``source_document_type``/``source_document_number`` optionally point at
    the document that caused the adjustment (a damage report, a return).
    """
    adjustment_type: AdjustmentType = AdjustmentType.ADD
    reason_id: str | None = None
    inventory_account_id: str | None = None
    corresponding_account_id: str | None = None
    source_document_type: str | None = None
    source_document_number: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "adjustment_type", AdjustmentType(self.adjustment_type)
        )
