"""Stock Adjustment Configuration Schema."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from inventory_modules.reconciliation.config import (
    DOCUMENT_FIELDS,
    ReconciliationModuleConfig,
)

STOCK_ADJUSTMENT_HEADER_FIELDS = frozenset(
    {
        "adjustment_type",
        "reason_id",
        "inventory_account_id",
        "corresponding_account_id",
        "source_document_type",
        "source_document_number",
    }
)


@dataclass
class StockAdjustmentConfig(ReconciliationModuleConfig):
    """
    Configuration schema for Stock Adjustment documents.

    Deducting more than the known stock clamps the new stock at zero and
    warns.  Set ``allow_over_deduction=False`` to block such documents at
    submit instead.
    """

    reference_prefix: str = "SA"
    required_header_fields: tuple[str, ...] = (
        "document_date",
        "store_id",
        "reason_id",
        "inventory_account_id",
        "currency_id",
    )
    allow_over_deduction: bool = True

    allowed_header_fields: ClassVar[frozenset[str]] = (
        DOCUMENT_FIELDS | STOCK_ADJUSTMENT_HEADER_FIELDS
    )
