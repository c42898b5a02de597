"""
Configuration Schema (``inventory_config.schema``).

The frozen configuration set handed to the document lifecycle: one
module config per document type plus reference-number and display
settings.
"""

from __future__ import annotations

from dataclasses import dataclass

from inventory_modules.physical_inventory.config import PhysicalInventoryConfig
from inventory_modules.reconciliation.config import ReconciliationModuleConfig
from inventory_modules.reconciliation.models import DocumentType
from inventory_modules.stock_adjustment.config import StockAdjustmentConfig


@dataclass(frozen=True)
class ReferenceNumberFormat:
    """``{prefix}-{date}-{sequence}``, e.g. ``SA-20240101-0001``."""

    date_format: str = "%Y%m%d"
    sequence_width: int = 4

    def __post_init__(self) -> None:
        if not self.date_format:
            raise ValueError("date_format is required")
        if not 1 <= self.sequence_width <= 12:
            raise ValueError(
                f"sequence_width must be between 1 and 12, got {self.sequence_width}"
            )


@dataclass(frozen=True)
class ReconciliationConfigSet:
    """
    Complete, validated configuration for the reconciliation engine.

    ``display_decimal_places`` of None means "use the currency's minor
    unit".  ``checksum`` identifies the source this set was parsed from.
    """

    config_id: str
    version: int
    physical_inventory: PhysicalInventoryConfig
    stock_adjustment: StockAdjustmentConfig
    reference_numbers: ReferenceNumberFormat = ReferenceNumberFormat()
    display_decimal_places: int | None = 2
    checksum: str = ""

    def __post_init__(self) -> None:
        if self.display_decimal_places is not None and not (
            0 <= self.display_decimal_places <= 9
        ):
            raise ValueError(
                "display_decimal_places must be between 0 and 9, "
                f"got {self.display_decimal_places}"
            )

    def module_config(self, document_type: DocumentType | str) -> ReconciliationModuleConfig:
        if DocumentType(document_type) is DocumentType.PHYSICAL_INVENTORY:
            return self.physical_inventory
        return self.stock_adjustment
