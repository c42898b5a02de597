"""
Inventory Modules (``inventory_modules``).

Responsibility
--------------
Declarative document types for inventory reconciliation: Physical
Inventory (counted quantities) and Stock Adjustment (explicit add/deduct).
Each type is a ``ReconciliationPolicy`` strategy bundling its header
model, configuration, workflow, delta and valuation rules.

Architecture
------------
Layer: **Modules**.  Imports from ``inventory_engines`` and
``inventory_kernel`` but never from ``inventory_services``.

Usage
-----
    policy = policy_for(DocumentType.PHYSICAL_INVENTORY)
    valuation = policy.value_document(document, resolved_rate)
"""

from __future__ import annotations

from inventory_modules.physical_inventory import (
    PhysicalInventoryConfig,
    PhysicalInventoryHeader,
    PhysicalInventoryPolicy,
)
from inventory_modules.reconciliation import (
    DocumentType,
    ReconciliationModuleConfig,
    ReconciliationPolicy,
)
from inventory_modules.stock_adjustment import (
    StockAdjustmentConfig,
    StockAdjustmentHeader,
    StockAdjustmentPolicy,
)

_POLICY_TYPES: dict[DocumentType, type[ReconciliationPolicy]] = {
    DocumentType.PHYSICAL_INVENTORY: PhysicalInventoryPolicy,
    DocumentType.STOCK_ADJUSTMENT: StockAdjustmentPolicy,
}


def policy_type_for(document_type: DocumentType | str) -> type[ReconciliationPolicy]:
    return _POLICY_TYPES[DocumentType(document_type)]


def policy_for(
    document_type: DocumentType | str,
    config: ReconciliationModuleConfig | None = None,
) -> ReconciliationPolicy:
    """Return the strategy for ``document_type``, optionally with a config."""
    return policy_type_for(document_type)(config)


__all__ = [
    "PhysicalInventoryConfig",
    "PhysicalInventoryHeader",
    "PhysicalInventoryPolicy",
    "StockAdjustmentConfig",
    "StockAdjustmentHeader",
    "StockAdjustmentPolicy",
    "policy_for",
    "policy_type_for",
]
