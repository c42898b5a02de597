"""
Physical Inventory Configuration Schema.

IN and OUT reasons are not listed as required header fields: whether each
is needed depends on the counted lines, which the policy checks at submit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from inventory_modules.reconciliation.config import (
    DOCUMENT_FIELDS,
    ReconciliationModuleConfig,
)

PHYSICAL_INVENTORY_HEADER_FIELDS = frozenset(
    {
        "in_reason_id",
        "out_reason_id",
        "in_account_id",
        "in_corresponding_account_id",
        "out_account_id",
        "out_corresponding_account_id",
    }
)


@dataclass
class PhysicalInventoryConfig(ReconciliationModuleConfig):
    """Configuration schema for Physical Inventory documents."""

    reference_prefix: str = "PI"
    required_header_fields: tuple[str, ...] = (
        "document_date",
        "store_id",
        "currency_id",
        "in_account_id",
        "in_corresponding_account_id",
        "out_account_id",
        "out_corresponding_account_id",
    )

    allowed_header_fields: ClassVar[frozenset[str]] = (
        DOCUMENT_FIELDS | PHYSICAL_INVENTORY_HEADER_FIELDS
    )
