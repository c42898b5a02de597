"""Physical Inventory header."""

from __future__ import annotations

from dataclasses import dataclass

from inventory_modules.reconciliation.models import DocumentHeader


@dataclass(frozen=True)
class PhysicalInventoryHeader(DocumentHeader):
    """
    Reasons and accounts for the two directions a count can move stock.

    Counted surpluses post with the IN reason and accounts, shortages with
    the OUT reason and accounts.
    """
    in_reason_id: str | None = None
    out_reason_id: str | None = None
    in_account_id: str | None = None
    in_corresponding_account_id: str | None = None
    out_account_id: str | None = None
    out_corresponding_account_id: str | None = None
