"""
Physical Inventory Module (``inventory_modules.physical_inventory``).

A store counts its stock; each counted quantity replaces the known stock
level.  Surpluses and shortages post with separate IN and OUT reasons and
accounts, lines are valued on the full counted stock, and an approved
count is closed by accepting its variance.
"""

from inventory_modules.physical_inventory.config import PhysicalInventoryConfig
from inventory_modules.physical_inventory.models import PhysicalInventoryHeader
from inventory_modules.physical_inventory.policy import PhysicalInventoryPolicy
from inventory_modules.physical_inventory.workflows import PHYSICAL_INVENTORY_WORKFLOW

__all__ = [
    "PhysicalInventoryConfig",
    "PhysicalInventoryHeader",
    "PhysicalInventoryPolicy",
    "PHYSICAL_INVENTORY_WORKFLOW",
]
