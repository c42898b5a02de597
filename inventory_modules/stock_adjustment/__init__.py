"""
Stock Adjustment Module (``inventory_modules.stock_adjustment``).

An explicit add or deduct of stock for a stated reason.  Lines carry the
adjustment amount; deductions never drive stock below zero.
"""

from inventory_modules.stock_adjustment.config import StockAdjustmentConfig
from inventory_modules.stock_adjustment.models import StockAdjustmentHeader
from inventory_modules.stock_adjustment.policy import StockAdjustmentPolicy
from inventory_modules.stock_adjustment.workflows import STOCK_ADJUSTMENT_WORKFLOW

__all__ = [
    "StockAdjustmentConfig",
    "StockAdjustmentHeader",
    "StockAdjustmentPolicy",
    "STOCK_ADJUSTMENT_WORKFLOW",
]
