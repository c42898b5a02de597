"""
Pure domain layer.

Value objects, the clock abstraction, workflow types and read-only
directory protocols. No dependencies on the ORM, the database or any
outer layer. All domain objects are immutable and deterministic.
"""

from inventory_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from inventory_kernel.domain.currency import (
    CurrencyPrecision,
    CurrencyPrecisionTable,
    round_for_display,
)
from inventory_kernel.domain.directories import (
    ProductStockLookup,
    ReferenceDirectory,
    StaticDirectory,
)
from inventory_kernel.domain.values import (
    UNAVAILABLE,
    AdjustmentReason,
    AdjustmentType,
    CurrencyRef,
    ExchangeRateEntry,
    Unavailable,
    is_unavailable,
    to_decimal,
)
from inventory_kernel.domain.workflow import Guard, Transition, Workflow

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "CurrencyPrecision",
    "CurrencyPrecisionTable",
    "round_for_display",
    "ProductStockLookup",
    "ReferenceDirectory",
    "StaticDirectory",
    "UNAVAILABLE",
    "AdjustmentReason",
    "AdjustmentType",
    "CurrencyRef",
    "ExchangeRateEntry",
    "Unavailable",
    "is_unavailable",
    "to_decimal",
    "Guard",
    "Transition",
    "Workflow",
]
