"""
Module: inventory_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines: exchange-rate resolution, quantity deltas,
    valuation and serial uniqueness.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import inventory_kernel.  MUST NOT import inventory_modules or
    inventory_services.

Invariants enforced:
    - Engines never read the clock.
    - Decimal-only arithmetic; floats are converted at the boundary.
    - Identical inputs always produce identical outputs.

Audit relevance:
    Engine invocations are traced via ``@traced_engine`` (see
    ``inventory_engines.tracer``), emitting INVENTORY_ENGINE_TRACE records.
"""

from inventory_engines.adjustment import (
    OVER_DEDUCTION,
    AdjustmentWarning,
    CountedAdjustment,
    DirectedAdjustment,
    compute_counted_adjustment,
    compute_directed_adjustment,
    split_delta,
)
from inventory_engines.exchange import (
    IDENTITY_RATE,
    find_default_currency,
    require_exchange_rate,
    resolve_exchange_rate,
)
from inventory_engines.serials import (
    SerialConflict,
    SerialStatus,
    ensure_unique_serials,
    find_serial_conflicts,
    parse_serial_numbers,
    validate_serial,
)
from inventory_engines.valuation import (
    DocumentValuation,
    LineValuation,
    VarianceSummary,
    aggregate_document,
    multiply_amount,
    sum_amounts,
    summarize_variance,
    value_line,
)

__all__ = [
    "OVER_DEDUCTION",
    "AdjustmentWarning",
    "CountedAdjustment",
    "DirectedAdjustment",
    "compute_counted_adjustment",
    "compute_directed_adjustment",
    "split_delta",
    "IDENTITY_RATE",
    "find_default_currency",
    "require_exchange_rate",
    "resolve_exchange_rate",
    "SerialConflict",
    "SerialStatus",
    "ensure_unique_serials",
    "find_serial_conflicts",
    "parse_serial_numbers",
    "validate_serial",
    "DocumentValuation",
    "LineValuation",
    "VarianceSummary",
    "aggregate_document",
    "multiply_amount",
    "sum_amounts",
    "summarize_variance",
    "value_line",
]
