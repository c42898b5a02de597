"""
inventory_engines.exchange -- Currency conversion resolver.

Responsibility:
    Resolve the multiplicative rate that converts a document currency into
    the company default currency, given a directed rate table.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumed by the reconciliation policies (preview) and the document
    lifecycle (rate freeze at submit).

Invariants enforced:
    - Same currency resolves to exactly Decimal("1") without consulting the
      table, whatever the table contains.
    - Lookups are directed: (from, to) only; an inverse entry is never used.
    - A missing rate resolves to UNAVAILABLE, never 0 and never 1.
    - Nothing is cached; each call reads only the table it is given.

Failure modes:
    - ``require_exchange_rate`` raises CurrencyRateUnavailableError when the
      rate resolves to UNAVAILABLE.
    - ``find_default_currency`` raises ValidationError unless exactly one
      currency is flagged as default.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any

from inventory_engines.tracer import traced_engine
from inventory_kernel.domain.values import (
    UNAVAILABLE,
    CurrencyRef,
    ExchangeRateEntry,
    Unavailable,
)
from inventory_kernel.exceptions import CurrencyRateUnavailableError, ValidationError
from inventory_kernel.logging_config import get_logger

logger = get_logger("engines.exchange")

IDENTITY_RATE = Decimal("1")

RateTable = Iterable["ExchangeRateEntry | Mapping[str, Any]"]


def _as_entry(row: ExchangeRateEntry | Mapping[str, Any]) -> ExchangeRateEntry:
    if isinstance(row, ExchangeRateEntry):
        return row
    return ExchangeRateEntry.from_mapping(row)


@traced_engine(
    "exchange", "1.0",
    fingerprint_fields=("from_currency_id", "default_currency_id"),
)
def resolve_exchange_rate(
    from_currency_id: str,
    default_currency_id: str,
    rate_table: RateTable,
) -> Decimal | Unavailable:
    """
    Resolve the rate from ``from_currency_id`` into the default currency.

    Returns the first matching directed entry; raw mapping rows are
    normalized (and validated) as they are scanned.
    """
    if from_currency_id == default_currency_id:
        return IDENTITY_RATE

    for row in rate_table:
        entry = _as_entry(row)
        if (
            entry.from_currency_id == from_currency_id
            and entry.to_currency_id == default_currency_id
        ):
            return entry.rate

    logger.info(
        "exchange_rate_unavailable",
        extra={
            "from_currency_id": from_currency_id,
            "to_currency_id": default_currency_id,
        },
    )
    return UNAVAILABLE


def require_exchange_rate(
    from_currency_id: str,
    default_currency_id: str,
    rate_table: RateTable,
) -> Decimal:
    """Resolve a rate that must exist (used when a rate is about to be frozen)."""
    rate = resolve_exchange_rate(from_currency_id, default_currency_id, rate_table)
    if rate is UNAVAILABLE:
        raise CurrencyRateUnavailableError(from_currency_id, default_currency_id)
    return rate


def find_default_currency(currencies: Iterable[CurrencyRef]) -> CurrencyRef:
    """Return the single currency flagged ``is_default``."""
    defaults = [c for c in currencies if c.is_default]
    if len(defaults) != 1:
        raise ValidationError(
            f"Exactly one default currency is required, found {len(defaults)}",
            field="is_default",
        )
    return defaults[0]
