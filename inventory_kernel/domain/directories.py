"""
Directories -- Read-only lookups the engine consumes.

Products, stores, currencies, reasons and accounts belong to other
modules. The reconciliation engine only reads them by id, through the
protocols below. ``StaticDirectory`` is an in-memory implementation for
callers that already hold the reference data (and for tests).

The stock lookup is a single normalized capability: one method, one
field. Upstream payloads that spell the quantity differently must be
mapped by the caller before they reach the engine.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Protocol

from inventory_kernel.domain.values import AdjustmentReason, CurrencyRef


class ProductStockLookup(Protocol):
    """Current stock level of a product in a store."""

    def get_stock_level(self, product_id: str, store_id: str) -> Decimal | None:
        """Return the stock level, or None when the product is unknown."""
        ...


class ReferenceDirectory(Protocol):
    """Reason and currency lookups by id."""

    def get_reason(self, reason_id: str) -> AdjustmentReason | None:
        ...

    def get_currency(self, currency_id: str) -> CurrencyRef | None:
        ...

    def currencies(self) -> tuple[CurrencyRef, ...]:
        ...


class StaticDirectory:
    """In-memory ProductStockLookup and ReferenceDirectory."""

    def __init__(
        self,
        *,
        reasons: Iterable[AdjustmentReason] = (),
        currencies: Iterable[CurrencyRef] = (),
        stock_levels: Mapping[tuple[str, str], Decimal] | None = None,
    ):
        self._reasons = {r.id: r for r in reasons}
        self._currencies = {c.id: c for c in currencies}
        self._stock_levels = dict(stock_levels or {})

    def get_reason(self, reason_id: str) -> AdjustmentReason | None:
        return self._reasons.get(reason_id)

    def get_currency(self, currency_id: str) -> CurrencyRef | None:
        return self._currencies.get(currency_id)

    def currencies(self) -> tuple[CurrencyRef, ...]:
        return tuple(self._currencies.values())

    def get_stock_level(self, product_id: str, store_id: str) -> Decimal | None:
        return self._stock_levels.get((product_id, store_id))

    def set_stock_level(
        self, product_id: str, store_id: str, quantity: Decimal
    ) -> None:
        self._stock_levels[(product_id, store_id)] = quantity
