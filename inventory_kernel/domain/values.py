"""
Values -- Immutable reference data and the "unavailable" sentinel.

Responsibility:
    Provides the value types consumed (never created or mutated) by the
    reconciliation engine: currencies, directed exchange rates and
    adjustment reasons. Also defines ``UNAVAILABLE``, the explicit marker
    for a value that cannot be computed, and ``to_decimal`` for
    normalizing numeric input at boundaries.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Quantities and amounts are Decimal, never float.
    - An ExchangeRateEntry rate is strictly positive.
    - UNAVAILABLE is never equal to 0 or 1 and is falsy, so it cannot be
      mistaken for a usable rate or amount.

Failure modes:
    - InvalidExchangeRateError on a zero, negative or non-numeric rate.
    - ValidationError from ``to_decimal`` on non-numeric input.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Mapping, TypeAlias

from inventory_kernel.exceptions import InvalidExchangeRateError, ValidationError


class Unavailable(Enum):
    """Marker type for values that cannot be computed."""

    UNAVAILABLE = "unavailable"

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNAVAILABLE"


UNAVAILABLE = Unavailable.UNAVAILABLE

Amount: TypeAlias = "Decimal | Unavailable"


def is_unavailable(value: object) -> bool:
    return value is UNAVAILABLE


def to_decimal(value: Any, field: str = "value") -> Decimal:
    """
    Normalize a numeric input to Decimal.

    Floats go through ``str`` so 0.1 becomes Decimal("0.1"), not its binary
    expansion. Blank strings are rejected rather than read as zero.
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number", field=field)
    else:
        text = str(value).strip()
        if not text:
            raise ValidationError(f"{field} must be a number", field=field)
        try:
            result = Decimal(text)
        except InvalidOperation as e:
            raise ValidationError(
                f"{field} must be a number, got {value!r}", field=field
            ) from e
    if not result.is_finite():
        raise ValidationError(f"{field} must be finite", field=field)
    return result


class AdjustmentType(str, Enum):
    """Direction of a stock adjustment reason."""

    ADD = "add"
    DEDUCT = "deduct"


@dataclass(frozen=True, slots=True)
class CurrencyRef:
    """A currency as listed by the currency directory."""

    id: str
    code: str
    symbol: str = ""
    is_default: bool = False


@dataclass(frozen=True, slots=True)
class ExchangeRateEntry:
    """
    Directed exchange rate: 1 unit of ``from`` = ``rate`` units of ``to``.

    Absence of an entry means "rate unknown", never zero.
    """

    from_currency_id: str
    to_currency_id: str
    rate: Decimal

    def __post_init__(self) -> None:
        if not isinstance(self.rate, Decimal):
            try:
                object.__setattr__(self, "rate", Decimal(str(self.rate)))
            except InvalidOperation as e:
                raise InvalidExchangeRateError(
                    str(self.rate), "rate is not numeric"
                ) from e
        if not self.rate.is_finite() or self.rate <= 0:
            raise InvalidExchangeRateError(
                str(self.rate), "rate must be positive"
            )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ExchangeRateEntry:
        """Build from a raw rate-table row with string or numeric fields."""
        return cls(
            from_currency_id=str(data["from_currency_id"]),
            to_currency_id=str(data["to_currency_id"]),
            rate=data["rate"],
        )


@dataclass(frozen=True, slots=True)
class AdjustmentReason:
    """
    Reason reference data attached to adjustments.

    ``tracking_account_id`` is the inventory account the movement posts to;
    ``corresponding_account_id`` is its offset.
    """

    id: str
    name: str
    adjustment_type: AdjustmentType
    tracking_account_id: str | None = None
    corresponding_account_id: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.adjustment_type, AdjustmentType):
            object.__setattr__(
                self, "adjustment_type", AdjustmentType(self.adjustment_type)
            )
