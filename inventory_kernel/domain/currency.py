"""Currency -- display precision and presentation-boundary rounding."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import ClassVar


@dataclass(frozen=True)
class CurrencyPrecision:
    """Decimal places used when displaying amounts in a currency."""

    code: str
    decimal_places: int


class CurrencyPrecisionTable:
    """
    Display precision for currencies whose minor unit is not two places.

    Currencies are referenced by opaque ids in documents; the code is only
    known when the caller resolves the currency directory. Unknown or absent
    codes fall back to DEFAULT_DECIMAL_PLACES.
    """

    DEFAULT_DECIMAL_PLACES: ClassVar[int] = 2

    _NON_STANDARD: ClassVar[dict[str, int]] = {
        # Zero decimal currencies
        "BIF": 0,
        "CLP": 0,
        "DJF": 0,
        "GNF": 0,
        "ISK": 0,
        "JPY": 0,
        "KMF": 0,
        "KRW": 0,
        "PYG": 0,
        "RWF": 0,
        "UGX": 0,
        "VND": 0,
        "VUV": 0,
        "XAF": 0,
        "XOF": 0,
        "XPF": 0,
        # Three decimal currencies
        "BHD": 3,
        "IQD": 3,
        "JOD": 3,
        "KWD": 3,
        "LYD": 3,
        "OMR": 3,
        "TND": 3,
        # Four decimal currencies (special)
        "CLF": 4,
    }

    @classmethod
    def get(cls, code: str | None) -> CurrencyPrecision:
        normalized = code.upper().strip() if code else ""
        places = cls._NON_STANDARD.get(normalized, cls.DEFAULT_DECIMAL_PLACES)
        return CurrencyPrecision(normalized, places)

    @classmethod
    def get_decimal_places(cls, code: str | None) -> int:
        return cls.get(code).decimal_places


def round_for_display(
    amount: Decimal,
    currency_code: str | None = None,
    decimal_places: int | None = None,
) -> Decimal:
    """
    Round an amount for presentation.

    Internal accumulation keeps full precision; this is applied only at the
    presentation boundary. An explicit ``decimal_places`` wins over the
    currency table.
    """
    places = (
        decimal_places
        if decimal_places is not None
        else CurrencyPrecisionTable.get_decimal_places(currency_code)
    )
    quantum = Decimal(1).scaleb(-places)
    return amount.quantize(quantum, rounding=ROUND_HALF_UP)
