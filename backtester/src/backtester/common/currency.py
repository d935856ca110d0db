"""Currencies and tradable assets."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Currency:
    """A currency identified by its code, e.g. ``"USD"``."""

    code: str

    @classmethod
    def of(cls, code: str) -> "Currency":
        return cls(code.strip().upper())

    def __str__(self) -> str:
        return self.code


USD = Currency("USD")
EUR = Currency("EUR")
GBP = Currency("GBP")
JPY = Currency("JPY")


class AssetType(enum.Enum):
    STOCK = "stock"
    FOREX = "forex"
    CRYPTO = "crypto"
    CFD = "cfd"


@dataclass(frozen=True)
class Asset:
    """An instrument that can appear in price actions.

    Assets are used as dictionary keys throughout the package, so they
    are immutable and compare by value.  For ``FOREX`` assets the
    symbol is expected to be ``<BASE>_<QUOTE>`` (for example
    ``"EUR_USD"``) and ``currency`` is the quote currency.
    """

    symbol: str
    asset_type: AssetType = AssetType.STOCK
    currency: Currency = field(default=USD)

    @classmethod
    def forex(cls, symbol: str) -> "Asset":
        """Create a FOREX asset, deriving the quote currency from the symbol."""
        parts = symbol.replace("/", "_").split("_")
        if len(parts) != 2:
            raise ValueError(f"FOREX symbol must look like EUR_USD, got {symbol!r}")
        return cls(symbol, AssetType.FOREX, Currency.of(parts[1]))

    @property
    def currency_pair(self) -> tuple[Currency, Currency]:
        """Return ``(base, quote)`` for a FOREX asset."""
        if self.asset_type is not AssetType.FOREX:
            raise ValueError(f"{self.symbol} is not a FOREX asset")
        base, _ = self.symbol.replace("/", "_").split("_")
        return Currency.of(base), self.currency

    def __str__(self) -> str:
        return self.symbol
