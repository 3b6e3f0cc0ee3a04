from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Mapping, Protocol

from orderdesk.core.config import get_settings
from orderdesk.core.errors import CurrencyConversionError
from orderdesk.core.money import d


class CurrencyConverter(Protocol):
    def get_rate(self, base: str, quote: str) -> Decimal:
        """Units of `quote` per one unit of `base`."""
        ...


@dataclass
class MidRateTable:
    """
    Mid rates held in memory, keyed base -> quote.
    Example:
      {"CNY": {"USD": "0.14"}, "USD": {"LYD": "4.85"}}
    A missing pair falls back to the reciprocal of the reverse pair.
    """

    table: dict[str, dict[str, Decimal]] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Mapping[str, object]]) -> "MidRateTable":
        table: dict[str, dict[str, Decimal]] = {}
        for base, quotes in raw.items():
            row = table.setdefault(base.upper(), {})
            for quote, rate in quotes.items():
                value = d(rate, field=f"fx rate {base}->{quote}")
                if value <= 0:
                    raise CurrencyConversionError(f"fx rate {base}->{quote} must be positive")
                row[quote.upper()] = value
        return cls(table=table)

    @classmethod
    def from_settings(cls) -> "MidRateTable":
        return cls.from_mapping(get_settings().fx_mid_rates)

    def get_rate(self, base: str, quote: str) -> Decimal:
        base = base.upper()
        quote = quote.upper()
        if base == quote:
            return Decimal("1")
        direct = self.table.get(base, {}).get(quote)
        if direct is not None:
            return direct
        reverse = self.table.get(quote, {}).get(base)
        if reverse is not None:
            return Decimal("1") / reverse
        raise CurrencyConversionError(f"no mid rate configured for {base}->{quote}")
