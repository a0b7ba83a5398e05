"""Immutable static lookup tables used by parsing, resolution and allocation."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from portfolio_lens.utils.text import normalize_label

LOGGER = logging.getLogger(__name__)
REFERENCE_DATA_PATH = Path(__file__).with_name("reference_data.json")
UNKNOWN = "Unknown"


def _freeze(value: Any) -> Any:
    if isinstance(value, dict):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(item) for item in value)
    return value


@dataclass(frozen=True)
class MarketInfo:
    suffix: str
    currency: str
    exchange: str
    country: str


@dataclass(frozen=True)
class DomicileInfo:
    code: str
    name: str
    withholding_tax: float | None = None
    tax_optimized: bool | None = None


class ReferenceData:
    """Read-only view over ``reference_data.json``."""

    def __init__(self, raw: Mapping[str, Any]) -> None:
        self._raw = _freeze(dict(raw))
        self.currency_rates_chf: Mapping[str, float] = self._raw["currency_rates_chf"]
        self.regional_suffixes: tuple[str, ...] = self._raw["regional_suffixes"]
        self.regional_fund_patterns: tuple[re.Pattern[str], ...] = tuple(
            re.compile(pattern) for pattern in self._raw["regional_fund_patterns"]
        )
        self.single_market_symbols: Mapping[str, str] = self._raw["single_market_symbols"]
        self.fund_categories: frozenset[str] = frozenset(self._raw["fund_categories"])
        self._category_aliases = MappingProxyType(
            {normalize_label(key): value for key, value in self._raw["category_aliases"].items()}
        )

    def currency_rate(self, currency: str | None, home_currency: str = "CHF") -> float:
        """Multiplier converting an amount in ``currency`` into ``home_currency``."""
        code = (currency or home_currency).strip().upper()
        home = home_currency.strip().upper()
        if code == home:
            return 1.0
        rates = self.currency_rates_chf
        if code not in rates or home not in rates:
            LOGGER.debug("no static rate for currency pair: currency=%s home=%s", code, home)
            return 1.0
        return rates[code] / rates[home]

    def market_for_symbol(self, symbol: str) -> MarketInfo | None:
        clean = symbol.strip().upper()
        markets = self._raw["suffix_markets"]
        if "." in clean:
            suffix = clean[clean.rindex(".") :]
            item = markets.get(suffix)
            if item:
                return MarketInfo(suffix=suffix, **item)
        suffix = self.single_market_symbols.get(clean)
        if suffix and suffix in markets:
            return MarketInfo(suffix=suffix, **markets[suffix])
        return None

    def is_regional_fund(self, symbol: str) -> bool:
        return any(pattern.match(symbol) for pattern in self.regional_fund_patterns)

    def canonical_category(self, label: str | None) -> str | None:
        normalized = normalize_label(label)
        if not normalized:
            return None
        return self._category_aliases.get(normalized)

    def is_fund_category(self, category: str | None) -> bool:
        return (category or "") in self.fund_categories

    def normalize_sector(self, sector: str | None) -> str:
        text = (sector or "").strip()
        if not text:
            return UNKNOWN
        return self._raw["sector_aliases"].get(text.lower(), text)

    def normalize_country(self, country: str | None) -> str:
        text = (country or "").strip()
        if not text:
            return UNKNOWN
        return self._raw["country_aliases"].get(text.lower(), text)

    def country_code(self, country: str | None) -> str | None:
        return self._raw["country_codes"].get(self.normalize_country(country))

    def domicile(self, code: str | None) -> DomicileInfo | None:
        clean = (code or "").strip().upper()
        if not clean or clean == UNKNOWN.upper():
            return None
        item = self._raw["domiciles"].get(clean)
        if item is None:
            return DomicileInfo(code=clean, name=f"{clean} ({clean})")
        return DomicileInfo(
            code=clean,
            name=item["name"],
            withholding_tax=item.get("withholding_tax"),
            tax_optimized=item.get("tax_optimized"),
        )

    def symbol_profile(self, symbol: str) -> tuple[str, str] | None:
        profile = self._raw["symbol_profiles"].get(symbol.strip().upper())
        return (profile[0], profile[1]) if profile else None

    def fund_composition(self, symbol: str) -> Mapping[str, Any] | None:
        return self._raw["fund_compositions"].get(symbol.strip().upper())


@lru_cache(maxsize=1)
def get_reference_data() -> ReferenceData:
    """Load the bundled tables once per process."""
    with REFERENCE_DATA_PATH.open("r", encoding="utf-8") as handle:
        return ReferenceData(json.load(handle))
