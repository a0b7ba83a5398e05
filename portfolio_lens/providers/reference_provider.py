"""Static fallback provider backed by the bundled reference tables."""

from __future__ import annotations

from portfolio_lens.config.reference import ReferenceData, get_reference_data
from portfolio_lens.providers.models import UNKNOWN, AssetMetadata, ETFComposition, NormalizedQuote, WeightedKey


def base_symbol(symbol: str) -> str:
    clean = symbol.strip().upper()
    return clean.split(".", 1)[0] if "." in clean else clean


class ReferenceDataProvider:
    """Last-resort classification for well-known symbols.

    Never supplies prices: a static price would be stale by construction.
    """

    name = "reference"

    def __init__(self, reference: ReferenceData | None = None) -> None:
        self.reference = reference or get_reference_data()

    def get_quote(self, symbol: str) -> NormalizedQuote | None:
        return None

    def search(self, symbol: str) -> AssetMetadata | None:
        clean = symbol.strip().upper()
        profile = self.reference.symbol_profile(clean) or self.reference.symbol_profile(base_symbol(clean))
        if profile is None:
            return None
        sector, country = profile
        market = self.reference.market_for_symbol(clean)
        return AssetMetadata(
            symbol=clean,
            sector=self.reference.normalize_sector(sector),
            country=self.reference.normalize_country(country),
            currency=market.currency if market else None,
            type="CRYPTOCURRENCY" if sector == "Cryptocurrency" else "EQUITY",
            exchange=market.exchange if market else None,
            source="reference",
        )

    def get_composition(self, symbol: str) -> ETFComposition | None:
        clean = symbol.strip().upper()
        raw = self.reference.fund_composition(clean) or self.reference.fund_composition(base_symbol(clean))
        if raw is None:
            return None
        domicile = raw.get("domicile") or UNKNOWN
        domicile_info = self.reference.domicile(domicile)
        return ETFComposition(
            symbol=clean,
            currency=[
                WeightedKey(key.upper(), float(weight)) for key, weight in raw.get("currency", {}).items()
            ],
            country=[
                WeightedKey(self.reference.normalize_country(key), float(weight))
                for key, weight in raw.get("country", {}).items()
            ],
            sector=[
                WeightedKey(self.reference.normalize_sector(key), float(weight))
                for key, weight in raw.get("sector", {}).items()
            ],
            domicile=domicile,
            withholding_tax=domicile_info.withholding_tax if domicile_info else None,
            source="reference",
        )
