"""Yahoo Finance adapter with normalized outputs."""

from __future__ import annotations

import logging
import time
from typing import Any
from urllib.parse import quote_plus

import yfinance as yf

from portfolio_lens.config.reference import ReferenceData, get_reference_data
from portfolio_lens.providers.http import ProviderError, fetch_json
from portfolio_lens.providers.models import (
    UNKNOWN,
    AssetMetadata,
    ETFComposition,
    NormalizedQuote,
    WeightedKey,
)

LOGGER = logging.getLogger(__name__)
CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}"
SEARCH_URL = "https://query1.finance.yahoo.com/v1/finance/search"
FUND_QUOTE_TYPES = {"ETF", "MUTUALFUND"}


class YahooFinanceClient:
    """Quotes and search over the public JSON endpoints; profile and fund
    holdings through ``yfinance``, which manages Yahoo's session cookies."""

    name = "yahoo"

    def __init__(self, timeout_seconds: float = 15.0, reference: ReferenceData | None = None) -> None:
        self.timeout_seconds = timeout_seconds
        self.reference = reference or get_reference_data()

    def get_quote(self, symbol: str) -> NormalizedQuote | None:
        url = CHART_URL.format(symbol=quote_plus(symbol))
        data = fetch_json(
            url,
            provider="yahoo",
            timeout_seconds=self.timeout_seconds,
            params={"range": "1d", "interval": "1d"},
        )
        results = ((data or {}).get("chart") or {}).get("result") or []
        if not results:
            return None
        meta = (results[0] or {}).get("meta") or {}
        price = meta.get("regularMarketPrice")
        if not isinstance(price, (int, float)) or price <= 0:
            return None
        previous_close = meta.get("chartPreviousClose") or meta.get("previousClose")
        change = float(price) - float(previous_close) if isinstance(previous_close, (int, float)) else 0.0
        change_percent = (change / float(previous_close) * 100.0) if previous_close else 0.0
        market_time = meta.get("regularMarketTime")
        return NormalizedQuote(
            symbol=str(meta.get("symbol") or symbol).upper(),
            price=float(price),
            currency=(meta.get("currency") or None),
            change=change,
            change_percent=change_percent,
            timestamp=int(market_time) if isinstance(market_time, int) else None,
            source="yahoo",
        )

    def search(self, symbol: str) -> AssetMetadata | None:
        data = fetch_json(
            SEARCH_URL,
            provider="yahoo",
            timeout_seconds=self.timeout_seconds,
            params={"q": symbol, "quotesCount": 6, "newsCount": 0},
        )
        quotes = [item for item in (data or {}).get("quotes") or [] if isinstance(item, dict) and item.get("symbol")]
        if not quotes:
            return None
        target = symbol.strip().upper()
        match = next((item for item in quotes if str(item["symbol"]).upper() == target), quotes[0])
        metadata = AssetMetadata(
            symbol=str(match["symbol"]).upper(),
            name=match.get("longname") or match.get("shortname"),
            sector=self.reference.normalize_sector(match.get("sectorDisp") or match.get("sector")),
            country=UNKNOWN,
            type=str(match.get("quoteType") or "EQUITY").upper(),
            exchange=match.get("exchDisp") or match.get("exchange"),
            source="yahoo",
        )
        market = self.reference.market_for_symbol(metadata.symbol)
        if market:
            metadata.currency = market.currency
        if metadata.symbol == target and metadata.type not in FUND_QUOTE_TYPES:
            self._apply_profile(metadata)
        return metadata

    def _apply_profile(self, metadata: AssetMetadata) -> None:
        try:
            info = yf.Ticker(metadata.symbol).get_info() or {}
        except Exception as error:
            LOGGER.warning("yahoo profile lookup failed: symbol=%s error=%s", metadata.symbol, error)
            return
        if info.get("sector"):
            metadata.sector = self.reference.normalize_sector(info["sector"])
        if info.get("country"):
            metadata.country = self.reference.normalize_country(info["country"])
        if info.get("currency"):
            metadata.currency = str(info["currency"]).upper()
        metadata.name = metadata.name or info.get("longName") or info.get("shortName")

    def get_composition(self, symbol: str) -> ETFComposition | None:
        try:
            funds = yf.Ticker(symbol).funds_data
            sector_weightings = funds.sector_weightings or {}
            top_holdings = funds.top_holdings
        except Exception as error:
            raise ProviderError("yahoo", "UPSTREAM", f"Fund data unavailable for {symbol}.") from error

        sectors = self._weights_from_fractions(
            {self.reference.normalize_sector(str(key).replace("_", " ")): value for key, value in sector_weightings.items()}
        )
        holdings = self._holdings(top_holdings)
        if not sectors and not holdings:
            return None
        return ETFComposition(
            symbol=symbol.upper(),
            sector=sectors,
            holdings=holdings,
            last_updated=time.time(),
            source="yahoo",
        )

    @staticmethod
    def _weights_from_fractions(raw: dict[str, Any]) -> list[WeightedKey]:
        weights: list[WeightedKey] = []
        for key, value in raw.items():
            if not isinstance(value, (int, float)) or value <= 0:
                continue
            weights.append(WeightedKey(key=key, weight=round(float(value) * 100.0, 4)))
        return sorted(weights, key=lambda item: item.weight, reverse=True)

    @staticmethod
    def _holdings(frame: Any) -> list[WeightedKey]:
        if frame is None or getattr(frame, "empty", True):
            return []
        holdings: list[WeightedKey] = []
        for holding_symbol, row in frame.iterrows():
            weight = row.get("Holding Percent")
            if not isinstance(weight, (int, float)) or weight <= 0:
                continue
            label = str(row.get("Name") or holding_symbol)
            holdings.append(WeightedKey(key=label, weight=round(float(weight) * 100.0, 4)))
        return holdings
