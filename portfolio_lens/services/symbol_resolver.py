"""Map raw statement tickers to identifiers the market-data provider accepts."""

from __future__ import annotations

import logging
from typing import Any

from portfolio_lens.cache.ttl_cache import TTLCache
from portfolio_lens.providers.base import MarketDataProvider
from portfolio_lens.providers.models import UNKNOWN, AssetMetadata, SymbolResolutionResult
from portfolio_lens.services.base import ServiceContext, run_with_cache
from portfolio_lens.services.fallback_manager import CandidateAttempt, FallbackManager
from portfolio_lens.services.provider_status import ProviderStatus

LOGGER = logging.getLogger(__name__)


def echoes_candidate(metadata: AssetMetadata, attempt: CandidateAttempt[AssetMetadata]) -> bool:
    """A search only confirms a candidate when the provider returns it verbatim."""
    return metadata.symbol.strip().upper() == attempt.symbol.strip().upper()


class SymbolResolver:
    """Candidate generation plus cached resolution against search providers.

    Results, including the unconfirmed fallback, are cached under the original
    symbol so a batch never searches the same ticker twice within the TTL.
    """

    def __init__(
        self,
        ctx: ServiceContext,
        fallback: FallbackManager | None = None,
        providers: list[MarketDataProvider] | None = None,
        cache: TTLCache | None = None,
    ) -> None:
        self._ctx = ctx
        self._reference = ctx.reference
        self._providers = providers if providers is not None else ctx.market_providers("yahoo")
        self._fallback = fallback or FallbackManager(ctx, ProviderStatus())
        self._cache = (
            cache if cache is not None else TTLCache(default_ttl_seconds=ctx.settings.symbol_resolution_ttl_seconds)
        )

    def get_candidates(self, symbol: str) -> list[str]:
        original = symbol.strip().upper()
        if not original:
            return []
        candidates = [original]
        if "." not in original and self._reference.is_regional_fund(original):
            candidates.extend(f"{original}{suffix}" for suffix in self._reference.regional_suffixes)
        suffix = self._reference.single_market_symbols.get(original)
        if suffix and "." not in original:
            candidates.append(f"{original}{suffix}")
        return list(dict.fromkeys(candidates))

    def get_cached(self, symbol: str) -> SymbolResolutionResult | None:
        cached = self._cache.get(symbol)
        return cached if isinstance(cached, SymbolResolutionResult) else None

    async def resolve_symbol(self, symbol: str) -> SymbolResolutionResult:
        original = symbol.strip().upper()
        cached = self.get_cached(original)
        if cached is not None:
            return cached

        attempts = [
            CandidateAttempt(provider.name, candidate, self._search_call(provider, candidate))
            for candidate in self.get_candidates(original)
            for provider in self._providers
        ]
        result = await self._fallback.first_accepted("resolve_symbol", original, attempts, accept=echoes_candidate)
        metadata = result.data
        market = self._reference.market_for_symbol(result.symbol or original)
        if metadata is not None and result.symbol:
            resolution = SymbolResolutionResult(
                original_symbol=original,
                resolved_symbol=result.symbol,
                exchange=metadata.exchange or (market.exchange if market else UNKNOWN),
                type=metadata.type,
                currency=metadata.currency or (market.currency if market else None),
                name=metadata.name,
                timestamp=self._cache.now(),
            )
        else:
            LOGGER.info("symbol unresolved, caching fallback: symbol=%s candidates=%s", original, len(attempts))
            resolution = SymbolResolutionResult(
                original_symbol=original,
                resolved_symbol=original,
                exchange=UNKNOWN,
                type="EQUITY",
                currency=market.currency if market else None,
                name=original,
                timestamp=self._cache.now(),
            )
        self._cache.set(original, resolution)
        return resolution

    def _search_call(self, provider: MarketDataProvider, candidate: str):
        def _call() -> AssetMetadata | None:
            return run_with_cache(
                self._ctx,
                f"{provider.name}:search:{candidate}",
                lambda: provider.search(candidate),
                ttl_seconds=self._ctx.settings.cache_ttl_metadata_seconds,
            )

        return _call

    def clear_cache(self) -> None:
        self._cache.clear()

    def cache_info(self) -> dict[str, Any]:
        return {"entries": len(self._cache), "ttl_seconds": self._cache.default_ttl_seconds}
