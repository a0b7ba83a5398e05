"""Price, metadata and composition enrichment with per-stage fallbacks."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import replace
from typing import Callable, TypeVar

from portfolio_lens.cache.ttl_cache import TTLCache
from portfolio_lens.portfolio.models import UNKNOWN, Position
from portfolio_lens.providers.base import MarketDataProvider
from portfolio_lens.providers.models import AssetMetadata, ETFComposition, NormalizedQuote
from portfolio_lens.runtime.monitoring import log_stage_event
from portfolio_lens.services.base import ServiceContext, run_with_cache
from portfolio_lens.services.fallback_manager import CandidateAttempt, FallbackManager
from portfolio_lens.services.provider_status import ProviderStatus
from portfolio_lens.services.symbol_resolver import SymbolResolver

T = TypeVar("T")
LOGGER = logging.getLogger(__name__)


def _missing(value: str | None) -> bool:
    return not value or value.strip().lower() == UNKNOWN.lower()


class EnrichmentOrchestrator:
    """Enriches positions without ever raising.

    Every stage walks the symbol's candidates through the configured providers
    and stops at the first usable answer. Live providers are exhausted before
    the static reference provider is consulted.
    """

    def __init__(
        self,
        ctx: ServiceContext,
        resolver: SymbolResolver | None = None,
        fallback: FallbackManager | None = None,
        price_providers: list[MarketDataProvider] | None = None,
        metadata_providers: list[MarketDataProvider] | None = None,
        composition_providers: list[MarketDataProvider] | None = None,
    ) -> None:
        self._ctx = ctx
        self._settings = ctx.settings
        self._reference = ctx.reference
        self._fallback = fallback or FallbackManager(ctx, ProviderStatus())
        self.resolver = resolver or SymbolResolver(ctx, fallback=self._fallback)
        providers = ctx.market_providers("yahoo", "reference")
        self._price_providers = providers if price_providers is None else price_providers
        self._metadata_providers = providers if metadata_providers is None else metadata_providers
        self._composition_providers = providers if composition_providers is None else composition_providers
        self._compositions = TTLCache(default_ttl_seconds=self._settings.cache_ttl_composition_seconds)

    @property
    def provider_status(self) -> ProviderStatus:
        return self._fallback.provider_status

    async def enrich_all(self, positions: list[Position]) -> list[Position]:
        """Enrich concurrently under a semaphore; output order matches input."""
        semaphore = asyncio.Semaphore(max(1, self._settings.enrichment_concurrency))

        async def _bounded(position: Position) -> Position:
            async with semaphore:
                try:
                    return await self.enrich(position)
                except Exception:
                    LOGGER.exception("enrichment pipeline failed: symbol=%s", position.symbol)
                    return replace(
                        position,
                        sector=position.sector or UNKNOWN,
                        geography=position.geography or UNKNOWN,
                    )

        return list(await asyncio.gather(*(_bounded(position) for position in positions)))

    async def enrich(self, position: Position) -> Position:
        started = time.perf_counter()
        enriched = replace(position)
        candidates = self.candidates_for(position.symbol)
        await self._apply_price(enriched, candidates)
        await self._apply_metadata(enriched, candidates)
        if self._reference.is_fund_category(enriched.category):
            await self._apply_composition(enriched, candidates)
        self._apply_tax(enriched)
        self._ctx.metrics.record_position((time.perf_counter() - started) * 1000.0)
        return enriched

    def candidates_for(self, symbol: str) -> list[str]:
        candidates = self.resolver.get_candidates(symbol)
        cached = self.resolver.get_cached(symbol)
        if cached is not None:
            candidates = [cached.resolved_symbol, *(item for item in candidates if item != cached.resolved_symbol)]
        return candidates

    def _attempts(
        self,
        operation: str,
        providers: list[MarketDataProvider],
        candidates: list[str],
        fetch: Callable[[MarketDataProvider, str], T | None],
        ttl_seconds: float,
    ) -> list[CandidateAttempt[T]]:
        live = [provider for provider in providers if provider.name != "reference"]
        static = [provider for provider in providers if provider.name == "reference"]
        attempts: list[CandidateAttempt[T]] = []
        for group in (live, static):
            for candidate in candidates:
                for provider in group:
                    attempts.append(
                        CandidateAttempt(
                            provider.name,
                            candidate,
                            self._cached_call(operation, provider, candidate, fetch, ttl_seconds),
                        )
                    )
        return attempts

    def _cached_call(
        self,
        operation: str,
        provider: MarketDataProvider,
        candidate: str,
        fetch: Callable[[MarketDataProvider, str], T | None],
        ttl_seconds: float,
    ) -> Callable[[], T | None]:
        def _call() -> T | None:
            return run_with_cache(
                self._ctx,
                f"{provider.name}:{operation}:{candidate}",
                lambda: fetch(provider, candidate),
                ttl_seconds=ttl_seconds,
            )

        return _call

    async def _apply_price(self, position: Position, candidates: list[str]) -> None:
        attempts = self._attempts(
            "quote",
            self._price_providers,
            candidates,
            lambda provider, symbol: provider.get_quote(symbol),
            self._settings.cache_ttl_quote_seconds,
        )
        result = await self._fallback.first_accepted(
            "quote", position.symbol, attempts, accept=lambda quote, _: quote.price > 0
        )
        quote: NormalizedQuote | None = result.data
        if quote is None:
            position.current_price = position.price
            self._record("price", position.symbol, "statement")
            return
        position.current_price = quote.price
        position.resolved_symbol = result.symbol
        if not quote.currency or quote.currency.upper() == position.currency.upper():
            position.unrealized_gain_loss = (quote.price - position.unit_cost) * position.quantity
            if position.unit_cost > 0:
                position.unrealized_gain_loss_percent = (quote.price - position.unit_cost) / position.unit_cost * 100.0
        self._record("price", position.symbol, "live", result.source, result.symbol)

    async def _apply_metadata(self, position: Position, candidates: list[str]) -> None:
        if not _missing(position.sector) and not _missing(position.geography) and position.name != position.symbol:
            self._record("metadata", position.symbol, "statement")
            return
        attempts = self._attempts(
            "search",
            self._metadata_providers,
            candidates,
            lambda provider, symbol: provider.search(symbol),
            self._settings.cache_ttl_metadata_seconds,
        )
        result = await self._fallback.first_accepted(
            "metadata", position.symbol, attempts, accept=lambda metadata, _: metadata.is_informative()
        )
        metadata: AssetMetadata | None = result.data
        if metadata is None:
            position.sector = position.sector if not _missing(position.sector) else UNKNOWN
            position.geography = position.geography if not _missing(position.geography) else UNKNOWN
            self._record("metadata", position.symbol, "unknown")
            return
        if _missing(position.sector):
            position.sector = metadata.sector
        if _missing(position.geography):
            position.geography = metadata.country
        if metadata.name and position.name == position.symbol:
            position.name = metadata.name
        if position.domicile is None and not self._reference.is_fund_category(position.category):
            position.domicile = self._reference.country_code(metadata.country)
        self._record("metadata", position.symbol, "provider", result.source, result.symbol)

    async def _apply_composition(self, position: Position, candidates: list[str]) -> None:
        entry = self._compositions.get_entry(position.symbol)
        if entry is not None:
            composition = entry.data if isinstance(entry.data, ETFComposition) else None
        else:
            attempts = self._attempts(
                "composition",
                self._composition_providers,
                candidates,
                lambda provider, symbol: provider.get_composition(symbol),
                self._settings.cache_ttl_composition_seconds,
            )
            result = await self._fallback.first_accepted(
                "composition", position.symbol, attempts, accept=lambda composition, _: composition.has_breakdown()
            )
            composition = result.data
            self._compositions.set(position.symbol, composition)
        if composition is None:
            self._record("composition", position.symbol, "none")
            return
        position.composition = composition
        if _missing(position.sector):
            position.sector = composition.largest("sector") or UNKNOWN
        if _missing(position.geography):
            position.geography = composition.largest("country") or UNKNOWN
        if position.domicile is None and not _missing(composition.domicile):
            position.domicile = composition.domicile
        if composition.withholding_tax is not None:
            position.withholding_tax = composition.withholding_tax
        self._record("composition", position.symbol, "provider", composition.source)

    def _apply_tax(self, position: Position) -> None:
        info = self._reference.domicile(position.domicile)
        if info is None:
            return
        if position.tax_optimized is None:
            position.tax_optimized = info.tax_optimized
        if position.withholding_tax is None:
            position.withholding_tax = info.withholding_tax

    def _record(
        self,
        stage: str,
        symbol: str,
        outcome: str,
        source: str | None = None,
        resolved_symbol: str | None = None,
    ) -> None:
        self._ctx.metrics.record_stage(stage, outcome)
        log_stage_event(stage=stage, symbol=symbol, outcome=outcome, source=source, resolved_symbol=resolved_symbol)
