"""Shared service orchestration helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Generic, TypeVar

from portfolio_lens.cache.ttl_cache import TTLCache
from portfolio_lens.config.reference import ReferenceData, get_reference_data
from portfolio_lens.config.settings import Settings
from portfolio_lens.providers.base import MarketDataProvider
from portfolio_lens.providers.http import ProviderError
from portfolio_lens.runtime.monitoring import PipelineMetrics
from portfolio_lens.utils.rate_limit import RateLimiterRegistry

T = TypeVar("T")


@dataclass
class ErrorEnvelope:
    code: str
    message: str
    retriable: bool = True
    provider: str | None = None


@dataclass
class ServiceResult(Generic[T]):
    data: T | None
    source: str | None = None
    symbol: str | None = None
    warning: str | None = None
    error: ErrorEnvelope | None = None
    fetched_at: float | None = None


@dataclass
class ServiceContext:
    providers: dict[str, object]
    cache: TTLCache
    rate_limiter: RateLimiterRegistry
    settings: Settings = field(default_factory=Settings)
    reference: ReferenceData = field(default_factory=get_reference_data)
    metrics: PipelineMetrics = field(default_factory=PipelineMetrics)

    def get_provider(self, name: str) -> object | None:
        return self.providers.get(name)

    def market_providers(self, *names: str) -> list[MarketDataProvider]:
        """Configured providers in the requested order, skipping unconfigured ones."""
        selected: list[MarketDataProvider] = []
        for name in names or tuple(self.providers):
            provider = self.providers.get(name)
            if isinstance(provider, MarketDataProvider):
                selected.append(provider)
        return selected


def envelope_from_provider_error(error: ProviderError) -> ErrorEnvelope:
    retriable = error.code in {"RATE_LIMIT", "NETWORK", "UPSTREAM", "BAD_RESPONSE"}
    return ErrorEnvelope(code=error.code, message=error.message, retriable=retriable, provider=error.provider)


def run_with_cache(
    ctx: ServiceContext,
    cache_key: str,
    call: Callable[[], T | None],
    ttl_seconds: float | None = None,
) -> T | None:
    """Serve ``call`` from the shared response cache; only hits are stored."""
    cached = ctx.cache.get(cache_key)
    if cached is not None:
        return cached  # type: ignore[return-value]
    value = call()
    if value is not None:
        ctx.cache.set(cache_key, value, ttl_seconds=ttl_seconds or ctx.settings.cache_ttl_seconds)
    return value
