"""Collaborator protocol implemented by market-data providers."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from portfolio_lens.providers.models import AssetMetadata, ETFComposition, NormalizedQuote


@runtime_checkable
class MarketDataProvider(Protocol):
    """Blocking provider interface.

    Implementations return ``None`` when the instrument is unknown to them and
    raise ``ProviderError`` for transport or upstream failures.
    """

    name: str

    def get_quote(self, symbol: str) -> NormalizedQuote | None: ...

    def search(self, symbol: str) -> AssetMetadata | None: ...

    def get_composition(self, symbol: str) -> ETFComposition | None: ...
