"""Normalized data models shared across providers and the enrichment pipeline."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Literal

ProviderName = Literal["yahoo", "reference"]
UNKNOWN = "Unknown"


@dataclass
class NormalizedQuote:
    symbol: str
    price: float
    currency: str | None = None
    change: float = 0.0
    change_percent: float = 0.0
    timestamp: int | None = None
    source: ProviderName = "yahoo"


@dataclass
class AssetMetadata:
    """Instrument identity and classification as reported by a provider."""

    symbol: str
    name: str | None = None
    sector: str = UNKNOWN
    country: str = UNKNOWN
    currency: str | None = None
    type: str = "EQUITY"
    exchange: str | None = None
    source: ProviderName = "yahoo"

    def is_informative(self) -> bool:
        """Quality gate: a response only counts when it classifies the asset."""
        return _is_known(self.sector) and _is_known(self.country)


@dataclass(frozen=True)
class WeightedKey:
    key: str
    weight: float


@dataclass
class ETFComposition:
    """Look-through breakdown of a fund, weights in percent of net assets."""

    symbol: str
    currency: list[WeightedKey] = field(default_factory=list)
    country: list[WeightedKey] = field(default_factory=list)
    sector: list[WeightedKey] = field(default_factory=list)
    holdings: list[WeightedKey] = field(default_factory=list)
    domicile: str = UNKNOWN
    withholding_tax: float | None = None
    last_updated: float = field(default_factory=time.time)
    source: ProviderName = "yahoo"

    def has_breakdown(self) -> bool:
        return bool(self.currency or self.country or self.sector)

    def breakdown(self, dimension: str) -> list[WeightedKey]:
        if dimension not in {"currency", "country", "sector"}:
            raise ValueError(f"Unknown composition dimension: {dimension}")
        return [item for item in getattr(self, dimension) if item.weight > 0]

    def largest(self, dimension: str) -> str | None:
        items = self.breakdown(dimension)
        if not items:
            return None
        return max(items, key=lambda item: item.weight).key


@dataclass
class SymbolResolutionResult:
    original_symbol: str
    resolved_symbol: str
    exchange: str
    type: str
    currency: str | None
    name: str | None
    timestamp: float


def _is_known(value: str | None) -> bool:
    return bool(value) and value.strip().lower() not in {"unknown", "n/a", "none", ""}
