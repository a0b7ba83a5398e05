"""Typed portfolio models."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from portfolio_lens.providers.models import ETFComposition

UNKNOWN = "Unknown"


@dataclass
class Position:
    symbol: str
    name: str
    quantity: float
    price: float
    currency: str
    total_value_home: float
    category: str = UNKNOWN
    unit_cost: float = 0.0
    position_percent: float = 0.0
    daily_change_percent: float = 0.0
    domicile: str | None = None
    isin: str | None = None
    sector: str | None = None
    geography: str | None = None
    current_price: float | None = None
    unrealized_gain_loss: float | None = None
    unrealized_gain_loss_percent: float | None = None
    gain_loss_home: float | None = None
    tax_optimized: bool | None = None
    withholding_tax: float | None = None
    resolved_symbol: str | None = None
    composition: ETFComposition | None = None


@dataclass
class AccountOverview:
    total_value: float
    cash_balance: float = 0.0
    securities_value: float = 0.0


@dataclass
class AllocationBucket:
    name: str
    value: float
    percentage: float
    portfolio_percentage: float | None = None


@dataclass
class AllocationTables:
    asset_allocation: list[AllocationBucket] = field(default_factory=list)
    currency_allocation: list[AllocationBucket] = field(default_factory=list)
    true_country_allocation: list[AllocationBucket] = field(default_factory=list)
    true_sector_allocation: list[AllocationBucket] = field(default_factory=list)
    domicile_allocation: list[AllocationBucket] = field(default_factory=list)


@dataclass
class PortfolioData:
    account_overview: AccountOverview
    positions: list[Position]
    asset_allocation: list[AllocationBucket] = field(default_factory=list)
    currency_allocation: list[AllocationBucket] = field(default_factory=list)
    true_country_allocation: list[AllocationBucket] = field(default_factory=list)
    true_sector_allocation: list[AllocationBucket] = field(default_factory=list)
    domicile_allocation: list[AllocationBucket] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
