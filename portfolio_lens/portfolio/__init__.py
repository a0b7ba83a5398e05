"""Portfolio domain models and allocation tables."""

from portfolio_lens.portfolio.allocation import compute_allocations
from portfolio_lens.portfolio.models import (
    AccountOverview,
    AllocationBucket,
    AllocationTables,
    PortfolioData,
    Position,
)

__all__ = [
    "AccountOverview",
    "AllocationBucket",
    "AllocationTables",
    "PortfolioData",
    "Position",
    "compute_allocations",
]
