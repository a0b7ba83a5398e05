"""Domain tool registry entrypoint."""

from __future__ import annotations

from dataclasses import dataclass

from mcp.server.fastmcp import FastMCP

from portfolio_lens.portfolio.portfolio_service import PortfolioService
from portfolio_lens.services.base import ServiceContext
from portfolio_lens.services.enrichment import EnrichmentOrchestrator
from portfolio_lens.services.symbol_resolver import SymbolResolver
from portfolio_lens.tools.portfolio_tools import register_portfolio_tools
from portfolio_lens.tools.symbol_tools import register_symbol_tools


@dataclass
class ToolServices:
    portfolio: PortfolioService
    orchestrator: EnrichmentOrchestrator
    resolver: SymbolResolver


def build_tool_services(ctx: ServiceContext) -> ToolServices:
    orchestrator = EnrichmentOrchestrator(ctx)
    return ToolServices(
        portfolio=PortfolioService(ctx, orchestrator=orchestrator),
        orchestrator=orchestrator,
        resolver=orchestrator.resolver,
    )


def register_all_tools(mcp: FastMCP, services: ToolServices) -> None:
    register_portfolio_tools(mcp, services)
    register_symbol_tools(mcp, services)
