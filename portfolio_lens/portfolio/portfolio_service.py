"""Statement analysis orchestration service."""

from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import Any

from portfolio_lens.parsing.statement_parser import NoPositionsFoundError, StatementParser
from portfolio_lens.portfolio.allocation import compute_allocations
from portfolio_lens.portfolio.data_loader import load_statement_text
from portfolio_lens.portfolio.models import PortfolioData
from portfolio_lens.services.base import ServiceContext
from portfolio_lens.services.enrichment import EnrichmentOrchestrator


def _json_error(error_type: str, message: str) -> dict[str, Any]:
    return {"ok": False, "error": {"type": error_type, "message": message}}


class PortfolioService:
    def __init__(
        self,
        ctx: ServiceContext,
        parser: StatementParser | None = None,
        orchestrator: EnrichmentOrchestrator | None = None,
    ) -> None:
        self.ctx = ctx
        self.home_currency = ctx.settings.home_currency
        self.parser = parser or StatementParser(home_currency=self.home_currency, reference=ctx.reference)
        self.orchestrator = orchestrator or EnrichmentOrchestrator(ctx)

    def parse_text(self, text: str) -> PortfolioData:
        return self.parser.parse(text)

    async def analyze_text_async(self, text: str) -> PortfolioData:
        """Parse, enrich every position, then compute look-through allocations."""
        parsed = self.parser.parse(text)
        enriched = await self.orchestrator.enrich_all(parsed.positions)
        tables = compute_allocations(
            enriched,
            cash_balance=parsed.account_overview.cash_balance,
            home_currency=self.home_currency,
            reference=self.ctx.reference,
            total_value=parsed.account_overview.total_value,
        )
        return replace(
            parsed,
            positions=enriched,
            asset_allocation=tables.asset_allocation,
            currency_allocation=tables.currency_allocation,
            true_country_allocation=tables.true_country_allocation,
            true_sector_allocation=tables.true_sector_allocation,
            domicile_allocation=tables.domicile_allocation,
        )

    def analyze_text(self, text: str) -> PortfolioData:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self.analyze_text_async(text))
        with ThreadPoolExecutor(max_workers=1) as executor:
            future = executor.submit(lambda: asyncio.run(self.analyze_text_async(text)))
            return future.result()

    def parse_payload(self, text: str) -> dict[str, Any]:
        try:
            data = self.parse_text(text)
        except NoPositionsFoundError as error:
            return _json_error("no_positions", str(error))
        return {"ok": True, **data.to_dict()}

    async def analyze_payload(self, text: str) -> dict[str, Any]:
        try:
            data = await self.analyze_text_async(text)
        except NoPositionsFoundError as error:
            return _json_error("no_positions", str(error))
        return {"ok": True, **data.to_dict()}

    async def analyze_file_payload(self, file_path: str) -> dict[str, Any]:
        try:
            text = await asyncio.to_thread(load_statement_text, file_path)
        except (OSError, ValueError) as error:
            return _json_error("invalid_file", str(error))
        return await self.analyze_payload(text)
