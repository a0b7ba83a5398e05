"""Statement-analysis MCP tools."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from mcp.server.fastmcp import FastMCP

if TYPE_CHECKING:
    from portfolio_lens.tools.registry import ToolServices


def register_portfolio_tools(mcp: FastMCP, services: ToolServices) -> None:
    @mcp.tool(description="Parse a brokerage statement into positions and an account overview without market lookups.")
    def parse_statement_text(text: str) -> str:
        payload = services.portfolio.parse_payload(text)
        return json.dumps(payload, ensure_ascii=True)

    @mcp.tool(description="Parse, enrich and compute look-through allocations for a pasted statement.")
    async def analyze_statement_text(text: str) -> str:
        payload = await services.portfolio.analyze_payload(text)
        return json.dumps(payload, ensure_ascii=True)

    @mcp.tool(description="Analyze a statement file (.csv, .txt, .tsv, .xlsx, .xls) and return allocation JSON.")
    async def analyze_statement_file(file_path: str) -> str:
        payload = await services.portfolio.analyze_file_payload(file_path)
        return json.dumps(payload, ensure_ascii=True)
