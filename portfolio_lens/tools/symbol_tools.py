"""Symbol-resolution MCP tools."""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import TYPE_CHECKING

from mcp.server.fastmcp import FastMCP

if TYPE_CHECKING:
    from portfolio_lens.tools.registry import ToolServices


def register_symbol_tools(mcp: FastMCP, services: ToolServices) -> None:
    @mcp.tool(description="List the lookup candidates generated for a raw statement ticker.")
    def symbol_candidates(symbol: str) -> str:
        candidates = services.resolver.get_candidates(symbol)
        return json.dumps({"ok": True, "symbol": symbol.strip().upper(), "candidates": candidates}, ensure_ascii=True)

    @mcp.tool(description="Resolve a raw statement ticker to the identifier the market-data provider accepts.")
    async def resolve_symbol(symbol: str) -> str:
        if not symbol.strip():
            return json.dumps({"ok": False, "error": {"type": "invalid_symbol", "message": "Symbol is required."}})
        result = await services.resolver.resolve_symbol(symbol)
        return json.dumps({"ok": True, **asdict(result)}, ensure_ascii=True)
