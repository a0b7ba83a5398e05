"""Application entrypoint for the portfolio-lens MCP server."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import asdict

from mcp.server.fastmcp import FastMCP
from starlette.responses import JSONResponse, Response

from portfolio_lens.cache.ttl_cache import TTLCache
from portfolio_lens.config.reference import get_reference_data
from portfolio_lens.config.settings import Settings, get_settings
from portfolio_lens.providers.reference_provider import ReferenceDataProvider
from portfolio_lens.providers.yahoo_finance import YahooFinanceClient
from portfolio_lens.runtime.monitoring import PipelineMetrics, configure_logging
from portfolio_lens.services.base import ServiceContext
from portfolio_lens.tools.registry import build_tool_services, register_all_tools
from portfolio_lens.utils.rate_limit import RateLimiterRegistry

LOGGER = logging.getLogger(__name__)


def resolve_transport_mode(configured_mode: str) -> str:
    if os.getenv("RENDER") and configured_mode == "stdio":
        return "http"
    if configured_mode in {"stdio", "http"}:
        return configured_mode
    if os.getenv("RENDER") or os.getenv("PORT"):
        return "http"
    return "stdio"


def resolve_http_transport(configured_transport: str) -> str:
    if configured_transport in {"sse", "streamable"}:
        return configured_transport
    return "sse"


def build_service_context(settings: Settings | None = None) -> ServiceContext:
    settings = settings or get_settings()
    reference = get_reference_data()
    yahoo_client = (
        YahooFinanceClient(settings.request_timeout_seconds, reference=reference)
        if settings.yahoo_finance_enabled
        else None
    )
    reference_provider = ReferenceDataProvider(reference) if settings.reference_fallback_enabled else None
    return ServiceContext(
        providers={"yahoo": yahoo_client, "reference": reference_provider},
        cache=TTLCache(default_ttl_seconds=settings.cache_ttl_seconds),
        rate_limiter=RateLimiterRegistry(min_interval_seconds=settings.provider_min_interval_seconds),
        settings=settings,
        reference=reference,
        metrics=PipelineMetrics(),
    )


async def run() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    service_ctx = build_service_context(settings)
    mcp = FastMCP(
        name=settings.app_name,
        host=settings.host,
        port=settings.port,
        streamable_http_path=settings.mcp_path,
    )
    services = build_tool_services(service_ctx)
    register_all_tools(mcp, services)
    resolved_mode = resolve_transport_mode(settings.transport_mode)
    resolved_http_transport = resolve_http_transport(settings.http_transport)

    @mcp.custom_route(settings.health_path, methods=["GET"])
    async def health_check(_: object) -> Response:
        tools = await mcp.list_tools()
        snapshot = service_ctx.metrics.snapshot(services.orchestrator.provider_status.snapshot())
        return JSONResponse(
            {
                "status": "ok",
                "service": settings.app_name,
                "version": settings.app_version,
                "mode": resolved_mode,
                "home_currency": settings.home_currency,
                "tool_count": len(tools),
                "pipeline": asdict(snapshot),
                "symbol_cache": services.resolver.cache_info(),
            }
        )

    if not settings.yahoo_finance_enabled:
        LOGGER.warning("live market data disabled; enrichment uses reference data only")
    if resolved_mode == "stdio":
        await mcp.run_stdio_async()
    elif resolved_http_transport == "streamable":
        await mcp.run_streamable_http_async()
    else:
        await mcp.run_sse_async()


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()
