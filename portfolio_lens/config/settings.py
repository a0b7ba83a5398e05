"""Environment-driven settings."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the statement analysis server and pipeline."""

    app_name: str = "portfolio-lens"
    app_version: str = "1.0.0"
    transport_mode: str = "auto"
    http_transport: str = "sse"
    host: str = "0.0.0.0"
    port: int = 8000
    mcp_path: str = "/mcp"
    health_path: str = "/health"
    home_currency: str = "CHF"
    yahoo_finance_enabled: bool = True
    reference_fallback_enabled: bool = True
    request_timeout_seconds: float = 15.0
    provider_min_interval_seconds: float = 0.2
    enrichment_concurrency: int = 3
    cache_ttl_seconds: int = 60
    cache_ttl_quote_seconds: int = 300
    cache_ttl_metadata_seconds: int = 3600
    cache_ttl_composition_seconds: int = 86400
    symbol_resolution_ttl_seconds: int = 86400
    log_level: str = "INFO"


def _as_int(value: str | None, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _as_float(value: str | None, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def get_settings() -> Settings:
    """Load runtime settings from environment variables."""
    load_dotenv()

    return Settings(
        app_name=os.getenv("APP_NAME", "portfolio-lens"),
        transport_mode=os.getenv("TRANSPORT_MODE", "auto").strip().lower(),
        http_transport=os.getenv("HTTP_TRANSPORT", "sse").strip().lower(),
        host=os.getenv("HOST", "0.0.0.0"),
        port=_as_int(os.getenv("PORT"), 8000),
        mcp_path=os.getenv("MCP_PATH", "/mcp"),
        health_path=os.getenv("HEALTH_PATH", "/health"),
        home_currency=(os.getenv("HOME_CURRENCY") or "CHF").strip().upper(),
        yahoo_finance_enabled=_as_bool(os.getenv("YAHOO_FINANCE_ENABLED"), True),
        reference_fallback_enabled=_as_bool(os.getenv("REFERENCE_FALLBACK_ENABLED"), True),
        request_timeout_seconds=_as_float(os.getenv("REQUEST_TIMEOUT_SECONDS"), 15.0),
        provider_min_interval_seconds=_as_float(os.getenv("PROVIDER_MIN_INTERVAL_SECONDS"), 0.2),
        enrichment_concurrency=max(1, _as_int(os.getenv("ENRICHMENT_CONCURRENCY"), 3)),
        cache_ttl_seconds=_as_int(os.getenv("CACHE_TTL_SECONDS"), 60),
        cache_ttl_quote_seconds=_as_int(os.getenv("CACHE_TTL_QUOTE_SECONDS"), 300),
        cache_ttl_metadata_seconds=_as_int(os.getenv("CACHE_TTL_METADATA_SECONDS"), 3600),
        cache_ttl_composition_seconds=_as_int(os.getenv("CACHE_TTL_COMPOSITION_SECONDS"), 86400),
        symbol_resolution_ttl_seconds=_as_int(os.getenv("SYMBOL_RESOLUTION_TTL_SECONDS"), 86400),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
    )
