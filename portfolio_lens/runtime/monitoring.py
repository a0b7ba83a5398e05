"""Logging setup, structured stage events and pipeline metrics."""

from __future__ import annotations

import json
import logging
import sys
import threading
import time
from dataclasses import dataclass, field
from typing import Any

LOGGER = logging.getLogger("portfolio_lens.events")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Route all records to stderr; stdout belongs to the stdio transport."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


@dataclass
class HealthSnapshot:
    uptime_seconds: float
    positions_enriched: int
    stage_outcomes: dict[str, dict[str, int]]
    avg_enrichment_ms: float
    provider_status: dict[str, Any] = field(default_factory=dict)


class PipelineMetrics:
    def __init__(self, started_at: float | None = None) -> None:
        self.started_at = started_at or time.time()
        self._lock = threading.Lock()
        self.positions_enriched = 0
        self.total_enrichment_ms = 0.0
        self.stage_outcomes: dict[str, dict[str, int]] = {}

    def record_stage(self, stage: str, outcome: str) -> None:
        with self._lock:
            outcomes = self.stage_outcomes.setdefault(stage, {})
            outcomes[outcome] = outcomes.get(outcome, 0) + 1

    def record_position(self, latency_ms: float) -> None:
        with self._lock:
            self.positions_enriched += 1
            self.total_enrichment_ms += max(0.0, latency_ms)

    def snapshot(self, provider_status: dict[str, Any] | None = None) -> HealthSnapshot:
        with self._lock:
            enriched = self.positions_enriched
            avg = (self.total_enrichment_ms / enriched) if enriched else 0.0
            outcomes = {stage: dict(values) for stage, values in self.stage_outcomes.items()}
        return HealthSnapshot(
            uptime_seconds=max(0.0, time.time() - self.started_at),
            positions_enriched=enriched,
            stage_outcomes=outcomes,
            avg_enrichment_ms=avg,
            provider_status=provider_status or {},
        )


def log_stage_event(
    stage: str,
    symbol: str,
    outcome: str,
    source: str | None = None,
    resolved_symbol: str | None = None,
    latency_ms: float | None = None,
) -> None:
    payload: dict[str, Any] = {
        "stage": stage,
        "symbol": symbol,
        "outcome": outcome,
        "timestamp": int(time.time()),
    }
    if source:
        payload["source"] = source
    if resolved_symbol and resolved_symbol != symbol:
        payload["resolved_symbol"] = resolved_symbol
    if latency_ms is not None:
        payload["latency_ms"] = round(latency_ms, 3)
    LOGGER.info(json.dumps(payload, ensure_ascii=True))
