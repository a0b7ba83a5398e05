import json
import logging

from portfolio_lens.runtime.monitoring import PipelineMetrics, log_stage_event


def test_pipeline_metrics_snapshot() -> None:
    metrics = PipelineMetrics(started_at=1.0)
    metrics.record_stage("metadata", "provider")
    metrics.record_stage("metadata", "unknown")
    metrics.record_stage("metadata", "unknown")
    metrics.record_position(10.0)
    metrics.record_position(30.0)

    snapshot = metrics.snapshot({"yahoo": 1700000000.0})

    assert snapshot.positions_enriched == 2
    assert snapshot.avg_enrichment_ms == 20.0
    assert snapshot.stage_outcomes == {"metadata": {"provider": 1, "unknown": 2}}
    assert snapshot.provider_status == {"yahoo": 1700000000.0}


def test_stage_event_is_structured_json(caplog) -> None:
    with caplog.at_level(logging.INFO, logger="portfolio_lens.events"):
        log_stage_event("price", "NESN", "live", source="yahoo", resolved_symbol="NESN.SW", latency_ms=12.3456)

    payload = json.loads(caplog.records[-1].getMessage())
    assert payload["stage"] == "price"
    assert payload["resolved_symbol"] == "NESN.SW"
    assert payload["latency_ms"] == 12.346
