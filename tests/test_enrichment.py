import asyncio

import pytest
from fakes import FakeProvider, make_ctx

from portfolio_lens.portfolio.models import Position
from portfolio_lens.providers.models import AssetMetadata, ETFComposition, NormalizedQuote, WeightedKey
from portfolio_lens.providers.reference_provider import ReferenceDataProvider
from portfolio_lens.services.enrichment import EnrichmentOrchestrator


def _position(symbol: str, category: str = "Equities", currency: str = "USD", **overrides) -> Position:
    values = dict(
        symbol=symbol,
        name=symbol,
        quantity=5.0,
        price=200.0,
        unit_cost=150.0,
        currency=currency,
        total_value_home=920.0,
        category=category,
    )
    values.update(overrides)
    return Position(**values)


def _apple_metadata() -> AssetMetadata:
    return AssetMetadata(symbol="AAPL", name="Apple Inc.", sector="Technology", country="United States")


def test_price_and_metadata_enrichment() -> None:
    yahoo = FakeProvider(
        quotes={"AAPL": NormalizedQuote(symbol="AAPL", price=210.0, currency="USD")},
        metadata={"AAPL": _apple_metadata()},
    )
    orchestrator = EnrichmentOrchestrator(make_ctx(yahoo=yahoo))
    position = _position("AAPL")

    enriched = asyncio.run(orchestrator.enrich(position))

    assert enriched.current_price == 210.0
    assert enriched.resolved_symbol == "AAPL"
    assert enriched.unrealized_gain_loss == pytest.approx(300.0)
    assert enriched.unrealized_gain_loss_percent == pytest.approx(40.0)
    assert enriched.sector == "Technology"
    assert enriched.geography == "United States"
    assert enriched.name == "Apple Inc."
    assert enriched.domicile == "US"
    assert enriched.tax_optimized is False
    assert enriched.withholding_tax == 30
    assert position.current_price is None


def test_price_falls_back_to_statement_price() -> None:
    yahoo = FakeProvider(failing={"quote"}, metadata={"AAPL": _apple_metadata()})
    orchestrator = EnrichmentOrchestrator(make_ctx(yahoo=yahoo))

    enriched = asyncio.run(orchestrator.enrich(_position("AAPL")))

    assert enriched.current_price == 200.0
    assert enriched.unrealized_gain_loss is None
    assert enriched.sector == "Technology"


def test_quality_gate_skips_uninformative_metadata() -> None:
    yahoo = FakeProvider(
        metadata={
            "NESN": AssetMetadata(symbol="NESN", name="Nestle"),
            "NESN.SW": AssetMetadata(
                symbol="NESN.SW", name="Nestle S.A.", sector="Consumer Staples", country="Switzerland"
            ),
        }
    )
    orchestrator = EnrichmentOrchestrator(make_ctx(yahoo=yahoo))

    enriched = asyncio.run(orchestrator.enrich(_position("NESN", currency="CHF")))

    assert enriched.sector == "Consumer Staples"
    assert enriched.geography == "Switzerland"
    assert enriched.domicile == "CH"
    assert enriched.tax_optimized is True


def test_reference_provider_used_after_live_provider_exhausted() -> None:
    yahoo = FakeProvider(failing={"search"})
    orchestrator = EnrichmentOrchestrator(make_ctx(yahoo=yahoo, reference=ReferenceDataProvider()))

    enriched = asyncio.run(orchestrator.enrich(_position("ROG", currency="CHF")))

    assert enriched.sector == "Healthcare"
    assert enriched.geography == "Switzerland"


def test_metadata_failure_falls_back_to_unknown_and_batch_completes() -> None:
    yahoo = FakeProvider(
        quotes={"AAPL": NormalizedQuote(symbol="AAPL", price=210.0, currency="USD")},
        metadata={"AAPL": _apple_metadata()},
        failing={"ZZZ"},
    )
    orchestrator = EnrichmentOrchestrator(make_ctx(yahoo=yahoo))
    positions = [_position("ZZZ"), _position("AAPL")]

    enriched = asyncio.run(orchestrator.enrich_all(positions))

    assert [position.symbol for position in enriched] == ["ZZZ", "AAPL"]
    assert enriched[0].sector == "Unknown"
    assert enriched[0].geography == "Unknown"
    assert enriched[0].current_price == 200.0
    assert enriched[1].sector == "Technology"
    assert enriched[1].current_price == 210.0


def test_statement_classification_is_kept() -> None:
    yahoo = FakeProvider()
    orchestrator = EnrichmentOrchestrator(make_ctx(yahoo=yahoo))
    position = _position("XYZ", name="XYZ Corp", sector="Energy", geography="Canada")

    enriched = asyncio.run(orchestrator.enrich(position))

    assert enriched.sector == "Energy"
    assert enriched.geography == "Canada"
    assert yahoo.count("search") == 0


def test_fund_composition_becomes_look_through_source() -> None:
    composition = ETFComposition(
        symbol="VWRL",
        sector=[WeightedKey("Technology", 40.0), WeightedKey("Financial Services", 20.0)],
        country=[WeightedKey("United States", 60.0), WeightedKey("Japan", 10.0)],
        domicile="IE",
        withholding_tax=15.0,
    )
    yahoo = FakeProvider(compositions={"VWRL": composition})
    orchestrator = EnrichmentOrchestrator(make_ctx(yahoo=yahoo))

    first = asyncio.run(orchestrator.enrich(_position("VWRL", category="ETF")))
    second = asyncio.run(orchestrator.enrich(_position("VWRL", category="ETF")))

    assert first.composition is composition
    assert first.sector == "Technology"
    assert first.geography == "United States"
    assert first.domicile == "IE"
    assert first.withholding_tax == 15.0
    assert first.tax_optimized is True
    assert second.composition is composition
    assert yahoo.count("composition") == 1


def test_fund_composition_from_reference_when_live_fails() -> None:
    yahoo = FakeProvider(failing={"composition"})
    orchestrator = EnrichmentOrchestrator(make_ctx(yahoo=yahoo, reference=ReferenceDataProvider()))

    enriched = asyncio.run(orchestrator.enrich(_position("VWRL", category="ETF")))

    assert enriched.composition is not None
    assert enriched.composition.source == "reference"
    assert enriched.sector == "Technology"
    assert enriched.domicile == "IE"


def test_equities_skip_composition_stage() -> None:
    yahoo = FakeProvider(metadata={"AAPL": _apple_metadata()})
    orchestrator = EnrichmentOrchestrator(make_ctx(yahoo=yahoo))

    asyncio.run(orchestrator.enrich(_position("AAPL")))

    assert yahoo.count("composition") == 0
