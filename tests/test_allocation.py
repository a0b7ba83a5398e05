import pytest

from portfolio_lens.portfolio.allocation import compute_allocations, domicile_label
from portfolio_lens.portfolio.models import Position
from portfolio_lens.providers.models import ETFComposition, WeightedKey


def _equity(symbol: str, value: float, currency: str, sector: str, geography: str, domicile: str | None) -> Position:
    return Position(
        symbol=symbol,
        name=symbol,
        quantity=1.0,
        price=value,
        currency=currency,
        total_value_home=value,
        category="Equities",
        sector=sector,
        geography=geography,
        domicile=domicile,
    )


def _fund(value: float, composition: ETFComposition | None = None) -> Position:
    return Position(
        symbol="VWRL",
        name="Vanguard FTSE All-World",
        quantity=10.0,
        price=value / 10.0,
        currency="USD",
        total_value_home=value,
        category="ETF",
        sector="Unknown",
        geography="Unknown",
        domicile="IE",
        composition=composition,
    )


def _composition() -> ETFComposition:
    return ETFComposition(
        symbol="VWRL",
        currency=[WeightedKey("USD", 65.0), WeightedKey("EUR", 15.0), WeightedKey("JPY", 7.0)],
        country=[WeightedKey("United States", 60.0), WeightedKey("Switzerland", 15.0), WeightedKey("Japan", 10.0)],
        sector=[WeightedKey("Technology", 40.0), WeightedKey("Financial Services", 20.0), WeightedKey("Healthcare", 15.0)],
        domicile="IE",
    )


def _portfolio() -> list[Position]:
    return [
        _equity("NESN", 1000.0, "CHF", "Consumer Staples", "Switzerland", "CH"),
        _equity("AAPL", 920.0, "USD", "Technology", "United States", "US"),
        _equity("XYZ", 80.0, "CHF", "Unknown", "Unknown", None),
        _fund(2000.0, _composition()),
    ]


def test_every_table_sums_to_one_hundred() -> None:
    tables = compute_allocations(_portfolio(), cash_balance=500.0)
    for table in (
        tables.asset_allocation,
        tables.currency_allocation,
        tables.true_country_allocation,
        tables.true_sector_allocation,
        tables.domicile_allocation,
    ):
        assert table
        assert sum(bucket.percentage for bucket in table) == pytest.approx(100.0, abs=0.5)
        values = [bucket.value for bucket in table]
        assert values == sorted(values, reverse=True)


def test_fund_weights_flow_into_sector_bucket() -> None:
    fund_value = 2000.0
    tables = compute_allocations(_portfolio())
    sectors = {bucket.name: bucket.value for bucket in tables.true_sector_allocation}
    assert sectors["Technology"] >= 0.40 * fund_value
    assert sectors["Technology"] == pytest.approx(920.0 + 0.40 * fund_value)
    assert sectors["Financial Services"] == pytest.approx(0.20 * fund_value)
    assert "Other" not in sectors


def test_look_through_country_and_currency() -> None:
    tables = compute_allocations(_portfolio())
    countries = {bucket.name: bucket.value for bucket in tables.true_country_allocation}
    currencies = {bucket.name: bucket.value for bucket in tables.currency_allocation}
    assert countries["Switzerland"] == pytest.approx(1000.0 + 300.0)
    assert countries["United States"] == pytest.approx(920.0 + 1200.0)
    assert currencies["USD"] == pytest.approx(920.0 + 1300.0)
    assert currencies["JPY"] == pytest.approx(140.0)


def test_fund_without_composition_uses_flat_attributes() -> None:
    tables = compute_allocations([_fund(1000.0)])
    assert [(bucket.name, bucket.percentage) for bucket in tables.true_sector_allocation] == [("Unknown", 100.0)]
    assert [(bucket.name, bucket.value) for bucket in tables.currency_allocation] == [("USD", 1000.0)]


def test_cash_contributes_to_home_currency() -> None:
    tables = compute_allocations(_portfolio(), cash_balance=500.0, home_currency="CHF")
    currencies = {bucket.name: bucket.value for bucket in tables.currency_allocation}
    assert currencies["CHF"] == pytest.approx(1000.0 + 80.0 + 500.0)


def test_domicile_labels_and_unknown_bucket() -> None:
    tables = compute_allocations(_portfolio())
    domiciles = {bucket.name: bucket.value for bucket in tables.domicile_allocation}
    assert domiciles["Ireland (IE)"] == pytest.approx(2000.0)
    assert domiciles["Switzerland (CH)"] == pytest.approx(1000.0)
    assert domiciles["United States (US)"] == pytest.approx(920.0)
    assert domiciles["Unknown"] == pytest.approx(80.0)


def test_asset_allocation_is_not_look_through() -> None:
    tables = compute_allocations(_portfolio())
    assets = {bucket.name: bucket.value for bucket in tables.asset_allocation}
    assert assets == {"ETF": pytest.approx(2000.0), "Equities": pytest.approx(2000.0)}


def test_empty_portfolio_yields_empty_tables() -> None:
    tables = compute_allocations([], cash_balance=100.0)
    assert tables.asset_allocation == []
    assert tables.currency_allocation == []
    assert tables.domicile_allocation == []


def test_domicile_label_for_unlisted_code() -> None:
    assert domicile_label("KY") == "KY (KY)"
    assert domicile_label(None) == "Unknown"


def test_share_of_larger_account_total_leaves_unallocated_remainder() -> None:
    tables = compute_allocations(_portfolio(), total_value=5000.0)
    assets = {bucket.name: bucket for bucket in tables.asset_allocation}
    assert assets["ETF"].percentage == pytest.approx(50.0)
    assert assets["ETF"].portfolio_percentage == pytest.approx(40.0)
    assert sum(bucket.portfolio_percentage for bucket in tables.asset_allocation) == pytest.approx(80.0)


def test_portfolio_percentage_absent_without_total() -> None:
    tables = compute_allocations(_portfolio())
    assert all(bucket.portfolio_percentage is None for bucket in tables.currency_allocation)


def test_net_short_bucket_is_left_out_and_percentages_stay_bounded() -> None:
    short = _equity("TSLA", -900.0, "USD", "Consumer Cyclical", "United States", "US")
    short.quantity = -3.0
    positions = [
        _equity("NESN", 1000.0, "CHF", "Consumer Staples", "Switzerland", "CH"),
        _equity("AAPL", 920.0, "USD", "Technology", "United States", "US"),
        short,
    ]
    tables = compute_allocations(positions)

    sectors = {bucket.name: bucket.value for bucket in tables.true_sector_allocation}
    assert "Consumer Cyclical" not in sectors
    currencies = {bucket.name: bucket.value for bucket in tables.currency_allocation}
    assert currencies["USD"] == pytest.approx(20.0)
    for table in (tables.true_sector_allocation, tables.currency_allocation, tables.true_country_allocation):
        assert sum(bucket.percentage for bucket in table) == pytest.approx(100.0, abs=0.5)
        assert all(0.0 < bucket.percentage <= 100.0 for bucket in table)


def test_fully_short_table_is_empty() -> None:
    short = _equity("TSLA", -900.0, "USD", "Consumer Cyclical", "United States", "US")
    tables = compute_allocations([short])
    assert tables.asset_allocation == []
    assert tables.true_sector_allocation == []
