import pandas as pd
import pytest

from portfolio_lens.providers import yahoo_finance
from portfolio_lens.providers.http import ProviderError
from portfolio_lens.providers.reference_provider import ReferenceDataProvider, base_symbol
from portfolio_lens.providers.yahoo_finance import YahooFinanceClient


class _FundsData:
    sector_weightings = {"technology": 0.4, "financial_services": 0.2, "realestate": 0.0}
    top_holdings = pd.DataFrame(
        {"Name": ["Apple Inc", "Microsoft Corp"], "Holding Percent": [0.045, 0.04]},
        index=["AAPL", "MSFT"],
    )


class _Ticker:
    def __init__(self, symbol: str) -> None:
        self.symbol = symbol
        self.funds_data = _FundsData()

    def get_info(self):
        return {"sector": "Consumer Defensive", "country": "Switzerland", "currency": "CHF", "longName": "Nestle S.A."}


def test_yahoo_quote_from_chart_meta(monkeypatch) -> None:
    def fake_fetch(url, provider, timeout_seconds, params=None, headers=None, max_retries=2):
        assert "NESN.SW" in url
        return {
            "chart": {
                "result": [
                    {
                        "meta": {
                            "symbol": "NESN.SW",
                            "regularMarketPrice": 101.0,
                            "chartPreviousClose": 100.0,
                            "currency": "CHF",
                            "regularMarketTime": 1700000000,
                        }
                    }
                ]
            }
        }

    monkeypatch.setattr(yahoo_finance, "fetch_json", fake_fetch)
    quote = YahooFinanceClient().get_quote("NESN.SW")
    assert quote is not None
    assert quote.price == 101.0
    assert quote.currency == "CHF"
    assert quote.change == pytest.approx(1.0)
    assert quote.change_percent == pytest.approx(1.0)


def test_yahoo_quote_missing_result_is_none(monkeypatch) -> None:
    monkeypatch.setattr(yahoo_finance, "fetch_json", lambda *args, **kwargs: {"chart": {"result": None}})
    assert YahooFinanceClient().get_quote("ZZZ") is None


def test_yahoo_search_prefers_exact_symbol_and_reads_profile(monkeypatch) -> None:
    monkeypatch.setattr(
        yahoo_finance,
        "fetch_json",
        lambda *args, **kwargs: {
            "quotes": [
                {"symbol": "NESNF", "shortname": "Nestle OTC", "quoteType": "EQUITY"},
                {"symbol": "NESN.SW", "longname": "Nestle S.A.", "quoteType": "EQUITY", "exchDisp": "Swiss"},
            ]
        },
    )
    monkeypatch.setattr(yahoo_finance.yf, "Ticker", _Ticker)
    metadata = YahooFinanceClient().search("NESN.SW")
    assert metadata is not None
    assert metadata.symbol == "NESN.SW"
    assert metadata.name == "Nestle S.A."
    assert metadata.sector == "Consumer Staples"
    assert metadata.country == "Switzerland"
    assert metadata.currency == "CHF"
    assert metadata.is_informative() is True


def test_yahoo_search_without_exact_match_is_not_informative(monkeypatch) -> None:
    monkeypatch.setattr(
        yahoo_finance,
        "fetch_json",
        lambda *args, **kwargs: {"quotes": [{"symbol": "NESNF", "shortname": "Nestle OTC"}]},
    )
    metadata = YahooFinanceClient().search("NESN")
    assert metadata.symbol == "NESNF"
    assert metadata.is_informative() is False


def test_yahoo_composition_converts_fractions_to_percent(monkeypatch) -> None:
    monkeypatch.setattr(yahoo_finance.yf, "Ticker", _Ticker)
    composition = YahooFinanceClient().get_composition("VWRL.L")
    assert composition is not None
    assert [(item.key, item.weight) for item in composition.sector] == [
        ("Technology", 40.0),
        ("Financial Services", 20.0),
    ]
    assert composition.holdings[0].key == "Apple Inc"
    assert composition.holdings[0].weight == pytest.approx(4.5)


def test_yahoo_composition_failure_raises_provider_error(monkeypatch) -> None:
    def broken_ticker(symbol):
        raise RuntimeError("crumb expired")

    monkeypatch.setattr(yahoo_finance.yf, "Ticker", broken_ticker)
    with pytest.raises(ProviderError) as error:
        YahooFinanceClient().get_composition("VWRL.L")
    assert error.value.code == "UPSTREAM"


def test_reference_provider_metadata_and_composition() -> None:
    provider = ReferenceDataProvider()
    assert provider.get_quote("NESN") is None

    metadata = provider.search("NESN.SW")
    assert metadata.sector == "Consumer Staples"
    assert metadata.country == "Switzerland"
    assert metadata.currency == "CHF"
    assert provider.search("UNLISTED") is None

    composition = provider.get_composition("VUSA.L")
    assert composition.domicile == "IE"
    assert composition.withholding_tax == 15
    assert composition.largest("sector") == "Technology"
    assert {item.key for item in composition.sector} == {"Technology", "Financial Services", "Healthcare"}


def test_base_symbol_strips_exchange_suffix() -> None:
    assert base_symbol("vwrl.l") == "VWRL"
    assert base_symbol("AAPL") == "AAPL"
