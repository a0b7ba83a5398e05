"""Turn free-form statement text into positions and an account overview."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from portfolio_lens.config.reference import UNKNOWN, ReferenceData, get_reference_data
from portfolio_lens.parsing.numbers import parse_locale_number
from portfolio_lens.parsing.structure import (
    CURRENCY_CODE,
    ColumnMap,
    RawRow,
    classify_label,
    detect_structure,
    iter_raw_rows,
    split_rows,
)
from portfolio_lens.parsing.summary_text import TEXT_COLUMNS, extract_summary
from portfolio_lens.portfolio.allocation import build_asset_allocation
from portfolio_lens.portfolio.models import AccountOverview, PortfolioData, Position

LOGGER = logging.getLogger(__name__)
ISIN_PATTERN = re.compile(r"^[A-Z]{2}[A-Z0-9]{9}\d$")
_SYMBOL_NOISE = re.compile(r"[^\w.\-]")
_HAS_ALNUM = re.compile(r"[A-Z0-9]")


class NoPositionsFoundError(ValueError):
    """Raised when a statement yields no valid position."""


@dataclass
class _RowsOutcome:
    positions: list[Position] = field(default_factory=list)
    explicit_total: float | None = None
    cash_balance: float = 0.0


def clean_symbol(value: str) -> str:
    symbol = _SYMBOL_NOISE.sub("", value or "").upper()
    return symbol if _HAS_ALNUM.search(symbol) else ""


def _largest_number(cells: list[str]) -> float:
    values = [parse_locale_number(cell) for cell in cells if cell]
    return max(values, default=0.0)


class StatementParser:
    """Synchronous, side-effect free statement parser.

    Delimited exports go through structure detection; anything else, or a
    delimited pass that keeps no row, goes through the summary-text pass.
    """

    def __init__(self, home_currency: str = "CHF", reference: ReferenceData | None = None) -> None:
        self.home_currency = home_currency.strip().upper()
        self.reference = reference or get_reference_data()

    def parse(self, text: str) -> PortfolioData:
        lines = [line.strip() for line in (text or "").replace("\r\n", "\n").replace("\r", "\n").split("\n")]
        lines = [line for line in lines if line]
        if not lines:
            raise NoPositionsFoundError("Statement is empty.")

        outcome = _RowsOutcome()
        labeled_securities: float | None = None
        structure = detect_structure(lines, self.home_currency)
        if structure.usable and structure.delimiter is not None:
            rows = split_rows(lines, structure.delimiter)
            outcome = self._parse_rows(iter_raw_rows(rows, structure, self.reference), structure.column_map)
            LOGGER.debug(
                "delimited pass: delimiter=%r header_row=%s inferred=%s positions=%s",
                structure.delimiter,
                structure.header_row_index,
                structure.inferred,
                len(outcome.positions),
            )

        if not outcome.positions:
            summary = extract_summary(lines, self.reference)
            outcome = self._parse_rows(summary.rows, TEXT_COLUMNS)
            outcome.explicit_total = summary.total_value
            outcome.cash_balance = summary.cash_balance or 0.0
            labeled_securities = summary.securities_value
            LOGGER.debug("summary-text pass: positions=%s", len(outcome.positions))

        positions = outcome.positions
        if not positions:
            raise NoPositionsFoundError("No valid positions found in statement.")

        computed = sum(position.total_value_home for position in positions)
        explicit = outcome.explicit_total
        total_value = explicit if explicit is not None and explicit > computed else computed
        if computed > 0:
            for position in positions:
                if not position.position_percent:
                    position.position_percent = position.total_value_home / computed * 100.0

        return PortfolioData(
            account_overview=AccountOverview(
                total_value=total_value,
                cash_balance=outcome.cash_balance,
                securities_value=labeled_securities if labeled_securities else computed,
            ),
            positions=positions,
            asset_allocation=build_asset_allocation(positions, total_value),
        )

    def _parse_rows(self, rows: list[RawRow], columns: ColumnMap) -> _RowsOutcome:
        outcome = _RowsOutcome()
        for row in rows:
            label_kind = classify_label(row.first_label())
            if label_kind == "grand_total":
                largest = _largest_number(row.cells)
                outcome.explicit_total = max(outcome.explicit_total or 0.0, largest)
                continue
            if label_kind == "subtotal":
                continue
            if label_kind == "cash":
                outcome.cash_balance += _largest_number(row.cells)
                continue
            position = self._build_position(row, columns)
            if position is not None:
                outcome.positions.append(position)
        return outcome

    def _build_position(self, row: RawRow, columns: ColumnMap) -> Position | None:
        symbol = clean_symbol(row.cell(columns, "symbol"))
        quantity_cell = row.cell(columns, "quantity")
        if not symbol or not quantity_cell:
            return None
        quantity = parse_locale_number(quantity_cell)

        price_cell = row.cell(columns, "price")
        unit_cost_cell = row.cell(columns, "unit_cost")
        local_total = parse_locale_number(row.cell(columns, "total_value"))
        if price_cell:
            price = parse_locale_number(price_cell)
        elif unit_cost_cell:
            price = parse_locale_number(unit_cost_cell)
        elif local_total and quantity:
            price = local_total / quantity
        else:
            return None
        unit_cost = parse_locale_number(unit_cost_cell) if unit_cost_cell else price

        currency = self._currency(row.cell(columns, "currency"), symbol)
        rate = self.reference.currency_rate(currency, self.home_currency)
        total_value_home = parse_locale_number(row.cell(columns, "total_value_home"))
        if total_value_home <= 0:
            total_value_home = local_total * rate if local_total > 0 else quantity * price * rate

        if not (quantity > 0 or price > 0 or total_value_home > 0):
            return None

        category = self._category(row, columns)
        isin = self._isin(row.cell(columns, "isin"), symbol)
        domicile = self._domicile(row.cell(columns, "domicile"), category, isin)
        domicile_info = self.reference.domicile(domicile)
        gain_loss_cell = row.cell(columns, "gain_loss")
        sector_cell = row.cell(columns, "sector")
        geography_cell = row.cell(columns, "geography")

        return Position(
            symbol=symbol,
            name=row.cell(columns, "name") or symbol,
            quantity=quantity,
            price=price,
            unit_cost=unit_cost,
            currency=currency,
            total_value_home=total_value_home,
            category=category,
            position_percent=parse_locale_number(row.cell(columns, "position_percent")),
            daily_change_percent=parse_locale_number(row.cell(columns, "daily_change_percent")),
            domicile=domicile,
            isin=isin,
            sector=self.reference.normalize_sector(sector_cell) if sector_cell else None,
            geography=self.reference.normalize_country(geography_cell) if geography_cell else None,
            gain_loss_home=parse_locale_number(gain_loss_cell) if gain_loss_cell else None,
            tax_optimized=domicile_info.tax_optimized if domicile_info else None,
            withholding_tax=domicile_info.withholding_tax if domicile_info else None,
        )

    def _currency(self, cell: str, symbol: str) -> str:
        code = cell.strip().upper()
        if CURRENCY_CODE.match(code):
            return code
        market = self.reference.market_for_symbol(symbol)
        return market.currency if market else self.home_currency

    def _category(self, row: RawRow, columns: ColumnMap) -> str:
        if row.category:
            return row.category
        cell = row.cell(columns, "category")
        if cell:
            return self.reference.canonical_category(cell) or cell.strip()
        return UNKNOWN

    @staticmethod
    def _isin(cell: str, symbol: str) -> str | None:
        candidate = cell.strip().upper()
        if ISIN_PATTERN.match(candidate):
            return candidate
        return symbol if ISIN_PATTERN.match(symbol) else None

    def _domicile(self, cell: str, category: str, isin: str | None) -> str | None:
        text = cell.strip()
        if len(text) == 2 and text.isalpha():
            return text.upper()
        if text:
            return self.reference.country_code(text) or text.upper()
        if isin and self.reference.is_fund_category(category):
            return isin[:2]
        return None


def parse_statement(text: str, home_currency: str = "CHF") -> PortfolioData:
    return StatementParser(home_currency=home_currency).parse(text)
