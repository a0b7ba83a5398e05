"""Fallback extraction for statements that are not delimited tables."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from portfolio_lens.config.reference import ReferenceData
from portfolio_lens.parsing.numbers import parse_locale_number
from portfolio_lens.parsing.structure import ColumnMap, RawRow

_NUMBER = r"[-(]?\d[\d'’,.]*\)?"
_AMOUNT = rf"(?:[A-Z]{{3}}\s*)?(?P<amount>{_NUMBER})"
LABELED_TOTALS: dict[str, re.Pattern[str]] = {
    "total_value": re.compile(
        r"(?i)\b(?:valeur totale|total value|portfolio value|valeur du portefeuille|gesamtwert|total portfolio)"
        rf"\s*[:=]?\s*{_AMOUNT}"
    ),
    "cash_balance": re.compile(
        r"(?i)\b(?:solde esp[eè]ces|cash balance|liquidit[eé]s|kontostand|barbestand)" rf"\s*[:=]?\s*{_AMOUNT}"
    ),
    "securities_value": re.compile(
        r"(?i)\b(?:valeur des titres|securities value|wertschriften|valeur titres)" rf"\s*[:=]?\s*{_AMOUNT}"
    ),
}
POSITION_LINE = re.compile(
    rf"^(?P<symbol>[A-Z0-9][A-Z0-9.\-]{{0,14}})\s+(?P<name>.+?)\s+(?P<quantity>{_NUMBER})\s+"
    rf"(?P<price>{_NUMBER})\s+(?P<currency>[A-Z]{{3}})(?:\s+(?P<total>{_NUMBER}))?\s*$"
)
TEXT_COLUMNS: ColumnMap = {"symbol": 0, "name": 1, "quantity": 2, "price": 3, "currency": 4, "total_value": 5}


@dataclass
class SummaryExtraction:
    rows: list[RawRow] = field(default_factory=list)
    total_value: float | None = None
    cash_balance: float | None = None
    securities_value: float | None = None


def extract_summary(lines: list[str], reference: ReferenceData) -> SummaryExtraction:
    """Labeled totals plus loosely formatted ``SYMBOL NAME QTY PRICE CCY [TOTAL]`` lines."""
    result = SummaryExtraction()
    active: str | None = None
    for index, line in enumerate(lines):
        for key, pattern in LABELED_TOTALS.items():
            if getattr(result, key) is not None:
                continue
            match = pattern.search(line)
            if match:
                setattr(result, key, parse_locale_number(match.group("amount")))

        category = reference.canonical_category(line)
        if category:
            active = category
            continue

        match = POSITION_LINE.match(line)
        if not match:
            continue
        cells = [
            match.group("symbol"),
            match.group("name").strip(),
            match.group("quantity"),
            match.group("price"),
            match.group("currency"),
            match.group("total") or "",
        ]
        result.rows.append(RawRow(cells=cells, category=active, line_index=index))
    return result
