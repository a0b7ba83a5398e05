"""Delimiter, header and column detection for delimited statement exports."""

from __future__ import annotations

import csv
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Literal

from portfolio_lens.config.reference import ReferenceData, get_reference_data
from portfolio_lens.parsing.numbers import has_digit, numeric_kind
from portfolio_lens.utils.text import contains_phrase, normalize_label

DELIMITERS = (",", ";", "\t", "|")
SAMPLE_LINES = 20
HEADER_SCAN_ROWS = 20
MIN_HEADER_MATCHES = 2
MIN_UNIFORM_SHARE = 0.5
CURRENCY_CODE = re.compile(r"^[A-Z]{3}$")

ColumnMap = dict[str, int]
LabelKind = Literal["grand_total", "subtotal", "cash"]

FIELD_SYNONYMS: dict[str, tuple[str, ...]] = {
    "symbol": ("symbol", "symbole", "ticker", "ticker symbol", "code", "valor", "valoren", "symbol code"),
    "isin": ("isin", "code isin", "isin code"),
    "name": (
        "name",
        "nom",
        "description",
        "libelle",
        "designation",
        "security",
        "security name",
        "instrument",
        "instrument name",
        "titre",
        "bezeichnung",
        "titel",
    ),
    "quantity": ("quantity", "quantite", "qty", "qte", "shares", "units", "nombre", "nominal", "menge", "anzahl", "stuck"),
    "unit_cost": (
        "cout unitaire",
        "unit cost",
        "average cost",
        "avg cost",
        "cost price",
        "purchase price",
        "prix d achat",
        "prix de revient",
        "prix moyen",
        "einstandspreis",
        "kaufpreis",
        "cost basis",
        "cost",
    ),
    "price": (
        "price",
        "prix",
        "cours",
        "kurs",
        "last",
        "last price",
        "market price",
        "current price",
        "dernier cours",
        "prix actuel",
        "close",
    ),
    "currency": ("currency", "ccy", "curr", "devise", "dev", "monnaie", "wahrung", "waehrung"),
    "total_value": (
        "total value",
        "valeur totale",
        "market value",
        "valeur de marche",
        "valeur",
        "value",
        "montant",
        "amount",
        "position value",
        "gesamtwert",
        "marktwert",
        "kurswert",
        "total",
    ),
    "category": (
        "category",
        "categorie",
        "type",
        "asset class",
        "asset type",
        "classe d actifs",
        "anlageklasse",
        "kategorie",
    ),
    "position_percent": (
        "positions %",
        "position %",
        "% portfolio",
        "% of portfolio",
        "% du portefeuille",
        "weight",
        "weight %",
        "poids",
        "poids %",
        "allocation",
        "allocation %",
        "gewichtung",
        "anteil",
    ),
    "daily_change": ("variation journaliere", "daily change", "day change", "change", "variation", "tagesveranderung"),
    "daily_change_percent": (
        "var quot %",
        "daily change %",
        "day change %",
        "change %",
        "variation %",
        "var %",
        "1d %",
        "tagesveranderung %",
    ),
    "gain_loss": (
        "g&p",
        "gain loss",
        "p&l",
        "unrealized p&l",
        "unrealized gain",
        "plus value",
        "plus moins value",
        "gewinn verlust",
    ),
    "gain_loss_percent": (
        "g&p %",
        "gain loss %",
        "p&l %",
        "performance",
        "perf %",
        "plus value %",
        "gewinn verlust %",
        "return %",
    ),
    "domicile": ("domicile", "fund domicile", "domicile du fonds", "domizil"),
    "sector": ("sector", "secteur", "industry", "branche", "sektor"),
    "geography": ("country", "pays", "region", "geography", "geographie", "zone geographique", "land"),
}
_NORMALIZED_SYNONYMS = {
    field_name: tuple(normalize_label(item) for item in items) for field_name, items in FIELD_SYNONYMS.items()
}
_HOME_CURRENCY_HINTS = ("home", "base currency", "reference currency", "devise de reference")

GRAND_TOTAL_LABELS = frozenset(
    normalize_label(item)
    for item in (
        "total",
        "grand total",
        "total général",
        "total portefeuille",
        "total du portefeuille",
        "total portfolio",
        "portfolio total",
        "gesamttotal",
        "total depot",
    )
)
SUBTOTAL_PREFIXES = tuple(
    normalize_label(item) for item in ("sous-total", "subtotal", "sub total", "zwischensumme", "summe", "somme", "total")
)
CASH_LABELS = frozenset(
    normalize_label(item)
    for item in (
        "cash",
        "cash balance",
        "liquidités",
        "solde espèces",
        "espèces",
        "solde en espèces",
        "kontostand",
        "barbestand",
        "liquidität",
    )
)


@dataclass
class StatementStructure:
    delimiter: str | None
    header_row_index: int
    column_map: ColumnMap = field(default_factory=dict)
    inferred: bool = False

    @property
    def usable(self) -> bool:
        return self.delimiter is not None and "symbol" in self.column_map


@dataclass
class RawRow:
    cells: list[str]
    category: str | None = None
    line_index: int = 0

    def cell(self, column_map: ColumnMap, field_name: str) -> str:
        index = column_map.get(field_name)
        if index is None or index >= len(self.cells):
            return ""
        return self.cells[index]

    def first_label(self) -> str:
        return next((cell for cell in self.cells if cell), "")


def split_rows(lines: list[str], delimiter: str) -> list[list[str]]:
    return [[cell.strip() for cell in row] for row in csv.reader(lines, delimiter=delimiter)]


def detect_delimiter(lines: list[str]) -> str | None:
    """Pick the delimiter giving the most uniform column count over a sample."""
    sample = lines[:SAMPLE_LINES]
    if not sample:
        return None
    best: tuple[float, int] | None = None
    best_delimiter: str | None = None
    for delimiter in DELIMITERS:
        counts = [len(row) for row in csv.reader(sample, delimiter=delimiter)]
        if not counts:
            continue
        modal_count, modal_hits = Counter(counts).most_common(1)[0]
        if modal_count < 2:
            continue
        share = modal_hits / len(counts)
        if share < MIN_UNIFORM_SHARE:
            continue
        score = (share, modal_count)
        if best is None or score > best:
            best = score
            best_delimiter = delimiter
    return best_delimiter


def classify_label(label: str) -> LabelKind | None:
    """Recognize grand-total, subtotal and cash rows by their leading label."""
    normalized = normalize_label(label)
    if not normalized:
        return None
    if normalized in GRAND_TOTAL_LABELS:
        return "grand_total"
    if normalized in CASH_LABELS:
        return "cash"
    if any(normalized == prefix or normalized.startswith(f"{prefix} ") for prefix in SUBTOTAL_PREFIXES):
        return "subtotal"
    return None


def category_label(cells: list[str]) -> str | None:
    """A category line has exactly one non-empty cell and no digits."""
    non_empty = [cell for cell in cells if cell]
    if len(non_empty) != 1:
        return None
    label = non_empty[0]
    if has_digit(label) or classify_label(label) in {"grand_total", "subtotal"}:
        return None
    return label


def match_header(cells: list[str], home_currency: str = "CHF") -> ColumnMap:
    """Map header cells to canonical fields; exact matches beat containment."""
    home = home_currency.strip().lower()
    scored: list[tuple[int, int, str]] = []
    for index, cell in enumerate(cells):
        normalized = normalize_label(cell)
        if not normalized:
            continue
        for field_name, synonyms in _NORMALIZED_SYNONYMS.items():
            score = 0
            for synonym in synonyms:
                if normalized == synonym:
                    score = max(score, 1000 + len(synonym))
                elif contains_phrase(normalized, synonym):
                    score = max(score, len(synonym))
            if not score:
                continue
            target = field_name
            if field_name == "total_value" and (
                contains_phrase(normalized, home) or any(contains_phrase(normalized, hint) for hint in _HOME_CURRENCY_HINTS)
            ):
                target = "total_value_home"
            scored.append((score, index, target))

    column_map: ColumnMap = {}
    taken: set[int] = set()
    for _, index, target in sorted(scored, key=lambda item: (-item[0], item[1])):
        if target in column_map or index in taken:
            continue
        column_map[target] = index
        taken.add(index)
    return column_map


def infer_columns(rows: list[list[str]]) -> ColumnMap:
    """Positional fallback: classify columns by the majority kind of their cells."""
    data_rows = [
        row
        for row in rows[:SAMPLE_LINES]
        if sum(1 for cell in row if cell) >= 2 and classify_label(next((c for c in row if c), "")) is None
    ]
    if not data_rows:
        return {}
    width = max(len(row) for row in data_rows)
    kinds: list[Counter[str]] = []
    for index in range(width):
        counter: Counter[str] = Counter()
        for row in data_rows:
            cell = row[index] if index < len(row) else ""
            if not cell:
                continue
            kind = numeric_kind(cell)
            if kind:
                counter[kind] += 1
                counter["numeric"] += 1
            elif CURRENCY_CODE.match(cell):
                counter["currency"] += 1
            else:
                counter["text"] += 1
        kinds.append(counter)

    quorum = max(1, len(data_rows) // 2 + len(data_rows) % 2)

    def majority(index: int, kind: str) -> bool:
        return kinds[index][kind] >= quorum

    # three-letter tickers (ROG, UBS) look like currency codes
    symbol_index = next(
        (index for index in range(width) if kinds[index]["text"] + kinds[index]["currency"] >= quorum), None
    )
    if symbol_index is None:
        return {}
    column_map: ColumnMap = {"symbol": symbol_index}
    later = range(symbol_index + 1, width)
    currency_index = next((index for index in later if majority(index, "currency")), None)
    if currency_index is not None:
        column_map["currency"] = currency_index
    name_index = next((index for index in later if majority(index, "text")), None)
    if name_index is not None:
        column_map["name"] = name_index

    numeric_columns = [index for index in later if majority(index, "numeric") and not majority(index, "percent")]
    percent_columns = [index for index in later if majority(index, "percent")]
    quantity_index = next((index for index in numeric_columns if majority(index, "integer")), None)
    price_index = next(
        (index for index in numeric_columns if index != quantity_index and majority(index, "decimal")), None
    )
    if quantity_index is None and len(numeric_columns) >= 2:
        quantity_index = numeric_columns[0]
    if price_index is None:
        price_index = next((index for index in numeric_columns if index != quantity_index), None)
    if quantity_index is None or price_index is None:
        return {}
    column_map["quantity"] = quantity_index
    column_map["price"] = price_index
    remaining = [index for index in numeric_columns if index not in {quantity_index, price_index}]
    if remaining:
        column_map["total_value"] = remaining[-1]
    if percent_columns:
        column_map["position_percent"] = percent_columns[-1]
        if len(percent_columns) >= 2:
            column_map["daily_change_percent"] = percent_columns[0]
    return column_map


def detect_structure(
    lines: list[str],
    home_currency: str = "CHF",
    scan_rows: int = HEADER_SCAN_ROWS,
) -> StatementStructure:
    """Detect delimiter, header row and column mapping for non-blank lines."""
    delimiter = detect_delimiter(lines)
    if delimiter is None:
        return StatementStructure(delimiter=None, header_row_index=-1)
    rows = split_rows(lines, delimiter)

    best_index = -1
    best_map: ColumnMap = {}
    for index, row in enumerate(rows[:scan_rows]):
        candidate = match_header(row, home_currency)
        if len(candidate) >= MIN_HEADER_MATCHES and len(candidate) > len(best_map):
            best_index, best_map = index, candidate

    if best_index >= 0:
        if "symbol" not in best_map and "isin" in best_map:
            best_map["symbol"] = best_map["isin"]
        if "symbol" in best_map:
            return StatementStructure(delimiter=delimiter, header_row_index=best_index, column_map=best_map)

    body = rows[best_index + 1 :] if best_index >= 0 else rows
    inferred = infer_columns([row for row in body if category_label(row) is None])
    return StatementStructure(
        delimiter=delimiter,
        header_row_index=best_index,
        column_map=inferred,
        inferred=True,
    )


def iter_raw_rows(
    rows: list[list[str]],
    structure: StatementStructure,
    reference: ReferenceData | None = None,
) -> list[RawRow]:
    """Rows after the header, tagged with the active category label."""
    reference = reference or get_reference_data()
    active: str | None = None
    raw_rows: list[RawRow] = []
    for index, cells in enumerate(rows):
        if index <= structure.header_row_index:
            continue
        label = category_label(cells)
        if label is not None:
            active = reference.canonical_category(label) or label.strip()
            continue
        if not any(cells):
            continue
        raw_rows.append(RawRow(cells=cells, category=active, line_index=index))
    return raw_rows
