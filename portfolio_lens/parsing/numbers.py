"""Locale-tolerant numeric parsing for statement cells."""

from __future__ import annotations

import math
import re
from typing import Literal

NumericKind = Literal["integer", "decimal", "percent"]

_GROUPING = re.compile(r"['’ʼ\s]")
_NEGATIVE_PARENS = re.compile(r"\(\s*[^()]*\d[^()]*\)")
_NUMERIC_RESIDUE = re.compile(r"[^\d.,\-]")
_COMMA_DECIMAL = re.compile(r"^\d*,\d{1,2}$")
_NUMERIC_CELL = re.compile(
    r"^[(+\-−]?\s*(?:[A-Za-z]{3}\s*|[$€£¥]\s*)?[(+\-−]?\s*"
    r"\d[\d'’\s,.]*"
    r"\s*(?:%|[A-Za-z]{3})?\s*\)?-?$"
)


def parse_locale_number(raw: object) -> float:
    """Parse a statement amount such as ``"1'234.56"``, ``"CHF 12,5"`` or ``"(300)"``.

    ``.`` is the decimal point; a lone ``,`` followed by one or two digits is
    read as a decimal comma when no ``.`` is present, every other comma is
    grouping. Unparseable or empty input yields ``0.0``.
    """
    if raw is None or isinstance(raw, bool):
        return 0.0
    if isinstance(raw, (int, float)):
        return float(raw) if math.isfinite(raw) else 0.0

    text = str(raw).strip().replace("−", "-")
    if not text:
        return 0.0

    negative = bool(_NEGATIVE_PARENS.search(text))
    cleaned = _NUMERIC_RESIDUE.sub("", _GROUPING.sub("", text))
    if cleaned.startswith("-") or cleaned.endswith("-"):
        negative = True
    cleaned = cleaned.replace("-", "")

    if "." in cleaned:
        cleaned = cleaned.replace(",", "")
        if cleaned.count(".") > 1:
            cleaned = cleaned.replace(".", "")
    elif cleaned.count(",") == 1 and _COMMA_DECIMAL.match(cleaned):
        cleaned = cleaned.replace(",", ".")
    else:
        cleaned = cleaned.replace(",", "")

    try:
        value = float(cleaned)
    except ValueError:
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return -value if negative else value


def looks_numeric(cell: object) -> bool:
    text = str(cell or "").strip()
    return bool(text) and bool(_NUMERIC_CELL.match(text))


def numeric_kind(cell: object) -> NumericKind | None:
    """Classify a cell for positional column inference."""
    text = str(cell or "").strip()
    if not looks_numeric(text):
        return None
    if text.endswith("%"):
        return "percent"
    digits = _NUMERIC_RESIDUE.sub("", _GROUPING.sub("", text)).replace("-", "")
    if "." in digits or (digits.count(",") == 1 and _COMMA_DECIMAL.match(digits)):
        return "decimal"
    return "integer"


def has_digit(cell: object) -> bool:
    return any(char.isdigit() for char in str(cell or ""))
