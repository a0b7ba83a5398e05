"""Statement parsing package."""

from portfolio_lens.parsing.numbers import parse_locale_number
from portfolio_lens.parsing.statement_parser import NoPositionsFoundError, StatementParser, parse_statement
from portfolio_lens.parsing.structure import StatementStructure, detect_structure

__all__ = [
    "NoPositionsFoundError",
    "StatementParser",
    "StatementStructure",
    "detect_structure",
    "parse_locale_number",
    "parse_statement",
]
