"""Allocation tables with look-through expansion of fund holdings."""

from __future__ import annotations

import logging

import pandas as pd

from portfolio_lens.config.reference import ReferenceData, get_reference_data
from portfolio_lens.portfolio.models import UNKNOWN, AllocationBucket, AllocationTables, Position

COLUMNS = ["Dimension", "Bucket", "Value"]
LOGGER = logging.getLogger(__name__)
TABLES = {
    "asset": "asset_allocation",
    "currency": "currency_allocation",
    "country": "true_country_allocation",
    "sector": "true_sector_allocation",
    "domicile": "domicile_allocation",
}


def _known(value: str | None) -> str:
    text = (value or "").strip()
    return text if text else UNKNOWN


def _look_through(position: Position, dimension: str, flat_value: str | None) -> list[tuple[str, str, float]]:
    """Split a position's value over its composition, or keep it whole."""
    value = position.total_value_home
    composition = position.composition
    weights = composition.breakdown(dimension) if composition is not None else []
    if not weights:
        return [(dimension, _known(flat_value), value)]
    return [(dimension, _known(item.key), value * item.weight / 100.0) for item in weights]


def domicile_label(code: str | None, reference: ReferenceData | None = None) -> str:
    info = (reference or get_reference_data()).domicile(code)
    return info.name if info else UNKNOWN


def build_exposure_frame(
    positions: list[Position],
    cash_balance: float = 0.0,
    home_currency: str = "CHF",
    reference: ReferenceData | None = None,
) -> pd.DataFrame:
    reference = reference or get_reference_data()
    records: list[tuple[str, str, float]] = []
    for position in positions:
        records.append(("asset", _known(position.category), position.total_value_home))
        records.extend(_look_through(position, "currency", position.currency))
        records.extend(_look_through(position, "country", position.geography))
        records.extend(_look_through(position, "sector", position.sector))
        records.append(("domicile", domicile_label(position.domicile, reference), position.total_value_home))
    if positions and cash_balance:
        records.append(("currency", home_currency.upper(), cash_balance))
    return pd.DataFrame.from_records(records, columns=COLUMNS)


def _buckets(frame: pd.DataFrame, total_value: float | None = None) -> list[AllocationBucket]:
    if frame.empty:
        return []
    totals = frame.groupby("Bucket", as_index=False)["Value"].sum()
    short = totals.loc[totals["Value"] < 0]
    if not short.empty:
        LOGGER.info("net short buckets left out of allocation: buckets=%s", ",".join(map(str, short["Bucket"])))
    totals = totals.loc[totals["Value"] > 0]
    base = float(totals["Value"].sum())
    if base <= 0:
        return []
    totals = totals.assign(Percentage=totals["Value"] / base * 100.0).sort_values(["Value", "Bucket"], ascending=[False, True])
    buckets = []
    for row in totals.itertuples(index=False):
        share = round(float(row.Value) / total_value * 100.0, 4) if total_value and total_value > 0 else None
        buckets.append(
            AllocationBucket(
                name=str(row.Bucket),
                value=float(row.Value),
                percentage=round(float(row.Percentage), 4),
                portfolio_percentage=share,
            )
        )
    return buckets


def build_asset_allocation(positions: list[Position], total_value: float | None = None) -> list[AllocationBucket]:
    records = [("asset", _known(position.category), position.total_value_home) for position in positions]
    return _buckets(pd.DataFrame.from_records(records, columns=COLUMNS), total_value)


def compute_allocations(
    positions: list[Position],
    cash_balance: float = 0.0,
    home_currency: str = "CHF",
    reference: ReferenceData | None = None,
    total_value: float | None = None,
) -> AllocationTables:
    """Aggregate positions into the five allocation tables.

    Funds with a composition contribute ``weight / 100`` of their value to each
    composition key, per dimension; dimensions without breakdown data fall
    back to the position's own attribute. Residual composition weight is not
    attributed, so each table's percentages use that table's attributed total
    as base and sum to 100. Buckets that net to a short exposure are left out.
    When ``total_value`` is given, ``portfolio_percentage`` carries each
    bucket's share of it, so an explicit grand total above the attributed sum
    shows up as an unallocated remainder.
    """
    if not positions:
        return AllocationTables()
    frame = build_exposure_frame(positions, cash_balance, home_currency, reference)
    tables = {
        attribute: _buckets(frame[frame["Dimension"] == dimension], total_value)
        for dimension, attribute in TABLES.items()
    }
    return AllocationTables(**tables)
