"""Polars-powered batch enrichment of chargemaster descriptions.

``parse`` works on one string at a time; this module applies it to whole
columns so an entire price file can be reviewed or exported in one pass:

  - ``parse_dataframe_column`` adds the parsed dosing fields next to a
    description column
  - ``build_catalog_frame`` turns catalog items into a flat price sheet with
    item type, codes, price and the unit-price headline

Numeric outputs are ``Float64``; text outputs are ``Utf8`` with ``None``
where the description carries no such fact.
"""
from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Optional

import polars as pl

from cost_itemizer.models.charges import ChargeItem
from cost_itemizer.services.drug_parser import ParsedDescription, parse
from cost_itemizer.services.pricing_service import PriceType, select_price
from cost_itemizer.services.search import classify_item, format_code_info
from cost_itemizer.services.unit_pricing import calculate_unit_price, unit_price_headline

# suffix → (dtype, getter)
_PARSED_COLUMNS: dict[str, tuple[Any, Any]] = {
    "name":          (pl.Utf8,    lambda p: p.name),
    "strength":      (pl.Float64, lambda p: float(p.strength) if p.strength is not None else None),
    "strength_unit": (pl.Utf8,    lambda p: p.strength_unit),
    "concentration": (pl.Utf8,    lambda p: p.concentration),
    "route":         (pl.Utf8,    lambda p: p.route),
    "form":          (pl.Utf8,    lambda p: p.form),
}


def _parsed_values(parsed: list[Optional[ParsedDescription]], suffix: str) -> list[Any]:
    _, getter = _PARSED_COLUMNS[suffix]
    return [getter(p) if p is not None else None for p in parsed]


def parse_series(series: pl.Series) -> list[Optional[ParsedDescription]]:
    """Parse every value of a Polars string Series (``None`` → ``None``)."""
    return [parse(value) for value in series.cast(pl.Utf8).to_list()]


def parse_dataframe_column(df: pl.DataFrame, col: str) -> pl.DataFrame:
    """
    Return *df* with ``<col>_name``, ``<col>_strength``, ``<col>_strength_unit``,
    ``<col>_concentration``, ``<col>_route`` and ``<col>_form`` columns built
    from the descriptions in *col*.
    """
    parsed = parse_series(df[col])
    return df.with_columns(
        [
            pl.Series(f"{col}_{suffix}", _parsed_values(parsed, suffix), dtype=dtype)
            for suffix, (dtype, _) in _PARSED_COLUMNS.items()
        ]
    )


def build_catalog_frame(
    items: Iterable[ChargeItem],
    price_type: PriceType = PriceType.GROSS_CHARGE,
) -> pl.DataFrame:
    """One row per catalog item, priced under *price_type*."""
    rows: list[dict[str, Any]] = []
    for item in items:
        price = select_price(item, price_type)
        headline = unit_price_headline(calculate_unit_price(item, price))
        rows.append({
            "description":      item.description or "",
            "item_type":        classify_item(item).label,
            "codes":            format_code_info(item),
            "price":            float(price),
            "unit_price":       float(headline[0]) if headline else None,
            "unit_price_basis": headline[1] if headline else None,
        })

    df = pl.DataFrame(
        rows,
        schema={
            "description": pl.Utf8,
            "item_type": pl.Utf8,
            "codes": pl.Utf8,
            "price": pl.Float64,
            "unit_price": pl.Float64,
            "unit_price_basis": pl.Utf8,
        },
    )
    return parse_dataframe_column(df, "description")
