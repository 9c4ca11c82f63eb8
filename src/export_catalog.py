"""
export_catalog.py
=================
Exports a hospital's published standard-charge file as a flat price sheet,
one row per item, with the parsed dosing fields and the unit-price headline
next to each description.

Usage
-----
    python src/export_catalog.py --input data/charges.json

Examples
--------
    # Discounted cash prices, written as CSV:
    python src/export_catalog.py --input data/charges.json \\
        --price-type discounted_cash \\
        --output output/charges_cash.csv

When ``--output`` is omitted the sheet goes to ``output/price_sheet.xlsx``.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# ---------------------------------------------------------------------------
# Make the cost_itemizer package importable when run from a checkout
# ---------------------------------------------------------------------------
_REPO_DIR = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(_REPO_DIR))

from cost_itemizer.core.catalog_store import CatalogLoadError, load_catalog
from cost_itemizer.services.enrichment import build_catalog_frame
from cost_itemizer.services.pricing_service import parse_price_type

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(message)s",
)
logger = logging.getLogger(__name__)

OUTPUT_DIR = _REPO_DIR / "output"

# Column widths used for the Excel sheet
_WIDE_COLUMNS = {"description", "codes", "description_name"}


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Export a standard-charge file as an enriched price sheet.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--input", required=True, help="Path to the standard-charge JSON file.")
    parser.add_argument(
        "--price-type",
        default="gross_charge",
        help="gross_charge (default) or discounted_cash.",
    )
    parser.add_argument(
        "--output",
        default=None,
        help="Output path (.xlsx or .csv). Defaults to output/price_sheet.xlsx",
    )
    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    try:
        price_type = parse_price_type(args.price_type)
    except ValueError as exc:
        logger.error("%s", exc)
        sys.exit(2)

    try:
        catalog = load_catalog(args.input)
    except CatalogLoadError as exc:
        logger.error("%s", exc)
        sys.exit(1)

    df = build_catalog_frame(catalog.standard_charge_information, price_type)
    logger.info("Built price sheet: %d row(s), price type %s", df.height, price_type.value)

    output_path = Path(args.output) if args.output else OUTPUT_DIR / "price_sheet.xlsx"
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if output_path.suffix.lower() == ".csv":
        df.write_csv(output_path)
    else:
        df.write_excel(
            output_path,
            worksheet="Price sheet",
            column_formats={"price": "#,##0.00", "unit_price": "0.000000"},
            column_widths={col: 40 for col in df.columns if col in _WIDE_COLUMNS},
        )

    print(f"Price sheet exported: {output_path}")


if __name__ == "__main__":
    main()
