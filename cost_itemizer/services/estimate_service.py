"""Cost Estimate Service: selected charge items → itemized total.

A ``CostEstimate`` is the in-memory list a patient builds while searching:

1. Each added item becomes a line with quantity 1; adding the same item
   again (same :func:`generate_item_id`) increments its quantity.
2. ``summarize`` prices every line under the chosen price mode, attaches
   the code summary and dose information, and totals the lines.
3. ``export_estimate`` flattens a summary to CSV or Excel for printing.

Design decisions
----------------
- Nothing is persisted; the caller owns the estimate's lifetime.
- Prices are resolved at summary time, so switching between gross charge
  and discounted cash reprices the whole estimate.
- The total equals the subtotal: no taxes, insurance or adjustments.
"""
from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

import polars as pl

from cost_itemizer.models.charges import ChargeItem
from cost_itemizer.services.drug_parser import parse
from cost_itemizer.services.pricing_service import PriceType, select_price
from cost_itemizer.services.search import format_code_info, generate_item_id

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("csv", "excel")


@dataclass
class EstimateLine:
    item: ChargeItem
    quantity: int = 1


@dataclass(frozen=True)
class EstimateLineSummary:
    item_id: str
    description: str
    code_info: str
    dose_info: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class EstimateSummary:
    price_type: PriceType
    lines: list[EstimateLineSummary]
    subtotal: Decimal
    total: Decimal


def dose_info(item: ChargeItem) -> str:
    """
    ``"25 MG × 30 EA"`` when the description carries a strength, otherwise just
    the package (``"30 EA"``), otherwise ``""``.
    """
    parsed = parse(item.description)
    drug_info = item.drug_information
    package = ""
    if drug_info is not None and drug_info.unit and drug_info.type:
        package = f"{drug_info.unit} {drug_info.type}"

    if parsed is not None and parsed.strength_label:
        return f"{parsed.strength_label} × {package}" if package else parsed.strength_label
    return package


@dataclass
class CostEstimate:
    """Ordered, mutable list of estimate lines."""

    lines: list[EstimateLine] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.lines)

    def add_item(self, item: ChargeItem) -> EstimateLine:
        item_id = generate_item_id(item)
        for line in self.lines:
            if generate_item_id(line.item) == item_id:
                line.quantity += 1
                return line
        line = EstimateLine(item=item)
        self.lines.append(line)
        return line

    def update_quantity(self, index: int, delta: int) -> None:
        """Shift a line's quantity by *delta*; the line is dropped at zero or below."""
        line = self.lines[index]
        new_quantity = line.quantity + delta
        if new_quantity <= 0:
            self.remove(index)
        else:
            line.quantity = new_quantity

    def remove(self, index: int) -> None:
        del self.lines[index]

    def clear(self) -> None:
        self.lines.clear()

    def summarize(self, price_type: PriceType = PriceType.GROSS_CHARGE) -> EstimateSummary:
        summaries: list[EstimateLineSummary] = []
        subtotal = Decimal("0")
        for line in self.lines:
            unit_price = select_price(line.item, price_type)
            line_total = unit_price * line.quantity
            subtotal += line_total
            summaries.append(
                EstimateLineSummary(
                    item_id=generate_item_id(line.item),
                    description=line.item.description or "",
                    code_info=format_code_info(line.item),
                    dose_info=dose_info(line.item),
                    quantity=line.quantity,
                    unit_price=unit_price,
                    line_total=line_total,
                )
            )
        return EstimateSummary(price_type=price_type, lines=summaries, subtotal=subtotal, total=subtotal)


# ---------------------------------------------------------------------------
# Export helpers
# ---------------------------------------------------------------------------

def export_estimate(summary: EstimateSummary, export_format: str = "csv") -> bytes:
    """
    Convert an estimate summary to a flat CSV or Excel file.

    One row per line plus a closing ``TOTAL`` row.

    Parameters
    ----------
    summary : result of :meth:`CostEstimate.summarize`.
    export_format : "csv" (default) or "excel".
    """
    if export_format not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format '{export_format}'")

    rows: list[dict[str, Any]] = [
        {
            "description":  line.description,
            "codes":        line.code_info,
            "dose":         line.dose_info,
            "quantity":     line.quantity,
            "price":        float(line.unit_price),
            "line_total":   float(line.line_total),
        }
        for line in summary.lines
    ]
    rows.append({
        "description":  "TOTAL",
        "codes":        "",
        "dose":         "",
        "quantity":     sum(line.quantity for line in summary.lines),
        "price":        None,
        "line_total":   float(summary.total),
    })

    df = pl.DataFrame(
        rows,
        schema={
            "description": pl.Utf8,
            "codes": pl.Utf8,
            "dose": pl.Utf8,
            "quantity": pl.Int64,
            "price": pl.Float64,
            "line_total": pl.Float64,
        },
    )
    logger.info(
        "export_estimate: %d line(s)  total=%s  format=%s",
        len(summary.lines), summary.total, export_format,
    )

    if export_format == "excel":
        buffer = io.BytesIO()
        df.write_excel(buffer)
        return buffer.getvalue()

    return df.write_csv().encode("utf-8")


def estimate_from_lines(
    items: list[ChargeItem],
    lines: list[tuple[str, int]],
) -> CostEstimate:
    """
    Rebuild an estimate from ``(item_id, quantity)`` pairs against *items*.
    Raises ``KeyError`` for an unknown item id; non-positive quantities are skipped.
    """
    by_id: dict[str, ChargeItem] = {}
    for item in items:
        by_id.setdefault(generate_item_id(item), item)

    estimate = CostEstimate()
    for item_id, quantity in lines:
        item: Optional[ChargeItem] = by_id.get(item_id)
        if item is None:
            raise KeyError(item_id)
        if quantity <= 0:
            continue
        line = estimate.add_item(item)
        line.quantity += quantity - 1
    return estimate
