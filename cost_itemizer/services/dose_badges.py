from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from cost_itemizer.models.charges import ChargeItem
from cost_itemizer.services.drug_parser import ParsedDescription, parse
from cost_itemizer.services.unit_pricing import UnitPriceResult, calculate_unit_price


@dataclass(frozen=True)
class DoseBadge:
    """One short label shown under a pharmacy line."""

    kind: str
    """One of ``"strength"``, ``"route"``, ``"form"``, ``"package"``, ``"total"``."""

    label: str


def describe_dose(
    item: ChargeItem,
    price: Any,
    parsed: Optional[ParsedDescription] = None,
    unit_price: Optional[UnitPriceResult] = None,
) -> list[DoseBadge]:
    """
    Build the dose badges for *item*, in display order:
    strength or concentration, route, form, package, total dose.

    *parsed* and *unit_price* are recomputed when not supplied.
    """
    if parsed is None:
        parsed = parse(item.description)
    if unit_price is None:
        unit_price = calculate_unit_price(item, price, parsed=parsed)
    drug_info = item.drug_information

    badges: list[DoseBadge] = []
    if parsed is not None:
        strength = parsed.concentration or parsed.strength_label
        if strength:
            badges.append(DoseBadge("strength", strength))
        if parsed.route_full:
            badges.append(DoseBadge("route", parsed.route_full))
        if parsed.form_full:
            badges.append(DoseBadge("form", parsed.form_full))

    if drug_info is not None and drug_info.unit and drug_info.type:
        badges.append(DoseBadge("package", f"{drug_info.unit} {drug_info.type}"))

    total_dose: Optional[Decimal] = getattr(unit_price, "total_dose", None)
    dose_unit: Optional[str] = getattr(unit_price, "dose_unit", None)
    if total_dose and dose_unit:
        badges.append(DoseBadge("total", f"Total: {total_dose:.1f} {dose_unit}"))

    return badges
