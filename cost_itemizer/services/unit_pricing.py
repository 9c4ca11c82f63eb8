"""Unit-price normalization for pharmacy lines.

A published price covers a whole package ("10 ML" vial, "30 EA" bottle).  To
compare items this module derives price per dose from the parsed description
and the package metadata:

    ByMassUnitPrice   liquid/concentration items packaged by volume
                      → price per mL and per mg (or per unit of strength)
    ByCountUnitPrice  discrete forms (tablets, capsules, "EA" packages)
                      → price per each and per mg
    PlainUnitPrice    no usable strength → price per package unit only

Public API
----------
    result = calculate_unit_price(item, Decimal("50"))
    headline = unit_price_headline(result)   # (Decimal("0.05"), "/mg")
"""
from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from decimal import Decimal
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field

from cost_itemizer.models.charges import ChargeItem
from cost_itemizer.services.drug_parser import (
    TABLET_CAPSULE_FORMS,
    ParsedDescription,
    format_decimal,
    parse,
)
from cost_itemizer.services.pricing_service import _parse_decimal

logger = logging.getLogger(__name__)

DEFAULT_PACKAGE_TYPE = "EA"
VOLUME_PACKAGE_TYPES = frozenset({"ML", "L"})
ML_PER_LITER = Decimal("1000")

# Numeric prefix of a package quantity such as "10 ML" or "2.5"
_LEADING_NUMBER_RE = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)")


# ---------------------------------------------------------------------------
# Result variants
# ---------------------------------------------------------------------------

class ByMassUnitPrice(BaseModel):
    """Concentration item sold by volume (vials, bags, oral solutions)."""

    kind: Literal["by_mass"] = "by_mass"
    price_per_ml: Optional[Decimal] = None
    price_per_mg: Optional[Decimal] = None
    total_dose: Decimal
    dose_unit: str
    package_info: str

    model_config = {"frozen": True}


class ByCountUnitPrice(BaseModel):
    """Discrete dosage form with a known strength per unit."""

    kind: Literal["by_count"] = "by_count"
    price_per_unit: Decimal
    price_per_mg: Optional[Decimal] = None
    total_dose: Decimal
    dose_unit: str
    package_info: str
    strength_per_unit: str

    model_config = {"frozen": True}


class PlainUnitPrice(BaseModel):
    """Fallback when no strength or concentration can be derived."""

    kind: Literal["plain"] = "plain"
    price_per_unit: Decimal
    package_info: str

    model_config = {"frozen": True}


UnitPriceResult = Annotated[
    Union[ByMassUnitPrice, ByCountUnitPrice, PlainUnitPrice],
    Field(discriminator="kind"),
]


class PackageInfo(BaseModel):
    """Package metadata after defaults are applied."""

    quantity: Decimal
    type: str

    model_config = {"frozen": True}

    @property
    def label(self) -> str:
        return f"{format_decimal(self.quantity)} {self.type}"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _parse_package_quantity(value: Any) -> Decimal:
    """Positive package quantity; 1 when absent, non-numeric or not positive."""
    quantity = _parse_decimal(value)
    if quantity is None and isinstance(value, str):
        prefix = _LEADING_NUMBER_RE.match(value)
        quantity = _parse_decimal(prefix.group(0)) if prefix else None
    if quantity is None or quantity <= 0:
        return Decimal("1")
    return quantity


def _coerce_item(item: ChargeItem | Mapping[str, Any]) -> ChargeItem:
    if isinstance(item, ChargeItem):
        return item
    return ChargeItem.model_validate(item)


def resolve_package(item: ChargeItem | Mapping[str, Any]) -> Optional[PackageInfo]:
    """
    Apply the package defaults (quantity 1, type "EA") to *item*'s drug
    information.  ``None`` only when the item carries no drug information at
    all, which is different from drug information with missing sub-fields.
    """
    drug_info = _coerce_item(item).drug_information
    if drug_info is None:
        return None
    package_type = (drug_info.type or "").strip().upper() or DEFAULT_PACKAGE_TYPE
    return PackageInfo(quantity=_parse_package_quantity(drug_info.unit), type=package_type)


def _per_dose(price: Decimal, total_dose: Decimal) -> Optional[Decimal]:
    # A zero total dose has no meaningful per-mg price
    return price / total_dose if total_dose > 0 else None


# ---------------------------------------------------------------------------
# Public calculate_unit_price() entry point
# ---------------------------------------------------------------------------

def calculate_unit_price(
    item: ChargeItem | Mapping[str, Any],
    price: Any,
    parsed: Optional[ParsedDescription] = None,
) -> Optional[UnitPriceResult]:
    """
    Derive normalized per-dose pricing for one charge item.

    Parameters
    ----------
    item : ChargeItem | Mapping
        The catalog entry; plain dicts shaped like the published file are
        validated into a :class:`ChargeItem`.
    price : number | Decimal | None
        Package price already selected by the caller.
    parsed : ParsedDescription | None
        Pre-parsed description; parsed from ``item.description`` when omitted.

    Returns
    -------
    ByMassUnitPrice | ByCountUnitPrice | PlainUnitPrice | None
        ``None`` when the price is missing or zero, or when the item has no
        drug information at all.  The first matching branch wins:

        1. concentration + strength, packaged by volume (ML or L)  → by mass
        2. strength, packaged as "EA" or a tablet/capsule form     → by count
        3. anything else                                           → plain
    """
    charge_item = _coerce_item(item)
    amount = _parse_decimal(price)
    if not amount:
        return None

    package = resolve_package(charge_item)
    if package is None:
        return None

    if parsed is None:
        parsed = parse(charge_item.description)

    has_strength = parsed is not None and parsed.strength is not None

    if has_strength and parsed.is_concentration and package.type in VOLUME_PACKAGE_TYPES:
        ml_quantity = package.quantity * ML_PER_LITER if package.type == "L" else package.quantity
        per_amount = parsed.concentration_per_amount or Decimal("1")
        total_dose = parsed.strength / per_amount * ml_quantity
        logger.debug("calculate_unit_price: by mass '%s' %s mL", charge_item.description, ml_quantity)
        return ByMassUnitPrice(
            price_per_ml=amount / ml_quantity,
            price_per_mg=_per_dose(amount, total_dose),
            total_dose=total_dose,
            dose_unit=parsed.strength_unit,
            package_info=package.label,
        )

    if has_strength and (package.type == DEFAULT_PACKAGE_TYPE or parsed.form in TABLET_CAPSULE_FORMS):
        total_dose = parsed.strength * package.quantity
        logger.debug("calculate_unit_price: by count '%s' x%s", charge_item.description, package.quantity)
        return ByCountUnitPrice(
            price_per_unit=amount / package.quantity,
            price_per_mg=_per_dose(amount, total_dose),
            total_dose=total_dose,
            dose_unit=parsed.strength_unit,
            package_info=f"{format_decimal(package.quantity)} {parsed.form_full or package.type}",
            strength_per_unit=parsed.strength_label,
        )

    return PlainUnitPrice(
        price_per_unit=amount / package.quantity,
        package_info=package.label,
    )


def unit_price_headline(result: Optional[UnitPriceResult]) -> Optional[tuple[Decimal, str]]:
    """
    The single comparable figure shown next to a price: per mg when known,
    otherwise per mL, otherwise per each.
    """
    if result is None:
        return None
    price_per_mg = getattr(result, "price_per_mg", None)
    if price_per_mg is not None:
        return price_per_mg, "/mg"
    price_per_ml = getattr(result, "price_per_ml", None)
    if price_per_ml is not None:
        return price_per_ml, "/mL"
    price_per_unit = getattr(result, "price_per_unit", None)
    if price_per_unit is not None:
        return price_per_unit, "/ea"
    return None
