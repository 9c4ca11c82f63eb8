from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from cost_itemizer.models.charges import ChargeItem

logger = logging.getLogger(__name__)

# Share of the gross charge used when a line publishes no discounted cash price
DISCOUNTED_CASH_FALLBACK_RATE = Decimal("0.4")


class PriceType(str, Enum):
    GROSS_CHARGE = "gross_charge"
    DISCOUNTED_CASH = "discounted_cash"


def _parse_decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    raw = str(value).strip().replace(" ", "").lstrip("$")
    if not raw:
        return None
    # Handle both comma-decimal (European) and dot-decimal (US) formats
    if "," in raw and "." in raw:
        if raw.rfind(",") > raw.rfind("."):
            raw = raw.replace(".", "").replace(",", ".")
        else:
            raw = raw.replace(",", "")
    elif "," in raw:
        raw = raw.replace(",", ".")
    try:
        parsed = Decimal(raw)
    except InvalidOperation:
        return None
    if not parsed.is_finite():
        return None
    return parsed


def parse_price_type(value: str | PriceType | None) -> PriceType:
    """Resolve a user-supplied price mode; ``None`` means gross charge."""
    if value is None:
        return PriceType.GROSS_CHARGE
    try:
        return PriceType(value)
    except ValueError:
        raise ValueError(f"Unknown price type '{value}'") from None


def select_price(item: ChargeItem, price_type: PriceType = PriceType.GROSS_CHARGE) -> Decimal:
    """
    Return the price shown for *item* under *price_type*.

    Only the first ``standard_charges`` entry is read.

    - gross charge:    ``gross_charge``, falling back to ``minimum``
    - discounted cash: ``discounted_cash``, falling back to 40 % of ``gross_charge``

    Missing or zero values fall through to the next candidate; ``Decimal("0")``
    when nothing resolves.
    """
    if not item.standard_charges:
        return Decimal("0")
    charge = item.standard_charges[0]

    if price_type == PriceType.GROSS_CHARGE:
        candidates = [_parse_decimal(charge.gross_charge), _parse_decimal(charge.minimum)]
    else:
        gross = _parse_decimal(charge.gross_charge)
        candidates = [
            _parse_decimal(charge.discounted_cash),
            gross * DISCOUNTED_CASH_FALLBACK_RATE if gross is not None else None,
        ]

    for candidate in candidates:
        if candidate:
            return candidate

    logger.debug("select_price: no %s price for '%s'", price_type.value, item.description)
    return Decimal("0")
