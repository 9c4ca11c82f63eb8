"""Catalog lookup helpers: linear search, item-type classification and codes.

The published file is small enough (tens of thousands of lines) that a
linear substring scan over descriptions and billing codes answers a query in
milliseconds, so there is no index.

Classification order:
  1. Pharmacy  – generic notes mention "pharmacy", an NDC code, or drug information
  2. Room      – notes or description mention "room"
  3. Procedure – a CPT or HCPCS code
  4. Supply    – notes mention "supply", or a revenue code (RC)
  5. Other
"""
from __future__ import annotations

import base64
import logging
import re
from collections.abc import Iterable
from enum import Enum
from urllib.parse import quote

from cost_itemizer.core.config import SEARCH_MIN_QUERY_LENGTH, SEARCH_RESULT_LIMIT
from cost_itemizer.models.charges import ChargeItem

logger = logging.getLogger(__name__)

# Code types shown first in a result row, most relevant first
CODE_PRIORITY: tuple[str, ...] = ("NDC", "CPT", "HCPCS", "CDM", "RC")
MAX_CODES_SHOWN = 2
ITEM_ID_LENGTH = 32

# Characters encodeURIComponent leaves untouched besides alphanumerics
_URI_COMPONENT_SAFE = "-_.!~*'()"
_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


class ItemType(str, Enum):
    PHARMACY = "pharmacy"
    ROOM = "room"
    PROCEDURE = "procedure"
    SUPPLY = "supply"
    OTHER = "other"

    @property
    def label(self) -> str:
        return _ITEM_TYPE_LABELS[self]


_ITEM_TYPE_LABELS: dict[ItemType, str] = {
    ItemType.PHARMACY: "Rx",
    ItemType.ROOM: "Room",
    ItemType.PROCEDURE: "Proc",
    ItemType.SUPPLY: "Supply",
    ItemType.OTHER: "Other",
}


def _normalize_query(query: str | None) -> str:
    return (query or "").strip().lower()


def _matches(item: ChargeItem, query: str) -> bool:
    description = (item.description or "").lower()
    codes = " ".join(c.code.lower() for c in item.code_information)
    return query in description or query in codes


def search_items(
    items: Iterable[ChargeItem],
    query: str | None,
    limit: int = SEARCH_RESULT_LIMIT,
) -> list[ChargeItem]:
    """
    Return up to *limit* items whose description or any billing code contains
    *query* (case-insensitive), in file order.  Queries shorter than
    ``SEARCH_MIN_QUERY_LENGTH`` characters return nothing.
    """
    needle = _normalize_query(query)
    if len(needle) < SEARCH_MIN_QUERY_LENGTH:
        return []

    results: list[ChargeItem] = []
    for item in items:
        if _matches(item, needle):
            results.append(item)
            if len(results) >= limit:
                break
    logger.debug("search_items: '%s' → %d result(s)", needle, len(results))
    return results


def classify_item(item: ChargeItem) -> ItemType:
    """Bucket *item* into a display category (see module docstring for the order)."""
    notes = ""
    if item.standard_charges:
        notes = (item.standard_charges[0].additional_generic_notes or "").lower()
    code_types = {c.type for c in item.code_information}

    if "pharmacy" in notes or "NDC" in code_types or item.drug_information is not None:
        return ItemType.PHARMACY
    if "room" in notes or "room" in (item.description or "").lower():
        return ItemType.ROOM
    if code_types & {"CPT", "HCPCS"}:
        return ItemType.PROCEDURE
    if "supply" in notes or "RC" in code_types:
        return ItemType.SUPPLY
    return ItemType.OTHER


def format_code_info(item: ChargeItem) -> str:
    """``"NDC: 00093-0058-01 | CDM: 250001"``: at most two codes, by priority."""
    if not item.code_information:
        return ""

    def _rank(code_type: str) -> int:
        return CODE_PRIORITY.index(code_type) if code_type in CODE_PRIORITY else len(CODE_PRIORITY)

    ordered = sorted(item.code_information, key=lambda c: _rank(c.type))
    return " | ".join(f"{c.type}: {c.code}" for c in ordered[:MAX_CODES_SHOWN])


def generate_item_id(item: ChargeItem) -> str:
    """
    Stable identifier built from the description and the first code.

    Base64 of the URI-encoded text with non-alphanumerics removed, truncated
    to 32 characters.  Two lines with the same description and first code
    share an id, which is how the estimate merges repeated additions.
    """
    first_code = item.code_information[0].code if item.code_information else ""
    encoded = quote((item.description or "") + first_code, safe=_URI_COMPONENT_SAFE)
    b64 = base64.b64encode(encoded.encode("ascii")).decode("ascii")
    return _NON_ALNUM.sub("", b64)[:ITEM_ID_LENGTH]
