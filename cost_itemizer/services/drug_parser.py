"""Chargemaster Drug Description Parser for the Hospital Cost Itemizer.

Turns the free-text description of a pharmacy line in a hospital's published
price file into structured dosing facts.  Chargemaster descriptions are terse,
upper-case and only partially structured:

    "METOPROLOL TARTRATE TAB 25 MG"
    "INSULIN GLARGINE INJ 100 UNITS/ML 10ML"
    "ESTRADIOL TD 0.025 MG/24HR"
    "LIDOCAINE 5% OINT TOP"

Public API
----------
    result: ParsedDescription | None = parse("METOPROLOL TARTRATE TAB 25 MG")

Pipeline
--------
    Step 1  Dosage form lookup   (whole-word scan, table order is the tie-break)
    Step 2  Route lookup         (same scan, independent of the form)
    Step 3  Dose extraction      (ratio "100 UNITS/ML" first, then flat "25 MG")
    Step 4  Name extraction      (leading letters before the first digit)

Every step is total: a description that matches nothing still produces a
``ParsedDescription`` with a name and no dose fields.  Only an empty
description yields ``None``.
"""
from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Optional

from pydantic import BaseModel, Field, model_validator

# ---------------------------------------------------------------------------
# Static vocabularies (ordered: the first match in table order wins)
# ---------------------------------------------------------------------------

ROUTES: tuple[tuple[str, str], ...] = (
    ("PO",  "Oral"),
    ("IV",  "Intravenous"),
    ("IM",  "Intramuscular"),
    ("SC",  "Subcutaneous"),
    ("SQ",  "Subcutaneous"),
    ("TD",  "Transdermal"),
    ("TOP", "Topical"),
    ("PR",  "Rectal"),
    ("SL",  "Sublingual"),
    ("INH", "Inhalation"),
    ("NA",  "Nasal"),
    ("OP",  "Ophthalmic"),
    ("OT",  "Otic"),
    ("VAG", "Vaginal"),
    ("EX",  "External"),
    ("RE",  "Rectal"),
)

FORMS: tuple[tuple[str, str], ...] = (
    ("SOLN", "Solution"),
    ("SOLR", "Solution for Reconstitution"),
    ("SOSY", "Syrup"),
    ("SUSP", "Suspension"),
    ("TABS", "Tablet"),
    ("TAB",  "Tablet"),
    ("TBEC", "Enteric Coated Tablet"),
    ("TBDP", "Disintegrating Tablet"),
    ("CAPS", "Capsule"),
    ("CAP",  "Capsule"),
    ("CPEP", "Capsule Extended Release"),
    ("CREA", "Cream"),
    ("OINT", "Ointment"),
    ("NEBU", "Nebulizer Solution"),
    ("INJ",  "Injection"),
    ("PACK", "Packet"),
    ("SUPP", "Suppository"),
    ("GEL",  "Gel"),
    ("LOTN", "Lotion"),
    ("PWDR", "Powder"),
    ("AERO", "Aerosol"),
)

# Discrete dosage forms priced per tablet/capsule
TABLET_CAPSULE_FORMS: frozenset[str] = frozenset(
    {"TABS", "TAB", "TBEC", "TBDP", "CAPS", "CAP", "CPEP"}
)

STRENGTH_UNITS: frozenset[str] = frozenset({"MG", "MCG", "G", "MEQ", "UNITS", "%"})
CONCENTRATION_UNITS: frozenset[str] = frozenset({"ML", "L", "HR", "24HR", "ACT", "DOSE"})

# ---------------------------------------------------------------------------
# Compiled regex patterns
# ---------------------------------------------------------------------------

def _whole_word(abbr: str) -> re.Pattern[str]:
    return re.compile(rf"\b{re.escape(abbr)}\b", re.IGNORECASE)


_FORM_PATTERNS: tuple[tuple[str, str, re.Pattern[str]], ...] = tuple(
    (abbr, full, _whole_word(abbr)) for abbr, full in FORMS
)
_ROUTE_PATTERNS: tuple[tuple[str, str, re.Pattern[str]], ...] = tuple(
    (abbr, full, _whole_word(abbr)) for abbr, full in ROUTES
)

# Ratio:  "100 UNITS/ML", "325 MG/10.15ML", "0.025 MG/24HR", "40 MEQ/"
# The denominator magnitude and unit are both optional.
_RATIO_RE = re.compile(
    r"""
    (?P<amount>\d+\.?\d*)
    \s*
    (?P<unit>
        MG|MCG|G|MEQ|UNITS?
      | INT(?:ERNATIONA)?'?L?\s*UNITS?
    )
    \s*/\s*
    (?P<per_amount>\d*\.?\d*)
    \s*
    (?P<per_unit>ML|L|HR|24HR|ACT|DOSE)?
    """,
    re.VERBOSE | re.IGNORECASE,
)

# Flat strength:  "25 MG", "500MG", "20 MEQ", "5%", "1000 INTL UNITS"
_STRENGTH_RE = re.compile(
    r"(?P<amount>\d+\.?\d*)\s*(?P<unit>MG|MCG|G|MEQ|UNITS?|INT(?:ERNATIONA)?'?L?\s*UNITS?|%)",
    re.IGNORECASE,
)

# "INTL UNITS", "INT'L UNIT", "INTERNATIONAL UNITS" → "UNITS"
_INTL_UNITS_RE = re.compile(r"^INT(?:ERNATIONA)?'?L?\s*UNITS?$", re.IGNORECASE)

_DIGIT_RE = re.compile(r"\d")
_NAME_RUN_RE = re.compile(r"^[A-Z\s\-]+")


# ---------------------------------------------------------------------------
# Pydantic model
# ---------------------------------------------------------------------------

def format_decimal(value: Decimal) -> str:
    """Render a Decimal without exponent or trailing zeros ("100", "0.025")."""
    return format(value.normalize(), "f")


class ParsedDescription(BaseModel):
    """
    Structured dosing facts extracted from one chargemaster description.

    Design invariant
    ----------------
    Optional fields travel in pairs: ``strength_unit`` iff ``strength``,
    ``route_full`` iff ``route``, ``form_full`` iff ``form``, and both
    concentration fields iff ``is_concentration``.
    """

    name: str = Field(min_length=1, description="Best-effort drug/item name")
    strength: Optional[Decimal] = Field(default=None, ge=0)
    strength_unit: Optional[str] = Field(default=None)
    is_concentration: bool = Field(default=False)
    concentration_per_amount: Optional[Decimal] = Field(default=None, gt=0)
    concentration_per_unit: Optional[str] = Field(default=None)
    route: Optional[str] = Field(default=None)
    route_full: Optional[str] = Field(default=None)
    form: Optional[str] = Field(default=None)
    form_full: Optional[str] = Field(default=None)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_field_pairs(self) -> "ParsedDescription":
        if (self.strength is None) != (self.strength_unit is None):
            raise ValueError("strength and strength_unit must be set together")
        has_ratio = self.concentration_per_amount is not None and self.concentration_per_unit is not None
        has_any_ratio = self.concentration_per_amount is not None or self.concentration_per_unit is not None
        if self.is_concentration and not has_ratio:
            raise ValueError("a concentration needs both denominator fields")
        if not self.is_concentration and has_any_ratio:
            raise ValueError("denominator fields are only valid on a concentration")
        if (self.route is None) != (self.route_full is None):
            raise ValueError("route and route_full must be set together")
        if (self.form is None) != (self.form_full is None):
            raise ValueError("form and form_full must be set together")
        return self

    @property
    def strength_label(self) -> Optional[str]:
        """``"25 MG"`` style label, or None when no strength was found."""
        if self.strength is None:
            return None
        return f"{format_decimal(self.strength)} {self.strength_unit}"

    @property
    def concentration(self) -> Optional[str]:
        """
        Display form of a ratio, e.g. ``"100 UNITS/ML"`` or ``"325 MG/10.15ML"``.
        The denominator magnitude is only written when it is greater than 1.
        """
        if not self.is_concentration:
            return None
        per = self.concentration_per_amount
        per_text = format_decimal(per) if per > 1 else ""
        return f"{self.strength_label}/{per_text}{self.concentration_per_unit}"


# ---------------------------------------------------------------------------
# Step helpers
# ---------------------------------------------------------------------------

def _lookup(
    text: str,
    patterns: tuple[tuple[str, str, re.Pattern[str]], ...],
) -> tuple[Optional[str], Optional[str]]:
    for abbr, full, pattern in patterns:
        if pattern.search(text):
            return abbr, full
    return None, None


def _to_decimal(raw: str) -> Optional[Decimal]:
    cleaned = raw.strip()
    if not cleaned or cleaned == ".":
        return None
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return None


def _canonical_strength_unit(raw_unit: str) -> str:
    unit = re.sub(r"\s+", " ", raw_unit.strip().upper())
    if _INTL_UNITS_RE.match(unit) or unit == "UNIT":
        return "UNITS"
    return unit


def _extract_dose(text: str) -> dict:
    """Step 3: ratio first, then flat strength.  Returns ParsedDescription kwargs."""
    m_ratio = _RATIO_RE.search(text)
    if m_ratio:
        amount = _to_decimal(m_ratio.group("amount"))
        per_amount = _to_decimal(m_ratio.group("per_amount"))
        if per_amount is None or per_amount == 0:
            per_amount = Decimal("1")
        if amount is not None:
            return {
                "strength": amount,
                "strength_unit": _canonical_strength_unit(m_ratio.group("unit")),
                "is_concentration": True,
                "concentration_per_amount": per_amount,
                "concentration_per_unit": (m_ratio.group("per_unit") or "ML").upper(),
            }

    m_flat = _STRENGTH_RE.search(text)
    if m_flat:
        amount = _to_decimal(m_flat.group("amount"))
        if amount is not None:
            return {
                "strength": amount,
                "strength_unit": _canonical_strength_unit(m_flat.group("unit")),
            }

    return {}


def _extract_name(text: str) -> str:
    """
    Step 4: the leading run of letters, spaces and hyphens before the first
    digit.  Falls back to the first two whitespace tokens when there is no
    digit or the description starts with something other than a letter.
    """
    first_digit = _DIGIT_RE.search(text)
    if first_digit:
        lead = _NAME_RUN_RE.match(text[: first_digit.start()])
        if lead and lead.group(0).strip():
            return lead.group(0).strip()
    return " ".join(text.split()[:2])


# ---------------------------------------------------------------------------
# Public parse() entry point
# ---------------------------------------------------------------------------

def parse(description: Optional[str]) -> Optional[ParsedDescription]:
    """
    Parse a single chargemaster description.

    Parameters
    ----------
    description : str | None
        Free-text description, e.g. ``"INSULIN GLARGINE INJ 100 UNITS/ML"``.

    Returns
    -------
    ParsedDescription | None
        ``None`` for an empty or blank description ("no data", not an error).
        Otherwise a value whose ``name`` is never empty; dose, route and form
        fields are left unset when the text does not carry them.
    """
    if not description or not description.strip():
        return None

    text = description.upper().strip()

    form, form_full = _lookup(text, _FORM_PATTERNS)
    route, route_full = _lookup(text, _ROUTE_PATTERNS)

    return ParsedDescription(
        name=_extract_name(text),
        route=route,
        route_full=route_full,
        form=form,
        form_full=form_full,
        **_extract_dose(text),
    )
