"""Models for a hospital's published standard-charge file.

Only the keys the itemizer reads are declared; everything else in the
published file (payer rates, settings, billing classes) is ignored.
"""
from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, Field, field_validator


class DrugInformation(BaseModel):
    """Package metadata published next to a pharmacy line, e.g. ``{"unit": 10, "type": "ML"}``."""

    unit: Optional[Union[int, float, str]] = Field(default=None, description="Package quantity")
    type: Optional[str] = Field(default=None, description="Package unit code: EA, ML, L, GM…")

    model_config = {"frozen": True}


class StandardCharge(BaseModel):
    gross_charge: Optional[float] = None
    discounted_cash: Optional[float] = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    additional_generic_notes: Optional[str] = None

    model_config = {"frozen": True}


class CodeInformation(BaseModel):
    code: str = ""
    type: str = ""

    model_config = {"frozen": True}

    @field_validator("code", "type", mode="before")
    @classmethod
    def coerce_to_str(cls, value: Any) -> str:
        # NDC and CDM codes are sometimes published as bare numbers
        return "" if value is None else str(value)


class ChargeItem(BaseModel):
    """One entry of ``standard_charge_information``."""

    description: Optional[str] = None
    drug_information: Optional[DrugInformation] = None
    standard_charges: list[StandardCharge] = Field(default_factory=list)
    code_information: list[CodeInformation] = Field(default_factory=list)

    model_config = {"frozen": True}


class ChargeCatalog(BaseModel):
    """The whole published file."""

    hospital_name: Optional[str] = None
    hospital_address: list[str] = Field(default_factory=list)
    last_updated_on: Optional[str] = None
    standard_charge_information: list[ChargeItem] = Field(default_factory=list)
