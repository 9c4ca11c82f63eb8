from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

import strawberry

from cost_itemizer.core.catalog_store import get_catalog
from cost_itemizer.core.config import DEFAULT_PRICE_TYPE
from cost_itemizer.models.charges import ChargeItem
from cost_itemizer.services.dose_badges import describe_dose
from cost_itemizer.services.drug_parser import ParsedDescription, parse
from cost_itemizer.services.estimate_service import EstimateSummary, estimate_from_lines
from cost_itemizer.services.pricing_service import parse_price_type, select_price
from cost_itemizer.services.search import classify_item, format_code_info, generate_item_id, search_items
from cost_itemizer.services.unit_pricing import (
    ByCountUnitPrice,
    ByMassUnitPrice,
    UnitPriceResult,
    calculate_unit_price,
    unit_price_headline,
)

logger = logging.getLogger(__name__)


def _float(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


@strawberry.type
class ParsedDescriptionNode:
    name: str
    strength: Optional[float]
    strength_unit: Optional[str]
    is_concentration: bool
    concentration: Optional[str]
    concentration_per_amount: Optional[float]
    concentration_per_unit: Optional[str]
    route: Optional[str]
    route_full: Optional[str]
    form: Optional[str]
    form_full: Optional[str]


@strawberry.type
class UnitPriceNode:
    """Flattened unit-price variant; ``kind`` is by_mass | by_count | plain."""
    kind:              str
    package_info:      str
    price_per_unit:    Optional[float] = None
    price_per_ml:      Optional[float] = None
    price_per_mg:      Optional[float] = None
    total_dose:        Optional[float] = None
    dose_unit:         Optional[str] = None
    strength_per_unit: Optional[str] = None
    headline:          Optional[float] = None
    headline_basis:    Optional[str] = None


@strawberry.type
class DoseBadgeNode:
    kind: str
    label: str


@strawberry.type
class ChargeItemNode:
    id: strawberry.ID
    description: str
    item_type: str
    item_type_label: str
    code_info: str
    price: float
    parsed: Optional[ParsedDescriptionNode]
    unit_price: Optional[UnitPriceNode]
    dose_badges: list[DoseBadgeNode]


@strawberry.type
class HospitalNode:
    name: Optional[str]
    address: Optional[str]
    last_updated_on: Optional[str]
    item_count: int


@strawberry.type
class EstimateLineNode:
    item_id: str
    description: str
    code_info: str
    dose_info: str
    quantity: int
    unit_price: float
    line_total: float


@strawberry.type
class EstimateNode:
    price_type: str
    lines: list[EstimateLineNode]
    subtotal: float
    total: float


@strawberry.input
class EstimateLineInput:
    item_id: str
    quantity: int = 1


# ---------------------------------------------------------------------------
# Helpers: service values → GraphQL nodes
# ---------------------------------------------------------------------------

def _parsed_to_node(parsed: Optional[ParsedDescription]) -> Optional[ParsedDescriptionNode]:
    if parsed is None:
        return None
    return ParsedDescriptionNode(
        name=parsed.name,
        strength=_float(parsed.strength),
        strength_unit=parsed.strength_unit,
        is_concentration=parsed.is_concentration,
        concentration=parsed.concentration,
        concentration_per_amount=_float(parsed.concentration_per_amount),
        concentration_per_unit=parsed.concentration_per_unit,
        route=parsed.route,
        route_full=parsed.route_full,
        form=parsed.form,
        form_full=parsed.form_full,
    )


def _unit_price_to_node(result: Optional[UnitPriceResult]) -> Optional[UnitPriceNode]:
    if result is None:
        return None
    headline = unit_price_headline(result)
    node = UnitPriceNode(
        kind=result.kind,
        package_info=result.package_info,
        headline=_float(headline[0]) if headline else None,
        headline_basis=headline[1] if headline else None,
    )
    if isinstance(result, ByMassUnitPrice):
        node.price_per_ml = _float(result.price_per_ml)
    else:
        node.price_per_unit = _float(result.price_per_unit)
    if isinstance(result, (ByMassUnitPrice, ByCountUnitPrice)):
        node.price_per_mg = _float(result.price_per_mg)
        node.total_dose = _float(result.total_dose)
        node.dose_unit = result.dose_unit
    if isinstance(result, ByCountUnitPrice):
        node.strength_per_unit = result.strength_per_unit
    return node


def _item_to_node(item: ChargeItem, price_type: str) -> ChargeItemNode:
    price = select_price(item, parse_price_type(price_type))
    parsed = parse(item.description)
    unit_price = calculate_unit_price(item, price, parsed=parsed)
    item_type = classify_item(item)
    return ChargeItemNode(
        id=strawberry.ID(generate_item_id(item)),
        description=item.description or "",
        item_type=item_type.value,
        item_type_label=item_type.label,
        code_info=format_code_info(item),
        price=float(price),
        parsed=_parsed_to_node(parsed),
        unit_price=_unit_price_to_node(unit_price),
        dose_badges=[
            DoseBadgeNode(kind=b.kind, label=b.label)
            for b in describe_dose(item, price, parsed=parsed, unit_price=unit_price)
        ],
    )


def _summary_to_node(summary: EstimateSummary) -> EstimateNode:
    return EstimateNode(
        price_type=summary.price_type.value,
        lines=[
            EstimateLineNode(
                item_id=line.item_id,
                description=line.description,
                code_info=line.code_info,
                dose_info=line.dose_info,
                quantity=line.quantity,
                unit_price=float(line.unit_price),
                line_total=float(line.line_total),
            )
            for line in summary.lines
        ],
        subtotal=float(summary.subtotal),
        total=float(summary.total),
    )


@strawberry.type
class Query:
    @strawberry.field
    def search_items(self, query: str, price_type: str = DEFAULT_PRICE_TYPE) -> list[ChargeItemNode]:
        catalog = get_catalog()
        return [
            _item_to_node(item, price_type)
            for item in search_items(catalog.standard_charge_information, query)
        ]

    @strawberry.field
    def parse_description(self, description: str) -> Optional[ParsedDescriptionNode]:
        return _parsed_to_node(parse(description))

    @strawberry.field
    def hospital_info(self) -> HospitalNode:
        catalog = get_catalog()
        return HospitalNode(
            name=catalog.hospital_name,
            address=catalog.hospital_address[0] if catalog.hospital_address else None,
            last_updated_on=catalog.last_updated_on,
            item_count=len(catalog.standard_charge_information),
        )

    @strawberry.field
    def estimate(
        self,
        lines: list[EstimateLineInput],
        price_type: str = DEFAULT_PRICE_TYPE,
    ) -> EstimateNode:
        catalog = get_catalog()
        try:
            estimate = estimate_from_lines(
                catalog.standard_charge_information,
                [(line.item_id, line.quantity) for line in lines],
            )
        except KeyError as exc:
            logger.warning("estimate: unknown item id %s", exc.args[0])
            raise ValueError(f"Unknown item id {exc.args[0]}") from exc
        return _summary_to_node(estimate.summarize(parse_price_type(price_type)))


schema = strawberry.Schema(query=Query)
