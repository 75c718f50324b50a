"""
Pricing & aggregation for quotation items.

All functions are pure and safe to re-run on every edit. Values keep full
float precision; any rounding happens in the presentation layer.

    unit_price  = base_price + sum(material.price_uplift)
    total_price = unit_price * quantity
    total_cbm   = product.cbm * quantity
    vat_amount  = subtotal * 0.05
"""
from typing import Dict, Iterable, List, Sequence

from nammos.models.quotation_schema import Annotation, Quotation, QuotationItem

VAT_RATE = 0.05
STANDARD_SPECIFICATION = "Standard"


def item_unit_price(product, annotations: Iterable[Annotation]) -> float:
    """Base price plus every annotated material's uplift."""
    return product.base_price + sum(a.material.price_uplift for a in annotations)


def item_totals(item: QuotationItem) -> Dict[str, float]:
    return {
        "total_cbm": item.product.cbm * item.quantity,
        "total_price": item.unit_price * item.quantity,
    }


def quotation_totals(items: Sequence[QuotationItem]) -> Dict[str, float]:
    subtotal = sum(item.total_price for item in items)
    vat_amount = subtotal * VAT_RATE
    return {
        "subtotal": subtotal,
        "vat_amount": vat_amount,
        "total_amount": subtotal + vat_amount,
        "total_cbm": sum(item.total_cbm for item in items),
    }


def price_item(item: QuotationItem) -> QuotationItem:
    """Return a copy of ``item`` with every derived field recomputed."""
    unit_price = item_unit_price(item.product, item.annotations)
    return item.model_copy(update={
        "unit_price": unit_price,
        "cbm": item.product.cbm,
        "total_cbm": item.product.cbm * item.quantity,
        "total_price": unit_price * item.quantity,
    })


def apply_totals(quotation: Quotation) -> Quotation:
    """Reprice every item and recompute the header totals from them.

    Stored totals on the incoming quotation are ignored.
    """
    items: List[QuotationItem] = [price_item(i) for i in quotation.items]
    return quotation.model_copy(update={"items": items, **quotation_totals(items)})


def material_specification(annotations: Sequence[Annotation]) -> str:
    """Spreadsheet text: one ``part: material (code)`` line per annotation."""
    if not annotations:
        return STANDARD_SPECIFICATION
    return "\n".join(
        f"{a.part_name}: {a.material.name} ({a.material.code})" for a in annotations
    )
