"""
Quotation Item Builder — the one-item-at-a-time workbench.

    Idle ──select_product / edit_item──▶ Configuring ──add_or_update_item / cancel──▶ Idle

``BuilderState`` is a plain value object; every transition returns a new
state and leaves its input untouched.
"""
import uuid
from typing import List, Optional

from pydantic import BaseModel

from nammos.models.quotation_schema import Annotation, ProductSnapshot, QuotationItem
from nammos.services.pricing_engine import price_item

IDLE = "idle"
CONFIGURING = "configuring"


class BuilderState(BaseModel):
    items: List[QuotationItem] = []
    product: Optional[ProductSnapshot] = None
    annotations: List[Annotation] = []
    quantity: int = 1
    editing_id: Optional[str] = None

    @property
    def phase(self) -> str:
        return CONFIGURING if self.product is not None else IDLE


def _reset_workbench(state: BuilderState, items: List[QuotationItem]) -> BuilderState:
    return state.model_copy(update={
        "items": items,
        "product": None,
        "annotations": [],
        "quantity": 1,
        "editing_id": None,
    })


def select_product(state: BuilderState, product) -> BuilderState:
    """Start configuring ``product`` with an empty annotation set."""
    return state.model_copy(update={
        "product": ProductSnapshot.freeze(product),
        "annotations": [],
    })


def set_annotations(state: BuilderState, annotations: List[Annotation]) -> BuilderState:
    return state.model_copy(update={"annotations": list(annotations)})


def edit_item(state: BuilderState, item_id: str) -> BuilderState:
    """Load an existing item into the workbench; the next add replaces it."""
    item = next((i for i in state.items if i.id == item_id), None)
    if item is None:
        return state
    return state.model_copy(update={
        "product": item.product,
        "annotations": [a.model_copy() for a in item.annotations],
        "quantity": item.quantity,
        "editing_id": item.id,
    })


def add_or_update_item(state: BuilderState) -> BuilderState:
    """Commit the workbench into the item list and return to Idle.

    While editing, the edited item keeps its id and list position; otherwise
    a new item is appended. Derived prices are recomputed either way.
    """
    if state.product is None:
        return state

    quantity = max(1, state.quantity)
    editing = state.editing_id is not None and any(i.id == state.editing_id for i in state.items)
    item = price_item(QuotationItem(
        id=state.editing_id if editing else str(uuid.uuid4()),
        product_id=state.product.id,
        product=state.product,
        quantity=quantity,
        annotations=state.annotations,
    ))

    if editing:
        items = [
            item.model_copy(update={
                "quotation_id": existing.quotation_id,
                "custom_dimensions": existing.custom_dimensions,
                "notes": existing.notes,
            }) if existing.id == item.id else existing
            for existing in state.items
        ]
    else:
        items = [*state.items, item]
    return _reset_workbench(state, items)


def cancel(state: BuilderState) -> BuilderState:
    return _reset_workbench(state, state.items)


def remove_item(state: BuilderState, item_id: str) -> BuilderState:
    """Drop an item. An edit in progress on that item is left as is."""
    return state.model_copy(update={"items": [i for i in state.items if i.id != item_id]})


# ── Quantity input ───────────────────────────────────────────────────────────

def parse_quantity_input(raw: str) -> Optional[int]:
    """Keystroke filter: digits only, empty means a transient 0.

    Returns None when the input is rejected and the field keeps its value.
    """
    raw = raw.strip()
    if raw == "":
        return 0
    if not (raw.isascii() and raw.isdigit()):
        return None
    return int(raw)


def set_quantity(state: BuilderState, raw: str) -> BuilderState:
    quantity = parse_quantity_input(raw)
    if quantity is None:
        return state
    return state.model_copy(update={"quantity": quantity})


def commit_quantity(state: BuilderState) -> BuilderState:
    """On blur: anything below 1 becomes 1."""
    if state.quantity >= 1:
        return state
    return state.model_copy(update={"quantity": 1})


def increment_quantity(state: BuilderState) -> BuilderState:
    return state.model_copy(update={"quantity": max(1, state.quantity + 1)})


def decrement_quantity(state: BuilderState) -> BuilderState:
    return state.model_copy(update={"quantity": max(1, state.quantity - 1)})
