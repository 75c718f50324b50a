"""
Workbench API — stateless drivers for the annotation canvas and item builder.

Each call carries the current state and one event; the response is the next
state. Nothing is stored server-side until the quotation is saved.
"""
from enum import Enum
from typing import List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from nammos.models.quotation_schema import Annotation, Material, Product
from nammos.services import item_builder
from nammos.services.annotation_engine import QUICK_LABELS, AnnotationEngine, CanvasState, Viewport
from nammos.services.item_builder import BuilderState
from nammos.services.material_palette import MATERIAL_TYPE_COLORS, DEFAULT_MATERIAL_COLOR

router = APIRouter(prefix="/api/workbench", tags=["Workbench"])


class CanvasAction(str, Enum):
    BEGIN_PLACEMENT = "begin_placement"
    TOGGLE_PLACEMENT = "toggle_placement"
    CLICK = "click"
    CHOOSE_LABEL = "choose_label"
    COMMIT_PENDING_POINT = "commit_pending_point"
    CANCEL_PENDING_POINT = "cancel_pending_point"
    SELECT_MATERIAL_FIRST = "select_material_first"
    BEGIN_DRAG = "begin_drag"
    UPDATE_DRAG = "update_drag"
    END_DRAG = "end_drag"
    REMOVE_ANNOTATION = "remove_annotation"
    SELECT_ANNOTATION = "select_annotation"


class CanvasEvent(BaseModel):
    state: CanvasState = CanvasState()
    viewport: Optional[Viewport] = None
    client_x: float = 0.0
    client_y: float = 0.0
    annotation_id: Optional[str] = None
    label: Optional[str] = None
    material: Optional[Material] = None


class BuilderAction(str, Enum):
    SELECT_PRODUCT = "select_product"
    SET_ANNOTATIONS = "set_annotations"
    EDIT_ITEM = "edit_item"
    ADD_OR_UPDATE_ITEM = "add_or_update_item"
    CANCEL = "cancel"
    REMOVE_ITEM = "remove_item"
    SET_QUANTITY = "set_quantity"
    COMMIT_QUANTITY = "commit_quantity"
    INCREMENT_QUANTITY = "increment_quantity"
    DECREMENT_QUANTITY = "decrement_quantity"


class BuilderEvent(BaseModel):
    state: BuilderState = BuilderState()
    product: Optional[Product] = None
    item_id: Optional[str] = None
    annotations: List[Annotation] = []
    quantity_input: str = ""


def _require(value, name: str):
    if value is None:
        raise HTTPException(status_code=400, detail=f"'{name}' is required for this action")
    return value


@router.get("/config")
async def workbench_config():
    return {
        "quick_labels": list(QUICK_LABELS),
        "material_type_colors": MATERIAL_TYPE_COLORS,
        "default_material_color": DEFAULT_MATERIAL_COLOR,
    }


@router.post("/canvas/{action}")
async def canvas_event(action: CanvasAction, event: CanvasEvent):
    engine = AnnotationEngine(event.state)
    if action == CanvasAction.BEGIN_PLACEMENT:
        engine.begin_placement()
    elif action == CanvasAction.TOGGLE_PLACEMENT:
        engine.toggle_placement()
    elif action == CanvasAction.CLICK:
        engine.click(_require(event.viewport, "viewport"), event.client_x, event.client_y)
    elif action == CanvasAction.CHOOSE_LABEL:
        engine.choose_label(event.label or "")
    elif action == CanvasAction.COMMIT_PENDING_POINT:
        engine.commit_pending_point(event.label, event.material)
    elif action == CanvasAction.CANCEL_PENDING_POINT:
        engine.cancel_pending_point()
    elif action == CanvasAction.SELECT_MATERIAL_FIRST:
        engine.select_material_first(_require(event.material, "material"))
    elif action == CanvasAction.BEGIN_DRAG:
        engine.begin_drag(_require(event.annotation_id, "annotation_id"))
    elif action == CanvasAction.UPDATE_DRAG:
        engine.update_drag(_require(event.viewport, "viewport"), event.client_x, event.client_y)
    elif action == CanvasAction.END_DRAG:
        engine.end_drag()
    elif action == CanvasAction.REMOVE_ANNOTATION:
        engine.remove_annotation(_require(event.annotation_id, "annotation_id"))
    elif action == CanvasAction.SELECT_ANNOTATION:
        engine.select_annotation(_require(event.annotation_id, "annotation_id"))
    return {"state": engine.state, "markers": engine.markers()}


@router.post("/builder/{action}")
async def builder_event(action: BuilderAction, event: BuilderEvent):
    state = event.state
    if action == BuilderAction.SELECT_PRODUCT:
        state = item_builder.select_product(state, _require(event.product, "product"))
    elif action == BuilderAction.SET_ANNOTATIONS:
        state = item_builder.set_annotations(state, event.annotations)
    elif action == BuilderAction.EDIT_ITEM:
        state = item_builder.edit_item(state, _require(event.item_id, "item_id"))
    elif action == BuilderAction.ADD_OR_UPDATE_ITEM:
        state = item_builder.add_or_update_item(state)
    elif action == BuilderAction.CANCEL:
        state = item_builder.cancel(state)
    elif action == BuilderAction.REMOVE_ITEM:
        state = item_builder.remove_item(state, _require(event.item_id, "item_id"))
    elif action == BuilderAction.SET_QUANTITY:
        state = item_builder.set_quantity(state, event.quantity_input)
    elif action == BuilderAction.COMMIT_QUANTITY:
        state = item_builder.commit_quantity(state)
    elif action == BuilderAction.INCREMENT_QUANTITY:
        state = item_builder.increment_quantity(state)
    elif action == BuilderAction.DECREMENT_QUANTITY:
        state = item_builder.decrement_quantity(state)
    return {"state": state, "phase": state.phase}
