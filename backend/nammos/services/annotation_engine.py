"""
Annotation Engine — binds (part label, material) pairs to points on a product image.

Positions are percentages of the image viewport, origin top-left, always
clamped into [0, 100] x [0, 100]. The whole canvas is a serialisable
``CanvasState`` so the HTTP workbench can replay one event at a time:

    engine = AnnotationEngine(state)
    engine.click(viewport, 412, 180)
    engine.commit_pending_point("Seat", material)
    return engine.state

Event rules:
  - a canvas click only captures a point while placement is armed and no drag
    is in progress; capturing disarms placement
  - one annotation may be dragged at a time
  - a pending point without both label and material never becomes an annotation
"""
import uuid
from typing import List, Optional, Tuple

from pydantic import BaseModel

from nammos.models.quotation_schema import Annotation, MaterialSnapshot
from nammos.services.material_palette import material_type_color


QUICK_LABELS = (
    "Seat", "Back", "Legs", "Arms", "Cushion",
    "Frame", "Piping", "Stitching", "Base", "Headrest",
)

MATERIAL_FIRST_POSITION = (50.0, 50.0)


def clamp_percent(value: float) -> float:
    return max(0.0, min(100.0, value))


class Viewport(BaseModel):
    """Bounding box of the rendered product image, in client pixels."""
    left: float = 0.0
    top: float = 0.0
    width: float
    height: float

    def to_percent(self, client_x: float, client_y: float) -> Tuple[float, float]:
        """Pointer position -> clamped percentage coordinates."""
        x = (client_x - self.left) / self.width * 100 if self.width > 0 else 0.0
        y = (client_y - self.top) / self.height * 100 if self.height > 0 else 0.0
        return clamp_percent(x), clamp_percent(y)


class PendingPoint(BaseModel):
    x: float
    y: float


class CanvasState(BaseModel):
    annotations: List[Annotation] = []
    adding_point: bool = False
    pending_point: Optional[PendingPoint] = None
    label: str = ""
    selected_id: Optional[str] = None
    dragging_id: Optional[str] = None


class AnnotationEngine:
    """Applies canvas events to a copy of the given state."""

    def __init__(self, state: Optional[CanvasState] = None):
        self.state = state.model_copy(deep=True) if state else CanvasState()

    # ── Point placement ──────────────────────────────────────────────────────

    def begin_placement(self) -> CanvasState:
        """Arm the canvas; the next click captures a candidate point."""
        self.state.adding_point = True
        self.state.pending_point = None
        return self.state

    def toggle_placement(self) -> CanvasState:
        self.state.adding_point = not self.state.adding_point
        self.state.pending_point = None
        return self.state

    def click(self, viewport: Viewport, client_x: float, client_y: float) -> CanvasState:
        if self.state.dragging_id is not None or not self.state.adding_point:
            return self.state
        x, y = viewport.to_percent(client_x, client_y)
        self.state.pending_point = PendingPoint(x=x, y=y)
        self.state.label = ""
        self.state.adding_point = False
        return self.state

    def choose_label(self, label: str) -> CanvasState:
        """Pre-fill the pending label, from a quick-label chip or free text."""
        self.state.label = label
        return self.state

    def commit_pending_point(self, label: Optional[str], material) -> CanvasState:
        """Turn the pending point into an annotation.

        No-op when there is no pending point, the label is blank or no
        material has been chosen.
        """
        pending = self.state.pending_point
        part_name = (label if label is not None else self.state.label).strip()
        if pending is None or not part_name or material is None:
            return self.state

        snapshot = MaterialSnapshot.freeze(material)
        self.state.annotations.append(Annotation(
            id=str(uuid.uuid4()),
            part_id=f"point-{uuid.uuid4().hex[:12]}",
            part_name=part_name,
            material_id=snapshot.id,
            material=snapshot,
            x=pending.x,
            y=pending.y,
        ))
        self.state.pending_point = None
        self.state.label = ""
        return self.state

    def cancel_pending_point(self) -> CanvasState:
        self.state.pending_point = None
        self.state.label = ""
        self.state.adding_point = False
        return self.state

    def select_material_first(self, material) -> CanvasState:
        """Attach a globally searched material at the image centre."""
        snapshot = MaterialSnapshot.freeze(material)
        x, y = MATERIAL_FIRST_POSITION
        self.state.annotations.append(Annotation(
            id=str(uuid.uuid4()),
            part_id=f"search-{uuid.uuid4().hex[:12]}",
            part_name=snapshot.name,
            material_id=snapshot.id,
            material=snapshot,
            x=x,
            y=y,
        ))
        return self.state

    # ── Dragging ─────────────────────────────────────────────────────────────

    def begin_drag(self, annotation_id: str) -> CanvasState:
        if self.state.dragging_id is not None or self._find(annotation_id) is None:
            return self.state
        self.state.dragging_id = annotation_id
        self.state.selected_id = None
        return self.state

    def update_drag(self, viewport: Viewport, client_x: float, client_y: float) -> CanvasState:
        if self.state.dragging_id is None:
            return self.state
        x, y = viewport.to_percent(client_x, client_y)
        self.state.annotations = [
            a.model_copy(update={"x": x, "y": y}) if a.id == self.state.dragging_id else a
            for a in self.state.annotations
        ]
        return self.state

    def end_drag(self) -> CanvasState:
        self.state.dragging_id = None
        return self.state

    # ── Selection / removal ──────────────────────────────────────────────────

    def remove_annotation(self, annotation_id: str) -> CanvasState:
        self.state.annotations = [a for a in self.state.annotations if a.id != annotation_id]
        if self.state.selected_id == annotation_id:
            self.state.selected_id = None
        if self.state.dragging_id == annotation_id:
            self.state.dragging_id = None
        return self.state

    def select_annotation(self, annotation_id: str) -> CanvasState:
        if self.state.selected_id == annotation_id:
            self.state.selected_id = None
        elif self._find(annotation_id) is not None:
            self.state.selected_id = annotation_id
        return self.state

    def markers(self) -> List[dict]:
        """Marker payloads for the interactive canvas, in creation order."""
        markers = []
        for index, a in enumerate(self.state.annotations):
            marker = {
                "id": a.id,
                "number": index + 1,
                "x": a.x,
                "y": a.y,
                "part_name": a.part_name,
                "swatch_image_url": a.material.swatch_image_url or None,
                "color": material_type_color(a.material.type),
                "dragging": a.id == self.state.dragging_id,
                "expanded": a.id == self.state.selected_id,
            }
            if marker["expanded"]:
                marker["detail"] = {
                    "label": a.part_name,
                    "material_name": a.material.name,
                    "material_code": a.material.code,
                    "price_uplift": a.material.price_uplift,
                }
            markers.append(marker)
        return markers

    def _find(self, annotation_id: str) -> Optional[Annotation]:
        return next((a for a in self.state.annotations if a.id == annotation_id), None)
