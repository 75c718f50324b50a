"""
test_annotation_engine.py — Unit tests for the annotation canvas.

Tests cover:
  - viewport -> percent conversion with clamping
  - armed click capture, pending point commit / cancel
  - material-first annotations at the image centre
  - dragging (single drag, clamped, clicks ignored while dragging)
  - selection toggling and removal
  - marker payloads share the material-type colour table
"""

import pytest

VIEWPORT = {"left": 100.0, "top": 50.0, "width": 400.0, "height": 200.0}


@pytest.fixture
def viewport():
    from nammos.services.annotation_engine import Viewport
    return Viewport(**VIEWPORT)


@pytest.fixture
def engine():
    from nammos.services.annotation_engine import AnnotationEngine
    return AnnotationEngine()


def _placed(engine, viewport, material, cx=300, cy=150, label="Seat"):
    engine.begin_placement()
    engine.click(viewport, cx, cy)
    engine.commit_pending_point(label, material)
    return engine.state.annotations[-1]


class TestViewportClamp:

    def test_inside(self, viewport):
        """(300-100)/400 = 50%, (100-50)/200 = 25%"""
        assert viewport.to_percent(300, 100) == (50.0, 25.0)

    def test_outside_clamps_to_edges(self, viewport):
        assert viewport.to_percent(-500, 9999) == (0.0, 100.0)
        assert viewport.to_percent(10_000, -10) == (100.0, 0.0)

    def test_zero_size_viewport(self):
        from nammos.services.annotation_engine import Viewport
        assert Viewport(width=0, height=0).to_percent(10, 10) == (0.0, 0.0)


class TestPointPlacement:

    def test_click_ignored_when_not_armed(self, engine, viewport):
        engine.click(viewport, 300, 150)
        assert engine.state.pending_point is None

    def test_armed_click_captures_and_disarms(self, engine, viewport):
        engine.begin_placement()
        engine.click(viewport, 300, 150)
        assert engine.state.pending_point.x == 50.0
        assert engine.state.pending_point.y == 50.0
        assert engine.state.adding_point is False

    def test_capture_clears_previous_label(self, engine, viewport):
        engine.choose_label("Back")
        engine.begin_placement()
        engine.click(viewport, 300, 150)
        assert engine.state.label == ""

    def test_commit_creates_annotation(self, engine, viewport, velvet):
        ann = _placed(engine, viewport, velvet)
        assert ann.part_name == "Seat"
        assert ann.part_id.startswith("point-")
        assert ann.material_id == velvet.id
        assert (ann.x, ann.y) == (50.0, 50.0)
        assert engine.state.pending_point is None

    def test_commit_snapshots_material(self, engine, viewport, velvet):
        from nammos.models.quotation_schema import MaterialSnapshot
        ann = _placed(engine, viewport, velvet)
        assert isinstance(ann.material, MaterialSnapshot)
        assert ann.material.price_uplift == 50.0

    @pytest.mark.parametrize("label", ["", "   "])
    def test_blank_label_is_noop(self, engine, viewport, velvet, label):
        engine.begin_placement()
        engine.click(viewport, 300, 150)
        engine.commit_pending_point(label, velvet)
        assert engine.state.annotations == []
        assert engine.state.pending_point is not None

    def test_missing_material_is_noop(self, engine, viewport):
        engine.begin_placement()
        engine.click(viewport, 300, 150)
        engine.commit_pending_point("Seat", None)
        assert engine.state.annotations == []

    def test_label_is_trimmed(self, engine, viewport, velvet):
        ann = _placed(engine, viewport, velvet, label="  Piping ")
        assert ann.part_name == "Piping"

    def test_quick_label_prefills(self, engine, viewport, velvet):
        from nammos.services.annotation_engine import QUICK_LABELS
        engine.begin_placement()
        engine.click(viewport, 300, 150)
        engine.choose_label(QUICK_LABELS[-1])
        engine.commit_pending_point(None, velvet)
        assert engine.state.annotations[0].part_name == "Headrest"

    def test_cancel_discards_pending_point(self, engine, viewport):
        engine.begin_placement()
        engine.click(viewport, 300, 150)
        engine.cancel_pending_point()
        assert engine.state.pending_point is None
        assert engine.state.annotations == []

    def test_unique_ids(self, engine, viewport, velvet):
        a = _placed(engine, viewport, velvet)
        b = _placed(engine, viewport, velvet)
        assert a.id != b.id


class TestMaterialFirst:

    def test_centered_with_material_name(self, engine, oak):
        engine.select_material_first(oak)
        ann = engine.state.annotations[0]
        assert (ann.x, ann.y) == (50.0, 50.0)
        assert ann.part_name == "Natural Oak"
        assert ann.part_id.startswith("search-")


class TestDragging:

    def test_drag_outside_viewport_clamps(self, engine, viewport, velvet):
        """Pointer far right / above the image -> (100, 0), not raw values."""
        ann = _placed(engine, viewport, velvet)
        engine.begin_drag(ann.id)
        engine.update_drag(viewport, 5000, -300)
        moved = engine.state.annotations[0]
        assert (moved.x, moved.y) == (100.0, 0.0)
        engine.end_drag()
        assert engine.state.dragging_id is None

    def test_drag_inside_follows_pointer(self, engine, viewport, velvet):
        ann = _placed(engine, viewport, velvet)
        engine.begin_drag(ann.id)
        engine.update_drag(viewport, 200, 100)
        moved = engine.state.annotations[0]
        assert (moved.x, moved.y) == (25.0, 25.0)

    def test_only_one_drag_at_a_time(self, engine, viewport, velvet, oak):
        a = _placed(engine, viewport, velvet)
        b = _placed(engine, viewport, oak, label="Legs")
        engine.begin_drag(a.id)
        engine.begin_drag(b.id)
        assert engine.state.dragging_id == a.id

    def test_click_while_dragging_ignored(self, engine, viewport, velvet):
        ann = _placed(engine, viewport, velvet)
        engine.begin_drag(ann.id)
        engine.begin_placement()
        engine.click(viewport, 120, 60)
        assert engine.state.pending_point is None

    def test_update_without_drag_is_noop(self, engine, viewport, velvet):
        ann = _placed(engine, viewport, velvet)
        engine.update_drag(viewport, 100, 50)
        assert engine.state.annotations[0].x == ann.x

    def test_begin_drag_clears_selection(self, engine, viewport, velvet):
        ann = _placed(engine, viewport, velvet)
        engine.select_annotation(ann.id)
        engine.begin_drag(ann.id)
        assert engine.state.selected_id is None


class TestSelectionAndRemoval:

    def test_select_toggles(self, engine, viewport, velvet):
        ann = _placed(engine, viewport, velvet)
        engine.select_annotation(ann.id)
        assert engine.state.selected_id == ann.id
        engine.select_annotation(ann.id)
        assert engine.state.selected_id is None

    def test_single_selection(self, engine, viewport, velvet, oak):
        a = _placed(engine, viewport, velvet)
        b = _placed(engine, viewport, oak, label="Legs")
        engine.select_annotation(a.id)
        engine.select_annotation(b.id)
        assert engine.state.selected_id == b.id

    def test_remove_selected_clears_selection(self, engine, viewport, velvet):
        ann = _placed(engine, viewport, velvet)
        engine.select_annotation(ann.id)
        engine.remove_annotation(ann.id)
        assert engine.state.annotations == []
        assert engine.state.selected_id is None

    def test_remove_other_keeps_selection(self, engine, viewport, velvet, oak):
        a = _placed(engine, viewport, velvet)
        b = _placed(engine, viewport, oak, label="Legs")
        engine.select_annotation(a.id)
        engine.remove_annotation(b.id)
        assert engine.state.selected_id == a.id


class TestMarkersAndState:

    def test_marker_detail_and_colour(self, engine, viewport, oak):
        from nammos.services.material_palette import material_type_color
        ann = _placed(engine, viewport, oak, label="Legs")
        engine.select_annotation(ann.id)
        marker = engine.markers()[0]
        assert marker["color"] == material_type_color("wood") == "#DEB887"
        assert marker["swatch_image_url"] is None
        assert marker["detail"] == {
            "label": "Legs", "material_name": "Natural Oak",
            "material_code": "WD-7", "price_uplift": 75.0,
        }

    def test_input_state_not_mutated(self, velvet):
        from nammos.services.annotation_engine import AnnotationEngine, CanvasState
        state = CanvasState()
        AnnotationEngine(state).select_material_first(velvet)
        assert state.annotations == []

    def test_state_round_trips_through_json(self, engine, viewport, velvet):
        from nammos.services.annotation_engine import AnnotationEngine, CanvasState
        _placed(engine, viewport, velvet)
        restored = CanvasState.model_validate_json(engine.state.model_dump_json())
        assert AnnotationEngine(restored).state == engine.state
