import pytest

from interaction import (
    InteractionController, Mode, Tool, ToolAction, ToolKind, compute_resize,
)
from models import DoseUnit, LabelDraft, LabelKind, Pictogram


def _select(controller, pic):
    controller.pointer_down((pic.x, pic.y))
    controller.pointer_up()
    assert controller.selected_key == pic.key


# ── Tools ─────────────────────────────────────────────────────────────────────

def test_arm_and_toggle(controller):
    controller.arm_tool(ToolKind.MARKER, ToolAction.REMOVE)
    assert controller.tool is Tool.REMOVE_MARKER
    assert controller.mode is Mode.TOOL_ARMED
    controller.toggle_tool(Tool.REMOVE_MARKER)
    assert controller.tool is None
    assert controller.mode is Mode.IDLE
    controller.toggle_tool(Tool.ADD_LABEL)
    controller.arm_tool(None, None)
    assert controller.tool is None


def test_no_add_tool_for_pictograms(controller):
    with pytest.raises(ValueError):
        controller.arm_tool(ToolKind.PICTOGRAM, ToolAction.ADD)


def test_add_marker_stays_armed(controller, store, changes):
    controller.toggle_tool(Tool.ADD_MARKER)
    controller.pointer_down((100, 100))
    controller.pointer_up()
    controller.pointer_down((200, 100))
    assert [m.id for m in store.markers] == [1, 2]
    assert controller.mode is Mode.TOOL_ARMED
    assert len(changes) == 2


def test_add_marker_uses_document_coordinates(controller, store, transform):
    transform.set_scale(2)
    transform.pan(10, 20)
    controller.toggle_tool(Tool.ADD_MARKER)
    controller.pointer_down((210, 220))
    assert (store.markers[0].x, store.markers[0].y) == (pytest.approx(100), pytest.approx(100))


def test_remove_marker_tool(controller, store):
    store.add_point(100, 100)
    store.add_point(300, 100)
    controller.toggle_tool(Tool.REMOVE_MARKER)
    hit = controller.pointer_down((105, 100))
    assert hit.kind.value == "marker"
    assert [(m.id, m.x) for m in store.markers] == [(1, 300)]


def test_add_label_reads_form_at_click(transform, store):
    form = {"draft": LabelDraft(value=None)}
    controller = InteractionController(transform, store, label_form=lambda: form["draft"])
    controller.toggle_tool(Tool.ADD_LABEL)

    controller.pointer_down((50, 50))
    assert store.labels == ()

    form["draft"] = LabelDraft(value=3.2, unit=DoseUnit.MILLI_R_HR, kind=LabelKind.SECONDARY)
    controller.pointer_down((60, 60))
    label = store.labels[0]
    assert (label.x, label.y, label.value) == (60, 60, 3.2)
    assert label.unit is DoseUnit.MILLI_R_HR
    assert label.kind is LabelKind.SECONDARY


def test_add_label_rejects_non_finite(transform, store):
    controller = InteractionController(transform, store,
                                       label_form=lambda: LabelDraft(value=float("nan")))
    controller.toggle_tool(Tool.ADD_LABEL)
    controller.pointer_down((50, 50))
    assert store.labels == ()


def test_remove_label_tool(controller, store):
    store.add_label(100, 100, 1.0)
    controller.toggle_tool(Tool.REMOVE_LABEL)
    controller.pointer_down((125, 100))
    assert store.labels == ()


def test_remove_pictogram_clears_selection(controller, store):
    pic = store.add_pictogram(200, 200, 80, 80, "drum-can.svg")
    _select(controller, pic)
    controller.toggle_tool(Tool.REMOVE_PICTOGRAM)
    controller.pointer_down((230, 190))
    assert store.pictograms == ()
    assert controller.selected_key is None


def test_armed_tool_does_not_drag(controller, store):
    store.add_point(100, 100)
    controller.toggle_tool(Tool.ADD_MARKER)
    controller.pointer_down((100, 100))
    controller.pointer_move((200, 200))
    assert store.markers[0].x == 100
    assert len(store.markers) == 2


# ── Pan / drag ────────────────────────────────────────────────────────────────

def test_pan_on_empty_space(controller, transform):
    controller.pointer_down((50, 50))
    assert controller.mode is Mode.PANNING
    controller.pointer_move((60, 70))
    controller.pointer_move((65, 70))
    assert (transform.pan_x, transform.pan_y) == (15, 20)
    controller.pointer_up((100, 100))
    assert controller.mode is Mode.IDLE
    assert (transform.pan_x, transform.pan_y) == (15, 20)


def test_drag_marker_keeps_grab_offset(controller, store):
    marker = store.add_point(100, 100)
    controller.pointer_down((105, 100))
    assert controller.mode is Mode.DRAGGING_MARKER
    assert controller.target_key == marker.key
    controller.pointer_move((205, 150))
    assert (marker.x, marker.y) == (200, 150)
    controller.pointer_up((305, 150))
    assert (marker.x, marker.y) == (300, 150)
    assert controller.mode is Mode.IDLE
    assert marker.id == 1


def test_drag_marker_under_zoom(controller, store, transform):
    transform.set_scale(2)
    marker = store.add_point(100, 100)
    controller.pointer_down((200, 200))
    controller.pointer_move((240, 200))
    assert marker.x == pytest.approx(120)


def test_pictogram_over_marker_is_grabbed(controller, store):
    marker = store.add_point(300, 300)
    pic = store.add_pictogram(300, 300, 80, 80, "drum-can-2-svgrepo-com.svg")
    controller.pointer_down((300, 300))
    assert controller.mode is Mode.DRAGGING_PICTOGRAM
    assert controller.selected_key == pic.key
    assert controller.target_key == pic.key
    controller.pointer_move((320, 300))
    assert (pic.x, marker.x) == (320, 300)


def test_drag_pictogram_selects_it(controller, store):
    pic = store.add_pictogram(200, 200, 80, 80, "drum-can.svg")
    controller.pointer_down((190, 210))
    assert controller.mode is Mode.DRAGGING_PICTOGRAM
    assert controller.selected_key == pic.key
    controller.pointer_move((290, 260))
    assert (pic.x, pic.y) == (300, 250)
    controller.pointer_up()
    assert controller.selected_key == pic.key


def test_click_on_empty_clears_selection(controller, store):
    pic = store.add_pictogram(200, 200, 80, 80, "drum-can.svg")
    _select(controller, pic)
    controller.pointer_down((600, 600))
    assert controller.selected_key is None
    assert controller.mode is Mode.PANNING


def test_click_on_label_pans(controller, store, transform):
    store.add_label(300, 300, 1.0)
    controller.pointer_down((300, 300))
    assert controller.mode is Mode.PANNING
    controller.pointer_move((310, 300))
    assert transform.pan_x == 10
    assert store.labels[0].x == 300


def test_leave_ends_gesture(controller, store):
    store.add_point(100, 100)
    controller.pointer_down((100, 100))
    controller.pointer_leave()
    assert controller.mode is Mode.IDLE
    controller.pointer_move((300, 300))
    assert store.markers[0].x == 100


def test_removed_entity_ends_drag(controller, store):
    store.add_point(100, 100)
    controller.pointer_down((100, 100))
    store.clear_all()
    controller.pointer_move((150, 150))
    assert controller.mode is Mode.IDLE


# ── Resize ────────────────────────────────────────────────────────────────────

def test_resize_from_handle_keeps_opposite_corner(controller, store):
    pic = store.add_pictogram(200, 200, 80, 80, "drum-can.svg")
    _select(controller, pic)
    controller.pointer_down((245, 245))
    assert controller.mode is Mode.RESIZING_PICTOGRAM
    assert controller.resize_corner == "se"
    controller.pointer_move((300, 300))
    assert (pic.width, pic.height) == (pytest.approx(140), pytest.approx(140))
    assert (pic.x - pic.width / 2, pic.y - pic.height / 2) == (pytest.approx(160), pytest.approx(160))


def test_resize_clamps_to_limits(controller, store):
    pic = store.add_pictogram(200, 200, 80, 80, "drum-can.svg")
    _select(controller, pic)
    controller.pointer_down((245, 245))
    controller.pointer_move((900, 900))
    assert pic.width == pytest.approx(200)
    controller.pointer_move((161, 161))
    assert pic.width == pytest.approx(20)
    assert (pic.x - pic.width / 2, pic.y - pic.height / 2) == (pytest.approx(160), pytest.approx(160))


def test_resize_preserves_aspect_ratio(controller, store):
    pic = store.add_pictogram(200, 200, 100, 50, "drum-can.svg")
    _select(controller, pic)
    controller.pointer_down((255, 230))
    controller.pointer_move((300, 275))
    assert (pic.width, pic.height) == (pytest.approx(150), pytest.approx(75))


def test_resize_nw_corner():
    pic = Pictogram(x=200, y=200, width=80, height=80, asset_id="a.svg")
    x, y, w, h = compute_resize(pic, "nw", (200, 200))
    assert (w, h) == (pytest.approx(40), pytest.approx(40))
    assert (x + w / 2, y + h / 2) == (pytest.approx(240), pytest.approx(240))


def test_resize_rotated_pictogram():
    pic = Pictogram(x=0, y=0, width=80, height=80, asset_id="a.svg", rotation=90)
    # Local se corner (40, 40) sits at document (-40, 40) when rotated 90°
    x, y, w, h = compute_resize(pic, "se", (-60, 60))
    assert (w, h) == (pytest.approx(100), pytest.approx(100))
    # Fixed nw corner: local (-40, -40) -> document (40, -40)
    assert (x + 50, y - 50) == (pytest.approx(40), pytest.approx(-40))


def test_resize_impossible_ratio_is_noop():
    pic = Pictogram(x=0, y=0, width=1000, height=10, asset_id="a.svg")
    assert compute_resize(pic, "se", (100, 100)) is None


# ── Wheel ─────────────────────────────────────────────────────────────────────

def test_wheel_zooms(controller, transform):
    assert controller.wheel((100, 100), 120)
    assert transform.scale == pytest.approx(1.1)
    assert controller.wheel((100, 100), -120)
    assert transform.scale == pytest.approx(0.99)


def test_wheel_zero_delta_ignored(controller, transform):
    assert controller.wheel((100, 100), 0) is False
    assert transform.scale == 1.0


def test_wheel_suppressed_while_dragging(controller, store, transform):
    store.add_point(100, 100)
    controller.pointer_down((100, 100))
    assert controller.wheel((100, 100), 120) is False
    assert transform.scale == 1.0


def test_wheel_allowed_while_panning(controller, transform):
    controller.pointer_down((500, 500))
    assert controller.wheel((500, 500), 120)


# ── Palette ───────────────────────────────────────────────────────────────────

def test_drop_from_palette(transform, store):
    requested = []
    controller = InteractionController(transform, store, request_asset=requested.append)
    assert controller.begin_palette_drag("drum-can.svg")
    assert controller.mode is Mode.PLACING_PICTOGRAM_FROM_PALETTE
    pic = controller.drop_from_palette((300, 200))
    assert (pic.x, pic.y, pic.width, pic.height) == (300, 200, 80, 80)
    assert pic.asset_id == "drum-can.svg"
    assert requested == [pic]
    assert controller.mode is Mode.IDLE


def test_drop_outside_canvas(controller, store):
    controller.begin_palette_drag("drum-can.svg")
    assert controller.drop_from_palette((300, 200), inside=False) is None
    assert store.pictograms == ()
    assert controller.mode is Mode.IDLE


def test_drop_without_drag(controller, store):
    assert controller.drop_from_palette((300, 200)) is None
    assert store.pictograms == ()


# ── View / misc ───────────────────────────────────────────────────────────────

def test_set_scale_and_rotation(controller, transform, changes):
    controller.set_scale(-1)
    assert transform.scale == 1.0
    assert changes == []
    controller.set_scale(2)
    controller.set_rotation(450)
    assert (transform.scale, transform.rotation) == (2, 90)


def test_reset_view(controller, transform):
    transform.set_rotation(30)
    assert controller.reset_view(500, 400)
    assert transform.rotation == 0
    assert transform.scale == pytest.approx(0.475)
    assert controller.reset_view(0, 400) is False


def test_clear_all(controller, store):
    pic = store.add_pictogram(200, 200, 80, 80, "drum-can.svg")
    store.add_point(10, 10)
    _select(controller, pic)
    controller.clear_all()
    assert store.is_empty()
    assert controller.selected_key is None
    assert store.next_marker_id == 1


def test_cursor_hints(controller, store):
    pic = store.add_pictogram(200, 200, 80, 80, "drum-can.svg")
    assert controller.cursor_hint((600, 600)) == "grab"
    _select(controller, pic)
    assert controller.cursor_hint((245, 245)) == "nwse-resize"
    assert controller.cursor_hint((155, 245)) == "nesw-resize"
    controller.pointer_down((600, 600))
    assert controller.cursor_hint((600, 600)) == "grabbing"
    controller.pointer_up()
    controller.toggle_tool(Tool.ADD_MARKER)
    assert controller.cursor_hint((0, 0)) == "crosshair"
    controller.toggle_tool(Tool.REMOVE_LABEL)
    assert controller.cursor_hint((0, 0)) == "pointer"
