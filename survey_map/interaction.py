"""Pointer/wheel interaction: tools, panning, dragging and resizing.

The controller is toolkit-independent: the canvas widget feeds it screen
coordinates and it mutates the :class:`TransformEngine` and the
:class:`AnnotationStore`, calling ``on_change`` after every mutation so the
view can redraw immediately.

Entities being manipulated are referenced by their store ``key``; if the
entity disappears the gesture simply ends.
"""
import math
from enum import Enum
from typing import Callable, Optional, Tuple

import data_store
import hit_tester
from annotation_store import AnnotationStore
from hit_tester import HitKind, HitResult
from models import LabelDraft, Pictogram
from transform_engine import TransformEngine, wheel_factor

Point = Tuple[float, float]

MIN_PICTOGRAM_SIZE = 20.0
MAX_PICTOGRAM_SIZE = 200.0
DEFAULT_PICTOGRAM_SIZE = 80.0


class ToolKind(Enum):
    MARKER = "marker"
    LABEL = "label"
    PICTOGRAM = "pictogram"


class ToolAction(Enum):
    ADD = "add"
    REMOVE = "remove"


class Tool(Enum):
    """Every tool that can be armed.  Pictograms are added from the palette."""
    ADD_MARKER = (ToolKind.MARKER, ToolAction.ADD)
    REMOVE_MARKER = (ToolKind.MARKER, ToolAction.REMOVE)
    ADD_LABEL = (ToolKind.LABEL, ToolAction.ADD)
    REMOVE_LABEL = (ToolKind.LABEL, ToolAction.REMOVE)
    REMOVE_PICTOGRAM = (ToolKind.PICTOGRAM, ToolAction.REMOVE)

    @property
    def kind(self) -> ToolKind:
        return self.value[0]

    @property
    def action(self) -> ToolAction:
        return self.value[1]

    @classmethod
    def of(cls, kind: ToolKind, action: ToolAction) -> "Tool":
        for tool in cls:
            if tool.value == (kind, action):
                return tool
        raise ValueError(f"No {action.value!r} tool for {kind.value!r} "
                         "(pictograms are placed from the palette)")


class Mode(Enum):
    IDLE = "idle"
    TOOL_ARMED = "tool-armed"
    PANNING = "panning"
    DRAGGING_MARKER = "dragging-marker"
    DRAGGING_PICTOGRAM = "dragging-pictogram"
    RESIZING_PICTOGRAM = "resizing-pictogram"
    PLACING_PICTOGRAM_FROM_PALETTE = "placing-pictogram"


# Gestures that block wheel zoom
_MANIPULATIONS = {Mode.DRAGGING_MARKER, Mode.DRAGGING_PICTOGRAM, Mode.RESIZING_PICTOGRAM}


# ── Resize geometry ───────────────────────────────────────────────────────────

def compute_resize(pic: Pictogram, corner: str, doc_point: Point,
                   min_size: float = MIN_PICTOGRAM_SIZE,
                   max_size: float = MAX_PICTOGRAM_SIZE
                   ) -> Optional[Tuple[float, float, float, float]]:
    """New *(x, y, width, height)* for dragging *corner* of *pic* to *doc_point*.

    The opposite corner stays where it is, both sides are clamped to
    *[min_size, max_size]* and the current aspect ratio is kept by shrinking
    the side that would break it.  Returns None when the aspect ratio cannot
    satisfy the size limits at all.
    """
    sx, sy = hit_tester.corner_signs(corner)
    ox, oy = hit_tester.corner_signs(hit_tester.opposite_corner(corner))
    hw, hh = pic.half_size()
    fixed_x, fixed_y = ox * hw, oy * hh
    px, py = hit_tester.to_local(pic, doc_point)

    width = max(min_size, min(max_size, abs(px - fixed_x)))
    height = max(min_size, min(max_size, abs(py - fixed_y)))

    ratio = pic.width / pic.height
    if width / height > ratio:
        width = height * ratio
    else:
        height = width / ratio

    # Shrinking may have pushed one side below min_size; pull back into range
    lo = max(min_size, min_size / ratio)
    hi = min(max_size, max_size / ratio)
    if lo > hi:
        return None
    height = max(lo, min(hi, height))
    width = height * ratio

    cx, cy = hit_tester.from_local(
        pic, (fixed_x + sx * width / 2.0, fixed_y + sy * height / 2.0)
    )
    return cx, cy, width, height


# ── Controller ────────────────────────────────────────────────────────────────

class InteractionController:
    def __init__(
        self,
        transform: TransformEngine,
        store: AnnotationStore,
        on_change: Optional[Callable[[], None]] = None,
        label_form: Optional[Callable[[], LabelDraft]] = None,
        request_asset: Optional[Callable[[Pictogram], None]] = None,
        pictogram_size: float = DEFAULT_PICTOGRAM_SIZE,
    ):
        self.transform = transform
        self.store = store
        self._on_change = on_change
        self._label_form = label_form
        self._request_asset = request_asset
        self.pictogram_size = pictogram_size

        self.tool: Optional[Tool] = None
        self._gesture: Mode = Mode.IDLE
        self._selected_key: Optional[int] = None
        self._target_key: Optional[int] = None
        self._grab_offset: Point = (0.0, 0.0)    # document space
        self._last_screen: Point = (0.0, 0.0)
        self._resize_corner: Optional[str] = None
        self._palette_asset: Optional[str] = None

    # ── State ─────────────────────────────────────────────────────────────────

    @property
    def mode(self) -> Mode:
        if self._gesture is not Mode.IDLE:
            return self._gesture
        return Mode.TOOL_ARMED if self.tool is not None else Mode.IDLE

    @property
    def selected_key(self) -> Optional[int]:
        if self._selected_key is not None and self.store.pictogram(self._selected_key) is None:
            self._selected_key = None
        return self._selected_key

    @property
    def selected_pictogram(self) -> Optional[Pictogram]:
        return self.store.pictogram(self.selected_key)

    @property
    def target_key(self) -> Optional[int]:
        """Key of the marker/pictogram being dragged or resized."""
        return self._target_key

    @property
    def resize_corner(self) -> Optional[str]:
        return self._resize_corner

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()

    # ── Tools ─────────────────────────────────────────────────────────────────

    def arm_tool(self, kind: Optional[ToolKind], action: Optional[ToolAction]) -> None:
        """Arm the tool for *(kind, action)*; ``action=None`` disarms."""
        self.tool = None if kind is None or action is None else Tool.of(kind, action)
        data_store.dbg(f"Tool armed: {self.tool}")

    def toggle_tool(self, tool: Tool) -> Optional[Tool]:
        """Arm *tool*, or disarm it when it is already armed."""
        self.tool = None if self.tool is tool else tool
        data_store.dbg(f"Tool armed: {self.tool}")
        return self.tool

    # ── View ──────────────────────────────────────────────────────────────────

    def set_rotation(self, degrees: float) -> None:
        self.transform.set_rotation(degrees)
        self._changed()

    def set_scale(self, value: float) -> None:
        if self.transform.set_scale(value):
            self._changed()

    def reset_view(self, viewport_width: float, viewport_height: float) -> bool:
        ok = self.transform.fit_and_center(
            viewport_width, viewport_height,
            self.transform.image_width, self.transform.image_height,
        )
        if ok:
            self._changed()
        return ok

    def clear_all(self) -> None:
        self.store.clear_all()
        self._selected_key = None
        self._end_gesture()
        self._changed()

    # ── Pointer events ────────────────────────────────────────────────────────

    def pointer_down(self, screen: Point) -> HitResult:
        mode = self.mode
        if mode is Mode.TOOL_ARMED:
            return self._apply_tool(screen)
        if mode is not Mode.IDLE:
            return HitResult(HitKind.NONE, doc_point=self.transform.to_document(screen))

        hit = hit_tester.hit_test(screen, self.transform, self.store, self.selected_key)
        doc = hit.doc_point
        self._last_screen = screen

        if hit.kind is HitKind.PICTOGRAM_HANDLE:
            self._selected_key = self._target_key = hit.key
            self._resize_corner = hit.corner
            self._gesture = Mode.RESIZING_PICTOGRAM
        elif hit.kind is HitKind.PICTOGRAM_BODY:
            pic = self.store.pictogram(hit.key)
            self._selected_key = self._target_key = hit.key
            self._grab_offset = (doc[0] - pic.x, doc[1] - pic.y)
            self._gesture = Mode.DRAGGING_PICTOGRAM
            self._changed()
        elif hit.kind is HitKind.MARKER:
            marker = self.store.marker(hit.key)
            self._target_key = hit.key
            self._grab_offset = (doc[0] - marker.x, doc[1] - marker.y)
            self._gesture = Mode.DRAGGING_MARKER
            self._changed()
        else:
            # Labels are not draggable: a click on one pans like empty space
            if self._selected_key is not None:
                self._selected_key = None
                self._changed()
            self._gesture = Mode.PANNING
        return hit

    def pointer_move(self, screen: Point) -> None:
        mode = self._gesture
        if mode is Mode.PANNING:
            dx = screen[0] - self._last_screen[0]
            dy = screen[1] - self._last_screen[1]
            self._last_screen = screen
            if dx or dy:
                self.transform.pan(dx, dy)
                self._changed()
        elif mode is Mode.DRAGGING_MARKER:
            marker = self.store.marker(self._target_key)
            if marker is None:
                self._end_gesture()
                return
            doc = self.transform.to_document(screen)
            marker.x = doc[0] - self._grab_offset[0]
            marker.y = doc[1] - self._grab_offset[1]
            self._changed()
        elif mode is Mode.DRAGGING_PICTOGRAM:
            pic = self.store.pictogram(self._target_key)
            if pic is None:
                self._end_gesture()
                return
            doc = self.transform.to_document(screen)
            pic.x = doc[0] - self._grab_offset[0]
            pic.y = doc[1] - self._grab_offset[1]
            self._changed()
        elif mode is Mode.RESIZING_PICTOGRAM:
            pic = self.store.pictogram(self._target_key)
            if pic is None:
                self._end_gesture()
                return
            box = compute_resize(pic, self._resize_corner, self.transform.to_document(screen))
            if box is not None:
                pic.x, pic.y, pic.width, pic.height = box
                self._changed()

    def pointer_up(self, screen: Optional[Point] = None) -> None:
        if self._gesture in _MANIPULATIONS or self._gesture is Mode.PANNING:
            if screen is not None and self._gesture is not Mode.PANNING:
                self.pointer_move(screen)
            self._end_gesture()

    def pointer_leave(self) -> None:
        if self._gesture in _MANIPULATIONS or self._gesture is Mode.PANNING:
            self._end_gesture()

    def wheel(self, screen: Point, delta: float) -> bool:
        """Zoom one step at *screen*; *delta* > 0 zooms in, < 0 zooms out."""
        if not delta or self._gesture in _MANIPULATIONS:
            return False
        if self.transform.zoom_at(screen, wheel_factor(1 if delta > 0 else -1)):
            self._changed()
            return True
        return False

    # ── Palette drag & drop ───────────────────────────────────────────────────

    def begin_palette_drag(self, asset_id: str) -> bool:
        if self.mode not in (Mode.IDLE, Mode.TOOL_ARMED):
            return False
        self._palette_asset = asset_id
        self._gesture = Mode.PLACING_PICTOGRAM_FROM_PALETTE
        return True

    def cancel_palette_drag(self) -> None:
        if self._gesture is Mode.PLACING_PICTOGRAM_FROM_PALETTE:
            self._end_gesture()

    def drop_from_palette(self, screen: Point, inside: bool = True) -> Optional[Pictogram]:
        """Finish a palette drag; places the pictogram when dropped on the canvas."""
        if self._gesture is not Mode.PLACING_PICTOGRAM_FROM_PALETTE:
            return None
        asset_id = self._palette_asset
        self._end_gesture()
        if not inside or asset_id is None:
            return None
        x, y = self.transform.to_document(screen)
        pic = self.store.add_pictogram(x, y, self.pictogram_size, self.pictogram_size, asset_id)
        data_store.dbg(f"Placed pictogram {asset_id!r} at ({x:.1f}, {y:.1f})")
        if self._request_asset is not None:
            self._request_asset(pic)
        self._changed()
        return pic

    # ── Cursor ────────────────────────────────────────────────────────────────

    def cursor_hint(self, screen: Point) -> str:
        """CSS-style cursor name for the pointer at *screen*."""
        mode = self.mode
        if mode is Mode.RESIZING_PICTOGRAM:
            return _resize_cursor(self._resize_corner)
        if mode in (Mode.PANNING, Mode.DRAGGING_MARKER, Mode.DRAGGING_PICTOGRAM):
            return "grabbing"
        if mode is Mode.TOOL_ARMED:
            return "crosshair" if self.tool.action is ToolAction.ADD else "pointer"
        if mode is Mode.PLACING_PICTOGRAM_FROM_PALETTE:
            return "copy"
        hit = hit_tester.hit_test(screen, self.transform, self.store, self.selected_key)
        if hit.kind is HitKind.PICTOGRAM_HANDLE:
            return _resize_cursor(hit.corner)
        return "grab"

    # ── Internal ──────────────────────────────────────────────────────────────

    def _end_gesture(self) -> None:
        self._gesture = Mode.IDLE
        self._target_key = None
        self._resize_corner = None
        self._grab_offset = (0.0, 0.0)
        self._palette_asset = None

    def _apply_tool(self, screen: Point) -> HitResult:
        tool = self.tool
        doc = self.transform.to_document(screen)
        result = HitResult(HitKind.NONE, doc_point=doc)

        if tool is Tool.ADD_MARKER:
            marker = self.store.add_point(*doc)
            result = HitResult(HitKind.MARKER, marker.key, None, doc)
        elif tool is Tool.ADD_LABEL:
            draft = self._label_form() if self._label_form is not None else LabelDraft()
            value = draft.value
            if value is not None and not math.isfinite(value):
                value = None
            label = self.store.add_label(doc[0], doc[1], value, draft.unit, draft.kind)
            if label is None:
                data_store.dbg("Label not placed: no value entered")
                return result
            result = HitResult(HitKind.LABEL, label.key, None, doc)
        elif tool is Tool.REMOVE_MARKER:
            marker = self.store.remove_point_near(doc, hit_tester.MARKER_HIT_RADIUS)
            if marker is None:
                return result
            result = HitResult(HitKind.MARKER, marker.key, None, doc)
        elif tool is Tool.REMOVE_LABEL:
            label = self.store.remove_label_near(doc, hit_tester.LABEL_HIT_RADIUS)
            if label is None:
                return result
            result = HitResult(HitKind.LABEL, label.key, None, doc)
        elif tool is Tool.REMOVE_PICTOGRAM:
            pic = hit_tester.pictogram_at(self.store, doc)
            if pic is None:
                return result
            self.store.remove_pictogram(pic.key)
            if self._selected_key == pic.key:
                self._selected_key = None
            result = HitResult(HitKind.PICTOGRAM_BODY, pic.key, None, doc)
        else:
            raise AssertionError(f"unhandled tool {tool!r}")

        self._changed()
        return result


def _resize_cursor(corner: Optional[str]) -> str:
    return "nwse-resize" if corner in ("nw", "se") else "nesw-resize"
