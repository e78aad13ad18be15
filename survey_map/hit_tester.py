"""Hit-testing: which annotation (and which part of it) is under the pointer.

Screen points are converted to document space first; all tolerances are
expressed in document units.  Pictogram handle sizes are given in screen
pixels and divided by the current scale so that they stay the same size on
screen at every zoom level.
"""
import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from annotation_store import AnnotationStore
from models import Pictogram
from transform_engine import TransformEngine

Point = Tuple[float, float]

MARKER_HIT_RADIUS = 20.0   # document units
LABEL_HIT_RADIUS = 30.0    # labels are sparser targets than markers
HANDLE_HIT_PX = 8.0        # half-size of the handle hot-zone, screen pixels
HANDLE_MARGIN_PX = 5.0     # handles sit this far outside the box, screen pixels

CORNERS = ("nw", "ne", "sw", "se")
_CORNER_SIGNS: Dict[str, Tuple[int, int]] = {
    "nw": (-1, -1),
    "ne": (1, -1),
    "sw": (-1, 1),
    "se": (1, 1),
}


class HitKind(Enum):
    NONE = "none"
    MARKER = "marker"
    LABEL = "label"
    PICTOGRAM_BODY = "pictogram-body"
    PICTOGRAM_HANDLE = "pictogram-handle"


@dataclass(frozen=True)
class HitResult:
    kind: HitKind
    key: Optional[int] = None       # store key of the hit entity
    corner: Optional[str] = None    # only for PICTOGRAM_HANDLE
    doc_point: Point = (0.0, 0.0)   # pointer position in document space

    def __bool__(self) -> bool:
        return self.kind is not HitKind.NONE


# ── Pictogram geometry ────────────────────────────────────────────────────────

def corner_signs(corner: str) -> Tuple[int, int]:
    return _CORNER_SIGNS[corner]


def opposite_corner(corner: str) -> str:
    sx, sy = _CORNER_SIGNS[corner]
    return next(name for name, signs in _CORNER_SIGNS.items() if signs == (-sx, -sy))


def to_local(pic: Pictogram, point: Point) -> Point:
    """Map a document point into *pic*'s unrotated frame (origin at its centre)."""
    dx, dy = point[0] - pic.x, point[1] - pic.y
    if not pic.rotation:
        return dx, dy
    rad = math.radians(pic.rotation)
    cos, sin = math.cos(rad), math.sin(rad)
    return dx * cos + dy * sin, -dx * sin + dy * cos


def from_local(pic: Pictogram, local: Point) -> Point:
    """Inverse of :func:`to_local`."""
    lx, ly = local
    if not pic.rotation:
        return pic.x + lx, pic.y + ly
    rad = math.radians(pic.rotation)
    cos, sin = math.cos(rad), math.sin(rad)
    return pic.x + lx * cos - ly * sin, pic.y + lx * sin + ly * cos


def handle_positions(pic: Pictogram, scale: float) -> Dict[str, Point]:
    """Local-frame centres of the four resize handles of *pic*."""
    margin = HANDLE_MARGIN_PX / scale
    hw, hh = pic.half_size()
    return {
        name: (sx * (hw + margin), sy * (hh + margin))
        for name, (sx, sy) in _CORNER_SIGNS.items()
    }


def handle_at(pic: Pictogram, doc_point: Point, scale: float) -> Optional[str]:
    """Name of the handle of *pic* under *doc_point*, or None."""
    lx, ly = to_local(pic, doc_point)
    reach = HANDLE_HIT_PX / scale
    for name, (hx, hy) in handle_positions(pic, scale).items():
        if abs(lx - hx) <= reach and abs(ly - hy) <= reach:
            return name
    return None


def contains(pic: Pictogram, doc_point: Point) -> bool:
    lx, ly = to_local(pic, doc_point)
    hw, hh = pic.half_size()
    return -hw <= lx <= hw and -hh <= ly <= hh


def pictogram_at(store: AnnotationStore, doc_point: Point) -> Optional[Pictogram]:
    """Topmost pictogram whose body contains *doc_point*."""
    for pic in reversed(store.pictograms):
        if contains(pic, doc_point):
            return pic
    return None


# ── Main entry point ──────────────────────────────────────────────────────────

def hit_test(screen_point: Point, transform: TransformEngine, store: AnnotationStore,
             selected_key: Optional[int] = None) -> HitResult:
    """Return the single highest-priority hit under *screen_point*.

    Priority: handles of the selected pictogram, pictogram bodies (topmost
    first), closest marker, closest label.
    """
    doc = transform.to_document(screen_point)

    selected = store.pictogram(selected_key)
    if selected is not None:
        corner = handle_at(selected, doc, transform.scale)
        if corner is not None:
            return HitResult(HitKind.PICTOGRAM_HANDLE, selected.key, corner, doc)

    pic = pictogram_at(store, doc)
    if pic is not None:
        return HitResult(HitKind.PICTOGRAM_BODY, pic.key, None, doc)

    marker = store.find_point_near(doc, MARKER_HIT_RADIUS)
    if marker is not None:
        return HitResult(HitKind.MARKER, marker.key, None, doc)

    label = store.find_label_near(doc, LABEL_HIT_RADIUS)
    if label is not None:
        return HitResult(HitKind.LABEL, label.key, None, doc)

    return HitResult(HitKind.NONE, None, None, doc)
