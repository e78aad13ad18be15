"""View transform: pan, rotate-about-image-centre, scale.

Screen (viewport pixel) and document (base-image pixel) coordinates are
related by::

    screen = pan + scale * (c + R(theta) * (doc - c))

where *c* is the centre of the base image and *R* a rotation by the current
angle.  This is the same mapping as the chained painter operations
``translate(pan) · translate(c·s) · rotate(theta) · translate(-c·s) · scale(s)``
so the base image and the annotations can share one transform.
"""
import math
from dataclasses import dataclass
from typing import Tuple

import data_store
from errors import GeometryError

Point = Tuple[float, float]

FIT_PADDING = 0.95     # leave 5 % of the viewport free around the page
WHEEL_ZOOM_STEP = 0.1  # one wheel notch = ±10 %


@dataclass(frozen=True)
class TransformState:
    pan_x: float
    pan_y: float
    scale: float
    rotation: float


def wheel_factor(direction: int) -> float:
    """Zoom factor for one wheel event; *direction* > 0 zooms in."""
    return 1.0 + WHEEL_ZOOM_STEP if direction > 0 else 1.0 - WHEEL_ZOOM_STEP


class TransformEngine:
    def __init__(self, image_width: float = 0.0, image_height: float = 0.0):
        self.pan_x: float = 0.0
        self.pan_y: float = 0.0
        self.scale: float = 1.0
        self.rotation: float = 0.0   # degrees, [0, 360)
        self.image_width = float(image_width)
        self.image_height = float(image_height)

    # ── State ─────────────────────────────────────────────────────────────────

    def set_image_size(self, width: float, height: float) -> None:
        self.image_width = float(width)
        self.image_height = float(height)

    def center(self) -> Point:
        return self.image_width / 2.0, self.image_height / 2.0

    def snapshot(self) -> TransformState:
        return TransformState(self.pan_x, self.pan_y, self.scale, self.rotation)

    def reset(self) -> None:
        self.pan_x = self.pan_y = 0.0
        self.scale = 1.0
        self.rotation = 0.0

    # ── Coordinate conversion ────────────────────────────────────────────────

    def _cos_sin(self) -> Tuple[float, float]:
        rad = math.radians(self.rotation)
        return math.cos(rad), math.sin(rad)

    def to_screen(self, doc: Point) -> Point:
        """Document → screen: scale, rotate about the image centre, pan."""
        cx, cy = self.center()
        cos, sin = self._cos_sin()
        dx, dy = doc[0] - cx, doc[1] - cy
        rx = cx + dx * cos - dy * sin
        ry = cy + dx * sin + dy * cos
        return self.pan_x + rx * self.scale, self.pan_y + ry * self.scale

    def to_document(self, screen: Point) -> Point:
        """Screen → document: undo pan, undo rotation, undo scale."""
        cx, cy = self.center()
        cos, sin = self._cos_sin()
        # Page coordinates still rotated about the centre
        qx = (screen[0] - self.pan_x) / self.scale - cx
        qy = (screen[1] - self.pan_y) / self.scale - cy
        return cx + qx * cos + qy * sin, cy - qx * sin + qy * cos

    # ── Mutation ─────────────────────────────────────────────────────────────

    def pan(self, dx: float, dy: float) -> None:
        self.pan_x += dx
        self.pan_y += dy

    def zoom_at(self, screen: Point, factor: float) -> bool:
        """Multiply the scale by *factor* keeping the point under *screen* fixed."""
        new_scale = self.scale * factor
        if not (factor > 0 and math.isfinite(new_scale) and new_scale > 0):
            data_store.dbg(f"Ignoring zoom factor {factor!r}")
            return False
        anchor = self.to_document(screen)
        self.scale = new_scale
        # Solve pan so that to_screen(anchor) == screen with the new scale
        sx, sy = self.to_screen(anchor)
        self.pan_x += screen[0] - sx
        self.pan_y += screen[1] - sy
        return True

    def set_rotation(self, degrees: float) -> None:
        rotation = float(degrees) % 360.0
        # Tiny negative inputs round up to exactly 360.0
        self.rotation = 0.0 if rotation >= 360.0 else rotation

    def set_scale(self, value: float) -> bool:
        value = float(value)
        if not (math.isfinite(value) and value > 0):
            data_store.dbg(f"Ignoring non-positive scale {value!r}")
            return False
        self.scale = value
        return True

    def fit_and_center(self, viewport_width: float, viewport_height: float,
                       image_width: float, image_height: float) -> bool:
        """Fit the image into the viewport (95 %), centre it, reset rotation.

        Returns False (and changes nothing) for non-positive dimensions.
        """
        try:
            _check_dimensions(viewport_width, viewport_height, image_width, image_height)
        except GeometryError as exc:
            data_store.dbg(f"fit_and_center skipped: {exc}")
            return False
        self.set_image_size(image_width, image_height)
        self.scale = min(viewport_width / image_width,
                         viewport_height / image_height) * FIT_PADDING
        self.pan_x = (viewport_width - image_width * self.scale) / 2.0
        self.pan_y = (viewport_height - image_height * self.scale) / 2.0
        self.rotation = 0.0
        return True


def _check_dimensions(*dims: float) -> None:
    for d in dims:
        if not (math.isfinite(d) and d > 0):
            raise GeometryError(f"dimensions must be positive, got {dims}")
