"""Paint the survey map: base page plus annotations, through the view transform.

Annotation coordinates live in document space (base-image pixels), so both
the page and the annotations are drawn with the *same* painter transform.
Sizes of markers and label text are in document units and grow with zoom;
selection chrome (dashed box, handles) is divided by the scale so it keeps a
constant on-screen size, matching the hit zones in :mod:`hit_tester`.
"""
from typing import Optional

from PySide6.QtCore import QBuffer, QByteArray, QIODevice, QPointF, QRectF, Qt
from PySide6.QtGui import (
    QBrush, QColor, QFont, QFontMetricsF, QImage, QPainter, QPen, QTransform,
)

import hit_tester
from annotation_store import AnnotationStore
from models import LabelKind, Pictogram, PointMarker, TextLabel
from transform_engine import TransformEngine

MARKER_RADIUS = 15.0        # document units
_FONT_PX = 12
_NEUTRON_DOT_RADIUS = 3.0
_NEUTRON_DOT_GAP = 8.0
_HANDLE_DRAW_PX = 6.0       # side of a handle square on screen
_SELECTION_PEN_PX = 2

_MARKER_FILL        = QColor(255, 193, 7, 153)
_MARKER_STROKE      = QColor("#ffc107")
_MARKER_DRAG_FILL   = QColor(255, 152, 0, 204)
_MARKER_DRAG_STROKE = QColor("#ff9800")
_NEUTRON_BLUE       = QColor("#007bff")
_PLACEHOLDER_FILL   = QColor(128, 128, 128, 128)
_PLACEHOLDER_STROKE = QColor("#666666")
_SELECTION_BLUE     = QColor("#3498db")


def view_transform(transform: TransformEngine) -> QTransform:
    """Painter transform equivalent to :meth:`TransformEngine.to_screen`."""
    s = transform.scale
    cx, cy = transform.center()
    t = QTransform()
    t.translate(transform.pan_x, transform.pan_y)
    t.translate(cx * s, cy * s)
    t.rotate(transform.rotation)
    t.translate(-cx * s, -cy * s)
    t.scale(s, s)
    return t


# ── Public API ────────────────────────────────────────────────────────────────

def render(
    target: QImage,
    base: Optional[QImage],
    transform: TransformEngine,
    store: AnnotationStore,
    selected_key: Optional[int] = None,
    dragged_marker_key: Optional[int] = None,
    background: Optional[QColor] = None,
) -> QImage:
    """Paint the whole scene into *target* (in place) and return it."""
    painter = QPainter(target)
    try:
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.setCompositionMode(QPainter.CompositionMode.CompositionMode_Source)
        painter.fillRect(target.rect(), background or QColor(0, 0, 0, 0))
        painter.setCompositionMode(QPainter.CompositionMode.CompositionMode_SourceOver)

        painter.setTransform(view_transform(transform))
        if base is not None and not base.isNull():
            painter.drawImage(QPointF(0, 0), base)

        for marker in store.markers:
            _draw_marker(painter, marker, dragged=marker.key == dragged_marker_key)
        for label in store.labels:
            _draw_label(painter, label)
        for pic in store.pictograms:
            _draw_pictogram(painter, pic)
            if pic.key == selected_key:
                _draw_selection(painter, pic, transform.scale)
    finally:
        painter.end()
    return target


def render_to_image(width: int, height: int, base: Optional[QImage],
                    transform: TransformEngine, store: AnnotationStore,
                    selected_key: Optional[int] = None,
                    dragged_marker_key: Optional[int] = None,
                    background: Optional[QColor] = None) -> QImage:
    image = QImage(max(1, int(width)), max(1, int(height)),
                   QImage.Format.Format_ARGB32_Premultiplied)
    return render(image, base, transform, store, selected_key,
                  dragged_marker_key=dragged_marker_key, background=background)


def export_png(image: QImage) -> bytes:
    """Encode *image* as PNG bytes."""
    data = QByteArray()
    buf = QBuffer(data)
    buf.open(QIODevice.OpenModeFlag.WriteOnly)
    ok = image.save(buf, "PNG")
    buf.close()
    if not ok:
        raise RuntimeError("PNG encoding failed")
    return bytes(data.data())


# ── Internal helpers ──────────────────────────────────────────────────────────

def _bold_font() -> QFont:
    font = QFont("Arial")
    font.setPixelSize(_FONT_PX)
    font.setBold(True)
    return font


def _draw_marker(painter: QPainter, marker: PointMarker, dragged: bool = False):
    if dragged:
        painter.setPen(QPen(_MARKER_DRAG_STROKE, 3))
        painter.setBrush(QBrush(_MARKER_DRAG_FILL))
    else:
        painter.setPen(QPen(_MARKER_STROKE, 2))
        painter.setBrush(QBrush(_MARKER_FILL))
    centre = QPointF(marker.x, marker.y)
    painter.drawEllipse(centre, MARKER_RADIUS, MARKER_RADIUS)

    painter.setFont(_bold_font())
    painter.setPen(QColor("black"))
    box = QRectF(marker.x - MARKER_RADIUS, marker.y - MARKER_RADIUS,
                 MARKER_RADIUS * 2, MARKER_RADIUS * 2)
    painter.drawText(box, Qt.AlignmentFlag.AlignCenter, str(marker.id))


def _draw_label(painter: QPainter, label: TextLabel):
    font = _bold_font()
    painter.setFont(font)
    text = label.display_text()
    fm = QFontMetricsF(font)
    tw, th = fm.horizontalAdvance(text), fm.height()

    if label.kind is LabelKind.SECONDARY:
        dot = QPointF(label.x - tw / 2 - _NEUTRON_DOT_GAP, label.y)
        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(QBrush(_NEUTRON_BLUE))
        painter.drawEllipse(dot, _NEUTRON_DOT_RADIUS, _NEUTRON_DOT_RADIUS)

    painter.setPen(QColor("black"))
    painter.drawText(QRectF(label.x - tw / 2 - 2, label.y - th / 2, tw + 4, th),
                     Qt.AlignmentFlag.AlignCenter, text)


def _pictogram_rect(pic: Pictogram) -> QRectF:
    hw, hh = pic.half_size()
    return QRectF(-hw, -hh, pic.width, pic.height)


def _enter_local_frame(painter: QPainter, pic: Pictogram):
    painter.translate(pic.x, pic.y)
    if pic.rotation:
        painter.rotate(pic.rotation)


def _draw_pictogram(painter: QPainter, pic: Pictogram):
    painter.save()
    _enter_local_frame(painter, pic)
    rect = _pictogram_rect(pic)
    image = pic.image
    if isinstance(image, QImage) and not image.isNull():
        painter.drawImage(rect, image)
    else:
        # Asset still decoding or unavailable
        pen = QPen(_PLACEHOLDER_STROKE, 1)
        pen.setCosmetic(True)
        painter.setPen(pen)
        painter.setBrush(QBrush(_PLACEHOLDER_FILL))
        painter.drawRect(rect)
    painter.restore()


def _draw_selection(painter: QPainter, pic: Pictogram, scale: float):
    painter.save()
    _enter_local_frame(painter, pic)
    margin = hit_tester.HANDLE_MARGIN_PX / scale
    rect = _pictogram_rect(pic).adjusted(-margin, -margin, margin, margin)

    pen = QPen(_SELECTION_BLUE, _SELECTION_PEN_PX, Qt.PenStyle.DashLine)
    pen.setCosmetic(True)
    painter.setPen(pen)
    painter.setBrush(Qt.BrushStyle.NoBrush)
    painter.drawRect(rect)

    side = _HANDLE_DRAW_PX / scale
    for hx, hy in hit_tester.handle_positions(pic, scale).values():
        painter.fillRect(QRectF(hx - side / 2, hy - side / 2, side, side), _SELECTION_BLUE)
    painter.restore()
