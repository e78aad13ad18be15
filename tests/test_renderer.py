import pytest
from PySide6.QtCore import QPointF
from PySide6.QtGui import QColor, QImage, QPainter

import renderer
from transform_engine import TransformEngine

RED = QColor(255, 0, 0)
BLUE = QColor(0, 0, 255)


def _base(width=100, height=80):
    """Red page with a blue 20×20 square in the top-left corner."""
    img = QImage(width, height, QImage.Format.Format_ARGB32_Premultiplied)
    img.fill(RED)
    p = QPainter(img)
    p.fillRect(0, 0, 20, 20, BLUE)
    p.end()
    return img


def _pixel(img, x, y):
    return QColor(img.pixel(x, y))


@pytest.mark.parametrize("rotation", [0, 45, 180])
def test_view_transform_matches_engine(rotation):
    t = TransformEngine(1000, 800)
    t.pan(30, -12)
    t.set_scale(0.8)
    t.set_rotation(rotation)
    qt = renderer.view_transform(t)
    for doc in [(0, 0), (250, 600), (1000, 800)]:
        mapped = qt.map(QPointF(*doc))
        sx, sy = t.to_screen(doc)
        assert mapped.x() == pytest.approx(sx, abs=1e-6)
        assert mapped.y() == pytest.approx(sy, abs=1e-6)


def test_render_base_identity(qapp, store):
    t = TransformEngine(100, 80)
    img = renderer.render_to_image(100, 80, _base(), t, store)
    assert _pixel(img, 10, 10) == BLUE
    assert _pixel(img, 60, 40) == RED


def test_render_base_rotated(qapp, store):
    t = TransformEngine(100, 80)
    t.set_rotation(180)
    img = renderer.render_to_image(100, 80, _base(), t, store)
    # The blue corner rotates about the page centre to the bottom right
    assert _pixel(img, 90, 70) == BLUE
    assert _pixel(img, 10, 10) == RED


def test_annotations_follow_the_page(qapp, store):
    t = TransformEngine(100, 80)
    store.add_point(20, 40)
    t.set_rotation(180)
    img = renderer.render_to_image(100, 80, _base(), t, store)
    # Marker at doc (20, 40) is drawn at screen (80, 40); sample inside the fill
    assert _pixel(img, 88, 40) != RED
    assert _pixel(img, 12, 40) == RED


def test_pictogram_placeholder_drawn(qapp, store):
    t = TransformEngine(100, 80)
    store.add_pictogram(60, 40, 30, 30, "missing.svg")
    img = renderer.render_to_image(100, 80, _base(), t, store)
    assert _pixel(img, 60, 40) != RED


def test_pictogram_image_drawn(qapp, store):
    t = TransformEngine(100, 80)
    icon = QImage(10, 10, QImage.Format.Format_ARGB32_Premultiplied)
    icon.fill(QColor(0, 255, 0))
    store.add_pictogram(60, 40, 30, 30, "green.svg", image=icon)
    img = renderer.render_to_image(100, 80, _base(), t, store)
    assert _pixel(img, 60, 40) == QColor(0, 255, 0)


def test_render_clears_previous_frame(qapp, store):
    t = TransformEngine(100, 80)
    target = QImage(100, 80, QImage.Format.Format_ARGB32_Premultiplied)
    target.fill(RED)
    renderer.render(target, None, t, store)
    assert QColor.fromRgba(target.pixel(50, 40)).alpha() == 0


def test_render_all_kinds_with_selection(qapp, store):
    from models import LabelKind

    t = TransformEngine(200, 200)
    t.set_scale(1.5)
    store.add_point(20, 20)
    store.add_label(100, 100, 0.5, kind=LabelKind.SECONDARY)
    pic = store.add_pictogram(150, 150, 40, 40, "drum-can.svg", rotation=30)
    img = renderer.render_to_image(300, 300, None, t, store, selected_key=pic.key)
    assert (img.width(), img.height()) == (300, 300)


def test_export_png(qapp, store):
    img = renderer.render_to_image(40, 30, _base(40, 30), TransformEngine(40, 30), store)
    data = renderer.export_png(img)
    assert data.startswith(b"\x89PNG")
    decoded = QImage.fromData(data)
    assert (decoded.width(), decoded.height()) == (40, 30)


def test_dragged_marker_is_highlighted(qapp, store):
    t = TransformEngine(100, 80)
    marker = store.add_point(50, 40)
    idle = renderer.render_to_image(100, 80, _base(), t, store)
    dragged = renderer.render_to_image(100, 80, _base(), t, store,
                                       dragged_marker_key=marker.key)
    assert _pixel(idle, 58, 40) != _pixel(dragged, 58, 40)
