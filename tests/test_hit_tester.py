import pytest

import hit_tester
from hit_tester import HitKind, hit_test
from models import Pictogram


def test_empty_store_hits_nothing(transform, store):
    hit = hit_test((10, 10), transform, store)
    assert not hit
    assert hit.kind is HitKind.NONE
    assert hit.doc_point == (10, 10)


def test_pictogram_beats_marker(transform, store):
    store.add_point(100, 100)
    pic = store.add_pictogram(100, 100, 80, 80, "drum-can.svg")
    hit = hit_test((100, 100), transform, store)
    assert hit.kind is HitKind.PICTOGRAM_BODY
    assert hit.key == pic.key


def test_marker_beats_label(transform, store):
    store.add_label(300, 300, 1.0)
    marker = store.add_point(310, 300)
    hit = hit_test((305, 300), transform, store)
    assert (hit.kind, hit.key) == (HitKind.MARKER, marker.key)


def test_label_within_its_own_radius(transform, store):
    label = store.add_label(300, 300, 1.0)
    hit = hit_test((325, 300), transform, store)
    assert (hit.kind, hit.key) == (HitKind.LABEL, label.key)
    assert not hit_test((331, 300), transform, store)


def test_topmost_pictogram_wins(transform, store):
    store.add_pictogram(100, 100, 80, 80, "a.svg")
    top = store.add_pictogram(120, 100, 80, 80, "b.svg")
    assert hit_test((110, 100), transform, store).key == top.key


def test_handles_only_for_selected(transform, store):
    pic = store.add_pictogram(200, 200, 80, 80, "drum-can.svg")
    corner_point = (245, 245)   # just outside the body
    assert not hit_test(corner_point, transform, store)
    hit = hit_test(corner_point, transform, store, selected_key=pic.key)
    assert (hit.kind, hit.corner) == (HitKind.PICTOGRAM_HANDLE, "se")


def test_handle_zone_is_constant_on_screen(transform, store):
    pic = store.add_pictogram(200, 200, 80, 80, "drum-can.svg")
    transform.set_scale(2)
    # se handle centre sits 5 px outside the corner: doc (242.5, 242.5) -> screen (485, 485)
    hit = hit_test((485, 485), transform, store, selected_key=pic.key)
    assert hit.kind is HitKind.PICTOGRAM_HANDLE
    assert hit.corner == "se"
    assert not hit_test((496, 485), transform, store, selected_key=pic.key)


def test_handle_beats_body_of_other_pictogram(transform, store):
    pic = store.add_pictogram(200, 200, 80, 80, "a.svg")
    store.add_pictogram(260, 260, 80, 80, "b.svg")
    hit = hit_test((245, 245), transform, store, selected_key=pic.key)
    assert hit.kind is HitKind.PICTOGRAM_HANDLE
    assert hit.key == pic.key


def test_rotated_pictogram_body():
    pic = Pictogram(x=500, y=500, width=100, height=40, asset_id="a.svg", rotation=90)
    assert hit_tester.contains(pic, (500, 540))
    assert not hit_tester.contains(pic, (540, 500))


def test_hit_under_rotated_view(store):
    from transform_engine import TransformEngine

    t = TransformEngine(1000, 800)
    t.set_rotation(90)
    marker = store.add_point(600, 400)
    # (600, 400) rotates onto (500, 500) about the image centre
    hit = hit_test((500, 500), t, store)
    assert (hit.kind, hit.key) == (HitKind.MARKER, marker.key)


def test_local_frame_round_trip():
    pic = Pictogram(x=10, y=20, width=50, height=30, asset_id="a.svg", rotation=33)
    local = hit_tester.to_local(pic, (40, -5))
    back = hit_tester.from_local(pic, local)
    assert back == (pytest.approx(40), pytest.approx(-5))


def test_opposite_corner():
    assert hit_tester.opposite_corner("nw") == "se"
    assert hit_tester.opposite_corner("ne") == "sw"
