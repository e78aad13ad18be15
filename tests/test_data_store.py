import json

import pytest

import data_store
from errors import DecodeError, InputError
from models import AppSettings, DoseUnit, LabelKind


def test_load_settings_defaults():
    assert data_store.load_settings() == AppSettings()


def test_settings_round_trip(tmp_data_dir):
    settings = AppSettings(debug_mode=True, render_scale=3.0, postings_dir="/icons",
                           default_label_unit=DoseUnit.MILLI_SV_HR)
    data_store.save_settings(settings)
    raw = json.loads((tmp_data_dir / "settings.json").read_text(encoding="utf-8"))
    assert raw["default_label_unit"] == "mSv/hr"
    assert data_store.load_settings() == settings


def test_settings_partial_and_bad_unit(tmp_data_dir):
    (tmp_data_dir / "settings.json").write_text(
        json.dumps({"hi_dpr": False, "default_label_unit": "furlongs"}), encoding="utf-8"
    )
    settings = data_store.load_settings()
    assert settings.hi_dpr is False
    assert settings.default_label_unit is DoseUnit.MICRO_R_HR
    assert settings.render_scale == 2.0


def test_annotation_snapshot_round_trip(tmp_path, store):
    from annotation_store import AnnotationStore

    store.add_point(10, 20)
    store.add_label(30, 40, 1.5, DoseUnit.CPM, LabelKind.SECONDARY)
    store.add_pictogram(50, 60, 80, 40, "drum-can.svg", rotation=45)
    path = tmp_path / "sub" / "survey.json"
    data_store.save_annotations(str(path), store)

    saved = json.loads(path.read_text(encoding="utf-8"))
    assert saved["version"] == data_store.SNAPSHOT_VERSION

    restored = AnnotationStore()
    restored.add_point(999, 999)
    data_store.load_annotations(str(path), restored)
    assert restored.to_dict() == store.to_dict()


def test_newer_snapshot_rejected(tmp_path, store):
    path = tmp_path / "future.json"
    path.write_text(json.dumps({"version": data_store.SNAPSHOT_VERSION + 1}), encoding="utf-8")
    store.add_point(1, 1)
    with pytest.raises(DecodeError):
        data_store.load_annotations(str(path), store)
    assert len(store.markers) == 1


def test_dbg_only_when_enabled(capsys):
    data_store.dbg("hidden")
    assert capsys.readouterr().out == ""
    data_store.set_debug(True)
    assert data_store.is_debug()
    data_store.dbg("shown")
    assert capsys.readouterr().out == "[dbg] shown\n"


@pytest.mark.parametrize("content", [
    "[]",
    '"just a string"',
    "{not json",
    json.dumps({"markers": [5]}),
    json.dumps({"markers": [{"id": 1, "x": 0}]}),
    json.dumps({"labels": [[1, 2, 3]]}),
    json.dumps({"pictograms": 7}),
    json.dumps({"version": "one"}),
])
def test_malformed_snapshot_is_input_error(tmp_path, store, content):
    path = tmp_path / "bad.json"
    path.write_text(content, encoding="utf-8")
    marker = store.add_point(1, 1)
    with pytest.raises(InputError):
        data_store.load_annotations(str(path), store)
    assert store.markers == (marker,)
    assert store.next_marker_id == 2
