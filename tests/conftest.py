import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PySide6.QtWidgets import QApplication

import data_store
from annotation_store import AnnotationStore
from interaction import InteractionController
from transform_engine import TransformEngine


@pytest.fixture(scope="session")
def qapp():
    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture(autouse=True)
def tmp_data_dir(tmp_path, monkeypatch):
    """Redirect settings reads/writes to a temporary directory."""
    monkeypatch.setattr(data_store, "DATA_DIR", str(tmp_path))
    monkeypatch.setattr(data_store, "SETTINGS_PATH", str(tmp_path / "settings.json"))
    data_store.set_debug(False)
    return tmp_path


@pytest.fixture()
def store():
    return AnnotationStore()


@pytest.fixture()
def transform():
    """Identity view over a 1000×800 base image."""
    return TransformEngine(1000, 800)


@pytest.fixture()
def changes():
    return []


@pytest.fixture()
def controller(transform, store, changes):
    return InteractionController(transform, store, on_change=lambda: changes.append(1))
