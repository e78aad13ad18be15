"""Main entry point for the Survey Map annotator."""
import os
import sys
from typing import Dict, Optional

from PySide6.QtCore import QEvent, QObject, Qt
from PySide6.QtGui import QDoubleValidator
from PySide6.QtWidgets import (
    QApplication,
    QButtonGroup,
    QComboBox,
    QFileDialog,
    QFormLayout,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QPlainTextEdit,
    QPushButton,
    QRadioButton,
    QSlider,
    QSplitter,
    QVBoxLayout,
    QWidget,
)

import data_store
from annotation_store import AnnotationStore
from asset_loader import AssetLibrary
from document_loader import load_base_image_file
from errors import InputError
from interaction import Tool
from models import AppSettings, DoseUnit, LabelDraft, LabelKind
from survey_canvas import AssetPalette, SurveyCanvas
from transform_engine import TransformEngine

_SCALE_SLIDER_STEPS = 100   # slider value = scale × 100
_SCALE_SLIDER_MIN = 5
_SCALE_SLIDER_MAX = 500

_KEY_TOOL_MAP = {
    Qt.Key.Key_M: Tool.ADD_MARKER,
    Qt.Key.Key_N: Tool.REMOVE_MARKER,
    Qt.Key.Key_D: Tool.ADD_LABEL,
    Qt.Key.Key_F: Tool.REMOVE_LABEL,
    Qt.Key.Key_E: Tool.REMOVE_PICTOGRAM,
}

_TOOL_BUTTONS = [
    (Tool.ADD_MARKER,       "Add Smear",        "Add numbered smear marker (M)"),
    (Tool.REMOVE_MARKER,    "Remove Smear",     "Remove smear marker (N)"),
    (Tool.ADD_LABEL,        "Add Dose Rate",    "Add dose-rate label (D)"),
    (Tool.REMOVE_LABEL,     "Remove Dose Rate", "Remove dose-rate label (F)"),
    (Tool.REMOVE_PICTOGRAM, "Delete Equipment", "Delete equipment pictogram (E)"),
]


class _ToolShortcutFilter(QObject):
    """App-level event filter: single-key tool toggles, Escape disarms."""

    def __init__(self, window: "MainWindow", parent=None):
        super().__init__(parent)
        self._window = window

    def eventFilter(self, obj, event):
        if event.type() != QEvent.Type.KeyPress:
            return False
        # Don't steal keys while a text-input widget has focus
        if isinstance(QApplication.focusWidget(), (QLineEdit, QPlainTextEdit)):
            return False
        if event.modifiers() & (Qt.KeyboardModifier.ControlModifier
                                | Qt.KeyboardModifier.AltModifier
                                | Qt.KeyboardModifier.MetaModifier):
            return False
        key = event.key()
        if key in _KEY_TOOL_MAP:
            self._window.toggle_tool(_KEY_TOOL_MAP[key])
            return True
        if key == Qt.Key.Key_Escape:
            self._window.disarm_tool()
            return True
        return False


class MainWindow(QMainWindow):
    def __init__(self, settings: Optional[AppSettings] = None):
        super().__init__()
        self.setWindowTitle("Survey Map")
        self.resize(1400, 900)

        self._settings = settings or AppSettings()
        self._transform = TransformEngine()
        self._store = AnnotationStore()
        self._assets = AssetLibrary(self._settings.postings_dir
                                    or data_store.DEFAULT_POSTINGS_DIR)
        self._syncing = False

        self._setup_ui()
        self._refresh_controls()

    # ── UI construction ───────────────────────────────────────────────────────

    def _setup_ui(self):
        file_menu = self.menuBar().addMenu("File")
        file_menu.addAction("Open Map…").triggered.connect(self._open_map)
        file_menu.addSeparator()
        file_menu.addAction("Save Annotations…").triggered.connect(self._save_annotations)
        file_menu.addAction("Load Annotations…").triggered.connect(self._load_annotations)
        file_menu.addAction("Export Map as PNG…").triggered.connect(self._export_png)
        file_menu.addSeparator()
        file_menu.addAction("Quit").triggered.connect(self.close)

        splitter = QSplitter(Qt.Orientation.Horizontal)
        self.setCentralWidget(splitter)

        self._canvas = SurveyCanvas(
            self._transform, self._store, self._assets,
            label_form=self._label_draft,
            pictogram_size=self._settings.default_pictogram_size,
        )
        self._canvas.changed.connect(self._refresh_controls)
        splitter.addWidget(self._canvas)

        controls = QWidget()
        cl = QVBoxLayout(controls)
        cl.addWidget(self._build_view_group())
        cl.addWidget(self._build_tools_group())
        cl.addWidget(self._build_label_group())

        palette_box = QGroupBox("Equipment (drag onto map)")
        pl = QVBoxLayout(palette_box)
        self._palette = AssetPalette(self._assets)
        pl.addWidget(self._palette)
        cl.addWidget(palette_box, 1)

        splitter.addWidget(controls)
        splitter.setSizes([1050, 350])

    def _build_view_group(self) -> QGroupBox:
        box = QGroupBox("View")
        form = QFormLayout(box)

        self._rotation_slider = QSlider(Qt.Orientation.Horizontal)
        self._rotation_slider.setRange(0, 359)
        self._rotation_slider.valueChanged.connect(self._on_rotation_slider)
        self._rotation_label = QLabel("0°")
        row = QHBoxLayout()
        row.addWidget(self._rotation_slider)
        row.addWidget(self._rotation_label)
        form.addRow("Rotation", row)

        self._scale_slider = QSlider(Qt.Orientation.Horizontal)
        self._scale_slider.setRange(_SCALE_SLIDER_MIN, _SCALE_SLIDER_MAX)
        self._scale_slider.valueChanged.connect(self._on_scale_slider)
        self._scale_label = QLabel("100%")
        row = QHBoxLayout()
        row.addWidget(self._scale_slider)
        row.addWidget(self._scale_label)
        form.addRow("Scale", row)

        buttons = QHBoxLayout()
        reset_btn = QPushButton("Reset View")
        reset_btn.clicked.connect(self._canvas.reset_view)
        export_btn = QPushButton("Export PNG")
        export_btn.clicked.connect(self._export_png)
        buttons.addWidget(reset_btn)
        buttons.addWidget(export_btn)
        form.addRow(buttons)
        return box

    def _build_tools_group(self) -> QGroupBox:
        box = QGroupBox("Tools")
        layout = QVBoxLayout(box)
        self._tool_buttons: Dict[Tool, QPushButton] = {}
        for tool, label, tip in _TOOL_BUTTONS:
            btn = QPushButton(label)
            btn.setToolTip(tip)
            btn.setCheckable(True)
            btn.clicked.connect(lambda checked, t=tool: self.toggle_tool(t))
            layout.addWidget(btn)
            self._tool_buttons[tool] = btn

        self._next_id_label = QLabel()
        layout.addWidget(self._next_id_label)

        clear_btn = QPushButton("Clear All Annotations")
        clear_btn.clicked.connect(self._clear_all)
        layout.addWidget(clear_btn)
        return box

    def _build_label_group(self) -> QGroupBox:
        box = QGroupBox("Dose Rate")
        form = QFormLayout(box)
        self._dose_value = QLineEdit()
        self._dose_value.setValidator(QDoubleValidator(0.0, 1e12, 6))
        self._dose_value.setPlaceholderText("value")
        form.addRow("Value", self._dose_value)

        self._dose_unit = QComboBox()
        for unit in DoseUnit:
            self._dose_unit.addItem(unit.value)
        self._dose_unit.setCurrentIndex(list(DoseUnit).index(self._settings.default_label_unit))
        form.addRow("Unit", self._dose_unit)

        self._kind_group = QButtonGroup(box)
        gamma = QRadioButton("Gamma")
        neutron = QRadioButton("Neutron")
        gamma.setChecked(True)
        self._kind_group.addButton(gamma)
        self._kind_group.addButton(neutron)
        self._neutron_radio = neutron
        row = QHBoxLayout()
        row.addWidget(gamma)
        row.addWidget(neutron)
        form.addRow("Type", row)
        self._label_box = box
        return box

    # ── Label form ────────────────────────────────────────────────────────────

    def _label_draft(self) -> LabelDraft:
        """Read the dose-rate form at click time; empty value means no label."""
        text = self._dose_value.text().strip().replace(",", ".")
        try:
            value = float(text) if text else None
        except ValueError:
            value = None
        kind = LabelKind.SECONDARY if self._neutron_radio.isChecked() else LabelKind.PRIMARY
        return LabelDraft(value=value, unit=DoseUnit(self._dose_unit.currentText()), kind=kind)

    # ── Tools ─────────────────────────────────────────────────────────────────

    def toggle_tool(self, tool: Tool):
        self._canvas.controller.toggle_tool(tool)
        self._refresh_controls()

    def disarm_tool(self):
        self._canvas.controller.arm_tool(None, None)
        self._refresh_controls()

    def _clear_all(self):
        if self._store.is_empty():
            return
        answer = QMessageBox.question(self, "Clear All", "Remove all annotations?")
        if answer == QMessageBox.StandardButton.Yes:
            self._canvas.controller.clear_all()

    # ── View controls ─────────────────────────────────────────────────────────

    def _on_rotation_slider(self, value: int):
        if not self._syncing:
            self._canvas.controller.set_rotation(value)

    def _on_scale_slider(self, value: int):
        if not self._syncing:
            self._canvas.controller.set_scale(value / _SCALE_SLIDER_STEPS)

    def _refresh_controls(self):
        """Sync sliders, labels and tool buttons with the model (no feedback)."""
        self._syncing = True
        try:
            rotation = int(round(self._transform.rotation)) % 360
            self._rotation_slider.setValue(rotation)
            self._rotation_label.setText(f"{rotation}°")
            scale = self._transform.scale
            self._scale_slider.setValue(int(round(scale * _SCALE_SLIDER_STEPS)))
            self._scale_label.setText(f"{round(scale * 100)}%")
        finally:
            self._syncing = False
        active = self._canvas.controller.tool
        for tool, btn in self._tool_buttons.items():
            btn.setChecked(tool is active)
        self._label_box.setEnabled(active is Tool.ADD_LABEL)
        self._next_id_label.setText(f"Next smear ID: {self._store.next_marker_id}")

    # ── File actions ──────────────────────────────────────────────────────────

    def _open_map(self):
        path, _ = QFileDialog.getOpenFileName(
            self, "Open Map", "",
            "Maps (*.pdf *.png *.jpg *.jpeg *.bmp *.tif *.tiff);;All files (*)",
        )
        if not path:
            return
        scale = self._settings.render_scale
        if self._settings.hi_dpr:
            scale *= self.devicePixelRatio()
        try:
            base = load_base_image_file(path, render_scale=scale)
        except InputError as exc:
            QMessageBox.warning(self, "Open Map", f"Could not load map:\n{exc}")
            return
        except OSError as exc:
            QMessageBox.warning(self, "Open Map", f"Could not read file:\n{exc}")
            return
        self._canvas.set_base_image(base)
        self.setWindowTitle(f"Survey Map – {os.path.basename(path)}")

    def _export_png(self):
        if not self._canvas.has_document():
            QMessageBox.information(self, "Export", "No map loaded to export.")
            return
        path, _ = QFileDialog.getSaveFileName(self, "Export Map", "survey_map.png",
                                              "PNG image (*.png)")
        if not path:
            return
        data = self._canvas.export_raster()
        with open(path, "wb") as f:
            f.write(data)
        print(f"[Export] {path} ({len(data)} bytes)")

    def _save_annotations(self):
        path, _ = QFileDialog.getSaveFileName(self, "Save Annotations", "survey_map.json",
                                              "Annotations (*.json)")
        if not path:
            return
        try:
            data_store.save_annotations(path, self._store)
        except OSError as exc:
            QMessageBox.warning(self, "Save Annotations", f"Could not save:\n{exc}")

    def _load_annotations(self):
        path, _ = QFileDialog.getOpenFileName(self, "Load Annotations", "",
                                              "Annotations (*.json)")
        if not path:
            return
        try:
            data_store.load_annotations(path, self._store)
        except (OSError, InputError) as exc:
            QMessageBox.warning(self, "Load Annotations", f"Could not load:\n{exc}")
            return
        self._canvas.request_missing_assets()


def main():
    app = QApplication(sys.argv)
    app.setApplicationName("Survey Map")
    settings = data_store.load_settings()
    data_store.set_debug(settings.debug_mode)
    window = MainWindow(settings)
    shortcut_filter = _ToolShortcutFilter(window, app)
    app.installEventFilter(shortcut_filter)
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
