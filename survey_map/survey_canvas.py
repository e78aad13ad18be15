"""Canvas widget: forwards pointer, wheel and palette-drop events to the
:class:`InteractionController` and paints the scene with :mod:`renderer`."""
from typing import Callable, Optional

from PySide6.QtCore import QMimeData, Qt, Signal
from PySide6.QtGui import QColor, QDrag, QImage, QPainter
from PySide6.QtWidgets import QListWidget, QWidget

import data_store
import renderer
from annotation_store import AnnotationStore
from asset_loader import AssetLibrary, display_name
from document_loader import BaseImage
from interaction import InteractionController, Mode
from models import LabelDraft, Pictogram
from transform_engine import TransformEngine

ASSET_MIME = "application/x-survey-map-asset"

_CURSORS = {
    "grab":        Qt.CursorShape.OpenHandCursor,
    "grabbing":    Qt.CursorShape.ClosedHandCursor,
    "crosshair":   Qt.CursorShape.CrossCursor,
    "pointer":     Qt.CursorShape.PointingHandCursor,
    "nwse-resize": Qt.CursorShape.SizeFDiagCursor,
    "nesw-resize": Qt.CursorShape.SizeBDiagCursor,
    "copy":        Qt.CursorShape.DragCopyCursor,
}

_BACKGROUND = QColor(236, 239, 241)


class SurveyCanvas(QWidget):
    changed = Signal()   # any model or view mutation (after repaint was scheduled)

    def __init__(self, transform: TransformEngine, store: AnnotationStore,
                 assets: Optional[AssetLibrary] = None,
                 label_form: Optional[Callable[[], LabelDraft]] = None,
                 pictogram_size: float = 80.0, parent=None):
        super().__init__(parent)
        self.setMouseTracking(True)
        self.setAcceptDrops(True)
        self.setMinimumSize(200, 150)
        self._base: Optional[QImage] = None
        self._assets = assets
        self.transform = transform
        self.store = store
        self.controller = InteractionController(
            transform, store,
            on_change=self._on_model_changed,
            label_form=label_form,
            request_asset=self._request_asset,
            pictogram_size=pictogram_size,
        )

    # ── Public API ────────────────────────────────────────────────────────────

    def has_document(self) -> bool:
        return self._base is not None

    def set_base_image(self, base: BaseImage):
        self._base = base.image
        self.transform.set_image_size(base.width, base.height)
        self.reset_view()

    def reset_view(self):
        if self._base is not None:
            self.controller.reset_view(self.width(), self.height())

    def request_missing_assets(self):
        """Queue asset loads for pictograms without pixels (e.g. after loading a snapshot)."""
        for pic in self.store.pictograms:
            if pic.image is None:
                self._request_asset(pic)
        self._on_model_changed()

    def render_frame(self, with_selection: bool = True) -> QImage:
        dragged = None
        if self.controller.mode is Mode.DRAGGING_MARKER:
            dragged = self.controller.target_key
        return renderer.render_to_image(
            self.width(), self.height(), self._base, self.transform, self.store,
            selected_key=self.controller.selected_key if with_selection else None,
            dragged_marker_key=dragged,
        )

    def export_raster(self) -> bytes:
        """PNG of the current view with annotations baked in (no selection chrome)."""
        return renderer.export_png(self.render_frame(with_selection=False))

    # ── Model callbacks ───────────────────────────────────────────────────────

    def _on_model_changed(self):
        self.update()
        self.changed.emit()

    def _request_asset(self, pic: Pictogram):
        if self._assets is not None:
            self._assets.request(pic, lambda _pic: self._on_model_changed())

    def _apply_cursor(self, x: float, y: float):
        if self._base is None:
            self.setCursor(Qt.CursorShape.ArrowCursor)
            return
        hint = self.controller.cursor_hint((x, y))
        self.setCursor(_CURSORS.get(hint, Qt.CursorShape.ArrowCursor))

    # ── Qt events ─────────────────────────────────────────────────────────────

    def paintEvent(self, event):
        p = QPainter(self)
        p.fillRect(self.rect(), _BACKGROUND)
        if self._base is None:
            p.setPen(QColor(90, 90, 90))
            p.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter,
                       "No map loaded.\nOpen a PDF or image file.")
        else:
            p.drawImage(0, 0, self.render_frame())
        p.end()

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self.reset_view()

    def mousePressEvent(self, event):
        if self._base is None or event.button() != Qt.MouseButton.LeftButton:
            super().mousePressEvent(event)
            return
        pos = event.position()
        self.controller.pointer_down((pos.x(), pos.y()))
        self._apply_cursor(pos.x(), pos.y())
        event.accept()

    def mouseMoveEvent(self, event):
        if self._base is None:
            return
        pos = event.position()
        self.controller.pointer_move((pos.x(), pos.y()))
        self._apply_cursor(pos.x(), pos.y())
        event.accept()

    def mouseReleaseEvent(self, event):
        if event.button() != Qt.MouseButton.LeftButton:
            super().mouseReleaseEvent(event)
            return
        pos = event.position()
        self.controller.pointer_up((pos.x(), pos.y()))
        self._apply_cursor(pos.x(), pos.y())
        event.accept()

    def leaveEvent(self, event):
        self.controller.pointer_leave()
        super().leaveEvent(event)

    def wheelEvent(self, event):
        if self._base is None:
            return
        delta = event.angleDelta().y()
        if delta:
            pos = event.position()
            self.controller.wheel((pos.x(), pos.y()), delta)
        event.accept()

    # ── Palette drag & drop ───────────────────────────────────────────────────

    def dragEnterEvent(self, event):
        md = event.mimeData()
        if self._base is not None and md.hasFormat(ASSET_MIME):
            asset_id = bytes(md.data(ASSET_MIME).data()).decode("utf-8")
            self.controller.begin_palette_drag(asset_id)
            event.acceptProposedAction()
        else:
            event.ignore()

    def dragMoveEvent(self, event):
        if event.mimeData().hasFormat(ASSET_MIME):
            event.acceptProposedAction()
        else:
            event.ignore()

    def dragLeaveEvent(self, event):
        self.controller.cancel_palette_drag()
        super().dragLeaveEvent(event)

    def dropEvent(self, event):
        pos = event.position()
        inside = self.rect().contains(pos.toPoint())
        pic = self.controller.drop_from_palette((pos.x(), pos.y()), inside=inside)
        if pic is None:
            event.ignore()
            return
        data_store.dbg(f"Dropped {pic.asset_id} at screen ({pos.x():.0f}, {pos.y():.0f})")
        event.acceptProposedAction()


class AssetPalette(QListWidget):
    """List of pictogram assets; items are dragged onto the canvas."""

    def __init__(self, assets: AssetLibrary, parent=None):
        super().__init__(parent)
        self.setDragEnabled(True)
        self.setSelectionMode(QListWidget.SelectionMode.SingleSelection)
        self._assets = assets
        self.reload()

    def reload(self):
        self.clear()
        for asset_id in self._assets.asset_ids():
            self.addItem(display_name(asset_id))
            self.item(self.count() - 1).setData(Qt.ItemDataRole.UserRole, asset_id)

    def startDrag(self, supported_actions):
        item = self.currentItem()
        if item is None:
            return
        mime = QMimeData()
        mime.setData(ASSET_MIME, str(item.data(Qt.ItemDataRole.UserRole)).encode("utf-8"))
        drag = QDrag(self)
        drag.setMimeData(mime)
        drag.exec(Qt.DropAction.CopyAction)
