"""Load the base document and rasterise it into a QImage.

PDF rendering backend
---------------------
PDFs are rasterised with **PyMuPDF (fitz)**.  Only the first page is used.
The page is rendered at ``render_scale`` (2× by default) so that zooming in
stays sharp; document space is the pixel grid of that raster.

Plain raster files (PNG, JPEG, BMP, ...) are decoded by Qt directly.
"""
import os
from dataclasses import dataclass

import fitz  # pymupdf
from PySide6.QtGui import QImage

import data_store
from errors import DecodeError, UnsupportedFormat

PDF_MAGIC = b"%PDF-"
RASTER_SUFFIXES = {".png", ".jpg", ".jpeg", ".bmp", ".gif", ".tif", ".tiff", ".webp"}


@dataclass
class BaseImage:
    width: int
    height: int
    image: QImage


def _render_first_page(data: bytes, render_scale: float) -> QImage:
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except (RuntimeError, ValueError) as exc:
        raise DecodeError(f"Cannot open PDF: {exc}") from exc
    try:
        if doc.page_count < 1:
            raise DecodeError("PDF has no pages")
        page = doc[0]
        data_store.dbg(f"Rendering page 1/{doc.page_count} at zoom {render_scale:.2f} "
                       f"(page size: {page.rect.width:.0f}×{page.rect.height:.0f} pt)")
        try:
            pix = page.get_pixmap(matrix=fitz.Matrix(render_scale, render_scale), alpha=False)
        except (RuntimeError, ValueError) as exc:
            raise DecodeError(f"Cannot render page 1: {exc}") from exc
        # copy(): the QImage must not point into the fitz pixmap buffer
        return QImage(pix.samples, pix.width, pix.height,
                      pix.stride, QImage.Format.Format_RGB888).copy()
    finally:
        doc.close()


def load_base_image(data: bytes, render_scale: float = 2.0) -> BaseImage:
    """Decode *data* (PDF or raster image) into a :class:`BaseImage`.

    Raises :class:`UnsupportedFormat` for anything that is neither a PDF nor
    a decodable raster, and :class:`DecodeError` for a corrupt PDF.
    """
    if not data:
        raise UnsupportedFormat("Empty file")
    if render_scale <= 0:
        raise ValueError(f"render_scale must be positive, got {render_scale}")

    if data[:len(PDF_MAGIC)] == PDF_MAGIC:
        image = _render_first_page(data, render_scale)
    else:
        image = QImage.fromData(data)
        if image.isNull():
            raise UnsupportedFormat("Not a PDF or a supported raster image")
    if image.isNull() or image.width() <= 0 or image.height() <= 0:
        raise DecodeError("Decoded image is empty")
    return BaseImage(image.width(), image.height(), image)


def load_base_image_file(path: str, render_scale: float = 2.0) -> BaseImage:
    suffix = os.path.splitext(path)[1].lower()
    if suffix != ".pdf" and suffix not in RASTER_SUFFIXES:
        raise UnsupportedFormat(f"Unsupported file type: {suffix or path}")
    with open(path, "rb") as f:
        data = f.read()
    print(f"[Load] {path} ({len(data)} bytes)")
    return load_base_image(data, render_scale)
