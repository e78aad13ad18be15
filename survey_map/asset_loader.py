"""Pictogram asset palette: embedded SVG icons plus posting slides on disk.

Assets are decoded lazily.  :meth:`AssetLibrary.request` decodes on the next
event-loop turn and fills in ``pictogram.image``; until then (or forever, if
the asset is missing) the renderer shows a placeholder box.  A failed load is
never retried.
"""
import os
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from PySide6.QtCore import QByteArray, QRectF, QTimer
from PySide6.QtGui import QImage, QPainter
from PySide6.QtSvg import QSvgRenderer

import data_store
from errors import AssetUnavailable, NotFound
from models import Pictogram

POSTING_SLIDE_COUNT = 128
_RASTER_LONG_SIDE = 256   # pixels; pictograms are at most 200 document units

EMBEDDED_ICONS: Dict[str, str] = {
    "drum-can-2-svgrepo-com.svg": """<svg version="1.1" id="_x32_" xmlns="http://www.w3.org/2000/svg" xmlns:xlink="http://www.w3.org/1999/xlink"
    width="800px" height="800px" viewBox="0 0 512 512" xml:space="preserve">
  <style type="text/css">
  <![CDATA[
    .st0{fill:#000000;}
  ]]>
  </style>
  <g>
    <path class="st0" d="M191.266,42c-18.859,0-34.141,4.828-34.141,10.781c0,5.969,15.281,10.781,34.141,10.781
      c18.844,0,34.141-4.813,34.141-10.781C225.406,46.828,210.109,42,191.266,42z"/>
    <path class="st0" d="M434.906,189.5c0-6.313-3.344-12.406-9.422-18.094V74.594c6.078-5.688,9.422-11.781,9.422-18.094
      C434.906,25.281,354.797,0,256,0S77.094,25.281,77.094,56.5c0,6.313,3.344,12.406,9.422,18.094v88.125
      c1.391,1.375,2.953,2.719,4.766,4.063c8.438,6.344,21.313,12.406,37.422,17.469c32.234,10.188,77.422,16.625,127.297,16.594
      c47.234,0.031,90.234-5.719,122.047-15l0,0c3-0.875,6.125,0.844,7,3.844s-0.844,6.125-3.844,7
      C348,206.344,304.156,212.156,256,212.156c-33.375,0-64.688-2.781-91.813-7.719c-27.141-4.938-50.047-11.969-66.813-20.656
      c-5.344-2.781-10.031-5.734-14.078-8.906c-3.969,4.672-6.203,9.563-6.203,14.625c0,6.344,3.344,12.406,9.422,18.094v86.672
      c1.391,1.359,2.953,2.703,4.766,4.047c8.438,6.344,21.313,12.391,37.422,17.469c32.234,10.188,77.422,16.625,127.297,16.594
      c47.234,0.031,90.234-5.719,122.047-15c3-0.875,6.125,0.844,7,3.844s-0.844,6.125-3.844,7C348,337.875,304.156,343.688,256,343.688
      c-33.375,0-64.688-2.813-91.813-7.719c-27.141-4.938-50.047-11.938-66.813-20.656c-5-2.594-9.375-5.391-13.25-8.328
      c-4.484,4.953-7.031,10.141-7.031,15.516c0,6.313,3.344,12.406,9.422,18.094v85.188c1.391,1.375,2.953,2.719,4.766,4.078
      c8.438,6.328,21.313,12.375,37.422,17.453C160.938,457.5,206.125,463.938,256,463.906c47.234,0.031,90.234-5.719,122.047-15l0,0
      c3-0.875,6.125,0.844,7,3.844s-0.844,6.125-3.844,7C348,469.406,304.156,475.219,256,475.219c-33.375,0-64.688-2.813-91.813-7.719
      c-27.141-4.938-50.047-11.938-66.813-20.656c-4.656-2.438-8.750-5.031-12.438-7.750c-4.984,5.219-7.844,10.688-7.844,16.406
      c0,31.219,80.109,56.5,178.906,56.5s178.906-25.281,178.906-56.5c0-6.313-3.344-12.391-9.422-18.078v-96.828
      c6.078-5.688,9.422-11.750,9.422-18.094s-3.344-12.406-9.422-18.078v-96.828C431.563,201.906,434.906,195.844,434.906,189.5z
       M256,91.813c-99.25,0-151.625-24.625-157.484-35.313C104.375,45.813,156.75,21.188,256,21.188S407.625,45.813,413.484,56.5
      C407.625,67.188,355.25,91.813,256,91.813z"/>
  </g>
</svg>""",
    "contamination-area-posting.svg": """<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 300 400" width="300" height="400">
  <rect width="300" height="400" fill="#FFFF00" stroke="#000000" stroke-width="4"/>
  <rect x="10" y="10" width="280" height="60" fill="#FF00FF"/>
  <text x="150" y="30" text-anchor="middle" fill="black" font-family="Arial, sans-serif" font-size="14" font-weight="bold">CAUTION</text>
  <text x="150" y="50" text-anchor="middle" fill="black" font-family="Arial, sans-serif" font-size="14" font-weight="bold">CONTAMINATION AREA</text>
  <g transform="translate(150, 180)">
    <circle cx="0" cy="0" r="15" fill="black"/>
    <g>
      <path d="M 0,-15 L -25,-60 A 25,25 0 0,1 25,-60 Z" fill="black"/>
      <g transform="rotate(120)">
        <path d="M 0,-15 L -25,-60 A 25,25 0 0,1 25,-60 Z" fill="black"/>
      </g>
      <g transform="rotate(240)">
        <path d="M 0,-15 L -25,-60 A 25,25 0 0,1 25,-60 Z" fill="black"/>
      </g>
    </g>
    <g>
      <path d="M 0,-15 L -15,-35 A 15,15 0 0,1 15,-35 Z" fill="#FFFF00"/>
      <g transform="rotate(120)">
        <path d="M 0,-15 L -15,-35 A 15,15 0 0,1 15,-35 Z" fill="#FFFF00"/>
      </g>
      <g transform="rotate(240)">
        <path d="M 0,-15 L -15,-35 A 15,15 0 0,1 15,-35 Z" fill="#FFFF00"/>
      </g>
    </g>
  </g>
  <text x="150" y="280" text-anchor="middle" fill="black" font-family="Arial, sans-serif" font-size="12" font-weight="bold">AUTHORIZED PERSONNEL ONLY</text>
  <text x="150" y="300" text-anchor="middle" fill="black" font-family="Arial, sans-serif" font-size="10">Any area accessible to individuals</text>
  <text x="150" y="315" text-anchor="middle" fill="black" font-family="Arial, sans-serif" font-size="10">where radioactive materials exist</text>
  <text x="150" y="330" text-anchor="middle" fill="black" font-family="Arial, sans-serif" font-size="10">in concentrations which result in</text>
  <text x="150" y="345" text-anchor="middle" fill="black" font-family="Arial, sans-serif" font-size="10">the major portion of the body</text>
  <text x="150" y="360" text-anchor="middle" fill="black" font-family="Arial, sans-serif" font-size="10">receiving more than 5 millirem</text>
  <text x="150" y="375" text-anchor="middle" fill="black" font-family="Arial, sans-serif" font-size="10">in any one hour, or 100 millirem</text>
  <text x="150" y="390" text-anchor="middle" fill="black" font-family="Arial, sans-serif" font-size="10">in any 5 consecutive days.</text>
</svg>""",
}


@dataclass
class Asset:
    asset_id: str
    width: int
    height: int
    image: QImage


def display_name(asset_id: str) -> str:
    """``"drum-can.svg"`` → ``"Drum Can"``."""
    stem = os.path.splitext(asset_id)[0]
    return " ".join(w[:1].upper() + w[1:] for w in stem.replace("-", " ").split())


def rasterize_svg(svg: bytes, asset_id: str = "") -> QImage:
    """Render SVG bytes into an ARGB image, long side ``_RASTER_LONG_SIDE`` px."""
    renderer = QSvgRenderer(QByteArray(svg))
    if not renderer.isValid():
        raise AssetUnavailable(f"Invalid SVG asset: {asset_id or '<bytes>'}")
    size = renderer.defaultSize()
    w, h = max(1, size.width()), max(1, size.height())
    k = _RASTER_LONG_SIDE / max(w, h)
    image = QImage(max(1, round(w * k)), max(1, round(h * k)),
                   QImage.Format.Format_ARGB32_Premultiplied)
    image.fill(0)
    painter = QPainter(image)
    try:
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        renderer.render(painter, QRectF(0, 0, image.width(), image.height()))
    finally:
        painter.end()
    return image


class AssetLibrary:
    def __init__(self, postings_dir: str = ""):
        self.postings_dir = postings_dir
        self._cache: Dict[str, Asset] = {}
        self._failed: Dict[str, str] = {}

    def asset_ids(self) -> List[str]:
        """Embedded icons first, then the ``Slide{n}.svg`` postings that exist."""
        ids = list(EMBEDDED_ICONS)
        found = 0
        if self.postings_dir and os.path.isdir(self.postings_dir):
            for i in range(1, POSTING_SLIDE_COUNT + 1):
                name = f"Slide{i}.svg"
                if os.path.isfile(os.path.join(self.postings_dir, name)):
                    ids.append(name)
                    found += 1
        data_store.dbg(f"Assets: {len(EMBEDDED_ICONS)} embedded, {found} posting files")
        return ids

    def _read_source(self, asset_id: str) -> bytes:
        if asset_id in EMBEDDED_ICONS:
            return EMBEDDED_ICONS[asset_id].encode("utf-8")
        if not self.postings_dir or os.path.basename(asset_id) != asset_id:
            raise NotFound(f"Unknown asset: {asset_id}")
        path = os.path.join(self.postings_dir, asset_id)
        if not os.path.isfile(path):
            raise NotFound(f"Asset file not found: {path}")
        with open(path, "rb") as f:
            return f.read()

    def load_asset(self, asset_id: str) -> Asset:
        """Decode *asset_id* (cached).  Raises :class:`AssetUnavailable`."""
        if asset_id in self._cache:
            return self._cache[asset_id]
        if asset_id in self._failed:
            raise AssetUnavailable(self._failed[asset_id])
        try:
            image = rasterize_svg(self._read_source(asset_id), asset_id)
        except AssetUnavailable as exc:
            self._failed[asset_id] = str(exc)
            raise
        asset = Asset(asset_id, image.width(), image.height(), image)
        self._cache[asset_id] = asset
        return asset

    def try_load(self, pic: Pictogram) -> bool:
        """Fill ``pic.image`` synchronously; False leaves the placeholder."""
        try:
            pic.image = self.load_asset(pic.asset_id).image
        except AssetUnavailable as exc:
            data_store.dbg(f"Asset unavailable, using placeholder: {exc}")
            return False
        return True

    def request(self, pic: Pictogram,
                on_loaded: Optional[Callable[[Pictogram], None]] = None) -> None:
        """Decode ``pic``'s asset on the next event-loop turn, then call *on_loaded*."""
        def _finish():
            if self.try_load(pic) and on_loaded is not None:
                on_loaded(pic)
        QTimer.singleShot(0, _finish)
