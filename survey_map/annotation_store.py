"""Owner of all annotations: point markers, text labels and pictograms.

Insertion order is z-order: later entries are drawn on top and win
hit-tests.  Each entity gets a stable ``key`` when it is added; keys are never
reused, so callers can keep a key across mutations and look the entity up
again (a lookup for a removed entity returns ``None``).
"""
import itertools
import math
from typing import Any, Dict, Iterable, List, Optional, Tuple

import data_store
from models import DoseUnit, LabelKind, Pictogram, PointMarker, TextLabel

Point = Tuple[float, float]


def _closest_within(items: Iterable, x: float, y: float, radius: float) -> int:
    """Index of the item closest to *(x, y)* strictly within *radius*, or -1.

    Ties keep the lower index.
    """
    best, best_dist = -1, math.inf
    for i, item in enumerate(items):
        dist = math.hypot(item.x - x, item.y - y)
        if dist < radius and dist < best_dist:
            best, best_dist = i, dist
    return best


class AnnotationStore:
    def __init__(self):
        self._markers: List[PointMarker] = []
        self._labels: List[TextLabel] = []
        self._pictograms: List[Pictogram] = []
        self._next_marker_id: int = 1
        self._keys = itertools.count(1)

    # ── Read access ───────────────────────────────────────────────────────────

    @property
    def markers(self) -> Tuple[PointMarker, ...]:
        return tuple(self._markers)

    @property
    def labels(self) -> Tuple[TextLabel, ...]:
        return tuple(self._labels)

    @property
    def pictograms(self) -> Tuple[Pictogram, ...]:
        return tuple(self._pictograms)

    @property
    def next_marker_id(self) -> int:
        return self._next_marker_id

    def marker(self, key: Optional[int]) -> Optional[PointMarker]:
        return next((m for m in self._markers if m.key == key), None)

    def pictogram(self, key: Optional[int]) -> Optional[Pictogram]:
        return next((p for p in self._pictograms if p.key == key), None)

    def is_empty(self) -> bool:
        return not (self._markers or self._labels or self._pictograms)

    # ── Point markers ─────────────────────────────────────────────────────────

    def add_point(self, x: float, y: float) -> PointMarker:
        marker = PointMarker(id=self._next_marker_id, x=float(x), y=float(y),
                             key=next(self._keys))
        self._next_marker_id += 1
        self._markers.append(marker)
        return marker

    def find_point_near(self, point: Point, radius: float) -> Optional[PointMarker]:
        idx = _closest_within(self._markers, point[0], point[1], radius)
        return self._markers[idx] if idx >= 0 else None

    def remove_point_near(self, point: Point, radius: float) -> Optional[PointMarker]:
        """Remove the closest marker within *radius* and renumber the rest."""
        idx = _closest_within(self._markers, point[0], point[1], radius)
        if idx < 0:
            return None
        removed = self._markers.pop(idx)
        self._renumber_points()
        data_store.dbg(f"Removed marker #{removed.id}; next id {self._next_marker_id}")
        return removed

    def _renumber_points(self) -> None:
        """Reassign ids 1..n ordered by previous id; reset the running counter."""
        self._markers.sort(key=lambda m: m.id)
        for i, marker in enumerate(self._markers, start=1):
            marker.id = i
        self._next_marker_id = len(self._markers) + 1

    # ── Text labels ───────────────────────────────────────────────────────────

    def add_label(self, x: float, y: float, value: Optional[float],
                  unit: DoseUnit = DoseUnit.MICRO_R_HR,
                  kind: LabelKind = LabelKind.PRIMARY) -> Optional[TextLabel]:
        """Add a label; returns None (nothing created) when *value* is empty."""
        if value is None:
            return None
        label = TextLabel(x=float(x), y=float(y), value=float(value),
                          unit=DoseUnit(unit), kind=LabelKind(kind),
                          key=next(self._keys))
        self._labels.append(label)
        return label

    def find_label_near(self, point: Point, radius: float) -> Optional[TextLabel]:
        idx = _closest_within(self._labels, point[0], point[1], radius)
        return self._labels[idx] if idx >= 0 else None

    def remove_label_near(self, point: Point, radius: float) -> Optional[TextLabel]:
        idx = _closest_within(self._labels, point[0], point[1], radius)
        if idx < 0:
            return None
        return self._labels.pop(idx)

    # ── Pictograms ────────────────────────────────────────────────────────────

    def add_pictogram(self, x: float, y: float, width: float, height: float,
                      asset_id: str, rotation: float = 0.0,
                      image: Any = None) -> Pictogram:
        if not (width > 0 and height > 0):
            raise ValueError(f"pictogram size must be positive, got {width}×{height}")
        pic = Pictogram(x=float(x), y=float(y), width=float(width), height=float(height),
                        asset_id=asset_id, rotation=float(rotation), image=image,
                        key=next(self._keys))
        self._pictograms.append(pic)
        return pic

    def remove_pictogram(self, key: int) -> Optional[Pictogram]:
        for i, pic in enumerate(self._pictograms):
            if pic.key == key:
                return self._pictograms.pop(i)
        return None

    # ── Bulk ──────────────────────────────────────────────────────────────────

    def clear_all(self) -> None:
        self._markers.clear()
        self._labels.clear()
        self._pictograms.clear()
        self._next_marker_id = 1

    def to_dict(self) -> Dict[str, Any]:
        """Serialisable snapshot (pictogram pixel data is not included)."""
        return {
            "next_marker_id": self._next_marker_id,
            "markers": [{"id": m.id, "x": m.x, "y": m.y} for m in self._markers],
            "labels": [
                {"x": lb.x, "y": lb.y, "value": lb.value,
                 "unit": lb.unit.value, "kind": lb.kind.value}
                for lb in self._labels
            ],
            "pictograms": [
                {"x": p.x, "y": p.y, "width": p.width, "height": p.height,
                 "rotation": p.rotation, "asset_id": p.asset_id}
                for p in self._pictograms
            ],
        }

    def load_dict(self, data: Dict[str, Any]) -> None:
        """Replace all annotations with the snapshot *data* (see :meth:`to_dict`)."""
        markers = [
            PointMarker(id=int(item["id"]), x=float(item["x"]), y=float(item["y"]))
            for item in data.get("markers", [])
        ]
        labels = [
            TextLabel(x=float(item["x"]), y=float(item["y"]), value=float(item["value"]),
                      unit=DoseUnit(item.get("unit", DoseUnit.MICRO_R_HR.value)),
                      kind=LabelKind(item.get("kind", LabelKind.PRIMARY.value)))
            for item in data.get("labels", [])
        ]
        pictograms = [
            Pictogram(x=float(item["x"]), y=float(item["y"]),
                      width=float(item["width"]), height=float(item["height"]),
                      asset_id=str(item["asset_id"]),
                      rotation=float(item.get("rotation", 0.0)))
            for item in data.get("pictograms", [])
        ]
        # Validate everything before touching the current state
        for pic in pictograms:
            if not (pic.width > 0 and pic.height > 0):
                raise ValueError(f"invalid pictogram size {pic.width}×{pic.height}")
        self.clear_all()
        for entity in itertools.chain(markers, labels, pictograms):
            entity.key = next(self._keys)
        self._markers.extend(markers)
        self._labels.extend(labels)
        self._pictograms.extend(pictograms)
        self._renumber_points()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnnotationStore":
        store = cls()
        store.load_dict(data)
        return store
