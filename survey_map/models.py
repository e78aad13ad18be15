"""Data models for the survey map annotator.

All annotation coordinates are in **document space**: pixels of the
rasterised base image, unaffected by pan, scale and rotation of the view.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class DoseUnit(str, Enum):
    MICRO_R_HR = "μR/hr"
    MILLI_R_HR = "mR/hr"
    R_HR = "R/hr"
    MICRO_SV_HR = "μSv/hr"
    MILLI_SV_HR = "mSv/hr"
    CPM = "cpm"


class LabelKind(str, Enum):
    PRIMARY = "primary"      # gamma reading
    SECONDARY = "secondary"  # neutron reading, drawn with a blue dot


@dataclass
class PointMarker:
    id: int    # 1-based, dense after renumbering
    x: float
    y: float
    key: int = 0  # stable store handle, never renumbered


@dataclass
class TextLabel:
    x: float
    y: float
    value: float
    unit: DoseUnit = DoseUnit.MICRO_R_HR
    kind: LabelKind = LabelKind.PRIMARY
    key: int = 0

    def display_text(self) -> str:
        return f"{self.value:g} {self.unit.value}"


@dataclass
class Pictogram:
    x: float       # centre
    y: float       # centre
    width: float
    height: float
    asset_id: str
    rotation: float = 0.0
    image: Optional[Any] = field(default=None, repr=False, compare=False)  # decoded QImage, None while pending
    key: int = 0

    def half_size(self):
        return self.width / 2, self.height / 2


@dataclass
class LabelDraft:
    """Contents of the label form at the moment of a click."""
    value: Optional[float] = None
    unit: DoseUnit = DoseUnit.MICRO_R_HR
    kind: LabelKind = LabelKind.PRIMARY


@dataclass
class AppSettings:
    debug_mode: bool = False          # print debug messages
    hi_dpr: bool = True               # render the base page at device pixel ratio
    render_scale: float = 2.0         # PDF rasterisation zoom (2x like a retina canvas)
    postings_dir: str = ""            # folder with Slide{n}.svg posting icons
    default_pictogram_size: float = 80.0
    default_label_unit: DoseUnit = DoseUnit.MICRO_R_HR
