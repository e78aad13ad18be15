"""Data persistence: app settings, annotation snapshots, debug output."""
import json
import os
from dataclasses import asdict
from typing import Optional

from errors import DecodeError
from models import AppSettings, DoseUnit


# ── App-level paths ───────────────────────────────────────────────────────────

_APP_DIR = os.path.dirname(os.path.abspath(__file__))
DATA_DIR = os.path.join(os.path.dirname(_APP_DIR), "data")
SETTINGS_PATH = os.path.join(DATA_DIR, "settings.json")
DEFAULT_POSTINGS_DIR = os.path.join(os.path.dirname(_APP_DIR), "Icons", "Postings")

SNAPSHOT_VERSION = 1

_debug_mode: bool = False


# ── Debug output ──────────────────────────────────────────────────────────────

def set_debug(enabled: bool) -> None:
    global _debug_mode
    _debug_mode = bool(enabled)


def is_debug() -> bool:
    return _debug_mode


def dbg(msg: str) -> None:
    """Print *msg* when debug mode is on (Settings → debug_mode)."""
    if _debug_mode:
        print(f"[dbg] {msg}", flush=True)


# ── Settings ──────────────────────────────────────────────────────────────────

def load_settings(path: Optional[str] = None) -> AppSettings:
    """Read settings JSON; missing file or missing keys fall back to defaults."""
    path = path or SETTINGS_PATH
    defaults = AppSettings()
    if not os.path.exists(path):
        return defaults
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    try:
        unit = DoseUnit(raw.get("default_label_unit", defaults.default_label_unit.value))
    except ValueError:
        unit = defaults.default_label_unit
    return AppSettings(
        debug_mode=bool(raw.get("debug_mode", defaults.debug_mode)),
        hi_dpr=bool(raw.get("hi_dpr", defaults.hi_dpr)),
        render_scale=float(raw.get("render_scale", defaults.render_scale)),
        postings_dir=str(raw.get("postings_dir", defaults.postings_dir)),
        default_pictogram_size=float(
            raw.get("default_pictogram_size", defaults.default_pictogram_size)
        ),
        default_label_unit=unit,
    )


def save_settings(settings: AppSettings, path: Optional[str] = None) -> None:
    path = path or SETTINGS_PATH
    os.makedirs(os.path.dirname(path), exist_ok=True)
    data = asdict(settings)
    data["default_label_unit"] = settings.default_label_unit.value
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
        f.write("\n")


# ── Annotation snapshots ──────────────────────────────────────────────────────

def save_annotations(path: str, store) -> None:
    """Write the editable annotation state of *store* to *path* as JSON.

    Pictogram pixels are not stored; only the asset id is kept and the image
    is requested again from the asset library after loading.
    """
    data = {"version": SNAPSHOT_VERSION}
    data.update(store.to_dict())
    parent = os.path.dirname(os.path.abspath(path))
    os.makedirs(parent, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    dbg(f"Saved {len(store.markers)} markers, {len(store.labels)} labels, "
        f"{len(store.pictograms)} pictograms to {path}")


def load_annotations(path: str, store) -> None:
    """Replace the contents of *store* with the snapshot at *path*.

    A file that is not a valid snapshot raises :class:`DecodeError` and
    leaves *store* untouched.
    """
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except ValueError as exc:
            raise DecodeError(f"Not a JSON file: {exc}") from exc
    if not isinstance(data, dict):
        raise DecodeError("Annotation file must contain a JSON object")
    version = data.get("version", SNAPSHOT_VERSION)
    if not isinstance(version, int) or version > SNAPSHOT_VERSION:
        raise DecodeError(f"Unsupported annotation file version {version!r} "
                          f"(this build reads up to {SNAPSHOT_VERSION})")
    try:
        store.load_dict(data)
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise DecodeError(f"Malformed annotation file: {exc!r}") from exc
    dbg(f"Loaded annotations from {path}")
