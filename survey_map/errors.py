"""Exception hierarchy.

* :class:`InputError` -- bad user input (not a raster/PDF, corrupt file).
  Shown to the user; the operation is aborted before any state changes.
* :class:`GeometryError` -- non-positive viewport or image size.  Only seen
  transiently during layout and absorbed as a no-op.
* :class:`AssetUnavailable` -- a pictogram asset could not be loaded.  Never
  fatal; the renderer falls back to a placeholder box.
"""


class SurveyMapError(Exception):
    pass


class InputError(SurveyMapError):
    pass


class UnsupportedFormat(InputError):
    pass


class DecodeError(InputError):
    pass


class GeometryError(SurveyMapError):
    pass


class AssetUnavailable(SurveyMapError):
    pass


class NotFound(AssetUnavailable):
    pass
