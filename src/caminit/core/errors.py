"""Exception hierarchy for camera initialisation.

Fatal errors (configuration, structure, aggregate checks) abort the run
before anything is written. Skippable errors exclude one image and the
walk continues.
"""

from __future__ import annotations


class CameraInitError(Exception):
    """Base class for every error raised by caminit."""


class ConfigurationError(CameraInitError, ValueError):
    """Invalid or conflicting user options, reported before any image is read.

    Subclasses ValueError so pydantic validators can raise it directly.
    """


class StructuralError(CameraInitError):
    """The resource tree or the scene being built is inconsistent."""


class SkippableImageError(CameraInitError):
    """One image cannot be used; it is excluded with a warning."""

    reason = "skipped"

    def __init__(self, path: str, detail: str = ""):
        self.path = path
        self.detail = detail
        msg = f"{self.reason}: '{path}'"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)


class UnsupportedFormatError(SkippableImageError):
    reason = "unsupported image format"


class UnreadableHeaderError(SkippableImageError):
    reason = "cannot read image header"


class InvalidDimensionsError(SkippableImageError):
    reason = "invalid image size"


class DuplicateViewError(SkippableImageError):
    reason = "duplicated view identifier"


class DimensionMismatchError(SkippableImageError):
    reason = "image size differs from its camera"


class UnknownSensorError(CameraInitError):
    """Images with valid metadata whose camera is missing from the sensor database.

    Attributes:
        entries: list of (image path, brand, model), one per distinct camera.
    """

    def __init__(self, entries: list[tuple[str, str, str]]):
        self.entries = entries
        lines = [f"  - '{path}': brand={brand!r} model={model!r}" for path, brand, model in entries]
        super().__init__(
            "Sensor width doesn't exist in the database for image(s):\n"
            + "\n".join(lines)
            + "\nPlease add camera model(s) and sensor width(s) in the database."
        )


class NoUsableIntrinsicError(CameraInitError):
    """No view ended up with a usable intrinsic."""


class SceneWriteError(CameraInitError):
    """The scene file could not be written."""
