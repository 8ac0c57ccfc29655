"""Image header and EXIF readers backed by Pillow."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from PIL import ExifTags, Image, UnidentifiedImageError
from PIL.TiffImagePlugin import IFDRational

from caminit.core.errors import UnreadableHeaderError, UnsupportedFormatError

logger = logging.getLogger(__name__)

# Pointer tags to sub-IFDs, never useful as metadata values
_POINTER_TAGS = {int(t) for t in ExifTags.IFD}


@dataclass
class RawExif:
    """EXIF fields of one image as read from the file, before normalisation."""

    has_exif: bool = False
    make: str = ""
    model: str = ""
    serial_number: str = ""
    lens_serial_number: str = ""
    focal_mm: float = -1.0
    image_width: int = 0
    image_height: int = 0
    date_time_original: str = ""
    subsec_time_original: str = ""
    fields: dict[str, str] = field(default_factory=dict)


class ImageReader(Protocol):
    def read_size(self, path: Path) -> tuple[int, int]:
        """Return (width, height) from the image header.

        Raises UnsupportedFormatError or UnreadableHeaderError.
        """
        ...


class MetadataReader(Protocol):
    def read(self, path: Path) -> RawExif:
        """Return the raw EXIF fields, empty when the image carries none."""
        ...


class PillowImageReader:
    """Reads image dimensions without decoding pixel data."""

    def read_size(self, path: Path) -> tuple[int, int]:
        try:
            with Image.open(path) as img:
                width, height = img.size
        except UnidentifiedImageError as e:
            raise UnsupportedFormatError(str(path), str(e)) from e
        except OSError as e:
            raise UnreadableHeaderError(str(path), str(e)) from e
        return int(width), int(height)


def _text(value) -> str:
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="ignore")
    return str(value).strip().strip("\x00").strip()


def _as_float(value) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError, ZeroDivisionError):
        return -1.0
    return result if math.isfinite(result) else -1.0


def _as_int(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


class PillowMetadataReader:
    """Extracts camera body / lens / focal EXIF fields with Pillow."""

    def read(self, path: Path) -> RawExif:
        try:
            with Image.open(path) as img:
                exif = img.getexif()
                exif_ifd = exif.get_ifd(ExifTags.IFD.Exif)
        except OSError as e:
            logger.debug(f"No readable EXIF in {path}: {e}")
            return RawExif()

        if not exif and not exif_ifd:
            return RawExif()

        tags = {**dict(exif), **dict(exif_ifd)}
        raw = RawExif(
            has_exif=True,
            make=_text(tags.get(ExifTags.Base.Make, "")),
            model=_text(tags.get(ExifTags.Base.Model, "")),
            serial_number=_text(tags.get(ExifTags.Base.BodySerialNumber, "")),
            lens_serial_number=_text(tags.get(ExifTags.Base.LensSerialNumber, "")),
            focal_mm=_as_float(tags.get(ExifTags.Base.FocalLength, -1.0)),
            image_width=_as_int(tags.get(ExifTags.Base.ExifImageWidth, 0)),
            image_height=_as_int(tags.get(ExifTags.Base.ExifImageHeight, 0)),
            date_time_original=_text(tags.get(ExifTags.Base.DateTimeOriginal, "")),
            subsec_time_original=_text(tags.get(ExifTags.Base.SubsecTimeOriginal, "")),
        )

        for tag, value in tags.items():
            name = ExifTags.TAGS.get(tag)
            if name is None or tag in _POINTER_TAGS:
                continue
            if isinstance(value, IFDRational):
                raw.fields[name] = str(_as_float(value))
            elif isinstance(value, (str, int, float)):
                raw.fields[name] = _text(value)
        return raw
