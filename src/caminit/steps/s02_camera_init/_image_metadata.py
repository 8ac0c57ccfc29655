"""Per-image header / EXIF reading and metadata normalisation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from caminit.core.contracts import CameraModel
from caminit.core.errors import InvalidDimensionsError
from caminit.utils.image_io import ImageReader, MetadataReader, RawExif

logger = logging.getLogger(__name__)

# Stand-in brand/model for images without usable EXIF; the model string is
# read back as a camera model family by the inference step.
CUSTOM_BRAND = "Custom"
CUSTOM_MODEL = CameraModel.RADIAL3.value
CUSTOM_FOCAL_MM = 1.2


@dataclass
class ImageRecord:
    """What was read from one image file: decoded size and raw EXIF."""

    path: str
    abs_path: Path
    width: int
    height: int
    exif: RawExif = field(default_factory=RawExif)


@dataclass
class ImageMetadata:
    """Normalised metadata of the first image of a camera slot."""

    path: str
    abs_path: Path
    width: int
    height: int
    brand: str
    model: str
    serial_number: str
    focal_mm: float
    metadata_width: int
    metadata_height: int
    has_exif: bool
    has_valid_metadata: bool
    is_resized: bool
    exif: dict[str, str] = field(default_factory=dict)

    @property
    def folder(self) -> str:
        return str(self.abs_path.parent)


def read_image(
    path: str,
    abs_path: Path,
    image_reader: ImageReader,
    metadata_reader: MetadataReader,
) -> ImageRecord:
    """Read size and EXIF of one image.

    Raises a SkippableImageError subclass when the image cannot be used.
    """
    width, height = image_reader.read_size(abs_path)
    if width <= 0 or height <= 0:
        raise InvalidDimensionsError(path, f"width={width}, height={height}")
    return ImageRecord(
        path=path,
        abs_path=abs_path,
        width=width,
        height=height,
        exif=metadata_reader.read(abs_path),
    )


def normalize_metadata(record: ImageRecord) -> ImageMetadata:
    raw = record.exif
    name = record.abs_path.name
    brand = raw.make
    model = raw.model
    focal_mm = raw.focal_mm
    has_valid = raw.has_exif and bool(brand) and bool(model)

    if not raw.has_exif:
        logger.warning(f"No Exif metadata for image '{name}'")
    elif not has_valid:
        logger.warning(f"No Brand/Model in Exif metadata for image '{name}'")

    if not brand or not model:
        brand = CUSTOM_BRAND
        model = CUSTOM_MODEL
        focal_mm = CUSTOM_FOCAL_MM

    # Bad (non-positive) metadata sizes fall back to the decoded size
    metadata_width = raw.image_width if raw.image_width > 0 else record.width
    metadata_height = raw.image_height if raw.image_height > 0 else record.height

    # 90 degree rotation: EXIF keeps the sensor orientation
    if metadata_width == record.height and metadata_height == record.width:
        metadata_width, metadata_height = record.width, record.height

    is_resized = metadata_width != record.width or metadata_height != record.height
    if is_resized:
        logger.warning(
            f"Resized image detected '{name}': real size {record.width}x{record.height}, "
            f"size from metadata {metadata_width}x{metadata_height}"
        )

    return ImageMetadata(
        path=record.path,
        abs_path=record.abs_path,
        width=record.width,
        height=record.height,
        brand=brand,
        model=model,
        serial_number=raw.serial_number + raw.lens_serial_number,
        focal_mm=focal_mm,
        metadata_width=metadata_width,
        metadata_height=metadata_height,
        has_exif=raw.has_exif,
        has_valid_metadata=has_valid,
        is_resized=is_resized,
        exif=dict(raw.fields) if has_valid else {},
    )


def inspect_image(
    path: str,
    abs_path: Path,
    image_reader: ImageReader,
    metadata_reader: MetadataReader,
) -> ImageMetadata:
    """Read and normalise one image in a single call."""
    return normalize_metadata(read_image(path, abs_path, image_reader, metadata_reader))
