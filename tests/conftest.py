"""Shared pytest fixtures for caminit tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from PIL import Image

from caminit.core.errors import UnreadableHeaderError, UnsupportedFormatError
from caminit.utils.image_io import RawExif
from caminit.utils.sensor_db import SensorDatabase


class FakeImageReader:
    """ImageReader returning sizes from a dict; 'unsupported'/'unreadable' raise."""

    def __init__(self, sizes: dict[str, tuple[int, int] | str]):
        self.sizes = {str(Path(k)): v for k, v in sizes.items()}
        self.calls: list[str] = []

    def read_size(self, path: Path) -> tuple[int, int]:
        self.calls.append(str(path))
        value = self.sizes[str(path)]
        if value == "unsupported":
            raise UnsupportedFormatError(str(path))
        if value == "unreadable":
            raise UnreadableHeaderError(str(path))
        return value


class FakeMetadataReader:
    """MetadataReader returning RawExif from a dict, empty EXIF by default."""

    def __init__(self, exifs: dict[str, RawExif] | None = None):
        self.exifs = {str(Path(k)): v for k, v in (exifs or {}).items()}

    def read(self, path: Path) -> RawExif:
        return self.exifs.get(str(path), RawExif())


def make_exif(
    make: str = "Canon",
    model: str = "Canon EOS 80D",
    focal_mm: float = 35.0,
    serial: str = "0123",
    lens_serial: str = "",
    width: int = 0,
    height: int = 0,
    date_time: str = "",
) -> RawExif:
    fields = {"Make": make, "Model": model, "FocalLength": str(focal_mm)}
    if serial:
        fields["BodySerialNumber"] = serial
    return RawExif(
        has_exif=True,
        make=make,
        model=model,
        serial_number=serial,
        lens_serial_number=lens_serial,
        focal_mm=focal_mm,
        image_width=width,
        image_height=height,
        date_time_original=date_time,
        fields=fields,
    )


def write_jpeg(
    path: Path,
    size: tuple[int, int] = (64, 48),
    make: str | None = None,
    model: str | None = None,
) -> Path:
    """Write a tiny JPEG, optionally with Make/Model EXIF tags."""
    path.parent.mkdir(parents=True, exist_ok=True)
    img = Image.new("RGB", size, color=(120, 80, 40))
    if make or model:
        exif = Image.Exif()
        if make:
            exif[0x010F] = make
        if model:
            exif[0x0110] = model
        img.save(path, "JPEG", exif=exif)
    else:
        img.save(path, "JPEG")
    return path


@pytest.fixture
def sensor_db() -> SensorDatabase:
    return SensorDatabase(
        {
            ("Canon", "Canon EOS 80D"): 22.5,
            ("GoPro", "HERO5 Black"): 6.17,
        }
    )


@pytest.fixture
def image_dir(tmp_path: Path) -> Path:
    """Folder with three JPEGs without EXIF and one non-image file."""
    folder = tmp_path / "images"
    for name in ["img_002.jpg", "img_000.jpg", "img_001.jpg"]:
        write_jpeg(folder / name)
    (folder / "notes.txt").write_text("not an image")
    return folder
