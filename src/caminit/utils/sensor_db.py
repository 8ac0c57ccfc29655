"""Camera sensor width database.

Text format, one camera per line:

    Brand;Model;SensorWidthMm[;source]

Blank lines and lines starting with '#' are ignored.
"""

from __future__ import annotations

import logging
from pathlib import Path

from caminit.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


def _normalize(text: str) -> str:
    return " ".join(text.lower().split())


def _strip_brand(brand: str, model: str) -> str:
    # EXIF models often repeat the brand: "Canon" / "Canon EOS 5D"
    if brand and model.startswith(brand + " "):
        return model[len(brand) + 1:]
    return model


class SensorDatabase:
    """Lookup of sensor width (mm) by camera brand and model."""

    def __init__(self, entries: dict[tuple[str, str], float] | None = None):
        self._entries: dict[tuple[str, str], float] = {}
        for (brand, model), width in (entries or {}).items():
            self.add(brand, model, width)

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, brand: str, model: str, sensor_width_mm: float) -> None:
        b = _normalize(brand)
        self._entries[(b, _strip_brand(b, _normalize(model)))] = float(sensor_width_mm)

    def lookup(self, brand: str, model: str) -> float | None:
        """Return the sensor width in mm, or None when the camera is unknown."""
        b = _normalize(brand)
        return self._entries.get((b, _strip_brand(b, _normalize(model))))

    @classmethod
    def from_file(cls, path: Path) -> SensorDatabase:
        """Parse a database file. Malformed content is a configuration error."""
        path = Path(path)
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            raise ConfigurationError(f"Invalid sensor database '{path}': {e}") from e

        db = cls()
        for lineno, line in enumerate(lines, 1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            parts = [p.strip() for p in line.split(";")]
            if len(parts) < 3:
                raise ConfigurationError(
                    f"Invalid sensor database '{path}' line {lineno}: expected 'brand;model;width'"
                )
            try:
                width = float(parts[2])
            except ValueError:
                raise ConfigurationError(
                    f"Invalid sensor database '{path}' line {lineno}: bad sensor width '{parts[2]}'"
                ) from None
            db.add(parts[0], parts[1], width)

        logger.info(f"Loaded {len(db)} sensor(s) from {path}")
        return db
