"""Camera intrinsic inference from image metadata and user overrides.

Focal length in pixels is taken from, in priority order:
  1. the user K matrix
  2. the user focal length in pixels
  3. the EXIF focal length in mm and the sensor width
     (user value, else sensor database)
When none applies the intrinsic is still produced, flagged incomplete.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, NamedTuple

import numpy as np

from caminit.core.contracts import CameraModel, GroupingPolicy, Intrinsic
from caminit.core.errors import ConfigurationError
from caminit.utils.sensor_db import SensorDatabase
from ._image_metadata import CUSTOM_BRAND, ImageMetadata

if TYPE_CHECKING:
    from .config import CameraInitConfig

logger = logging.getLogger(__name__)

# Below this focal length (mm) lenses are assumed wide-angle
FISHEYE_MAX_FOCAL_MM = 15.0

# Starting distortion for known brand / model combinations
SEEDED_DISTORTION: dict[tuple[str, CameraModel], list[float]] = {
    ("gopro", CameraModel.FISHEYE4): [0.0524, 0.0094, -0.0037, -0.0004],
    ("gopro", CameraModel.FISHEYE1): [1.04],
}


class KMatrix(NamedTuple):
    focal: float
    ppx: float
    ppy: float
    matrix: np.ndarray


def parse_k_matrix(value: str) -> KMatrix:
    """Parse "f;0;ppx;0;f;ppy;0;0;1" (row-major 3x3).

    Raises ConfigurationError unless there are exactly 9 numeric fields.
    """
    fields = value.split(";")
    if len(fields) != 9:
        raise ConfigurationError(
            f"K matrix must have 9 ';'-separated values, got {len(fields)}: '{value}'"
        )
    try:
        matrix = np.array([float(f) for f in fields], dtype=float).reshape(3, 3)
    except ValueError:
        raise ConfigurationError(f"K matrix contains a value that is not a number: '{value}'") from None
    if not np.all(np.isfinite(matrix)):
        raise ConfigurationError(f"K matrix contains a non-finite value: '{value}'")
    return KMatrix(
        focal=float(matrix[0, 0]),
        ppx=float(matrix[0, 2]),
        ppy=float(matrix[1, 2]),
        matrix=matrix,
    )


@dataclass
class IntrinsicDecision:
    model: CameraModel
    focal_px: float = -1.0
    ppx: float = -1.0
    ppy: float = -1.0
    sensor_width_mm: float = -1.0
    distortion: list[float] = field(default_factory=list)
    serial_number: str = ""
    unknown_sensor: bool = False

    @property
    def complete(self) -> bool:
        return self.focal_px > 0 and self.ppx > 0 and self.ppy > 0

    def to_intrinsic(self, width: int, height: int) -> Intrinsic:
        return Intrinsic(
            model=self.model,
            width=width,
            height=height,
            focal_px=self.focal_px,
            initial_focal_px=self.focal_px,
            ppx=self.ppx,
            ppy=self.ppy,
            distortion=list(self.distortion),
            serial_number=self.serial_number,
            sensor_width_mm=self.sensor_width_mm,
        )


def grouping_serial(
    metadata: ImageMetadata,
    policy: GroupingPolicy,
    group_index: int,
    camera_index: int,
) -> str:
    """Key deciding which camera slots may later share one intrinsic."""
    if metadata.has_valid_metadata:
        return metadata.serial_number
    if policy == GroupingPolicy.PER_FOLDER:
        # e.g. frames extracted from one video: fixed intrinsics per folder
        return metadata.folder
    if policy == GroupingPolicy.PER_GROUP:
        return f"no_metadata_group_{group_index}"
    return f"no_metadata_{group_index}_{camera_index}"


def select_camera_model(metadata: ImageMetadata) -> CameraModel:
    """Default camera model family when the user did not force one."""
    if metadata.brand == CUSTOM_BRAND:
        try:
            return CameraModel.from_name(metadata.model)
        except ValueError:
            logger.warning(
                f"Unknown camera model '{metadata.model}' for '{metadata.abs_path.name}', "
                f"using {CameraModel.RADIAL3.value}"
            )
            return CameraModel.RADIAL3
    if metadata.is_resized:
        # resized images are assumed to be undistorted already
        return CameraModel.PINHOLE
    if 0.0 < metadata.focal_mm < FISHEYE_MAX_FOCAL_MM:
        return CameraModel.FISHEYE4
    return CameraModel.RADIAL3


def infer_intrinsic(
    metadata: ImageMetadata,
    overrides: CameraInitConfig,
    sensor_db: SensorDatabase | None,
    *,
    group_index: int = 0,
    camera_index: int = 0,
) -> IntrinsicDecision:
    name = metadata.abs_path.name
    focal_px = -1.0
    ppx = metadata.width / 2.0
    ppy = metadata.height / 2.0
    # a user-given focal is final, even when not positive
    focal_from_user = False

    if overrides.k_matrix:
        try:
            k = parse_k_matrix(overrides.k_matrix)
            focal_px, ppx, ppy = k.focal, k.ppx, k.ppy
            focal_from_user = True
        except ConfigurationError as e:
            logger.warning(f"Ignoring K matrix for '{name}': {e}")
    elif overrides.focal_length_px is not None:
        focal_px = overrides.focal_length_px
        focal_from_user = True

    sensor_width = -1.0
    unknown_sensor = False
    if overrides.sensor_width_mm is not None:
        sensor_width = overrides.sensor_width_mm
    elif not metadata.has_valid_metadata:
        logger.warning(f"No metadata in image '{name}', sensor width is unknown")
    else:
        found = sensor_db.lookup(metadata.brand, metadata.model) if sensor_db else None
        if found is not None:
            sensor_width = found
        elif not focal_from_user:
            unknown_sensor = True

    if not focal_from_user:
        if metadata.focal_mm <= 0:
            logger.warning(
                f"Image '{name}' focal length (in mm) metadata is missing, "
                f"can't compute focal length (in px)"
            )
        elif sensor_width > 0:
            focal_px = (
                max(metadata.metadata_width, metadata.metadata_height)
                * metadata.focal_mm
                / sensor_width
            )

    model = overrides.camera_model or select_camera_model(metadata)
    distortion = SEEDED_DISTORTION.get(
        (metadata.brand.lower(), model), [0.0] * model.num_distortion
    )

    decision = IntrinsicDecision(
        model=model,
        focal_px=focal_px,
        ppx=ppx,
        ppy=ppy,
        sensor_width_mm=sensor_width,
        distortion=list(distortion),
        serial_number=grouping_serial(
            metadata, overrides.grouping_policy, group_index, camera_index
        ),
        unknown_sensor=unknown_sensor,
    )

    if not decision.complete:
        logger.warning(
            f"No intrinsics for '{name}': size {metadata.width}x{metadata.height}, "
            f"brand={metadata.brand or 'unknown'}, model={metadata.model or 'unknown'}, "
            f"sensor width={_known(sensor_width)}, focal mm={_known(metadata.focal_mm)}, "
            f"focal px={_known(focal_px)}, ppx={_known(ppx)}, ppy={_known(ppy)}"
        )
    return decision


def _known(value: float) -> str:
    return f"{value:g}" if value > 0 else "unknown"
