"""Common Pydantic models shared across pipeline steps."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

import numpy as np
from pydantic import BaseModel, Field, model_validator


class CameraModel(str, Enum):
    """Camera model families. The parameter layout of each is fixed."""

    PINHOLE = "pinhole"
    RADIAL1 = "radial1"
    RADIAL3 = "radial3"
    BROWN = "brown"
    FISHEYE4 = "fisheye4"
    FISHEYE1 = "fisheye1"

    @property
    def num_distortion(self) -> int:
        return DISTORTION_SIZES[self]

    @classmethod
    def from_name(cls, name: str) -> CameraModel:
        """Parse a family name, accepting a few common spellings."""
        key = name.strip().lower().replace("-", "").replace("_", "")
        key = _MODEL_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            choices = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown camera model '{name}' (expected one of: {choices})") from None


DISTORTION_SIZES: dict[CameraModel, int] = {
    CameraModel.PINHOLE: 0,
    CameraModel.RADIAL1: 1,
    CameraModel.RADIAL3: 3,
    CameraModel.BROWN: 5,
    CameraModel.FISHEYE4: 4,
    CameraModel.FISHEYE1: 1,
}

_MODEL_ALIASES = {
    "fisheye": "fisheye4",
    "pinholecamera": "pinhole",
    "pinholecameraradial1": "radial1",
    "pinholecameraradial3": "radial3",
    "pinholecamerabrown": "brown",
    "pinholecamerafisheye": "fisheye4",
    "pinholecamerafisheye1": "fisheye1",
}


class GroupingPolicy(str, Enum):
    """How images without usable metadata are keyed for intrinsic sharing."""

    NONE = "none"
    PER_CAMERA = "per_camera"
    PER_GROUP = "per_group"
    PER_FOLDER = "per_folder"


class Intrinsic(BaseModel):
    """Materialised camera calibration, shared by every view of one camera-slot."""

    model: CameraModel
    width: int
    height: int
    focal_px: float = -1.0
    initial_focal_px: float = -1.0
    ppx: float
    ppy: float
    distortion: list[float] = Field(default_factory=list)
    serial_number: str = ""
    sensor_width_mm: float = -1.0

    @model_validator(mode="after")
    def _check_distortion_size(self) -> Intrinsic:
        expected = self.model.num_distortion
        if len(self.distortion) != expected:
            raise ValueError(
                f"{self.model.value} expects {expected} distortion coefficients, "
                f"got {len(self.distortion)}"
            )
        return self

    @property
    def is_complete(self) -> bool:
        return self.focal_px > 0 and self.ppx > 0 and self.ppy > 0

    def params(self) -> list[float]:
        """Flat parameter vector: focal, ppx, ppy, then the family's distortion."""
        return [self.focal_px, self.ppx, self.ppy, *self.distortion]

    def k_matrix(self) -> np.ndarray:
        return np.array(
            [
                [self.focal_px, 0.0, self.ppx],
                [0.0, self.focal_px, self.ppy],
                [0.0, 0.0, 1.0],
            ]
        )

    def grouping_key(self) -> tuple:
        """Two intrinsics with equal keys describe the same physical camera."""
        return (
            self.serial_number,
            self.model.value,
            self.width,
            self.height,
            self.focal_px,
            self.ppx,
            self.ppy,
            tuple(self.distortion),
        )


class Rig(BaseModel):
    """Synchronised multi-camera arrangement. Views point back to it."""

    n_sub_poses: int = Field(..., ge=2)


class View(BaseModel):
    """One decoded input image."""

    view_id: int
    intrinsic_id: int
    pose_id: int
    width: int
    height: int
    path: str
    metadata: dict[str, str] = Field(default_factory=dict)
    rig_id: int | None = None
    sub_pose_id: int | None = None


class SceneData(BaseModel):
    """Views, intrinsics and rigs handed to the scene store."""

    root_path: str = ""
    views: dict[int, View] = Field(default_factory=dict)
    intrinsics: dict[int, Intrinsic] = Field(default_factory=dict)
    rigs: dict[int, Rig] = Field(default_factory=dict)


class PipelineConfig(BaseModel):
    """Top-level pipeline configuration loaded from pipeline.yaml."""

    project_name: str = "caminit_project"
    data_root: Path = Path("./data")
    steps: list[StepEntry] = Field(default_factory=list)


class StepEntry(BaseModel):
    """One entry in the pipeline step list."""

    name: str
    module: str
    config_file: str
    depends_on: list[str] = Field(default_factory=list)
    inputs: dict[str, Any] = Field(default_factory=dict)
    enabled: bool = True


# Fix forward reference
PipelineConfig.model_rebuild()
