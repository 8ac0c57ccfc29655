"""Configuration for Step 02: camera initialisation."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator

from caminit.core.contracts import CameraModel, GroupingPolicy
from caminit.core.errors import ConfigurationError
from ._intrinsics import parse_k_matrix


class CameraInitConfig(BaseModel):
    sensor_database: Path | None = Field(None, description="Camera sensor width database file")
    focal_length_px: float | None = Field(None, gt=0, description="Focal length in pixels for all cameras")
    sensor_width_mm: float | None = Field(None, gt=0, description="Sensor width in mm for all cameras")
    k_matrix: str | None = Field(None, description='Intrinsics K matrix "f;0;ppx;0;f;ppy;0;0;1"')
    camera_model: CameraModel | None = Field(
        None, description="Camera model: pinhole|radial1|radial3|brown|fisheye4|fisheye1"
    )
    grouping_policy: GroupingPolicy = Field(
        GroupingPolicy.PER_CAMERA,
        description="Intrinsic key for images without metadata: none|per_camera|per_group|per_folder",
    )
    num_workers: int = Field(1, ge=1, description="Threads reading image headers")

    @field_validator("camera_model", mode="before")
    @classmethod
    def _parse_camera_model(cls, value):
        if isinstance(value, str) and value:
            return CameraModel.from_name(value)
        return value or None

    @field_validator("k_matrix")
    @classmethod
    def _check_k_matrix(cls, value: str | None) -> str | None:
        if value:
            parse_k_matrix(value)
        return value or None

    @model_validator(mode="after")
    def _check_exclusive_focal(self) -> CameraInitConfig:
        if self.k_matrix and self.focal_length_px is not None:
            raise ConfigurationError("Cannot combine a K matrix and a focal length in pixels")
        return self
