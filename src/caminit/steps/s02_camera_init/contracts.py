"""I/O contracts for Step 02: camera initialisation."""

from pathlib import Path
from pydantic import BaseModel, Field

from caminit.core.contracts import GroupingPolicy


class CameraInitInput(BaseModel):
    root_path: str = Field("", description="Folder image paths are relative to ('' = as given)")
    groups: list[list[list[str]]] = Field(
        ..., description="Groups -> camera slots -> ordered image paths"
    )


class CameraInitOutput(BaseModel):
    scene_file: Path = Field(..., description="Scene JSON with views, intrinsics and rigs")
    grouping_policy: GroupingPolicy = Field(..., description="Policy the grouping keys were built with")
    num_input_images: int = Field(..., description="Image paths walked")
    num_views: int = Field(..., description="Views created")
    num_intrinsics: int = Field(..., description="Intrinsics created (one per camera slot)")
    num_rigs: int = Field(0, description="Rigs created")
    num_skipped: int = Field(0, description="Images skipped (unreadable, unsupported, duplicates)")
    views_without_intrinsic: int = Field(0, description="Views whose intrinsic is incomplete")
    no_metadata_images: list[str] = Field(default_factory=list, description="Images without usable EXIF")
