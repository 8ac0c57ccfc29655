"""I/O contracts for Step 03: intrinsic grouping."""

from pathlib import Path
from pydantic import BaseModel, Field

from caminit.core.contracts import GroupingPolicy


class GroupIntrinsicsInput(BaseModel):
    scene_file: Path = Field(..., description="Scene JSON from camera_init")
    grouping_policy: GroupingPolicy = Field(
        GroupingPolicy.PER_CAMERA, description="'none' keeps one intrinsic per camera slot"
    )


class GroupIntrinsicsOutput(BaseModel):
    scene_file: Path = Field(..., description="Final scene JSON")
    num_views: int = Field(..., description="Views in the scene")
    num_intrinsics_before: int = Field(..., description="Intrinsics before grouping")
    num_intrinsics: int = Field(..., description="Intrinsics after grouping")
