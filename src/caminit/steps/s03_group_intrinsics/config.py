"""Configuration for Step 03: intrinsic grouping."""

from pydantic import BaseModel, Field


class GroupIntrinsicsConfig(BaseModel):
    output_name: str = Field("sfm_data.json", description="Scene file name under processed/")
