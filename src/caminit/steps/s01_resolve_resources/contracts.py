"""I/O contracts for Step 01: resource tree resolution."""

from pathlib import Path
from pydantic import BaseModel, Field


class ResolveResourcesInput(BaseModel):
    image_dir: Path | None = Field(None, description="Flat folder of images (one view per file)")
    descriptor_file: Path | None = Field(
        None, description="JSON file with a 'resources' array of paths, groups and rigs"
    )


class ResolveResourcesOutput(BaseModel):
    root_path: str = Field("", description="Folder image paths are relative to ('' = as given)")
    groups: list[list[list[str]]] = Field(
        ..., description="Groups -> camera slots -> ordered image paths"
    )
    num_single_images: int = Field(0, description="Groups made of one image")
    num_intrinsic_groups: int = Field(0, description="Groups of one camera with several images")
    num_rigs: int = Field(0, description="Groups with several synchronised cameras")
    num_images: int = Field(0, description="Total number of image paths")
