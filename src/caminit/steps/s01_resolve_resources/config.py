"""Configuration for Step 01: resource tree resolution."""

from pydantic import BaseModel, Field, field_validator


class ResolveResourcesConfig(BaseModel):
    extensions: list[str] = Field(
        default_factory=lambda: ["jpg", "jpeg"],
        validate_default=True,
        description="Image extensions kept when expanding folders (case-insensitive)",
    )

    @field_validator("extensions")
    @classmethod
    def _normalize_extensions(cls, value: list[str]) -> list[str]:
        return sorted({ext.strip().lstrip(".").lower() for ext in value if ext.strip()})
