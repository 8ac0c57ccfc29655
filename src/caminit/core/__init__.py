"""caminit core: pipeline runner, base step, shared contracts, errors."""

from .step_base import BaseStep
from .contracts import (
    CameraModel,
    GroupingPolicy,
    Intrinsic,
    PipelineConfig,
    Rig,
    SceneData,
    StepEntry,
    View,
)
from .errors import (
    CameraInitError,
    ConfigurationError,
    NoUsableIntrinsicError,
    SceneWriteError,
    SkippableImageError,
    StructuralError,
    UnknownSensorError,
)
from .pipeline_runner import run_pipeline, load_pipeline_config
from .logging import setup_logging

__all__ = [
    "BaseStep",
    "CameraModel",
    "GroupingPolicy",
    "Intrinsic",
    "PipelineConfig",
    "Rig",
    "SceneData",
    "StepEntry",
    "View",
    "CameraInitError",
    "ConfigurationError",
    "NoUsableIntrinsicError",
    "SceneWriteError",
    "SkippableImageError",
    "StructuralError",
    "UnknownSensorError",
    "run_pipeline",
    "load_pipeline_config",
    "setup_logging",
]
