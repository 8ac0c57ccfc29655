"""Base class for the camera init pipeline steps.

A step is resolve_resources, camera_init or group_intrinsics. Each declares
pydantic Input, Output and Config models; the runner feeds one step's output
fields into the next step's input, and fatal problems surface as
CameraInitError subclasses.
"""

from __future__ import annotations

import time
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Generic, TypeVar, ClassVar

from pydantic import BaseModel

from .errors import ConfigurationError

InputT = TypeVar("InputT", bound=BaseModel)
OutputT = TypeVar("OutputT", bound=BaseModel)
ConfigT = TypeVar("ConfigT", bound=BaseModel)

logger = logging.getLogger(__name__)


class BaseStep(ABC, Generic[InputT, OutputT, ConfigT]):
    """Abstract pipeline step.

    Subclasses set input_type / output_type / config_type and implement
    validate_inputs() (cheap existence checks, no image is read) and run().

    Example:
        class GroupIntrinsicsStep(BaseStep[GroupInput, GroupOutput, GroupConfig]):
            input_type = GroupInput
            output_type = GroupOutput
            config_type = GroupConfig
    """

    name: ClassVar[str] = ""
    input_type: ClassVar[type[BaseModel]]
    output_type: ClassVar[type[BaseModel]]
    config_type: ClassVar[type[BaseModel]]

    def __init__(self, config: ConfigT, data_root: Path):
        self.config = config
        # interim/ and processed/ scene files are written below this folder
        self.data_root = Path(data_root)

    @abstractmethod
    def run(self, inputs: InputT) -> OutputT:
        ...

    @abstractmethod
    def validate_inputs(self, inputs: InputT) -> bool:
        """Return False (after logging why) when inputs can't be processed."""
        ...

    def execute(self, inputs: InputT) -> OutputT:
        """validate_inputs() then run(), timed.

        Raises ConfigurationError when validation fails, before any output
        is written.
        """
        step_name = self.name or self.__class__.__name__
        logger.info(f"[{step_name}] Validating inputs...")

        if not self.validate_inputs(inputs):
            raise ConfigurationError(f"[{step_name}] Input validation failed")

        logger.info(f"[{step_name}] Starting...")
        t0 = time.time()
        result = self.run(inputs)
        logger.info(f"[{step_name}] Done in {time.time() - t0:.1f}s")
        return result

    @classmethod
    def required_inputs(cls) -> list[str]:
        """Input fields without a default, i.e. what a step run alone must be given."""
        return list(cls.input_type.model_json_schema().get("required", []))
