"""Step 01: resolve an image folder or JSON descriptor into resource groups."""

from __future__ import annotations

import logging
from typing import ClassVar

from caminit.core.step_base import BaseStep
from ._resolver import load_descriptor, resolve_descriptor, resolve_directory, summarize
from .config import ResolveResourcesConfig
from .contracts import ResolveResourcesInput, ResolveResourcesOutput

logger = logging.getLogger(__name__)


class ResolveResourcesStep(
    BaseStep[ResolveResourcesInput, ResolveResourcesOutput, ResolveResourcesConfig]
):
    name: ClassVar[str] = "resolve_resources"
    input_type: ClassVar = ResolveResourcesInput
    output_type: ClassVar = ResolveResourcesOutput
    config_type: ClassVar = ResolveResourcesConfig

    def validate_inputs(self, inputs: ResolveResourcesInput) -> bool:
        if inputs.image_dir is not None and inputs.descriptor_file is not None:
            logger.error("Cannot combine an image directory and a descriptor file")
            return False
        if inputs.image_dir is None and inputs.descriptor_file is None:
            logger.error("Either an image directory or a descriptor file is required")
            return False
        if inputs.image_dir is not None and not inputs.image_dir.is_dir():
            logger.error(f"The input directory doesn't exist: {inputs.image_dir}")
            return False
        if inputs.descriptor_file is not None and not inputs.descriptor_file.is_file():
            logger.error(f"Descriptor file not found: {inputs.descriptor_file}")
            return False
        return True

    def run(self, inputs: ResolveResourcesInput) -> ResolveResourcesOutput:
        if inputs.image_dir is not None:
            groups = resolve_directory(inputs.image_dir)
            root_path = str(inputs.image_dir)
        else:
            resources = load_descriptor(inputs.descriptor_file)
            groups = resolve_descriptor(resources, self.config.extensions)
            root_path = ""

        counts = summarize(groups)
        logger.info(
            f"Retrieved {counts['num_single_images']} single image(s), "
            f"{counts['num_intrinsic_groups']} intrinsic group(s), "
            f"{counts['num_rigs']} rig(s) ({counts['num_images']} images)"
        )
        return ResolveResourcesOutput(root_path=root_path, groups=groups, **counts)
