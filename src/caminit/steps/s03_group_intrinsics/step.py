"""Step 03: share intrinsics between views of the same camera."""

from __future__ import annotations

import logging
from typing import ClassVar

from caminit.core.contracts import GroupingPolicy
from caminit.core.errors import SceneWriteError
from caminit.core.step_base import BaseStep
from caminit.utils.io import load_scene, save_scene
from ._grouping import group_shared_intrinsics
from .config import GroupIntrinsicsConfig
from .contracts import GroupIntrinsicsInput, GroupIntrinsicsOutput

logger = logging.getLogger(__name__)


class GroupIntrinsicsStep(
    BaseStep[GroupIntrinsicsInput, GroupIntrinsicsOutput, GroupIntrinsicsConfig]
):
    name: ClassVar[str] = "group_intrinsics"
    input_type: ClassVar = GroupIntrinsicsInput
    output_type: ClassVar = GroupIntrinsicsOutput
    config_type: ClassVar = GroupIntrinsicsConfig

    def validate_inputs(self, inputs: GroupIntrinsicsInput) -> bool:
        if not inputs.scene_file.exists():
            logger.error(f"Scene file not found: {inputs.scene_file}")
            return False
        return True

    def run(self, inputs: GroupIntrinsicsInput) -> GroupIntrinsicsOutput:
        scene = load_scene(inputs.scene_file)
        n_before = len(scene.intrinsics)

        if inputs.grouping_policy == GroupingPolicy.NONE:
            logger.info("Intrinsic grouping disabled, each camera keeps its own intrinsic")
        else:
            scene = group_shared_intrinsics(scene)

        scene_file = self.data_root / "processed" / self.config.output_name
        if not save_scene(scene, scene_file):
            raise SceneWriteError(f"Failed to save scene to {scene_file}")

        return GroupIntrinsicsOutput(
            scene_file=scene_file,
            num_views=len(scene.views),
            num_intrinsics_before=n_before,
            num_intrinsics=len(scene.intrinsics),
        )
