"""Step 02: create views, intrinsics and rigs from resolved image groups."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import ClassVar

from caminit.core.errors import SceneWriteError
from caminit.core.step_base import BaseStep
from caminit.utils.io import save_scene
from caminit.utils.sensor_db import SensorDatabase
from ._scene_builder import RunReport, SceneGraphBuilder, finalize_report
from .config import CameraInitConfig
from .contracts import CameraInitInput, CameraInitOutput

logger = logging.getLogger(__name__)


class CameraInitStep(BaseStep[CameraInitInput, CameraInitOutput, CameraInitConfig]):
    name: ClassVar[str] = "camera_init"
    input_type: ClassVar = CameraInitInput
    output_type: ClassVar = CameraInitOutput
    config_type: ClassVar = CameraInitConfig

    def validate_inputs(self, inputs: CameraInitInput) -> bool:
        if not inputs.groups:
            logger.error("No image paths given")
            return False
        if inputs.root_path and not Path(inputs.root_path).is_dir():
            logger.error(f"Image root folder not found: {inputs.root_path}")
            return False
        db = self.config.sensor_database
        if db is not None and not db.is_file():
            logger.error(f"Sensor database not found: {db}")
            return False
        return True

    def run(self, inputs: CameraInitInput) -> CameraInitOutput:
        if self.config.sensor_database is not None:
            sensor_db = SensorDatabase.from_file(self.config.sensor_database)
        else:
            logger.warning("No sensor database given, focal lengths rely on user overrides")
            sensor_db = SensorDatabase()

        builder = SceneGraphBuilder(self.config, sensor_db)
        report = RunReport()
        scene = builder.build(inputs.groups, inputs.root_path, report)
        views_without_intrinsic = finalize_report(scene, report)

        output_dir = self.data_root / "interim" / "s02_camera_init"
        scene_file = output_dir / "scene.json"
        if not save_scene(scene, scene_file):
            raise SceneWriteError(f"Failed to save scene to {scene_file}")

        return CameraInitOutput(
            scene_file=scene_file,
            grouping_policy=self.config.grouping_policy,
            num_input_images=report.num_input_images,
            num_views=len(scene.views),
            num_intrinsics=len(scene.intrinsics),
            num_rigs=len(scene.rigs),
            num_skipped=len(report.skipped) + len(report.duplicates),
            views_without_intrinsic=views_without_intrinsic,
            no_metadata_images=report.no_metadata_images,
        )
