"""Tests for core pipeline runner and contracts."""

from pathlib import Path

import numpy as np
import pytest
import yaml
from pydantic import ValidationError

from caminit.core.contracts import (
    CameraModel,
    Intrinsic,
    PipelineConfig,
    Rig,
    SceneData,
    StepEntry,
    View,
)
from caminit.core.errors import ConfigurationError
from caminit.core.pipeline_runner import (
    import_step_class,
    load_pipeline_config,
    load_step_config,
    run_pipeline,
)
from tests.conftest import write_jpeg

STEP_MODULES = [
    "caminit.steps.s01_resolve_resources",
    "caminit.steps.s02_camera_init",
    "caminit.steps.s03_group_intrinsics",
]


class TestContracts:
    def test_camera_model_from_name(self):
        assert CameraModel.from_name("PINHOLE") == CameraModel.PINHOLE
        assert CameraModel.from_name("pinhole_camera_radial3") == CameraModel.RADIAL3
        with pytest.raises(ValueError, match="expected one of"):
            CameraModel.from_name("equirectangular")

    def test_distortion_sizes(self):
        assert [m.num_distortion for m in CameraModel] == [0, 1, 3, 5, 4, 1]

    def test_intrinsic_distortion_size_checked(self):
        with pytest.raises(ValidationError):
            Intrinsic(model=CameraModel.RADIAL3, width=4, height=3, ppx=2, ppy=1.5, distortion=[0.0])

    def test_intrinsic_k_matrix(self):
        intrinsic = Intrinsic(
            model=CameraModel.PINHOLE, width=640, height=480, focal_px=500, ppx=320, ppy=240
        )
        np.testing.assert_allclose(
            intrinsic.k_matrix(), [[500, 0, 320], [0, 500, 240], [0, 0, 1]]
        )
        assert intrinsic.params() == [500, 320, 240]

    def test_intrinsic_incomplete_by_default(self):
        intrinsic = Intrinsic(model=CameraModel.PINHOLE, width=640, height=480, ppx=320, ppy=240)
        assert intrinsic.is_complete is False

    def test_rig_needs_two_sub_poses(self):
        with pytest.raises(ValidationError):
            Rig(n_sub_poses=1)

    def test_scene_json_keys(self):
        scene = SceneData(
            views={3: View(view_id=3, intrinsic_id=0, pose_id=0, width=4, height=3, path="a.jpg")}
        )
        restored = SceneData.model_validate_json(scene.model_dump_json())
        assert restored == scene

    def test_pipeline_config(self):
        cfg = PipelineConfig(
            project_name="test",
            data_root=Path("./data"),
            steps=[StepEntry(name="s1", module=STEP_MODULES[0], config_file="c.yaml")],
        )
        assert len(cfg.steps) == 1
        assert cfg.steps[0].enabled is True
        assert cfg.steps[0].inputs == {}


class TestPipelineRunner:
    def test_load_pipeline_config(self, tmp_path: Path):
        config = {
            "project_name": "test_project",
            "data_root": str(tmp_path / "data"),
            "steps": [
                {"name": "resolve_resources", "module": STEP_MODULES[0],
                 "config_file": "configs/steps/s01_resolve_resources.yaml",
                 "inputs": {"image_dir": "images"}, "enabled": True},
            ],
        }
        config_file = tmp_path / "pipeline.yaml"
        with open(config_file, "w") as f:
            yaml.dump(config, f)

        cfg = load_pipeline_config(config_file)
        assert cfg.project_name == "test_project"
        assert cfg.steps[0].inputs == {"image_dir": "images"}

    def test_import_step_class(self):
        cls = import_step_class("caminit.steps.s02_camera_init")
        assert cls.__name__ == "CameraInitStep"
        assert hasattr(cls, "input_type")
        assert hasattr(cls, "output_type")

    def test_import_all_steps(self):
        for module in STEP_MODULES:
            cls = import_step_class(module)
            assert cls.name, f"{module} has empty name"
            assert "properties" in cls.input_type.model_json_schema()

    def test_required_inputs(self):
        assert import_step_class(STEP_MODULES[0]).required_inputs() == []
        assert import_step_class(STEP_MODULES[1]).required_inputs() == ["groups"]
        assert import_step_class(STEP_MODULES[2]).required_inputs() == ["scene_file"]

    def test_load_step_config(self, tmp_path: Path):
        from caminit.steps.s02_camera_init.config import CameraInitConfig

        config_file = tmp_path / "s02.yaml"
        with open(config_file, "w") as f:
            yaml.dump({"focal_length_px": 1200.0, "grouping_policy": "per_folder"}, f)

        cfg = load_step_config(config_file, CameraInitConfig)
        assert cfg.focal_length_px == 1200.0
        assert cfg.grouping_policy.value == "per_folder"

    def test_load_step_config_missing_file_uses_defaults(self, tmp_path: Path):
        from caminit.steps.s03_group_intrinsics.config import GroupIntrinsicsConfig

        cfg = load_step_config(tmp_path / "nope.yaml", GroupIntrinsicsConfig)
        assert cfg.output_name == "sfm_data.json"

    def test_load_step_config_conflict(self, tmp_path: Path):
        from caminit.steps.s02_camera_init.config import CameraInitConfig

        config_file = tmp_path / "s02.yaml"
        config_file.write_text('k_matrix: "1;0;1;0;1;1;0;0;1"\nfocal_length_px: 10\n')
        with pytest.raises(ValidationError):
            load_step_config(config_file, CameraInitConfig)


class TestRunPipeline:
    def _write_pipeline(self, tmp_path: Path, image_dir: Path, s02: dict) -> Path:
        steps_dir = tmp_path / "steps"
        steps_dir.mkdir()
        (steps_dir / "s02.yaml").write_text(yaml.dump(s02))
        config = {
            "project_name": "run_test",
            "data_root": str(tmp_path / "data"),
            "steps": [
                {"name": "resolve_resources", "module": STEP_MODULES[0],
                 "config_file": str(steps_dir / "s01.yaml"),
                 "inputs": {"image_dir": str(image_dir)}},
                {"name": "camera_init", "module": STEP_MODULES[1],
                 "config_file": str(steps_dir / "s02.yaml"),
                 "depends_on": ["resolve_resources"]},
                {"name": "group_intrinsics", "module": STEP_MODULES[2],
                 "config_file": str(steps_dir / "s03.yaml"),
                 "depends_on": ["camera_init"]},
            ],
        }
        config_file = tmp_path / "pipeline.yaml"
        config_file.write_text(yaml.dump(config))
        return config_file

    def test_full_run(self, tmp_path: Path):
        image_dir = tmp_path / "images"
        for i in range(3):
            write_jpeg(image_dir / f"frame_{i:03d}.jpg")
        config_file = self._write_pipeline(tmp_path, image_dir, {"focal_length_px": 80.0})

        results = run_pipeline(config_file)

        assert list(results) == ["resolve_resources", "camera_init", "group_intrinsics"]
        assert results["camera_init"].num_views == 3
        assert results["camera_init"].num_intrinsics == 3
        final = results["group_intrinsics"]
        assert final.scene_file == tmp_path / "data" / "processed" / "sfm_data.json"
        assert final.scene_file.exists()

    def test_fatal_error_propagates(self, tmp_path: Path):
        config_file = self._write_pipeline(tmp_path, tmp_path / "missing", {})
        with pytest.raises(ConfigurationError):
            run_pipeline(config_file)
