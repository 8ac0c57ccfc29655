"""End-to-end runs of the caminit CLI on real JPEG files."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from caminit.cli import _unmet_inputs, app
from caminit.core.contracts import StepEntry
from caminit.utils.io import load_scene
from tests.conftest import write_jpeg

runner = CliRunner()


@pytest.fixture
def rig_descriptor(tmp_path: Path) -> Path:
    """Two-camera rig of 3 frames each plus one single image with EXIF."""
    for cam in ("cam0", "cam1"):
        for i in range(3):
            write_jpeg(tmp_path / "rig" / cam / f"{i:03d}.jpg", size=(80, 60))
    single = write_jpeg(tmp_path / "single.jpg", make="Canon", model="Canon EOS 80D")
    descriptor = tmp_path / "resources.json"
    descriptor.write_text(
        json.dumps(
            {
                "resources": [
                    [[str(tmp_path / "rig" / "cam0")], [str(tmp_path / "rig" / "cam1")]],
                    str(single),
                ]
            }
        )
    )
    return descriptor


@pytest.mark.e2e
def test_init_image_dir(image_dir: Path, tmp_path: Path):
    out = tmp_path / "out"
    result = runner.invoke(app, ["init", "-i", str(image_dir), "--focal-px", "500", "-o", str(out)])

    assert result.exit_code == 0, result.output
    assert "Camera init report" in result.output
    scene = load_scene(out / "processed" / "sfm_data.json")
    assert len(scene.views) == 3
    assert all(i.focal_px == 500 for i in scene.intrinsics.values())


@pytest.mark.e2e
def test_init_rig_descriptor(rig_descriptor: Path, tmp_path: Path):
    out = tmp_path / "out"
    result = runner.invoke(
        app,
        ["init", "-j", str(rig_descriptor), "--focal-px", "90", "--grouping", "per_folder",
         "-o", str(out)],
    )

    assert result.exit_code == 0, result.output
    scene = load_scene(out / "processed" / "sfm_data.json")
    assert len(scene.views) == 7
    assert scene.rigs[0].n_sub_poses == 2
    rig_views = [v for v in scene.views.values() if v.rig_id == 0]
    assert sorted(v.pose_id for v in rig_views) == [0, 0, 1, 1, 2, 2]
    single = next(v for v in scene.views.values() if v.rig_id is None)
    assert single.pose_id == 3
    assert single.metadata["Make"] == "Canon"
    # per_folder keeps the two rig cameras apart (different folders)
    assert len(scene.intrinsics) == 3


@pytest.mark.e2e
def test_init_k_matrix_and_focal_rejected(image_dir: Path, tmp_path: Path):
    result = runner.invoke(
        app,
        ["init", "-i", str(image_dir), "--focal-px", "500",
         "--k-matrix", "500;0;32;0;500;24;0;0;1", "-o", str(tmp_path / "out")],
    )
    assert result.exit_code == 1
    assert not (tmp_path / "out").exists()


@pytest.mark.e2e
def test_init_without_input_fails(tmp_path: Path):
    result = runner.invoke(app, ["init", "-o", str(tmp_path / "out")])
    assert result.exit_code == 1


@pytest.mark.e2e
def test_init_without_metadata_or_focal_fails(image_dir: Path, tmp_path: Path):
    result = runner.invoke(app, ["init", "-i", str(image_dir), "-o", str(tmp_path / "out")])
    assert result.exit_code == 1
    assert "No metadata in all images" in result.output


def test_unmet_inputs():
    s02 = StepEntry(name="camera_init", module="caminit.steps.s02_camera_init", config_file="c.yaml")
    assert _unmet_inputs(s02) == "groups"
    s02.inputs = {"groups": [[["a.jpg"]]]}
    assert _unmet_inputs(s02) == "-"
    s03 = StepEntry(
        name="group_intrinsics",
        module="caminit.steps.s03_group_intrinsics",
        config_file="c.yaml",
        depends_on=["camera_init"],
    )
    assert _unmet_inputs(s03) == "-"


def test_info(tmp_path: Path):
    config_file = tmp_path / "pipeline.yaml"
    config_file.write_text(
        "project_name: info_test\n"
        f"data_root: {tmp_path / 'data'}\n"
        "steps:\n"
        "  - name: camera_init\n"
        "    module: caminit.steps.s02_camera_init\n"
        "    config_file: c.yaml\n"
    )
    result = runner.invoke(app, ["info", "--config", str(config_file)])
    assert result.exit_code == 0, result.output
