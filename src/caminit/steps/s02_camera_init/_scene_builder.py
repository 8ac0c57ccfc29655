"""Walk resource groups and build views, intrinsics and rigs.

Identifier rules:
  - one intrinsic id per camera slot, consumed even if no image of the slot
    could be read
  - rig cameras share one pose id per frame index, other views get one pose each
  - view ids are fingerprints of the image, so re-running on the same input
    yields the same ids; a repeated fingerprint is a duplicated image

Header / EXIF reads may run in a thread pool, but results are committed in
input order so ids never depend on scheduling.
"""

from __future__ import annotations

import hashlib
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path, PurePath

from caminit.core.contracts import Rig, SceneData, View
from caminit.core.errors import (
    DimensionMismatchError,
    DuplicateViewError,
    NoUsableIntrinsicError,
    SkippableImageError,
    StructuralError,
    UnknownSensorError,
)
from caminit.utils.image_io import (
    ImageReader,
    MetadataReader,
    PillowImageReader,
    PillowMetadataReader,
)
from caminit.utils.sensor_db import SensorDatabase
from caminit.steps.s01_resolve_resources._resolver import check_rig_consistency
from ._intrinsics import infer_intrinsic
from ._image_metadata import ImageRecord, normalize_metadata, read_image
from .config import CameraInitConfig

logger = logging.getLogger(__name__)


@dataclass
class RunReport:
    """Per-run accumulator filled during the walk, checked once at the end."""

    num_input_images: int = 0
    skipped: list[tuple[str, str]] = field(default_factory=list)
    duplicates: list[str] = field(default_factory=list)
    no_metadata_images: list[str] = field(default_factory=list)
    unknown_sensors: list[tuple[str, str, str]] = field(default_factory=list)
    incomplete_intrinsics: list[int] = field(default_factory=list)

    def add_unknown_sensor(self, path: str, brand: str, model: str) -> None:
        # one entry per camera, not per image
        if all((b, m) != (brand, model) for _, b, m in self.unknown_sensors):
            self.unknown_sensors.append((path, brand, model))


def compute_view_id(record: ImageRecord) -> int:
    """Stable 31-bit fingerprint of an image.

    Uses the camera identity and capture time when EXIF has them, so the same
    shot listed twice is detected; otherwise the normalised path.
    """
    raw = record.exif
    if raw.has_exif and raw.date_time_original:
        parts = [
            raw.make,
            raw.model,
            raw.serial_number,
            raw.lens_serial_number,
            raw.date_time_original,
            raw.subsec_time_original,
            PurePath(record.path).name,
        ]
    else:
        parts = [PurePath(record.path).as_posix()]
    parts += [str(record.width), str(record.height)]
    digest = hashlib.blake2b("\x1f".join(parts).encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, "big") & 0x7FFFFFFF


class SceneGraphBuilder:
    """Builds a SceneData from resolved resource groups."""

    def __init__(
        self,
        config: CameraInitConfig,
        sensor_db: SensorDatabase | None = None,
        image_reader: ImageReader | None = None,
        metadata_reader: MetadataReader | None = None,
    ):
        self.config = config
        self.sensor_db = sensor_db or SensorDatabase()
        self.image_reader = image_reader or PillowImageReader()
        self.metadata_reader = metadata_reader or PillowMetadataReader()

    def _abs_path(self, path: str, root_path: str) -> Path:
        return Path(root_path) / path if root_path else Path(path)

    def _read(self, task: tuple[str, Path]) -> ImageRecord | SkippableImageError:
        path, abs_path = task
        try:
            return read_image(path, abs_path, self.image_reader, self.metadata_reader)
        except SkippableImageError as e:
            # committed (and logged) later, in input order
            return e

    def read_all(
        self, groups: list[list[list[str]]], root_path: str = ""
    ) -> list[ImageRecord | SkippableImageError]:
        """Read every image of the tree, results in walk order."""
        tasks = [
            (path, self._abs_path(path, root_path))
            for group in groups
            for slot in group
            for path in slot
        ]
        if self.config.num_workers > 1 and len(tasks) > 1:
            with ThreadPoolExecutor(max_workers=self.config.num_workers) as executor:
                return list(executor.map(self._read, tasks))
        return [self._read(task) for task in tasks]

    def build(
        self,
        groups: list[list[list[str]]],
        root_path: str = "",
        report: RunReport | None = None,
    ) -> SceneData:
        check_rig_consistency(groups)
        report = report if report is not None else RunReport()
        scene = SceneData(root_path=root_path)
        records = iter(self.read_all(groups, root_path))

        rig_id = 0
        pose_id = 0
        intrinsic_id = 0
        total = sum(len(slot) for group in groups for slot in group)
        report.num_input_images = total
        n_done = 0

        for group_index, group in enumerate(groups):
            n_cameras = len(group)
            is_rig = n_cameras > 1
            rig_size: tuple[int, int] | None = None
            if is_rig:
                scene.rigs[rig_id] = Rig(n_sub_poses=n_cameras)

            for camera_index, slot in enumerate(group):
                # intrinsics and metadata are assumed constant over a slot
                slot_intrinsic_id = intrinsic_id
                intrinsic_id += 1
                slot_size: tuple[int, int] | None = None
                slot_exif: dict[str, str] = {}

                for frame_index, path in enumerate(slot):
                    record = next(records)
                    n_done += 1
                    if is_rig:
                        logger.debug(
                            f"[{n_done}/{total}] rig [{camera_index + 1}/{n_cameras}] file: '{path}'"
                        )
                    else:
                        logger.debug(f"[{n_done}/{total}] image file: '{path}'")

                    if isinstance(record, SkippableImageError):
                        logger.warning(f"{record}. Skip image.")
                        report.skipped.append((path, record.reason))
                        continue

                    size = (record.width, record.height)
                    if is_rig:
                        if rig_size is None:
                            rig_size = size
                        elif size != rig_size:
                            raise StructuralError(
                                f"Rig camera images don't have the same dimensions: "
                                f"'{path}' is {size[0]}x{size[1]}, expected {rig_size[0]}x{rig_size[1]}"
                            )

                    if slot_size is None:
                        slot_size = size
                        slot_exif = self._init_intrinsic(
                            scene, report, record, slot_intrinsic_id, group_index, camera_index
                        )
                    elif size != slot_size:
                        # only reachable outside rigs: the slot intrinsic can't describe it
                        mismatch = DimensionMismatchError(
                            path,
                            f"{size[0]}x{size[1]}, camera is {slot_size[0]}x{slot_size[1]}",
                        )
                        logger.warning(f"{mismatch}. Skip image.")
                        report.skipped.append((path, mismatch.reason))
                        continue

                    view_id = compute_view_id(record)
                    if view_id in scene.views:
                        dup = DuplicateViewError(path, f"id {view_id}")
                        logger.warning(f"{dup}, duplicated image in input. Skip image.")
                        report.duplicates.append(path)
                        continue

                    scene.views[view_id] = View(
                        view_id=view_id,
                        intrinsic_id=slot_intrinsic_id,
                        pose_id=pose_id + frame_index if is_rig else pose_id,
                        width=record.width,
                        height=record.height,
                        path=path,
                        metadata=dict(slot_exif),
                        rig_id=rig_id if is_rig else None,
                        sub_pose_id=camera_index if is_rig else None,
                    )
                    if not is_rig:
                        pose_id += 1

            if is_rig:
                rig_id += 1
                # one pose for all cameras at a given time
                pose_id += len(group[0])

        return scene

    def _init_intrinsic(
        self,
        scene: SceneData,
        report: RunReport,
        record: ImageRecord,
        intrinsic_id: int,
        group_index: int,
        camera_index: int,
    ) -> dict[str, str]:
        """Infer the slot's intrinsic from its first image. Returns the slot metadata."""
        metadata = normalize_metadata(record)
        decision = infer_intrinsic(
            metadata,
            self.config,
            self.sensor_db,
            group_index=group_index,
            camera_index=camera_index,
        )

        if decision.unknown_sensor:
            report.add_unknown_sensor(record.path, metadata.brand, metadata.model)
        if not metadata.has_valid_metadata:
            report.no_metadata_images.append(record.path)
        if not decision.complete:
            report.incomplete_intrinsics.append(intrinsic_id)

        scene.intrinsics[intrinsic_id] = decision.to_intrinsic(record.width, record.height)

        exif = dict(metadata.exif)
        if decision.sensor_width_mm > 0:
            exif["sensor_width"] = str(decision.sensor_width_mm)
        return exif


def finalize_report(scene: SceneData, report: RunReport) -> int:
    """Run the end-of-walk checks. Returns the number of views without usable intrinsic.

    Raises UnknownSensorError or NoUsableIntrinsicError; nothing has been
    written at this point.
    """
    if report.no_metadata_images:
        logger.warning(
            "No metadata in image(s):\n"
            + "\n".join(f"  - '{p}'" for p in report.no_metadata_images)
        )

    if report.unknown_sensors:
        raise UnknownSensorError(report.unknown_sensors)

    views_without_intrinsic = sum(
        1 for view in scene.views.values()
        if view.intrinsic_id not in scene.intrinsics
        or not scene.intrinsics[view.intrinsic_id].is_complete
    )

    logger.info(
        f"Camera init report: {report.num_input_images} input image path(s), "
        f"{len(scene.views)} view(s), {views_without_intrinsic} view(s) without intrinsic, "
        f"{len(scene.intrinsics)} intrinsic(s), {len(scene.rigs)} rig(s), "
        f"{len(report.skipped) + len(report.duplicates)} skipped"
    )

    if not scene.views:
        raise NoUsableIntrinsicError("No image could be read, the scene would be empty")
    if views_without_intrinsic == len(scene.views):
        raise NoUsableIntrinsicError("No metadata in all images, no view has a usable intrinsic")
    if views_without_intrinsic > 0:
        logger.warning(
            f"{views_without_intrinsic} view(s) without metadata. It may fail the reconstruction."
        )
    return views_without_intrinsic
