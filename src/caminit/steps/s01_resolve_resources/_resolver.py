"""Expansion of image folders and JSON descriptors into resource groups.

A resource group is a list of camera slots, each slot an ordered list of
image paths:

    [[img]]                        single image
    [[img0, img1, ...]]            intrinsic group (one camera, several shots)
    [[cam0_0, cam0_1], [cam1_0, cam1_1]]   rig (one slot per camera)
"""

from __future__ import annotations

import json
import logging
from collections.abc import Collection
from pathlib import Path

from caminit.core.errors import ConfigurationError, StructuralError

logger = logging.getLogger(__name__)

ResourceGroup = list[list[str]]


def list_files(path: str | Path, extensions: Collection[str]) -> list[str]:
    """Recursively list the files of a folder (or a single file) matching extensions.

    Non-matching files are ignored. An empty folder, or a path that is neither
    a file nor a folder, raises StructuralError. Folder entries are visited in
    sorted order so the result is reproducible.
    """
    found: list[str] = []
    _collect(Path(path), {e.lower() for e in extensions}, found)
    return found


def _collect(path: Path, extensions: set[str], found: list[str]) -> None:
    if path.is_file():
        if path.suffix.lstrip(".").lower() in extensions:
            found.append(str(path))
    elif path.is_dir():
        entries = sorted(path.iterdir(), key=lambda p: p.name)
        if not entries:
            raise StructuralError(f"Folder '{path}' is empty")
        for entry in entries:
            _collect(entry, extensions, found)
    else:
        raise StructuralError(f"'{path}' is not a valid folder or file path")


def resolve_directory(image_dir: str | Path) -> list[ResourceGroup]:
    """One single-image group per file directly inside image_dir.

    Paths are returned relative to image_dir and sorted. No extension filter
    is applied here; unsupported files are skipped when read.
    """
    image_dir = Path(image_dir)
    if not image_dir.is_dir():
        raise ConfigurationError(f"The input directory '{image_dir}' doesn't exist")
    names = sorted(p.name for p in image_dir.iterdir() if p.is_file())
    if not names:
        raise StructuralError(f"Can't find image paths in '{image_dir}'")
    return [[[name]] for name in names]


def load_descriptor(descriptor_file: str | Path) -> list:
    """Read the 'resources' array of a JSON descriptor."""
    descriptor_file = Path(descriptor_file)
    if not descriptor_file.is_file():
        raise StructuralError(f"File '{descriptor_file}' does not exist")
    try:
        with open(descriptor_file, encoding="utf-8") as f:
            document = json.load(f)
    except (OSError, UnicodeDecodeError) as e:
        raise StructuralError(f"Unable to open '{descriptor_file}': {e}") from e
    except json.JSONDecodeError as e:
        raise StructuralError(f"File '{descriptor_file}' is not in json format: {e}") from e

    if not isinstance(document, dict):
        raise StructuralError(f"File '{descriptor_file}' is not a json object")
    if "resources" not in document:
        raise StructuralError("No member 'resources' in json file")
    resources = document["resources"]
    if not isinstance(resources, list):
        raise StructuralError("Member 'resources' in json file isn't an array")
    return resources


def resolve_descriptor(resources: list, extensions: Collection[str]) -> list[ResourceGroup]:
    """Expand a descriptor's resources into ordered resource groups.

    A string element is a file or folder, expanded into one single-image group
    per matched file. An array element is one group: its strings accumulate
    into a shared-intrinsic slot, each nested array becomes one rig slot.
    """
    groups: list[ResourceGroup] = []
    for index, item in enumerate(resources):
        if isinstance(item, str):
            groups.extend([[path]] for path in list_files(item, extensions))
        elif isinstance(item, list):
            groups.append(_resolve_group(item, extensions, index))
        else:
            raise StructuralError(
                f"resources[{index}] must be a path or an array, got {type(item).__name__}"
            )

    if not groups:
        raise StructuralError("No image paths given")
    check_rig_consistency(groups)
    return groups


def _resolve_group(item: list, extensions: Collection[str], index: int) -> ResourceGroup:
    slots: ResourceGroup = []
    shared: list[str] = []
    for entry in item:
        if isinstance(entry, str):
            shared.extend(list_files(entry, extensions))
        elif isinstance(entry, list):
            camera_paths: list[str] = []
            for value in entry:
                if not isinstance(value, str):
                    raise StructuralError(
                        f"resources[{index}]: rig camera entries must be paths, "
                        f"got {type(value).__name__}"
                    )
                camera_paths.extend(list_files(value, extensions))
            slots.append(camera_paths)
        else:
            raise StructuralError(
                f"resources[{index}]: group entries must be paths or arrays, "
                f"got {type(entry).__name__}"
            )
    if shared:
        slots.append(shared)
    if not any(slots):
        raise StructuralError(f"resources[{index}] doesn't contain any image")
    return slots


def check_rig_consistency(groups: list[ResourceGroup]) -> None:
    """Every camera of a rig must have the same number of images."""
    for index, group in enumerate(groups):
        if len(group) < 2:
            continue
        lengths = [len(slot) for slot in group]
        if len(set(lengths)) != 1:
            raise StructuralError(
                f"Each camera of a rig must have the same number of images "
                f"(group {index}: {lengths})"
            )


def summarize(groups: list[ResourceGroup]) -> dict[str, int]:
    """Count single images, intrinsic groups, rigs and total image paths."""
    counts = {"num_single_images": 0, "num_intrinsic_groups": 0, "num_rigs": 0, "num_images": 0}
    for group in groups:
        if len(group) > 1:
            counts["num_rigs"] += 1
            counts["num_images"] += len(group) * len(group[0])
        elif len(group[0]) > 1:
            counts["num_intrinsic_groups"] += 1
            counts["num_images"] += len(group[0])
        else:
            counts["num_single_images"] += 1
            counts["num_images"] += 1
    return counts
