"""I/O utilities: scene dataset JSON store."""

from __future__ import annotations

import logging
from pathlib import Path

from caminit.core.contracts import SceneData

logger = logging.getLogger(__name__)


def save_scene(scene: SceneData, path: Path) -> bool:
    """Write views, intrinsics and rigs as JSON. Returns False on I/O failure."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(scene.model_dump_json(indent=2), encoding="utf-8")
    except OSError as e:
        logger.error(f"Cannot write scene file {path}: {e}")
        return False
    logger.info(
        f"Saved {len(scene.views)} views, {len(scene.intrinsics)} intrinsics, "
        f"{len(scene.rigs)} rigs to {path}"
    )
    return True


def load_scene(path: Path) -> SceneData:
    """Read a scene file written by save_scene."""
    return SceneData.model_validate_json(Path(path).read_text(encoding="utf-8"))
