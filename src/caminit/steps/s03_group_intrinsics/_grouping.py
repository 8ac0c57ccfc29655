"""Merge intrinsics that describe the same physical camera."""

from __future__ import annotations

import logging

from caminit.core.contracts import SceneData

logger = logging.getLogger(__name__)


def group_shared_intrinsics(scene: SceneData) -> SceneData:
    """Keep one intrinsic per grouping key and repoint views to it.

    The lowest intrinsic id of each key survives. Only View.intrinsic_id
    changes; running it twice gives the same result.
    """
    survivor_by_key: dict[tuple, int] = {}
    remap: dict[int, int] = {}
    for intrinsic_id in sorted(scene.intrinsics):
        key = scene.intrinsics[intrinsic_id].grouping_key()
        remap[intrinsic_id] = survivor_by_key.setdefault(key, intrinsic_id)

    views = {
        view_id: view.model_copy(
            update={"intrinsic_id": remap.get(view.intrinsic_id, view.intrinsic_id)}
        )
        for view_id, view in scene.views.items()
    }
    intrinsics = {
        intrinsic_id: intrinsic
        for intrinsic_id, intrinsic in scene.intrinsics.items()
        if remap[intrinsic_id] == intrinsic_id
    }

    merged = len(scene.intrinsics) - len(intrinsics)
    if merged:
        logger.info(f"Grouped {len(scene.intrinsics)} intrinsics into {len(intrinsics)}")
    return scene.model_copy(update={"views": views, "intrinsics": intrinsics})
