import logging
from typing import Sequence

import numpy as np

from ..errors import CorrespondenceMismatch, NoTargets
from ..pp_types import Correspondences, Detection
from .registry import FiducialRegistry

logger = logging.getLogger(__name__)


def build_correspondences(
    detections: Sequence[Detection], registry: FiducialRegistry
) -> Correspondences:
    """Match detected 2D corners to registered 3D corners, in detection order.

    Unknown markers are dropped before flattening so the two point lists stay
    index-aligned.
    """
    if not detections:
        raise NoTargets("no markers detected")

    known = [d for d in detections if d.marker_id in registry]
    if len(known) < len(detections):
        dropped = sorted({int(d.marker_id) for d in detections if d.marker_id not in registry})
        logger.debug("ignoring unregistered markers: %s", dropped)
    if not known:
        raise NoTargets("no registered markers detected")

    corners = []
    for d in known:
        c = np.asarray(d.corners, dtype=np.float64)
        if c.size % 2 != 0:
            raise CorrespondenceMismatch(
                f"marker {int(d.marker_id)} corners have shape {c.shape}, expected 2D points"
            )
        corners.append(c.reshape(-1, 2))
    image_points = np.concatenate(corners)
    world_points = np.concatenate([registry.corners_for(d.marker_id) for d in known])

    if image_points.shape[0] != world_points.shape[0]:
        raise CorrespondenceMismatch(
            f"{world_points.shape[0]} world corners vs {image_points.shape[0]} detected corners"
        )

    return Correspondences(
        world_points=world_points,
        image_points=image_points,
        marker_ids=[int(d.marker_id) for d in known],
    )
