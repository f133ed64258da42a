"""Known fiducial geometry.

World frame: markers lie flat in the plane y = 0, x grows to the right of
the reference axis, and a marker's top edge points toward +z. All lengths are
millimeters.

Corner order follows the OpenCV ArUco detector: top-left, top-right,
bottom-right, bottom-left (clockwise, seen facing the printed side). Index i
of ``corners_for`` must match index i of every detection's corners.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np

# Physical side length of every marker, in mm.
FIDUCIAL_SIZE_MM = 82.5


@dataclass(frozen=True)
class FiducialMarker:
    marker_id: int
    x_offset_mm: float  # center offset from the reference axis, rightward positive


DEFAULT_MARKERS: tuple[FiducialMarker, ...] = (
    FiducialMarker(0, -105.0 - 280.0 - FIDUCIAL_SIZE_MM / 2.0),
    FiducialMarker(1, -105.0 - FIDUCIAL_SIZE_MM / 2.0),
    FiducialMarker(2, 105.0 + FIDUCIAL_SIZE_MM / 2.0),
    FiducialMarker(3, 105.0 + 280.0 + FIDUCIAL_SIZE_MM / 2.0),
)


def marker_corners(x_offset_mm: float, size_mm: float) -> np.ndarray:
    """4 world corners of a marker centered at (x_offset_mm, 0, 0)."""
    h = 0.5 * float(size_mm)
    x = float(x_offset_mm)
    return np.array(
        [
            [x - h, 0.0, h],  # top-left
            [x + h, 0.0, h],  # top-right
            [x + h, 0.0, -h],  # bottom-right
            [x - h, 0.0, -h],  # bottom-left
        ],
        dtype=np.float64,
    )


class FiducialRegistry:
    def __init__(
        self,
        markers: Iterable[FiducialMarker] = DEFAULT_MARKERS,
        marker_size_mm: float = FIDUCIAL_SIZE_MM,
    ):
        size = float(marker_size_mm)
        if not math.isfinite(size) or size <= 0:
            raise ValueError(f"marker_size_mm must be positive, got {marker_size_mm}")
        self.marker_size_mm = size
        self.markers = tuple(markers)

        self._corners: dict[int, np.ndarray] = {}
        for m in self.markers:
            mid = int(m.marker_id)
            if mid in self._corners:
                raise ValueError(f"Duplicate marker id in registry: {mid}")
            corners = marker_corners(m.x_offset_mm, size)
            corners.setflags(write=False)
            self._corners[mid] = corners

    def corners_for(self, marker_id: int) -> Optional[np.ndarray]:
        """World corners for ``marker_id`` or None if the marker is not registered."""
        return self._corners.get(int(marker_id))

    @property
    def ids(self) -> list[int]:
        return list(self._corners)

    def __contains__(self, marker_id: object) -> bool:
        try:
            return int(marker_id) in self._corners  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return False

    def __len__(self) -> int:
        return len(self._corners)
