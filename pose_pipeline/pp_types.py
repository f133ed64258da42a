from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np


@dataclass
class Frame:
    idx: int
    ts_iso: str
    image: Any  # numpy array

    def is_empty(self) -> bool:
        return self.image is None or getattr(self.image, "size", 0) == 0


@dataclass
class Detection:
    marker_id: int
    corners: Any  # (4,2) ndarray, detector corner order


@dataclass(frozen=True)
class CameraIntrinsics:
    """Camera matrix and distortion coefficients (OpenCV convention)."""

    camera_matrix: np.ndarray  # (3,3)
    dist_coeffs: np.ndarray  # (N,)


@dataclass
class Correspondences:
    world_points: np.ndarray  # (N,3)
    image_points: np.ndarray  # (N,2)
    marker_ids: list[int] = field(default_factory=list)

    def __len__(self) -> int:
        return int(self.image_points.shape[0])


@dataclass
class TrackingState:
    """Solver output buffers, reused frame over frame.

    Owned by a single TrackingController; the solver writes into ``rvec`` and
    ``tvec`` in place.
    """

    rvec: np.ndarray = field(default_factory=lambda: np.zeros((3, 1), dtype=np.float64))
    tvec: np.ndarray = field(default_factory=lambda: np.zeros((3, 1), dtype=np.float64))
    has_pose: bool = False

    def reset(self) -> None:
        self.rvec.fill(0.0)
        self.tvec.fill(0.0)
        self.has_pose = False


@dataclass(frozen=True)
class CameraTransform:
    """World-from-camera transform in the renderer's convention."""

    position: np.ndarray  # (3,)
    rotation: np.ndarray  # (4,) unit quaternion, x y z w
    rotation_matrix: np.ndarray  # (3,3)
    frame_idx: int = 0
    ts_iso: str = ""

    def matrix(self) -> np.ndarray:
        T = np.eye(4)
        T[:3, :3] = self.rotation_matrix
        T[:3, 3] = self.position
        return T


@dataclass
class FrameResult:
    frame_idx: int
    published: bool
    error: Optional[Exception]
    transform: Optional[CameraTransform]

    @property
    def status(self) -> str:
        if self.published:
            return "published"
        return type(self.error).__name__ if self.error is not None else "skipped"
