"""SE(3) transformation utilities and the vision-to-render pose conversion."""

from typing import Sequence, Tuple

import numpy as np
import cv2
from scipy.spatial.transform import Rotation

from pose_pipeline.errors import DegeneratePose
from pose_pipeline.pp_types import CameraTransform

# OpenCV's vision frame has y pointing down; the renderer is Y-up. Only the
# vertical axis changes sign, for the position and the orientation alike.
VISION_TO_RENDER_AXIS_SIGNS: Tuple[float, float, float] = (1.0, -1.0, 1.0)

ROTATION_TOLERANCE = 1e-6


def rvec_tvec_to_matrix(rvec: np.ndarray, tvec: np.ndarray) -> np.ndarray:
    """
    Convert rotation vector and translation vector to 4x4 transformation matrix.

    Args:
        rvec: Rotation vector (3,) or (3,1)
        tvec: Translation vector (3,) or (3,1)

    Returns:
        4x4 homogeneous transformation matrix
    """
    rvec = np.array(rvec, dtype=np.float64).reshape(3)
    tvec = np.array(tvec, dtype=np.float64).reshape(3)

    R, _ = cv2.Rodrigues(rvec)

    T = np.eye(4)
    T[:3, :3] = R
    T[:3, 3] = tvec
    return T


def matrix_to_rvec_tvec(T: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Convert 4x4 transformation matrix to rotation vector and translation vector.

    Returns:
        (rvec, tvec) as (3,) arrays
    """
    R = np.asarray(T[:3, :3], dtype=np.float64)
    rvec, _ = cv2.Rodrigues(R)
    return rvec.reshape(3), np.asarray(T[:3, 3], dtype=np.float64).reshape(3)


def invert_transform(T: np.ndarray) -> np.ndarray:
    """
    Invert a 4x4 homogeneous transformation matrix.

    For SE(3): T^-1 = [R^T, -R^T * t; 0, 1]
    """
    R_inv, t_inv = invert_pose(T[:3, :3], T[:3, 3])
    T_inv = np.eye(4)
    T_inv[:3, :3] = R_inv
    T_inv[:3, 3] = t_inv
    return T_inv


def invert_pose(R: np.ndarray, t: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Invert a rigid pose: (R, t) -> (R^T, -R^T t). Only valid for orthogonal R."""
    R = np.asarray(R, dtype=np.float64).reshape(3, 3)
    t = np.asarray(t, dtype=np.float64).reshape(3)
    R_T = R.T
    return R_T, -R_T @ t


def validate_rotation(R: np.ndarray, tol: float = ROTATION_TOLERANCE) -> None:
    """Raise DegeneratePose unless R is orthogonal with determinant +1."""
    R = np.asarray(R, dtype=np.float64)
    if R.shape != (3, 3) or not np.all(np.isfinite(R)):
        raise DegeneratePose(f"rotation must be a finite 3x3 matrix, got shape {R.shape}")
    ortho_err = float(np.max(np.abs(R.T @ R - np.eye(3))))
    if ortho_err > tol:
        raise DegeneratePose(f"rotation is not orthogonal (max |R^T R - I| = {ortho_err:.3g})")
    det = float(np.linalg.det(R))
    if abs(det - 1.0) > tol:
        raise DegeneratePose(f"rotation determinant is {det:.6f}, expected +1")


def check_axis_signs(signs: Sequence[float]) -> Tuple[float, float, float]:
    out = tuple(float(s) for s in signs)
    if len(out) != 3 or any(s not in (1.0, -1.0) for s in out):
        raise ValueError(f"axis signs must be three values of +1 or -1, got {list(signs)}")
    return out  # type: ignore[return-value]


class PoseFrameConverter:
    """
    Camera-from-world solver pose -> world-from-camera CameraTransform in the
    renderer's convention.

    A world point p maps into the camera as R p + t. The camera's world pose is
    the inverse (R^T, -R^T t); its position is then multiplied component-wise
    by ``axis_signs``. The orientation is R^T expressed in the same flipped
    frame, S R^T S with S = diag(axis_signs), which stays a proper rotation.
    """

    def __init__(
        self,
        axis_signs: Sequence[float] = VISION_TO_RENDER_AXIS_SIGNS,
        tolerance: float = ROTATION_TOLERANCE,
    ):
        self.axis_signs = np.array(check_axis_signs(axis_signs), dtype=np.float64)
        self.tolerance = float(tolerance)

    def convert(
        self,
        rvec: np.ndarray,
        tvec: np.ndarray,
        frame_idx: int = 0,
        ts_iso: str = "",
    ) -> CameraTransform:
        R, _ = cv2.Rodrigues(np.asarray(rvec, dtype=np.float64).reshape(3, 1))
        return self.convert_matrix(R, tvec, frame_idx, ts_iso)

    def convert_matrix(
        self,
        R: np.ndarray,
        tvec: np.ndarray,
        frame_idx: int = 0,
        ts_iso: str = "",
    ) -> CameraTransform:
        validate_rotation(R, self.tolerance)
        R_inv, t_inv = invert_pose(R, tvec)
        S = np.diag(self.axis_signs)
        position = self.axis_signs * t_inv
        R_render = S @ R_inv @ S
        quat = Rotation.from_matrix(R_render).as_quat()
        return CameraTransform(
            position=position,
            rotation=quat,
            rotation_matrix=R_render,
            frame_idx=int(frame_idx),
            ts_iso=ts_iso,
        )
