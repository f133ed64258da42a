import cv2
import numpy as np
import pytest

from pose_pipeline.pp_types import CameraIntrinsics, Detection
from pose_pipeline.strategies.registry import FiducialRegistry


# Camera on the printed side of the markers (world y < 0) looking along +y,
# image right = world +x, image down = world -z.
FACING_R = np.array(
    [
        [1.0, 0.0, 0.0],
        [0.0, 0.0, -1.0],
        [0.0, 1.0, 0.0],
    ]
)


@pytest.fixture
def intrinsics():
    K = np.array([[800.0, 0.0, 320.0], [0.0, 800.0, 240.0], [0.0, 0.0, 1.0]])
    return CameraIntrinsics(camera_matrix=K, dist_coeffs=np.zeros(5))


@pytest.fixture
def registry():
    return FiducialRegistry()


@pytest.fixture
def gt_pose():
    """Ground-truth camera-from-world pose (rvec, tvec), slightly tilted."""
    R_tilt, _ = cv2.Rodrigues(np.array([0.2, -0.1, 0.05]))
    R = R_tilt @ FACING_R
    rvec, _ = cv2.Rodrigues(R)
    tvec = np.array([[140.0], [10.0], [620.0]])
    return rvec, tvec


@pytest.fixture
def project(intrinsics):
    """Build noiseless detections by projecting registry corners."""

    def _project(registry, marker_ids, rvec, tvec):
        dets = []
        for mid in marker_ids:
            corners3d = registry.corners_for(mid)
            pts, _ = cv2.projectPoints(
                corners3d, rvec, tvec, intrinsics.camera_matrix, intrinsics.dist_coeffs
            )
            dets.append(Detection(int(mid), pts.reshape(4, 2)))
        return dets

    return _project
