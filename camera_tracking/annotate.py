"""Debug overlay for checking marker corner order against the live detector.

With ``debug_points`` every correspondence corner is drawn as a filled circle
colored by its index in correspondence order, so index i of each marker must
show the same color on the same physical corner.
"""

from typing import Optional

import cv2
import numpy as np

from pose_pipeline.pp_types import CameraIntrinsics, Correspondences, Detection, Frame, TrackingState

# RGB, one per corner index; cycled across markers.
POINT_COLORS = (
    (1.0, 0.0, 0.0),
    (0.5, 0.0, 0.0),
    (0.0, 1.0, 0.0),
    (0.0, 0.5, 0.0),
    (0.0, 0.0, 1.0),
    (0.0, 0.0, 0.5),
    (1.0, 1.0, 0.0),
    (0.5, 0.5, 0.0),
    (1.0, 0.0, 1.0),
    (0.5, 0.0, 0.5),
    (0.0, 1.0, 1.0),
    (0.0, 0.5, 0.5),
    (1.0, 1.0, 1.0),
    (0.5, 0.5, 0.5),
)


def point_color_bgr(i: int) -> tuple[float, float, float]:
    r, g, b = POINT_COLORS[i % len(POINT_COLORS)]
    return (b * 255.0, g * 255.0, r * 255.0)


def draw_overlay(
    frame: Frame,
    detections: list[Detection],
    correspondences: Optional[Correspondences],
    intrinsics: Optional[CameraIntrinsics] = None,
    state: Optional[TrackingState] = None,
    debug_points: bool = False,
    axis_length_mm: float = 50.0,
) -> np.ndarray:
    draw = frame.image.copy()
    if draw.ndim == 2:
        draw = cv2.cvtColor(draw, cv2.COLOR_GRAY2BGR)

    h, w = draw.shape[:2]
    txt = f"#{frame.idx} {frame.ts_iso} {w}x{h}"
    cv2.putText(draw, txt, (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 0.8, (255, 255, 255), 2, cv2.LINE_AA)

    if detections:
        ids = np.array([d.marker_id for d in detections], dtype=np.int32).reshape(-1, 1)
        corners = [np.asarray(d.corners, dtype=np.float32).reshape(1, -1, 2) for d in detections]
        cv2.aruco.drawDetectedMarkers(draw, corners, ids)

    if debug_points and correspondences is not None:
        for i, (u, v) in enumerate(correspondences.image_points):
            cv2.circle(draw, (int(u), int(v)), 10, point_color_bgr(i), -1, cv2.LINE_AA)

    if intrinsics is not None and state is not None and state.has_pose:
        # World origin axes from the last solved pose.
        cv2.drawFrameAxes(
            draw,
            intrinsics.camera_matrix,
            intrinsics.dist_coeffs,
            state.rvec,
            state.tvec,
            axis_length_mm,
        )

    return draw
