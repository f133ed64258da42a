import numpy as np

from camera_tracking.annotate import POINT_COLORS, draw_overlay, point_color_bgr
from pose_pipeline.pp_types import Frame, TrackingState
from pose_pipeline.strategies.correspondences import build_correspondences


def test_point_colors_cycle_and_are_bgr():
    assert len(POINT_COLORS) == 14
    assert point_color_bgr(0) == (0.0, 0.0, 255.0)
    assert point_color_bgr(14) == point_color_bgr(0)


def test_overlay_draws_on_a_copy(intrinsics, registry, gt_pose, project):
    rvec, tvec = gt_pose
    dets = project(registry, [1, 2], rvec, tvec)
    corr = build_correspondences(dets, registry)
    frame = Frame(7, "2024-01-01T00:00:00", np.zeros((480, 640), dtype=np.uint8))
    state = TrackingState(rvec=rvec.copy(), tvec=tvec.copy(), has_pose=True)

    out = draw_overlay(frame, dets, corr, intrinsics, state, debug_points=True)

    assert out.shape == (480, 640, 3)
    assert out.any()
    assert not frame.image.any()


def test_debug_point_uses_index_color(intrinsics, registry, gt_pose, project):
    rvec, tvec = gt_pose
    dets = project(registry, [1], rvec, tvec)
    corr = build_correspondences(dets, registry)
    frame = Frame(1, "", np.zeros((480, 640, 3), dtype=np.uint8))

    out = draw_overlay(frame, [], corr, debug_points=True)

    u, v = corr.image_points[2].astype(int)
    assert tuple(out[v, u]) == tuple(int(c) for c in point_color_bgr(2))
