import cv2
import numpy as np
import pytest

from pose_pipeline.pp_types import Frame
from pose_pipeline.strategies.detect_aruco import ArucoDetect, RefineConfig, get_dict
from pose_pipeline.strategies.preprocess import GrayscaleFrame


def _marker_frame(dict_name, marker_id, size=200, border=50):
    marker = cv2.aruco.generateImageMarker(get_dict(dict_name), marker_id, size)
    img = cv2.copyMakeBorder(marker, border, border, border, border, cv2.BORDER_CONSTANT, value=255)
    return Frame(1, "", img)


def test_detects_marker_with_corners_top_left_clockwise():
    frame = _marker_frame("4x4_50", 1)

    dets = ArucoDetect("4x4_50").detect(frame)

    assert [d.marker_id for d in dets] == [1]
    corners = dets[0].corners
    assert corners.shape == (4, 2)
    assert corners.dtype == np.float64
    expected = np.array([[50, 50], [250, 50], [250, 250], [50, 250]], dtype=np.float64)
    assert np.allclose(corners, expected, atol=3.0)


def test_detects_default_apriltag_dictionary():
    frame = _marker_frame("apriltag_25h9", 3, size=180)
    dets = ArucoDetect().detect(frame)
    assert [d.marker_id for d in dets] == [3]


def test_blank_frame_has_no_detections():
    frame = Frame(1, "", np.full((240, 320), 255, dtype=np.uint8))
    assert ArucoDetect("4x4_50").detect(frame) == []


def test_color_frame_goes_through_grayscale():
    grey = _marker_frame("4x4_50", 2)
    color = Frame(grey.idx, grey.ts_iso, cv2.cvtColor(grey.image, cv2.COLOR_GRAY2BGR))

    out = GrayscaleFrame().apply(color)

    assert out.image.ndim == 2
    assert [d.marker_id for d in ArucoDetect("4x4_50").detect(out)] == [2]
    assert GrayscaleFrame().apply(grey) is grey


@pytest.mark.parametrize("name", ["4x4_50", "DICT_4X4_50", "apriltag_36h11", " AprilTag_25h9 "])
def test_get_dict_accepts_names(name):
    assert get_dict(name) is not None


def test_get_dict_rejects_unknown():
    with pytest.raises(ValueError):
        get_dict("9x9_1000")


def test_custom_refine_parameters_accepted():
    det = ArucoDetect("4x4_50", RefineConfig(min_rep_distance=5.0, error_correction_rate=1.0, check_all_orders=False))
    assert det.detect(_marker_frame("4x4_50", 4))[0].marker_id == 4
