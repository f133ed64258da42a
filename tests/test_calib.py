import json
from pathlib import Path

import cv2
import numpy as np
import pytest

from pose_pipeline.errors import CalibrationLoadFailed, TrackingError
from pose_pipeline.services.calib import load_intrinsics

K = [[917.0, 0.0, 639.5], [0.0, 917.0, 361.3], [0.0, 0.0, 1.0]]


def _write_json(path: Path, data) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_load_json(tmp_path: Path):
    p = _write_json(
        tmp_path / "calib.json",
        {"camera_matrix": K, "distortion_coefficients": [0.1, -0.2, 0.0, 0.0, 0.05], "img_size": [1280, 720]},
    )
    intr = load_intrinsics(p)
    assert intr.camera_matrix.shape == (3, 3)
    assert np.allclose(intr.camera_matrix, K)
    assert np.allclose(intr.dist_coeffs, [0.1, -0.2, 0.0, 0.0, 0.05])


def test_missing_distortion_defaults_to_zeros(tmp_path: Path):
    intr = load_intrinsics(_write_json(tmp_path / "c.json", {"camera_matrix": K}))
    assert np.array_equal(intr.dist_coeffs, np.zeros(5))


def test_bundled_sample_loads():
    root = Path(__file__).resolve().parents[1]
    intr = load_intrinsics(root / "assets" / "calibration.json")
    assert intr.camera_matrix[0, 0] > 0


def test_load_filestorage_yaml(tmp_path: Path):
    p = tmp_path / "calib.yml"
    fs = cv2.FileStorage(str(p), cv2.FILE_STORAGE_WRITE)
    fs.write("camera_matrix", np.array(K))
    fs.write("dist_coeffs", np.array([[0.01, 0.02, 0.0, 0.0]]))
    fs.release()

    intr = load_intrinsics(p)
    assert np.allclose(intr.camera_matrix, K)
    assert intr.dist_coeffs.shape == (4,)


def test_filestorage_without_camera_matrix(tmp_path: Path):
    p = tmp_path / "calib.yml"
    fs = cv2.FileStorage(str(p), cv2.FILE_STORAGE_WRITE)
    fs.write("dist_coeffs", np.zeros((1, 5)))
    fs.release()

    with pytest.raises(CalibrationLoadFailed):
        load_intrinsics(p)


def test_missing_file(tmp_path: Path):
    with pytest.raises(CalibrationLoadFailed, match="not found"):
        load_intrinsics(tmp_path / "nope.json")


def test_invalid_json(tmp_path: Path):
    p = tmp_path / "bad.json"
    p.write_text("{not json", encoding="utf-8")
    with pytest.raises(CalibrationLoadFailed):
        load_intrinsics(p)


@pytest.mark.parametrize(
    "data",
    [
        {},
        {"camera_matrix": [[1, 0], [0, 1]]},
        {"camera_matrix": [[0, 0, 320], [0, 800, 240], [0, 0, 1]]},
        {"camera_matrix": "K"},
        {"camera_matrix": K, "distortion_coefficients": [0.1, 0.2, 0.3]},
        {"camera_matrix": K, "distortion_coefficients": [float("nan")] * 5},
    ],
)
def test_malformed_records_rejected(tmp_path: Path, data):
    with pytest.raises(CalibrationLoadFailed):
        load_intrinsics(_write_json(tmp_path / "c.json", data))


def test_calibration_failure_is_a_tracking_error(tmp_path: Path):
    with pytest.raises(TrackingError):
        load_intrinsics(tmp_path / "missing.yml")
