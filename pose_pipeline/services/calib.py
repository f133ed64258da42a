"""Camera calibration loading.

Two on-disk formats are accepted:

* ``.json`` records as written by the calibration tool::

      {"camera": "...", "camera_matrix": [[fx, 0, cx], [0, fy, cy], [0, 0, 1]],
       "distortion_coefficients": [k1, k2, p1, p2, k3], "img_size": [w, h], ...}

* OpenCV ``FileStorage`` files (``.yml``, ``.yaml``, ``.xml``) with
  ``camera_matrix`` and ``dist_coeffs`` nodes.

Anything missing or malformed raises CalibrationLoadFailed; tracking cannot
start without intrinsics.
"""

import json
from pathlib import Path
from typing import Any

import cv2
import numpy as np

from ..errors import CalibrationLoadFailed
from ..pp_types import CameraIntrinsics


def _camera_matrix(raw: Any) -> np.ndarray:
    try:
        K = np.asarray(raw, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise CalibrationLoadFailed(f"camera_matrix is not numeric: {exc}") from exc
    if K.shape != (3, 3):
        raise CalibrationLoadFailed(f"camera_matrix must be 3x3, got shape {K.shape}")
    if not np.all(np.isfinite(K)) or K[0, 0] <= 0 or K[1, 1] <= 0:
        raise CalibrationLoadFailed("camera_matrix must be finite with positive focal lengths")
    return K


def _dist_coeffs(raw: Any) -> np.ndarray:
    if raw is None:
        return np.zeros(5, dtype=np.float64)
    try:
        dist = np.asarray(raw, dtype=np.float64).reshape(-1)
    except (TypeError, ValueError) as exc:
        raise CalibrationLoadFailed(f"distortion coefficients are not numeric: {exc}") from exc
    if dist.size not in (0, 4, 5, 8, 12, 14):
        raise CalibrationLoadFailed(f"unsupported number of distortion coefficients: {dist.size}")
    if not np.all(np.isfinite(dist)):
        raise CalibrationLoadFailed("distortion coefficients must be finite")
    return dist


def _read_json(path: Path) -> tuple[Any, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise CalibrationLoadFailed(f"cannot read calibration JSON {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise CalibrationLoadFailed("calibration JSON root must be an object")
    if "camera_matrix" not in data:
        raise CalibrationLoadFailed(f"{path} has no camera_matrix")
    return data["camera_matrix"], data.get("distortion_coefficients")


def _read_filestorage(path: Path) -> tuple[Any, Any]:
    try:
        fs = cv2.FileStorage(str(path), cv2.FILE_STORAGE_READ)
    except cv2.error as exc:
        raise CalibrationLoadFailed(f"cannot parse calibration file {path}: {exc}") from exc
    try:
        if not fs.isOpened():
            raise CalibrationLoadFailed(f"cannot open calibration file {path}")
        k_node = fs.getNode("camera_matrix")
        if k_node.empty():
            raise CalibrationLoadFailed(f"{path} has no camera_matrix node")
        K = k_node.mat()
        d_node = fs.getNode("dist_coeffs")
        dist = None if d_node.empty() else d_node.mat()
    finally:
        fs.release()
    if K is None:
        raise CalibrationLoadFailed(f"{path} camera_matrix is not a matrix")
    return K, dist


def load_intrinsics(path) -> CameraIntrinsics:
    p = Path(path)
    if not p.is_file():
        raise CalibrationLoadFailed(f"calibration file not found: {p}")

    if p.suffix.lower() == ".json":
        K_raw, dist_raw = _read_json(p)
    else:
        K_raw, dist_raw = _read_filestorage(p)

    return CameraIntrinsics(camera_matrix=_camera_matrix(K_raw), dist_coeffs=_dist_coeffs(dist_raw))
