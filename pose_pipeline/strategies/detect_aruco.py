from dataclasses import dataclass

import cv2
import numpy as np

from ..pp_types import Frame, Detection


@dataclass(frozen=True)
class RefineConfig:
    min_rep_distance: float = 10.0
    error_correction_rate: float = 3.0
    check_all_orders: bool = True


def get_dict(name: str):
    """
    Resolve an ArUco / AprilTag dictionary by name ("4x4_50", "apriltag_25h9", ...).
    A "DICT_" prefix is accepted. Unknown names raise ValueError.
    """
    key = (name or "").strip().lower()
    if key.startswith("dict_"):
        key = key[5:]
    table = {
        "4x4_50":  cv2.aruco.DICT_4X4_50,
        "4x4_100": cv2.aruco.DICT_4X4_100,
        "4x4_250": cv2.aruco.DICT_4X4_250,
        "5x5_50":  cv2.aruco.DICT_5X5_50,
        "5x5_100": cv2.aruco.DICT_5X5_100,
        "6x6_50":  cv2.aruco.DICT_6X6_50,
        "6x6_100": cv2.aruco.DICT_6X6_100,
        "7x7_50":  cv2.aruco.DICT_7X7_50,
        "7x7_100": cv2.aruco.DICT_7X7_100,
        "apriltag_16h5":  cv2.aruco.DICT_APRILTAG_16h5,
        "apriltag_25h9":  cv2.aruco.DICT_APRILTAG_25h9,
        "apriltag_36h10": cv2.aruco.DICT_APRILTAG_36h10,
        "apriltag_36h11": cv2.aruco.DICT_APRILTAG_36h11,
    }
    if key not in table:
        raise ValueError(f"Unknown marker dictionary: {name!r}")
    return cv2.aruco.getPredefinedDictionary(table[key])


class ArucoDetect:
    """
    Collaborator: find markers in a (greyscale) frame.
    Returns list[Detection] with corners as (4,2) float arrays in OpenCV's
    documented order: top-left, top-right, bottom-right, bottom-left.
    """
    def __init__(self, dict_name: str = "apriltag_25h9", refine: RefineConfig = RefineConfig()):
        self.dictionary = get_dict(dict_name)
        self.params = cv2.aruco.DetectorParameters()
        self.refine = cv2.aruco.RefineParameters(
            refine.min_rep_distance, refine.error_correction_rate, refine.check_all_orders
        )
        self._detector = cv2.aruco.ArucoDetector(self.dictionary, self.params, self.refine)

    def detect(self, f: Frame) -> list[Detection]:
        corners, ids, _rej = self._detector.detectMarkers(f.image)

        dets: list[Detection] = []
        if ids is not None and len(ids) > 0:
            for i, mid in enumerate(np.asarray(ids).flatten()):
                dets.append(Detection(int(mid), np.asarray(corners[i], dtype=np.float64).reshape(-1, 2)))
        return dets
