"""Fiducial-to-pose core: marker registry, correspondences and PnP solving."""

from .errors import (
    AcquisitionEmpty,
    CalibrationLoadFailed,
    CorrespondenceMismatch,
    DegeneratePose,
    NoTargets,
    SolveFailed,
    TrackingError,
)
from .pp_types import CameraIntrinsics, CameraTransform, Detection, Frame, TrackingState
from .strategies.correspondences import build_correspondences
from .strategies.registry import FiducialMarker, FiducialRegistry
from .strategies.solve_pnp import PnPSolver

__all__ = [
    "AcquisitionEmpty",
    "CalibrationLoadFailed",
    "CameraIntrinsics",
    "CameraTransform",
    "CorrespondenceMismatch",
    "DegeneratePose",
    "Detection",
    "FiducialMarker",
    "FiducialRegistry",
    "Frame",
    "NoTargets",
    "PnPSolver",
    "SolveFailed",
    "TrackingError",
    "TrackingState",
    "build_correspondences",
]
