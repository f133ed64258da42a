"""Fiducial-driven virtual camera tracking service."""

from .config import TrackingConfig
from .controller import TrackingController
from .transforms import PoseFrameConverter, VISION_TO_RENDER_AXIS_SIGNS
from .worker import TrackingWorker

__all__ = [
    "PoseFrameConverter",
    "TrackingConfig",
    "TrackingController",
    "TrackingWorker",
    "VISION_TO_RENDER_AXIS_SIGNS",
]
