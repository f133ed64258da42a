"""Tracking failure kinds.

Every per-frame kind is recovered by the controller: it logs and keeps the
last published transform. ``CalibrationLoadFailed`` is raised only at startup
and is fatal.
"""


class TrackingError(RuntimeError):
    pass


class AcquisitionEmpty(TrackingError):
    """The frame source produced no frame or an empty image."""


class NoTargets(TrackingError):
    """No registered marker is visible in the frame."""


class CorrespondenceMismatch(TrackingError):
    """2D and 3D point counts disagree; points to a detector or registry bug."""


class SolveFailed(TrackingError):
    """The pose solver raised or found no valid pose."""


class DegeneratePose(TrackingError):
    """The solved rotation is not a proper rotation (reflection or skew)."""


class CalibrationLoadFailed(TrackingError):
    """Calibration data is missing or malformed."""
