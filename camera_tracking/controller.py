"""Per-frame tracking: AcquireFrame -> Detect -> BuildCorrespondences -> Solve -> Convert -> Publish.

Every stage failure abandons the frame and keeps the last published
transform. Nothing is retried within a frame; the next tick starts again from
AcquireFrame.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

import cv2

from pose_pipeline.errors import (
    AcquisitionEmpty,
    CorrespondenceMismatch,
    DegeneratePose,
    NoTargets,
    SolveFailed,
    TrackingError,
)
from pose_pipeline.pp_types import (
    CameraIntrinsics,
    CameraTransform,
    Correspondences,
    Detection,
    Frame,
    FrameResult,
    TrackingState,
)
from pose_pipeline.strategies.correspondences import build_correspondences
from pose_pipeline.strategies.preprocess import GrayscaleFrame, PreprocessStrategy
from pose_pipeline.strategies.registry import FiducialRegistry
from pose_pipeline.strategies.solve_pnp import PnPSolver

from .frame_source import FrameSource
from .transforms import PoseFrameConverter

MIN_CORRESPONDENCES = 4

_LOG_LEVELS = {
    AcquisitionEmpty: logging.DEBUG,
    NoTargets: logging.DEBUG,
    CorrespondenceMismatch: logging.ERROR,
    SolveFailed: logging.WARNING,
    DegeneratePose: logging.WARNING,
}


class TrackingController:
    def __init__(
        self,
        source: FrameSource,
        detector,
        registry: FiducialRegistry,
        solver: PnPSolver,
        converter: PoseFrameConverter,
        intrinsics: CameraIntrinsics,
        logger: Optional[logging.Logger] = None,
        preprocess: Optional[PreprocessStrategy] = None,
    ):
        self.source = source
        self.detector = detector
        self.registry = registry
        self.solver = solver
        self.converter = converter
        self.intrinsics = intrinsics
        self.logger = logger or logging.getLogger(__name__)
        self.preprocess = preprocess or GrayscaleFrame()

        self._state = TrackingState()
        self._transform: Optional[CameraTransform] = None
        self._lock = threading.Lock()

        self.last_frame: Optional[Frame] = None
        self.last_detections: list[Detection] = []
        self.last_correspondences: Optional[Correspondences] = None

    @property
    def state(self) -> TrackingState:
        return self._state

    @property
    def transform(self) -> Optional[CameraTransform]:
        """Last published transform; None until the first successful frame."""
        return self._transform

    def reset(self) -> None:
        with self._lock:
            self._state.reset()
            self._transform = None

    def tick(self) -> FrameResult:
        """Run one frame through the whole pipeline."""
        with self._lock:
            frame = self.source.read()
            if frame is None or frame.is_empty():
                self.last_frame = None
                self.last_detections = []
                self.last_correspondences = None
                idx = frame.idx if frame is not None else -1
                return self._skip(idx, AcquisitionEmpty("no frame from source"))
            return self._process(frame)

    def process(self, frame: Frame) -> FrameResult:
        """Run an already acquired frame from Detect onwards."""
        with self._lock:
            if frame.is_empty():
                return self._skip(frame.idx, AcquisitionEmpty("empty image"))
            return self._process(frame)

    def _process(self, frame: Frame) -> FrameResult:
        self.last_frame = frame
        self.last_detections = []
        self.last_correspondences = None
        try:
            transform = self._run_stages(frame)
        except TrackingError as exc:
            return self._skip(frame.idx, exc)

        self._transform = transform
        self.logger.debug(
            "frame=%d published position=%s", frame.idx, transform.position.round(2).tolist()
        )
        return FrameResult(frame.idx, True, None, transform)

    def _run_stages(self, frame: Frame) -> CameraTransform:
        try:
            grey = self.preprocess.apply(frame)
        except cv2.error as exc:
            raise AcquisitionEmpty(f"frame could not be preprocessed: {exc}") from exc
        try:
            detections = self.detector.detect(grey)
        except cv2.error as exc:
            raise NoTargets(f"detector failed: {exc}") from exc
        self.last_detections = list(detections)
        if not detections:
            raise NoTargets("no markers detected")

        corr = build_correspondences(detections, self.registry)
        self.last_correspondences = corr
        if len(corr) < MIN_CORRESPONDENCES:
            raise NoTargets(f"only {len(corr)} correspondences, need {MIN_CORRESPONDENCES}")

        state = self._state
        ok = self.solver.solve(
            corr.world_points,
            corr.image_points,
            self.intrinsics,
            state.rvec,
            state.tvec,
            initial_guess=state.has_pose,
        )
        if not ok:
            raise SolveFailed(f"no valid pose from {len(corr)} correspondences")

        try:
            transform = self.converter.convert(state.rvec, state.tvec, frame.idx, frame.ts_iso)
        except DegeneratePose:
            state.has_pose = False
            raise
        state.has_pose = True
        return transform

    def _skip(self, frame_idx: int, exc: TrackingError) -> FrameResult:
        level = _LOG_LEVELS.get(type(exc), logging.WARNING)
        self.logger.log(level, "frame=%d skipped (%s): %s", frame_idx, type(exc).__name__, exc)
        return FrameResult(frame_idx, False, exc, self._transform)
