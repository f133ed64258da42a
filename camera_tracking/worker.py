from __future__ import annotations

import logging
import threading
import time
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from pose_pipeline.pp_types import CameraIntrinsics
from pose_pipeline.services.calib import load_intrinsics
from pose_pipeline.services.storage import SessionStorage
from pose_pipeline.strategies.detect_aruco import ArucoDetect
from pose_pipeline.strategies.registry import FiducialRegistry
from pose_pipeline.strategies.solve_pnp import PnPSolver

from .annotate import draw_overlay
from .config import TrackingConfig
from .controller import TrackingController
from .frame_source import DeviceCameraSource, FrameSource, SyntheticSource, VideoFileSource
from .logging_utils import add_file_handler, remove_file_handler, setup_logger
from .output import CsvOutput, OutputSink, StreamOutput
from .transforms import PoseFrameConverter


@dataclass
class SessionSummary:
    session_path: str
    frames_processed: int
    transforms_published: int
    csv_path: str
    log_path: str
    avg_fps: float
    errors: dict[str, int] = field(default_factory=dict)


class TrackingWorker:
    def __init__(
        self,
        config: TrackingConfig,
        logger: Optional[logging.Logger] = None,
        outputs: Optional[list[OutputSink]] = None,
        source: Optional[FrameSource] = None,
        detector=None,
        solver: Optional[PnPSolver] = None,
        intrinsics: Optional[CameraIntrinsics] = None,
    ):
        self.config = config
        self.logger = logger or setup_logger(config.camera_name)

        if outputs is None:
            outputs = [CsvOutput()]
            if config.stdout:
                outputs.append(StreamOutput())
        self.outputs = outputs

        self.source = source
        self.detector = detector
        self.solver = solver
        self.intrinsics = intrinsics
        self.controller: Optional[TrackingController] = None
        self._stop_event = threading.Event()

    def stop(self) -> None:
        self._stop_event.set()

    def _build_source(self) -> FrameSource:
        if self.source is not None:
            return self.source
        if self.config.dry_run:
            return SyntheticSource(self.config.fps, self.config.width, self.config.height)
        if self.config.source.type == "video_file":
            return VideoFileSource(str(self.config.source.path))
        return DeviceCameraSource(
            self.config.device,
            self.config.fps,
            self.config.width,
            self.config.height,
        )

    def _build_controller(self, intrinsics: CameraIntrinsics) -> TrackingController:
        cfg = self.config
        registry = FiducialRegistry(cfg.markers, cfg.marker_size_mm)
        solver = self.solver or PnPSolver(
            method=cfg.solver.method,
            use_extrinsic_guess=cfg.solver.use_extrinsic_guess,
            ransac_reprojection_error=cfg.solver.ransac_reprojection_error,
            ransac_iterations=cfg.solver.ransac_iterations,
            ransac_confidence=cfg.solver.ransac_confidence,
        )
        detector = self.detector or ArucoDetect(cfg.aruco_dict, cfg.refine)
        converter = PoseFrameConverter(cfg.render_axis_signs, cfg.rotation_tolerance)
        return TrackingController(
            self._build_source(),
            detector,
            registry,
            solver,
            converter,
            intrinsics,
            logger=self.logger,
        )

    def _finished(self, t0: float, frames: int) -> bool:
        if self._stop_event.is_set():
            return True
        if self.config.duration_sec and (time.time() - t0) >= self.config.duration_sec:
            return True
        if self.config.max_frames and frames >= self.config.max_frames:
            return True
        source = self.controller.source if self.controller is not None else None
        return bool(getattr(source, "exhausted", False))

    def run(self) -> SessionSummary:
        # Fatal before anything is created: no tracking without intrinsics.
        intrinsics = self.intrinsics or load_intrinsics(self.config.calibration_path)
        self.controller = controller = self._build_controller(intrinsics)

        storage = SessionStorage(self.config.session_root, name=f"{self.config.camera_name}_session")
        session_path = storage.begin()
        storage.write_manifest(self.config.as_dict())

        log_file = str(Path(storage.logs_dir) / "session.log")
        file_handler = add_file_handler(self.logger, self.config.camera_name, log_file)

        cap = controller.source
        t0 = time.time()
        frames = 0
        published = 0
        errors: Counter[str] = Counter()

        try:
            for out in self.outputs:
                out.open(Path(storage.session_dir))

            self.logger.info("session started: %s", session_path)
            self.logger.info("config: %s", self.config.as_dict())

            cap.start()
            t0 = time.time()
            while not self._finished(t0, frames):
                result = controller.tick()
                frames += 1

                if result.published:
                    published += 1
                    ts_unix = time.time()
                    for out in self.outputs:
                        out.write_transform(ts_unix, result.transform)
                elif result.error is not None:
                    errors[type(result.error).__name__] += 1

                if self.config.save_annotated and controller.last_frame is not None:
                    draw = draw_overlay(
                        controller.last_frame,
                        controller.last_detections,
                        controller.last_correspondences,
                        intrinsics,
                        controller.state,
                        debug_points=self.config.debug_points,
                    )
                    storage.save_annotated(result.frame_idx, draw)

                self.logger.debug(
                    "frame=%d status=%s dets=%d",
                    result.frame_idx,
                    result.status,
                    len(controller.last_detections),
                )

        finally:
            try:
                cap.stop()
            except Exception as exc:
                self.logger.warning("frame source stop failed: %s", exc)

            for out in self.outputs:
                try:
                    out.close()
                except Exception as exc:
                    self.logger.warning("output close failed: %s", exc)

            avg = frames / max(1e-6, (time.time() - t0))
            self.logger.info(
                "summary frames=%d published=%d avg_fps=%.2f errors=%s",
                frames, published, avg, dict(errors),
            )
            remove_file_handler(self.logger, file_handler)

        csv_path = str(Path(storage.session_dir) / "transforms.csv")
        return SessionSummary(
            str(session_path),
            frames,
            published,
            csv_path,
            log_file,
            avg,
            dict(errors),
        )
