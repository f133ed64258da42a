from __future__ import annotations

import json
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Any, Optional

from pose_pipeline.strategies.detect_aruco import RefineConfig
from pose_pipeline.strategies.registry import DEFAULT_MARKERS, FIDUCIAL_SIZE_MM, FiducialMarker
from pose_pipeline.strategies.solve_pnp import METHODS

from .transforms import ROTATION_TOLERANCE, VISION_TO_RENDER_AXIS_SIGNS, check_axis_signs


@dataclass
class SourceConfig:
    """Configuration for frame source (camera device or recorded clip)."""

    type: str = "v4l2"  # "v4l2", "video_file"
    path: Optional[str] = None  # For video_file: clip path

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SolverConfig:
    method: str = "ippe"  # "ippe", "iterative", "sqpnp", "ransac"
    use_extrinsic_guess: bool = False
    ransac_reprojection_error: float = 8.0
    ransac_iterations: int = 100
    ransac_confidence: float = 0.99

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def _default_markers() -> list[FiducialMarker]:
    return list(DEFAULT_MARKERS)


@dataclass
class TrackingConfig:
    camera_name: str = "cam"
    device: int | str = 0
    fps: int = 30
    width: int = 1280
    height: int = 720
    calibration_path: str = "assets/calibration.json"
    session_root: str = "data/sessions"
    duration_sec: float = 0.0  # 0 = run until stopped
    max_frames: Optional[int] = None
    aruco_dict: str = "apriltag_25h9"
    marker_size_mm: float = FIDUCIAL_SIZE_MM
    markers: list[FiducialMarker] = field(default_factory=_default_markers)
    solver: SolverConfig = field(default_factory=SolverConfig)
    refine: RefineConfig = field(default_factory=RefineConfig)
    render_axis_signs: tuple[float, float, float] = VISION_TO_RENDER_AXIS_SIGNS
    rotation_tolerance: float = ROTATION_TOLERANCE
    dry_run: bool = False
    save_annotated: bool = False
    debug_points: bool = False
    stdout: bool = False
    source: SourceConfig = field(default_factory=SourceConfig)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    def apply_overrides(self, **kwargs: Any) -> "TrackingConfig":
        for key, value in kwargs.items():
            if value is not None and hasattr(self, key):
                setattr(self, key, value)
        return self


def _load_yaml(path: Path) -> dict[str, Any]:
    import yaml

    with path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, dict):
        raise ValueError("YAML config root must be a mapping")
    return data


def _parse_markers(value: Any) -> list[FiducialMarker]:
    if not isinstance(value, list):
        raise ValueError("markers must be a list of {id, x_offset_mm} objects")
    markers = []
    for item in value:
        if not isinstance(item, dict) or "id" not in item or "x_offset_mm" not in item:
            raise ValueError(f"invalid marker entry: {item!r}")
        markers.append(FiducialMarker(int(item["id"]), float(item["x_offset_mm"])))
    return markers


def _parse_solver(raw: dict[str, Any]) -> SolverConfig:
    s = SolverConfig()
    s.method = str(raw.get("method", s.method)).lower()
    if s.method not in METHODS:
        raise ValueError(f"unknown solver method {s.method!r} (choose from {sorted(METHODS)})")
    s.use_extrinsic_guess = bool(raw.get("use_extrinsic_guess", s.use_extrinsic_guess))
    s.ransac_reprojection_error = float(raw.get("ransac_reprojection_error", s.ransac_reprojection_error))
    s.ransac_iterations = int(raw.get("ransac_iterations", s.ransac_iterations))
    s.ransac_confidence = float(raw.get("ransac_confidence", s.ransac_confidence))
    return s


def _parse_refine(raw: dict[str, Any]) -> RefineConfig:
    d = RefineConfig()
    return RefineConfig(
        min_rep_distance=float(raw.get("min_rep_distance", d.min_rep_distance)),
        error_correction_rate=float(raw.get("error_correction_rate", d.error_correction_rate)),
        check_all_orders=bool(raw.get("check_all_orders", d.check_all_orders)),
    )


def load_config(path: str | Path) -> TrackingConfig:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")

    if p.suffix.lower() in {".yaml", ".yml"}:
        raw = _load_yaml(p)
    else:
        with p.open("r", encoding="utf-8") as fp:
            raw = json.load(fp)

    if not isinstance(raw, dict):
        raise ValueError("Config root must be a JSON/YAML object")

    cfg = TrackingConfig()
    cfg.camera_name = str(raw.get("camera_name", cfg.camera_name))
    cfg.device = raw.get("device", cfg.device)
    cfg.fps = int(raw.get("fps", cfg.fps))
    cfg.width = int(raw.get("width", cfg.width))
    cfg.height = int(raw.get("height", cfg.height))
    cfg.calibration_path = str(raw.get("calibration_path", cfg.calibration_path))
    cfg.session_root = str(raw.get("session_root", cfg.session_root))
    cfg.duration_sec = float(raw.get("duration_sec", cfg.duration_sec))
    cfg.max_frames = raw.get("max_frames", cfg.max_frames)
    if cfg.max_frames is not None:
        cfg.max_frames = int(cfg.max_frames)
    cfg.aruco_dict = str(raw.get("aruco_dict", cfg.aruco_dict))
    cfg.marker_size_mm = float(raw.get("marker_size_mm", cfg.marker_size_mm))
    if "markers" in raw:
        cfg.markers = _parse_markers(raw["markers"])
    cfg.render_axis_signs = check_axis_signs(raw.get("render_axis_signs", cfg.render_axis_signs))
    cfg.rotation_tolerance = float(raw.get("rotation_tolerance", cfg.rotation_tolerance))
    cfg.dry_run = bool(raw.get("dry_run", cfg.dry_run))
    cfg.save_annotated = bool(raw.get("save_annotated", cfg.save_annotated))
    cfg.debug_points = bool(raw.get("debug_points", cfg.debug_points))
    cfg.stdout = bool(raw.get("stdout", cfg.stdout))

    solver_raw = raw.get("solver")
    if isinstance(solver_raw, dict):
        cfg.solver = _parse_solver(solver_raw)

    refine_raw = raw.get("refine")
    if isinstance(refine_raw, dict):
        cfg.refine = _parse_refine(refine_raw)

    src_raw = raw.get("source")
    if isinstance(src_raw, dict):
        src_cfg = SourceConfig()
        src_cfg.type = str(src_raw.get("type", src_cfg.type))
        src_cfg.path = src_raw.get("path", src_cfg.path)
        if src_cfg.type not in {"v4l2", "video_file"}:
            raise ValueError(f"unknown source type {src_cfg.type!r}")
        if src_cfg.type == "video_file" and not src_cfg.path:
            raise ValueError("source.path is required for video_file sources")
        cfg.source = src_cfg

    return cfg
