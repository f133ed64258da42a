import argparse
import logging
import signal
import sys
from typing import Optional

from pose_pipeline.errors import CalibrationLoadFailed
from pose_pipeline.strategies.solve_pnp import METHODS

from .config import TrackingConfig, load_config
from .logging_utils import setup_logger
from .worker import TrackingWorker


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Track a camera from known fiducial markers")
    ap.add_argument("--config", required=True, help="Path to JSON/YAML config")

    ap.add_argument("--camera-name")
    ap.add_argument("--device")
    ap.add_argument("--fps", type=int)
    ap.add_argument("--width", type=int)
    ap.add_argument("--height", type=int)
    ap.add_argument("--calib")
    ap.add_argument("--out")
    ap.add_argument("--duration", type=float)
    ap.add_argument("--dict")
    ap.add_argument("--marker-size-mm", type=float)
    ap.add_argument("--solver-method", type=str.lower, choices=sorted(METHODS))
    ap.add_argument("--max-frames", type=int)
    ap.add_argument("--dry-run", action="store_true")
    ap.add_argument("--save-annotated", action="store_true")
    ap.add_argument("--no-save-annotated", action="store_true")
    ap.add_argument("--debug-points", action="store_true")
    ap.add_argument("--stdout", action="store_true", help="Also stream transforms to stdout")
    ap.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])

    return ap


def _apply_args(cfg: TrackingConfig, args: argparse.Namespace) -> TrackingConfig:
    device = args.device
    if isinstance(device, str) and device.isdigit():
        device = int(device)

    save_annotated = None
    if args.save_annotated:
        save_annotated = True
    if args.no_save_annotated:
        save_annotated = False

    cfg.apply_overrides(
        camera_name=args.camera_name,
        device=device,
        fps=args.fps,
        width=args.width,
        height=args.height,
        calibration_path=args.calib,
        session_root=args.out,
        duration_sec=args.duration,
        aruco_dict=args.dict,
        marker_size_mm=args.marker_size_mm,
        max_frames=args.max_frames,
        dry_run=args.dry_run if args.dry_run else None,
        save_annotated=save_annotated,
        debug_points=args.debug_points if args.debug_points else None,
        stdout=args.stdout if args.stdout else None,
    )
    if args.solver_method:
        cfg.solver.method = args.solver_method
    if cfg.debug_points:
        cfg.save_annotated = True
    return cfg


def main(argv: Optional[list[str]] = None) -> int:
    ap = _build_parser()
    args = ap.parse_args(argv)

    cfg = load_config(args.config)
    cfg = _apply_args(cfg, args)

    logger = setup_logger(cfg.camera_name, getattr(logging, args.log_level))
    worker = TrackingWorker(cfg, logger=logger)

    def _handle_signal(_sig, _frame):
        worker.stop()

    signal.signal(signal.SIGINT, _handle_signal)
    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, _handle_signal)

    try:
        summary = worker.run()
    except CalibrationLoadFailed as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    print(summary, file=sys.stderr if cfg.stdout else sys.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())
