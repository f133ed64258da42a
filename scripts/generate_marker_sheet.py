#!/usr/bin/env python3
"""Render the configured fiducial markers as PNG files for printing.

Each image is scaled so that, printed at ``--dpi``, the marker's black square
measures exactly ``marker_size_mm``. A white quiet zone surrounds it.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import cv2
import numpy as np

from camera_tracking.config import TrackingConfig, load_config
from pose_pipeline.strategies.detect_aruco import get_dict

MM_PER_INCH = 25.4


def marker_size_px(size_mm: float, dpi: int) -> int:
    return int(round(size_mm / MM_PER_INCH * dpi))


def render_marker(dictionary, marker_id: int, size_px: int, margin_px: int) -> np.ndarray:
    """Marker image (grayscale) with a white margin on every side."""
    marker = cv2.aruco.generateImageMarker(dictionary, int(marker_id), int(size_px), borderBits=1)
    return cv2.copyMakeBorder(
        marker, margin_px, margin_px, margin_px, margin_px, cv2.BORDER_CONSTANT, value=255
    )


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate printable marker images")
    parser.add_argument("--config", help="Tracking config (markers, marker_size_mm, aruco_dict)")
    parser.add_argument("--output-dir", default="markers", help="Output directory (default: markers)")
    parser.add_argument("--dpi", type=int, default=300, help="Print resolution (default: 300)")
    parser.add_argument("--margin-mm", type=float, default=10.0, help="Quiet zone width (default: 10mm)")
    args = parser.parse_args()

    cfg = load_config(args.config) if args.config else TrackingConfig()

    try:
        dictionary = get_dict(cfg.aruco_dict)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    size_px = marker_size_px(cfg.marker_size_mm, args.dpi)
    margin_px = marker_size_px(args.margin_mm, args.dpi)
    print(f"dictionary={cfg.aruco_dict} size={cfg.marker_size_mm}mm ({size_px}px @ {args.dpi}dpi)")

    for marker in cfg.markers:
        img = render_marker(dictionary, marker.marker_id, size_px, margin_px)
        out = output_dir / f"marker_{marker.marker_id}.png"
        cv2.imwrite(str(out), img)
        print(f"  id={marker.marker_id} x_offset={marker.x_offset_mm:+.2f}mm -> {out}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
