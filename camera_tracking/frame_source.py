"""Frame source abstraction for camera input.

Provides a unified interface for different frame sources:
- Device cameras (USB via V4L2)
- Recorded video clips (replay)
- Synthetic black frames (dry runs)

``read()`` returns None when no frame is available; the tracking controller
treats that, or an empty image, as "no update this tick".
"""

from __future__ import annotations

import re
import time
from abc import ABC, abstractmethod
from typing import Any

import cv2
import numpy as np

from pose_pipeline.pp_types import Frame


def _now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%S")


class FrameSource(ABC):
    """Abstract base class for frame sources."""

    @abstractmethod
    def start(self) -> None:
        """Start the frame source. Called before any read() calls."""
        ...

    @abstractmethod
    def read(self) -> Frame | None:
        """Latest frame, or None if none is available."""
        ...

    @abstractmethod
    def stop(self) -> None:
        """Stop the frame source and release resources."""
        ...


class DeviceCameraSource(FrameSource):
    """USB camera source using OpenCV's V4L2 interface."""

    def __init__(self, device: int | str, fps: int, width: int, height: int):
        self.device = device
        self.fps = fps
        self.width = width
        self.height = height
        self.cap: Any = None
        self.frame_id = 0

    def start(self) -> None:
        if isinstance(self.device, int):
            self.cap = cv2.VideoCapture(self.device, cv2.CAP_V4L2)
        else:
            match = re.match(r"^/dev/video(\d+)$", str(self.device))
            if match:
                self.cap = cv2.VideoCapture(int(match.group(1)), cv2.CAP_V4L2)
            else:
                self.cap = cv2.VideoCapture(str(self.device))

        self.cap.set(cv2.CAP_PROP_FOURCC, cv2.VideoWriter_fourcc(*"MJPG"))
        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        self.cap.set(cv2.CAP_PROP_FPS, self.fps)

        if not self.cap.isOpened():
            raise RuntimeError(f"Failed to open camera: {self.device}")

        self.frame_id = 0

    def read(self) -> Frame | None:
        if self.cap is None:
            return None
        ok, img = self.cap.read()
        if not ok:
            return None
        self.frame_id += 1
        return Frame(self.frame_id, _now_iso(), img)

    def stop(self) -> None:
        if self.cap is not None:
            self.cap.release()
            self.cap = None


class VideoFileSource(FrameSource):
    """Replays a recorded clip; read() returns None once the clip is exhausted."""

    def __init__(self, path: str):
        self.path = path
        self.cap: Any = None
        self.frame_id = 0
        self.exhausted = False

    def start(self) -> None:
        self.cap = cv2.VideoCapture(str(self.path))
        if not self.cap.isOpened():
            raise RuntimeError(f"Failed to open video file: {self.path}")
        self.frame_id = 0
        self.exhausted = False

    def read(self) -> Frame | None:
        if self.cap is None:
            return None
        ok, img = self.cap.read()
        if not ok:
            self.exhausted = True
            return None
        self.frame_id += 1
        return Frame(self.frame_id, _now_iso(), img)

    def stop(self) -> None:
        if self.cap is not None:
            self.cap.release()
            self.cap = None


class SyntheticSource(FrameSource):
    """Black frames paced at ``fps``; nothing is ever detected in them."""

    def __init__(self, fps: int, width: int, height: int):
        self.fps = fps
        self.width = width
        self.height = height
        self.frame_id = 0
        self._last = 0.0

    def start(self) -> None:
        self._last = time.time()
        self.frame_id = 0

    def read(self) -> Frame | None:
        if self.fps > 0:
            wait = (1.0 / self.fps) - (time.time() - self._last)
            if wait > 0:
                time.sleep(wait)
        self._last = time.time()
        self.frame_id += 1
        img = np.zeros((self.height, self.width, 3), dtype=np.uint8)
        return Frame(self.frame_id, _now_iso(), img)

    def stop(self) -> None:
        return None
