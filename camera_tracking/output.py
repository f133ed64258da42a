from __future__ import annotations

import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, TextIO

from pose_pipeline.pp_types import CameraTransform
from pose_pipeline.services.csv_writer import CsvWriter


class OutputSink(ABC):
    """Consumer of published camera transforms (the rendering side)."""

    @abstractmethod
    def open(self, session_dir: Path) -> None: ...

    @abstractmethod
    def write_transform(self, ts_unix: float, transform: CameraTransform) -> None: ...

    @abstractmethod
    def close(self) -> None: ...


class CsvOutput(OutputSink):
    def __init__(self, filename: str = "transforms.csv"):
        self.filename = filename
        self.path: Optional[Path] = None
        self._writer: Optional[CsvWriter] = None

    def open(self, session_dir: Path) -> None:
        self.path = session_dir / self.filename
        self._writer = CsvWriter(str(self.path))
        self._writer.open()

    def write_transform(self, ts_unix: float, transform: CameraTransform) -> None:
        if self._writer is None:
            return
        self._writer.append(ts_unix, transform)

    def close(self) -> None:
        if self._writer is not None:
            self._writer.close()
            self._writer = None


class StreamOutput(OutputSink):
    """One CSV line per transform on a text stream, for a renderer reading a pipe."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream

    def open(self, session_dir: Path) -> None:
        if self.stream is None:
            self.stream = sys.stdout
        print(",".join(CsvWriter.HEADER), file=self.stream, flush=True)

    def write_transform(self, ts_unix: float, transform: CameraTransform) -> None:
        if self.stream is None:
            return
        print(CsvWriter.to_csv_line(ts_unix, transform), file=self.stream, flush=True)

    def close(self) -> None:
        return None


class NullOutput(OutputSink):
    def open(self, session_dir: Path) -> None:
        return None

    def write_transform(self, ts_unix: float, transform: CameraTransform) -> None:
        return None

    def close(self) -> None:
        return None
