import csv
import json
import logging
from pathlib import Path

import numpy as np
import pytest

from camera_tracking.config import TrackingConfig
from camera_tracking.frame_source import FrameSource
from camera_tracking.output import OutputSink
from camera_tracking.worker import TrackingWorker
from pose_pipeline.errors import CalibrationLoadFailed
from pose_pipeline.pp_types import Frame


class ListSource(FrameSource):
    def __init__(self, n):
        self.n = n
        self.i = 0
        self.started = False
        self.stopped = False

    def start(self):
        self.started = True

    def read(self):
        if self.i >= self.n:
            return None
        self.i += 1
        return Frame(self.i, "2024-01-01T00:00:00", np.zeros((480, 640, 3), dtype=np.uint8))

    def stop(self):
        self.stopped = True


class ScriptedDetector:
    def __init__(self, script):
        self.script = script
        self.calls = 0

    def detect(self, frame):
        dets = self.script[self.calls % len(self.script)]
        self.calls += 1
        return dets


class RecordingOutput(OutputSink):
    def __init__(self):
        self.opened = None
        self.rows = []
        self.closed = False

    def open(self, session_dir):
        self.opened = session_dir

    def write_transform(self, ts_unix, transform):
        self.rows.append(transform)

    def close(self):
        self.closed = True


def _cfg(tmp_path: Path, **kw) -> TrackingConfig:
    cfg = TrackingConfig(camera_name="testcam", session_root=str(tmp_path / "sessions"), fps=0)
    return cfg.apply_overrides(**kw)


def test_dry_run_creates_session(tmp_path: Path, intrinsics):
    cfg = _cfg(tmp_path, dry_run=True, max_frames=3, width=160, height=120)

    summary = TrackingWorker(cfg, intrinsics=intrinsics).run()

    assert summary.frames_processed == 3
    assert summary.transforms_published == 0
    assert summary.errors == {"NoTargets": 3}
    sdir = Path(summary.session_path)
    assert (sdir / "config.json").exists()
    assert json.loads((sdir / "config.json").read_text())["camera_name"] == "testcam"
    assert Path(summary.csv_path).exists()
    assert Path(summary.log_path).exists()
    # header only
    assert len(Path(summary.csv_path).read_text().splitlines()) == 1


def test_publishes_transforms_to_all_outputs(tmp_path: Path, intrinsics, registry, gt_pose, project):
    rvec, tvec = gt_pose
    dets = project(registry, [0, 1, 2, 3], rvec, tvec)
    source = ListSource(4)
    rec = RecordingOutput()
    cfg = _cfg(tmp_path, max_frames=6, save_annotated=True, debug_points=True)

    worker = TrackingWorker(
        cfg,
        outputs=[rec],
        source=source,
        detector=ScriptedDetector([dets, []]),
        intrinsics=intrinsics,
    )
    summary = worker.run()

    assert source.started and source.stopped
    assert rec.closed
    assert summary.frames_processed == 6
    assert summary.transforms_published == 2
    assert summary.errors == {"NoTargets": 2, "AcquisitionEmpty": 2}
    assert len(rec.rows) == 2
    assert rec.rows[0].position[1] > 0

    annotated = sorted((Path(summary.session_path) / "annotated").glob("*.jpg"))
    assert len(annotated) == 4


def test_default_csv_output(tmp_path: Path, intrinsics, registry, gt_pose, project):
    rvec, tvec = gt_pose
    dets = project(registry, [1, 2], rvec, tvec)
    cfg = _cfg(tmp_path, max_frames=2)

    summary = TrackingWorker(
        cfg, source=ListSource(2), detector=ScriptedDetector([dets]), intrinsics=intrinsics
    ).run()

    with open(summary.csv_path, newline="") as fh:
        rows = list(csv.DictReader(fh))
    assert [r["frame_idx"] for r in rows] == ["1", "2"]
    assert float(rows[0]["pos_y"]) > 0


def test_stops_when_requested(tmp_path: Path, intrinsics):
    cfg = _cfg(tmp_path, dry_run=True, width=32, height=24)
    worker = TrackingWorker(cfg, intrinsics=intrinsics)
    worker.stop()

    summary = worker.run()

    assert summary.frames_processed == 0


def test_missing_calibration_is_fatal(tmp_path: Path):
    cfg = _cfg(tmp_path, dry_run=True, max_frames=1, calibration_path=str(tmp_path / "none.json"))

    with pytest.raises(CalibrationLoadFailed):
        TrackingWorker(cfg).run()

    assert not (tmp_path / "sessions").exists()


def test_loads_calibration_from_config(tmp_path: Path):
    calib = tmp_path / "calib.json"
    calib.write_text(
        json.dumps({"camera_matrix": [[500, 0, 80], [0, 500, 60], [0, 0, 1]]}), encoding="utf-8"
    )
    cfg = _cfg(tmp_path, dry_run=True, max_frames=1, width=160, height=120, calibration_path=str(calib))

    summary = TrackingWorker(cfg).run()

    assert summary.frames_processed == 1


class BrokenSource(ListSource):
    def read(self):
        raise RuntimeError("device unplugged")


def test_session_log_detached_when_loop_fails(tmp_path: Path, intrinsics):
    rec = RecordingOutput()
    cfg = _cfg(tmp_path, max_frames=3)
    worker = TrackingWorker(cfg, outputs=[rec], source=BrokenSource(0), intrinsics=intrinsics)
    core = logging.getLogger("pose_pipeline")
    before = list(core.handlers), list(worker.logger.handlers)

    with pytest.raises(RuntimeError, match="unplugged"):
        worker.run()

    assert (list(core.handlers), list(worker.logger.handlers)) == before
    assert rec.closed
