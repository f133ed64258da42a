import csv
import io

import numpy as np

from ..pp_types import CameraTransform


class CsvWriter:
    HEADER = [
        "recorded_at",
        "frame_idx", "frame_ts",
        "pos_x", "pos_y", "pos_z",
        "quat_x", "quat_y", "quat_z", "quat_w",
    ]

    def __init__(self, csv_path: str):
        self.csv_path = csv_path
        self._opened = False
        self._fh = None
        self._w = None

    def open(self):
        self._fh = open(self.csv_path, "w", newline="")
        self._w = csv.writer(self._fh)
        self._w.writerow(self.HEADER)
        self._opened = True

    @staticmethod
    def _row(ts_unix: float, tf: CameraTransform) -> list:
        pos = np.asarray(tf.position, dtype=np.float64).reshape(3).tolist()
        quat = np.asarray(tf.rotation, dtype=np.float64).reshape(4).tolist()
        return [f"{ts_unix:.6f}", tf.frame_idx, tf.ts_iso, *pos, *quat]

    def append(self, ts_unix: float, tf: CameraTransform):
        self._w.writerow(self._row(ts_unix, tf))
        self._fh.flush()

    @classmethod
    def to_csv_line(cls, ts_unix: float, tf: CameraTransform) -> str:
        buf = io.StringIO()
        csv.writer(buf).writerow(cls._row(ts_unix, tf))
        return buf.getvalue().strip()

    def close(self):
        if self._opened and self._fh:
            self._fh.close()
            self._opened = False
            self._fh = None
            self._w = None
