import csv
import logging
import os
import tempfile
from typing import Dict, List, Optional

import pandas as pd

from .types import MetricPoint


logger = logging.getLogger(__name__)


LOG_FIELDS = [
    "t",
    "video_time",
    "hr",
    "br",
    "face_present",
    "off_screen",
    "eyes_closed",
    "gaze",
    "smile",
    "emotion",
    "eyebrow_raised",
    "engagement",
]

SYSTEM_FALLBACK_NAME = "pulsefeedback_fallback.csv"


def point_row(point: MetricPoint, engagement: Optional[float] = None) -> Dict[str, object]:
    """Flatten a MetricPoint into a CSV row keyed by LOG_FIELDS."""
    def flag(value: bool) -> int:
        return 1 if value else 0

    return {
        "t": f"{point.timestamp:.1f}",
        "video_time": "" if point.video_time is None else f"{point.video_time:.2f}",
        "hr": "" if point.heart_rate is None else point.heart_rate,
        "br": "" if point.breath_rate is None else point.breath_rate,
        "face_present": flag(point.face_present),
        "off_screen": flag(point.off_screen),
        "eyes_closed": flag(point.eyes_closed),
        "gaze": point.gaze.value,
        "smile": f"{point.smile_ratio:.2f}",
        "emotion": point.emotion.value,
        "eyebrow_raised": flag(point.eyebrow_raised),
        "engagement": "" if engagement is None else f"{engagement:.2f}",
    }


class PointLogger:
    """
    Optional per-tick CSV log of MetricPoints.

    The sampler must never stall on logging, so a locked target (a spreadsheet
    holding the file open) diverts rows to a ``<name>_queue.tmp`` sibling and
    any other I/O failure diverts them to a file in the system temp directory.
    ``to_dataframe`` reads the target and its queue back as one frame.
    """

    def __init__(self, csv_path: str):
        self.csv_path = csv_path
        self.temp_csv_path = os.path.splitext(csv_path)[0] + "_queue.tmp"
        self.system_fallback_path = os.path.join(tempfile.gettempdir(), SYSTEM_FALLBACK_NAME)
        self._locked_reported = False
        os.makedirs(os.path.dirname(os.path.abspath(csv_path)), exist_ok=True)

    def log_point(self, point: MetricPoint, engagement: Optional[float] = None) -> None:
        row = point_row(point, engagement)
        try:
            self._write_row(self.csv_path, row)
            return
        except PermissionError:
            if not self._locked_reported:
                logger.warning("[PointLog] %s is locked; queueing rows in %s",
                               os.path.basename(self.csv_path), os.path.basename(self.temp_csv_path))
                self._locked_reported = True
            target = self.temp_csv_path
        except OSError as exc:
            logger.warning("[PointLog] Could not write %s (%s); using %s", self.csv_path, exc, self.system_fallback_path)
            target = self.system_fallback_path

        try:
            self._write_row(target, row)
        except OSError as exc:
            logger.warning("[PointLog] Dropped row t=%s: %s", row["t"], exc)

    def to_dataframe(self) -> pd.DataFrame:
        frames: List[pd.DataFrame] = []
        for path in (self.csv_path, self.temp_csv_path):
            if os.path.exists(path):
                frame = self._read(path)
                if not frame.empty:
                    frames.append(frame)
        if not frames:
            return pd.DataFrame(columns=LOG_FIELDS)

        merged = pd.concat(frames, ignore_index=True).reindex(columns=LOG_FIELDS)
        return merged.sort_values("t", kind="mergesort").reset_index(drop=True)

    @staticmethod
    def _write_row(path: str, row: Dict[str, object]) -> None:
        fresh = not os.path.exists(path) or os.path.getsize(path) == 0
        with open(path, "a", newline="", encoding="utf-8") as handle:
            writer = csv.DictWriter(handle, fieldnames=LOG_FIELDS)
            if fresh:
                writer.writeheader()
            writer.writerow(row)

    @staticmethod
    def _read(path: str) -> pd.DataFrame:
        try:
            return pd.read_csv(path, on_bad_lines="skip", encoding="utf-8")
        except (OSError, ValueError) as exc:
            logger.warning("[PointLog] Skipping unreadable log %s: %s", os.path.basename(path), exc)
            return pd.DataFrame(columns=LOG_FIELDS)
