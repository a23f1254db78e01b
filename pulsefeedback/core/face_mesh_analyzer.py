"""
Face mesh feature extraction: gaze zone, eyes-closed, smile ratio and eyebrow raise
from a single set of normalized face landmarks.
"""
import time
from typing import Callable, Optional, Sequence, Tuple

import numpy as np

from .config import PulseConfig
from .types import FeatureSample, GazeZone, Landmark


# Eye corners (outer, inner) and lids (top, bottom)
LEFT_EYE_OUTER, LEFT_EYE_INNER = 33, 133
RIGHT_EYE_INNER, RIGHT_EYE_OUTER = 362, 263
LEFT_EYE_TOP, LEFT_EYE_BOTTOM = 159, 145
RIGHT_EYE_TOP, RIGHT_EYE_BOTTOM = 386, 374
# Refined iris points
LEFT_IRIS_INDICES = [468, 469, 470, 471, 472]
RIGHT_IRIS_INDICES = [473, 474, 475, 476, 477]
# Mouth corners and inner lips
MOUTH_LEFT, MOUTH_RIGHT = 61, 291
MOUTH_TOP, MOUTH_BOTTOM = 13, 14
# Eyebrow (top, inner) per side
LEFT_BROW_TOP, LEFT_BROW_INNER = 107, 70
RIGHT_BROW_TOP, RIGHT_BROW_INNER = 336, 300

EYE_INDICES = [
    LEFT_EYE_OUTER,
    LEFT_EYE_INNER,
    RIGHT_EYE_INNER,
    RIGHT_EYE_OUTER,
    LEFT_EYE_TOP,
    LEFT_EYE_BOTTOM,
    RIGHT_EYE_TOP,
    RIGHT_EYE_BOTTOM,
]

EPS = 1e-6

_ZONES = {
    ("upper", "left"): GazeZone.UPPER_LEFT,
    ("upper", "center"): GazeZone.UPPER_CENTER,
    ("upper", "right"): GazeZone.UPPER_RIGHT,
    ("middle", "left"): GazeZone.LEFT,
    ("middle", "center"): GazeZone.CENTER,
    ("middle", "right"): GazeZone.RIGHT,
    ("lower", "left"): GazeZone.LOWER_LEFT,
    ("lower", "center"): GazeZone.LOWER_CENTER,
    ("lower", "right"): GazeZone.LOWER_RIGHT,
}


def classify_gaze(
    h_ratio: Optional[float],
    v_ratio: Optional[float],
    low: float = 0.35,
    high: float = 0.65,
) -> GazeZone:
    """Map horizontal (0=left, 1=right) and vertical (0=up, 1=down) iris ratios to a zone."""
    if h_ratio is None or v_ratio is None:
        return GazeZone.UNKNOWN
    if v_ratio < low:
        row = "upper"
    elif v_ratio > high:
        row = "lower"
    else:
        row = "middle"
    if h_ratio < low:
        col = "left"
    elif h_ratio > high:
        col = "right"
    else:
        col = "center"
    return _ZONES[(row, col)]


class FeatureExtractor:
    """Turns a landmark set (or None) into a FeatureSample.

    The only state kept between frames is the time of the last successful
    detection, used to decide when a missing face counts as off-screen.
    """

    def __init__(self, config: Optional[PulseConfig] = None, clock: Callable[[], float] = time.monotonic):
        self.config = config or PulseConfig()
        self._clock = clock
        self._last_face_seen_at = clock()

    def extract(self, landmarks: Optional[Sequence[Landmark]], timestamp: float = 0.0) -> FeatureSample:
        cfg = self.config
        now = self._clock()
        points = self._as_array(landmarks)
        if points is None or len(points) < cfg.min_landmarks:
            off_screen = (now - self._last_face_seen_at) > cfg.off_screen_after_sec
            return FeatureSample(timestamp=timestamp, face_present=False, off_screen=off_screen)

        self._last_face_seen_at = now

        if not np.isfinite(points[EYE_INDICES]).all():
            # Face found but the eye geometry is unusable
            return FeatureSample(timestamp=timestamp, face_present=True)

        left_open = self._distance(points, LEFT_EYE_TOP, LEFT_EYE_BOTTOM) / (
            self._distance(points, LEFT_EYE_OUTER, LEFT_EYE_INNER) + EPS
        )
        right_open = self._distance(points, RIGHT_EYE_TOP, RIGHT_EYE_BOTTOM) / (
            self._distance(points, RIGHT_EYE_OUTER, RIGHT_EYE_INNER) + EPS
        )
        eyes_closed = bool(left_open < cfg.eye_closed_ratio and right_open < cfg.eye_closed_ratio)

        h_ratio, v_ratio = self._gaze_ratios(points)
        gaze = classify_gaze(h_ratio, v_ratio, cfg.gaze_low_split, cfg.gaze_high_split)

        return FeatureSample(
            timestamp=timestamp,
            face_present=True,
            off_screen=False,
            eyes_closed=eyes_closed,
            gaze=gaze,
            smile_ratio=self._smile_ratio(points),
            eyebrow_raised=self._eyebrow_raised(points),
        )

    def _gaze_ratios(self, points: np.ndarray) -> Tuple[Optional[float], Optional[float]]:
        left_iris = self._iris_center(points, LEFT_IRIS_INDICES)
        right_iris = self._iris_center(points, RIGHT_IRIS_INDICES)
        if left_iris is None or right_iris is None:
            return None, None

        l_h = self._axis_ratio(left_iris[0], points[LEFT_EYE_OUTER][0], points[LEFT_EYE_INNER][0])
        r_h = self._axis_ratio(right_iris[0], points[RIGHT_EYE_OUTER][0], points[RIGHT_EYE_INNER][0])
        l_v = self._axis_ratio(left_iris[1], points[LEFT_EYE_TOP][1], points[LEFT_EYE_BOTTOM][1])
        r_v = self._axis_ratio(right_iris[1], points[RIGHT_EYE_TOP][1], points[RIGHT_EYE_BOTTOM][1])
        if None in (l_h, r_h, l_v, r_v):
            return None, None
        return (l_h + r_h) / 2.0, (l_v + r_v) / 2.0

    def _smile_ratio(self, points: np.ndarray) -> float:
        corners = points[[MOUTH_LEFT, MOUTH_RIGHT, MOUTH_TOP, MOUTH_BOTTOM]]
        if not np.isfinite(corners).all():
            return 0.0
        width = self._distance(points, MOUTH_LEFT, MOUTH_RIGHT)
        opening = self._distance(points, MOUTH_TOP, MOUTH_BOTTOM)
        return round(width / (opening + EPS), 2)

    def _eyebrow_raised(self, points: np.ndarray) -> bool:
        brows = points[[LEFT_BROW_TOP, LEFT_BROW_INNER, RIGHT_BROW_TOP, RIGHT_BROW_INNER]]
        if not np.isfinite(brows).all():
            return False
        left_gap = abs(points[LEFT_BROW_TOP][1] - points[LEFT_BROW_INNER][1])
        right_gap = abs(points[RIGHT_BROW_TOP][1] - points[RIGHT_BROW_INNER][1])
        threshold = self.config.eyebrow_raise_gap
        return bool(left_gap > threshold or right_gap > threshold)

    @staticmethod
    def _as_array(landmarks: Optional[Sequence[Landmark]]) -> Optional[np.ndarray]:
        if landmarks is None:
            return None
        try:
            arr = np.asarray(landmarks, dtype=float)
        except (TypeError, ValueError):
            return None
        if arr.ndim != 2 or arr.shape[1] < 2:
            return None
        return arr[:, :2]

    @staticmethod
    def _distance(points: np.ndarray, a: int, b: int) -> float:
        return float(np.linalg.norm(points[a] - points[b]))

    @staticmethod
    def _iris_center(points: np.ndarray, indices: Sequence[int]) -> Optional[np.ndarray]:
        iris = points[indices]
        iris = iris[np.isfinite(iris).all(axis=1)]
        if len(iris) == 0:
            return None
        return iris.mean(axis=0)

    @staticmethod
    def _axis_ratio(value: float, a: float, b: float) -> Optional[float]:
        lo, hi = min(a, b), max(a, b)
        if hi == lo:
            return None
        return float((value - lo) / (hi - lo + EPS))
