from typing import Optional, Union

from .config import PulseConfig
from .types import FeatureSample, GazeZone, MetricPoint


# Center/upward gaze reads as focus on the screen, downward/sideways as distraction.
GAZE_ADJUSTMENT = {
    GazeZone.CENTER: 0.20,
    GazeZone.UPPER_CENTER: 0.20,
    GazeZone.UPPER_LEFT: 0.15,
    GazeZone.UPPER_RIGHT: 0.15,
    GazeZone.LEFT: 0.05,
    GazeZone.RIGHT: 0.05,
    GazeZone.LOWER_LEFT: -0.05,
    GazeZone.LOWER_CENTER: -0.05,
    GazeZone.LOWER_RIGHT: -0.05,
    GazeZone.UNKNOWN: -0.05,
}


def gaze_adjustment(gaze: GazeZone) -> float:
    return GAZE_ADJUSTMENT.get(gaze, GAZE_ADJUSTMENT[GazeZone.UNKNOWN])


def engagement_score(
    point: Union[MetricPoint, FeatureSample],
    task_active: bool,
    config: Optional[PulseConfig] = None,
) -> float:
    """
    Additive engagement heuristic in [0, 1], rounded to 2 decimals.

    No face or off-screen pins the score low, closed eyes slightly above that;
    otherwise the baseline is adjusted by gaze zone and the task-active bonus.
    """
    cfg = config or PulseConfig()
    if not point.face_present or point.off_screen:
        return round(cfg.engagement_no_face, 2)
    if point.eyes_closed:
        return round(cfg.engagement_eyes_closed, 2)

    score = cfg.engagement_baseline + gaze_adjustment(point.gaze)
    if task_active:
        score += cfg.task_active_bonus
    return round(min(1.0, max(0.0, score)), 2)
