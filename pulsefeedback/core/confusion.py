from typing import Optional

from .config import PulseConfig
from .engagement import engagement_score
from .types import Emotion, MetricPoint


NEGATIVE_EMOTIONS = (Emotion.NEGATIVE, Emotion.FRUSTRATION)


def is_confusion_candidate(
    point: MetricPoint,
    task_active: bool,
    eyes_closed_duration: float = 0.0,
    engagement: Optional[float] = None,
    config: Optional[PulseConfig] = None,
) -> bool:
    """
    True when a tick warrants a snapshot: low engagement, a negative emotion,
    the user off-screen, or eyes closed for longer than the configured duration.

    ``engagement`` may be passed in when the caller already scored the point;
    otherwise it is computed from ``point`` and ``task_active``. Rate limiting
    of the resulting captures is the capture trigger's job, not this one.
    """
    cfg = config or PulseConfig()
    if engagement is None:
        engagement = engagement_score(point, task_active, cfg)

    if engagement < cfg.confusion_engagement:
        return True
    if point.emotion in NEGATIVE_EMOTIONS:
        return True
    if point.off_screen:
        return True
    if point.eyes_closed and eyes_closed_duration > cfg.eyes_closed_confusion_sec:
        return True
    return False
