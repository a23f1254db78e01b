"""
Per-session analytics series and chart rendering.
"""
from typing import Optional

import pandas as pd
from matplotlib.figure import Figure

from .config import PulseConfig
from .engagement import engagement_score
from .types import SessionMode, SessionPayload


EMOTION_VALENCE = {
    "positive": 1.0,
    "neutral": 0.5,
    "negative": -0.5,
    "concentration": 0.3,
    "frustration": -0.3,
    "confusion": -0.2,
}

SMILE_SCALE = 3.0


class SessionAnalytics:
    """Time series and breakdowns for charting a session.

    Unlike the report, every point is scored with the task bonus whenever the
    session ran in task mode.
    """

    def __init__(self, session: SessionPayload, config: Optional[PulseConfig] = None):
        self.session = session
        self.config = config or PulseConfig()
        task_active = session.mode is SessionMode.TASK
        self.frame = pd.DataFrame(
            [
                {
                    "t": p.timestamp,
                    "gaze": p.gaze.value,
                    "emotion": p.emotion.value,
                    "smile": p.smile_ratio,
                    "engagement": engagement_score(p, task_active, self.config),
                }
                for p in session.points
            ],
            columns=["t", "gaze", "emotion", "smile", "engagement"],
        )

    def engagement_over_time(self) -> pd.Series:
        return pd.Series(self.frame["engagement"].values, index=self.frame["t"], name="engagement", dtype=float)

    def engagement_by_gaze(self) -> pd.Series:
        """Average engagement per gaze zone, highest first."""
        if self.frame.empty:
            return pd.Series(dtype=float, name="engagement")
        grouped = self.frame.groupby("gaze")["engagement"].mean()
        return grouped.sort_values(ascending=False, kind="mergesort")

    def emotion_over_time(self) -> pd.Series:
        values = self.frame["emotion"].map(EMOTION_VALENCE).fillna(0.0)
        return pd.Series(values.values, index=self.frame["t"], name="valence", dtype=float)

    def smile_over_time(self) -> pd.Series:
        return pd.Series((self.frame["smile"] / SMILE_SCALE).values, index=self.frame["t"], name="smile", dtype=float)

    def render(self, path: str, dpi: int = 100) -> None:
        """Save a 2x2 chart grid (engagement, gaze breakdown, valence, smile) to ``path``."""
        fig = Figure(figsize=(12, 8), dpi=dpi)
        ax_eng, ax_gaze, ax_emotion, ax_smile = (fig.add_subplot(2, 2, i) for i in range(1, 5))

        eng = self.engagement_over_time()
        ax_eng.plot(eng.index, eng.values, linewidth=2)
        ax_eng.set_title("Engagement over time")
        ax_eng.set_ylim(0, 1.1)
        ax_eng.set_xlabel("t (s)")

        by_gaze = self.engagement_by_gaze()
        labels = [label.replace("-", " ").title() for label in by_gaze.index]
        ax_gaze.bar(labels, by_gaze.values)
        ax_gaze.set_title("Average engagement by gaze")
        ax_gaze.tick_params(axis="x", labelrotation=45)

        valence = self.emotion_over_time()
        ax_emotion.plot(valence.index, valence.values, linewidth=2, color="tab:orange")
        ax_emotion.set_title("Emotion valence over time")
        ax_emotion.set_xlabel("t (s)")

        smile = self.smile_over_time()
        ax_smile.plot(smile.index, smile.values, linewidth=2, color="tab:green")
        ax_smile.set_title("Smile (normalized)")
        ax_smile.set_xlabel("t (s)")

        fig.tight_layout()
        fig.savefig(path)
