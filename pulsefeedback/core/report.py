import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import pandas as pd

from .config import PulseConfig
from .engagement import engagement_score
from .numeric import clamp, round_half_up
from .types import Emotion, SessionPayload


logger = logging.getLogger(__name__)

DEFAULT_HEART_RATE = 75
DEFAULT_BREATH_RATE = 15
DEFAULT_PEAK_HEART_RATE = 80
MICRO_QUESTION = "Was any part of the task confusing?"


class Tone(str, Enum):
    POSITIVE = "Positive"
    MIXED = "Mixed"
    NEGATIVE = "Negative"


@dataclass(frozen=True)
class ReportScores:
    satisfaction: int
    ease: int
    clarity: int


@dataclass(frozen=True)
class StressMoment:
    t: float
    hr: int
    br: int


@dataclass(frozen=True)
class EngagementMoment:
    t: float
    eng: float


@dataclass(frozen=True)
class ReportMoments:
    stress: Tuple[StressMoment, ...]
    engagement_low: Tuple[EngagementMoment, ...]


@dataclass(frozen=True)
class Report:
    scores: ReportScores
    tone: Tone
    insights: Tuple[str, ...]
    moments: ReportMoments
    micro_question: Optional[str]
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scores": {
                "satisfaction": self.scores.satisfaction,
                "ease": self.scores.ease,
                "clarity": self.scores.clarity,
            },
            "tone": self.tone.value,
            "insights": list(self.insights),
            "moments": {
                "stress": [{"t": m.t, "hr": m.hr, "br": m.br} for m in self.moments.stress],
                "engagementLow": [{"t": m.t, "eng": m.eng} for m in self.moments.engagement_low],
            },
            "microQuestion": self.micro_question,
            "confidence": self.confidence,
        }


def compute_metrics(session: SessionPayload, config: Optional[PulseConfig] = None) -> pd.DataFrame:
    """One row per point with its engagement, task-active inside [task_start, task_end]."""
    cfg = config or PulseConfig()
    task_start, task_end = session.task_window()

    rows = []
    for point in session.points:
        task_active = (
            task_start is not None
            and task_end is not None
            and task_start <= point.timestamp <= task_end
        )
        rows.append(
            {
                "t": point.timestamp,
                "hr": point.heart_rate,
                "br": point.breath_rate,
                "gaze": point.gaze.value,
                "smile": point.smile_ratio,
                "emotion": point.emotion.value,
                "task_active": task_active,
                "engagement": engagement_score(point, task_active, cfg),
            }
        )
    df = pd.DataFrame(rows, columns=["t", "hr", "br", "gaze", "smile", "emotion", "task_active", "engagement"])
    df["hr"] = pd.to_numeric(df["hr"], errors="coerce")
    df["br"] = pd.to_numeric(df["br"], errors="coerce")
    return df


def _present(series: pd.Series) -> pd.Series:
    # Missing and zero readings both count as "no data"
    return series[series.notna() & (series != 0)]


class ReportGenerator:
    """Batch, post-hoc summary of one closed session."""

    def __init__(self, session: SessionPayload, config: Optional[PulseConfig] = None):
        self.session = session
        self.config = config or PulseConfig()

    def metrics(self) -> pd.DataFrame:
        return compute_metrics(self.session, self.config)

    def summarize(self) -> Optional[Report]:
        """Return the report, or None when the session holds no points."""
        df = self.metrics()
        if df.empty:
            return None

        avg_eng = float(df["engagement"].mean())
        min_eng = float(df["engagement"].min())

        hr = _present(df["hr"])
        br = _present(df["br"])
        has_hr = not hr.empty
        avg_hr = float(hr.mean()) if has_hr else DEFAULT_HEART_RATE
        avg_br = float(br.mean()) if not br.empty else DEFAULT_BREATH_RATE
        max_hr = int(hr.max()) if has_hr else DEFAULT_PEAK_HEART_RATE

        stress_index = clamp((avg_hr - 70) / 25 + (avg_br - 14) / 10, 0, 1)

        scores = ReportScores(
            satisfaction=int(clamp(round_half_up(1 + 4 * avg_eng), 1, 5)),
            ease=int(clamp(round_half_up(5 - 4 * stress_index), 1, 5)),
            clarity=int(clamp(round_half_up(2 + 3 * (1 - (1 - avg_eng) * 0.9)), 1, 5)),
        )

        counts = df["emotion"].value_counts()
        positives = int(counts.get(Emotion.POSITIVE.value, 0))
        frustration = int(counts.get(Emotion.FRUSTRATION.value, 0))
        negatives = int(counts.get(Emotion.NEGATIVE.value, 0)) + frustration
        concentration = int(counts.get(Emotion.CONCENTRATION.value, 0))
        confusion = int(counts.get(Emotion.CONFUSION.value, 0))
        tone = self._tone(positives, negatives, concentration, confusion, frustration)

        moments = self._moments(df)

        insights = [f"Average engagement was {round_half_up(avg_eng * 100)}%."]
        if stress_index > 0.55:
            insights.append("Signs of stress were elevated (HR/BR higher than baseline).")
        if min_eng < 0.45:
            insights.append("Engagement dropped at least once (possible confusion/boredom moment).")
        if has_hr:
            insights.append(f"Peak heart rate reached {max_hr} bpm during the session.")

        # Only ask when the signals are ambiguous enough to warrant it
        ask = stress_index > 0.65 or min_eng < 0.4
        micro_question = MICRO_QUESTION if ask else None

        if avg_eng > 0:
            variance = float(((df["engagement"] - avg_eng) ** 2).mean())
        else:
            variance = 1.0
        classified = positives + negatives + concentration + confusion
        tone_clarity = abs(positives - negatives) / classified if classified > 0 else 0.0
        confidence = clamp(1 - 2 * variance + 0.3 * tone_clarity, 0, 1)

        return Report(
            scores=scores,
            tone=tone,
            insights=tuple(insights[:3]),
            moments=moments,
            micro_question=micro_question,
            confidence=round(confidence, 2),
        )

    @staticmethod
    def _tone(positives: int, negatives: int, concentration: int, confusion: int, frustration: int) -> Tone:
        if positives > negatives * 1.2 and positives > confusion and positives > concentration:
            return Tone.POSITIVE
        if negatives > positives * 1.2 or frustration > positives:
            return Tone.NEGATIVE
        # Confusion-dominant sessions read as engagement with difficulty, not rejection
        return Tone.MIXED

    @staticmethod
    def _moments(df: pd.DataFrame) -> ReportMoments:
        vitals = pd.DataFrame(
            {
                "t": df["t"],
                "hr": df["hr"].fillna(DEFAULT_HEART_RATE),
                "br": df["br"].fillna(DEFAULT_BREATH_RATE),
            }
        )
        vitals["stress"] = (vitals["hr"] - 70) * 0.6 + (vitals["br"] - 14) * 1.2

        # mergesort is stable: ties keep session order
        top_stress = vitals.sort_values("stress", ascending=False, kind="mergesort").head(2)
        low_eng = df.sort_values("engagement", ascending=True, kind="mergesort").head(1)

        return ReportMoments(
            stress=tuple(
                StressMoment(t=float(row.t), hr=int(row.hr), br=int(row.br))
                for row in top_stress.itertuples(index=False)
            ),
            engagement_low=tuple(
                EngagementMoment(t=float(row.t), eng=float(row.engagement))
                for row in low_eng.itertuples(index=False)
            ),
        )

    def export_json(self, path: str) -> Optional[Report]:
        """Write ``{session, report, generatedAt}`` to ``path``."""
        report = self.summarize()
        document = {
            "session": self.session.to_dict(),
            "report": report.to_dict() if report is not None else None,
            "generatedAt": datetime.now(timezone.utc).isoformat(),
        }
        with open(path, "w", encoding="utf-8") as handle:
            json.dump(document, handle, indent=2)
        return report

    def export_excel(self, path: str) -> Optional[Report]:
        report = self.summarize()
        df = self.metrics()
        with pd.ExcelWriter(path) as writer:
            df.to_excel(writer, sheet_name="Points", index=False)
            emotions = df["emotion"].value_counts().rename_axis("emotion").reset_index(name="count")
            emotions.to_excel(writer, sheet_name="Emotions", index=False)
            meta_rows = [
                {"metric": "points", "value": len(df)},
                {"metric": "events", "value": len(self.session.events)},
                {"metric": "snapshots", "value": len(self.session.snapshots)},
            ]
            if report is not None:
                meta_rows.extend(
                    [
                        {"metric": "average_engagement", "value": round(float(df["engagement"].mean()), 2)},
                        {"metric": "satisfaction", "value": report.scores.satisfaction},
                        {"metric": "ease", "value": report.scores.ease},
                        {"metric": "clarity", "value": report.scores.clarity},
                        {"metric": "tone", "value": report.tone.value},
                        {"metric": "confidence", "value": report.confidence},
                        {"metric": "micro_question", "value": report.micro_question or ""},
                    ]
                )
            pd.DataFrame(meta_rows).to_excel(writer, sheet_name="Summary", index=False)
        logger.info("[Report] Excel report written to %s", path)
        return report


def generate_report(session: SessionPayload, config: Optional[PulseConfig] = None) -> Optional[Report]:
    return ReportGenerator(session, config).summarize()
