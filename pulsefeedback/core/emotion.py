from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional

from .config import PulseConfig
from .types import Emotion, FeatureSample


@dataclass(frozen=True)
class EmotionHistoryEntry:
    timestamp: float
    emotion: Emotion
    smile_ratio: float


def instantaneous_emotion(sample: FeatureSample, config: Optional[PulseConfig] = None) -> Emotion:
    """Label for a single sample, before any history is taken into account."""
    cfg = config or PulseConfig()
    if not sample.face_present:
        return Emotion.NEUTRAL
    if sample.eyebrow_raised:
        return Emotion.CONFUSION
    if sample.smile_ratio > cfg.smile_positive:
        return Emotion.POSITIVE
    if sample.smile_ratio < cfg.smile_frown:
        # A frown reads as focus until it has persisted long enough
        return Emotion.CONCENTRATION
    return Emotion.NEUTRAL


class EmotionClassifier:
    """
    Windowed emotion classifier for one session.

    Keeps the trailing ``emotion_window_sec`` of instantaneous labels and
    escalates a sustained frown (``frustration_ticks`` low-smile entries in the
    window) from concentration to frustration.
    """

    def __init__(self, config: Optional[PulseConfig] = None):
        self.config = config or PulseConfig()
        self.history: Deque[EmotionHistoryEntry] = deque()

    def classify(self, sample: FeatureSample, timestamp: float) -> Emotion:
        cfg = self.config
        label = instantaneous_emotion(sample, cfg)

        self.history.append(EmotionHistoryEntry(timestamp, label, sample.smile_ratio))
        self._purge(timestamp)

        if label is Emotion.CONCENTRATION:
            sustained = sum(
                1
                for entry in self.history
                if entry.emotion is Emotion.CONCENTRATION
                or (entry.smile_ratio < cfg.smile_frown and entry.emotion is not Emotion.POSITIVE)
            )
            if sustained >= cfg.frustration_ticks:
                return Emotion.FRUSTRATION
        return label

    def reset(self) -> None:
        self.history.clear()

    def _purge(self, now: float) -> None:
        window = self.config.emotion_window_sec
        # Entries are appended in tick order, so the oldest sit at the left
        while self.history and now - self.history[0].timestamp >= window:
            self.history.popleft()
