import os
from dataclasses import dataclass


@dataclass
class PulseConfig:
    """Tunable thresholds for the signal-to-metric pipeline.

    The defaults are hand-tuned heuristics; keep them as-is unless you are
    deliberately re-tuning the pipeline against recorded sessions.
    """

    # Landmark source
    min_landmarks: int = 478  # refined face mesh incl. iris points
    off_screen_after_sec: float = 0.6

    # Feature extraction
    eye_closed_ratio: float = 0.18
    gaze_low_split: float = 0.35
    gaze_high_split: float = 0.65
    eyebrow_raise_gap: float = 0.015

    # Emotion classification
    smile_positive: float = 2.2
    smile_frown: float = 1.8
    emotion_window_sec: float = 10.0
    frustration_ticks: int = 5

    # Engagement scoring
    engagement_baseline: float = 0.55
    engagement_no_face: float = 0.10
    engagement_eyes_closed: float = 0.20
    task_active_bonus: float = 0.10

    # Confusion detection / snapshots
    confusion_engagement: float = 0.35
    eyes_closed_confusion_sec: float = 1.0
    snapshot_cooldown_sec: float = 3.0
    max_snapshots: int = 25

    # Sampling
    sample_period_sec: float = 1.0
    feature_stale_after_sec: float = 2.0

    # Storage
    session_slot_path: str = os.path.join(os.path.expanduser("~"), ".pulsefeedback", "last_session.json")

    # Ask (LLM)
    llm_endpoint: str = "https://api.openai.com/v1/chat/completions"
    llm_model: str = "gpt-4o-mini"
    llm_temperature: float = 0.7
    llm_max_tokens: int = 2000
    llm_sample_points: int = 10
    llm_timeout_sec: float = 60.0
