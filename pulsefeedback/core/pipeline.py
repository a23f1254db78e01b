import logging
import math
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from .config import PulseConfig
from .confusion import is_confusion_candidate
from .emotion import EmotionClassifier
from .engagement import engagement_score
from .logger import PointLogger
from .numeric import round_half_up
from .snapshots import SnapshotLog, SnapshotTrigger
from .types import (
    EventType,
    FeatureSample,
    MetricPoint,
    SessionEvent,
    SessionMode,
    SessionPayload,
)


logger = logging.getLogger(__name__)


class LatestFeatureCell:
    """
    Single-slot holder for the most recent FeatureSample.

    The landmark loop publishes at its own rate; the 1 Hz sampler only ever
    reads the latest value and intermediate samples are dropped.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._sample: Optional[FeatureSample] = None
        self._published_at = 0.0

    def publish(self, sample: FeatureSample) -> None:
        with self._lock:
            self._sample = sample
            self._published_at = self._clock()

    def latest(self, max_age: Optional[float] = None) -> Optional[FeatureSample]:
        with self._lock:
            if self._sample is None:
                return None
            if max_age is not None and self._clock() - self._published_at > max_age:
                return None
            return self._sample

    def clear(self) -> None:
        with self._lock:
            self._sample = None


def synthetic_vitals(t: float, task_playing: bool = False) -> Tuple[int, int]:
    """Deterministic heart/breath rate placeholders. Not real biometrics."""
    boost = 1 if task_playing else 0
    hr = 75 + round_half_up(10 * math.sin(t / 2)) + boost * 4
    br = 15 + round_half_up(2 * math.sin(t / 3)) + boost
    return hr, br


@dataclass
class SessionContext:
    """All mutable state of one session; nothing is kept at module level."""

    mode: SessionMode
    started_at: str
    classifier: EmotionClassifier
    events: List[SessionEvent] = field(default_factory=list)
    points: List[MetricPoint] = field(default_factory=list)
    snapshot_log: SnapshotLog = field(default_factory=SnapshotLog)
    eyes_closed_start: Optional[float] = None
    task_playing: bool = False
    task_started_at: Optional[float] = None
    running: bool = True


class SessionSampler:
    """
    Fixed-rate (1 Hz) session coordinator.

    Each tick reads the latest feature sample, classifies emotion, assembles an
    immutable MetricPoint, runs the confusion check (capturing a snapshot when
    a trigger is attached) and appends the point to the session buffer.
    """

    def __init__(
        self,
        cell: LatestFeatureCell,
        config: Optional[PulseConfig] = None,
        snapshot_trigger: Optional[SnapshotTrigger] = None,
        point_logger: Optional[PointLogger] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.cell = cell
        self.config = config or PulseConfig()
        self.snapshot_trigger = snapshot_trigger
        self.point_logger = point_logger
        self._clock = clock
        self._start_clock: Optional[float] = None
        self._last_tick_clock: Optional[float] = None
        self.context: Optional[SessionContext] = None

    # ----------------------------
    # Session lifecycle
    # ----------------------------

    @property
    def running(self) -> bool:
        return self.context is not None and self.context.running

    def start(self, mode: SessionMode = SessionMode.TASK) -> SessionContext:
        """Open a new session, discarding all state from the previous one."""
        ctx = self.context = SessionContext(
            mode=SessionMode(mode),
            started_at=datetime.now(timezone.utc).isoformat(),
            classifier=EmotionClassifier(self.config),
        )
        self.cell.clear()
        self._start_clock = self._clock()
        self._last_tick_clock = None
        if ctx.mode is SessionMode.ACTIVITY:
            self._push_event(ctx, 0.0, EventType.ACTIVITY_START, "Activity tracking started")
        logger.info("[Sampler] Session started (mode=%s)", ctx.mode.value)
        return ctx

    def stop(self, timestamp: Optional[float] = None) -> Optional[SessionContext]:
        """Close the session. Points, events and snapshots already recorded are kept."""
        ctx = self.context
        if ctx is None or not ctx.running:
            return ctx
        t = self.now() if timestamp is None else timestamp
        if ctx.mode is SessionMode.ACTIVITY:
            self._push_event(ctx, t, EventType.ACTIVITY_END, "Activity tracking stopped")
        elif ctx.task_playing:
            self._push_event(ctx, t, EventType.TASK_END, "Task ended with session")
        ctx.task_playing = False
        ctx.running = False
        ctx.classifier.reset()
        ctx.eyes_closed_start = None
        logger.info("[Sampler] Session stopped after %d point(s), %d snapshot(s)",
                    len(ctx.points), len(ctx.snapshot_log.snapshots))
        return ctx

    def start_task(self, timestamp: Optional[float] = None, note: str = "Task started") -> None:
        ctx = self._require_running()
        if ctx.task_playing:
            return
        t = self.now() if timestamp is None else timestamp
        ctx.task_playing = True
        ctx.task_started_at = t
        self._push_event(ctx, t, EventType.TASK_START, note)

    def end_task(self, timestamp: Optional[float] = None, note: str = "Task ended") -> None:
        ctx = self._require_running()
        if not ctx.task_playing:
            return
        t = self.now() if timestamp is None else timestamp
        ctx.task_playing = False
        self._push_event(ctx, t, EventType.TASK_END, note)

    def mark_spike(self, note: Optional[str] = None, timestamp: Optional[float] = None) -> None:
        ctx = self._require_running()
        t = self.now() if timestamp is None else timestamp
        self._push_event(ctx, t, EventType.SPIKE, note)

    def now(self) -> float:
        """Seconds since the session started."""
        if self._start_clock is None:
            return 0.0
        return self._clock() - self._start_clock

    # ----------------------------
    # Sampling
    # ----------------------------

    def poll(self) -> Optional[MetricPoint]:
        """Tick if a sample period has elapsed since the last tick; never blocks."""
        if not self.running:
            return None
        now = self._clock()
        if self._last_tick_clock is not None and now - self._last_tick_clock < self.config.sample_period_sec:
            return None
        self._last_tick_clock = now
        return self.tick()

    def tick(self, timestamp: Optional[float] = None) -> Optional[MetricPoint]:
        """Record one point; a tick not later than the previous point is dropped."""
        ctx = self.context
        if ctx is None or not ctx.running:
            return None
        cfg = self.config
        t = self.now() if timestamp is None else timestamp
        if ctx.points and round(t, 1) <= ctx.points[-1].timestamp:
            logger.debug("[Sampler] Dropped tick at t=%.1f, not after t=%.1f", t, ctx.points[-1].timestamp)
            return None

        sample = self.cell.latest(max_age=cfg.feature_stale_after_sec) or FeatureSample(timestamp=t)

        if sample.eyes_closed:
            if ctx.eyes_closed_start is None:
                ctx.eyes_closed_start = t
        else:
            ctx.eyes_closed_start = None
        eyes_closed_duration = t - ctx.eyes_closed_start if ctx.eyes_closed_start is not None else 0.0

        emotion = ctx.classifier.classify(sample, t)
        hr, br = synthetic_vitals(t, ctx.task_playing)

        video_time = None
        if ctx.task_playing and ctx.task_started_at is not None:
            video_time = round(t - ctx.task_started_at, 2)

        point = MetricPoint(
            timestamp=round(t, 1),
            face_present=sample.face_present,
            off_screen=sample.off_screen,
            eyes_closed=sample.eyes_closed,
            gaze=sample.gaze,
            smile_ratio=round(sample.smile_ratio, 2),
            emotion=emotion,
            eyebrow_raised=sample.eyebrow_raised,
            heart_rate=hr,
            breath_rate=br,
            video_time=video_time,
        )

        task_active = self.task_active()
        engagement = engagement_score(point, task_active, cfg)
        if is_confusion_candidate(point, task_active, eyes_closed_duration, engagement, cfg):
            logger.debug("[Sampler] Confusion candidate at t=%.1f (engagement=%.2f, emotion=%s)",
                         t, engagement, emotion.value)
            if self.snapshot_trigger is not None:
                self.snapshot_trigger.try_capture(ctx.snapshot_log, t)

        ctx.points.append(point)
        if self.point_logger is not None:
            self.point_logger.log_point(point, engagement)
        return point

    def task_active(self) -> bool:
        ctx = self.context
        if ctx is None:
            return False
        return ctx.mode is SessionMode.ACTIVITY or ctx.task_playing

    # ----------------------------
    # Output
    # ----------------------------

    def payload(self, notes: Optional[str] = None) -> Optional[SessionPayload]:
        ctx = self.context
        if ctx is None:
            return None
        return SessionPayload(
            started_at=ctx.started_at,
            mode=ctx.mode,
            events=list(ctx.events),
            points=list(ctx.points),
            snapshots=list(ctx.snapshot_log.snapshots[: self.config.max_snapshots]),
            notes=notes,
        )

    @staticmethod
    def _push_event(ctx: SessionContext, t: float, event_type: EventType, note: Optional[str] = None) -> None:
        ctx.events.append(SessionEvent(round(t, 1), event_type, note))
        logger.debug("[Sampler] Event %s at t=%.1f", event_type.value, t)

    def _require_running(self) -> SessionContext:
        if self.context is None or not self.context.running:
            raise RuntimeError("No session is running")
        return self.context
