from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


Landmark = Tuple[float, ...]


class GazeZone(str, Enum):
    UPPER_LEFT = "upper-left"
    UPPER_CENTER = "upper-center"
    UPPER_RIGHT = "upper-right"
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    LOWER_LEFT = "lower-left"
    LOWER_CENTER = "lower-center"
    LOWER_RIGHT = "lower-right"
    UNKNOWN = "unknown"


class Emotion(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    # Checked by confusion and tone logic, never produced by the classifier.
    NEGATIVE = "negative"
    CONCENTRATION = "concentration"
    FRUSTRATION = "frustration"
    CONFUSION = "confusion"


class EventType(str, Enum):
    TASK_START = "task_start"
    TASK_END = "task_end"
    ACTIVITY_START = "activity_start"
    ACTIVITY_END = "activity_end"
    SPIKE = "spike"


class SessionMode(str, Enum):
    TASK = "task"
    ACTIVITY = "activity"


class SnapshotKind(str, Enum):
    SCREEN = "screen"
    WEBCAM = "webcam"


@dataclass(frozen=True)
class FeatureSample:
    """One frame's worth of derived facial signals."""

    timestamp: float = 0.0
    face_present: bool = False
    off_screen: bool = False
    eyes_closed: bool = False
    gaze: GazeZone = GazeZone.UNKNOWN
    smile_ratio: float = 0.0
    eyebrow_raised: bool = False


@dataclass(frozen=True)
class MetricPoint:
    timestamp: float
    face_present: bool
    off_screen: bool
    eyes_closed: bool
    gaze: GazeZone
    smile_ratio: float
    emotion: Emotion
    eyebrow_raised: bool = False
    heart_rate: Optional[int] = None
    breath_rate: Optional[int] = None
    video_time: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"t": self.timestamp}
        if self.video_time is not None:
            data["videoTime"] = self.video_time
        if self.heart_rate is not None:
            data["hr"] = self.heart_rate
        if self.breath_rate is not None:
            data["br"] = self.breath_rate
        data.update(
            {
                "facePresent": self.face_present,
                "offScreen": self.off_screen,
                "eyesClosed": self.eyes_closed,
                "gaze": self.gaze.value,
                "smile": self.smile_ratio,
                "emotion": self.emotion.value,
                "eyebrowRaised": self.eyebrow_raised,
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MetricPoint":
        hr = data.get("hr")
        br = data.get("br")
        video_time = data.get("videoTime")
        return cls(
            timestamp=float(data["t"]),
            face_present=bool(data.get("facePresent", False)),
            off_screen=bool(data.get("offScreen", False)),
            eyes_closed=bool(data.get("eyesClosed", False)),
            gaze=GazeZone(data.get("gaze", GazeZone.UNKNOWN.value)),
            smile_ratio=float(data.get("smile", 0.0)),
            emotion=Emotion(data.get("emotion", Emotion.NEUTRAL.value)),
            eyebrow_raised=bool(data.get("eyebrowRaised", False)),
            heart_rate=int(hr) if hr is not None else None,
            breath_rate=int(br) if br is not None else None,
            video_time=float(video_time) if video_time is not None else None,
        )


@dataclass(frozen=True)
class SessionEvent:
    timestamp: float
    type: EventType
    note: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"t": self.timestamp, "type": self.type.value}
        if self.note is not None:
            data["note"] = self.note
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionEvent":
        return cls(timestamp=float(data["t"]), type=EventType(data["type"]), note=data.get("note"))


@dataclass(frozen=True)
class Snapshot:
    image_id: str
    timestamp: float
    kind: SnapshotKind
    image_data: str
    label: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "imageId": self.image_id,
            "t": self.timestamp,
            "kind": self.kind.value,
            "dataUrl": self.image_data,
        }
        if self.label is not None:
            data["label"] = self.label
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Snapshot":
        return cls(
            image_id=str(data["imageId"]),
            timestamp=float(data["t"]),
            kind=SnapshotKind(data["kind"]),
            image_data=str(data["dataUrl"]),
            label=data.get("label"),
        )


@dataclass
class SessionPayload:
    """Unit exchanged with storage, the report generator and the ask client."""

    started_at: str
    mode: SessionMode = SessionMode.TASK
    events: List[SessionEvent] = field(default_factory=list)
    points: List[MetricPoint] = field(default_factory=list)
    snapshots: List[Snapshot] = field(default_factory=list)
    notes: Optional[str] = None
    task: Optional[Dict[str, Any]] = None

    def task_window(self) -> Tuple[Optional[float], Optional[float]]:
        """First task_start and first task_end timestamps, if recorded."""
        start = next((e.timestamp for e in self.events if e.type == EventType.TASK_START), None)
        end = next((e.timestamp for e in self.events if e.type == EventType.TASK_END), None)
        return start, end

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "startedAt": self.started_at,
            "mode": self.mode.value,
            "events": [e.to_dict() for e in self.events],
            "points": [p.to_dict() for p in self.points],
            "snapshots": [s.to_dict() for s in self.snapshots],
        }
        if self.task is not None:
            data["task"] = self.task
        if self.notes is not None:
            data["notes"] = self.notes
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionPayload":
        if not isinstance(data, dict):
            raise TypeError(f"Session payload must be an object, got {type(data).__name__}")
        if not isinstance(data.get("points"), list) or not isinstance(data.get("events"), list):
            raise ValueError("Session payload requires 'points' and 'events' lists")
        return cls(
            started_at=str(data["startedAt"]),
            mode=SessionMode(data.get("mode") or SessionMode.TASK.value),
            events=[SessionEvent.from_dict(e) for e in data["events"]],
            points=[MetricPoint.from_dict(p) for p in data["points"]],
            snapshots=[Snapshot.from_dict(s) for s in data.get("snapshots") or []],
            notes=data.get("notes"),
            task=data.get("task"),
        )
