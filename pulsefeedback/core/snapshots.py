import logging
import math
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .config import PulseConfig
from .types import Snapshot, SnapshotKind


logger = logging.getLogger(__name__)

SNAPSHOT_LABEL = "confusion_candidate"


@dataclass
class SnapshotLog:
    """Per-session snapshot buffer and cooldown timestamp."""

    snapshots: List[Snapshot] = field(default_factory=list)
    last_capture_at: Optional[float] = None

    def reset(self) -> None:
        self.snapshots = []
        self.last_capture_at = None


class SnapshotTrigger:
    """
    Rate-limited snapshot capture.

    Past the per-session cap or inside the cooldown a call is a silent no-op.
    A failing render is logged and swallowed; it does not consume the cooldown.
    """

    def __init__(
        self,
        render: Callable[[], str],
        config: Optional[PulseConfig] = None,
        kind: SnapshotKind = SnapshotKind.SCREEN,
        label: str = SNAPSHOT_LABEL,
    ):
        self.render = render
        self.config = config or PulseConfig()
        self.kind = kind
        self.label = label

    def try_capture(self, log: SnapshotLog, timestamp: float) -> Optional[Snapshot]:
        cfg = self.config
        if len(log.snapshots) >= cfg.max_snapshots:
            return None
        if log.last_capture_at is not None and timestamp - log.last_capture_at < cfg.snapshot_cooldown_sec:
            return None

        try:
            image_data = self.render()
        except Exception as exc:
            logger.warning("[Capture] Snapshot render failed at t=%.1f: %s", timestamp, exc)
            return None

        snapshot = Snapshot(
            image_id=f"snap_{math.floor(timestamp)}_{len(log.snapshots) + 1}",
            timestamp=round(timestamp, 1),
            kind=self.kind,
            image_data=image_data,
            label=self.label,
        )
        log.snapshots.append(snapshot)
        log.last_capture_at = timestamp
        logger.info("[Capture] Snapshot %s captured (%d/%d)", snapshot.image_id, len(log.snapshots), cfg.max_snapshots)
        return snapshot
