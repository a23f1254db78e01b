import json
import logging
import os
import tempfile
from typing import Optional

from .config import PulseConfig
from .types import SessionPayload


logger = logging.getLogger(__name__)


class SessionStore:
    """
    Single-slot JSON store for the last session.

    Last write wins; there is no history and no versioning. Anything that
    cannot be read back as a well-formed payload loads as None.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path or PulseConfig().session_slot_path

    def save(self, payload: SessionPayload) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        # Write to a sibling temp file first so a crash never leaves half a slot
        fd, tmp_path = tempfile.mkstemp(prefix=".session_", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload.to_dict(), handle)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        logger.info("[Store] Saved session with %d point(s) to %s", len(payload.points), self.path)

    def load(self) -> Optional[SessionPayload]:
        if not os.path.exists(self.path):
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                raw = json.load(handle)
            return SessionPayload.from_dict(raw)
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("[Store] Could not load session from %s: %s", self.path, exc)
            return None

    def clear(self) -> None:
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass


def load_session_file(path: str) -> Optional[SessionPayload]:
    """Load a payload from an arbitrary JSON file (e.g. a downloaded session)."""
    return SessionStore(path).load()
