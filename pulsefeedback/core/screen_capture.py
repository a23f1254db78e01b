import base64
import logging
import threading
from typing import Dict, Optional, Tuple

import cv2
import mss
import numpy as np


logger = logging.getLogger(__name__)

DATA_URL_PREFIX = "data:image/jpeg;base64,"


def encode_data_url(frame_bgr: np.ndarray, quality: int = 80) -> str:
    """JPEG-encode a BGR frame as a base64 data URL."""
    params = [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)]
    ok, buf = cv2.imencode(".jpg", np.ascontiguousarray(frame_bgr), params)
    if not ok:
        raise RuntimeError("JPEG encoding failed")
    return DATA_URL_PREFIX + base64.b64encode(buf.tobytes()).decode("ascii")


class ScreenCapturer:
    """
    Screen snapshot source for confusion captures.

    ``render`` is the callable handed to SnapshotTrigger: it grabs the chosen
    monitor (or an absolute ``(left, top, width, height)`` region) and returns
    a JPEG data URL, raising when nothing could be grabbed.
    """

    def __init__(self, monitor_index: int = 1, region: Optional[Tuple[int, int, int, int]] = None, quality: int = 80):
        self.monitor_index = monitor_index
        self.region = region
        self.quality = quality
        # mss handles must not cross threads
        self._per_thread = threading.local()

    def render(self) -> str:
        frame = self.grab()
        if frame is None:
            raise RuntimeError("Screen grab returned no frame")
        return encode_data_url(frame, self.quality)

    def grab(self) -> Optional[np.ndarray]:
        sct = self._screen()
        shot = sct.grab(self._bounds(sct))
        if shot is None:
            return None
        pixels = np.asarray(shot)
        if pixels.size == 0:
            return None
        return pixels[:, :, :3]  # drop alpha, mss returns BGRA

    def _screen(self):
        sct = getattr(self._per_thread, "sct", None)
        if sct is None:
            sct = mss.mss()
            self._per_thread.sct = sct
            logger.debug("[Capture] Opened screen grabber with %d monitor(s)", len(sct.monitors) - 1)
        return sct

    def _bounds(self, sct) -> Dict[str, int]:
        if self.region is not None:
            left, top, width, height = self.region
            return {"left": left, "top": top, "width": width, "height": height}
        monitors = sct.monitors
        # monitors[0] is the union of all screens; fall back to the primary
        index = self.monitor_index if 0 < self.monitor_index < len(monitors) else 1
        return monitors[index]
