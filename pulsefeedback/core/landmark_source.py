import logging
from typing import List, Optional

import cv2
import mediapipe as mp
import numpy as np

from .types import Landmark


logger = logging.getLogger(__name__)


class FaceLandmarkSource:
    """
    Wrapper around MediaPipe face mesh with refined (iris) landmarks.

    Returns the first face's 478 normalized (x, y, z) landmarks, or None when
    no face is found or the detector fails on a frame.
    """

    def __init__(self, min_detection_confidence: float = 0.5, min_tracking_confidence: float = 0.5):
        self.mp_face_mesh = mp.solutions.face_mesh
        self.face_mesh = self.mp_face_mesh.FaceMesh(
            static_image_mode=False,
            max_num_faces=1,
            refine_landmarks=True,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )

    def detect(self, frame_bgr: Optional[np.ndarray]) -> Optional[List[Landmark]]:
        if frame_bgr is None or frame_bgr.size == 0:
            return None
        try:
            frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
            results = self.face_mesh.process(frame_rgb)
        except Exception as exc:
            logger.warning("[Landmarks] Face mesh failed on frame: %s", exc)
            return None

        if not results.multi_face_landmarks:
            return None
        face = results.multi_face_landmarks[0]
        return [(lm.x, lm.y, lm.z) for lm in face.landmark]

    def close(self) -> None:
        self.face_mesh.close()
