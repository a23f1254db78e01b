"""
Feature extraction tests.

Synthetic landmarks with known geometry drive gaze, eyes-closed, smile and
eyebrow detection; a fake clock drives the off-screen timer.
"""

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import unittest

import numpy as np

from pulsefeedback.core import face_mesh_analyzer as fm
from pulsefeedback.core.face_mesh_analyzer import FeatureExtractor, classify_gaze
from pulsefeedback.core.types import GazeZone
from tests.fixtures.synthetic_landmarks import FakeClock, make_landmarks


class TestClassifyGaze(unittest.TestCase):
    """Ratio to zone mapping."""

    def test_upper_center(self):
        self.assertEqual(classify_gaze(0.5, 0.2), GazeZone.UPPER_CENTER)

    def test_lower_right(self):
        self.assertEqual(classify_gaze(0.9, 0.9), GazeZone.LOWER_RIGHT)

    def test_middle_row(self):
        self.assertEqual(classify_gaze(0.1, 0.5), GazeZone.LEFT)
        self.assertEqual(classify_gaze(0.5, 0.5), GazeZone.CENTER)
        self.assertEqual(classify_gaze(0.8, 0.5), GazeZone.RIGHT)

    def test_split_values_fall_in_middle(self):
        """Exactly 0.35 / 0.65 are not strictly beyond the splits."""
        self.assertEqual(classify_gaze(0.35, 0.65), GazeZone.CENTER)

    def test_missing_ratio_is_unknown(self):
        self.assertEqual(classify_gaze(None, 0.5), GazeZone.UNKNOWN)
        self.assertEqual(classify_gaze(0.5, None), GazeZone.UNKNOWN)


class TestFeatureExtractor(unittest.TestCase):
    """Extraction from a full refined landmark set."""

    def setUp(self):
        self.clock = FakeClock()
        self.extractor = FeatureExtractor(clock=self.clock)

    def test_open_eyes_centered_gaze(self):
        sample = self.extractor.extract(make_landmarks(), timestamp=1.5)
        self.assertTrue(sample.face_present)
        self.assertFalse(sample.off_screen)
        self.assertFalse(sample.eyes_closed)
        self.assertEqual(sample.gaze, GazeZone.CENTER)
        self.assertEqual(sample.timestamp, 1.5)

    def test_iris_up_reads_upper_center(self):
        sample = self.extractor.extract(make_landmarks(iris_h=0.5, iris_v=0.2))
        self.assertEqual(sample.gaze, GazeZone.UPPER_CENTER)

    def test_iris_down_right_reads_lower_right(self):
        sample = self.extractor.extract(make_landmarks(iris_h=0.9, iris_v=0.9))
        self.assertEqual(sample.gaze, GazeZone.LOWER_RIGHT)

    def test_both_eyes_closed(self):
        sample = self.extractor.extract(make_landmarks(left_open=0.1, right_open=0.1))
        self.assertTrue(sample.eyes_closed)

    def test_one_eye_closed_is_not_eyes_closed(self):
        """A wink or squint on one side does not count."""
        sample = self.extractor.extract(make_landmarks(left_open=0.1, right_open=0.3))
        self.assertFalse(sample.eyes_closed)

    def test_smile_ratio_rounded(self):
        sample = self.extractor.extract(make_landmarks(mouth_width=0.12, mouth_open=0.04))
        self.assertEqual(sample.smile_ratio, 3.0)
        sample = self.extractor.extract(make_landmarks(mouth_width=0.06, mouth_open=0.05))
        self.assertEqual(sample.smile_ratio, 1.2)

    def test_eyebrow_raised_on_either_side(self):
        self.assertFalse(self.extractor.extract(make_landmarks()).eyebrow_raised)
        self.assertTrue(self.extractor.extract(make_landmarks(left_brow_gap=0.03)).eyebrow_raised)
        self.assertTrue(self.extractor.extract(make_landmarks(right_brow_gap=0.03)).eyebrow_raised)

    def test_accepts_list_of_tuples(self):
        landmarks = [tuple(row) for row in make_landmarks()]
        sample = self.extractor.extract(landmarks)
        self.assertTrue(sample.face_present)
        self.assertEqual(sample.gaze, GazeZone.CENTER)

    def test_non_finite_eye_points_keep_face_present(self):
        lm = make_landmarks()
        lm[fm.LEFT_EYE_OUTER] = np.nan
        sample = self.extractor.extract(lm)
        self.assertTrue(sample.face_present)
        self.assertFalse(sample.eyes_closed)
        self.assertEqual(sample.gaze, GazeZone.UNKNOWN)
        self.assertEqual(sample.smile_ratio, 0.0)


class TestFaceAbsence(unittest.TestCase):
    """Missing or partial landmark sets and the off-screen timer."""

    def setUp(self):
        self.clock = FakeClock()
        self.extractor = FeatureExtractor(clock=self.clock)

    def test_none_is_face_absent(self):
        sample = self.extractor.extract(None)
        self.assertFalse(sample.face_present)
        self.assertFalse(sample.eyes_closed)
        self.assertEqual(sample.gaze, GazeZone.UNKNOWN)
        self.assertEqual(sample.smile_ratio, 0.0)

    def test_too_few_landmarks_is_face_absent(self):
        sample = self.extractor.extract(make_landmarks()[:468])
        self.assertFalse(sample.face_present)

    def test_off_screen_after_grace_period(self):
        self.extractor.extract(make_landmarks())
        self.clock.advance(0.5)
        self.assertFalse(self.extractor.extract(None).off_screen)
        self.clock.advance(0.2)
        self.assertTrue(self.extractor.extract(None).off_screen)

    def test_face_seen_resets_off_screen_timer(self):
        self.clock.advance(1.0)
        self.assertTrue(self.extractor.extract(None).off_screen)
        self.extractor.extract(make_landmarks())
        self.clock.advance(0.3)
        self.assertFalse(self.extractor.extract(None).off_screen)


if __name__ == "__main__":
    unittest.main()
