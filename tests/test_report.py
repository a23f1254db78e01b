"""
Report generator tests: scores, tone, insights, moments and exports.
"""

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import importlib.util
import json
import tempfile
import unittest

from pulsefeedback.core.report import MICRO_QUESTION, ReportGenerator, Tone, generate_report
from pulsefeedback.core.types import (
    Emotion,
    EventType,
    GazeZone,
    MetricPoint,
    SessionEvent,
    SessionMode,
    SessionPayload,
)


def _point(t, emotion=Emotion.NEUTRAL, gaze=GazeZone.CENTER, face=True, hr=None, br=None):
    return MetricPoint(
        timestamp=float(t),
        face_present=face,
        off_screen=False,
        eyes_closed=False,
        gaze=gaze,
        smile_ratio=2.0,
        emotion=emotion,
        heart_rate=hr,
        breath_rate=br,
    )


def _session(points, task_window=None, mode=SessionMode.TASK):
    events = []
    if task_window is not None:
        events = [
            SessionEvent(task_window[0], EventType.TASK_START),
            SessionEvent(task_window[1], EventType.TASK_END),
        ]
    return SessionPayload(started_at="2026-01-01T00:00:00+00:00", mode=mode, events=events, points=points)


class TestReportScores(unittest.TestCase):

    def test_empty_session_has_no_report(self):
        self.assertIsNone(generate_report(_session([])))

    def test_single_point_is_in_range(self):
        report = generate_report(_session([_point(0)]))
        for score in (report.scores.satisfaction, report.scores.ease, report.scores.clarity):
            self.assertTrue(1 <= score <= 5)
        self.assertTrue(0.0 <= report.confidence <= 1.0)

    def test_steady_engaged_session(self):
        """Sixty engaged, smiling points inside the task window."""
        points = [_point(t, emotion=Emotion.POSITIVE, hr=75, br=15) for t in range(60)]
        report = generate_report(_session(points, task_window=(0.0, 59.0)))

        # 1 + 4 * 0.85 = 4.4
        self.assertEqual(report.scores.satisfaction, 4)
        self.assertEqual(report.scores.ease, 4)
        self.assertEqual(report.scores.clarity, 5)
        self.assertEqual(report.tone, Tone.POSITIVE)
        self.assertIsNone(report.micro_question)
        self.assertEqual(report.confidence, 1.0)
        self.assertEqual(
            report.insights,
            ("Average engagement was 85%.", "Peak heart rate reached 75 bpm during the session."),
        )

    def test_task_bonus_only_inside_window(self):
        points = [_point(t) for t in range(5)]
        df = ReportGenerator(_session(points, task_window=(1.0, 3.0))).metrics()
        self.assertEqual(list(df["task_active"]), [False, True, True, True, False])
        self.assertEqual(list(df["engagement"]), [0.75, 0.85, 0.85, 0.85, 0.75])

    def test_no_task_window_means_no_bonus(self):
        df = ReportGenerator(_session([_point(0), _point(1)])).metrics()
        self.assertFalse(df["task_active"].any())


class TestReportTone(unittest.TestCase):

    def test_mostly_positive(self):
        points = [_point(t, emotion=Emotion.POSITIVE) for t in range(8)]
        points += [_point(t, emotion=Emotion.NEUTRAL) for t in range(8, 10)]
        self.assertEqual(generate_report(_session(points)).tone, Tone.POSITIVE)

    def test_frustration_dominant(self):
        points = [_point(t, emotion=Emotion.FRUSTRATION) for t in range(6)]
        points += [_point(t, emotion=Emotion.POSITIVE) for t in range(6, 8)]
        self.assertEqual(generate_report(_session(points)).tone, Tone.NEGATIVE)

    def test_confusion_dominant_is_mixed(self):
        points = [_point(t, emotion=Emotion.CONFUSION) for t in range(6)]
        points += [_point(t, emotion=Emotion.POSITIVE) for t in range(6, 8)]
        self.assertEqual(generate_report(_session(points)).tone, Tone.MIXED)

    def test_all_neutral_is_mixed(self):
        points = [_point(t) for t in range(5)]
        self.assertEqual(generate_report(_session(points)).tone, Tone.MIXED)


class TestReportInsights(unittest.TestCase):

    def test_no_heart_rate_skips_peak_insight(self):
        report = generate_report(_session([_point(t) for t in range(3)]))
        self.assertFalse(any("Peak heart rate" in line for line in report.insights))

    def test_insights_capped_at_three(self):
        points = [_point(t, face=False, hr=100, br=25) for t in range(4)]
        report = generate_report(_session(points))
        self.assertEqual(len(report.insights), 3)
        self.assertTrue(report.insights[0].startswith("Average engagement was 10%"))
        self.assertIn("Signs of stress", report.insights[1])
        self.assertIn("Engagement dropped", report.insights[2])
        self.assertEqual(report.scores.ease, 1)

    def test_low_engagement_asks_micro_question(self):
        points = [_point(0), _point(1, face=False)]
        self.assertEqual(generate_report(_session(points)).micro_question, MICRO_QUESTION)


class TestReportMoments(unittest.TestCase):

    def test_ties_keep_session_order(self):
        points = [_point(t, hr=80, br=16) for t in range(4)]
        moments = generate_report(_session(points)).moments
        self.assertEqual([m.t for m in moments.stress], [0.0, 1.0])
        self.assertEqual([m.t for m in moments.engagement_low], [0.0])

    def test_highest_stress_first(self):
        points = [_point(0, hr=70, br=14), _point(1, hr=90, br=20), _point(2, hr=85, br=15)]
        moments = generate_report(_session(points)).moments
        self.assertEqual([(m.t, m.hr, m.br) for m in moments.stress], [(1.0, 90, 20), (2.0, 85, 15)])

    def test_lowest_engagement_moment(self):
        points = [_point(0), _point(1, gaze=GazeZone.LOWER_LEFT), _point(2)]
        low = generate_report(_session(points)).moments.engagement_low
        self.assertEqual((low[0].t, low[0].eng), (1.0, 0.5))


class TestReportExport(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        points = [_point(t, emotion=Emotion.POSITIVE, hr=76, br=15) for t in range(5)]
        self.generator = ReportGenerator(_session(points, task_window=(0.0, 4.0)))

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_to_dict_keys(self):
        data = self.generator.summarize().to_dict()
        self.assertEqual(
            set(data), {"scores", "tone", "insights", "moments", "microQuestion", "confidence"}
        )
        self.assertEqual(set(data["moments"]), {"stress", "engagementLow"})

    def test_export_json(self):
        path = os.path.join(self.tmpdir.name, "report.json")
        self.generator.export_json(path)
        with open(path, "r", encoding="utf-8") as handle:
            document = json.load(handle)
        self.assertEqual(set(document), {"session", "report", "generatedAt"})
        self.assertEqual(len(document["session"]["points"]), 5)
        self.assertEqual(document["report"]["tone"], "Positive")

    @unittest.skipUnless(importlib.util.find_spec("openpyxl"), "openpyxl required")
    def test_export_excel(self):
        import pandas as pd

        path = os.path.join(self.tmpdir.name, "report.xlsx")
        self.generator.export_excel(path)
        sheets = pd.read_excel(path, sheet_name=None)
        self.assertEqual(set(sheets), {"Points", "Emotions", "Summary"})
        self.assertEqual(len(sheets["Points"]), 5)


if __name__ == "__main__":
    unittest.main()
