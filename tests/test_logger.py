"""
CSV point log tests.
"""

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import tempfile
import unittest
from unittest.mock import patch

from pulsefeedback.core.logger import LOG_FIELDS, PointLogger
from pulsefeedback.core.types import Emotion, GazeZone, MetricPoint


def _point(t):
    return MetricPoint(t, True, False, False, GazeZone.CENTER, 2.0, Emotion.NEUTRAL, heart_rate=75, breath_rate=15)


class TestPointLogger(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmpdir.name, "logs", "points.csv")
        self.point_logger = PointLogger(self.path)

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_rows_round_trip_through_dataframe(self):
        self.point_logger.log_point(_point(1.0), 0.85)
        self.point_logger.log_point(_point(0.0), 0.75)
        df = self.point_logger.to_dataframe()
        self.assertEqual(list(df.columns), LOG_FIELDS)
        self.assertEqual(list(df["t"]), [0.0, 1.0])
        self.assertEqual(list(df["engagement"]), [0.75, 0.85])

    def test_empty_log(self):
        df = self.point_logger.to_dataframe()
        self.assertTrue(df.empty)
        self.assertEqual(list(df.columns), LOG_FIELDS)

    def test_locked_file_falls_back_to_queue(self):
        with patch.object(PointLogger, "_write_row", side_effect=[PermissionError("locked"), None]) as write:
            self.point_logger.log_point(_point(0.0))
        self.assertEqual(write.call_args_list[0].args[0], self.path)
        self.assertEqual(write.call_args_list[1].args[0], self.point_logger.temp_csv_path)

    def test_unexpected_error_never_raises(self):
        with patch.object(PointLogger, "_write_row", side_effect=OSError("disk gone")):
            self.point_logger.log_point(_point(0.0))


if __name__ == "__main__":
    unittest.main()
