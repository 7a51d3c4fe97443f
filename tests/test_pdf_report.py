"""Tests for the session summary chart and PDF report."""

import sys
import tempfile
import unittest
from datetime import datetime, timedelta
from pathlib import Path

from reportlab.graphics.charts.lineplots import LinePlot
from reportlab.graphics.shapes import String

# Ensure project root is on the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from reporting.pdf_report import NO_DATA_TEXT, build_score_chart, generate_report, _safe_filename
from tracking.session import MetricSample


def _strings(drawing):
    return [item.text for item in drawing.contents if isinstance(item, String)]


def _plot(drawing) -> LinePlot:
    return next(item for item in drawing.contents if isinstance(item, LinePlot))


class TestScoreChart(unittest.TestCase):

    def test_empty_series_renders_no_data(self):
        drawing = build_score_chart([])
        self.assertIn(NO_DATA_TEXT, _strings(drawing))
        plot = _plot(drawing)
        self.assertEqual(plot.yValueAxis.valueMin, 0)
        self.assertEqual(plot.yValueAxis.valueMax, 100)

    def test_points_sorted_by_time(self):
        samples = [
            MetricSample(timestamp=1700000003000, score=60),
            MetricSample(timestamp=1700000000000, score=100),
            MetricSample(timestamp=1700000001500, score=85),
        ]
        drawing = build_score_chart(samples)

        plot = _plot(drawing)
        self.assertEqual(plot.data, [[(0.0, 100), (1.5, 85), (3.0, 60)]])
        self.assertEqual(plot.yValueAxis.valueMax, 100)
        self.assertNotIn(NO_DATA_TEXT, _strings(drawing))

    def test_x_labels_are_wall_clock(self):
        sample = MetricSample(timestamp=1700000000000, score=90)
        plot = _plot(build_score_chart([sample]))
        label = plot.xValueAxis.labelTextFormat(60)
        expected = (sample.recorded_at + timedelta(seconds=60)).strftime("%H:%M:%S")
        self.assertEqual(label, expected)


class TestGenerateReport(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.output_dir = Path(self.tmpdir.name)
        self.start = datetime(2026, 3, 2, 14, 45, 0)
        self.end = self.start + timedelta(minutes=25)

    def test_report_with_samples(self):
        base = int(self.start.timestamp() * 1000)
        samples = [MetricSample(timestamp=base + i * 1500, score=70 + (i % 30)) for i in range(200)]

        path = generate_report(samples, "FocusFy Monday 2.45PM", self.start, self.end,
                               output_dir=self.output_dir, focus_seconds=1500)

        self.assertTrue(path.exists())
        self.assertEqual(path.name, "FocusFy_Monday_2.45PM.pdf")
        self.assertTrue(path.read_bytes().startswith(b"%PDF"))

    def test_empty_report(self):
        """An empty series still renders a valid document."""
        path = generate_report([], "FocusFy Monday 2.45PM", self.start, None, output_dir=self.output_dir)
        self.assertTrue(path.exists())
        self.assertGreater(path.stat().st_size, 0)

    def test_label_cannot_escape_output_dir(self):
        path = generate_report([], "../../etc/evil name", self.start, self.end, output_dir=self.output_dir)
        self.assertEqual(path.parent, self.output_dir)
        self.assertTrue(path.exists())

    def test_safe_filename(self):
        self.assertEqual(_safe_filename("a/b\\c:d"), "a_b_c_d")
        self.assertEqual(_safe_filename("..."), "focus_session")


if __name__ == "__main__":
    unittest.main()
