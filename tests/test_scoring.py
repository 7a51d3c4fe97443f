"""Unit tests for focus score derivation."""

import random
import sys
import unittest
from pathlib import Path

# Ensure project root is on the path
sys.path.insert(0, str(Path(__file__).parent.parent))

import config
from camera.scoring import compute_focus_score, parse_analysis_metrics, placeholder_focus_score


class TestComputeFocusScore(unittest.TestCase):

    def test_centred_and_confident(self):
        metrics = {"gaze_direction": "center", "blink_rate": 0, "confidence": 1}
        self.assertEqual(compute_focus_score(metrics), 100)

    def test_off_centre_with_blinks(self):
        metrics = {"gaze_direction": "left", "blink_rate": 4, "confidence": 1}
        self.assertEqual(compute_focus_score(metrics), 50)

    def test_blink_penalty_capped(self):
        metrics = {"gaze_direction": "center", "blink_rate": 50, "confidence": 1}
        self.assertEqual(compute_focus_score(metrics), 70)

    def test_missing_confidence_halves(self):
        self.assertEqual(compute_focus_score({"gaze_direction": "center"}), 50)
        self.assertEqual(compute_focus_score({}), 50)

    def test_missing_gaze_not_penalised(self):
        self.assertEqual(compute_focus_score({"confidence": 1}), 100)

    def test_zero_confidence(self):
        self.assertEqual(compute_focus_score({"gaze_direction": "center", "confidence": 0}), 0)

    def test_confidence_clamped(self):
        self.assertEqual(compute_focus_score({"gaze_direction": "center", "confidence": 2.5}), 100)
        self.assertEqual(compute_focus_score({"gaze_direction": "center", "confidence": -1}), 0)

    def test_negative_blink_rate_ignored(self):
        self.assertEqual(compute_focus_score({"blink_rate": -3, "confidence": 1}), 100)

    def test_non_numeric_metrics_ignored(self):
        metrics = {"gaze_direction": "center", "blink_rate": "often", "confidence": "high"}
        self.assertEqual(compute_focus_score(metrics), 50)

    def test_rounding(self):
        # (100 - 30 - 5) * 0.77 = 50.05
        metrics = {"gaze_direction": "up", "blink_rate": 1, "confidence": 0.77}
        self.assertEqual(compute_focus_score(metrics), 50)

    def test_half_rounds_up(self):
        # (100 - 30) * 0.75 = 52.5
        metrics = {"gaze_direction": "left", "blink_rate": 0, "confidence": 0.75}
        self.assertEqual(compute_focus_score(metrics), 53)
        # (100 - 5) * 0.5 = 47.5
        self.assertEqual(compute_focus_score({"blink_rate": 1, "confidence": 0.5}), 48)

    def test_always_in_range(self):
        rng = random.Random(7)
        for _ in range(200):
            metrics = {
                "gaze_direction": rng.choice(["center", "left", "right", None]),
                "blink_rate": rng.uniform(-5, 20),
                "confidence": rng.uniform(-1, 2),
            }
            score = compute_focus_score(metrics)
            self.assertGreaterEqual(score, 0)
            self.assertLessEqual(score, 100)


class TestParseAnalysisMetrics(unittest.TestCase):

    def test_valid_response(self):
        self.assertEqual(parse_analysis_metrics({"metrics": {"confidence": 1}}), {"confidence": 1})

    def test_malformed_responses(self):
        for response in (None, [], "ok", {}, {"metrics": None}, {"metrics": [1, 2]}):
            self.assertIsNone(parse_analysis_metrics(response), response)


class TestPlaceholderScore(unittest.TestCase):

    def test_within_range(self):
        low, high = config.PLACEHOLDER_SCORE_RANGE
        rng = random.Random(42)
        for _ in range(100):
            score = placeholder_focus_score(rng)
            self.assertGreaterEqual(score, low)
            self.assertLessEqual(score, high)


if __name__ == "__main__":
    unittest.main()
