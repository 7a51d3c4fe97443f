"""
Tests for tracking/daily_stats.py — additive session folding, persistence
and the day rollover.
"""

import json
import sys
import tempfile
import unittest
from datetime import date, timedelta
from pathlib import Path

# Ensure project root is on the path
sys.path.insert(0, str(Path(__file__).parent.parent))

import config
from tracking.daily_stats import DailyStatsTracker, get_daily_stats_tracker


class TestDailyStatsTracker(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.data_file = Path(self.tmpdir.name) / "stats_alice.json"

    def make_tracker(self) -> DailyStatsTracker:
        return DailyStatsTracker(user_id="alice", data_file=self.data_file)

    def test_empty_record(self):
        stats = self.make_tracker().get_stats()
        self.assertEqual(stats["todayFocus"], 0.0)
        self.assertEqual(stats["totalSessions"], 0)
        self.assertEqual(stats["weeklyGoal"], config.DEFAULT_WEEKLY_GOAL_HOURS)
        self.assertEqual(stats["averageFocus"], 0)
        self.assertEqual(stats["date"], date.today().isoformat())

    def test_add_session_is_additive(self):
        tracker = self.make_tracker()
        tracker.add_session(1500)
        tracker.add_session(900)

        stats = tracker.get_stats()
        self.assertEqual(stats["focusSeconds"], 2400)
        self.assertEqual(stats["todayFocus"], 0.67)
        self.assertEqual(stats["totalSessions"], 2)

    def test_persisted_across_instances(self):
        self.make_tracker().add_session(3600, 90)

        reloaded = self.make_tracker().get_stats()
        self.assertEqual(reloaded["todayFocus"], 1.0)
        self.assertEqual(reloaded["totalSessions"], 1)
        self.assertEqual(reloaded["averageFocus"], 90)

        with open(self.data_file) as f:
            on_disk = json.load(f)
        self.assertEqual(on_disk["totalSessions"], 1)

    def test_average_focus_running_mean(self):
        """Unscored sessions count as sessions but not toward the average."""
        tracker = self.make_tracker()
        tracker.add_session(600, 80)
        tracker.add_session(600, None)
        tracker.add_session(600, 100)

        stats = tracker.get_stats()
        self.assertEqual(stats["averageFocus"], 90)
        self.assertEqual(stats["scoredSessions"], 2)
        self.assertEqual(stats["totalSessions"], 3)

    def test_average_focus_half_rounds_up(self):
        tracker = self.make_tracker()
        tracker.add_session(600, 80)
        tracker.add_session(600, 85)
        self.assertEqual(tracker.get_stats()["averageFocus"], 83)

    def test_negative_focus_rejected(self):
        tracker = self.make_tracker()
        with self.assertRaises(ValueError):
            tracker.add_session(-1)
        self.assertEqual(tracker.get_stats()["totalSessions"], 0)

    def test_zero_length_session_counts(self):
        tracker = self.make_tracker()
        tracker.add_session(0)
        self.assertEqual(tracker.get_stats()["totalSessions"], 1)

    def test_new_day_resets_today_only(self):
        yesterday = (date.today() - timedelta(days=1)).isoformat()
        self.data_file.write_text(json.dumps({
            "date": yesterday,
            "todayFocus": 2.5,
            "focusSeconds": 9000.0,
            "weeklyGoal": 15,
            "totalSessions": 7,
            "averageFocus": 82,
            "scoredSessions": 5,
        }))

        stats = self.make_tracker().get_stats()
        self.assertEqual(stats["date"], date.today().isoformat())
        self.assertEqual(stats["todayFocus"], 0.0)
        self.assertEqual(stats["focusSeconds"], 0.0)
        self.assertEqual(stats["totalSessions"], 7)
        self.assertEqual(stats["weeklyGoal"], 15)
        self.assertEqual(stats["averageFocus"], 82)

    def test_corrupt_file_starts_fresh(self):
        self.data_file.write_text("{not json")
        stats = self.make_tracker().get_stats()
        self.assertEqual(stats["totalSessions"], 0)

    def test_no_temp_files_left(self):
        tracker = self.make_tracker()
        tracker.add_session(60)
        tracker.add_session(60)
        leftovers = [p for p in Path(self.tmpdir.name).iterdir() if p.suffix == ".tmp"]
        self.assertEqual(leftovers, [])

    def test_set_weekly_goal(self):
        tracker = self.make_tracker()
        tracker.set_weekly_goal(12)
        self.assertEqual(tracker.get_stats()["weeklyGoal"], 12)
        with self.assertRaises(ValueError):
            tracker.set_weekly_goal(0)

    def test_get_focus_seconds(self):
        tracker = self.make_tracker()
        tracker.add_session(125)
        self.assertEqual(tracker.get_focus_seconds(), 125.0)


class TestTrackerRegistry(unittest.TestCase):

    def test_same_user_shares_tracker(self):
        self.assertIs(get_daily_stats_tracker("registry-a"), get_daily_stats_tracker("registry-a"))
        self.assertIsNot(get_daily_stats_tracker("registry-a"), get_daily_stats_tracker("registry-b"))


if __name__ == "__main__":
    unittest.main()
