"""
Per-user focus statistics for FocusFy.

Tracks today's focus time, total sessions, the weekly goal and the average
focus score. Today's focus resets when the date changes; the other totals
persist. Data is stored locally per user.

PRECISION GUIDELINE:
    focusSeconds is stored as a float and is the source of truth for today's
    focus time. todayFocus (hours, 2 decimal places) is derived from it for
    display by the surrounding app.
"""

import json
import logging
import math
import os
import tempfile
import threading
from datetime import date
from pathlib import Path
from typing import Dict, Any, Optional

import config

logger = logging.getLogger(__name__)


class DailyStatsTracker:
    """
    Tracks cumulative focus statistics for one user.

    The record is only ever folded into additively, once per completed
    session, by the session engine.
    """

    def __init__(self, user_id: Optional[str] = None, data_file: Optional[Path] = None):
        """
        Initialize the tracker and load existing data.

        Args:
            user_id: Local user ID (default from config).
            data_file: Explicit JSON file path (defaults to stats_<user_id>.json
                       in the user data directory).
        """
        self.user_id = user_id or config.USER_ID
        self.data_file: Path = data_file or (config.USER_DATA_DIR / f"stats_{self.user_id}.json")
        self._lock = threading.Lock()
        self.data = self._load_data()

        self._check_and_reset_if_new_day()

    def _load_data(self) -> Dict[str, Any]:
        """
        Load stats from the JSON file, filling in any missing fields.

        Returns:
            Dict containing the statistics record.
        """
        data = self._create_empty_data()
        if self.data_file.exists():
            try:
                with open(self.data_file, 'r') as f:
                    stored = json.load(f)
                if isinstance(stored, dict):
                    data.update(stored)
                logger.debug(f"Loaded stats for {self.user_id}: {data}")
            except (json.JSONDecodeError, IOError, OSError, PermissionError) as e:
                logger.warning(f"Failed to load stats: {e}. Starting fresh.")
        return data

    def _create_empty_data(self) -> Dict[str, Any]:
        """Create an empty statistics record."""
        return {
            "date": date.today().isoformat(),
            "todayFocus": 0.0,
            "focusSeconds": 0.0,
            "weeklyGoal": config.DEFAULT_WEEKLY_GOAL_HOURS,
            "totalSessions": 0,
            "averageFocus": 0,
            "scoredSessions": 0,
        }

    def _save_data(self) -> None:
        """
        Save stats to the JSON file atomically.

        Writes to a temp file in the same directory, then renames it over
        the target so a crash mid-write never leaves a truncated file.
        """
        try:
            self.data_file.parent.mkdir(parents=True, exist_ok=True)

            temp_fd, temp_path = tempfile.mkstemp(
                suffix='.tmp',
                prefix='stats_',
                dir=self.data_file.parent
            )

            try:
                with os.fdopen(temp_fd, 'w') as f:
                    json.dump(self.data, f, indent=2)
                os.replace(temp_path, self.data_file)
                logger.debug(f"Saved stats: {self.data}")
            except Exception:
                try:
                    os.unlink(temp_path)
                except OSError:
                    pass
                raise

        except (IOError, OSError, PermissionError) as e:
            logger.error(f"Failed to save stats: {e}")

    def _check_and_reset_if_new_day(self) -> None:
        """Reset today's focus time if the date has changed."""
        today = date.today().isoformat()
        stored_date = self.data.get("date", "")

        if stored_date != today:
            logger.info(f"New day detected ({stored_date} -> {today}). Resetting today's focus.")
            self.data["date"] = today
            self.data["todayFocus"] = 0.0
            self.data["focusSeconds"] = 0.0
            self._save_data()

    def add_session(self, focus_seconds: float, average_score: Optional[float] = None) -> None:
        """
        Fold a completed session into the record (thread-safe).

        Args:
            focus_seconds: Elapsed focus time of the session in seconds.
            average_score: Mean focus score of the session's samples, or None
                           if no sample was recorded.

        Raises:
            ValueError: If focus_seconds is negative.
        """
        if focus_seconds < 0:
            raise ValueError("Focus time must be non-negative")

        with self._lock:
            # Check for day change before adding (app left open overnight)
            self._check_and_reset_if_new_day()

            self.data["focusSeconds"] = float(self.data["focusSeconds"]) + float(focus_seconds)
            self.data["todayFocus"] = round(self.data["focusSeconds"] / 3600.0, 2)
            self.data["totalSessions"] = int(self.data["totalSessions"]) + 1

            if average_score is not None:
                scored = int(self.data.get("scoredSessions", 0))
                previous = float(self.data.get("averageFocus", 0))
                self.data["averageFocus"] = int(math.floor((previous * scored + average_score) / (scored + 1) + 0.5))
                self.data["scoredSessions"] = scored + 1

            self._save_data()
            logger.info(f"Added session to stats for {self.user_id}. Focus: {focus_seconds}s, "
                        f"average score: {average_score}")

    def set_weekly_goal(self, hours: float) -> None:
        """Update the weekly goal in hours."""
        if hours <= 0:
            raise ValueError("Weekly goal must be positive")
        with self._lock:
            self.data["weeklyGoal"] = hours
            self._save_data()

    def get_stats(self) -> Dict[str, Any]:
        """
        Get the current statistics record.

        Returns:
            Copy of the record with todayFocus, focusSeconds, weeklyGoal,
            totalSessions and averageFocus.
        """
        with self._lock:
            self._check_and_reset_if_new_day()
            return self.data.copy()

    def get_focus_seconds(self) -> float:
        """Get total focused time today in seconds."""
        with self._lock:
            self._check_and_reset_if_new_day()
            return float(self.data["focusSeconds"])


# Per-user instances (thread-safe)
_trackers: Dict[str, DailyStatsTracker] = {}
_trackers_lock = threading.Lock()


def get_daily_stats_tracker(user_id: Optional[str] = None) -> DailyStatsTracker:
    """
    Get the process-wide DailyStatsTracker for a user.

    Args:
        user_id: Local user ID (default from config).

    Returns:
        Shared DailyStatsTracker instance.
    """
    key = user_id or config.USER_ID
    with _trackers_lock:
        tracker = _trackers.get(key)
        if tracker is None:
            tracker = DailyStatsTracker(user_id=key)
            _trackers[key] = tracker
    return tracker
