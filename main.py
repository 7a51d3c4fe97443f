#!/usr/bin/env python3
"""
FocusFy - Main Entry Point

A focus session timer that can sample your webcam while you work, score
each frame for attention, and summarise the session as a PDF report.

Usage:
    python main.py                      # 25 minute session, camera off
    python main.py --duration 50        # Custom length (5-120, steps of 5)
    python main.py --camera             # Start with camera sampling on
"""

import math
import sys
import time
import logging
import threading
import argparse
from typing import Any, Dict, Optional

import config
from core.engine import SessionEngine
from tracking.analytics import format_duration
from tracking.daily_stats import get_daily_stats_tracker

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL),
    format=config.LOG_FORMAT
)
logger = logging.getLogger(__name__)

# Suppress noisy third-party library logs (HTTP requests, etc.)
logging.getLogger("urllib3").setLevel(logging.WARNING)
logging.getLogger("PIL").setLevel(logging.WARNING)


def snap_duration(minutes: int) -> int:
    """
    Snap a requested length to the nearest duration step, within range.

    Examples:
        >>> snap_duration(7)
        5
        >>> snap_duration(8)
        10
        >>> snap_duration(200)
        120
    """
    step = config.STEP_DURATION_MINUTES
    snapped = int(math.floor(minutes / step + 0.5)) * step
    return min(config.MAX_DURATION_MINUTES, max(config.MIN_DURATION_MINUTES, snapped))


class FocusConsole:
    """
    Terminal front-end for a single focus session.

    Reads single-letter commands from stdin while the engine runs:
    p = pause/resume, c = camera on/off, q = stop.
    """

    def __init__(self, engine: SessionEngine):
        self.engine = engine
        self.session_done = threading.Event()
        self.summary: Optional[Dict[str, Any]] = None

        engine.on_status_change = self._on_status_change
        engine.on_error = self._on_error
        engine.on_session_ended = self._on_session_ended

    def display_welcome(self, duration_minutes: int):
        """Display welcome message and instructions."""
        print("\n" + "=" * 60)
        print("FocusFy - Focus Session")
        print("=" * 60)
        print(f"\nSession length: {duration_minutes} minutes")
        print("\nCommands (type and press Enter):")
        print("  p  pause / resume")
        print("  c  camera on / off")
        print("  q  stop the session")
        print("\nPrivacy: frames are sent for scoring only while the camera is on.")
        print("=" * 60)

    def run(self, duration_minutes: int, camera: bool = False) -> bool:
        """
        Run one session to completion.

        Returns:
            True if the session ran, False if it could not start.
        """
        result = self.engine.start_session(duration_minutes)
        if not result["success"]:
            print(f"Could not start session: {result['error']}")
            return False

        if camera:
            self.engine.enable_camera()

        listener = threading.Thread(target=self._command_listener, daemon=True)
        listener.start()

        try:
            while self.engine.status.value != config.STATUS_IDLE:
                status = self.engine.get_status()
                score = f"  score {status['focus_score']}" if status["camera_active"] else ""
                print(f"\r  {status['remaining_text']}  [{status['status']}]{score}   ", end="", flush=True)
                time.sleep(config.TICK_INTERVAL_SECONDS)
        except KeyboardInterrupt:
            print("\n\nSession interrupted by user")
            self.engine.stop_session()

        print()
        # Summary is built after the remote fetch
        self.session_done.wait(timeout=30)
        return True

    def _command_listener(self):
        """Read commands until the session leaves the running/paused states."""
        while self.engine.status.value != config.STATUS_IDLE:
            try:
                command = input().strip().lower()
            except (EOFError, OSError):
                return
            except Exception as e:
                logger.debug(f"Command listener error: {e}")
                return

            if command == "p":
                self.engine.toggle_pause()
            elif command == "c":
                if self.engine.get_status()["camera_active"]:
                    self.engine.disable_camera()
                    print("\nCamera off")
                else:
                    if self.engine.enable_camera()["success"]:
                        print("\nCamera on")
            elif command == "q":
                self.engine.stop_session()
                return

    def _on_status_change(self, status: str, text: str):
        if status in (config.STATUS_PAUSED, config.STATUS_COMPLETED):
            print(f"\n{text}")

    def _on_error(self, error_type: str, message: str):
        if error_type.startswith("camera"):
            print(f"\nCamera Access Denied: {message}")
        else:
            print(f"\nError: {message}")

    def _on_session_ended(self, summary: Dict[str, Any]):
        self.summary = summary
        self.session_done.set()

    def display_summary(self):
        """Display session summary and today's totals in the console."""
        print("\n" + "=" * 60)
        print("Session Summary")
        print("=" * 60)

        if self.summary:
            samples = self.summary["samples"]
            print(f"\nFocused: {format_duration(self.summary['focus_seconds'])}")
            if samples:
                average = sum(s.score for s in samples) / len(samples)
                print(f"Samples: {len(samples)} (average score {average:.0f})")
            else:
                print("Samples: none recorded")
            if self.summary["report_path"]:
                print(f"\nYour report is ready:\n   {self.summary['report_path']}")

        stats = self.engine.daily_stats.get_stats()
        print(f"\nToday: {stats['todayFocus']:.2f} h of {stats['weeklyGoal']} h weekly goal")
        print(f"Sessions: {stats['totalSessions']}  Average focus: {stats['averageFocus']}")
        print("=" * 60 + "\n")


def main():
    """
    Main entry point — parses arguments and runs one console session.
    """
    parser = argparse.ArgumentParser(
        description="FocusFy - Focus Session Timer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                   25 minute session
  python main.py --duration 50     50 minute session
  python main.py --camera          Sample the webcam from the start
        """
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=config.DEFAULT_DURATION_MINUTES,
        help=f"Session length in minutes ({config.MIN_DURATION_MINUTES}-{config.MAX_DURATION_MINUTES})",
    )
    parser.add_argument(
        "--camera",
        action="store_true",
        help="Enable camera sampling when the session starts",
    )
    parser.add_argument(
        "--user",
        default=config.USER_ID,
        help="User whose daily stats are updated",
    )

    args = parser.parse_args()

    duration = snap_duration(args.duration)
    if duration != args.duration:
        print(f"Session length rounded to {duration} minutes")

    engine = SessionEngine(stats_tracker=get_daily_stats_tracker(args.user))
    console = FocusConsole(engine)
    console.display_welcome(duration)

    try:
        if console.run(duration, camera=args.camera):
            console.display_summary()
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        print(f"\nFatal error: {e}")
        sys.exit(1)
    finally:
        engine.cleanup()


if __name__ == "__main__":
    main()
