"""
SessionEngine — focus session orchestration for FocusFy.

Owns the session lifecycle (idle -> running <-> paused -> completed -> idle),
the countdown Clock and the camera FocusSampler, and does the local and
remote bookkeeping around them.

This module has ZERO UI dependencies. Front-ends call engine methods and
receive updates via callbacks.

Callbacks:
    on_status_change(status: str, text: str)
    on_tick(remaining_seconds: int)
    on_score(score: int)
    on_error(error_type: str, message: str)
    on_session_ended(summary: dict)
"""

import logging
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import config
from camera.capture import CameraCapture
from camera.sampler import FocusSampler
from camera.scoring import placeholder_focus_score
from core.best_effort import BestEffortDispatcher, send_best_effort
from core.clock import Clock
from reporting.pdf_report import generate_report
from sync.focus_client import FocusSyncClient
from tracking.analytics import format_countdown, sort_samples
from tracking.daily_stats import DailyStatsTracker, get_daily_stats_tracker
from tracking.session import FocusSession, MetricSample, SessionStatus

logger = logging.getLogger(__name__)


class SessionEngine:
    """
    Core session management engine.

    Handles:
    - Session lifecycle (start, pause, resume, stop, auto-complete at zero)
    - Countdown clock (background thread, 1 s ticks)
    - Camera sampling loop (background thread, gated on running + camera on)
    - Best-effort remote sync (session create, sample submit, sample fetch)
    - Daily stats update and summary report at session end

    The countdown is the source of truth for completion. Remote calls never
    block it; their failures degrade to local-only behaviour.
    """

    # ------------------------------------------------------------------
    # Initialisation
    # ------------------------------------------------------------------

    def __init__(
        self,
        sync_client: Optional[FocusSyncClient] = None,
        stats_tracker: Optional[DailyStatsTracker] = None,
        camera_factory: Callable[[], CameraCapture] = CameraCapture,
        report_dir: Optional[Path] = None,
        generate_reports: bool = True,
        placeholder_scoring: Optional[bool] = None,
    ) -> None:
        """
        Initialise the engine with default state.

        Args:
            sync_client: Collector client (default built from config).
            stats_tracker: Statistics record to fold sessions into.
            camera_factory: Creates the capture device handle.
            report_dir: Where summary reports are written (default config.REPORTS_DIR).
            generate_reports: Write a PDF summary at session end.
            placeholder_scoring: Show placeholder jitter scores on ticks while
                                 the camera is on (default from config).
        """
        self.sync_client: FocusSyncClient = sync_client or FocusSyncClient()
        self.daily_stats: DailyStatsTracker = stats_tracker or get_daily_stats_tracker()
        self.report_dir = report_dir
        self.generate_reports = generate_reports
        self.placeholder_scoring = (
            config.PLACEHOLDER_SCORING if placeholder_scoring is None else placeholder_scoring
        )

        # Session state
        self._lock = threading.RLock()
        self.session: Optional[FocusSession] = None
        self.status: SessionStatus = SessionStatus.IDLE
        self.duration_minutes: int = config.DEFAULT_DURATION_MINUTES
        self.focus_score: int = config.BASE_FOCUS_SCORE
        self.sessions_completed: int = 0
        self.last_summary: Optional[Dict[str, Any]] = None
        # Read lock-free by the sampler thread
        self._session_active: bool = False

        self.clock = Clock(on_tick=self.tick)
        self.clock.reset(self.duration_minutes * 60)

        # One worker keeps remote calls in submission order
        self._sync_lane = BestEffortDispatcher("sync", max_workers=1)

        self.sampler = FocusSampler(
            analyze=self._analyze_frame,
            on_score=self._on_sample_scored,
            is_session_active=lambda: self._session_active,
            camera_factory=camera_factory,
        )

        # ---- Callbacks (set by the front-end) ----
        self.on_status_change: Optional[Callable[[str, str], None]] = None
        self.on_tick: Optional[Callable[[int], None]] = None
        self.on_score: Optional[Callable[[int], None]] = None
        self.on_error: Optional[Callable[[str, str], None]] = None
        self.on_session_ended: Optional[Callable[[Dict[str, Any]], None]] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self.status == SessionStatus.RUNNING

    @property
    def is_paused(self) -> bool:
        return self.status == SessionStatus.PAUSED

    @property
    def remaining_seconds(self) -> int:
        return self.clock.remaining_seconds

    def set_duration(self, duration_minutes: int) -> bool:
        """
        Set the session length used by the next start.

        Returns:
            True if accepted (idle and within range).
        """
        with self._lock:
            if self.status != SessionStatus.IDLE or not self._valid_duration(duration_minutes):
                logger.warning(f"Duration change ignored: {duration_minutes}")
                return False
            self.duration_minutes = int(duration_minutes)
            self.clock.reset(self.duration_minutes * 60)
            return True

    def start_session(self, duration_minutes: Optional[int] = None) -> Dict[str, Any]:
        """
        Start a new focus session.

        Args:
            duration_minutes: Session length (default: the configured duration).

        Returns:
            {"success": bool, "error": str | None, "error_type": str | None}
            error_type values: "already_running", "invalid_duration"
        """
        with self._lock:
            if self.status != SessionStatus.IDLE:
                return {"success": False, "error": "Session already running", "error_type": "already_running"}

            minutes = self.duration_minutes if duration_minutes is None else duration_minutes
            if not self._valid_duration(minutes):
                return {
                    "success": False,
                    "error": (f"Duration must be between {config.MIN_DURATION_MINUTES} and "
                              f"{config.MAX_DURATION_MINUTES} minutes"),
                    "error_type": "invalid_duration",
                }

            self.duration_minutes = int(minutes)
            session = FocusSession(self.duration_minutes)
            self.session = session
            self.last_summary = None
            self.focus_score = config.BASE_FOCUS_SCORE
            self.clock.reset(session.duration_seconds)

            self.status = SessionStatus.RUNNING
            self._session_active = True
            self.clock.start()
            self.sampler.refresh()

            if self.sync_client.is_available():
                self._sync_lane.submit(
                    "create_session",
                    self.sync_client.create_session,
                    self.duration_minutes,
                    on_result=lambda remote_id: self._attach_remote_id(session, remote_id),
                )

            self._notify_status_change("running", "In Progress")

        logger.info(f"Session started ({self.duration_minutes} min)")
        return {"success": True, "error": None, "error_type": None}

    def pause_session(self) -> None:
        """Pause the countdown and sampling. Remaining time is kept."""
        with self._lock:
            if self.status != SessionStatus.RUNNING:
                return
            self.status = SessionStatus.PAUSED
            self.session.status = SessionStatus.PAUSED
            self._session_active = False
            self.clock.stop()
            self.sampler.refresh()
            self._notify_status_change("paused", "Paused")
        logger.info("Session paused")

    def resume_session(self) -> None:
        """Resume a paused session."""
        with self._lock:
            if self.status != SessionStatus.PAUSED:
                return
            self.status = SessionStatus.RUNNING
            self.session.status = SessionStatus.RUNNING
            self._session_active = True
            self.clock.start()
            self.sampler.refresh()
            self._notify_status_change("running", "In Progress")
        logger.info("Session resumed")

    def toggle_pause(self) -> None:
        """Pause if running, resume if paused."""
        with self._lock:
            if self.status == SessionStatus.RUNNING:
                self.pause_session()
            elif self.status == SessionStatus.PAUSED:
                self.resume_session()

    def stop_session(self) -> Dict[str, Any]:
        """
        Stop the current session.

        Returns:
            {"success": bool, "focus_seconds": int, "session_id": str | None,
             "remote_session_id": str | None, "sample_count": int}
        """
        with self._lock:
            if self.status not in (SessionStatus.RUNNING, SessionStatus.PAUSED):
                return {
                    "success": False,
                    "focus_seconds": 0,
                    "session_id": None,
                    "remote_session_id": None,
                    "sample_count": 0,
                }
            result = self._finish()

        # Outside the lock: a tick waiting on it must be able to finish
        self._join_tasks()
        return result

    def tick(self, generation: Optional[int] = None) -> None:
        """
        Advance the countdown by one second.

        Called by the clock thread once per second while running. Completes
        the session when the countdown reaches zero.

        Args:
            generation: Clock run the tick fired for. A tick that waited on
                the lock while a pause and resume went through is dropped.
        """
        with self._lock:
            if self.status != SessionStatus.RUNNING:
                return
            if generation is not None and not self.clock.is_current(generation):
                logger.debug(f"Dropped tick from stopped clock run {generation}")
                return

            remaining = self.clock.decrement()

            if self.placeholder_scoring and self.sampler.device_enabled:
                self.focus_score = placeholder_focus_score()
                self._notify_score(self.focus_score)

            self._notify_tick(remaining)

            if remaining <= 0:
                logger.info("Countdown reached zero")
                self._finish()

    def enable_camera(self) -> Dict[str, Any]:
        """
        Turn on camera sampling for the active session.

        Device failures are reported via on_error; the session continues
        without capture.

        Returns:
            {"success": bool, "error": str | None, "error_type": str | None}
        """
        if self.status not in (SessionStatus.RUNNING, SessionStatus.PAUSED):
            return {"success": False, "error": "Start a session first", "error_type": "no_session"}

        # Opening a camera can take seconds; don't hold up ticks meanwhile
        result = self.sampler.enable_device()

        if not result["success"]:
            self._notify_error(result["error_type"], result["error"])
            return result

        with self._lock:
            if self.status not in (SessionStatus.RUNNING, SessionStatus.PAUSED):
                # Session ended while the device was opening
                self.sampler.disable_device()
                return {"success": False, "error": "Session ended", "error_type": "no_session"}
            self.sampler.refresh()

        logger.info("Camera enabled")
        return result

    def disable_camera(self) -> None:
        """Turn off camera sampling and release the device."""
        self.sampler.disable_device()
        logger.info("Camera disabled")

    def get_status(self) -> Dict[str, Any]:
        """
        Get current engine status (polled by front-ends).

        Returns:
            dict with keys: status, remaining_seconds, remaining_text,
            duration_seconds, progress, camera_active, capturing,
            focus_score, remote_session_id, sample_count.
        """
        with self._lock:
            remaining = self.clock.remaining_seconds
            total = self.clock.total_seconds
            return {
                "status": self.status.value,
                "remaining_seconds": remaining,
                "remaining_text": format_countdown(remaining),
                "duration_seconds": total,
                "progress": (total - remaining) / total if total else 0.0,
                "camera_active": self.sampler.device_enabled,
                "capturing": self.sampler.capturing,
                "focus_score": self.focus_score,
                "remote_session_id": self.session.remote_session_id if self.session else None,
                "sample_count": len(self.session.samples) if self.session else 0,
            }

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Wait for in-flight scoring and sync calls to finish."""
        analysis_idle = self.sampler.wait_idle(timeout)
        sync_idle = self._sync_lane.drain(timeout)
        return analysis_idle and sync_idle

    def cleanup(self) -> None:
        """Clean up resources. Call before app quit."""
        if self.status in (SessionStatus.RUNNING, SessionStatus.PAUSED):
            self.stop_session()
        self.sampler.shutdown()
        self._sync_lane.drain(config.TASK_JOIN_TIMEOUT)
        self._sync_lane.shutdown()
        logger.info("Engine cleanup complete")

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    def _finish(self) -> Dict[str, Any]:
        """
        Finalise the running or paused session. Caller holds the lock.

        Stops both loops and releases the camera, credits elapsed time to the
        stats record, queues the summary fetch, then returns to idle.
        """
        session = self.session
        self.status = SessionStatus.COMPLETED
        self._session_active = False
        self.clock.stop()
        self.sampler.stop()

        focus_seconds = self.clock.elapsed_seconds
        session.end()
        self.sessions_completed += 1

        try:
            self.daily_stats.add_session(focus_seconds, session.average_score())
        except (ValueError, OSError) as e:
            logger.error(f"Failed to update stats: {e}")

        self._notify_status_change(
            "completed", f"Great work! You focused for {focus_seconds // 60} minutes"
        )

        # Queued behind any pending sample submissions on the same lane
        self._sync_lane.submit("session_summary", self._build_summary, session, focus_seconds)

        self.clock.reset(self.duration_minutes * 60)
        self.status = SessionStatus.IDLE
        self._notify_status_change("idle", "Ready to Start")

        logger.info(f"Session completed: {focus_seconds}s focused, {len(session.samples)} samples")
        return {
            "success": True,
            "focus_seconds": focus_seconds,
            "session_id": session.session_id,
            "remote_session_id": session.remote_session_id,
            "sample_count": len(session.samples),
        }

    def _build_summary(self, session: FocusSession, focus_seconds: int) -> Dict[str, Any]:
        """
        Fetch the remote sample series and render the summary report.

        Runs on the sync lane. A missing remote ID or a failed fetch yields
        an empty series, which renders as a "no data" chart.
        """
        samples: List[MetricSample] = []
        remote_id = session.remote_session_id
        if remote_id and self.sync_client.is_available():
            fetched = send_best_effort("fetch_samples", self.sync_client.fetch_samples, remote_id)
            samples = sort_samples(fetched or [])

        report_path = self._generate_report(session, samples, focus_seconds)

        summary = {
            "session_id": session.session_id,
            "remote_session_id": remote_id,
            "focus_seconds": focus_seconds,
            "samples": samples,
            "report_path": report_path,
        }
        self.last_summary = summary
        if self.on_session_ended:
            try:
                self.on_session_ended(summary)
            except Exception as e:
                logger.debug(f"on_session_ended callback error: {e}")
        return summary

    def _generate_report(
        self, session: FocusSession, samples: List[MetricSample], focus_seconds: int
    ) -> Optional[Path]:
        """
        Render the PDF summary for a finished session.

        Returns:
            Path to the generated PDF, or None if disabled or generation failed.
        """
        if not self.generate_reports:
            return None
        try:
            return generate_report(
                samples,
                session.label,
                session.started_at,
                session.ended_at,
                output_dir=self.report_dir,
                focus_seconds=focus_seconds,
            )
        except Exception as e:
            logger.error(f"Report generation failed: {e}")
            self._notify_error("report_error", str(e))
            return None

    # ------------------------------------------------------------------
    # Remote sync
    # ------------------------------------------------------------------

    def _attach_remote_id(self, session: FocusSession, remote_id: str) -> None:
        """Attach the collector's ID if the session is still live."""
        with self._lock:
            live = (SessionStatus.RUNNING, SessionStatus.PAUSED)
            if self.session is not session or self.status not in live:
                logger.info("Remote session ID arrived after stop; samples were not synced")
                return
            session.remote_session_id = remote_id
            logger.debug(f"Attached remote session ID {remote_id}")

    def _analyze_frame(self, payload: bytes) -> Optional[Dict[str, Any]]:
        """Send a frame to the scorer; None when no scorer is configured."""
        if not self.sync_client.can_analyze():
            return None
        return self.sync_client.analyze_frame(payload)

    def _on_sample_scored(self, score: int, metrics: Dict[str, Any]) -> None:
        """
        Record a scored frame and push it to the collector.

        Scores that land after a pause, stop or camera disable are dropped.
        """
        with self._lock:
            session = self.session
            if self.status != SessionStatus.RUNNING or session is None or not self.sampler.device_enabled:
                logger.debug("Dropping score outside an active capture")
                return

            sample = session.record_sample(score, metrics)
            self.focus_score = sample.score
            self._notify_score(sample.score)

            remote_id = session.remote_session_id
            if remote_id and self.sync_client.is_available():
                self._sync_lane.submit("submit_sample", self.sync_client.submit_sample, remote_id, sample)
            else:
                logger.debug("No remote session ID yet; sample kept local only")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _valid_duration(minutes: Any) -> bool:
        if isinstance(minutes, bool) or not isinstance(minutes, int):
            return False
        return config.MIN_DURATION_MINUTES <= minutes <= config.MAX_DURATION_MINUTES

    def _join_tasks(self) -> None:
        """Wait for the clock and sampler threads to exit."""
        self.clock.join()
        self.sampler.join()

    def _notify_status_change(self, status: str, text: str) -> None:
        if self.on_status_change:
            try:
                self.on_status_change(status, text)
            except Exception as e:
                logger.debug(f"on_status_change callback error: {e}")

    def _notify_tick(self, remaining: int) -> None:
        if self.on_tick:
            try:
                self.on_tick(remaining)
            except Exception as e:
                logger.debug(f"on_tick callback error: {e}")

    def _notify_score(self, score: int) -> None:
        if self.on_score:
            try:
                self.on_score(score)
            except Exception as e:
                logger.debug(f"on_score callback error: {e}")

    def _notify_error(self, error_type: str, message: str) -> None:
        """Notify of an error via callback."""
        if self.on_error:
            try:
                self.on_error(error_type, message)
            except Exception as e:
                logger.debug(f"on_error callback error: {e}")
