"""Periodic frame capture and focus scoring."""

import cv2
import logging
import threading
from io import BytesIO
from typing import Any, Callable, Dict, Optional

import numpy as np
from PIL import Image

import config
from camera.capture import CameraCapture, describe_failure
from camera.scoring import compute_focus_score, parse_analysis_metrics
from core.best_effort import BestEffortDispatcher
from core.periodic import PeriodicTask

logger = logging.getLogger(__name__)


def encode_frame(frame: np.ndarray, quality: Optional[int] = None) -> bytes:
    """
    Encode a camera frame as JPEG at its native resolution.

    Args:
        frame: BGR image from camera
        quality: JPEG quality 1-95 (default from config)

    Returns:
        JPEG bytes
    """
    rgb_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
    image = Image.fromarray(rgb_frame)
    buffer = BytesIO()
    image.save(buffer, format="JPEG", quality=quality if quality is not None else config.JPEG_QUALITY)
    return buffer.getvalue()


class FocusSampler:
    """
    Grabs a frame, sends it to the scorer and publishes the derived score.

    The loop runs only while ``capturing`` holds: the session is running and
    not paused, and the capture device is enabled. Call refresh() whenever
    either input changes. The sampler owns the device handle exclusively.
    """

    def __init__(
        self,
        analyze: Callable[[bytes], Any],
        on_score: Callable[[int, Dict[str, Any]], None],
        is_session_active: Callable[[], bool],
        camera_factory: Callable[[], CameraCapture] = CameraCapture,
        analysis_lane: Optional[BestEffortDispatcher] = None,
        interval: Optional[float] = None,
        jpeg_quality: Optional[int] = None,
    ) -> None:
        """
        Args:
            analyze: Sends JPEG bytes to the scorer and returns the decoded
                     response. May raise; a failure just skips the cycle.
            on_score: Receives (score, raw_metrics) for each scored frame.
            is_session_active: True while the session is running and not paused.
            camera_factory: Creates the device handle on enable.
            analysis_lane: Worker lane for scorer calls.
            interval: Seconds between cycles (default from config).
            jpeg_quality: Frame encoding quality (default from config).
        """
        self._analyze = analyze
        self._on_score = on_score
        self._is_session_active = is_session_active
        self._camera_factory = camera_factory
        self._lane = analysis_lane or BestEffortDispatcher("analysis", max_workers=config.MAX_INFLIGHT_ANALYSES)
        self._jpeg_quality = jpeg_quality if jpeg_quality is not None else config.JPEG_QUALITY

        self._lock = threading.RLock()
        self._camera: Optional[CameraCapture] = None
        self._generation = 0
        self._task = PeriodicTask(
            "focusfy-sampler",
            interval if interval is not None else config.SAMPLE_INTERVAL_SECONDS,
            self._on_interval,
            run_immediately=True,
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def device_enabled(self) -> bool:
        with self._lock:
            return self._camera is not None

    @property
    def capturing(self) -> bool:
        """True when the loop should be running."""
        return self.device_enabled and bool(self._is_session_active())

    @property
    def loop_running(self) -> bool:
        return self._task.is_running

    def enable_device(self) -> Dict[str, Any]:
        """
        Acquire the capture device.

        Returns:
            {"success": bool, "error": str | None, "error_type": str | None}
        """
        with self._lock:
            if self._camera is not None:
                return {"success": True, "error": None, "error_type": None}

        # Opening can block for seconds; status reads must not wait on it
        camera = self._camera_factory()
        if not camera.open():
            camera.close()
            error_type, message = describe_failure(camera.failure_type, camera.error_message)
            logger.warning(f"Camera unavailable ({error_type}): {message}")
            return {"success": False, "error": message, "error_type": error_type}

        with self._lock:
            duplicate = self._camera is not None
            if not duplicate:
                self._camera = camera
        if duplicate:
            # Another enable won the race
            camera.close()
        else:
            logger.info("Capture device enabled")
        self.refresh()
        return {"success": True, "error": None, "error_type": None}

    def disable_device(self) -> None:
        """Stop the loop and release the capture device."""
        with self._lock:
            self._stop_loop()
            camera, self._camera = self._camera, None
        if camera is not None:
            camera.close()
            logger.info("Capture device released")

    def refresh(self) -> None:
        """Start or stop the loop to match the current capturing condition."""
        with self._lock:
            should_run = self.capturing
            if should_run and not self._task.is_running:
                self._generation += 1
                self._task.start()
                logger.debug(f"Sampler loop started (generation {self._generation})")
            elif not should_run and self._task.is_running:
                self._stop_loop()

    def stop(self) -> None:
        """Stop sampling and release the device (session end)."""
        self.disable_device()

    def join(self, timeout: Optional[float] = None) -> None:
        self._task.join(timeout)

    def shutdown(self) -> None:
        """Release everything, including the analysis lane."""
        self.disable_device()
        self._lane.shutdown()

    def _stop_loop(self) -> None:
        """Retire the current generation. Caller holds the lock."""
        if self._task.is_running:
            self._task.stop()
            logger.debug("Sampler loop stopped")
        self._generation += 1

    def _is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation and self.capturing

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    def _on_interval(self) -> None:
        with self._lock:
            generation = self._generation
        self.run_cycle(generation)

    def run_cycle(self, generation: Optional[int] = None) -> bool:
        """
        Run one capture-and-score cycle.

        Args:
            generation: Loop generation the cycle belongs to (default current).

        Returns:
            True if a frame was submitted for scoring.
        """
        with self._lock:
            if generation is None:
                generation = self._generation
            camera = self._camera
        if camera is None or not self._is_current(generation):
            return False

        if self._lane.in_flight >= config.MAX_INFLIGHT_ANALYSES:
            logger.debug("Scorer busy, skipping cycle")
            return False

        # Not ready until the device has decoded a frame
        success, frame = camera.read_frame()
        if not success or frame is None:
            return False

        try:
            payload = encode_frame(frame, self._jpeg_quality)
        except (cv2.error, OSError, ValueError) as e:
            logger.debug(f"Frame encoding failed, skipping cycle: {e}")
            return False

        self._lane.submit(
            "analyze_frame",
            self._analyze,
            payload,
            on_result=lambda response: self._handle_analysis(generation, response),
        )
        return True

    def _handle_analysis(self, generation: int, response: Any) -> None:
        """Score a scorer response and publish it if the cycle is still current."""
        metrics = parse_analysis_metrics(response)
        if metrics is None:
            return
        score = compute_focus_score(metrics)
        if not self._is_current(generation):
            logger.debug("Dropping score from a retired sampler cycle")
            return
        self._on_score(score, metrics)

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Wait for in-flight scorer calls to finish."""
        return self._lane.drain(timeout)
