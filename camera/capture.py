"""Webcam capture and device handle management."""

import cv2
import logging
import sys
import threading
from enum import Enum
from typing import Optional, Tuple
import numpy as np
import config

logger = logging.getLogger(__name__)


class CameraFailureType(Enum):
    """Types of camera access failures for user-facing notices."""
    NONE = "none"  # No failure - camera works
    PERMISSION_DENIED = "permission_denied"  # User denied camera permission
    NO_HARDWARE = "no_hardware"  # No camera hardware detected
    IN_USE = "in_use"  # Camera is being used by another application
    UNKNOWN = "unknown"  # Unknown/generic failure


# (error_type, default message) per failure, used for on_error notices
CAMERA_ERROR_MESSAGES = {
    CameraFailureType.PERMISSION_DENIED: (
        "camera_denied",
        "Camera access denied. Please allow camera access for focus tracking.",
    ),
    CameraFailureType.NO_HARDWARE: (
        "camera_no_hardware",
        "No camera detected. Please connect a webcam and try again.",
    ),
    CameraFailureType.IN_USE: (
        "camera_in_use",
        "Camera is being used by another application. Close other camera apps and try again.",
    ),
}


def describe_failure(failure_type: CameraFailureType, message: Optional[str] = None) -> Tuple[str, str]:
    """
    Map a failure type to an (error_type, message) pair.

    Args:
        failure_type: Why the camera could not be opened.
        message: Specific message from the capture layer, if any.

    Returns:
        Tuple of (error_type, user-facing message).
    """
    error_type, default = CAMERA_ERROR_MESSAGES.get(
        failure_type, ("camera_error", "Camera access failed. Check system settings.")
    )
    return error_type, message or default


class CameraCapture:
    """
    Exclusive handle on one webcam.

    Opened when the user enables the camera and closed on disable or when the
    session stops. Supports the context manager protocol.
    """

    def __init__(self, camera_index: int = None):
        """
        Args:
            camera_index: Camera device index (default from config)
        """
        # Explicit None check - 0 is a valid camera index
        self.camera_index = camera_index if camera_index is not None else config.CAMERA_INDEX
        self.cap: Optional[cv2.VideoCapture] = None
        self.is_opened = False
        self.failure_type: CameraFailureType = CameraFailureType.NONE
        self.error_message: Optional[str] = None
        self._lock = threading.Lock()  # cv2 capture objects are not thread-safe

    def __enter__(self) -> 'CameraCapture':
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def open(self) -> bool:
        """
        Open the camera device at its native resolution.

        Returns:
            True if camera opened successfully, False otherwise. On failure
            failure_type and error_message describe why.
        """
        try:
            # DirectShow opens much faster on Windows
            if sys.platform == "win32":
                cap = cv2.VideoCapture(self.camera_index, cv2.CAP_DSHOW)
                if not cap.isOpened():
                    logger.info("DirectShow backend failed, trying default backend...")
                    cap.release()
                    cap = cv2.VideoCapture(self.camera_index)
            else:
                cap = cv2.VideoCapture(self.camera_index)

            if not cap.isOpened():
                logger.error(f"Failed to open camera at index {self.camera_index}")
                cap.release()
                self.failure_type, self.error_message = self._diagnose_camera_failure()
                return False

            with self._lock:
                self.cap = cap
                self.is_opened = True
                self.failure_type = CameraFailureType.NONE
                self.error_message = None

            props = self.get_properties()
            logger.info(f"Camera opened at {props.get('width')}x{props.get('height')}")
            return True

        except Exception as e:
            logger.error(f"Error opening camera: {e}")
            self.failure_type = CameraFailureType.UNKNOWN
            self.error_message = f"Unexpected error accessing camera: {e}"
            return False

    def _diagnose_camera_failure(self) -> Tuple[CameraFailureType, str]:
        """
        Guess why the camera could not be opened.

        Returns:
            Tuple of (CameraFailureType, error_message)
        """
        if self._count_available_cameras() == 0:
            logger.info("No camera hardware detected on this system")
            return CameraFailureType.NO_HARDWARE, describe_failure(CameraFailureType.NO_HARDWARE)[1]

        if sys.platform == "darwin":
            # Hardware is there; macOS blocks unauthorised apps at open time
            return CameraFailureType.PERMISSION_DENIED, describe_failure(CameraFailureType.PERMISSION_DENIED)[1]

        return CameraFailureType.IN_USE, describe_failure(CameraFailureType.IN_USE)[1]

    def _count_available_cameras(self) -> int:
        """
        Count cameras by probing indices 0-3.

        Returns:
            Number of cameras detected (approximate)
        """
        count = 0
        for i in range(4):
            if i == self.camera_index:
                continue
            try:
                cap = cv2.VideoCapture(i)
                if cap.isOpened():
                    count += 1
                cap.release()
            except Exception:
                continue
        return count

    def close(self) -> None:
        """Release the device. Safe to call repeatedly."""
        with self._lock:
            if self.cap is not None:
                self.cap.release()
                self.cap = None
                logger.info("Camera closed")
            self.is_opened = False

    def read_frame(self) -> Tuple[bool, Optional[np.ndarray]]:
        """
        Read a single frame from the camera.

        Returns:
            Tuple of (success: bool, frame: BGR numpy array or None)
        """
        with self._lock:
            if not self.is_opened or self.cap is None:
                logger.debug("Attempted to read from closed camera")
                return False, None

            try:
                ret, frame = self.cap.read()
            except Exception as e:
                logger.error(f"Error reading frame: {e}")
                return False, None

            if not ret or frame is None:
                logger.debug("No frame available from camera yet")
                return False, None

            return True, frame

    def get_properties(self) -> dict:
        """
        Get current camera properties.

        Returns:
            Dictionary with width, height, fps and backend.
        """
        with self._lock:
            if not self.is_opened or self.cap is None:
                return {}

            return {
                "width": int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
                "height": int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
                "fps": self.cap.get(cv2.CAP_PROP_FPS),
                "backend": self.cap.getBackendName()
            }
