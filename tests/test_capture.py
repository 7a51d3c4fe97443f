"""
Tests for camera/capture.py — frame readiness and failure diagnosis with
cv2.VideoCapture mocked out.
"""

import sys
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

import numpy as np

# Ensure project root is on the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from camera.capture import CameraCapture, CameraFailureType, describe_failure


def make_video_capture(opened=True, frames=()):
    """Mock cv2.VideoCapture yielding the given (ret, frame) reads."""
    cap = MagicMock()
    cap.isOpened.return_value = opened
    cap.read.side_effect = list(frames)
    return cap


class TestReadFrame(unittest.TestCase):

    def test_not_ready_until_first_frame_decodes(self):
        frame = np.zeros((4, 4, 3), dtype=np.uint8)
        cap = make_video_capture(frames=[(False, None), (True, frame)])
        with patch("camera.capture.cv2.VideoCapture", return_value=cap), \
                patch("camera.capture.sys.platform", "linux"):
            camera = CameraCapture(camera_index=0)
            self.assertTrue(camera.open())

            self.assertEqual(camera.read_frame(), (False, None))
            ok, read = camera.read_frame()
            self.assertTrue(ok)
            self.assertIs(read, frame)

    def test_closed_camera_reads_nothing(self):
        cap = make_video_capture(frames=[])
        with patch("camera.capture.cv2.VideoCapture", return_value=cap), \
                patch("camera.capture.sys.platform", "linux"):
            camera = CameraCapture(camera_index=0)
            camera.open()
            camera.close()
            camera.close()

        self.assertEqual(camera.read_frame(), (False, None))
        cap.release.assert_called_once()
        cap.read.assert_not_called()

    def test_read_error_reported_as_no_frame(self):
        cap = make_video_capture()
        cap.read.side_effect = RuntimeError("device lost")
        with patch("camera.capture.cv2.VideoCapture", return_value=cap), \
                patch("camera.capture.sys.platform", "linux"):
            camera = CameraCapture(camera_index=0)
            camera.open()
            self.assertEqual(camera.read_frame(), (False, None))


class TestOpenFailure(unittest.TestCase):

    def test_no_hardware_diagnosed(self):
        with patch("camera.capture.cv2.VideoCapture", return_value=make_video_capture(opened=False)), \
                patch("camera.capture.sys.platform", "linux"):
            camera = CameraCapture(camera_index=0)
            self.assertFalse(camera.open())

        self.assertEqual(camera.failure_type, CameraFailureType.NO_HARDWARE)
        self.assertEqual(describe_failure(camera.failure_type)[0], "camera_no_hardware")

    def test_every_failure_type_has_an_error_type(self):
        for failure_type in CameraFailureType:
            if failure_type is CameraFailureType.NONE:
                continue
            error_type, message = describe_failure(failure_type)
            self.assertTrue(error_type.startswith("camera_"))
            self.assertTrue(message)

    def test_specific_message_wins(self):
        self.assertEqual(
            describe_failure(CameraFailureType.IN_USE, "Zoom has the camera"),
            ("camera_in_use", "Zoom has the camera"),
        )


if __name__ == "__main__":
    unittest.main()
