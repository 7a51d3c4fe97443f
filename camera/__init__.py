"""
Camera capture and focus scoring.

CameraCapture owns the webcam handle and scoring turns scorer metrics into a
0-100 score. The capture-and-score loop lives in camera.sampler.
"""

from camera.capture import CameraCapture, CameraFailureType
from camera.scoring import compute_focus_score

__all__ = ["CameraCapture", "CameraFailureType", "compute_focus_score"]
