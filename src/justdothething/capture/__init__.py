"""Capture module for justdothething.

Provides single-frame capture from the screen and the webcam behind a
common abstract base class.

Public API:
    CaptureSource -- Abstract base class
    ScreenCapture -- mss screen implementation
    WebcamCapture -- OpenCV webcam implementation
"""

from justdothething.capture.base import CaptureError, CaptureSource, PermissionDeniedError

__all__ = ["CaptureSource", "CaptureError", "PermissionDeniedError", "ScreenCapture", "WebcamCapture"]


def __getattr__(name: str) -> type:
    """Lazy import for concrete implementations that require external deps."""
    if name == "ScreenCapture":
        from justdothething.capture.screen import ScreenCapture
        return ScreenCapture
    if name == "WebcamCapture":
        from justdothething.capture.webcam import WebcamCapture
        return WebcamCapture
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
