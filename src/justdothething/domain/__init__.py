"""Domain models for justdothething.

This package contains all core data structures, enumerations, and value
objects used throughout the system. All models use Pydantic v2 for
validation and serialization.
"""

from justdothething.domain.models import (
    CaptureFrame,
    ClassificationResult,
    CyclePhase,
    EyeGeometry,
    FaceBox,
    FaceDetection,
    FocusResult,
    GazeDirection,
    MonitorStatus,
    PixelStats,
    Point,
    Prediction,
    ProductivityState,
    ScreenArea,
    YellStyle,
)

__all__ = [
    "CaptureFrame",
    "ClassificationResult",
    "CyclePhase",
    "EyeGeometry",
    "FaceBox",
    "FaceDetection",
    "FocusResult",
    "GazeDirection",
    "MonitorStatus",
    "PixelStats",
    "Point",
    "Prediction",
    "ProductivityState",
    "ScreenArea",
    "YellStyle",
]
