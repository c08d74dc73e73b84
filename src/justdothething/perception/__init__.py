"""Perception adapters for justdothething.

Wraps the pretrained scene classifier and face/landmark detector behind
small async interfaces with load-once model handling.

Public API:
    SceneClassifier -- Abstract image classifier
    FaceDetector -- Abstract face detector
    ModelLoader -- Shared load-once guard
    OpenCVSceneClassifier -- cv2.dnn implementation
    MediaPipeFaceDetector -- MediaPipe implementation (``vision`` extra)
"""

from justdothething.perception.base import (
    FaceDetector,
    ModelLoader,
    ModelLoadError,
    PerceptionError,
    SceneClassifier,
)

__all__ = [
    "FaceDetector",
    "MediaPipeFaceDetector",
    "ModelLoadError",
    "ModelLoader",
    "OpenCVSceneClassifier",
    "PerceptionError",
    "SceneClassifier",
]


def __getattr__(name: str) -> type:
    """Lazy import for concrete implementations that require external deps."""
    if name == "OpenCVSceneClassifier":
        from justdothething.perception.scene import OpenCVSceneClassifier
        return OpenCVSceneClassifier
    if name == "MediaPipeFaceDetector":
        from justdothething.perception.face import MediaPipeFaceDetector
        return MediaPipeFaceDetector
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
