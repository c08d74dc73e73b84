"""Core domain models for the justdothething system.

These models represent the data flowing through one monitoring cycle:
captured frames, raw perception output, the two classifier decisions,
and the long-lived productivity state the UI observes.
"""

from __future__ import annotations

import enum
from datetime import datetime

import numpy as np
from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class YellStyle(str, enum.Enum):
    """Voice/tone used for interruptions."""

    COACH = "coach"
    DRILL_SERGEANT = "drill_sergeant"
    FRIENDLY = "friendly"
    MOTIVATIONAL = "motivational"


class GazeDirection(str, enum.Enum):
    """Discrete gaze direction derived from iris position."""

    STRAIGHT = "STRAIGHT"
    LEFT = "LEFT"
    RIGHT = "RIGHT"
    UP = "UP"
    DOWN = "DOWN"
    UNKNOWN = "UNKNOWN"


class ScreenArea(str, enum.Enum):
    """Where the user appears to be looking relative to the screen."""

    CENTER = "CENTER"
    LEFT = "LEFT"
    RIGHT = "RIGHT"
    TOP = "TOP"
    BOTTOM = "BOTTOM"
    SECONDARY_MONITOR = "SECONDARY_MONITOR"
    OFF_SCREEN = "OFF_SCREEN"
    UNKNOWN = "UNKNOWN"


class MonitorStatus(str, enum.Enum):
    """Lifecycle state of the monitoring controller."""

    INACTIVE = "inactive"
    INITIALIZING = "initializing"
    ACTIVE = "active"
    DEACTIVATING = "deactivating"


class CyclePhase(str, enum.Enum):
    """Phase of the currently running check cycle."""

    IDLE = "idle"
    CAPTURING = "capturing"
    CLASSIFYING = "classifying"
    DECIDING = "deciding"


# ---------------------------------------------------------------------------
# Capture Models
# ---------------------------------------------------------------------------


class CaptureFrame(BaseModel):
    """A single frame captured from the screen or the webcam.

    Ephemeral: owned by the controller for the duration of one check
    cycle and never persisted or transmitted.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    image: np.ndarray = Field(description="Raw image data as BGR numpy array (OpenCV format)")
    timestamp: datetime = Field(default_factory=datetime.now, description="When the frame was captured")
    frame_number: int = Field(ge=0, description="Sequential frame counter")
    source: str = Field(default="screen", description="Identifier for the capture device")

    @property
    def width(self) -> int:
        return int(self.image.shape[1]) if self.image.ndim >= 2 else 0

    @property
    def height(self) -> int:
        return int(self.image.shape[0]) if self.image.ndim >= 2 else 0

    @property
    def is_empty(self) -> bool:
        """Whether the frame has no decodable pixels yet."""
        return self.image.size == 0 or self.width == 0 or self.height == 0


# ---------------------------------------------------------------------------
# Perception Models
# ---------------------------------------------------------------------------


class Prediction(BaseModel):
    """One (label, probability) pair produced by the scene classifier."""

    model_config = ConfigDict(frozen=True)

    label: str = Field(description="Class label as reported by the model")
    probability: float = Field(ge=0.0, le=1.0)


class Point(BaseModel):
    """A 2D landmark position in frame pixels."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class FaceBox(BaseModel):
    """Face bounding box in frame pixels, origin at top-left."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    width: float = Field(ge=0.0)
    height: float = Field(ge=0.0)

    @property
    def center(self) -> Point:
        return Point(x=self.x + self.width / 2, y=self.y + self.height / 2)

    @property
    def area(self) -> float:
        return self.width * self.height


class EyeGeometry(BaseModel):
    """Landmarks of one eye: contour, iris, lids and corners."""

    model_config = ConfigDict(frozen=True)

    contour: list[Point] = Field(min_length=1, description="Eye outline points")
    iris: list[Point] = Field(min_length=1, description="Iris center and rim points")
    top: Point = Field(description="Upper eyelid midpoint")
    bottom: Point = Field(description="Lower eyelid midpoint")
    inner: Point = Field(description="Inner eye corner")
    outer: Point = Field(description="Outer eye corner")


class FaceDetection(BaseModel):
    """Output of the face/landmark detector for one video frame.

    When ``present`` is False every geometry field is None.
    """

    model_config = ConfigDict(frozen=True)

    present: bool = False
    box: FaceBox | None = None
    probability: float | None = Field(default=None, ge=0.0, le=1.0)
    left_eye: EyeGeometry | None = None
    right_eye: EyeGeometry | None = None
    frame_width: int = Field(default=0, ge=0)
    frame_height: int = Field(default=0, ge=0)

    @classmethod
    def absent(cls, frame_width: int = 0, frame_height: int = 0) -> FaceDetection:
        return cls(present=False, frame_width=frame_width, frame_height=frame_height)

    @property
    def has_eyes(self) -> bool:
        return self.left_eye is not None and self.right_eye is not None


class PixelStats(BaseModel):
    """Global pixel statistics of a screenshot, each normalized to 0-1."""

    model_config = ConfigDict(frozen=True)

    brightness: float = Field(default=0.5, ge=0.0, le=1.0)
    color_variance: float = Field(default=0.0, ge=0.0, le=1.0)
    code_layout: bool = False
    code_layout_confidence: float = Field(default=0.0, ge=0.0, le=1.0)


# ---------------------------------------------------------------------------
# Classifier Results
# ---------------------------------------------------------------------------


class ClassificationResult(BaseModel):
    """Work/non-work decision for one screenshot. Immutable once returned."""

    model_config = ConfigDict(frozen=True)

    is_work: bool
    confidence: float = Field(ge=0.0, le=1.0)
    detected_work_items: list[str] = Field(default_factory=list)
    detected_non_work_items: list[str] = Field(default_factory=list)
    predictions: list[Prediction] = Field(default_factory=list)
    work_score: float = 0.0
    non_work_score: float = 0.0
    brightness: float | None = None
    color_variance: float | None = None
    decisions: list[str] = Field(default_factory=list, description="Scoring trail for debugging")
    error: str | None = None
    timestamp: datetime = Field(default_factory=datetime.now)

    @classmethod
    def fail_open(cls, error: str) -> ClassificationResult:
        """Safe default when inference fails: assume productive."""
        return cls(is_work=True, confidence=0.0, error=error)


class FocusResult(BaseModel):
    """Focused/distracted decision for one webcam frame."""

    model_config = ConfigDict(frozen=True)

    focused: bool
    confidence: float = Field(ge=0.0, le=1.0)
    face_detected: bool = False
    gaze_direction: GazeDirection = GazeDirection.UNKNOWN
    eyes_open: bool = False
    screen_area: ScreenArea = ScreenArea.UNKNOWN
    face_box: FaceBox | None = None
    second_monitor_latched: bool = False
    error: str | None = None
    timestamp: datetime = Field(default_factory=datetime.now)

    @classmethod
    def no_face(cls) -> FocusResult:
        return cls(
            focused=False,
            confidence=0.0,
            face_detected=False,
            gaze_direction=GazeDirection.UNKNOWN,
            eyes_open=False,
            screen_area=ScreenArea.OFF_SCREEN,
        )

    @classmethod
    def fail_open(cls, error: str) -> FocusResult:
        """Safe default when the detector fails or the video is not ready."""
        return cls(focused=True, confidence=0.0, error=error)

    @classmethod
    def disabled(cls) -> FocusResult:
        """Used when face detection is off: never report distraction."""
        return cls(focused=True, confidence=1.0, eyes_open=True)


# ---------------------------------------------------------------------------
# Session State
# ---------------------------------------------------------------------------


class ProductivityState(BaseModel):
    """The single source of truth a UI observes for an active session.

    Mutated in place by the controller's cycle path only; readers should
    use ``MonitorController.snapshot()`` and treat it as read-only.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    is_work: bool = True
    is_focused: bool = True
    gaze_direction: GazeDirection = GazeDirection.UNKNOWN
    content_confidence: float = 0.0
    focus_confidence: float = 0.0
    last_checked_at: datetime | None = None
    last_attempt_at: datetime | None = None
    last_yell_time: datetime | None = None
    last_message: str | None = None
    detected_work_items: list[str] = Field(default_factory=list)
    detected_non_work_items: list[str] = Field(default_factory=list)
    screenshot: np.ndarray | None = Field(default=None, exclude=True)
    last_error: str | None = None
    warnings: list[str] = Field(default_factory=list)
    cycles_completed: int = 0
    cycles_skipped: int = 0
    interruptions: int = 0

    def clear_transient(self) -> None:
        """Drop per-session display fields; history counters stay."""
        self.screenshot = None
        self.last_error = None
        self.warnings = []
