"""Focused/distracted classification from face and eye geometry.

Fuses five signals (face presence, centering, size, gaze direction and
eye openness) into a weighted confidence. With a secondary monitor
above the primary one, upward glances latch a short grace window during
which the user is still considered focused.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta

from justdothething.classify.tuning import FocusTuning
from justdothething.domain.models import (
    CaptureFrame,
    EyeGeometry,
    FaceBox,
    FaceDetection,
    FocusResult,
    GazeDirection,
    ScreenArea,
)
from justdothething.perception.base import FaceDetector

logger = logging.getLogger(__name__)


class SecondMonitorLatch:
    """Session-scoped hysteresis state for upward glances.

    Holds the time of the last UP observation and the instant the grace
    window expires. One instance per monitoring session.
    """

    def __init__(self) -> None:
        self.last_up_at: datetime | None = None
        self.expires_at: datetime | None = None

    def observe_up(self, now: datetime, grace_seconds: float) -> None:
        self.last_up_at = now
        self.expires_at = now + timedelta(seconds=grace_seconds)

    def is_active(self, now: datetime) -> bool:
        return self.expires_at is not None and now < self.expires_at

    def clear(self) -> None:
        self.last_up_at = None
        self.expires_at = None


# ---------------------------------------------------------------------------
# Geometry signals
# ---------------------------------------------------------------------------


def face_centeredness(box: FaceBox, frame_width: int, tolerance: float = 0.25) -> float:
    """1.0 for a horizontally centered face, falling to 0 at ``tolerance`` off-center."""
    if frame_width <= 0:
        return 0.0
    offset = abs(box.center.x / frame_width - 0.5) * 2
    span = tolerance * 2
    return 1.0 - min(offset, span) / span


def relative_face_size(box: FaceBox, frame_width: int, frame_height: int, scale: float = 10.0) -> float:
    """Face area as a fraction of the frame, scaled and capped at 1."""
    frame_area = frame_width * frame_height
    if frame_area <= 0:
        return 0.0
    return min(box.area / frame_area * scale, 1.0)


def _iris_ratio(eye: EyeGeometry) -> tuple[float, float] | None:
    xs = [p.x for p in eye.contour]
    ys = [p.y for p in eye.contour]
    width = max(xs) - min(xs)
    height = max(ys) - min(ys)
    if width <= 0 or height <= 0:
        return None
    iris_x = sum(p.x for p in eye.iris) / len(eye.iris)
    iris_y = sum(p.y for p in eye.iris) / len(eye.iris)
    return (iris_x - min(xs)) / width, (iris_y - min(ys)) / height


def gaze_ratios(left_eye: EyeGeometry, right_eye: EyeGeometry) -> tuple[float, float] | None:
    """Horizontal and vertical iris position within the eyes, averaged.

    Returns:
        (horizontal, vertical) in roughly 0-1 where 0.5 is centered, or
        None if either eye has a degenerate contour.
    """
    left = _iris_ratio(left_eye)
    right = _iris_ratio(right_eye)
    if left is None or right is None:
        return None
    return (left[0] + right[0]) / 2, (left[1] + right[1]) / 2


def classify_gaze(
    horizontal: float,
    vertical: float,
    tuning: FocusTuning | None = None,
    secondary_monitor: bool = False,
) -> GazeDirection:
    """Map gaze ratios to a discrete direction.

    Horizontal bounds are checked before vertical ones. With a secondary
    monitor the UP region is widened.
    """
    t = tuning or FocusTuning()
    up_bound = t.secondary_monitor_up_bound if secondary_monitor else t.gaze_up_bound
    if horizontal < t.gaze_left_bound:
        return GazeDirection.LEFT
    if horizontal > t.gaze_right_bound:
        return GazeDirection.RIGHT
    if vertical < up_bound:
        return GazeDirection.UP
    if vertical > t.gaze_down_bound:
        return GazeDirection.DOWN
    return GazeDirection.STRAIGHT


def eye_openness_ratio(left_eye: EyeGeometry, right_eye: EyeGeometry) -> float:
    """Mean eyelid gap relative to eye width across both eyes."""

    def ratio(eye: EyeGeometry) -> float:
        width = math.dist((eye.inner.x, eye.inner.y), (eye.outer.x, eye.outer.y))
        if width <= 0:
            return 0.0
        return math.dist((eye.top.x, eye.top.y), (eye.bottom.x, eye.bottom.y)) / width

    return (ratio(left_eye) + ratio(right_eye)) / 2


def screen_area_for(gaze: GazeDirection, secondary_monitor: bool = False) -> ScreenArea:
    if gaze is GazeDirection.UP:
        return ScreenArea.SECONDARY_MONITOR if secondary_monitor else ScreenArea.TOP
    return {
        GazeDirection.STRAIGHT: ScreenArea.CENTER,
        GazeDirection.LEFT: ScreenArea.LEFT,
        GazeDirection.RIGHT: ScreenArea.RIGHT,
        GazeDirection.DOWN: ScreenArea.BOTTOM,
    }.get(gaze, ScreenArea.UNKNOWN)


# ---------------------------------------------------------------------------
# Classifier
# ---------------------------------------------------------------------------


class FocusClassifier:
    """Decides whether the user is attending to the screen."""

    def __init__(self, detector: FaceDetector, tuning: FocusTuning | None = None) -> None:
        self._detector = detector
        self._tuning = tuning or FocusTuning()

    @property
    def tuning(self) -> FocusTuning:
        return self._tuning

    async def warm_up(self) -> None:
        await self._detector.warm_up()

    async def close(self) -> None:
        await self._detector.close()

    async def classify(
        self,
        frame: CaptureFrame | None,
        latch: SecondMonitorLatch,
        now: datetime,
        secondary_monitor: bool = False,
    ) -> FocusResult:
        """Run the detector on a webcam frame and evaluate the result.

        A frame that is not ready or a detector failure yields a
        fail-open result (focused, zero confidence).
        """
        if frame is None or frame.is_empty:
            return FocusResult.fail_open("video frame not ready")
        try:
            detection = await self._detector.detect(frame.image)
        except Exception as e:
            logger.error("Face detection failed: %s", e)
            return FocusResult.fail_open(str(e))
        return self.evaluate(detection, latch, now, secondary_monitor)

    def evaluate(
        self,
        detection: FaceDetection,
        latch: SecondMonitorLatch,
        now: datetime,
        secondary_monitor: bool = False,
    ) -> FocusResult:
        """Fuse the detection into a FocusResult. Pure apart from ``latch``."""
        t = self._tuning
        w = t.weights

        if not secondary_monitor:
            latch.clear()

        if not detection.present or detection.box is None:
            return FocusResult.no_face()

        box = detection.box
        probability = detection.probability if detection.probability is not None else 0.5
        presence = 1.0 if probability > t.face_probability_threshold else probability / t.face_probability_threshold
        centeredness = face_centeredness(box, detection.frame_width, t.center_tolerance)
        size = relative_face_size(box, detection.frame_width, detection.frame_height, t.face_size_scale)

        gaze = GazeDirection.UNKNOWN
        eyes_open = True
        if detection.left_eye is not None and detection.right_eye is not None:
            ratios = gaze_ratios(detection.left_eye, detection.right_eye)
            if ratios is not None:
                gaze = classify_gaze(ratios[0], ratios[1], t, secondary_monitor)
            eyes_open = eye_openness_ratio(detection.left_eye, detection.right_eye) > t.eye_openness_threshold

        if secondary_monitor and gaze is GazeDirection.UP:
            latch.observe_up(now, t.second_monitor_grace_seconds)
        latched = secondary_monitor and latch.is_active(now)

        gaze_credit = 1.0 if gaze is GazeDirection.STRAIGHT or latched else 0.0
        confidence = (
            presence * w.face_detected
            + centeredness * w.face_centered
            + size * w.face_size
            + gaze_credit * w.gaze_direction
            + (1.0 if eyes_open else 0.0) * w.eye_openness
        )

        if latched:
            confidence = min(1.0, max(confidence + t.second_monitor_boost, t.focus_threshold))
            focused = True
            area = ScreenArea.SECONDARY_MONITOR
        else:
            confidence = min(max(confidence, 0.0), 1.0)
            focused = confidence > t.focus_threshold
            area = screen_area_for(gaze, secondary_monitor)

        logger.debug(
            "Focus: presence=%.2f centered=%.2f size=%.2f gaze=%s eyes_open=%s latched=%s -> %.3f (%s)",
            presence, centeredness, size, gaze.value, eyes_open, latched, confidence,
            "FOCUSED" if focused else "DISTRACTED",
        )

        return FocusResult(
            focused=focused,
            confidence=confidence,
            face_detected=True,
            gaze_direction=gaze,
            eyes_open=eyes_open,
            screen_area=area,
            face_box=box,
            second_monitor_latched=latched,
        )
