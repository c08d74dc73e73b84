"""Tests for the focus classifier and its geometry signals."""

from __future__ import annotations

from datetime import timedelta

import numpy as np
import pytest

from conftest import FakeFaceDetector, make_detection
from justdothething.classify.focus import (
    FocusClassifier,
    SecondMonitorLatch,
    classify_gaze,
    eye_openness_ratio,
    face_centeredness,
    relative_face_size,
)
from justdothething.classify.tuning import FocusTuning, FocusWeights
from justdothething.domain.models import (
    CaptureFrame,
    FaceBox,
    FaceDetection,
    FocusResult,
    GazeDirection,
    ScreenArea,
)

# Small face in the top-left corner: fails centering and size.
CORNER_BOX = FaceBox(x=0, y=0, width=60, height=60)


class TestGeometrySignals:
    def test_centered_face_scores_one(self) -> None:
        box = FaceBox(x=270, y=190, width=100, height=100)
        assert face_centeredness(box, 640) == pytest.approx(1.0)

    def test_face_beyond_tolerance_scores_zero(self) -> None:
        assert face_centeredness(CORNER_BOX, 640) == 0.0

    def test_zero_width_frame(self) -> None:
        assert face_centeredness(CORNER_BOX, 0) == 0.0
        assert relative_face_size(CORNER_BOX, 0, 480) == 0.0

    def test_face_size_is_capped(self) -> None:
        box = FaceBox(x=0, y=0, width=640, height=480)
        assert relative_face_size(box, 640, 480) == 1.0

    def test_eye_openness_ratio(self) -> None:
        d = make_detection(open_gap=4.0)
        assert eye_openness_ratio(d.left_eye, d.right_eye) == pytest.approx(0.2)


class TestClassifyGaze:
    @pytest.mark.parametrize(
        ("h", "v", "expected"),
        [
            (0.5, 0.5, GazeDirection.STRAIGHT),
            (0.34, 0.5, GazeDirection.LEFT),
            (0.66, 0.5, GazeDirection.RIGHT),
            (0.5, 0.34, GazeDirection.UP),
            (0.5, 0.66, GazeDirection.DOWN),
            (0.2, 0.2, GazeDirection.LEFT),
        ],
    )
    def test_bounds(self, h: float, v: float, expected: GazeDirection) -> None:
        assert classify_gaze(h, v) is expected

    def test_secondary_monitor_widens_up_region(self) -> None:
        assert classify_gaze(0.5, 0.4) is GazeDirection.STRAIGHT
        assert classify_gaze(0.5, 0.4, secondary_monitor=True) is GazeDirection.UP


class TestTuningValidation:
    def test_weights_must_sum_to_one(self) -> None:
        with pytest.raises(ValueError):
            FocusWeights(face_detected=0.5)

    def test_gaze_bounds_must_be_ordered(self) -> None:
        with pytest.raises(ValueError):
            FocusTuning(gaze_left_bound=0.7, gaze_right_bound=0.3)


class TestFocusEvaluate:
    def setup_method(self) -> None:
        self.classifier = FocusClassifier(FakeFaceDetector())
        self.latch = SecondMonitorLatch()

    def test_no_face_is_exact(self, clock) -> None:
        result = self.classifier.evaluate(FaceDetection.absent(640, 480), self.latch, clock())
        assert result.focused is False
        assert result.confidence == 0.0
        assert result.face_detected is False
        assert result.gaze_direction is GazeDirection.UNKNOWN
        assert result.eyes_open is False
        assert result.screen_area is ScreenArea.OFF_SCREEN

    def test_attentive_face_is_focused(self, clock) -> None:
        result = self.classifier.evaluate(make_detection(), self.latch, clock())
        assert result.focused is True
        assert result.confidence == pytest.approx(1.0)
        assert result.gaze_direction is GazeDirection.STRAIGHT
        assert result.screen_area is ScreenArea.CENTER

    def test_distracted_face(self, clock) -> None:
        result = self.classifier.evaluate(
            make_detection(iris_dx=-5, box=CORNER_BOX), self.latch, clock(),
        )
        assert result.gaze_direction is GazeDirection.LEFT
        assert result.focused is False
        assert result.confidence < 0.7

    def test_closed_eyes(self, clock) -> None:
        result = self.classifier.evaluate(make_detection(open_gap=2.0), self.latch, clock())
        assert result.eyes_open is False
        assert result.confidence == pytest.approx(0.9)

    def test_missing_eye_landmarks(self, clock) -> None:
        result = self.classifier.evaluate(make_detection(eyes=False), self.latch, clock())
        assert result.gaze_direction is GazeDirection.UNKNOWN
        assert result.eyes_open is True
        assert result.confidence == pytest.approx(0.75)

    def test_missing_probability_counts_as_half(self, clock) -> None:
        result = self.classifier.evaluate(make_detection(probability=None), self.latch, clock())
        assert result.confidence == pytest.approx(0.3 * 0.625 + 0.7)


class TestSecondMonitorLatch:
    def setup_method(self) -> None:
        self.classifier = FocusClassifier(FakeFaceDetector())
        self.latch = SecondMonitorLatch()

    def test_up_glance_stays_focused_through_grace_window(self, clock) -> None:
        start = clock()
        up = make_detection(iris_dy=-2, box=CORNER_BOX)
        away = make_detection(iris_dx=-5, box=CORNER_BOX)

        first = self.classifier.evaluate(up, self.latch, start, secondary_monitor=True)
        assert first.gaze_direction is GazeDirection.UP
        assert first.second_monitor_latched is True
        assert first.focused is True
        assert first.confidence >= 0.7
        assert first.screen_area is ScreenArea.SECONDARY_MONITOR

        during = self.classifier.evaluate(away, self.latch, start + timedelta(seconds=2), secondary_monitor=True)
        assert during.focused is True
        assert during.confidence >= 0.7

        after = self.classifier.evaluate(away, self.latch, start + timedelta(seconds=4), secondary_monitor=True)
        assert after.second_monitor_latched is False
        assert after.focused is False

    def test_latch_cleared_when_mode_off(self, clock) -> None:
        up = make_detection(iris_dy=-2)
        self.classifier.evaluate(up, self.latch, clock(), secondary_monitor=True)
        assert self.latch.is_active(clock())
        self.classifier.evaluate(make_detection(), self.latch, clock(), secondary_monitor=False)
        assert not self.latch.is_active(clock())

    def test_no_face_is_terminal_even_when_latched(self, clock) -> None:
        self.classifier.evaluate(make_detection(iris_dy=-2), self.latch, clock(), secondary_monitor=True)
        result = self.classifier.evaluate(FaceDetection.absent(), self.latch, clock(), secondary_monitor=True)
        assert result == FocusResult.no_face().model_copy(update={"timestamp": result.timestamp})


class TestFocusClassify:
    @pytest.mark.asyncio
    async def test_frame_not_ready_fails_open(self, clock) -> None:
        classifier = FocusClassifier(FakeFaceDetector())
        empty = CaptureFrame(image=np.zeros((0, 0, 3), dtype=np.uint8), frame_number=0, source="webcam")
        for frame in (None, empty):
            result = await classifier.classify(frame, SecondMonitorLatch(), clock())
            assert result.focused is True
            assert result.confidence == 0.0
            assert result.error

    @pytest.mark.asyncio
    async def test_detector_error_fails_open(self, clock, sample_frame) -> None:
        detector = FakeFaceDetector()
        detector.error = RuntimeError("graph crashed")
        result = await FocusClassifier(detector).classify(sample_frame, SecondMonitorLatch(), clock())
        assert result.focused is True
        assert result.confidence == 0.0
        assert "graph crashed" in result.error

    @pytest.mark.asyncio
    async def test_runs_detector(self, clock, sample_frame) -> None:
        classifier = FocusClassifier(FakeFaceDetector(make_detection()))
        result = await classifier.classify(sample_frame, SecondMonitorLatch(), clock())
        assert result.face_detected is True
        assert result.focused is True

    def test_disabled_result_never_reports_distraction(self) -> None:
        result = FocusResult.disabled()
        assert result.focused is True
        assert result.confidence == 1.0
