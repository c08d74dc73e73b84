"""Shared test fixtures for the justdothething test suite.

Provides in-memory fakes for the hardware and model edges (capture
sources, scene classifier, face detector, speech output) plus sample
frames and detections.
"""

from __future__ import annotations

import asyncio
from datetime import datetime

import numpy as np
import pytest

from justdothething.capture.base import CaptureError, CaptureSource
from justdothething.domain.models import (
    CaptureFrame,
    EyeGeometry,
    FaceBox,
    FaceDetection,
    Point,
    Prediction,
)
from justdothething.interrupt.base import SpeechOutput, VoiceParams
from justdothething.perception.base import FaceDetector, ModelLoadError, SceneClassifier


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeCapture(CaptureSource):
    """Capture source returning a fixed image; access and failures are configurable."""

    def __init__(self, name: str = "screen", grant: bool = True, image: np.ndarray | None = None) -> None:
        super().__init__()
        self.source_name = name
        self.grant = grant
        self.image = image if image is not None else np.full((60, 80, 3), 128, dtype=np.uint8)
        self.fail_next = 0
        self.captures = 0
        self.releases = 0

    async def request_access(self) -> bool:
        self._is_open = self.grant
        return self.grant

    async def capture_frame(self) -> CaptureFrame:
        if not self._is_open:
            raise CaptureError(f"{self.source_name} not open", source=self.source_name)
        if self.fail_next > 0:
            self.fail_next -= 1
            raise CaptureError(f"{self.source_name} read failed", source=self.source_name)
        self.captures += 1
        return CaptureFrame(image=self.image, frame_number=self._next_frame_number(), source=self.source_name)

    async def release(self) -> None:
        self.releases += 1
        self._is_open = False


class FakeScene(SceneClassifier):
    """Scene classifier returning canned predictions."""

    def __init__(
        self,
        predictions: list[Prediction] | None = None,
        fail_load: bool = False,
        top_k: int = 25,
    ) -> None:
        super().__init__(top_k=top_k)
        self.predictions = predictions or []
        self.fail_load = fail_load
        self.error: Exception | None = None
        self.calls = 0

    async def warm_up(self) -> None:
        if self.fail_load:
            raise ModelLoadError("scene model missing", model="scene-classifier")

    async def classify(self, image: np.ndarray) -> list[Prediction]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.predictions)


class FakeFaceDetector(FaceDetector):
    def __init__(self, detection: FaceDetection | None = None, fail_load: bool = False) -> None:
        self.detection = detection or FaceDetection.absent()
        self.fail_load = fail_load
        self.error: Exception | None = None
        self.closed = False

    async def warm_up(self) -> None:
        if self.fail_load:
            raise ModelLoadError("face model missing", model="face-landmarks")

    async def detect(self, image: np.ndarray) -> FaceDetection:
        if self.error is not None:
            raise self.error
        return self.detection

    async def close(self) -> None:
        self.closed = True


class FakeSpeech(SpeechOutput):
    """Records spoken text instead of producing audio."""

    def __init__(self) -> None:
        super().__init__()
        self.spoken: list[tuple[str, VoiceParams]] = []
        self.error: Exception | None = None
        self.cancelled = 0

    async def speak(self, text: str, voice: VoiceParams) -> None:
        if self.error is not None:
            raise self.error
        self.spoken.append((text, voice))

    async def cancel_all(self) -> None:
        self.cancelled += 1


class FakeProcess:
    """Speech subprocess stand-in that "speaks" for half a second unless terminated."""

    def __init__(self) -> None:
        self.returncode = None
        self.terminated = False
        self.played = False
        self._done = asyncio.Event()

    def terminate(self) -> None:
        self.terminated = True
        self.returncode = -15
        self._done.set()

    async def wait(self) -> int:
        await self._done.wait()
        return self.returncode

    async def communicate(self):
        try:
            await asyncio.wait_for(self._done.wait(), timeout=0.5)
        except asyncio.TimeoutError:
            self.played = True
            self.returncode = 0
        return b"", b""


class Clock:
    """Manually advanced wall clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now


# ---------------------------------------------------------------------------
# Geometry helpers
# ---------------------------------------------------------------------------


def make_eye(cx: float, cy: float, iris_dx: float = 0.0, iris_dy: float = 0.0, open_gap: float = 6.0) -> EyeGeometry:
    """A 20x10 eye box centered at (cx, cy) with the iris offset by (dx, dy) pixels."""
    contour = [
        Point(x=cx - 10, y=cy), Point(x=cx, y=cy - 5),
        Point(x=cx + 10, y=cy), Point(x=cx, y=cy + 5),
    ]
    return EyeGeometry(
        contour=contour,
        iris=[Point(x=cx + iris_dx, y=cy + iris_dy)],
        top=Point(x=cx, y=cy - open_gap / 2),
        bottom=Point(x=cx, y=cy + open_gap / 2),
        inner=Point(x=cx - 10, y=cy),
        outer=Point(x=cx + 10, y=cy),
    )


def make_detection(
    iris_dx: float = 0.0,
    iris_dy: float = 0.0,
    probability: float | None = 0.95,
    box: FaceBox | None = None,
    eyes: bool = True,
    open_gap: float = 6.0,
) -> FaceDetection:
    """A centered, well-sized face in a 640x480 frame."""
    box = box or FaceBox(x=220, y=140, width=200, height=200)
    return FaceDetection(
        present=True,
        box=box,
        probability=probability,
        left_eye=make_eye(280, 220, iris_dx, iris_dy, open_gap) if eyes else None,
        right_eye=make_eye(360, 220, iris_dx, iris_dy, open_gap) if eyes else None,
        frame_width=640,
        frame_height=480,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_image() -> np.ndarray:
    """A minimal 100x100 mid-grey image for testing."""
    return np.full((100, 100, 3), 128, dtype=np.uint8)


@pytest.fixture
def sample_frame(sample_image: np.ndarray) -> CaptureFrame:
    return CaptureFrame(
        image=sample_image,
        timestamp=datetime(2025, 1, 1, 12, 0, 0),
        frame_number=1,
        source="webcam",
    )


@pytest.fixture
def code_editor_predictions() -> list[Prediction]:
    return [
        Prediction(label="code editor", probability=0.9),
        Prediction(label="keyboard", probability=0.5),
    ]


@pytest.fixture
def streaming_predictions() -> list[Prediction]:
    return [
        Prediction(label="netflix", probability=0.8),
        Prediction(label="video player", probability=0.6),
    ]


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def fake_speech() -> FakeSpeech:
    return FakeSpeech()
