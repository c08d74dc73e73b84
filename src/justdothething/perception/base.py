"""Abstract interfaces for the perception models.

The scene classifier and the face detector wrap pretrained models that
are expensive to load. Each one owns a ``ModelLoader`` so that the
model is loaded at most once per process and concurrent first callers
share the same pending load.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, Generic, TypeVar

import numpy as np

from justdothething.domain.models import FaceDetection, Prediction

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PerceptionError(Exception):
    """Raised when inference on a loaded model fails."""

    def __init__(self, message: str, model: str = "") -> None:
        super().__init__(message)
        self.model = model


class ModelLoadError(PerceptionError):
    """Raised when a model cannot be loaded. The next call retries."""


class ModelLoader(Generic[T]):
    """Load-once guard for a blocking model factory.

    The first ``get()`` schedules the factory in the default executor;
    later callers await the same future. A failed load clears the
    pending handle so a subsequent ``get()`` starts a fresh attempt.
    """

    def __init__(self, name: str, factory: Callable[[], T]) -> None:
        self._name = name
        self._factory = factory
        self._model: T | None = None
        self._pending: asyncio.Future[T] | None = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    async def get(self) -> T:
        if self._model is not None:
            return self._model
        if self._pending is None:
            self._pending = asyncio.ensure_future(self._load())
        pending = self._pending
        try:
            # shield: one cancelled waiter must not abort the shared load
            return await asyncio.shield(pending)
        finally:
            if pending.done() and self._pending is pending:
                self._pending = None

    async def _load(self) -> T:
        logger.info("Loading model %s", self._name)
        loop = asyncio.get_running_loop()
        try:
            model = await loop.run_in_executor(None, self._factory)
        except Exception as e:
            logger.error("Failed to load model %s: %s", self._name, e)
            raise ModelLoadError(f"Failed to load {self._name}: {e}", model=self._name) from e
        self._model = model
        logger.info("Model %s loaded", self._name)
        return model

    def reset(self) -> None:
        """Forget the loaded model; the next ``get()`` reloads it."""
        self._model = None
        self._pending = None


class SceneClassifier(ABC):
    """Image classifier producing ranked labels for a screenshot."""

    def __init__(self, top_k: int = 25) -> None:
        self._top_k = max(1, min(50, top_k))

    @property
    def top_k(self) -> int:
        return self._top_k

    @abstractmethod
    async def warm_up(self) -> None:
        """Load the model ahead of the first classification.

        Raises:
            ModelLoadError: If the model cannot be loaded.
        """
        ...

    @abstractmethod
    async def classify(self, image: np.ndarray) -> list[Prediction]:
        """Rank the labels for a BGR image.

        Returns:
            At most ``top_k`` predictions sorted by descending probability.

        Raises:
            ModelLoadError: If the model is not and cannot be loaded.
            PerceptionError: If inference fails.
        """
        ...


class FaceDetector(ABC):
    """Single-face detector producing a box, a score and eye landmarks."""

    @abstractmethod
    async def warm_up(self) -> None:
        ...

    @abstractmethod
    async def detect(self, image: np.ndarray) -> FaceDetection:
        """Detect the most prominent face in a BGR frame.

        Frames with a zero dimension yield ``FaceDetection(present=False)``
        without running the model.
        """
        ...

    async def close(self) -> None:
        """Release model resources. Default is a no-op."""


def top_predictions(labels: list[str], probabilities: np.ndarray, top_k: int) -> list[Prediction]:
    """Pair probabilities with labels and keep the ``top_k`` best."""
    probs = np.asarray(probabilities, dtype=np.float64).ravel()
    count = min(len(labels), probs.size)
    order = np.argsort(-probs[:count], kind="stable")[:top_k]
    return [
        Prediction(label=labels[i], probability=float(np.clip(probs[i], 0.0, 1.0)))
        for i in order
    ]


def softmax(logits: np.ndarray) -> np.ndarray:
    x = np.asarray(logits, dtype=np.float64).ravel()
    e = np.exp(x - x.max())
    return e / e.sum()
