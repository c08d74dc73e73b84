"""Scene classifier backed by OpenCV's DNN module.

Runs a pretrained ImageNet-style classifier (ONNX, Caffe or TensorFlow
graph, anything ``cv2.dnn.readNet`` accepts) over a screenshot and
reports the top-ranked labels.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import cv2
import numpy as np

from justdothething.domain.models import Prediction
from justdothething.perception.base import (
    ModelLoader,
    PerceptionError,
    SceneClassifier,
    softmax,
    top_predictions,
)
from justdothething.utils.imaging import to_bgr

logger = logging.getLogger(__name__)

# ImageNet normalization, RGB order
_MEAN = np.array([0.485, 0.456, 0.406], dtype=np.float32)
_STD = np.array([0.229, 0.224, 0.225], dtype=np.float32)


class _SceneModel:
    def __init__(self, net: cv2.dnn.Net, labels: list[str]) -> None:
        self.net = net
        self.labels = labels


class OpenCVSceneClassifier(SceneClassifier):
    """ImageNet-style classifier loaded with ``cv2.dnn.readNet``.

    The network is not re-entrant, so inference is serialized with a
    lock and executed in the default thread pool.
    """

    def __init__(
        self,
        model_path: Path | str,
        labels_path: Path | str,
        input_size: int = 224,
        top_k: int = 25,
    ) -> None:
        super().__init__(top_k=top_k)
        self._model_path = Path(model_path)
        self._labels_path = Path(labels_path)
        self._input_size = input_size
        self._loader: ModelLoader[_SceneModel] = ModelLoader("scene-classifier", self._load_sync)
        self._lock = asyncio.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._loader.is_loaded

    async def warm_up(self) -> None:
        await self._loader.get()

    async def classify(self, image: np.ndarray) -> list[Prediction]:
        model = await self._loader.get()
        loop = asyncio.get_running_loop()
        async with self._lock:
            try:
                probs = await loop.run_in_executor(None, self._infer_sync, model, image)
            except cv2.error as e:
                raise PerceptionError(f"Scene inference failed: {e}", model=self._loader.name) from e
        predictions = top_predictions(model.labels, probs, self.top_k)
        logger.debug(
            "Scene top-3: %s",
            ", ".join(f"{p.label}={p.probability:.2f}" for p in predictions[:3]),
        )
        return predictions

    def _load_sync(self) -> _SceneModel:
        labels = [
            line.strip()
            for line in self._labels_path.read_text(encoding="utf-8").splitlines()
            if line.strip()
        ]
        if not labels:
            raise ValueError(f"No labels in {self._labels_path}")
        net = cv2.dnn.readNet(str(self._model_path))
        if net.empty():
            raise ValueError(f"Could not read network from {self._model_path}")
        return _SceneModel(net, labels)

    def _infer_sync(self, model: _SceneModel, image: np.ndarray) -> np.ndarray:
        size = self._input_size
        rgb = cv2.cvtColor(to_bgr(image), cv2.COLOR_BGR2RGB)
        resized = cv2.resize(rgb, (size, size), interpolation=cv2.INTER_AREA)
        normalized = (resized.astype(np.float32) / 255.0 - _MEAN) / _STD
        blob = cv2.dnn.blobFromImage(normalized)
        model.net.setInput(blob)
        out = model.net.forward().ravel()
        # Some exported graphs already end in a softmax layer
        if out.min() >= 0.0 and abs(float(out.sum()) - 1.0) < 1e-3:
            return out.astype(np.float64)
        return softmax(out)
