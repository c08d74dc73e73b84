"""Tests for the OpenCV DNN scene classifier."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from justdothething.perception.base import ModelLoadError
from justdothething.perception.scene import OpenCVSceneClassifier


@pytest.fixture
def labels_file(tmp_path):
    path = tmp_path / "labels.txt"
    path.write_text("web site\nmonitor\n\ncomic book\n")
    return path


def _net(output: np.ndarray) -> MagicMock:
    net = MagicMock()
    net.empty.return_value = False
    net.forward.return_value = output
    return net


class TestOpenCVSceneClassifier:
    @pytest.mark.asyncio
    async def test_classify_applies_softmax_and_ranks(self, labels_file, sample_image) -> None:
        net = _net(np.array([[2.0, 0.5, 1.0]], dtype=np.float32))
        with patch("justdothething.perception.scene.cv2.dnn.readNet", return_value=net) as read_net:
            scene = OpenCVSceneClassifier("model.onnx", labels_file, input_size=32, top_k=2)
            preds = await scene.classify(sample_image)
            await scene.classify(sample_image)

        assert [p.label for p in preds] == ["web site", "comic book"]
        assert sum(p.probability for p in preds) < 1.0
        read_net.assert_called_once_with("model.onnx")

    @pytest.mark.asyncio
    async def test_probabilities_pass_through(self, labels_file, sample_image) -> None:
        net = _net(np.array([0.1, 0.7, 0.2], dtype=np.float32))
        with patch("justdothething.perception.scene.cv2.dnn.readNet", return_value=net):
            scene = OpenCVSceneClassifier("model.onnx", labels_file, input_size=32)
            preds = await scene.classify(sample_image)
        assert preds[0].label == "monitor"
        assert preds[0].probability == pytest.approx(0.7, abs=1e-6)

    @pytest.mark.asyncio
    async def test_missing_labels_file_fails_warm_up(self, tmp_path) -> None:
        scene = OpenCVSceneClassifier(tmp_path / "model.onnx", tmp_path / "missing.txt")
        with pytest.raises(ModelLoadError):
            await scene.warm_up()
        assert scene.is_loaded is False
