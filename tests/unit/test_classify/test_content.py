"""Tests for the content (work/non-work) classifier."""

from __future__ import annotations

import numpy as np
import pytest

from conftest import FakeScene
from justdothething.classify.content import (
    ContentClassifier,
    concept_similarity,
    detect_ui_patterns,
    evaluate_context,
    semantic_similarity,
)
from justdothething.classify.tuning import Archetype, ContentTuning
from justdothething.domain.models import PixelStats, Prediction
from justdothething.perception.base import PerceptionError


class TestConceptSimilarity:
    def test_exact_match(self) -> None:
        assert concept_similarity("Netflix", "netflix") == 1.0

    def test_containment(self) -> None:
        assert concept_similarity("code editor", "editor") == 0.7
        assert concept_similarity("tv", "apple tv") == 0.7

    def test_short_words_get_flat_score(self) -> None:
        assert concept_similarity("cat", "game") == 0.2

    def test_character_overlap_scaled_by_length(self) -> None:
        # {p,t,o} shared of 9 distinct characters, lengths 6 and 7
        assert concept_similarity("laptop", "desktop") == pytest.approx(3 / 9 * 6 / 7)

    def test_semantic_similarity_prefers_matching_vocabulary(self) -> None:
        work, non_work = semantic_similarity("terminal")
        assert work == 1.0
        assert non_work < work


class TestContextRules:
    def test_no_labels_no_score(self) -> None:
        assert evaluate_context([]) == (0.0, 0.0)

    def test_streaming_labels_score_non_work(self) -> None:
        work, non_work = evaluate_context(["netflix", "video player", "movie"])
        assert non_work > work


class TestUiPatterns:
    def test_streaming_service_floor(self) -> None:
        scores = detect_ui_patterns([Prediction(label="youtube", probability=0.3)])
        assert scores.score(Archetype.STREAMING) >= ContentTuning().streaming_service_floor
        assert scores.services == ["youtube"]

    def test_non_work_patterns_can_be_disabled(self) -> None:
        tuning = ContentTuning(non_work_ui_patterns=False)
        scores = detect_ui_patterns([Prediction(label="youtube", probability=0.3)], tuning)
        assert scores.score(Archetype.STREAMING) == 0.0
        assert scores.services == []


class TestContentScoring:
    def setup_method(self) -> None:
        self.classifier = ContentClassifier(FakeScene())

    def test_code_editor_is_work(self, code_editor_predictions) -> None:
        result = self.classifier.score(code_editor_predictions, PixelStats(brightness=0.5, color_variance=0.1))
        assert result.is_work is True
        assert result.confidence > 0.6
        assert "code editor" in result.detected_work_items
        assert result.decisions

    def test_streaming_is_not_work(self, streaming_predictions) -> None:
        result = self.classifier.score(streaming_predictions, PixelStats(brightness=0.5, color_variance=0.5))
        assert result.is_work is False
        assert result.confidence < 0.4
        assert "netflix" in result.detected_non_work_items

    def test_no_signals_defaults_to_work(self) -> None:
        result = self.classifier.score([], PixelStats(brightness=0.5, color_variance=0.3))
        assert result.is_work is True
        assert result.work_score == pytest.approx(ContentTuning().default_work_bias)
        assert result.non_work_score == 0.0

    def test_low_probability_labels_are_ignored(self) -> None:
        result = self.classifier.score(
            [Prediction(label="netflix", probability=0.05)],
            PixelStats(brightness=0.5, color_variance=0.3),
        )
        assert result.is_work is True
        assert result.detected_non_work_items == []

    def test_dark_screen_adds_non_work(self) -> None:
        labels = [Prediction(label="web site", probability=0.5)]
        bright = self.classifier.score(labels, PixelStats(brightness=0.6, color_variance=0.3))
        dark = self.classifier.score(labels, PixelStats(brightness=0.1, color_variance=0.3))
        assert dark.non_work_score == pytest.approx(bright.non_work_score + ContentTuning().dark_penalty)

    def test_code_layout_adds_work(self) -> None:
        stats = PixelStats(brightness=0.3, color_variance=0.3, code_layout=True, code_layout_confidence=0.5)
        result = self.classifier.score([], stats)
        assert "code layout" in result.detected_work_items
        assert result.is_work is True

    def test_scoring_is_deterministic(self, streaming_predictions) -> None:
        stats = PixelStats(brightness=0.4, color_variance=0.45)
        first = self.classifier.score(streaming_predictions, stats)
        second = self.classifier.score(streaming_predictions, stats)
        assert first.is_work == second.is_work
        assert first.confidence == second.confidence
        assert first.decisions == second.decisions


class TestContentClassify:
    @pytest.mark.asyncio
    async def test_results_are_cached_by_image(self, sample_image, code_editor_predictions) -> None:
        scene = FakeScene(code_editor_predictions)
        classifier = ContentClassifier(scene)
        first = await classifier.classify(sample_image)
        second = await classifier.classify(sample_image.copy())
        assert first == second
        assert scene.calls == 1

    @pytest.mark.asyncio
    async def test_cache_expires(self, sample_image) -> None:
        now = [0.0]
        scene = FakeScene()
        classifier = ContentClassifier(scene, clock=lambda: now[0])
        await classifier.classify(sample_image)
        now[0] = 61.0
        await classifier.classify(sample_image)
        assert scene.calls == 2

    @pytest.mark.asyncio
    async def test_cache_can_be_disabled(self, sample_image) -> None:
        scene = FakeScene()
        classifier = ContentClassifier(scene, tuning=ContentTuning(cache_enabled=False))
        await classifier.classify(sample_image)
        await classifier.classify(sample_image)
        assert scene.calls == 2

    @pytest.mark.asyncio
    async def test_inference_failure_fails_open(self, sample_image) -> None:
        scene = FakeScene()
        scene.error = PerceptionError("inference failed", model="scene-classifier")
        classifier = ContentClassifier(scene)
        result = await classifier.classify(sample_image)
        assert result.is_work is True
        assert result.confidence == 0.0
        assert "inference failed" in result.error

        scene.error = None
        retry = await classifier.classify(sample_image)
        assert retry.error is None
        assert scene.calls == 2

    @pytest.mark.asyncio
    async def test_different_images_are_classified_separately(self, sample_image) -> None:
        scene = FakeScene()
        classifier = ContentClassifier(scene)
        await classifier.classify(sample_image)
        await classifier.classify(np.zeros_like(sample_image))
        assert scene.calls == 2
