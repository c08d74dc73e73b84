"""Work/non-work classification of screenshots.

Scene-classifier labels are scored against work and non-work concept
vocabularies, matched against co-occurrence rules and UI archetype
patterns, then adjusted with global pixel statistics. Scoring is a pure
function of (predictions, pixel stats); inference failures fail open.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict
from typing import Callable

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from justdothething.classify.tuning import (
    CONTEXT_RULES,
    HIGH_CONFIDENCE_NON_WORK_SIGNALS,
    HIGH_CONFIDENCE_WORK_SIGNALS,
    NON_WORK_CONCEPTS,
    STREAMING_SERVICE_PATTERNS,
    STREAMING_SERVICES,
    UI_PATTERNS,
    WORK_CONCEPTS,
    Archetype,
    ContentTuning,
    ContextRule,
)
from justdothething.domain.models import ClassificationResult, PixelStats, Prediction
from justdothething.perception.base import SceneClassifier
from justdothething.utils.imaging import image_hash, pixel_stats

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Similarity and rule evaluation
# ---------------------------------------------------------------------------


def concept_similarity(word: str, concept: str) -> float:
    """Character-level similarity between a label and a concept, 0-1.

    Exact match scores 1.0 and containment 0.7. Otherwise, short words
    (under 4 characters) get a flat 0.2 and longer ones the Jaccard index
    of their character sets scaled by the ratio of their lengths.
    """
    word = word.lower()
    concept = concept.lower()
    if word == concept:
        return 1.0
    if word in concept or concept in word:
        return 0.7
    if len(word) < 4 or len(concept) < 4:
        return 0.2
    a, b = set(word), set(concept)
    jaccard = len(a & b) / len(a | b)
    length_ratio = min(len(word), len(concept)) / max(len(word), len(concept))
    return jaccard * length_ratio


def semantic_similarity(label: str) -> tuple[float, float]:
    """Best similarity of ``label`` to any work and any non-work concept."""
    work = max(concept_similarity(label, c) for c in WORK_CONCEPTS)
    non_work = max(concept_similarity(label, c) for c in NON_WORK_CONCEPTS)
    return work, non_work


def evaluate_context(
    labels: list[str],
    rules: tuple[ContextRule, ...] = CONTEXT_RULES,
) -> tuple[float, float]:
    """Score co-occurring label groups.

    A rule applies when at least half of its elements appear as a
    substring of some label; it then adds ``score * match_ratio``.

    Returns:
        (work_score, non_work_score)
    """
    items = [label.lower() for label in labels]
    work = non_work = 0.0
    for rule in rules:
        matched = sum(1 for e in rule.elements if any(e in item for item in items))
        ratio = matched / len(rule.elements)
        if ratio >= 0.5:
            if rule.work:
                work += rule.score * ratio
            else:
                non_work += rule.score * ratio
    return work, non_work


class UiPatternScores(BaseModel):
    """Per-archetype match scores and any streaming services seen."""

    model_config = ConfigDict(frozen=True)

    scores: dict[Archetype, float] = Field(default_factory=dict)
    matches: dict[Archetype, list[str]] = Field(default_factory=dict)
    services: list[str] = Field(default_factory=list)

    def score(self, archetype: Archetype) -> float:
        return self.scores.get(archetype, 0.0)

    @property
    def work_total(self) -> float:
        return sum(v for k, v in self.scores.items() if k.is_work)


def detect_ui_patterns(
    predictions: list[Prediction],
    tuning: ContentTuning | None = None,
) -> UiPatternScores:
    """Match labels against the UI archetype vocabularies.

    Each archetype scores the fraction of its pattern words found in the
    labels; strong matches are boosted, and a known streaming service
    name lifts the streaming score to a fixed floor.
    """
    t = tuning or ContentTuning()
    floor = t.min_class_probability * t.ui_pattern_probability_factor
    classes = [p.label.lower() for p in predictions if p.probability >= floor]

    scores: dict[Archetype, float] = {}
    matches: dict[Archetype, list[str]] = {}
    services: list[str] = []

    for archetype, patterns in UI_PATTERNS.items():
        if not archetype.is_work and not t.non_work_ui_patterns:
            continue
        found = [p for p in patterns if any(p in cls for cls in classes)]
        score = len(found) / len(patterns)
        if archetype.is_work:
            if score > t.ui_pattern_match_threshold:
                score *= t.work_pattern_boost
        elif archetype is Archetype.STREAMING:
            if score > t.ui_pattern_match_threshold * t.streaming_pattern_threshold_factor:
                score *= t.streaming_pattern_boost
        elif score > t.ui_pattern_match_threshold:
            score *= t.non_work_pattern_boost
        scores[archetype] = score
        matches[archetype] = found

    if t.non_work_ui_patterns:
        services = [s for s in STREAMING_SERVICE_PATTERNS if any(s in cls for cls in classes)]
        if services:
            scores[Archetype.STREAMING] = max(scores[Archetype.STREAMING], t.streaming_service_floor)
            logger.debug("Detected streaming service(s): %s", ", ".join(services))

    return UiPatternScores(scores=scores, matches=matches, services=services)


# ---------------------------------------------------------------------------
# Classifier
# ---------------------------------------------------------------------------


class ContentClassifier:
    """Decides whether a screenshot shows work.

    Args:
        scene: Scene classifier providing ranked labels.
        tuning: Thresholds and boosts; defaults to ``ContentTuning()``.
        clock: Monotonic clock used for cache expiry.
    """

    def __init__(
        self,
        scene: SceneClassifier,
        tuning: ContentTuning | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._scene = scene
        self._tuning = tuning or ContentTuning()
        self._clock = clock
        self._cache: OrderedDict[str, tuple[float, ClassificationResult]] = OrderedDict()

    @property
    def tuning(self) -> ContentTuning:
        return self._tuning

    @property
    def scene(self) -> SceneClassifier:
        return self._scene

    async def warm_up(self) -> None:
        await self._scene.warm_up()

    def clear_cache(self) -> None:
        self._cache.clear()

    async def classify(self, image: np.ndarray) -> ClassificationResult:
        """Classify a BGR screenshot. Never raises for inference errors."""
        t = self._tuning
        try:
            key = image_hash(image) if t.cache_enabled else None
            if key is not None:
                cached = self._cache_get(key)
                if cached is not None:
                    logger.debug("Using cached classification result")
                    return cached

            loop = asyncio.get_running_loop()
            stats = await loop.run_in_executor(
                None, pixel_stats, image, t.code_layout_threshold, t.code_layout_max_row_spread,
            )
            predictions = await self._scene.classify(image)
            result = self.score(predictions, stats)
        except Exception as e:
            logger.error("Content classification failed: %s", e)
            return ClassificationResult.fail_open(str(e))

        if key is not None:
            self._cache_put(key, result)
        return result

    def score(self, predictions: list[Prediction], stats: PixelStats | None = None) -> ClassificationResult:
        """Fuse labels and pixel statistics into a work/non-work decision."""
        t = self._tuning
        stats = stats or PixelStats()
        work = non_work = 0.0
        work_items: list[str] = []
        non_work_items: list[str] = []
        decisions: list[str] = []

        kept = [p for p in predictions if p.probability >= t.min_class_probability]
        labels = [p.label.lower() for p in kept]

        if stats.code_layout:
            added = stats.code_layout_confidence * t.code_layout_boost
            work += added
            work_items.append("code layout")
            decisions.append(f"code layout: +{added:.3f} work")

        if t.ui_pattern_detection:
            ui = detect_ui_patterns(predictions, t)
            ui_work = ui.work_total * t.work_ui_multiplier
            work += ui_work
            if ui_work > 0:
                decisions.append(f"work UI patterns: +{ui_work:.3f} work")
            if t.non_work_ui_patterns:
                ui_non_work = (
                    ui.score(Archetype.STREAMING) * t.streaming_ui_weight
                    + ui.score(Archetype.GAMING) * t.gaming_ui_weight
                    + ui.score(Archetype.SOCIAL)
                ) * t.non_work_ui_multiplier
                non_work += ui_non_work
                if ui_non_work > 0:
                    decisions.append(f"non-work UI patterns: +{ui_non_work:.3f} non-work")
                if ui.score(Archetype.STREAMING) > t.strong_streaming_score:
                    non_work_items.append("streaming content")

        for p, label in zip(kept, labels):
            high_work = any(s in label for s in HIGH_CONFIDENCE_WORK_SIGNALS)
            high_non_work = any(s in label for s in HIGH_CONFIDENCE_NON_WORK_SIGNALS)
            work_sim, non_work_sim = semantic_similarity(label)
            work_threshold = t.high_confidence_work_threshold if high_work else t.similarity_threshold
            non_work_threshold = t.high_confidence_non_work_threshold if high_non_work else t.similarity_threshold

            if work_sim > work_threshold and work_sim > non_work_sim:
                boost = t.work_boost if high_work else 1.0
                added = p.probability * work_sim * boost
                work += added
                work_items.append(label)
                decisions.append(f"work item {label!r}: +{added:.3f} (sim={work_sim:.2f}, p={p.probability:.2f})")
            elif non_work_sim > non_work_threshold and non_work_sim > work_sim:
                boost = t.non_work_boost if high_non_work else 1.0
                added = p.probability * non_work_sim * boost
                non_work += added
                non_work_items.append(label)
                decisions.append(
                    f"non-work item {label!r}: +{added:.3f} (sim={non_work_sim:.2f}, p={p.probability:.2f})"
                )
            elif t.favor_work_in_ambiguous_cases and work_sim > t.ambiguous_min_similarity:
                added = p.probability * work_sim * t.ambiguous_work_factor
                work += added
                decisions.append(f"ambiguous item {label!r}: +{added:.3f} work")

        context_work, context_non_work = evaluate_context(labels)
        blend = t.context_weight
        before = (work, non_work)
        work = work * (1 - blend) + context_work * blend
        non_work = non_work * (1 - blend) + context_non_work * blend
        decisions.append(
            f"context rules: work {before[0]:.3f} -> {work:.3f}, "
            f"non-work {before[1]:.3f} -> {non_work:.3f}"
        )

        if stats.brightness < t.dark_brightness:
            non_work += t.dark_penalty
            decisions.append(f"dark screen: +{t.dark_penalty} non-work")

        if stats.color_variance > t.high_variance and t.streaming_detection:
            added = min((stats.color_variance - t.high_variance) * t.high_variance_scale, t.high_variance_cap)
            non_work += added
            decisions.append(f"high color variance ({stats.color_variance:.3f}): +{added:.3f} non-work")
        elif stats.color_variance < t.low_variance:
            work += t.low_variance_boost
            decisions.append(f"low color variance ({stats.color_variance:.3f}): +{t.low_variance_boost} work")

        if t.streaming_detection:
            services = [s for s in STREAMING_SERVICES if any(s in label for label in labels)]
            if services:
                non_work += t.streaming_boost
                non_work_items.extend(services)
                decisions.append(f"streaming service(s) {', '.join(services)}: +{t.streaming_boost} non-work")

        if len(work_items) > t.diversity_min_items:
            work += t.work_diversity_bonus
            decisions.append(f"multiple work signals ({len(work_items)}): +{t.work_diversity_bonus} work")
        if len(non_work_items) > t.diversity_min_items:
            non_work += t.non_work_diversity_bonus
            decisions.append(
                f"multiple non-work signals ({len(non_work_items)}): +{t.non_work_diversity_bonus} non-work"
            )

        if len(work_items) < 2 and 0 < work < 1.0 and not stats.code_layout:
            penalty = work * t.single_signal_penalty
            work -= penalty
            decisions.append(f"single work signal: -{penalty:.3f} work")

        if work == 0 and non_work == 0:
            work = t.default_work_bias
            decisions.append(f"no signals, default work bias {t.default_work_bias}")

        total = work + non_work
        confidence = work / total if total > 0 else t.default_work_bias
        confidence = min(max(confidence, 0.0), 1.0)
        is_work = confidence > t.confidence_threshold

        logger.debug(
            "Content scores: work=%.3f non_work=%.3f confidence=%.3f -> %s; %s",
            work, non_work, confidence, "WORK" if is_work else "NON-WORK", "; ".join(decisions),
        )

        return ClassificationResult(
            is_work=is_work,
            confidence=confidence,
            detected_work_items=work_items,
            detected_non_work_items=non_work_items,
            predictions=list(predictions),
            work_score=work,
            non_work_score=non_work,
            brightness=stats.brightness,
            color_variance=stats.color_variance,
            decisions=decisions,
        )

    def _cache_get(self, key: str) -> ClassificationResult | None:
        entry = self._cache.get(key)
        if entry is None:
            return None
        stored_at, result = entry
        if self._clock() - stored_at >= self._tuning.cache_ttl_seconds:
            del self._cache[key]
            return None
        self._cache.move_to_end(key)
        return result

    def _cache_put(self, key: str, result: ClassificationResult) -> None:
        self._cache[key] = (self._clock(), result)
        self._cache.move_to_end(key)
        while len(self._cache) > self._tuning.cache_max_size:
            self._cache.popitem(last=False)
