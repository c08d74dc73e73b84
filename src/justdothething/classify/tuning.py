"""Central tuning tables for the content and focus classifiers.

Every threshold, weight and boost used by the scoring algorithms lives
here so the fusion logic can be tuned from configuration and tested in
isolation from capture and timing.
"""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ---------------------------------------------------------------------------
# Content vocabularies
# ---------------------------------------------------------------------------

WORK_CONCEPTS: tuple[str, ...] = (
    "office", "business", "document", "presentation",
    "spreadsheet", "meeting", "research", "development",
    "programming", "code", "workplace", "desk", "laptop",
    # software development
    "editor", "terminal", "console", "script", "developer",
    "software", "application", "interface", "text editor",
    "window", "screen", "monitor", "display",
    "ide", "repository", "function", "variable", "method",
    "browser", "website", "framework", "algorithm", "database",
    "keyboard", "typing", "mouse", "cursor", "pointer",
)

NON_WORK_CONCEPTS: tuple[str, ...] = (
    "entertainment", "game", "social media", "relaxation",
    "streaming", "sports", "food", "beverage",
    "home", "hobby", "music", "movie", "show",
    # streaming services
    "netflix", "hulu", "disney", "amazon prime", "hbo", "youtube",
    "peacock", "paramount", "apple tv", "twitch", "roku", "tubi",
    "crunchyroll", "espn", "sling", "fubo", "discovery", "plex",
    # leisure
    "gaming", "video game", "social", "chat", "news", "shopping",
    "cooking", "recipe", "travel", "vacation", "fitness", "workout",
    "podcast", "audiobook", "ebook", "comic", "manga", "animation",
)

HIGH_CONFIDENCE_WORK_SIGNALS: tuple[str, ...] = (
    "code", "editor", "terminal", "console", "programming", "development",
    "browser", "window", "application", "software", "ide", "document",
)

HIGH_CONFIDENCE_NON_WORK_SIGNALS: tuple[str, ...] = (
    "netflix", "hulu", "streaming", "game", "youtube", "twitch",
    "movie", "show", "entertainment", "disney", "hbo", "prime video",
)

STREAMING_SERVICES: tuple[str, ...] = (
    "netflix", "hulu", "disney", "prime", "amazon", "hbo",
    "youtube", "peacock", "paramount", "apple tv", "twitch",
)

# Broader list used only by UI-pattern detection.
STREAMING_SERVICE_PATTERNS: tuple[str, ...] = STREAMING_SERVICES + (
    "roku", "tubi", "crunchyroll", "espn", "sling", "fubo", "discovery", "plex",
)


class Archetype(str, enum.Enum):
    """UI archetypes recognised from co-occurring labels."""

    CODE_EDITOR = "code_editor"
    SPREADSHEET = "spreadsheet"
    DOCUMENT = "document"
    BROWSER = "browser"
    APPLICATION = "application"
    STREAMING = "streaming"
    GAMING = "gaming"
    SOCIAL = "social"

    @property
    def is_work(self) -> bool:
        return self not in (Archetype.STREAMING, Archetype.GAMING, Archetype.SOCIAL)


UI_PATTERNS: dict[Archetype, tuple[str, ...]] = {
    Archetype.CODE_EDITOR: ("window", "text", "line", "screen", "display", "rectangle", "interface", "toolbar"),
    Archetype.SPREADSHEET: ("cell", "grid", "table", "row", "column", "sheet", "data"),
    Archetype.DOCUMENT: ("page", "text", "line", "paragraph", "document", "content"),
    Archetype.BROWSER: ("tab", "browser", "webpage", "website", "toolbar", "navigation"),
    Archetype.APPLICATION: ("window", "toolbar", "menu", "interface", "button", "panel"),
    Archetype.STREAMING: (
        "video", "player", "stream", "movie", "show", "episode", "series", "watch",
        "play", "pause", "fullscreen", "volume", "playlist", "recommended", "trailer",
    ),
    Archetype.GAMING: (
        "game", "play", "score", "level", "character", "controller", "mission", "quest",
        "achievement", "leaderboard", "multiplayer", "inventory", "weapon", "enemy",
    ),
    Archetype.SOCIAL: (
        "post", "feed", "profile", "friend", "like", "share", "comment", "message",
        "notification", "timeline", "status", "photo", "video", "story", "chat",
    ),
}


class ContextRule(BaseModel):
    """A group of co-occurring labels that together indicate one side."""

    model_config = ConfigDict(frozen=True)

    elements: tuple[str, ...] = Field(min_length=1)
    score: float = Field(gt=0.0)
    work: bool


def _rule(elements: tuple[str, ...], score: float, work: bool) -> ContextRule:
    return ContextRule(elements=elements, score=score, work=work)


CONTEXT_RULES: tuple[ContextRule, ...] = (
    # work
    _rule(("document", "text", "writing"), 0.8, True),
    _rule(("code", "programming", "development"), 0.9, True),
    _rule(("spreadsheet", "numbers", "chart"), 0.8, True),
    _rule(("meeting", "presentation", "conference"), 0.7, True),
    _rule(("window", "text", "line"), 0.85, True),
    _rule(("editor", "text", "window"), 0.85, True),
    _rule(("rectangle", "text", "screen"), 0.7, True),
    _rule(("browser", "tab", "website"), 0.65, True),
    _rule(("application", "interface", "window"), 0.65, True),
    _rule(("site", "web", "page"), 0.6, True),
    _rule(("keyboard", "typing", "text"), 0.7, True),
    # non-work
    _rule(("game", "playing", "controller"), 0.9, False),
    _rule(("social", "media", "chat"), 0.8, False),
    _rule(("video", "streaming", "entertainment"), 0.8, False),
    _rule(("food", "drink", "restaurant"), 0.7, False),
    _rule(("video", "player", "watch"), 0.85, False),
    _rule(("movie", "show", "episode"), 0.9, False),
    _rule(("netflix", "series", "watch"), 0.95, False),
    _rule(("hulu", "stream", "watch"), 0.95, False),
    _rule(("disney", "plus", "watch"), 0.95, False),
    _rule(("prime", "video", "amazon"), 0.95, False),
    _rule(("hbo", "max", "watch"), 0.95, False),
    _rule(("youtube", "video", "channel"), 0.9, False),
    _rule(("play", "pause", "fullscreen"), 0.8, False),
    _rule(("game", "level", "score"), 0.9, False),
    _rule(("play", "character", "mission"), 0.9, False),
    _rule(("post", "feed", "profile"), 0.85, False),
    _rule(("friend", "like", "comment"), 0.85, False),
    _rule(("timeline", "message", "notification"), 0.85, False),
)


# ---------------------------------------------------------------------------
# Tuning models
# ---------------------------------------------------------------------------


class ContentTuning(BaseModel):
    """Thresholds, boosts and adjustments for the content classifier."""

    confidence_threshold: float = Field(default=0.60, ge=0.0, le=1.0)
    min_class_probability: float = Field(default=0.08, ge=0.0, le=1.0)
    similarity_threshold: float = Field(default=0.60, ge=0.0, le=1.0)
    high_confidence_work_threshold: float = Field(default=0.50, ge=0.0, le=1.0)
    high_confidence_non_work_threshold: float = Field(default=0.45, ge=0.0, le=1.0)
    work_boost: float = Field(default=1.5, gt=0)
    non_work_boost: float = Field(default=1.7, gt=0)
    favor_work_in_ambiguous_cases: bool = True
    ambiguous_min_similarity: float = Field(default=0.3, ge=0.0, le=1.0)
    ambiguous_work_factor: float = Field(default=0.3, ge=0.0)
    context_weight: float = Field(default=0.65, ge=0.0, le=1.0)
    default_work_bias: float = Field(default=0.55, ge=0.0, le=1.0)

    ui_pattern_detection: bool = True
    non_work_ui_patterns: bool = True
    ui_pattern_match_threshold: float = Field(default=0.4, ge=0.0, le=1.0)
    work_pattern_boost: float = Field(default=1.5, ge=0.0)
    streaming_pattern_threshold_factor: float = Field(default=0.8, ge=0.0)
    streaming_pattern_boost: float = Field(default=2.0, ge=0.0)
    non_work_pattern_boost: float = Field(default=1.8, ge=0.0)
    streaming_ui_weight: float = Field(default=1.3, ge=0.0)
    gaming_ui_weight: float = Field(default=1.2, ge=0.0)
    strong_streaming_score: float = Field(default=0.5, ge=0.0)
    ui_pattern_probability_factor: float = Field(default=0.8, ge=0.0, le=1.0)
    work_ui_multiplier: float = Field(default=0.9, ge=0.0)
    non_work_ui_multiplier: float = Field(default=1.1, ge=0.0)
    streaming_service_floor: float = Field(default=0.75, ge=0.0)

    dark_brightness: float = Field(default=0.2, ge=0.0, le=1.0)
    dark_penalty: float = Field(default=0.1, ge=0.0)
    high_variance: float = Field(default=0.35, ge=0.0, le=1.0)
    high_variance_scale: float = Field(default=2.0, ge=0.0)
    high_variance_cap: float = Field(default=0.5, ge=0.0)
    low_variance: float = Field(default=0.25, ge=0.0, le=1.0)
    low_variance_boost: float = Field(default=0.2, ge=0.0)

    streaming_detection: bool = True
    streaming_boost: float = Field(default=1.0, ge=0.0)
    diversity_min_items: int = Field(default=3, ge=0)
    work_diversity_bonus: float = Field(default=0.2, ge=0.0)
    non_work_diversity_bonus: float = Field(default=0.25, ge=0.0)
    single_signal_penalty: float = Field(default=0.1, ge=0.0, le=1.0)

    code_layout_boost: float = Field(default=1.8, ge=0.0)
    code_layout_threshold: float = Field(default=0.12, ge=0.0)
    code_layout_max_row_spread: float = Field(default=0.7, ge=0.0)

    cache_enabled: bool = True
    cache_ttl_seconds: float = Field(default=60.0, ge=0.0)
    cache_max_size: int = Field(default=20, ge=1)


class FocusWeights(BaseModel):
    """Fusion weights for the focus signals; they must sum to 1."""

    model_config = ConfigDict(frozen=True)

    face_detected: float = Field(default=0.3, ge=0.0, le=1.0)
    face_centered: float = Field(default=0.2, ge=0.0, le=1.0)
    face_size: float = Field(default=0.15, ge=0.0, le=1.0)
    gaze_direction: float = Field(default=0.25, ge=0.0, le=1.0)
    eye_openness: float = Field(default=0.1, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_sum(self) -> FocusWeights:
        total = (
            self.face_detected + self.face_centered + self.face_size
            + self.gaze_direction + self.eye_openness
        )
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"focus weights must sum to 1.0, got {total:.3f}")
        return self


class FocusTuning(BaseModel):
    """Thresholds and weights for the focus classifier."""

    face_probability_threshold: float = Field(default=0.8, gt=0.0, le=1.0)
    center_tolerance: float = Field(default=0.25, gt=0.0, le=0.5)
    face_size_scale: float = Field(default=10.0, gt=0.0)

    gaze_left_bound: float = Field(default=0.35, ge=0.0, le=1.0)
    gaze_right_bound: float = Field(default=0.65, ge=0.0, le=1.0)
    gaze_up_bound: float = Field(default=0.35, ge=0.0, le=1.0)
    gaze_down_bound: float = Field(default=0.65, ge=0.0, le=1.0)
    secondary_monitor_up_bound: float = Field(default=0.45, ge=0.0, le=1.0)

    eye_openness_threshold: float = Field(default=0.2, ge=0.0)
    focus_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    weights: FocusWeights = Field(default_factory=FocusWeights)

    second_monitor_grace_seconds: float = Field(default=3.0, ge=0.0)
    second_monitor_boost: float = Field(default=0.1, ge=0.0)

    @model_validator(mode="after")
    def _check_bounds(self) -> FocusTuning:
        if not self.gaze_left_bound < self.gaze_right_bound:
            raise ValueError("gaze_left_bound must be below gaze_right_bound")
        if not self.gaze_up_bound < self.gaze_down_bound:
            raise ValueError("gaze_up_bound must be below gaze_down_bound")
        if not self.gaze_up_bound <= self.secondary_monitor_up_bound < self.gaze_down_bound:
            raise ValueError("secondary_monitor_up_bound must lie between gaze_up_bound and gaze_down_bound")
        return self
