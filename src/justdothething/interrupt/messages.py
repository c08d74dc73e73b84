"""Interruption message templates and per-style voice parameters."""

from __future__ import annotations

import enum

from justdothething.domain.models import GazeDirection, YellStyle
from justdothething.interrupt.base import VoiceParams


class MessageCategory(str, enum.Enum):
    NOT_WORKING = "not_working"
    NOT_FOCUSED = "not_focused"
    BOTH = "both"
    GAZE_LEFT = "gaze_left"
    GAZE_RIGHT = "gaze_right"
    GAZE_UP = "gaze_up"
    GAZE_DOWN = "gaze_down"


_GAZE_CATEGORIES = {
    GazeDirection.LEFT: MessageCategory.GAZE_LEFT,
    GazeDirection.RIGHT: MessageCategory.GAZE_RIGHT,
    GazeDirection.UP: MessageCategory.GAZE_UP,
    GazeDirection.DOWN: MessageCategory.GAZE_DOWN,
}


def select_category(is_work: bool, focused: bool, gaze: GazeDirection = GazeDirection.UNKNOWN) -> MessageCategory:
    """Pick the template bucket for a (content, focus) outcome.

    Only the not-focused bucket is refined by gaze direction.

    Raises:
        ValueError: If the user is both working and focused.
    """
    if not is_work and not focused:
        return MessageCategory.BOTH
    if not is_work:
        return MessageCategory.NOT_WORKING
    if not focused:
        return _GAZE_CATEGORIES.get(gaze, MessageCategory.NOT_FOCUSED)
    raise ValueError("No interruption category for a working, focused user")


TEMPLATES: dict[MessageCategory, tuple[str, ...]] = {
    MessageCategory.NOT_WORKING: (
        "That does not look like work. Close it and get back to the task.",
        "Is this really what you planned to do right now? Back to work.",
        "Entertainment can wait. Your task cannot.",
        "Hey! That is not the thing. Do the thing.",
        "Step away from the distraction and pick up where you left off.",
    ),
    MessageCategory.NOT_FOCUSED: (
        "Eyes on the screen, please.",
        "You drifted off. Come back and focus.",
        "Hello? Your work is over here.",
        "Focus up! The task is waiting for you.",
    ),
    MessageCategory.BOTH: (
        "Not working and not even looking. Time to reset and get going.",
        "You have wandered off completely. Back to the desk, back to the task.",
        "Two strikes: wrong screen, wrong direction. Let's fix both.",
    ),
    MessageCategory.GAZE_LEFT: (
        "Whatever is on your left can wait. Look back at the screen.",
        "Eyes right, back to your work.",
    ),
    MessageCategory.GAZE_RIGHT: (
        "Whatever is on your right can wait. Look back at the screen.",
        "Eyes left, back to your work.",
    ),
    MessageCategory.GAZE_UP: (
        "The ceiling is not your project. Eyes down to the screen.",
        "Daydreaming? Bring your eyes back to the work.",
    ),
    MessageCategory.GAZE_DOWN: (
        "Put the phone down and look at the screen.",
        "Whatever is in your lap can wait. Eyes up.",
    ),
}


VOICE_PARAMS: dict[YellStyle, VoiceParams] = {
    YellStyle.COACH: VoiceParams(pitch=1.1, rate=1.1, volume=0.9),
    YellStyle.DRILL_SERGEANT: VoiceParams(pitch=1.2, rate=1.3, volume=1.0, voice_preference="male"),
    YellStyle.FRIENDLY: VoiceParams(pitch=1.0, rate=0.9, volume=0.8, voice_preference="female"),
    YellStyle.MOTIVATIONAL: VoiceParams(pitch=1.1, rate=1.0, volume=0.9),
}


def voice_for(style: YellStyle) -> VoiceParams:
    return VOICE_PARAMS.get(style, VOICE_PARAMS[YellStyle.COACH])
