"""Interruption policy and dispatch.

Decides whether a cycle's classifications warrant an interruption,
enforces the cooldown, composes a message and hands it to the output.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from justdothething.config.settings import MonitorSettings
from justdothething.domain.models import ClassificationResult, FocusResult, YellStyle
from justdothething.interrupt.base import SpeechOutput, VoiceParams
from justdothething.interrupt.messages import TEMPLATES, MessageCategory, select_category, voice_for

logger = logging.getLogger(__name__)


class DispatchError(Exception):
    """Raised when an interruption could not be delivered."""

    def __init__(self, message: str, category: MessageCategory | None = None) -> None:
        super().__init__(message)
        self.category = category


class Interruption(BaseModel):
    """One delivered (or about to be delivered) interruption."""

    model_config = ConfigDict(frozen=True)

    category: MessageCategory
    message: str
    style: YellStyle
    voice: VoiceParams
    timestamp: datetime = Field(default_factory=datetime.now)


def should_interrupt(content: ClassificationResult, focus: FocusResult) -> bool:
    return not content.is_work or not focus.focused


def cooldown_elapsed(last_yell_time: datetime | None, now: datetime, cooldown_seconds: float) -> bool:
    """True when no interruption happened yet or the cooldown has strictly passed."""
    if last_yell_time is None:
        return True
    return (now - last_yell_time).total_seconds() > cooldown_seconds


class InterruptionDispatcher:
    """Composes interruption messages and delivers them.

    Args:
        output: Speech or notification backend.
        rng: Random source for template selection; inject a seeded
             ``random.Random`` for reproducible messages.
    """

    def __init__(self, output: SpeechOutput, rng: random.Random | None = None) -> None:
        self._output = output
        self._rng = rng or random.Random()

    @property
    def output(self) -> SpeechOutput:
        return self._output

    def compose(
        self,
        content: ClassificationResult,
        focus: FocusResult,
        style: YellStyle,
        now: datetime | None = None,
    ) -> Interruption:
        category = select_category(content.is_work, focus.focused, focus.gaze_direction)
        message = self._rng.choice(TEMPLATES[category])
        return Interruption(
            category=category,
            message=message,
            style=style,
            voice=voice_for(style),
            timestamp=now or datetime.now(),
        )

    async def dispatch(
        self,
        content: ClassificationResult,
        focus: FocusResult,
        style: YellStyle,
        now: datetime | None = None,
    ) -> Interruption:
        """Compose and deliver an interruption.

        Raises:
            DispatchError: If the output backend fails.
        """
        interruption = self.compose(content, focus, style, now)
        try:
            await self._output.speak(interruption.message, interruption.voice)
        except Exception as e:
            raise DispatchError(f"Failed to deliver interruption: {e}", interruption.category) from e
        logger.info("Interruption (%s, %s): %s", interruption.category.value, style.value, interruption.message)
        return interruption

    async def maybe_interrupt(
        self,
        content: ClassificationResult,
        focus: FocusResult,
        settings: MonitorSettings,
        last_yell_time: datetime | None,
        now: datetime,
    ) -> Interruption | None:
        """Apply the interruption policy and dispatch if it fires.

        Returns:
            The delivered interruption, or None if none was due.

        Raises:
            DispatchError: If an interruption was due but delivery failed.
        """
        if not should_interrupt(content, focus):
            return None
        if not cooldown_elapsed(last_yell_time, now, settings.cooldown_seconds):
            logger.debug("Interruption suppressed by %ds cooldown", settings.cooldown_seconds)
            return None
        return await self.dispatch(content, focus, settings.style, now)

    async def cancel_all(self) -> None:
        await self._output.cancel_all()
