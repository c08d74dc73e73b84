"""Abstract base class for speech and notification outputs.

The interruption dispatcher hands each message to a ``SpeechOutput``
together with style-derived voice parameters. Implementations may speak
the text, show it as a desktop notification, or both.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class SpeechError(Exception):
    """Raised when an output backend fails to deliver a message."""

    def __init__(self, message: str, backend: str = "") -> None:
        super().__init__(message)
        self.backend = backend


class VoiceParams(BaseModel):
    """Relative voice settings; 1.0 is the engine default for each."""

    model_config = ConfigDict(frozen=True)

    pitch: float = Field(default=1.0, gt=0.0, le=2.0)
    rate: float = Field(default=1.0, gt=0.0, le=2.0)
    volume: float = Field(default=1.0, ge=0.0, le=1.0)
    voice_preference: str | None = Field(
        default=None, description="Preferred voice family, e.g. 'male' or 'female'",
    )


class SpeechOutput(ABC):
    """Abstract interface for delivering an interruption to the user.

    Optional ``on_start``/``on_end``/``on_error`` callbacks are invoked
    around each utterance.

    Example usage::

        async with CommandSpeechOutput() as speech:
            await speech.speak("Back to work.", VoiceParams(rate=1.2))
    """

    backend_name: str = "speech"

    def __init__(
        self,
        on_start: Callable[[str], None] | None = None,
        on_end: Callable[[str], None] | None = None,
        on_error: Callable[[str, Exception], None] | None = None,
    ) -> None:
        self.on_start = on_start
        self.on_end = on_end
        self.on_error = on_error

    @abstractmethod
    async def speak(self, text: str, voice: VoiceParams) -> None:
        """Deliver ``text`` and return once it has been delivered.

        Raises:
            SpeechError: If the backend fails.
        """
        ...

    @abstractmethod
    async def cancel_all(self) -> None:
        """Stop any in-flight output immediately."""
        ...

    async def close(self) -> None:
        await self.cancel_all()

    def _notify_start(self, text: str) -> None:
        if self.on_start is not None:
            self.on_start(text)

    def _notify_end(self, text: str) -> None:
        if self.on_end is not None:
            self.on_end(text)

    def _notify_error(self, text: str, error: Exception) -> None:
        if self.on_error is not None:
            self.on_error(text, error)

    async def __aenter__(self) -> SpeechOutput:
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        await self.close()
