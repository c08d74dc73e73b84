"""Desktop notification output using plyer."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from plyer import notification

from justdothething.interrupt.base import SpeechError, SpeechOutput, VoiceParams

logger = logging.getLogger(__name__)


class NotificationOutput(SpeechOutput):
    """Shows each interruption as a desktop notification.

    Voice parameters are ignored; notifications cannot be withdrawn, so
    ``cancel_all`` is a no-op.
    """

    backend_name = "notification"

    def __init__(
        self,
        title: str = "JustDoTheThing",
        timeout: int = 5,
        on_start: Callable[[str], None] | None = None,
        on_end: Callable[[str], None] | None = None,
        on_error: Callable[[str, Exception], None] | None = None,
    ) -> None:
        super().__init__(on_start=on_start, on_end=on_end, on_error=on_error)
        self._title = title
        self._timeout = timeout

    async def speak(self, text: str, voice: VoiceParams) -> None:
        loop = asyncio.get_running_loop()
        self._notify_start(text)
        try:
            await loop.run_in_executor(None, self._notify_sync, text)
        except Exception as e:
            error = SpeechError(f"Notification failed: {e}", backend=self.backend_name)
            self._notify_error(text, error)
            raise error from e
        self._notify_end(text)

    async def cancel_all(self) -> None:
        return None

    def _notify_sync(self, text: str) -> None:
        notification.notify(title=self._title, message=text, timeout=self._timeout)
