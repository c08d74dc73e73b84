"""Screen capture implementation using mss.

Grabs the configured monitor as a BGRA buffer and converts it to the
BGR numpy layout the rest of the pipeline expects.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

import mss
from mss.exception import ScreenShotError
import numpy as np

from justdothething.capture.base import CaptureError, CaptureSource
from justdothething.domain.models import CaptureFrame

logger = logging.getLogger(__name__)


class ScreenCapture(CaptureSource):
    """Captures the desktop with mss.

    mss handles are not thread-safe, so every grab opens its own
    short-lived handle inside the executor thread.
    """

    source_name = "screen"

    def __init__(self, monitor_index: int = 1) -> None:
        super().__init__()
        self._monitor_index = monitor_index
        self._monitor: dict | None = None

    async def request_access(self) -> bool:
        loop = asyncio.get_running_loop()
        try:
            self._monitor = await loop.run_in_executor(None, self._resolve_monitor)
        except ScreenShotError as e:
            logger.error("Screen capture unavailable: %s", e)
            return False
        self._is_open = True
        logger.info(
            "Screen capture ready on monitor %d (%dx%d)",
            self._monitor_index, self._monitor["width"], self._monitor["height"],
        )
        return True

    async def capture_frame(self) -> CaptureFrame:
        if not self._is_open or self._monitor is None:
            raise CaptureError("Screen capture is not open", source=self.source_name)
        loop = asyncio.get_running_loop()
        try:
            image = await loop.run_in_executor(None, self._grab_sync)
        except ScreenShotError as e:
            raise CaptureError(f"Screen grab failed: {e}", source=self.source_name) from e
        return CaptureFrame(
            image=image,
            timestamp=datetime.now(),
            frame_number=self._next_frame_number(),
            source=f"screen:{self._monitor_index}",
        )

    async def release(self) -> None:
        if self._is_open:
            logger.info("Released screen capture")
        self._monitor = None
        self._is_open = False

    def _resolve_monitor(self) -> dict:
        with mss.mss() as sct:
            monitors = sct.monitors
            if self._monitor_index >= len(monitors):
                raise ScreenShotError(
                    f"Monitor {self._monitor_index} not found ({len(monitors) - 1} available)"
                )
            return dict(monitors[self._monitor_index])

    def _grab_sync(self) -> np.ndarray:
        with mss.mss() as sct:
            shot = sct.grab(self._monitor)
        bgra = np.asarray(shot, dtype=np.uint8)
        return np.ascontiguousarray(bgra[:, :, :3])
