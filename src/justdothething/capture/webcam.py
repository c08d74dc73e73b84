"""Webcam capture implementation using OpenCV."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

import cv2
import numpy as np

from justdothething.capture.base import CaptureError, CaptureSource
from justdothething.domain.models import CaptureFrame

logger = logging.getLogger(__name__)


class WebcamCapture(CaptureSource):
    """Captures frames from a webcam using OpenCV.

    Runs OpenCV's blocking calls in a thread pool executor to avoid
    blocking the async event loop. A device that fails to open is
    treated as a denied permission.
    """

    source_name = "webcam"

    def __init__(
        self,
        device_index: int = 0,
        resolution: tuple[int, int] | None = None,
    ) -> None:
        super().__init__()
        self._device_index = device_index
        self._resolution = resolution
        self._cap: cv2.VideoCapture | None = None

    async def request_access(self) -> bool:
        loop = asyncio.get_running_loop()
        cap = await loop.run_in_executor(None, cv2.VideoCapture, self._device_index)
        if not cap.isOpened():
            cap.release()
            logger.warning("Failed to open webcam device %d", self._device_index)
            return False
        if self._resolution:
            w, h = self._resolution
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
        self._cap = cap
        self._is_open = True
        logger.info(
            "Opened webcam device %d (%dx%d)",
            self._device_index,
            int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
        )
        return True

    async def capture_frame(self) -> CaptureFrame:
        if not self._is_open or self._cap is None:
            raise CaptureError("Webcam is not open", source=self.source_name)
        loop = asyncio.get_running_loop()
        frame = await loop.run_in_executor(None, self._capture_sync)
        return CaptureFrame(
            image=frame,
            timestamp=datetime.now(),
            frame_number=self._next_frame_number(),
            source=f"webcam:{self._device_index}",
        )

    async def release(self) -> None:
        if self._cap is not None and self._cap.isOpened():
            self._cap.release()
            logger.info("Released webcam device %d", self._device_index)
        self._cap = None
        self._is_open = False

    def _capture_sync(self) -> np.ndarray:
        ret, frame = self._cap.read()
        if not ret or frame is None:
            raise CaptureError("Failed to read frame from webcam", source=self.source_name)
        return frame
