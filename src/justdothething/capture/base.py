"""Abstract base class for capture sources.

Both the screen and the webcam are modelled as a ``CaptureSource`` so
the monitoring controller can request access, grab one frame per cycle
and release the device without knowing which backend is behind it.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from justdothething.domain.models import CaptureFrame

logger = logging.getLogger(__name__)


class CaptureError(Exception):
    """Raised when a frame cannot be captured."""

    def __init__(self, message: str, source: str = "") -> None:
        super().__init__(message)
        self.source = source


class PermissionDeniedError(CaptureError):
    """Raised when the user or the OS refuses access to a capture device."""


class CaptureSource(ABC):
    """Abstract interface for a single-frame capture device.

    Implementations acquire the device in ``request_access()``, produce
    one frame per ``capture_frame()`` call and free the device in
    ``release()``.

    Example usage::

        async with ScreenCapture(monitor_index=1) as screen:
            frame = await screen.capture_frame()
    """

    source_name: str = "capture"

    def __init__(self) -> None:
        self._frame_counter: int = 0
        self._is_open: bool = False

    @property
    def is_open(self) -> bool:
        """Whether access has been granted and the device is ready."""
        return self._is_open

    @abstractmethod
    async def request_access(self) -> bool:
        """Acquire the device.

        Returns:
            True if access was granted, False if it was denied.
        """
        ...

    @abstractmethod
    async def capture_frame(self) -> CaptureFrame:
        """Capture a single frame.

        Raises:
            CaptureError: If the device is not open or the read fails.
        """
        ...

    @abstractmethod
    async def release(self) -> None:
        """Release the device. Safe to call multiple times."""
        ...

    def _next_frame_number(self) -> int:
        self._frame_counter += 1
        return self._frame_counter

    async def __aenter__(self) -> CaptureSource:
        if not await self.request_access():
            raise PermissionDeniedError(
                f"Access to {self.source_name} was denied", source=self.source_name,
            )
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        await self.release()
