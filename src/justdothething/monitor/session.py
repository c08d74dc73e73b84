"""Per-activation session state owned by the monitoring controller."""

from __future__ import annotations

import asyncio
import logging

from justdothething.capture.base import CaptureSource
from justdothething.classify.focus import SecondMonitorLatch
from justdothething.config.settings import Subscription

logger = logging.getLogger(__name__)


class MonitorSession:
    """Everything that lives exactly as long as one active session.

    Holds the acquired capture sources, the second-monitor latch, the
    subscription handles and the timer bookkeeping. ``release()`` tears
    all of it down deterministically.
    """

    def __init__(
        self,
        screen: CaptureSource,
        webcam: CaptureSource | None,
        focus_enabled: bool,
    ) -> None:
        self.screen = screen
        self.webcam = webcam
        self.focus_enabled = focus_enabled
        self.latch = SecondMonitorLatch()
        self.subscriptions: list[Subscription] = []
        self.closed = False
        self.cycle_in_progress = False
        self.timer_task: asyncio.Task | None = None
        self.cycle_task: asyncio.Task | None = None
        self.wake = asyncio.Event()
        self.catch_up_at: float | None = None

    def add_subscription(self, subscription: Subscription) -> None:
        self.subscriptions.append(subscription)

    def cancel_subscriptions(self) -> None:
        for subscription in self.subscriptions:
            subscription.cancel()
        self.subscriptions.clear()

    async def release(self) -> None:
        """Close the session and release its capture sources."""
        self.closed = True
        self.cancel_subscriptions()
        self.latch.clear()
        sources = [self.screen] + ([self.webcam] if self.webcam is not None else [])
        for source in sources:
            try:
                await source.release()
            except Exception as e:
                logger.error("Failed to release %s: %s", source.source_name, e)
