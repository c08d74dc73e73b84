"""The monitoring controller that drives Yell Mode.

Owns the activation lifecycle (permissions, model warm-up), a single
cooperative timer that runs non-overlapping check cycles, and the
ProductivityState the UI observes.

Each cycle: capture screen -> capture webcam (if enabled) -> classify
content -> classify focus -> update state -> maybe interrupt.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable

from pydantic import BaseModel, ConfigDict, Field

from justdothething.capture.base import CaptureError, CaptureSource
from justdothething.classify.content import ContentClassifier
from justdothething.classify.focus import FocusClassifier
from justdothething.config.settings import MonitorSettings, SettingsStore
from justdothething.domain.models import (
    ClassificationResult,
    CyclePhase,
    FocusResult,
    MonitorStatus,
    ProductivityState,
)
from justdothething.interrupt.dispatcher import DispatchError, Interruption, InterruptionDispatcher
from justdothething.monitor.session import MonitorSession
from justdothething.monitor.signals import VisibilitySignal
from justdothething.perception.base import ModelLoadError

logger = logging.getLogger(__name__)


class MonitorError(Exception):
    """Raised when the controller is used in an invalid lifecycle state."""


class ActivationError(MonitorError):
    """Raised when a session cannot be started.

    ``reason`` is ``"screen_permission"`` or ``"model_load"``.
    """

    def __init__(self, message: str, reason: str) -> None:
        super().__init__(message)
        self.reason = reason


class CycleReport(BaseModel):
    """Outcome of one completed check cycle."""

    model_config = ConfigDict(frozen=True)

    started_at: datetime
    finished_at: datetime
    content: ClassificationResult
    focus: FocusResult
    interruption: Interruption | None = None
    dispatch_error: str | None = None
    screenshot_stored: bool = Field(default=False, description="False while the UI is hidden")


def next_delay(cycle_started: float, now: float, interval: float) -> float:
    """Seconds to wait before the next cycle, measured from the last cycle start."""
    return max(0.0, interval - (now - cycle_started))


class MonitorController:
    """State machine and scheduler for one user's monitoring sessions.

    Args:
        screen: Screen capture source (required; denial is fatal).
        webcam: Webcam capture source, or None to never detect focus.
        content: Content classifier.
        focus: Focus classifier.
        dispatcher: Interruption dispatcher.
        settings: Live settings store.
        visibility: Optional UI visibility signal.
        clock: Wall clock for timestamps and cooldowns.
        catch_up_delay: Seconds after the UI becomes visible before a
                        catch-up cycle runs.
        drain_timeout: Seconds deactivation waits for an in-flight cycle.
    """

    def __init__(
        self,
        screen: CaptureSource,
        webcam: CaptureSource | None,
        content: ContentClassifier,
        focus: FocusClassifier,
        dispatcher: InterruptionDispatcher,
        settings: SettingsStore,
        visibility: VisibilitySignal | None = None,
        clock: Callable[[], datetime] = datetime.now,
        catch_up_delay: float = 1.0,
        drain_timeout: float = 5.0,
    ) -> None:
        self._screen = screen
        self._webcam = webcam
        self._content = content
        self._focus = focus
        self._dispatcher = dispatcher
        self._settings = settings
        self._visibility = visibility
        self._clock = clock
        self._catch_up_delay = catch_up_delay
        self._drain_timeout = drain_timeout

        self._status = MonitorStatus.INACTIVE
        self._phase = CyclePhase.IDLE
        self._state = ProductivityState()
        self._session: MonitorSession | None = None

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    @property
    def status(self) -> MonitorStatus:
        return self._status

    @property
    def phase(self) -> CyclePhase:
        return self._phase

    @property
    def is_active(self) -> bool:
        return self._status is MonitorStatus.ACTIVE

    @property
    def settings(self) -> SettingsStore:
        return self._settings

    @property
    def visibility(self) -> VisibilitySignal | None:
        return self._visibility

    @property
    def focus_enabled(self) -> bool:
        return self._session is not None and self._session.focus_enabled

    def snapshot(self) -> ProductivityState:
        """A deep copy of the current state, safe to hand to readers."""
        return self._state.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def activate(self) -> None:
        """Acquire permissions, warm up models and start the timer.

        Raises:
            MonitorError: If the controller is not inactive.
            ActivationError: If screen access is denied or the scene
                             model cannot be loaded.
        """
        if self._status is not MonitorStatus.INACTIVE:
            raise MonitorError(f"Cannot activate while {self._status.value}")

        self._status = MonitorStatus.INITIALIZING
        self._state = ProductivityState()
        settings = self._settings.current
        logger.info("Activating monitor (interval=%ds)", settings.check_interval_seconds)

        screen_acquired = False
        try:
            screen_acquired = await self._request(self._screen)
            if not screen_acquired:
                raise ActivationError("Screen capture permission denied", reason="screen_permission")

            try:
                await self._content.warm_up()
            except ModelLoadError as e:
                raise ActivationError(f"Scene model failed to load: {e}", reason="model_load") from e

            focus_enabled = False
            if settings.use_face_detection and self._webcam is not None:
                focus_enabled = await self._enable_focus()
        except BaseException:
            if screen_acquired:
                await self._screen.release()
            self._status = MonitorStatus.INACTIVE
            raise

        session = MonitorSession(
            screen=self._screen,
            webcam=self._webcam if focus_enabled else None,
            focus_enabled=focus_enabled,
        )
        session.add_subscription(self._settings.subscribe(self._on_settings_changed))
        if self._visibility is not None:
            session.add_subscription(self._visibility.subscribe(self._on_visibility_changed))
        self._session = session
        self._status = MonitorStatus.ACTIVE
        session.timer_task = asyncio.create_task(self._timer_loop(session), name="monitor-timer")
        logger.info("Monitor active (focus detection %s)", "on" if focus_enabled else "off")

    async def deactivate(self) -> None:
        """Stop the timer, silence speech and release every resource.

        An in-flight cycle is allowed to finish but its results are
        discarded. Calling this while inactive is a no-op.
        """
        if self._status in (MonitorStatus.INACTIVE, MonitorStatus.DEACTIVATING):
            return
        if self._status is MonitorStatus.INITIALIZING:
            raise MonitorError("Cannot deactivate while initializing")

        session = self._session
        self._status = MonitorStatus.DEACTIVATING
        logger.info("Deactivating monitor")

        session.closed = True
        session.cancel_subscriptions()

        await self._silence()

        if session.timer_task is not None and not session.timer_task.done():
            session.timer_task.cancel()
            try:
                await session.timer_task
            except asyncio.CancelledError:
                pass

        cycle = session.cycle_task
        if cycle is not None and not cycle.done():
            done, _ = await asyncio.wait({cycle}, timeout=self._drain_timeout)
            if not done:
                logger.warning("In-flight cycle still running after %.1fs", self._drain_timeout)
        # an utterance may have started between the first cancel and the drain
        await self._silence()

        await session.release()
        self._state.clear_transient()
        self._session = None
        self._phase = CyclePhase.IDLE
        self._status = MonitorStatus.INACTIVE
        logger.info("Monitor inactive")

    async def _silence(self) -> None:
        try:
            await self._dispatcher.cancel_all()
        except Exception as e:
            logger.error("Failed to cancel speech: %s", e)

    async def _request(self, source: CaptureSource) -> bool:
        try:
            return await source.request_access()
        except Exception as e:
            logger.error("Access request for %s failed: %s", source.source_name, e)
            return False

    async def _enable_focus(self) -> bool:
        """Best-effort webcam and face model setup; failures become warnings."""
        if not await self._request(self._webcam):
            self._state.warnings.append("Webcam access denied; focus detection disabled")
            logger.warning("Webcam access denied; continuing without focus detection")
            return False
        try:
            await self._focus.warm_up()
        except ModelLoadError as e:
            await self._webcam.release()
            self._state.warnings.append(f"Face model unavailable ({e}); focus detection disabled")
            logger.warning("Face model failed to load; continuing without focus detection: %s", e)
            return False
        return True

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    async def _timer_loop(self, session: MonitorSession) -> None:
        loop = asyncio.get_running_loop()
        while not session.closed:
            started = loop.time()
            session.catch_up_at = None
            session.cycle_task = asyncio.create_task(self._run_cycle(session), name="monitor-cycle")
            try:
                # shield: cancelling the timer must not abort an in-flight cycle
                await asyncio.shield(session.cycle_task)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception("Check cycle crashed: %s", e)

            while not session.closed:
                now = loop.time()
                remaining = next_delay(started, now, self._settings.current.check_interval_seconds)
                if session.catch_up_at is not None:
                    remaining = min(remaining, max(0.0, session.catch_up_at - now))
                if remaining <= 0:
                    break
                session.wake.clear()
                try:
                    await asyncio.wait_for(session.wake.wait(), timeout=remaining)
                except asyncio.TimeoutError:
                    break

    def _on_settings_changed(self, old: MonitorSettings, new: MonitorSettings) -> None:
        session = self._session
        if session is None or session.closed:
            return
        if old.check_interval_seconds != new.check_interval_seconds:
            session.wake.set()
        if new.use_face_detection and not session.focus_enabled:
            logger.info("Face detection enabled; takes effect on next activation")

    def _on_visibility_changed(self, visible: bool) -> None:
        session = self._session
        if not visible or session is None or session.closed:
            return
        loop = asyncio.get_running_loop()
        session.catch_up_at = loop.time() + self._catch_up_delay
        session.wake.set()
        logger.debug("UI visible again; catch-up cycle in %.1fs", self._catch_up_delay)

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    async def run_cycle(self) -> CycleReport | None:
        """Run one check cycle immediately.

        Returns:
            The cycle report, or None if the cycle was skipped (another
            cycle in progress, capture failure or session closed).

        Raises:
            MonitorError: If monitoring is not active.
        """
        session = self._session
        if session is None or self._status is not MonitorStatus.ACTIVE:
            raise MonitorError("Monitoring is not active")
        return await self._run_cycle(session)

    async def _run_cycle(self, session: MonitorSession) -> CycleReport | None:
        if session.cycle_in_progress:
            logger.debug("Cycle already in progress; skipping")
            return None
        session.cycle_in_progress = True
        try:
            return await self._cycle(session)
        finally:
            session.cycle_in_progress = False
            self._phase = CyclePhase.IDLE

    async def _cycle(self, session: MonitorSession) -> CycleReport | None:
        settings = self._settings.current
        state = self._state
        started = self._clock()

        self._phase = CyclePhase.CAPTURING
        state.last_attempt_at = started
        try:
            screen_frame = await session.screen.capture_frame()
        except CaptureError as e:
            logger.warning("Screen capture failed; skipping cycle: %s", e)
            if not session.closed:
                state.last_error = f"Screen capture failed: {e}"
                state.cycles_skipped += 1
            return None

        use_focus = session.focus_enabled and settings.use_face_detection and session.webcam is not None
        webcam_frame = None
        if use_focus:
            try:
                webcam_frame = await session.webcam.capture_frame()
            except CaptureError as e:
                logger.warning("Webcam capture failed: %s", e)

        self._phase = CyclePhase.CLASSIFYING
        content = await self._content.classify(screen_frame.image)
        if use_focus:
            focus = await self._focus.classify(
                webcam_frame, session.latch, self._clock(), settings.secondary_monitor,
            )
        else:
            focus = FocusResult.disabled()

        if session.closed:
            logger.info("Session closed during cycle; discarding results")
            return None

        self._phase = CyclePhase.DECIDING
        now = self._clock()
        visible = self._visibility is None or self._visibility.visible

        state.is_work = content.is_work
        state.content_confidence = content.confidence
        state.detected_work_items = list(content.detected_work_items)
        state.detected_non_work_items = list(content.detected_non_work_items)
        state.is_focused = focus.focused
        state.focus_confidence = focus.confidence
        state.gaze_direction = focus.gaze_direction
        state.last_checked_at = now
        state.last_error = content.error or focus.error
        if visible:
            state.screenshot = screen_frame.image

        interruption = None
        dispatch_error = None
        try:
            interruption = await self._dispatcher.maybe_interrupt(
                content, focus, settings, state.last_yell_time, now,
            )
        except DispatchError as e:
            dispatch_error = str(e)
            logger.error("Interruption dispatch failed: %s", e)

        if interruption is not None and not session.closed:
            previous = state.last_yell_time
            state.last_yell_time = now if previous is None else max(previous, now)
            state.last_message = interruption.message
            state.interruptions += 1

        state.cycles_completed += 1
        logger.info(
            "Cycle: work=%s (%.2f) focused=%s (%.2f) gaze=%s%s",
            content.is_work, content.confidence, focus.focused, focus.confidence,
            focus.gaze_direction.value,
            f" -> interrupted ({interruption.category.value})" if interruption else "",
        )
        return CycleReport(
            started_at=started,
            finished_at=self._clock(),
            content=content,
            focus=focus,
            interruption=interruption,
            dispatch_error=dispatch_error,
            screenshot_stored=visible,
        )
