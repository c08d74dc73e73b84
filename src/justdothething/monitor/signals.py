"""Observable host signals consumed by the monitoring controller."""

from __future__ import annotations

import logging
from typing import Callable

from justdothething.config.settings import Subscription

logger = logging.getLogger(__name__)

VisibilityListener = Callable[[bool], None]


class VisibilitySignal:
    """Whether the UI hosting the monitor is currently visible.

    Whatever owns the UI calls ``set_visible()``; the controller
    subscribes for the lifetime of one session.
    """

    def __init__(self, visible: bool = True) -> None:
        self._visible = visible
        self._listeners: list[VisibilityListener] = []

    @property
    def visible(self) -> bool:
        return self._visible

    def set_visible(self, visible: bool) -> None:
        if visible == self._visible:
            return
        self._visible = visible
        logger.debug("Visibility changed: %s", "visible" if visible else "hidden")
        for listener in list(self._listeners):
            try:
                listener(visible)
            except Exception as e:
                logger.error("Visibility listener failed: %s", e)

    def subscribe(self, listener: VisibilityListener) -> Subscription:
        self._listeners.append(listener)
        return Subscription(lambda: self._listeners.remove(listener))
