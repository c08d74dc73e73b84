"""Monitoring controller for justdothething.

Public API:
    MonitorController -- Lifecycle state machine and cycle scheduler
    MonitorSession -- Resources owned by one active session
    VisibilitySignal -- Observable UI visibility
"""

from justdothething.monitor.controller import (
    ActivationError,
    CycleReport,
    MonitorController,
    MonitorError,
    next_delay,
)
from justdothething.monitor.session import MonitorSession
from justdothething.monitor.signals import VisibilitySignal

__all__ = [
    "ActivationError",
    "CycleReport",
    "MonitorController",
    "MonitorError",
    "MonitorSession",
    "VisibilitySignal",
    "next_delay",
]
