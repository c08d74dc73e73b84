"""Interruption dispatch for justdothething.

Public API:
    InterruptionDispatcher -- Policy, cooldown and message composition
    SpeechOutput -- Abstract speech/notification backend
    CommandSpeechOutput -- espeak/say backend
    NotificationOutput -- plyer desktop notification backend
"""

from justdothething.interrupt.base import SpeechError, SpeechOutput, VoiceParams
from justdothething.interrupt.dispatcher import (
    DispatchError,
    Interruption,
    InterruptionDispatcher,
    cooldown_elapsed,
    should_interrupt,
)
from justdothething.interrupt.messages import MessageCategory

__all__ = [
    "CommandSpeechOutput",
    "DispatchError",
    "Interruption",
    "InterruptionDispatcher",
    "MessageCategory",
    "NotificationOutput",
    "SpeechError",
    "SpeechOutput",
    "VoiceParams",
    "cooldown_elapsed",
    "should_interrupt",
]


def __getattr__(name: str) -> type:
    """Lazy import for concrete implementations that require external deps."""
    if name == "CommandSpeechOutput":
        from justdothething.interrupt.command import CommandSpeechOutput
        return CommandSpeechOutput
    if name == "NotificationOutput":
        from justdothething.interrupt.notification import NotificationOutput
        return NotificationOutput
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
