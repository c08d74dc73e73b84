"""Content and focus classifiers for justdothething.

Public API:
    ContentClassifier -- Work/non-work decision for screenshots
    FocusClassifier -- Focused/distracted decision for webcam frames
    SecondMonitorLatch -- Session-scoped hysteresis state
    ContentTuning, FocusTuning -- Central tuning tables
"""

from justdothething.classify.content import ContentClassifier
from justdothething.classify.focus import FocusClassifier, SecondMonitorLatch
from justdothething.classify.tuning import ContentTuning, FocusTuning

__all__ = [
    "ContentClassifier",
    "ContentTuning",
    "FocusClassifier",
    "FocusTuning",
    "SecondMonitorLatch",
]
