"""Debounced gesture classification."""
from .gesture_classifier import GestureClassifier, GestureClassifierConfig, DebounceState

__all__ = ["GestureClassifier", "GestureClassifierConfig", "DebounceState"]
