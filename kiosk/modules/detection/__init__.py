"""Proximity trigger and vision model adapters.

The model adapters import DeepFace and MediaPipe, so they are not imported
here; import them from their modules directly.
"""
from .proximity_trigger import ProximityConfig, ProximityTrigger, TriggerState, estimate_distance

__all__ = ["ProximityConfig", "ProximityTrigger", "TriggerState", "estimate_distance"]
