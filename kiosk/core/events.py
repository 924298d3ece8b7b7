"""
Lightweight event bus for decoupled inter-module communication.

The kiosk pipeline publishes what it decides (trigger fired, visitors
profiled, gesture accepted, recommendations ready) and the application
layer subscribes to render, log, or navigate.

Usage:
    bus = EventBus()
    bus.subscribe(Events.GESTURE_DETECTED, on_gesture)
    bus.emit(Events.GESTURE_DETECTED, event=gesture_event)
"""

import time
import logging
from collections import defaultdict
from typing import Callable

logger = logging.getLogger(__name__)


class EventBus:
    """Publish/subscribe event bus with priority ordering.

    All emits happen on the kiosk's event loop, so listeners are called
    synchronously in priority order. A failing listener is logged and
    skipped; it never breaks the emitter.
    """

    def __init__(self, max_history: int = 100):
        self._listeners = defaultdict(list)  # event_name -> [(priority, callback)]
        self._event_history = []
        self._max_history = max_history
        self._enabled = True

    def subscribe(self, event_name: str, callback: Callable, priority: int = 0):
        """Register a listener for an event.

        Args:
            event_name: Event to listen for
            callback: Function to call. Receives **kwargs from emit().
            priority: Higher priority callbacks run first (default 0)
        """
        self._listeners[event_name].append((priority, callback))
        self._listeners[event_name].sort(key=lambda x: -x[0])
        logger.debug("Subscribed to '%s': %s (priority=%d)",
                     event_name, getattr(callback, "__name__", repr(callback)), priority)

    def unsubscribe(self, event_name: str, callback: Callable):
        """Remove a listener for an event."""
        self._listeners[event_name] = [
            (p, cb) for p, cb in self._listeners[event_name] if cb is not callback
        ]

    def emit(self, event_name: str, **kwargs):
        """Emit an event to all registered listeners."""
        if not self._enabled:
            return

        listeners = list(self._listeners.get(event_name, []))

        self._event_history.append({
            "event": event_name,
            "time": time.time(),
            "data_keys": list(kwargs.keys()),
        })
        if len(self._event_history) > self._max_history:
            self._event_history = self._event_history[-self._max_history:]

        for _priority, callback in listeners:
            try:
                callback(**kwargs)
            except Exception as e:
                logger.error("Event handler error [%s -> %s]: %s",
                             event_name, getattr(callback, "__name__", repr(callback)), e)

    def clear(self, event_name: str = None):
        """Remove all listeners, optionally for a specific event."""
        if event_name:
            self._listeners.pop(event_name, None)
        else:
            self._listeners.clear()

    @property
    def registered_events(self) -> list:
        return [name for name, cbs in self._listeners.items() if cbs]

    @property
    def listener_count(self) -> int:
        return sum(len(cbs) for cbs in self._listeners.values())

    def get_history(self, last_n: int = 10) -> list:
        """Get recent event history."""
        return self._event_history[-last_n:]

    def set_enabled(self, enabled: bool):
        self._enabled = enabled


# =============================================================================
# Standard Event Names (constants to avoid typos)
# =============================================================================

class Events:
    """Standard event names used throughout the kiosk."""

    # Recognition
    PROXIMITY_TRIGGERED = "proximity_triggered"
    VISITORS_PROFILED = "visitors_profiled"
    MODEL_UNAVAILABLE = "model_unavailable"

    # Gestures
    GESTURE_DETECTED = "gesture_detected"
    NAVIGATION_REQUESTED = "navigation_requested"

    # Context
    WEATHER_UPDATED = "weather_updated"
    WEATHER_FAILED = "weather_failed"

    # Output
    RECOMMENDATION_READY = "recommendation_ready"

    # Lifecycle
    SESSION_RESET = "session_reset"
    SYSTEM_STARTED = "system_started"
    SYSTEM_SHUTDOWN = "system_shutdown"
