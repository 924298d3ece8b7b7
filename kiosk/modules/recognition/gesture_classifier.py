"""
Debounced gesture classifier.

Turns the noisy per-frame output of the hand-pose model into discrete
navigation events. Two independent debounce windows run per frame:

    Static path      - a navigation pose (open palm / closed fist) seen with
                       high confidence for N consecutive frames.
    Directional path - the wrist moving in the same direction for M
                       consecutive frames.

The static path is evaluated first; the directional path only runs when the
static path did not fire on that frame. A frame without a hand clears both
windows so an occlusion never bridges two separate motions.

The classifier does not rate-limit its own output. The consumer applies a
lockout after each accepted event (see modules/control/gesture_lock.py).
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np

from kiosk.core.types import Direction, GestureEvent, HandObservation, StaticLabel

logger = logging.getLogger(__name__)


@dataclass
class GestureClassifierConfig:
    """Gesture debounce configuration."""
    static_confidence: float = 0.8          # Must be strictly exceeded
    static_frames: int = 5                  # Consecutive frames for a static event
    navigation_labels: Tuple[str, ...] = StaticLabel.NAVIGATION
    movement_threshold: float = 0.08        # Normalized wrist displacement per frame
    directional_frames: int = 3             # Consecutive frames for a directional event
    wrist_index: int = 0

    @classmethod
    def from_dict(cls, config: dict) -> "GestureClassifierConfig":
        """Create config from dictionary."""
        return cls(
            static_confidence=config.get("static_confidence", 0.8),
            static_frames=config.get("static_frames", 5),
            navigation_labels=tuple(config.get("navigation_labels", StaticLabel.NAVIGATION)),
            movement_threshold=config.get("movement_threshold", 0.08),
            directional_frames=config.get("directional_frames", 3),
            wrist_index=config.get("wrist_index", 0),
        )


# =============================================================================
# Debounce State
# =============================================================================

@dataclass
class StaticRun:
    label: Optional[str] = None
    count: int = 0

    def clear(self):
        self.label = None
        self.count = 0


@dataclass
class DirectionalRun:
    last_position: Optional[Tuple[float, float]] = None
    last_direction: Optional[Direction] = None
    count: int = 0

    def clear(self):
        self.last_position = None
        self.last_direction = None
        self.count = 0


@dataclass
class DebounceState:
    """All mutable state of one classifier instance."""
    static: StaticRun = field(default_factory=StaticRun)
    directional: DirectionalRun = field(default_factory=DirectionalRun)

    def clear(self):
        self.static.clear()
        self.directional.clear()


# =============================================================================
# Classification
# =============================================================================

def classify_direction(dx: float, dy: float, threshold: float) -> Optional[Direction]:
    """Dominant-axis direction of a wrist displacement, or None if too small."""
    if abs(dx) > abs(dy):
        if dx > threshold:
            return Direction.RIGHT
        if dx < -threshold:
            return Direction.LEFT
    else:
        if dy > threshold:
            return Direction.DOWN
        if dy < -threshold:
            return Direction.UP
    return None


def _update_static(observation: HandObservation, run: StaticRun,
                   config: GestureClassifierConfig) -> Optional[GestureEvent]:
    gesture = observation.static_gesture
    if (gesture is None
            or gesture.confidence <= config.static_confidence
            or gesture.label not in config.navigation_labels):
        run.clear()
        return None

    if gesture.label == run.label:
        run.count += 1
    else:
        run.label = gesture.label
        run.count = 1

    if run.count >= config.static_frames:
        run.clear()
        return GestureEvent.static(gesture.label, gesture.confidence)
    return None


def _update_directional(observation: HandObservation, run: DirectionalRun,
                        config: GestureClassifierConfig) -> Optional[GestureEvent]:
    if not observation.has_landmarks:
        return None

    wrist = np.asarray(observation.landmarks[config.wrist_index], dtype=float)
    position = (float(wrist[0]), float(wrist[1]))

    event = None
    if run.last_position is not None:
        dx = position[0] - run.last_position[0]
        dy = position[1] - run.last_position[1]
        direction = classify_direction(dx, dy, config.movement_threshold)

        if direction is None:
            run.count = 0
        elif direction == run.last_direction:
            run.count += 1
        else:
            run.count = 1

        if direction is not None and run.count >= config.directional_frames:
            event = GestureEvent.directional(direction)
            run.count = 0

        run.last_direction = direction

    run.last_position = position
    return event


def classify_frame(observation: Optional[HandObservation], state: DebounceState,
                   config: GestureClassifierConfig) -> Optional[GestureEvent]:
    """Advance the debounce state by one frame.

    Args:
        observation: Hand-pose estimate, or None when no hand was found
        state: Debounce state, mutated in place
        config: Thresholds and window sizes

    Returns:
        A GestureEvent when a debounce window completes on this frame
    """
    if observation is None or not observation.hand_detected:
        state.clear()
        return None

    event = _update_static(observation, state.static, config)
    if event is not None:
        return event
    return _update_directional(observation, state.directional, config)


class GestureClassifier:
    """Stateful wrapper around classify_frame().

    Example:
        >>> classifier = GestureClassifier()
        >>> for observation in stream:
        ...     event = classifier.update(observation)
        ...     if event:
        ...         navigate(event.navigation)
    """

    def __init__(self, config: Optional[GestureClassifierConfig] = None,
                 state: Optional[DebounceState] = None):
        self.config = config or GestureClassifierConfig()
        self.state = state or DebounceState()
        self._events_emitted = 0

    def update(self, observation: Optional[HandObservation]) -> Optional[GestureEvent]:
        event = classify_frame(observation, self.state, self.config)
        if event is not None:
            self._events_emitted += 1
            logger.debug("Gesture event: %s %s", event.kind.value, event.label)
        return event

    def reset(self):
        """Clear all debounce state."""
        self.state.clear()

    @property
    def events_emitted(self) -> int:
        return self._events_emitted
