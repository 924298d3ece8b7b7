"""
Proximity-triggered capture latch.

Watches the width of the single most prominent face and fires once when a
visitor steps close enough to the kiosk. After firing the latch stays locked
until the session is reset, so the one-shot attribute analysis runs at most
once per visitor session.

    SEARCHING --(distance < threshold)--> TRIGGERED --> LOCKED
        ^                                                  |
        +--------------------- reset() --------------------+
"""

import time
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)

NO_FACE_DISTANCE = 9999.0


class TriggerState(Enum):
    SEARCHING = "searching"
    TRIGGERED = "triggered"
    LOCKED = "locked"


@dataclass
class ProximityConfig:
    """Proximity trigger configuration."""
    reference_width_px: float = 200.0   # Face box width at distance 1.0
    threshold: float = 1.0              # Fire when distance drops below this
    tick_interval_ms: int = 100         # Sampling period while searching
    settle_delay_ms: int = 500          # Wait before profiling after lock

    @classmethod
    def from_dict(cls, config: dict) -> "ProximityConfig":
        """Create config from dictionary."""
        return cls(
            reference_width_px=config.get("reference_width_px", 200.0),
            threshold=config.get("threshold", 1.0),
            tick_interval_ms=config.get("tick_interval_ms", 100),
            settle_delay_ms=config.get("settle_delay_ms", 500),
        )


@dataclass(frozen=True)
class AnimationAnchor:
    """Where the logo settles once the trigger fires (presentation only)."""
    logo_top: str
    fired_at: float


def estimate_distance(box_width_px: float, reference_width_px: float = 200.0) -> float:
    """Relative distance from a face bounding-box width.

    1.0 means the face is exactly ``reference_width_px`` wide; smaller values
    are closer. A degenerate box reports a far-away sentinel.
    """
    if box_width_px <= 0:
        return NO_FACE_DISTANCE
    return reference_width_px / box_width_px


class ProximityTrigger:
    """One-shot proximity latch.

    Example:
        >>> trigger = ProximityTrigger()
        >>> trigger.update(1.4)
        False
        >>> trigger.update(0.8)
        True
        >>> trigger.update(0.5)   # locked, ignored
        False
    """

    LOCKED_LOGO_TOP = "20%"

    def __init__(self, config: Optional[ProximityConfig] = None):
        self.config = config or ProximityConfig()
        self._state = TriggerState.SEARCHING
        self._last_distance: Optional[float] = None
        self._anchor: Optional[AnimationAnchor] = None
        self._fire_count = 0

    def update(self, distance: Optional[float]) -> bool:
        """Feed one distance sample.

        Args:
            distance: Relative distance, or None when no face is visible

        Returns:
            True only on the tick that transitions to LOCKED
        """
        if self._state is not TriggerState.SEARCHING:
            return False

        self._last_distance = distance
        if distance is None or distance >= self.config.threshold:
            return False

        self._state = TriggerState.TRIGGERED
        self._anchor = AnimationAnchor(self.LOCKED_LOGO_TOP, time.time())
        self._state = TriggerState.LOCKED
        self._fire_count += 1
        logger.info("Proximity trigger fired (distance=%.2f, threshold=%.2f)",
                    distance, self.config.threshold)
        return True

    def update_from_width(self, box_width_px: Optional[float]) -> bool:
        """Convenience wrapper taking a raw face box width."""
        if box_width_px is None:
            return self.update(None)
        return self.update(estimate_distance(box_width_px, self.config.reference_width_px))

    def reset(self):
        """Return to SEARCHING and forget the cached distance."""
        if self._state is not TriggerState.SEARCHING:
            logger.debug("Proximity trigger re-armed (was %s)", self._state.value)
        self._state = TriggerState.SEARCHING
        self._last_distance = None
        self._anchor = None

    @property
    def state(self) -> TriggerState:
        return self._state

    @property
    def is_searching(self) -> bool:
        return self._state is TriggerState.SEARCHING

    @property
    def is_locked(self) -> bool:
        return self._state is TriggerState.LOCKED

    @property
    def last_distance(self) -> Optional[float]:
        return self._last_distance

    @property
    def anchor(self) -> Optional[AnimationAnchor]:
        return self._anchor

    @property
    def fire_count(self) -> int:
        """Total fires since construction (across resets)."""
        return self._fire_count
