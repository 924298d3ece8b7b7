"""
Consumer-side lockout for gesture navigation.

The classifier emits an event whenever a debounce window completes. The
screen consuming those events accepts one, navigates, then ignores further
events until the lockout expires, so a held pose or a long swipe cannot
trigger a chain of navigations.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from kiosk.core.types import GestureEvent, NavigationTarget

logger = logging.getLogger(__name__)


@dataclass
class GestureLockConfig:
    lockout_ms: int = 2000

    @classmethod
    def from_dict(cls, config: dict) -> "GestureLockConfig":
        return cls(lockout_ms=config.get("gesture_lockout_ms", 2000))


class GestureLock:
    """Fire-once lock with a fixed release timer."""

    def __init__(self, config: Optional[GestureLockConfig] = None):
        self.config = config or GestureLockConfig()
        self._locked_at_ms: Optional[float] = None
        self._last_event: Optional[GestureEvent] = None
        self._accepted = 0
        self._rejected = 0

    def is_locked(self, now_ms: float) -> bool:
        if self._locked_at_ms is None:
            return False
        if now_ms - self._locked_at_ms >= self.config.lockout_ms:
            self._locked_at_ms = None
            self._last_event = None
            return False
        return True

    def accept(self, event: GestureEvent, now_ms: float) -> Optional[NavigationTarget]:
        """Try to accept an event.

        Returns:
            The navigation target for the event, or None if the lock is held
            or the event does not navigate anywhere
        """
        if self.is_locked(now_ms):
            self._rejected += 1
            logger.debug("Gesture '%s' ignored, lock held (%.0fms left)",
                         event.label, self.remaining_ms(now_ms))
            return None

        target = event.navigation
        if target is None:
            return None

        self._locked_at_ms = now_ms
        self._last_event = event
        self._accepted += 1
        logger.info("Gesture '%s' accepted -> %s", event.display_name, target.value)
        return target

    def remaining_ms(self, now_ms: float) -> float:
        if self._locked_at_ms is None:
            return 0.0
        return max(0.0, self.config.lockout_ms - (now_ms - self._locked_at_ms))

    def reset(self):
        """Release the lock immediately."""
        self._locked_at_ms = None
        self._last_event = None

    @property
    def last_event(self) -> Optional[GestureEvent]:
        """Event shown as feedback while the lock is held."""
        return self._last_event

    @property
    def stats(self) -> dict:
        return {"accepted": self._accepted, "rejected": self._rejected}
