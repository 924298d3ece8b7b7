"""
Recognition session state.

One RecognitionSession is owned by the pipeline and passed by reference to
the components that read or write it. Aggregates are always derived from the
current roster, never stored alongside it.

Every reset bumps ``generation``. Asynchronous work captures the generation
when it starts and hands it back when it finishes; results from an older
generation are dropped.
"""

import logging
from typing import Optional, Sequence, Tuple

from kiosk.core.types import RecognitionAggregates, VisitorRecord
from kiosk.modules.detection.proximity_trigger import ProximityTrigger

logger = logging.getLogger(__name__)


class RecognitionSession:
    """Roster, profiling status and trigger latch for the current visitor session."""

    def __init__(self, trigger: Optional[ProximityTrigger] = None):
        self._trigger = trigger or ProximityTrigger()
        self._generation = 0
        self._roster: Tuple[VisitorRecord, ...] = ()
        self._last_detected: Optional[dict] = None
        self._profiling_complete = False
        self._profiling_in_flight = False

    # -- profiling lifecycle ------------------------------------------------

    def begin_profiling(self) -> Optional[int]:
        """Claim the one profiling slot of this session.

        Returns:
            The generation token to hand back to apply_profile(), or None
            when profiling already ran or is running.
        """
        if self._profiling_complete or self._profiling_in_flight:
            return None
        self._profiling_in_flight = True
        return self._generation

    def apply_profile(self, generation: int, roster: Sequence[VisitorRecord],
                      last_detected: Optional[dict]) -> bool:
        """Store a profiling result if it belongs to the current session.

        Returns:
            True if applied, False if the result was stale
        """
        if generation != self._generation:
            logger.debug("Dropping stale profile (generation %d, current %d)",
                         generation, self._generation)
            return False

        self._roster = tuple(roster)
        self._last_detected = last_detected
        self._profiling_in_flight = False
        self._profiling_complete = True
        return True

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    def reset(self):
        """Restore the initial empty state. Safe to call at any time."""
        self._generation += 1
        self._roster = ()
        self._last_detected = None
        self._profiling_complete = False
        self._profiling_in_flight = False
        self._trigger.reset()
        logger.info("Recognition session reset (generation %d)", self._generation)

    # -- read access -------------------------------------------------------

    @property
    def trigger(self) -> ProximityTrigger:
        return self._trigger

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def roster(self) -> Tuple[VisitorRecord, ...]:
        return self._roster

    @property
    def aggregates(self) -> RecognitionAggregates:
        return RecognitionAggregates.from_roster(self._roster)

    @property
    def last_detected(self) -> Optional[dict]:
        return self._last_detected

    @property
    def profiling_complete(self) -> bool:
        return self._profiling_complete

    @property
    def profiling_in_flight(self) -> bool:
        return self._profiling_in_flight

    @property
    def has_visitors(self) -> bool:
        return bool(self._roster)
