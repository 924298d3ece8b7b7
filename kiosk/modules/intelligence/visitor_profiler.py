"""
Visitor profiler - turns one batch of face estimates into a visitor roster.

Runs once per session, shortly after the proximity trigger locks, so the
visitor's face has settled in frame.
"""

import logging
from datetime import datetime
from typing import Callable, List, Mapping, Optional, Sequence

from kiosk.core.session import RecognitionSession
from kiosk.core.types import DETECTION_FAILED_DISPLAY, RawFace, VisitorRecord

logger = logging.getLogger(__name__)


def dominant_expression(scores: Mapping[str, float]) -> str:
    """Label with the strictly highest score; the first one wins ties."""
    best_label = None
    best_score = None
    for label, score in scores.items():
        if best_score is None or score > best_score:
            best_label, best_score = label, score
    return best_label or "neutral"


def build_roster(faces: Sequence[RawFace], captured_at: datetime) -> List[VisitorRecord]:
    """Normalize raw face estimates into visitor records."""
    roster = []
    for face in faces:
        roster.append(VisitorRecord(
            age=int(round(face.age)),
            gender_label=face.gender_label.lower(),
            gender_confidence=float(face.gender_confidence),
            dominant_expression=dominant_expression(face.expression_scores),
            expression_scores=dict(face.expression_scores),
            captured_at=captured_at,
        ))
    return roster


class VisitorProfiler:
    """Calls the attribute oracle once per session and records the roster."""

    def __init__(self, oracle, clock: Optional[Callable[[], datetime]] = None):
        self._oracle = oracle
        self._clock = clock or datetime.now
        self._runs = 0

    async def run(self, frame, session: RecognitionSession) -> Optional[List[VisitorRecord]]:
        """Profile the visitors in ``frame`` and store them in ``session``.

        Returns:
            The roster that was applied, or None when profiling already ran
            for this session or the session was reset while the oracle call
            was pending.
        """
        generation = session.begin_profiling()
        if generation is None:
            logger.debug("Profiling already done for this session, skipping")
            return None

        faces = await self._analyze(frame)

        roster = build_roster(faces, self._clock())
        if roster:
            last_detected = roster[0].to_display()
            logger.info("Profiled %d visitor(s): %s", len(roster),
                        ", ".join(f"{v.age}/{v.gender_label}/{v.dominant_expression}"
                                  for v in roster))
        else:
            last_detected = dict(DETECTION_FAILED_DISPLAY)
            logger.info("No faces detected during profiling")

        if not session.apply_profile(generation, roster, last_detected):
            return None
        return roster

    async def _analyze(self, frame) -> List[RawFace]:
        if frame is None:
            return []
        self._runs += 1
        try:
            return list(await self._oracle.analyze_batch(frame) or [])
        except Exception as e:
            logger.error("Attribute analysis failed: %s", e)
            return []

    @property
    def runs(self) -> int:
        """Number of oracle calls made (across sessions)."""
        return self._runs
