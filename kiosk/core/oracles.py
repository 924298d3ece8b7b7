"""
Capability interfaces for the vision models and the weather service.

The pipeline only depends on these protocols. Real adapters live in
kiosk.modules.detection; tests use deterministic fakes.
"""

from typing import List, Optional, Protocol

import numpy as np

from kiosk.core.types import FaceBox, HandObservation, RawFace, WeatherReport


class AttributeOracle(Protocol):
    """Face detection plus age / gender / expression estimation."""

    def load(self) -> None:
        """Load model weights. Raises ModelUnavailable on failure."""

    async def analyze_single(self, frame: np.ndarray) -> Optional[FaceBox]:
        """Most prominent face in the frame, or None."""

    async def analyze_batch(self, frame: np.ndarray) -> List[RawFace]:
        """Attribute estimates for every face in the frame."""


class GestureOracle(Protocol):
    """Hand pose and static gesture estimation."""

    def load(self) -> None:
        ...

    async def analyze_frame(self, frame: np.ndarray,
                            timestamp_ms: int) -> Optional[HandObservation]:
        ...


class WeatherService(Protocol):

    async def lookup(self, latitude: float, longitude: float) -> WeatherReport:
        ...
