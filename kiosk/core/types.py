"""
Shared domain types for the touchless menu kiosk.

Centralizes enums, data classes, and type definitions used across modules
to eliminate circular imports and ensure type consistency.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, Mapping, Optional, Sequence, Tuple

import numpy as np


# =============================================================================
# Gesture Types
# =============================================================================

class GestureKind(Enum):
    """Tag of a GestureEvent."""
    STATIC = "static"
    DIRECTIONAL = "directional"


class Direction(Enum):
    """Wrist motion directions recognized by the directional path."""
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


class StaticLabel:
    """Static gesture labels as reported by the hand-pose model."""
    OPEN_PALM = "Open_Palm"
    CLOSED_FIST = "Closed_Fist"

    NAVIGATION = (OPEN_PALM, CLOSED_FIST)


class NavigationTarget(Enum):
    """Screens a navigation gesture can lead to."""
    PAYMENT = "payment"
    MENU = "menu"


# =============================================================================
# Gesture ↔ Navigation Mapping
# =============================================================================

GESTURE_NAVIGATION_MAP: Dict[str, NavigationTarget] = {
    Direction.UP.value: NavigationTarget.PAYMENT,
    Direction.DOWN.value: NavigationTarget.PAYMENT,
    StaticLabel.OPEN_PALM: NavigationTarget.PAYMENT,
    Direction.LEFT.value: NavigationTarget.MENU,
    Direction.RIGHT.value: NavigationTarget.MENU,
    StaticLabel.CLOSED_FIST: NavigationTarget.MENU,
}


@dataclass(frozen=True)
class GestureEvent:
    """Discrete gesture emitted by the classifier.

    Either ``Static{label, confidence}`` or ``Directional{label}``.
    """
    kind: GestureKind
    label: str
    confidence: Optional[float] = None

    @classmethod
    def static(cls, label: str, confidence: float) -> "GestureEvent":
        return cls(GestureKind.STATIC, label, confidence)

    @classmethod
    def directional(cls, direction: Direction) -> "GestureEvent":
        return cls(GestureKind.DIRECTIONAL, direction.value)

    @property
    def is_static(self) -> bool:
        return self.kind is GestureKind.STATIC

    @property
    def is_directional(self) -> bool:
        return self.kind is GestureKind.DIRECTIONAL

    @property
    def navigation(self) -> Optional[NavigationTarget]:
        return GESTURE_NAVIGATION_MAP.get(self.label)

    @property
    def display_name(self) -> str:
        """Lower-case, dashed form shown to the visitor (``closed-fist``)."""
        return self.label.lower().replace("_", "-")


# =============================================================================
# Oracle Outputs
# =============================================================================

@dataclass(frozen=True)
class StaticGesture:
    """Top-scored static gesture for one frame."""
    label: str
    confidence: float


@dataclass
class HandObservation:
    """Raw hand-pose estimate for a single frame.

    ``landmarks`` is an (N, 2) or (N, 3) array of normalized coordinates,
    index 0 being the wrist.
    """
    static_gesture: Optional[StaticGesture] = None
    landmarks: Optional[np.ndarray] = None

    @property
    def has_landmarks(self) -> bool:
        return self.landmarks is not None and len(self.landmarks) > 0

    @property
    def hand_detected(self) -> bool:
        return self.static_gesture is not None or self.has_landmarks


@dataclass(frozen=True)
class FaceBox:
    """Single-face detection used for proximity sensing."""
    width_px: float


@dataclass(frozen=True)
class RawFace:
    """Unnormalized per-face attribute estimate from the face model."""
    age: float
    gender_label: str
    gender_confidence: float
    expression_scores: Mapping[str, float] = field(default_factory=dict)


# =============================================================================
# Visitors
# =============================================================================

ELDERLY_AGE = 45
MINOR_AGE = 15
ELDERLY_MAJORITY_RATIO = 0.5
DOMINANT_GENDER_RATIO = 0.7


@dataclass(frozen=True)
class VisitorRecord:
    """Normalized attributes of one visitor, created once per profiling cycle."""
    age: int
    gender_label: str
    gender_confidence: float
    dominant_expression: str
    expression_scores: Mapping[str, float]
    captured_at: datetime

    @property
    def gender_display(self) -> str:
        return f"{self.gender_label} ({self.gender_confidence * 100:.1f}%)"

    def to_display(self) -> dict:
        return {
            "age": self.age,
            "gender": self.gender_display,
            "expression": self.dominant_expression,
            "captured_at": self.captured_at.isoformat(),
        }


DETECTION_FAILED_DISPLAY = {"age": "detection-failed", "gender": "-", "expression": "N/A"}


@dataclass(frozen=True)
class RecognitionAggregates:
    """Group-level attributes derived from a roster."""
    group_size: int = 0
    average_age: float = 0.0
    has_elderly_majority: bool = False
    has_elderly: bool = False
    has_minor: bool = False
    dominant_gender: str = "mixed"

    @classmethod
    def from_roster(cls, visitors: Sequence[VisitorRecord]) -> "RecognitionAggregates":
        if not visitors:
            return cls()

        ages = np.array([v.age for v in visitors], dtype=float)
        size = len(visitors)
        elderly = int(np.count_nonzero(ages >= ELDERLY_AGE))
        males = sum(1 for v in visitors if v.gender_label.lower() == "male")
        females = sum(1 for v in visitors if v.gender_label.lower() == "female")

        dominant = "mixed"
        if males / size >= DOMINANT_GENDER_RATIO:
            dominant = "male"
        elif females / size >= DOMINANT_GENDER_RATIO:
            dominant = "female"

        return cls(
            group_size=size,
            average_age=float(np.mean(ages)),
            has_elderly_majority=elderly / size >= ELDERLY_MAJORITY_RATIO,
            has_elderly=elderly > 0,
            has_minor=bool(np.any(ages < MINOR_AGE)),
            dominant_gender=dominant,
        )


# =============================================================================
# Menu
# =============================================================================

class ServingType(Enum):
    HOT = "HOT"
    ICED = "ICED"


class WeatherCondition(Enum):
    CLEAR = "clear"
    RAIN = "rain"
    SNOW = "snow"

    @property
    def is_wet(self) -> bool:
        return self in (WeatherCondition.RAIN, WeatherCondition.SNOW)

    @classmethod
    def from_code(cls, code: int) -> "WeatherCondition":
        """Map a WMO weather code to the coarse condition used for scoring."""
        if 71 <= code <= 77:
            return cls.SNOW
        if code >= 61:
            return cls.RAIN
        return cls.CLEAR


@dataclass(frozen=True)
class MenuItem:
    """Read-only catalog entry."""
    id: str
    name: str
    tags: FrozenSet[str]
    price_cents: int
    serving_types: Tuple[ServingType, ...] = ()
    is_food: bool = False
    category: str = ""
    images: Mapping[str, str] = field(default_factory=dict)
    image: Optional[str] = None
    model_3d: Optional[str] = None

    def supports(self, serving: ServingType) -> bool:
        return serving in self.serving_types

    def has_any(self, *tags: str) -> bool:
        return any(t in self.tags for t in tags)

    def image_for(self, serving: Optional[ServingType]) -> Optional[str]:
        if self.images and serving is not None:
            return self.images.get(serving.value, self.image)
        return self.image


@dataclass(frozen=True)
class ScoredItem:
    """Catalog item with its score and ordered justification."""
    item: MenuItem
    score: float
    reasons: Tuple[str, ...] = ()
    serving_type: Optional[ServingType] = None
    image: Optional[str] = None

    @property
    def id(self) -> str:
        return self.item.id

    @property
    def headline(self) -> str:
        return self.reasons[0] if self.reasons else "Our AI's top pick for you!"

    def resolved(self, serving: ServingType) -> "ScoredItem":
        return replace(self, serving_type=serving, image=self.item.image_for(serving))


@dataclass(frozen=True)
class RecognitionContext:
    """Everything the recommendation engine needs for one request."""
    visitors: Sequence[VisitorRecord]
    aggregates: RecognitionAggregates
    weather_condition: WeatherCondition
    temperature_c: float
    now: datetime

    @classmethod
    def build(cls, visitors: Sequence[VisitorRecord], weather_condition: WeatherCondition,
              temperature_c: float, now: datetime) -> "RecognitionContext":
        visitors = tuple(visitors)
        return cls(visitors, RecognitionAggregates.from_roster(visitors),
                   weather_condition, temperature_c, now)


@dataclass(frozen=True)
class WeatherReport:
    """Current conditions at the kiosk location."""
    condition_code: int
    temperature_c: float

    @property
    def condition(self) -> WeatherCondition:
        return WeatherCondition.from_code(self.condition_code)
