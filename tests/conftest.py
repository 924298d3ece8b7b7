"""
Shared fixtures and deterministic fakes for the kiosk tests.
"""

from datetime import datetime
from pathlib import Path

import numpy as np
import pytest

from kiosk.core.errors import ModelUnavailable, WeatherUnavailable
from kiosk.core.types import (
    FaceBox, HandObservation, MenuItem, RawFace, ServingType, StaticGesture,
    VisitorRecord, WeatherReport,
)
from kiosk.modules.recommendation.catalog import load_catalog

PROJECT_ROOT = Path(__file__).parent.parent
MENU_PATH = PROJECT_ROOT / "config" / "menu.yaml"


# =============================================================================
# Fakes
# =============================================================================

class FakeCamera:
    """Frame source returning a fixed frame with an increasing id."""

    def __init__(self, frame=None):
        self.frame = frame if frame is not None else np.zeros((48, 64, 3), dtype=np.uint8)
        self.frame_id = 0
        self.advance = True

    def read(self):
        if self.frame is None:
            return None, None
        if self.advance:
            self.frame_id += 1
        return self.frame_id, self.frame


class FakeFaceOracle:
    """AttributeOracle returning scripted widths and faces."""

    def __init__(self, widths=None, faces=None, fail_load=False):
        self.widths = list(widths or [])
        self.faces = list(faces or [])
        self.fail_load = fail_load
        self.batch_calls = 0
        self.single_calls = 0
        self.batch_error = None

    def load(self):
        if self.fail_load:
            raise ModelUnavailable("face detector", "weights missing")

    async def analyze_single(self, frame):
        self.single_calls += 1
        width = self.widths.pop(0) if self.widths else None
        return FaceBox(width) if width is not None else None

    async def analyze_batch(self, frame):
        self.batch_calls += 1
        if self.batch_error is not None:
            raise self.batch_error
        return list(self.faces)


class FakeGestureOracle:
    """GestureOracle replaying a list of observations."""

    def __init__(self, observations=None, fail_load=False):
        self.observations = list(observations or [])
        self.fail_load = fail_load
        self.timestamps = []

    def load(self):
        if self.fail_load:
            raise ModelUnavailable("gesture recognizer", "model file not found")

    async def analyze_frame(self, frame, timestamp_ms):
        self.timestamps.append(timestamp_ms)
        if not self.observations:
            return None
        item = self.observations.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeWeatherService:
    def __init__(self, report=None, error=None):
        self.report = report or WeatherReport(condition_code=0, temperature_c=28.0)
        self.error = error
        self.calls = []
        self.closed = False

    async def lookup(self, latitude, longitude):
        self.calls.append((latitude, longitude))
        if isinstance(self.error, BaseException):
            raise self.error
        if self.error is not None:
            raise WeatherUnavailable(self.error)
        return self.report

    async def close(self):
        self.closed = True


class FakeClock:
    """Settable wall clock and monotonic counter."""

    def __init__(self, now=None, monotonic=0.0):
        self.now = now or datetime(2024, 5, 1, 15, 0)
        self.seconds = monotonic

    def __call__(self):
        return self.now

    def monotonic(self):
        return self.seconds

    def advance(self, seconds):
        self.seconds += seconds


# =============================================================================
# Builders
# =============================================================================

def make_visitor(age, gender="male", confidence=0.9, expression="neutral", captured_at=None):
    return VisitorRecord(
        age=age,
        gender_label=gender,
        gender_confidence=confidence,
        dominant_expression=expression,
        expression_scores={expression: 0.9},
        captured_at=captured_at or datetime(2024, 5, 1, 15, 0),
    )


def make_item(item_id, tags=(), serving=("HOT", "ICED"), is_food=False, category="", images=None,
              image=None, model_3d=None):
    return MenuItem(
        id=item_id,
        name=item_id.replace("_", " ").title(),
        tags=frozenset(tags),
        price_cents=5000,
        serving_types=tuple(ServingType(s) for s in serving),
        is_food=is_food,
        category=category,
        images=images or {},
        image=image,
        model_3d=model_3d,
    )


def fist(confidence=0.9, wrist=(0.5, 0.5)):
    return HandObservation(StaticGesture("Closed_Fist", confidence), hand_at(*wrist))


def palm(confidence=0.9, wrist=(0.5, 0.5)):
    return HandObservation(StaticGesture("Open_Palm", confidence), hand_at(*wrist))


def hand_at(x, y):
    """21 landmarks with the wrist at (x, y)."""
    landmarks = np.full((21, 3), 0.5, dtype=np.float32)
    landmarks[0] = (x, y, 0.0)
    return landmarks


def moving_hand(x, y, label="None", confidence=0.3):
    return HandObservation(StaticGesture(label, confidence), hand_at(x, y))


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def catalog():
    return load_catalog(str(MENU_PATH))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def camera():
    return FakeCamera()


@pytest.fixture
def adult_face():
    return RawFace(age=34.4, gender_label="Female", gender_confidence=0.93,
                   expression_scores={"happy": 0.7, "neutral": 0.2, "sad": 0.1})
